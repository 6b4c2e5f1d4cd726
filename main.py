#!/usr/bin/env python3
"""Entry Judge: should I enter, where is my stop, how big?

Usage:
    python main.py fetch 7203 --market jp                 # snapshot + trend/sentiment
    python main.py fetch AAPL --market us --json
    python main.py analyze --price 105 --high 110 --low 100 --focus 4 --sentiment good
    python main.py analyze --horizon mid --price 100 --high 104 --low 96 \\
        --focus 4 --trend up --earnings far --sector strong --target 115 --market us
    python main.py check 7203 --focus 4                   # fetch, then analyze
    python main.py check AAPL --market us --horizon mid --focus 4 --target 250
"""

import argparse
import json
import sys

from entry_judge.analysis.decision import analyze
from entry_judge.config import SETTINGS
from entry_judge.data_sources.fetcher import fetch_stock_data
from entry_judge.errors import AggregateFetchError
from entry_judge.models import UNAVAILABLE, AnalysisResult, MidInputs, ShortInputs
from entry_judge.utils.logger import setup_logger

logger = setup_logger("main", SETTINGS.get("app", {}).get("log_level", "INFO"))


def _validate_prices(price: float, high: float, low: float) -> None:
    if price <= 0 or high <= 0 or low <= 0:
        print("Prices must be positive.")
        sys.exit(2)
    if high < low:
        print("Prior high must not be below prior low.")
        sys.exit(2)


def _build_inputs(args, price, high, low, volume, sentiment, trend):
    common = dict(
        current_price=price,
        prev_high=high,
        prev_low=low,
        volume=volume,
        market=args.market,
        focus=args.focus,
        sentiment=sentiment,
        ticker=getattr(args, "ticker", "") or "",
    )
    if args.horizon == "mid":
        return MidInputs(
            **common,
            trend=trend,
            earnings_prox=args.earnings,
            sector_mom=args.sector,
            target_price=args.target,
        )
    return ShortInputs(**common)


def _print_result(result: AnalysisResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    currency = "$" if result.market == "us" else "¥"
    stop = f"{result.stop_loss:.2f}" if result.market == "us" else f"{result.stop_loss:,.0f}"
    detail = " / ".join(f"{k} {v:+d}" for k, v in result.breakdown.items())

    print(f"\n{'='*50}")
    print(f"  {result.ticker or '(no ticker)'}  [{result.horizon}]")
    print(f"  {result.entry_signal.label}  (score {result.total_score}: {detail})")
    print(f"  {result.entry_signal.reason}")
    print(f"{'='*50}")
    print(f"  {'stop loss':15s}: {currency}{stop}  (-{result.loss_percent:.2f}%)")
    print(f"  {'position size':15s}: {result.position_size.label}  - {result.position_size.reason}")
    if result.horizon == "mid":
        rr = f"{result.risk_reward:.2f}" if result.risk_reward is not None else "n/a"
        print(f"  {'risk-reward':15s}: {rr}")
    for w in result.warnings:
        marker = "!!" if w.level == "critical" else " !"
        print(f"  {marker} {w.message}")


# ============================================================
# COMMANDS
# ============================================================

def _fetch_or_exit(args):
    try:
        return fetch_stock_data(args.ticker, args.market)
    except AggregateFetchError as e:
        print(f"Fetch failed: {e}")
        for err in e.errors:
            print(f"  - {err.provider or '?'} [{err.kind}] {err}")
        sys.exit(1)


def cmd_fetch(args):
    """Fetch snapshot, trend and sentiment."""
    fetched = _fetch_or_exit(args)

    if args.json:
        print(json.dumps(fetched.to_dict(), indent=2, ensure_ascii=False))
        return

    snap = fetched.snapshot
    print(f"\n{'='*50}")
    print(f"  {fetched.long_name or fetched.symbol} ({fetched.symbol}) via {snap.source}")
    print(f"{'='*50}")
    rows = {
        "date": snap.date,
        "last price": snap.last_price,
        "prior high": snap.prev_high,
        "prior low": snap.prev_low,
        "volume": snap.volume,
        "trend": fetched.trend,
        "sentiment": fetched.sentiment,
    }
    for k, v in rows.items():
        print(f"  {k:15s}: {v}")
    print("\n  Provider data is best-effort; check the numbers before trading.")


def cmd_analyze(args):
    """Score manually entered values."""
    _validate_prices(args.price, args.high, args.low)
    inputs = _build_inputs(args, args.price, args.high, args.low, args.volume, args.sentiment, args.trend)
    _print_result(analyze(inputs), args.json)


def cmd_check(args):
    """Fetch, then analyze with fetched values; flags override derived ones."""
    fetched = _fetch_or_exit(args)

    snap = fetched.snapshot
    price = args.price or snap.last_price
    if not price:
        print("No current price available; pass --price.")
        sys.exit(1)
    _validate_prices(price, snap.prev_high, snap.prev_low)

    sentiment = args.sentiment or (fetched.sentiment if fetched.sentiment != UNAVAILABLE else "normal")
    trend = args.trend or (fetched.trend if fetched.trend != UNAVAILABLE else "side")
    inputs = _build_inputs(args, price, snap.prev_high, snap.prev_low, snap.volume, sentiment, trend)
    logger.info("Analyzing %s with sentiment=%s trend=%s", fetched.symbol, sentiment, trend)
    _print_result(analyze(inputs), args.json)


def _add_decision_args(p, manual: bool):
    p.add_argument("--horizon", default="short", choices=["short", "mid"])
    p.add_argument("--market", default="jp", choices=["jp", "us"])
    p.add_argument("--focus", type=int, default=3, choices=range(1, 6), help="Self-rated focus 1-5")
    sentiment_default = "normal" if manual else None
    trend_default = "side" if manual else None
    p.add_argument("--sentiment", default=sentiment_default, choices=["good", "normal", "bad"])
    p.add_argument("--trend", default=trend_default, choices=["up", "side", "down"])
    p.add_argument("--earnings", default="unknown", choices=["far", "month", "twoweeks", "week", "unknown"])
    p.add_argument("--sector", default="neutral", choices=["strong", "neutral", "weak"])
    p.add_argument("--target", type=float, default=None, help="Target price (mid horizon)")
    p.add_argument("--json", action="store_true", help="Print JSON")


def main():
    parser = argparse.ArgumentParser(
        description="Entry Judge: trade entry decision support",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", help="Commands")

    # fetch
    p = sub.add_parser("fetch", help="Fetch price snapshot")
    p.add_argument("ticker", help="Code or symbol, e.g. 7203 or AAPL")
    p.add_argument("--market", default="jp", choices=["jp", "us"])
    p.add_argument("--json", action="store_true", help="Print JSON")
    p.set_defaults(func=cmd_fetch)

    # analyze
    p = sub.add_parser("analyze", help="Analyze manually entered prices")
    p.add_argument("--ticker", default="", help="Label echoed in the result")
    p.add_argument("--price", type=float, required=True, help="Current price")
    p.add_argument("--high", type=float, required=True, help="Prior high")
    p.add_argument("--low", type=float, required=True, help="Prior low")
    p.add_argument("--volume", type=float, default=None)
    _add_decision_args(p, manual=True)
    p.set_defaults(func=cmd_analyze)

    # check
    p = sub.add_parser("check", help="Fetch and analyze")
    p.add_argument("ticker")
    p.add_argument("--price", type=float, default=None, help="Override current price")
    _add_decision_args(p, manual=False)
    p.set_defaults(func=cmd_check)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)
    args.func(args)


if __name__ == "__main__":
    main()
