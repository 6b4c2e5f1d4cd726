"""Entry decision engine for short (intraday) and mid (swing) horizons.

The short horizon is the mid engine with the trend, earnings and sector
sub-scores left out of the breakdown. Everything here is pure and
synchronous: given range-checked inputs, ``analyze`` never raises.

Decision order
--------------
1. Sub-scores -> breakdown; total is its exact sum.
2. Entry signal: hard rules first, then score thresholds.
3. Stop-loss from the prior low, rounded per market.
4. Risk-reward (mid only) and position size tiers.
5. Independent risk warnings.
"""

from __future__ import annotations

import math

from entry_judge.analysis.scoring import (
    earnings_score,
    focus_score,
    market_score,
    price_position_score,
    sector_score,
    trend_score,
)
from entry_judge.models import (
    AnalysisInputs,
    AnalysisResult,
    EntrySignal,
    MidInputs,
    PositionSize,
    RiskWarning,
)
from entry_judge.utils.logger import setup_logger

logger = setup_logger("decision")

# (ok, watch) score thresholds per horizon
SIGNAL_THRESHOLDS: dict[str, tuple] = {"short": (3, 0), "mid": (5, 1)}

SIGNAL_LABELS = {"ok": "Entry OK", "watch": "Wait", "ng": "Stay out"}
SIZE_LABELS = {"large": "Large", "medium": "Medium", "small": "Small", "pass": "Pass"}

STOP_BELOW_LOW = 0.995
STOP_BELOW_PRICE = 0.98
VOLATILITY_WARN_PCT = 5.0
MIN_RISK_REWARD = 1.5


# ===================================================================
# Stop-loss & risk-reward
# ===================================================================

def round_price(value: float, market: str) -> float:
    """jp quotes whole yen (floor); us quotes cents (half-up)."""
    if market == "us":
        return math.floor(value * 100 + 0.5) / 100
    return float(math.floor(value))


def _floor_tick(value: float, market: str) -> float:
    if market == "us":
        return math.floor(value * 100) / 100
    return float(math.floor(value))


def calc_stop_loss(current_price: float, prev_low: float, market: str) -> float:
    """0.5% under the prior low, or 2% under the price once the low is broken.

    The result is always strictly below ``current_price``.
    """
    if current_price > prev_low:
        stop = round_price(prev_low * STOP_BELOW_LOW, market)
    else:
        stop = round_price(current_price * STOP_BELOW_PRICE, market)
    if stop >= current_price:
        # Half-up rounding on sub-cent prices can land on the price itself
        stop = _floor_tick(current_price * STOP_BELOW_PRICE, market)
    return stop


def calc_risk_reward(current_price: float, stop_loss: float, target_price: float | None) -> float | None:
    if target_price is None or target_price <= current_price:
        return None
    risk = current_price - stop_loss
    if risk <= 0:
        return None
    return (target_price - current_price) / risk


def risk_percent(current_price: float, stop_loss: float) -> float:
    return (current_price - stop_loss) / current_price * 100


# ===================================================================
# Entry signal
# ===================================================================

def _signal(kind: str, reason: str) -> EntrySignal:
    return EntrySignal(signal=kind, label=SIGNAL_LABELS[kind], reason=reason)


def calc_entry_signal(
    total_score: int,
    focus: int,
    horizon: str = "short",
    sentiment: str | None = None,
    earnings_prox: str | None = None,
) -> EntrySignal:
    """First matching rule wins; hard rules precede score thresholds."""
    if focus <= 2:
        return _signal("ng", "Focus too low (hard rule)")

    if horizon == "mid":
        if earnings_prox == "week" and total_score < 5:
            return _signal("watch", f"Earnings within a week, score {total_score} below 5 (gap risk)")
    elif sentiment == "bad" and focus < 4:
        return _signal("ng", "Bad market sentiment with focus below 4 (hard rule)")

    ok_at, watch_at = SIGNAL_THRESHOLDS.get(horizon, SIGNAL_THRESHOLDS["short"])
    if total_score >= ok_at:
        return _signal("ok", f"Score {total_score}: conditions favourable (>= {ok_at})")
    if total_score >= watch_at:
        return _signal("watch", f"Score {total_score}: conditions incomplete (>= {watch_at})")
    return _signal("ng", f"Score {total_score}: conditions unfavourable (< {watch_at})")


# ===================================================================
# Position sizing
# ===================================================================

def _size(kind: str, reason: str) -> PositionSize:
    return PositionSize(size=kind, label=SIZE_LABELS[kind], reason=reason)


def calc_position_size_short(score: int, current_price: float, stop_loss: float, focus: int, sentiment: str) -> PositionSize:
    risk = risk_percent(current_price, stop_loss)
    if score >= 4 and risk <= 2 and focus >= 4 and sentiment == "good":
        return _size("large", f"Score {score}, risk {risk:.1f}%, focus {focus}, good sentiment: all four conditions met")
    if score >= 2 and risk <= 3 and focus >= 3:
        return _size("medium", f"Score {score}, risk {risk:.1f}%, focus {focus} meet the medium tier")
    if score >= 0 and risk <= 5:
        return _size("small", f"Risk {risk:.1f}% is acceptable but conditions are incomplete")
    return _size("pass", f"Risk {risk:.1f}% too large or conditions not met")


def calc_position_size_mid(score: int, risk_reward: float | None, focus: int, trend: str) -> PositionSize:
    """Tiers on score and risk-reward; a missing ratio counts as 0."""
    rr = risk_reward if risk_reward is not None else 0.0
    if score >= 7 and rr >= 2.5 and focus >= 4 and trend == "up":
        return _size("large", f"Score {score}, R:R {rr:.2f}, focus {focus}, uptrend: all four conditions met")
    if score >= 5 and rr >= 2.0 and focus >= 3:
        return _size("medium", f"Score {score}, R:R {rr:.2f}, focus {focus} meet the medium tier")
    if score >= 2 and rr >= 1.5:
        return _size("small", f"Score {score}, R:R {rr:.2f} acceptable but conditions are incomplete")
    return _size("pass", f"Score {score} or R:R {rr:.2f} below the minimum tier")


# ===================================================================
# Risk warnings
# ===================================================================

def calc_risk_warnings(inputs: AnalysisInputs, risk_reward: float | None = None) -> list[RiskWarning]:
    """Independent checks; any subset may fire."""
    warnings: list[RiskWarning] = []

    def add(level: str, message: str) -> None:
        warnings.append(RiskWarning(level, message))

    is_mid = isinstance(inputs, MidInputs)

    if inputs.focus <= 2:
        add("critical", "Focus is too low. Avoid trading today.")
    elif inputs.focus == 3:
        add("warning", "Focus is somewhat low. Mistakes become more likely.")

    if inputs.sentiment == "bad":
        add("critical", "Market sentiment is bad. Losses tend to widen in this environment.")

    if inputs.current_price > inputs.prev_high:
        add("warning", "Price is above the prior high. You may be chasing.")
    if inputs.current_price < inputs.prev_low:
        add("warning", "Price is below the prior low. A downtrend may be starting.")

    volatility = (inputs.prev_high - inputs.prev_low) / inputs.prev_low * 100
    if volatility > VOLATILITY_WARN_PCT:
        add("warning", f"High volatility ({volatility:.1f}%). The stop distance will be wide.")

    if not is_mid:
        if inputs.volume is not None and inputs.volume > 0:
            add("warning", "Compare volume against its average yourself; no average volume is available here.")
        return warnings

    if inputs.trend == "down":
        add("warning", "Trend is down. Swing entries against the trend fail more often.")
    if inputs.earnings_prox == "week":
        add("critical", "Earnings within a week. Gap risk over the announcement.")
    elif inputs.earnings_prox == "twoweeks":
        add("warning", "Earnings within two weeks. Plan the exit before the announcement.")
    if inputs.sector_mom == "weak":
        add("warning", "Sector momentum is weak.")
    if risk_reward is not None and risk_reward < MIN_RISK_REWARD:
        add("warning", f"Risk-reward {risk_reward:.2f} is below {MIN_RISK_REWARD}.")

    return warnings


# ===================================================================
# Entry point
# ===================================================================

def analyze(inputs: AnalysisInputs) -> AnalysisResult:
    """Score *inputs* and build the full result for its horizon."""
    is_mid = isinstance(inputs, MidInputs)
    horizon = "mid" if is_mid else "short"

    price_pts, position = price_position_score(inputs.current_price, inputs.prev_high, inputs.prev_low)
    breakdown: dict[str, int] = {
        "market": market_score(inputs.sentiment),
        "focus": focus_score(inputs.focus),
        "price": price_pts,
    }
    if is_mid:
        breakdown["trend"] = trend_score(inputs.trend)
        breakdown["earnings"] = earnings_score(inputs.earnings_prox)
        breakdown["sector"] = sector_score(inputs.sector_mom)
    total = sum(breakdown.values())

    signal = calc_entry_signal(
        total,
        inputs.focus,
        horizon,
        sentiment=inputs.sentiment,
        earnings_prox=getattr(inputs, "earnings_prox", None),
    )
    stop = calc_stop_loss(inputs.current_price, inputs.prev_low, inputs.market)
    loss_pct = round(risk_percent(inputs.current_price, stop), 2)

    risk_reward = None
    if is_mid:
        risk_reward = calc_risk_reward(inputs.current_price, stop, inputs.target_price)
        size = calc_position_size_mid(total, risk_reward, inputs.focus, inputs.trend)
    else:
        size = calc_position_size_short(total, inputs.current_price, stop, inputs.focus, inputs.sentiment)

    result = AnalysisResult(
        horizon=horizon,
        ticker=inputs.ticker,
        market=inputs.market,
        breakdown=breakdown,
        price_position=position,
        entry_signal=signal,
        stop_loss=stop,
        loss_percent=loss_pct,
        position_size=size,
        warnings=calc_risk_warnings(inputs, risk_reward),
        risk_reward=risk_reward,
    )
    logger.debug(
        "%s %s: score=%d signal=%s size=%s",
        horizon, inputs.ticker or "-", total, signal.signal, size.size,
    )
    return result
