"""Yahoo Finance chart API, directly or through a relay endpoint.

Yahoo blocks many clients outright, so the same request is usually raced
through several public relays. Each relay is its own provider instance and
its own race attempt; a relay's failures (HTTP status, timeout, an HTML
error page instead of JSON) classify exactly like Yahoo's own.
"""

from __future__ import annotations

from urllib.parse import quote, urlparse

import pandas as pd
import requests
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from entry_judge.config import setting
from entry_judge.data_sources.base import BaseProvider, close_series, frame_to_snapshot
from entry_judge.errors import (
    FetchTimeout,
    MalformedDataError,
    RateLimitedError,
    SymbolNotFoundError,
    TransportError,
)
from entry_judge.models import StockSnapshot
from entry_judge.utils.logger import setup_logger

logger = setup_logger("yahoo")

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
DIRECT = "{url}"


def relay_url(relay: str, target: str) -> str:
    """Wrap *target* in a relay template; ``"{url}"`` means direct."""
    if relay == DIRECT:
        return target
    return relay.format(url=quote(target, safe=""))


def chart_to_frame(result: dict) -> pd.DataFrame:
    timestamps = result.get("timestamp") or []
    quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
    if not timestamps:
        return pd.DataFrame()

    def column(key):
        values = list(quotes.get(key) or [])
        return (values + [None] * len(timestamps))[:len(timestamps)]

    df = pd.DataFrame(
        {
            "High": column("high"),
            "Low": column("low"),
            "Close": column("close"),
            "Volume": column("volume"),
        },
        index=pd.to_datetime(timestamps, unit="s"),
    )
    return df.apply(pd.to_numeric, errors="coerce")


class YahooChartProvider(BaseProvider):
    """Yahoo ``v8/finance/chart`` via one relay."""

    def __init__(self, relay: str = DIRECT, **kwargs):
        super().__init__(**kwargs)
        self.relay = relay

    @property
    def name(self) -> str:
        return "yahoo"

    @property
    def label(self) -> str:
        if self.relay == DIRECT:
            return "yahoo:direct"
        return f"yahoo:{urlparse(self.relay).netloc or self.relay}"

    def _chart(self, symbol: str, range_: str, timeout: float) -> dict:
        target = (
            CHART_URL.format(symbol=quote(symbol, safe=""))
            + f"?range={range_}&interval=1d&includePrePost=false"
        )
        logger.info("Yahoo chart via %s: %s (range=%s)", self.label, symbol, range_)
        data = self._get_json(relay_url(self.relay, target), timeout=timeout)
        if not isinstance(data, dict):
            raise self._fail(MalformedDataError, "unexpected payload")

        chart = data.get("chart") or {}
        results = chart.get("result") or []
        if results:
            return results[0]

        error = chart.get("error") or {}
        description = error.get("description") or "symbol not found"
        if error and error.get("code") not in (None, "Not Found"):
            raise self._fail(MalformedDataError, description)
        raise self._fail(SymbolNotFoundError, description)

    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        result = self._chart(symbol, setting("yahoo", "range", "5d"), timeout)
        meta = result.get("meta") or {}
        df = chart_to_frame(result)
        if df.empty:
            raise self._fail(MalformedDataError, "no price bars")
        return frame_to_snapshot(
            df,
            self.label,
            skip_incomplete=True,
            long_name=meta.get("longName") or meta.get("shortName"),
            current_price=meta.get("regularMarketPrice") or None,
            volume=meta.get("regularMarketVolume") or None,
        )

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        result = self._chart(symbol, setting("yahoo", "history_range", "3mo"), timeout)
        return close_series(chart_to_frame(result))


class YFinanceProvider(BaseProvider):
    """The same Yahoo data through the ``yfinance`` client."""

    @property
    def name(self) -> str:
        return "yfinance"

    def _history(self, symbol: str, period: str, timeout: float) -> pd.DataFrame:
        logger.info("yfinance history: %s (period=%s)", symbol, period)
        try:
            # yfinance keeps its own curl_cffi session and rejects a requests.Session
            stock = yf.Ticker(symbol)
            df = stock.history(period=period, interval="1d", timeout=timeout)
        except YFRateLimitError as e:
            raise self._fail(RateLimitedError, "Yahoo rate limit") from e
        except requests.Timeout as e:
            raise FetchTimeout(f"{self.label}: timed out after {timeout:g}s", self.label) from e
        except Exception as e:
            raise TransportError(f"{self.label}: {e}", self.label) from e

        if df is None or df.empty:
            raise self._fail(SymbolNotFoundError, "symbol not found")
        return df

    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        df = self._history(symbol, setting("yahoo", "range", "5d"), timeout)
        return frame_to_snapshot(df, self.label, skip_incomplete=True)

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        return close_series(self._history(symbol, setting("yahoo", "history_range", "3mo"), timeout))
