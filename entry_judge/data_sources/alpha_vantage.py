"""Alpha Vantage daily time series + symbol search.

Free tier: 25 calls/day. Quota and error signals come back as HTTP 200 with
"Note" / "Information" / "Error Message" keys instead of a status code.
"""

from __future__ import annotations

from entry_judge.data_sources.base import BaseProvider, close_series, frame_to_snapshot, rows_to_frame
from entry_judge.errors import MalformedDataError, RateLimitedError, SymbolNotFoundError
from entry_judge.models import StockSnapshot
from entry_judge.utils.logger import setup_logger

logger = setup_logger("alpha_vantage")

BASE_URL = "https://www.alphavantage.co/query"
_SERIES_KEY = "Time Series (Daily)"
_FIELD_MAP = {
    "1. open": "Open",
    "2. high": "High",
    "3. low": "Low",
    "4. close": "Close",
    "5. volume": "Volume",
}
_RATE_MARKERS = ("frequency", "rate limit", "requests per", "premium")


class AlphaVantageProvider(BaseProvider):
    """Daily OHLCV from Alpha Vantage. Requires an API key."""

    requires_key = True

    @property
    def name(self) -> str:
        return "alpha_vantage"

    def _check_payload(self, data) -> dict:
        if not isinstance(data, dict):
            raise self._fail(MalformedDataError, "unexpected payload")
        if "Error Message" in data:
            raise self._fail(SymbolNotFoundError, "symbol not found")
        notice = data.get("Note") or data.get("Information")
        if notice:
            if any(m in notice.lower() for m in _RATE_MARKERS):
                raise self._fail(RateLimitedError, "API rate limit reached")
            raise self._fail(MalformedDataError, notice[:120])
        return data

    def _daily(self, symbol: str, timeout: float):
        logger.info("Alpha Vantage daily: %s", symbol)
        data = self._get_json(BASE_URL, params={
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "compact",
            "apikey": self.api_key,
        }, timeout=timeout)
        data = self._check_payload(data)

        series = data.get(_SERIES_KEY)
        if not isinstance(series, dict):
            raise self._fail(MalformedDataError, "daily series missing")
        if not series:
            raise self._fail(SymbolNotFoundError, "no price data")

        rows = [{"date": day, **values} for day, values in series.items()]
        return rows_to_frame(rows, _FIELD_MAP, "date")

    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        return frame_to_snapshot(self._daily(symbol, timeout), self.label)

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        return close_series(self._daily(symbol, timeout))

    def search(self, code: str, timeout: float) -> list[dict]:
        """SYMBOL_SEARCH, flattened to resolver candidates."""
        logger.info("Alpha Vantage symbol search: %s", code)
        data = self._get_json(BASE_URL, params={
            "function": "SYMBOL_SEARCH",
            "keywords": code,
            "apikey": self.api_key,
        }, timeout=timeout)
        data = self._check_payload(data)
        return [
            {
                "symbol": m.get("1. symbol", ""),
                "name": m.get("2. name", ""),
                "region": m.get("4. region", ""),
                "currency": m.get("8. currency", ""),
            }
            for m in data.get("bestMatches", [])
        ]
