"""Twelve Data REST API.

Free tier: 800 calls/day, 8 calls/min. Errors arrive as
``{"status": "error", "code": ..., "message": ...}`` with HTTP 200.
"""

from __future__ import annotations

from entry_judge.data_sources.base import BaseProvider, close_series, frame_to_snapshot, rows_to_frame
from entry_judge.errors import MalformedDataError, RateLimitedError, SymbolNotFoundError
from entry_judge.models import StockSnapshot
from entry_judge.utils.logger import setup_logger

logger = setup_logger("twelve_data")

BASE_URL = "https://api.twelvedata.com"
_FIELD_MAP = {"open": "Open", "high": "High", "low": "Low", "close": "Close", "volume": "Volume"}

SNAPSHOT_OUTPUTSIZE = 30
HISTORY_OUTPUTSIZE = 90


class TwelveDataProvider(BaseProvider):
    """Daily OHLCV from Twelve Data. Requires an API key."""

    requires_key = True

    @property
    def name(self) -> str:
        return "twelve_data"

    def _check_payload(self, data) -> dict:
        if not isinstance(data, dict):
            raise self._fail(MalformedDataError, "unexpected payload")
        if data.get("status") != "error":
            return data

        code = data.get("code")
        message = str(data.get("message", "unknown error"))
        lowered = message.lower()
        if code == 429 or "credits" in lowered or "limit" in lowered:
            raise self._fail(RateLimitedError, "API credits exhausted")
        if code == 404 or ("symbol" in lowered and ("not found" in lowered or "invalid" in lowered)):
            raise self._fail(SymbolNotFoundError, "symbol not found")
        raise self._fail(MalformedDataError, message[:120])

    def _time_series(self, symbol: str, outputsize: int, timeout: float):
        logger.info("Twelve Data time_series: %s (outputsize=%d)", symbol, outputsize)
        data = self._get_json(f"{BASE_URL}/time_series", params={
            "symbol": symbol,
            "interval": "1day",
            "outputsize": outputsize,
            "apikey": self.api_key,
            "format": "JSON",
        }, timeout=timeout)
        data = self._check_payload(data)

        values = data.get("values")
        if values is None:
            raise self._fail(MalformedDataError, "values missing")
        if not values:
            raise self._fail(SymbolNotFoundError, "no price data")
        return rows_to_frame(values, _FIELD_MAP, "datetime")

    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        df = self._time_series(symbol, SNAPSHOT_OUTPUTSIZE, timeout)
        return frame_to_snapshot(df, self.label)

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        return close_series(self._time_series(symbol, HISTORY_OUTPUTSIZE, timeout))

    def search(self, code: str, timeout: float) -> list[dict]:
        """``/symbol_search``; candidates carry ``SYMBOL:EXCHANGE`` symbols."""
        logger.info("Twelve Data symbol search: %s", code)
        data = self._get_json(f"{BASE_URL}/symbol_search", params={
            "symbol": code,
            "apikey": self.api_key,
        }, timeout=timeout)
        data = self._check_payload(data)
        candidates = []
        for item in data.get("data", []):
            symbol = item.get("symbol", "")
            exchange = item.get("exchange", "")
            candidates.append({
                "symbol": f"{symbol}:{exchange}" if exchange else symbol,
                "name": item.get("instrument_name", ""),
                "region": item.get("country", ""),
                "currency": item.get("currency", ""),
            })
        return candidates
