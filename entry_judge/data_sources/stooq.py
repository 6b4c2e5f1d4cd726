"""Stooq daily CSV download (no key, direct access)."""

from __future__ import annotations

import io

import pandas as pd

from entry_judge.data_sources.base import BaseProvider, close_series, frame_to_snapshot
from entry_judge.errors import MalformedDataError, SymbolNotFoundError
from entry_judge.models import StockSnapshot
from entry_judge.utils.logger import setup_logger

logger = setup_logger("stooq")

BASE_URL = "https://stooq.com/q/d/l/"
_NO_DATA = ("no data", "brak danych")
_COLUMNS = {"date": "Date", "open": "Open", "high": "High", "low": "Low", "close": "Close", "volume": "Volume"}


def parse_csv(text: str, provider: str = "stooq") -> pd.DataFrame:
    """Parse a Stooq CSV body into a date-indexed frame.

    Columns are located by header name, case-insensitively. Blank lines are
    ignored so the last non-empty line is the most recent session.
    """
    body = (text or "").strip()
    if not body or body.lower() in _NO_DATA:
        raise SymbolNotFoundError(f"{provider}: symbol not found", provider)

    try:
        df = pd.read_csv(io.StringIO(body), skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise MalformedDataError(f"{provider}: unreadable CSV", provider) from e

    renamed = {}
    for col in df.columns:
        key = str(col).strip().lower()
        if key in _COLUMNS:
            renamed[col] = _COLUMNS[key]
    df = df.rename(columns=renamed)

    if "High" not in df.columns or "Low" not in df.columns:
        raise MalformedDataError(f"{provider}: high/low columns missing", provider)
    if df.empty:
        raise SymbolNotFoundError(f"{provider}: no price data", provider)

    if "Date" in df.columns:
        df["Date"] = pd.to_datetime(df["Date"], errors="coerce")
        df = df.dropna(subset=["Date"]).set_index("Date")
    return df


class StooqProvider(BaseProvider):

    @property
    def name(self) -> str:
        return "stooq"

    def _download(self, symbol: str, timeout: float) -> pd.DataFrame:
        logger.info("Stooq CSV: %s", symbol)
        resp = self._get(BASE_URL, params={"s": symbol, "i": "d"}, timeout=timeout)
        return parse_csv(resp.text, self.label)

    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        return frame_to_snapshot(self._download(symbol, timeout), self.label)

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        return close_series(self._download(symbol, timeout))
