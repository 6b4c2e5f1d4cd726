"""Base class for all OHLCV provider adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod

import pandas as pd
import requests

from entry_judge.errors import (
    FetchError,
    FetchTimeout,
    MalformedDataError,
    RateLimitedError,
    SymbolNotFoundError,
    TransportError,
)
from entry_judge.models import StockSnapshot
from entry_judge.symbols import normalize
from entry_judge.utils.http import get_session
from entry_judge.utils.logger import setup_logger

logger = setup_logger("providers")


class BaseProvider(ABC):
    """Interface every data source must implement.

    To add a source:
    1. Create a module in entry_judge/data_sources/
    2. Subclass BaseProvider, implement ``name`` and ``fetch_snapshot``
    3. Override ``fetch_history`` if the source can return a close series
    4. Add it to ``build_providers`` in fetcher.py and to settings.yaml
    """

    requires_key: bool = False

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None):
        self.api_key = api_key
        self._session = session

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider kind; selects the symbol normalizer and resolver cache."""
        ...

    @property
    def label(self) -> str:
        """Unique attempt name when several instances share a kind."""
        return self.name

    @property
    def enabled(self) -> bool:
        return not self.requires_key or bool(self.api_key)

    @property
    def session(self) -> requests.Session:
        return self._session if self._session is not None else get_session()

    @property
    def supports_history(self) -> bool:
        return type(self).fetch_history is not BaseProvider.fetch_history

    def symbol_for(self, raw: str, market: str) -> str:
        return normalize(raw, market, self.name)

    @abstractmethod
    def fetch_snapshot(self, symbol: str, timeout: float) -> StockSnapshot:
        """Return the most recent completed session for *symbol*."""
        ...

    def fetch_history(self, symbol: str, timeout: float) -> list[float]:
        """Return daily closes, oldest first."""
        raise NotImplementedError(f"{self.name} does not provide history")

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get(self, url: str, params: dict | None = None, timeout: float = 8.0) -> requests.Response:
        """GET with every failure mapped into the shared taxonomy."""
        try:
            resp = self.session.get(url, params=params, timeout=timeout)
        except requests.Timeout as e:
            raise FetchTimeout(f"{self.label}: timed out after {timeout:g}s", self.label) from e
        except requests.RequestException as e:
            raise TransportError(f"{self.label}: {e}", self.label) from e

        code = resp.status_code
        if code == 429:
            raise RateLimitedError(f"{self.label}: rate limited (HTTP 429)", self.label)
        if code == 404:
            raise SymbolNotFoundError(f"{self.label}: symbol not found (HTTP 404)", self.label)
        if code >= 400:
            raise TransportError(f"{self.label}: HTTP {code}", self.label)
        return resp

    def _get_json(self, url: str, params: dict | None = None, timeout: float = 8.0):
        resp = self._get(url, params=params, timeout=timeout)
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedDataError(f"{self.label}: response is not JSON", self.label) from e

    def _fail(self, cls: type[FetchError], message: str) -> FetchError:
        logger.warning("%s: %s", self.label, message)
        return cls(f"{self.label}: {message}", self.label)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _num(val) -> float | None:
    """Convert string/number to float, returning None on failure."""
    if val is None:
        return None
    try:
        f = float(val)
    except (ValueError, TypeError):
        return None
    if f != f or f in (float("inf"), float("-inf")):
        return None
    return f


def close_series(df: pd.DataFrame) -> list[float]:
    """Oldest-first closes with non-numeric entries dropped."""
    if "Close" not in df.columns:
        return []
    return pd.to_numeric(df["Close"], errors="coerce").dropna().astype(float).tolist()


def frame_to_snapshot(
    df: pd.DataFrame,
    provider: str,
    *,
    skip_incomplete: bool = False,
    long_name: str | None = None,
    current_price: float | None = None,
    volume: float | None = None,
) -> StockSnapshot:
    """Build a snapshot from a date-indexed frame with High/Low/Close/Volume.

    The chronologically last row is the "previous" session. With
    *skip_incomplete*, trailing rows missing high or low are skipped first
    (intraday bar feeds leave the forming bar null).
    """
    if df is None or df.empty:
        raise SymbolNotFoundError(f"{provider}: no price data", provider)
    if "High" not in df.columns or "Low" not in df.columns:
        raise MalformedDataError(f"{provider}: high/low columns missing", provider)

    df = df.sort_index()
    rows = df
    if skip_incomplete:
        highs = pd.to_numeric(df["High"], errors="coerce")
        lows = pd.to_numeric(df["Low"], errors="coerce")
        rows = df[highs.notna() & lows.notna()]
        if rows.empty:
            raise MalformedDataError(f"{provider}: no complete bar", provider)

    last = rows.iloc[-1]
    high = _num(last["High"])
    low = _num(last["Low"])
    if not high or not low or high <= 0 or low <= 0 or low > high:
        raise MalformedDataError(f"{provider}: incomplete price data", provider)

    if volume is None and "Volume" in rows.columns:
        volume = _num(last["Volume"])

    stamp = rows.index[-1]
    date = stamp.strftime("%Y-%m-%d") if hasattr(stamp, "strftime") else str(stamp)

    return StockSnapshot(
        prev_high=high,
        prev_low=low,
        volume=volume,
        date=date,
        closes=close_series(df),
        long_name=long_name,
        current_price=current_price,
        source=provider,
    )


def rows_to_frame(rows: list[dict], field_map: dict[str, str], date_key: str) -> pd.DataFrame:
    """Turn provider JSON rows into a date-indexed, ascending frame.

    *field_map* maps provider keys to High/Low/Close/Volume/Open.
    """
    df = pd.DataFrame(rows)
    if df.empty or date_key not in df.columns:
        return pd.DataFrame()
    df = df.rename(columns=field_map)
    df[date_key] = pd.to_datetime(df[date_key], errors="coerce")
    df = df.dropna(subset=[date_key]).set_index(date_key).sort_index()
    for col in ("Open", "High", "Low", "Close", "Volume"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df
