"""Benchmark index closes (Nikkei 225 for jp, S&P 500 for us)."""

from __future__ import annotations

from entry_judge.config import SETTINGS
from entry_judge.data_sources.base import BaseProvider
from entry_judge.models import StockSnapshot

_DEFAULT_INDEX_SYMBOLS = {
    "jp": {"yahoo": "^N225", "yfinance": "^N225", "stooq": "^nkx"},
    "us": {"yahoo": "^GSPC", "yfinance": "^GSPC", "stooq": "^spx"},
}


def index_symbol(market: str, provider: str) -> str | None:
    table = SETTINGS.get("index_symbols") or _DEFAULT_INDEX_SYMBOLS
    return (table.get(market) or {}).get(provider)


class IndexProvider(BaseProvider):
    """Index history through a history-capable provider.

    The wrapped provider's own symbol syntax is used for the index, so the
    ``symbol`` argument of the fetch methods is ignored.
    """

    def __init__(self, inner: BaseProvider, market: str, symbol: str | None = None):
        super().__init__(api_key=inner.api_key)
        self.inner = inner
        self.market = market
        self.symbol = symbol or index_symbol(market, inner.name)

    @property
    def name(self) -> str:
        return "index"

    @property
    def label(self) -> str:
        return f"index:{self.inner.label}"

    @property
    def enabled(self) -> bool:
        return bool(self.symbol) and self.inner.enabled and self.inner.supports_history

    def fetch_snapshot(self, symbol: str | None, timeout: float) -> StockSnapshot:
        return self.inner.fetch_snapshot(self.symbol, timeout)

    def fetch_history(self, symbol: str | None, timeout: float) -> list[float]:
        return self.inner.fetch_history(self.symbol, timeout)
