"""Two-phase stock data acquisition.

Phase 1 (critical): race every enabled provider for a snapshot. If all of
them fail the request fails with one ``AggregateFetchError``.

Phase 2 (best effort, started after phase 1 so the relays are not
saturated): trend history and benchmark index history, fetched
independently. Either one failing only turns its classification into
"unavailable".
"""

from __future__ import annotations

from functools import partial

from entry_judge.analysis.trend import derive_sentiment, derive_trend
from entry_judge.config import CredentialStore, EnvCredentialStore, setting
from entry_judge.data_sources.alpha_vantage import AlphaVantageProvider
from entry_judge.data_sources.base import BaseProvider
from entry_judge.data_sources.index import IndexProvider
from entry_judge.data_sources.race import Attempt, race, settle_all
from entry_judge.data_sources.stooq import StooqProvider
from entry_judge.data_sources.twelve_data import TwelveDataProvider
from entry_judge.data_sources.yahoo import DIRECT, YahooChartProvider, YFinanceProvider
from entry_judge.errors import AggregateFetchError, FetchError, SymbolNotFoundError
from entry_judge.models import UNAVAILABLE, FetchedStock
from entry_judge.resolver import SymbolResolver
from entry_judge.symbols import clean_code
from entry_judge.utils.cache import FileBackend, SymbolCache
from entry_judge.utils.logger import setup_logger

logger = setup_logger("fetcher")

DEFAULT_PROVIDERS = ["alpha_vantage", "twelve_data", "stooq", "yahoo", "yfinance"]

# Outer phase-2 jobs wrap an inner race; give them room to report its errors
_JOB_GRACE_SECONDS = 1.0


def build_providers(credentials: CredentialStore, enabled: list[str] | None = None) -> list[BaseProvider]:
    """Instantiate configured providers. Keyed ones without a token are kept but disabled."""
    enabled = enabled if enabled is not None else setting("providers", "enabled", DEFAULT_PROVIDERS)
    providers: list[BaseProvider] = []
    for kind in enabled:
        if kind == "alpha_vantage":
            providers.append(AlphaVantageProvider(api_key=credentials.get("alpha_vantage")))
        elif kind == "twelve_data":
            providers.append(TwelveDataProvider(api_key=credentials.get("twelve_data")))
        elif kind == "stooq":
            providers.append(StooqProvider())
        elif kind == "yahoo":
            for relay in setting("yahoo", "relays", [DIRECT]):
                providers.append(YahooChartProvider(relay=relay))
        elif kind == "yfinance":
            providers.append(YFinanceProvider())
        else:
            logger.warning("Unknown provider in settings: %s", kind)
    return providers


class StockDataFetcher:
    """Fetch a snapshot plus derived trend / sentiment for one ticker."""

    def __init__(
        self,
        credentials: CredentialStore | None = None,
        providers: list[BaseProvider] | None = None,
        resolver: SymbolResolver | None = None,
        timeout: float | None = None,
        history_timeout: float | None = None,
    ):
        self.credentials = credentials if credentials is not None else EnvCredentialStore()
        self.providers = providers if providers is not None else build_providers(self.credentials)
        self.resolver = resolver or SymbolResolver(cache=SymbolCache(FileBackend()))
        self.timeout = timeout or float(setting("http", "timeout_seconds", 8))
        self.history_timeout = history_timeout or float(setting("http", "history_timeout_seconds", 10))
        self.history_points = int(setting("derivation", "history_points", 60))

        for provider in self.providers:
            search = getattr(provider, "search", None)
            if callable(search) and provider.enabled:
                self.resolver.register(provider.name, search)

    @property
    def active_providers(self) -> list[BaseProvider]:
        return [p for p in self.providers if p.enabled]

    # ------------------------------------------------------------------
    # Attempt bodies (run on worker threads)
    # ------------------------------------------------------------------

    def _symbol(self, provider: BaseProvider, ticker: str, market: str) -> str:
        code = provider.symbol_for(ticker, market)
        return self.resolver.resolve(code, market, provider.name)

    def _snapshot(self, provider: BaseProvider, ticker: str, market: str, timeout: float):
        symbol = self._symbol(provider, ticker, market)
        return symbol, provider.fetch_snapshot(symbol, timeout)

    def _history(self, provider: BaseProvider, ticker: str, market: str, timeout: float) -> list[float]:
        symbol = self._symbol(provider, ticker, market)
        return provider.fetch_history(symbol, timeout)

    def _index_history(self, provider: IndexProvider, timeout: float) -> list[float]:
        return provider.fetch_history(None, timeout)

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def snapshot_attempts(self, ticker: str, market: str) -> list[Attempt]:
        return [
            Attempt(p.label, partial(self._snapshot, p, ticker, market), self.timeout)
            for p in self.active_providers
        ]

    def trend_attempts(self, ticker: str, market: str) -> list[Attempt]:
        return [
            Attempt(p.label, partial(self._history, p, ticker, market), self.history_timeout)
            for p in self.active_providers if p.supports_history
        ]

    def index_attempts(self, market: str) -> list[Attempt]:
        attempts = []
        for p in self.active_providers:
            if not p.supports_history:
                continue
            index = IndexProvider(p, market)
            if index.enabled:
                attempts.append(Attempt(index.label, partial(self._index_history, index), self.history_timeout))
        return attempts

    def _race_closes(self, attempts: list[Attempt]) -> list[float]:
        closes = race(attempts).value
        return list(closes)[-self.history_points:]

    def fetch(self, ticker: str, market: str = "jp") -> FetchedStock:
        """Run both phases.

        Raises:
            AggregateFetchError: no provider produced a snapshot.
        """
        if not clean_code(ticker, market):
            raise AggregateFetchError([SymbolNotFoundError("ticker is empty")])

        logger.info("Fetching %s (%s) from %d providers", ticker, market, len(self.active_providers))
        winner = race(self.snapshot_attempts(ticker, market))
        symbol, snapshot = winner.value

        job_timeout = self.history_timeout + _JOB_GRACE_SECONDS
        jobs = []
        trend_attempts = self.trend_attempts(ticker, market)
        if trend_attempts:
            jobs.append(Attempt("trend", lambda _t: self._race_closes(trend_attempts), job_timeout))
        index_attempts = self.index_attempts(market)
        if index_attempts:
            jobs.append(Attempt("index", lambda _t: self._race_closes(index_attempts), job_timeout))
        outcomes = settle_all(jobs)

        trend = self._classify(outcomes.get("trend"), derive_trend, "trend")
        sentiment = self._classify(outcomes.get("index"), derive_sentiment, "index")
        logger.info(
            "Fetched %s via %s: trend=%s sentiment=%s", symbol, winner.name, trend, sentiment,
        )
        return FetchedStock(snapshot=snapshot, symbol=symbol, trend=trend, sentiment=sentiment)

    @staticmethod
    def _classify(outcome, derive, what: str) -> str:
        if outcome is None:
            return UNAVAILABLE
        if isinstance(outcome, FetchError):
            logger.info("%s history unavailable: %s", what, outcome)
            return UNAVAILABLE
        return derive(outcome)


def fetch_stock_data(ticker: str, market: str = "jp", credentials: CredentialStore | None = None) -> FetchedStock:
    """Convenience wrapper around ``StockDataFetcher(credentials).fetch``."""
    return StockDataFetcher(credentials=credentials).fetch(ticker, market)
