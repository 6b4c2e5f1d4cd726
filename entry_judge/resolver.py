"""Provider symbol resolution for markets with venue ambiguity."""

from __future__ import annotations

from typing import Callable

from entry_judge.config import setting
from entry_judge.errors import MalformedDataError, SymbolNotFoundError
from entry_judge.utils.cache import SymbolCache
from entry_judge.utils.logger import setup_logger

logger = setup_logger("resolver")

# search(code, timeout) -> [{"symbol": ..., "region": ..., "currency": ...}, ...]
SearchFn = Callable[[str, float], list]

_MARKET_MARKERS = {
    "jp": ("japan", "tokyo", "jpy"),
}


def _matches_market(candidate: dict, market: str) -> bool:
    markers = _MARKET_MARKERS.get(market, ())
    fields = (candidate.get("region") or "", candidate.get("currency") or "")
    return any(m in f.lower() for f in fields for m in markers)


def _base_code(symbol: str) -> str:
    return symbol.upper().split(":")[0].split(".")[0]


def pick_best(code: str, candidates: list[dict], market: str) -> str | None:
    """Deterministic choice among search results.

    Exact code match on the target market first, then any target-market
    symbol starting with the code. Provider order breaks ties.
    """
    code = code.upper()
    in_market = [c for c in candidates if c.get("symbol") and _matches_market(c, market)]
    for cand in in_market:
        if _base_code(cand["symbol"]) == code:
            return cand["symbol"]
    for cand in in_market:
        if cand["symbol"].upper().startswith(code):
            return cand["symbol"]
    return None


class SymbolResolver:
    """Resolve a normalized code to a provider's canonical symbol.

    Only providers with a registered search function and markets listed in
    ``_MARKET_MARKERS`` go through search; everything else passes through
    unchanged without a network call.
    """

    def __init__(
        self,
        cache: SymbolCache | None = None,
        searchers: dict[str, SearchFn] | None = None,
        default_suffixes: dict[str, str] | None = None,
        timeout: float | None = None,
    ):
        self.cache = cache if cache is not None else SymbolCache()
        self._searchers: dict[str, SearchFn] = dict(searchers or {})
        self._suffixes = default_suffixes or setting("resolver", "default_suffix", {}) or {}
        self.timeout = timeout or float(setting("resolver", "timeout_seconds", 5))

    def register(self, provider: str, search: SearchFn) -> None:
        self._searchers[provider] = search

    def needs_search(self, market: str, provider: str) -> bool:
        return market in _MARKET_MARKERS and provider in self._searchers

    def resolve(self, code: str, market: str, provider: str) -> str:
        """Return the provider symbol for *code*.

        Raises the searcher's ``TransportError`` / ``FetchTimeout`` /
        ``RateLimitedError`` unchanged. Anything else the search reports
        (an error payload, an unreadable body, no usable match) falls back
        to ``code + default suffix``.
        """
        if not code or not self.needs_search(market, provider):
            return code

        cache = self.cache.scoped(provider)
        cached = cache.get(code)
        if cached:
            logger.debug("Symbol cache hit: %s/%s -> %s", provider, code, cached)
            return cached

        searched = True
        try:
            candidates = self._searchers[provider](code, self.timeout)
        except (SymbolNotFoundError, MalformedDataError) as e:
            logger.info("%s search for %s unusable: %s", provider, code, e)
            candidates, searched = [], False
        symbol = pick_best(code, candidates or [], market)
        if symbol is None:
            symbol = code + self._suffixes.get(provider, "")
            logger.info("No %s match for %s, guessing %s", provider, code, symbol)
        else:
            logger.info("Resolved %s/%s -> %s", provider, code, symbol)

        # A guess made without a usable search is not remembered
        if searched:
            cache.set(code, symbol)
        return symbol
