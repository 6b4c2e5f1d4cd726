"""Tests for entry_judge.resolver and the symbol cache backends."""

from unittest.mock import MagicMock

import pytest

from entry_judge.data_sources.alpha_vantage import AlphaVantageProvider
from entry_judge.errors import (
    FetchTimeout,
    MalformedDataError,
    RateLimitedError,
    SymbolNotFoundError,
)
from entry_judge.resolver import SymbolResolver, pick_best
from entry_judge.utils.cache import FileBackend, MemoryBackend, SymbolCache

from conftest import make_response


TOYOTA_MATCHES = [
    {"symbol": "TM", "region": "United States", "currency": "USD"},
    {"symbol": "7203.TYO", "region": "Japan/Tokyo", "currency": "JPY"},
    {"symbol": "7203.TOK", "region": "Japan", "currency": "JPY"},
]


# ---------------------------------------------------------------------------
# Candidate selection
# ---------------------------------------------------------------------------

class TestPickBest:

    def test_prefers_target_market_in_provider_order(self):
        assert pick_best("7203", TOYOTA_MATCHES, "jp") == "7203.TYO"

    def test_region_match_is_case_insensitive(self):
        cands = [{"symbol": "7203:JPX", "region": "JAPAN", "currency": ""}]
        assert pick_best("7203", cands, "jp") == "7203:JPX"

    def test_currency_alone_is_enough(self):
        cands = [{"symbol": "7203.X", "region": "", "currency": "jpy"}]
        assert pick_best("7203", cands, "jp") == "7203.X"

    def test_exact_code_beats_prefix_match(self):
        cands = [
            {"symbol": "72031.TYO", "region": "Japan", "currency": "JPY"},
            {"symbol": "7203.TYO", "region": "Japan", "currency": "JPY"},
        ]
        assert pick_best("7203", cands, "jp") == "7203.TYO"

    def test_no_market_match_returns_none(self):
        assert pick_best("7203", TOYOTA_MATCHES[:1], "jp") is None
        assert pick_best("7203", [], "jp") is None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class TestSymbolResolver:

    def _resolver(self, cache, search):
        return SymbolResolver(
            cache=cache,
            searchers={"alpha_vantage": search},
            default_suffixes={"alpha_vantage": ".TYO"},
            timeout=2,
        )

    def test_us_market_passes_through_without_search(self, memory_cache):
        search = MagicMock()
        resolver = self._resolver(memory_cache, search)
        assert resolver.resolve("AAPL", "us", "alpha_vantage") == "AAPL"
        search.assert_not_called()

    def test_provider_without_search_passes_through(self, memory_cache):
        search = MagicMock()
        resolver = self._resolver(memory_cache, search)
        assert resolver.resolve("7203.jp", "jp", "stooq") == "7203.jp"
        search.assert_not_called()

    def test_search_result_is_cached(self, memory_cache):
        search = MagicMock(return_value=TOYOTA_MATCHES)
        resolver = self._resolver(memory_cache, search)

        first = resolver.resolve("7203", "jp", "alpha_vantage")
        second = resolver.resolve("7203", "jp", "alpha_vantage")

        assert first == second == "7203.TYO"
        search.assert_called_once_with("7203", 2)
        assert memory_cache.scoped("alpha_vantage").get("7203") == "7203.TYO"

    def test_no_match_falls_back_to_default_suffix_and_caches(self, memory_cache):
        search = MagicMock(return_value=[])
        resolver = self._resolver(memory_cache, search)

        assert resolver.resolve("9999", "jp", "alpha_vantage") == "9999.TYO"
        assert resolver.resolve("9999", "jp", "alpha_vantage") == "9999.TYO"
        search.assert_called_once()

    def test_rate_limit_propagates_and_is_not_cached(self, memory_cache):
        search = MagicMock(side_effect=RateLimitedError("limit", "alpha_vantage"))
        resolver = self._resolver(memory_cache, search)

        with pytest.raises(RateLimitedError):
            resolver.resolve("7203", "jp", "alpha_vantage")
        assert memory_cache.scoped("alpha_vantage").get("7203") is None

    def test_timeout_propagates(self, memory_cache):
        search = MagicMock(side_effect=FetchTimeout("slow", "alpha_vantage"))
        resolver = self._resolver(memory_cache, search)
        with pytest.raises(FetchTimeout):
            resolver.resolve("7203", "jp", "alpha_vantage")

    @pytest.mark.parametrize("error", [
        SymbolNotFoundError("alpha_vantage: symbol not found", "alpha_vantage"),
        MalformedDataError("alpha_vantage: unexpected notice", "alpha_vantage"),
    ])
    def test_unusable_search_falls_back_to_suffix(self, memory_cache, error):
        search = MagicMock(side_effect=error)
        resolver = self._resolver(memory_cache, search)

        assert resolver.resolve("7203", "jp", "alpha_vantage") == "7203.TYO"
        # not cached, so a later search can still find the real symbol
        assert memory_cache.scoped("alpha_vantage").get("7203") is None

    def test_error_payload_from_real_search_falls_back(self, memory_cache, fake_session):
        fake_session.get.return_value = make_response(payload={"Error Message": "Invalid API call."})
        provider = AlphaVantageProvider(api_key="demo", session=fake_session)
        resolver = self._resolver(memory_cache, provider.search)

        assert resolver.resolve("7203", "jp", "alpha_vantage") == "7203.TYO"

    def test_cache_namespaces_are_per_provider(self, memory_cache):
        av = MagicMock(return_value=TOYOTA_MATCHES)
        td = MagicMock(return_value=[{"symbol": "7203:JPX", "region": "Japan", "currency": "JPY"}])
        resolver = SymbolResolver(cache=memory_cache, searchers={"alpha_vantage": av, "twelve_data": td})

        assert resolver.resolve("7203", "jp", "alpha_vantage") == "7203.TYO"
        assert resolver.resolve("7203", "jp", "twelve_data") == "7203:JPX"


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class TestBackends:

    def test_memory_backend_round_trip(self):
        backend = MemoryBackend()
        assert backend.get("k") is None
        backend.set("k", "v")
        assert backend.get("k") == "v"

    def test_file_backend_persists_across_instances(self, tmp_path):
        FileBackend(tmp_path).set("alpha_vantage:7203", "7203.TYO")
        assert FileBackend(tmp_path).get("alpha_vantage:7203") == "7203.TYO"

    def test_file_backend_miss(self, tmp_path):
        assert FileBackend(tmp_path).get("missing") is None

    def test_symbol_cache_scoped_shares_backend(self):
        backend = MemoryBackend()
        cache = SymbolCache(backend, "a")
        cache.scoped("b").set("X", "Y")
        assert cache.get("X") is None
        assert SymbolCache(backend, "b").get("X") == "Y"
