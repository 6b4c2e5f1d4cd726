"""Tests for the race / settle_all combinators."""

import time

import pytest

from entry_judge.data_sources.race import Attempt, race, settle_all
from entry_judge.errors import (
    AggregateFetchError,
    FetchTimeout,
    MalformedDataError,
    RateLimitedError,
    SymbolNotFoundError,
    TransportError,
)


def ok(value, delay=0.0):
    def fn(timeout):
        if delay:
            time.sleep(delay)
        return value
    return fn


def fail(error, delay=0.0):
    def fn(timeout):
        if delay:
            time.sleep(delay)
        raise error
    return fn


class TestRace:

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_single_success_wins_at_any_position(self, position):
        attempts = [Attempt(f"bad{i}", fail(TransportError("down"))) for i in range(3)]
        attempts[position] = Attempt("good", ok("value"))
        result = race(attempts)
        assert result.name == "good"
        assert result.value == "value"

    def test_faster_success_wins(self):
        result = race([
            Attempt("slow", ok("slow", delay=0.3)),
            Attempt("fast", ok("fast")),
        ])
        assert result.name == "fast"

    def test_failure_does_not_stop_the_race(self):
        result = race([
            Attempt("broken", fail(MalformedDataError("bad json"))),
            Attempt("late", ok(42, delay=0.1)),
        ])
        assert result.value == 42

    def test_all_failed_raises_aggregate(self):
        with pytest.raises(AggregateFetchError) as exc_info:
            race([
                Attempt("a", fail(TransportError("a down"))),
                Attempt("b", fail(RateLimitedError("b quota"))),
            ])
        assert len(exc_info.value.errors) == 2
        assert [e.kind for e in exc_info.value.errors] == ["rate_limited", "transport"]

    def test_symbol_not_found_message_is_preferred(self):
        with pytest.raises(AggregateFetchError, match="unknown symbol"):
            race([
                Attempt("a", fail(TransportError("connection reset"))),
                Attempt("b", fail(RateLimitedError("quota"))),
                Attempt("c", fail(SymbolNotFoundError("unknown symbol"))),
            ])

    def test_equal_rank_keeps_attempt_order(self):
        with pytest.raises(AggregateFetchError) as exc_info:
            race([
                Attempt("first", fail(TransportError("first down"), delay=0.1)),
                Attempt("second", fail(TransportError("second down"))),
            ])
        assert str(exc_info.value) == "first down"

    def test_attempt_past_deadline_times_out(self):
        start = time.monotonic()
        with pytest.raises(AggregateFetchError) as exc_info:
            race([Attempt("hang", ok("never", delay=1.0), timeout=0.05)])
        assert time.monotonic() - start < 0.8
        assert isinstance(exc_info.value.primary, FetchTimeout)

    def test_timeout_is_passed_to_fn(self):
        seen = []

        def fn(timeout):
            seen.append(timeout)
            return True

        race([Attempt("x", fn, timeout=3.5)])
        assert seen == [3.5]

    def test_unexpected_exception_is_wrapped(self):
        with pytest.raises(AggregateFetchError) as exc_info:
            race([Attempt("boom", fail(KeyError("missing")))])
        assert isinstance(exc_info.value.primary, TransportError)
        assert exc_info.value.primary.provider == "boom"

    def test_no_attempts(self):
        with pytest.raises(AggregateFetchError, match="no data source configured"):
            race([])


class TestSettleAll:

    def test_reports_every_outcome(self):
        results = settle_all([
            Attempt("good", ok([1.0, 2.0])),
            Attempt("bad", fail(SymbolNotFoundError("nope"))),
        ])
        assert results["good"] == [1.0, 2.0]
        assert isinstance(results["bad"], SymbolNotFoundError)

    def test_waits_for_slower_success(self):
        results = settle_all([
            Attempt("fast", ok(1)),
            Attempt("slow", ok(2, delay=0.2)),
        ])
        assert results == {"fast": 1, "slow": 2}

    def test_expired_attempt_is_timeout(self):
        results = settle_all([
            Attempt("fast", ok(1)),
            Attempt("hang", ok(2, delay=1.0), timeout=0.05),
        ])
        assert results["fast"] == 1
        assert isinstance(results["hang"], FetchTimeout)

    def test_empty(self):
        assert settle_all([]) == {}
