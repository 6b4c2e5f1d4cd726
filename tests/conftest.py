"""Shared pytest fixtures for the Entry Judge test suite.

Everything here is synthetic; no test touches the network.
"""

import json
from unittest.mock import MagicMock

import pytest

from entry_judge.data_sources.base import BaseProvider
from entry_judge.errors import FetchError
from entry_judge.models import StockSnapshot
from entry_judge.utils.cache import MemoryBackend, SymbolCache


# ---------------------------------------------------------------------------
# 1. HTTP fakes
# ---------------------------------------------------------------------------

def make_response(status=200, payload=None, text=None):
    """A stand-in for ``requests.Response``."""
    resp = MagicMock()
    resp.status_code = status
    if payload is not None:
        resp.json.return_value = payload
        resp.text = json.dumps(payload)
    else:
        resp.json.side_effect = ValueError("not json")
        resp.text = text or ""
    return resp


@pytest.fixture
def fake_session():
    """Session whose ``get`` returns whatever the test queues up."""
    session = MagicMock()
    session.get.return_value = make_response(payload={})
    return session


# ---------------------------------------------------------------------------
# 2. Cache
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_cache():
    return SymbolCache(MemoryBackend())


# ---------------------------------------------------------------------------
# 3. Close series
# ---------------------------------------------------------------------------

@pytest.fixture
def rising_closes():
    """40 steadily rising closes (100 -> 139)."""
    return [100.0 + i for i in range(40)]


@pytest.fixture
def falling_closes():
    """40 steadily falling closes (140 -> 101)."""
    return [140.0 - i for i in range(40)]


# ---------------------------------------------------------------------------
# 4. Scriptable provider
# ---------------------------------------------------------------------------

class ScriptedProvider(BaseProvider):
    """Provider returning canned values or raising canned errors."""

    def __init__(self, kind="stooq", label=None, snapshot=None, history=None, delay=0.0):
        super().__init__()
        self._kind = kind
        self._label = label or kind
        self.snapshot = snapshot
        self.history = history
        self.delay = delay
        self.snapshot_calls = []
        self.history_calls = []

    @property
    def name(self):
        return self._kind

    @property
    def label(self):
        return self._label

    def _play(self, outcome):
        if self.delay:
            import time
            time.sleep(self.delay)
        if isinstance(outcome, FetchError):
            raise outcome
        return outcome

    def fetch_snapshot(self, symbol, timeout):
        self.snapshot_calls.append(symbol)
        return self._play(self.snapshot)

    def fetch_history(self, symbol, timeout):
        self.history_calls.append(symbol)
        return self._play(self.history)


@pytest.fixture
def snapshot():
    return StockSnapshot(
        prev_high=110.0,
        prev_low=100.0,
        volume=12000.0,
        date="2024-01-05",
        closes=[101.0, 103.0, 105.0],
        long_name="Example Corp",
        current_price=105.0,
        source="stooq",
    )
