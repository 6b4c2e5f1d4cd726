"""Error taxonomy shared by adapters, the resolver and the race orchestrator.

Adapters never leak ``requests`` exceptions or raw provider payloads; every
failure leaving an adapter is one of the ``FetchError`` subclasses below.
"""

from __future__ import annotations

# Aggregate message priority: lower rank wins
RANK_USER_ACTIONABLE = 0
RANK_PROVIDER = 1
RANK_GENERIC = 2


class FetchError(Exception):
    """Base class for every classified data-acquisition failure."""

    rank = RANK_GENERIC
    kind = "fetch"

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        return self.message


class TransportError(FetchError):
    """Network failure, non-2xx HTTP status, or relay failure."""

    kind = "transport"


class FetchTimeout(FetchError):
    """The attempt exceeded its own deadline."""

    kind = "timeout"


class RateLimitedError(FetchError):
    """Provider-specific quota signal."""

    rank = RANK_PROVIDER
    kind = "rate_limited"


class MalformedDataError(FetchError):
    """Response parsed but lacks required fields."""

    rank = RANK_PROVIDER
    kind = "malformed"


class SymbolNotFoundError(FetchError):
    """Provider explicitly reports the symbol as unknown."""

    rank = RANK_USER_ACTIONABLE
    kind = "symbol_not_found"


class AggregateFetchError(FetchError):
    """Every attempt in a race failed.

    ``errors`` holds the underlying failures ranked most-specific first;
    ties keep attempt order. The message is the top-ranked
    error's message.
    """

    kind = "aggregate"

    def __init__(self, errors: list[FetchError], message: str | None = None):
        self.errors = rank_errors(errors)
        if message is None:
            message = self.errors[0].message if self.errors else "all data sources failed"
        super().__init__(message)

    @property
    def primary(self) -> FetchError | None:
        return self.errors[0] if self.errors else None


def rank_errors(errors: list[FetchError]) -> list[FetchError]:
    """Sort by rank, stable so the first attempt wins among equals."""
    return sorted(errors, key=lambda e: getattr(e, "rank", RANK_GENERIC))


def classify_exception(exc: BaseException, provider: str | None = None) -> FetchError:
    """Wrap an unexpected exception so aggregates stay well-formed."""
    if isinstance(exc, FetchError):
        return exc
    return TransportError(f"{type(exc).__name__}: {exc}", provider=provider)
