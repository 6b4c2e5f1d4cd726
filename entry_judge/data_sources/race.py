"""Race / settle combinators over independent fetch attempts.

``race`` returns the first attempt to succeed; ``settle_all`` waits for
every attempt and reports each outcome. Both give every attempt its own
deadline: once an attempt passes it, it is recorded as ``FetchTimeout`` and
no longer waited on. Losing and timed-out attempts keep running on their
worker thread until their own HTTP timeout fires; their results are
discarded.
"""

from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable

from entry_judge.config import setting
from entry_judge.errors import AggregateFetchError, FetchError, FetchTimeout, classify_exception
from entry_judge.utils.logger import setup_logger

logger = setup_logger("race")


@dataclass
class Attempt:
    """One independent operation; ``fn(timeout)`` must respect *timeout*."""

    name: str
    fn: Callable[[float], Any]
    timeout: float = 8.0


@dataclass
class RaceResult:
    name: str
    value: Any
    elapsed: float


def _default_workers(n: int) -> int:
    return max(1, min(n, int(setting("http", "max_workers", 8))))


def _start(executor: ThreadPoolExecutor, attempts: list[Attempt]):
    start = time.monotonic()
    pending: dict[Future, tuple[Attempt, float]] = {}
    for attempt in attempts:
        future = executor.submit(attempt.fn, attempt.timeout)
        pending[future] = (attempt, start + attempt.timeout)
    return start, pending


def _expire(pending: dict, now: float) -> list[tuple[Attempt, FetchTimeout]]:
    """Drop attempts past their deadline that have not finished."""
    expired = []
    for future, (attempt, deadline) in list(pending.items()):
        if now >= deadline and not future.done():
            del pending[future]
            expired.append((
                attempt,
                FetchTimeout(f"{attempt.name}: timed out after {attempt.timeout:g}s", attempt.name),
            ))
    return expired


def _outcome(future: Future, attempt: Attempt):
    """Return (value, None) or (None, FetchError)."""
    try:
        return future.result(), None
    except Exception as exc:
        return None, classify_exception(exc, attempt.name)


def race(attempts: list[Attempt], max_workers: int | None = None) -> RaceResult:
    """Run *attempts* concurrently; return the first success.

    Raises:
        AggregateFetchError: every attempt failed or timed out. Its message
            is the most specific underlying error (see ``rank_errors``).
    """
    if not attempts:
        raise AggregateFetchError([], "no data source configured")

    order = {id(a): i for i, a in enumerate(attempts)}
    failures: list[tuple[Attempt, FetchError]] = []
    executor = ThreadPoolExecutor(max_workers=max_workers or _default_workers(len(attempts)))
    try:
        start, pending = _start(executor, attempts)
        while pending:
            nearest = min(deadline for _, deadline in pending.values())
            done, _ = wait(
                list(pending), timeout=max(0.0, nearest - time.monotonic()),
                return_when=FIRST_COMPLETED,
            )
            for future in done:
                attempt, _ = pending.pop(future)
                value, error = _outcome(future, attempt)
                if error is None:
                    elapsed = time.monotonic() - start
                    logger.info("Race won by %s in %.2fs", attempt.name, elapsed)
                    return RaceResult(attempt.name, value, elapsed)
                logger.debug("Attempt %s failed (%s): %s", attempt.name, error.kind, error)
                failures.append((attempt, error))
            failures.extend(_expire(pending, time.monotonic()))
    finally:
        # Losers are not awaited
        executor.shutdown(wait=False)

    failures.sort(key=lambda item: order[id(item[0])])
    aggregate = AggregateFetchError([err for _, err in failures])
    logger.warning("All %d attempts failed: %s", len(attempts), aggregate)
    raise aggregate


def settle_all(attempts: list[Attempt], max_workers: int | None = None) -> dict[str, Any]:
    """Wait for every attempt; map name -> value or ``FetchError``. Never raises."""
    results: dict[str, Any] = {}
    if not attempts:
        return results

    executor = ThreadPoolExecutor(max_workers=max_workers or _default_workers(len(attempts)))
    try:
        _, pending = _start(executor, attempts)
        while pending:
            nearest = min(deadline for _, deadline in pending.values())
            done, _ = wait(
                list(pending), timeout=max(0.0, nearest - time.monotonic()),
                return_when=FIRST_COMPLETED,
            )
            for future in done:
                attempt, _ = pending.pop(future)
                value, error = _outcome(future, attempt)
                results[attempt.name] = value if error is None else error
            for attempt, error in _expire(pending, time.monotonic()):
                results[attempt.name] = error
    finally:
        executor.shutdown(wait=False)

    return results
