"""Coarse trend and market-sentiment classification from close series.

Window sizes and thresholds come from ``derivation`` in settings.yaml. They
are heuristics carried over unchanged and are meant to be tuned.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from entry_judge.config import setting
from entry_judge.models import UNAVAILABLE


def _cfg(key: str, default):
    return setting("derivation", key, default)


def _clean(closes: Sequence[float] | None) -> np.ndarray:
    if not closes:
        return np.array([], dtype=float)
    values = []
    for v in closes:
        try:
            f = float(v)
        except (TypeError, ValueError):
            continue
        if math.isfinite(f):
            values.append(f)
    return np.array(values, dtype=float)


def short_window(n: int) -> int:
    """Short MA window: a fraction of the history, clamped."""
    fraction = float(_cfg("trend_short_fraction", 0.25))
    lo = int(_cfg("trend_short_min", 5))
    hi = int(_cfg("trend_short_max", 25))
    return max(lo, min(hi, int(round(n * fraction))))


def derive_trend(closes: Sequence[float] | None) -> str:
    """Classify as "up" / "side" / "down", or "unavailable" if too short.

    up:   last > short MA > long MA
    down: last < short MA < long MA
    The long MA spans the whole series.
    """
    arr = _clean(closes)
    if len(arr) < int(_cfg("trend_min_closes", 10)):
        return UNAVAILABLE

    window = min(short_window(len(arr)), len(arr))
    last = float(arr[-1])
    short_ma = float(np.mean(arr[-window:]))
    long_ma = float(np.mean(arr))

    if last > short_ma > long_ma:
        return "up"
    if last < short_ma < long_ma:
        return "down"
    return "side"


def pct_change(arr: np.ndarray, lookback: int) -> float:
    base = float(arr[-1 - lookback])
    if base == 0:
        return 0.0
    return (float(arr[-1]) - base) / base * 100


def derive_sentiment(index_closes: Sequence[float] | None) -> str:
    """Classify index momentum as "good" / "normal" / "bad".

    Short change over ~5 sessions and medium change over ~20 sessions
    (clamped to the available history) must agree in sign, and the short
    change must clear the threshold.
    """
    arr = _clean(index_closes)
    if len(arr) < int(_cfg("sentiment_min_closes", 6)):
        return UNAVAILABLE

    short_lb = min(int(_cfg("sentiment_short_lookback", 5)), len(arr) - 1)
    long_lb = min(int(_cfg("sentiment_long_lookback", 20)), len(arr) - 1)
    threshold = float(_cfg("sentiment_threshold_pct", 1.0))

    short_chg = pct_change(arr, short_lb)
    long_chg = pct_change(arr, long_lb)

    if short_chg > 0 and long_chg > 0 and short_chg > threshold:
        return "good"
    if short_chg < 0 and long_chg < 0 and short_chg < -threshold:
        return "bad"
    return "normal"
