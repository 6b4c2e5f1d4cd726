"""Sub-score tables shared by both horizons.

Each scorer is total over its domain: values outside the table score 0.
"""

from __future__ import annotations

from entry_judge.models import PricePosition

MARKET_SCORES: dict[str, int] = {"good": 2, "normal": 0, "bad": -2}
FOCUS_SCORES: dict[int, int] = {1: -2, 2: -1, 3: 0, 4: 1, 5: 2}
TREND_SCORES: dict[str, int] = {"up": 3, "side": 0, "down": -3}
EARNINGS_SCORES: dict[str, int] = {"far": 1, "month": 0, "twoweeks": -1, "week": -3, "unknown": 0}
SECTOR_SCORES: dict[str, int] = {"strong": 2, "neutral": 0, "weak": -2}

# Price within 1% of the prior low / high counts as support / resistance
SUPPORT_BAND = 1.01
RESISTANCE_BAND = 0.99


def market_score(sentiment) -> int:
    return MARKET_SCORES.get(sentiment, 0)


def focus_score(focus) -> int:
    """Integral 1-5 only; bools, fractions and strings score 0."""
    if isinstance(focus, bool):
        return 0
    if isinstance(focus, float) and focus.is_integer():
        focus = int(focus)
    if not isinstance(focus, int):
        return 0
    return FOCUS_SCORES.get(focus, 0)


def trend_score(trend) -> int:
    return TREND_SCORES.get(trend, 0)


def earnings_score(earnings_prox) -> int:
    return EARNINGS_SCORES.get(earnings_prox, 0)


def sector_score(sector_mom) -> int:
    return SECTOR_SCORES.get(sector_mom, 0)


def price_position_score(current: float, prev_high: float, prev_low: float) -> tuple[int, PricePosition]:
    """Score the current price against the prior session's range.

    Breakouts are checked first; inside the range the bands are inclusive
    (``<=`` support, ``>=`` resistance) and support wins when both apply.
    """
    if current > prev_high:
        return -2, "above_high"
    if current < prev_low:
        return -3, "below_low"
    if current <= prev_low * SUPPORT_BAND:
        return 1, "near_support"
    if current >= prev_high * RESISTANCE_BAND:
        return -1, "near_resistance"
    return 0, "range"
