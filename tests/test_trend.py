"""Tests for trend and sentiment derivation."""

import math

import pytest

from entry_judge.analysis.trend import derive_sentiment, derive_trend, short_window
from entry_judge.models import UNAVAILABLE


class TestDeriveTrend:

    def test_rising_series_is_up(self, rising_closes):
        assert derive_trend(rising_closes) == "up"

    def test_falling_series_is_down(self, falling_closes):
        assert derive_trend(falling_closes) == "down"

    def test_flat_series_is_side(self):
        assert derive_trend([100.0] * 30) == "side"

    def test_pullback_in_uptrend_is_side(self, rising_closes):
        # last close drops under the short MA
        assert derive_trend(rising_closes + [120.0]) == "side"

    def test_too_short_is_unavailable(self):
        assert derive_trend([1.0, 2.0, 3.0]) == UNAVAILABLE
        assert derive_trend([]) == UNAVAILABLE
        assert derive_trend(None) == UNAVAILABLE

    def test_non_finite_values_are_dropped(self, rising_closes):
        noisy = rising_closes[:20] + [math.nan, None, "x"] + rising_closes[20:]
        assert derive_trend(noisy) == "up"

    @pytest.mark.parametrize("n, expected", [(8, 5), (40, 10), (60, 15), (200, 25)])
    def test_short_window_is_clamped(self, n, expected):
        assert short_window(n) == expected


class TestDeriveSentiment:

    def test_rising_index_is_good(self, rising_closes):
        assert derive_sentiment(rising_closes) == "good"

    def test_falling_index_is_bad(self, falling_closes):
        assert derive_sentiment(falling_closes) == "bad"

    def test_small_move_is_normal(self):
        assert derive_sentiment([100.0] * 30 + [100.5]) == "normal"

    def test_disagreeing_horizons_are_normal(self):
        # down over 20 sessions, up sharply over the last 5
        closes = [200.0 - i * 4 for i in range(25)] + [110.0, 112.0, 115.0, 118.0, 121.0]
        assert derive_sentiment(closes) == "normal"

    def test_short_history_uses_available_lookback(self):
        assert derive_sentiment([100, 101, 102, 103, 104, 110]) == "good"

    def test_too_short_is_unavailable(self):
        assert derive_sentiment([100, 101, 102, 103, 104]) == UNAVAILABLE
        assert derive_sentiment(None) == UNAVAILABLE
