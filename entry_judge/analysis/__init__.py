"""Pure scoring: sub-scores, trend/sentiment derivation, entry decisions."""

from .decision import analyze
from .trend import derive_sentiment, derive_trend
