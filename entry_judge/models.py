"""Records passed between the fetch layer, the decision engine and callers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Literal

Market = Literal["jp", "us"]
Horizon = Literal["short", "mid"]
Sentiment = Literal["good", "normal", "bad"]
Trend = Literal["up", "side", "down"]
EarningsProximity = Literal["far", "month", "twoweeks", "week", "unknown"]
SectorMomentum = Literal["strong", "neutral", "weak"]
SignalType = Literal["ok", "watch", "ng"]
SizeType = Literal["large", "medium", "small", "pass"]
WarningLevel = Literal["critical", "warning"]
PricePosition = Literal["above_high", "below_low", "near_support", "near_resistance", "range"]

UNAVAILABLE = "unavailable"


# ---------------------------------------------------------------------------
# Fetch side
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StockSnapshot:
    """Minimal OHLCV-derived record for one ticker."""

    prev_high: float
    prev_low: float
    volume: float | None
    date: str
    closes: tuple[float, ...] = ()
    long_name: str | None = None
    current_price: float | None = None
    source: str | None = None

    def __post_init__(self):
        # Accept any iterable for closes but store it immutably
        object.__setattr__(self, "closes", tuple(self.closes))

    @property
    def last_price(self) -> float | None:
        """Provider's latest price, falling back to the last close."""
        if self.current_price:
            return self.current_price
        return self.closes[-1] if self.closes else None


@dataclass
class FetchedStock:
    """Result of the two-phase fetch."""

    snapshot: StockSnapshot
    symbol: str
    trend: str = UNAVAILABLE
    sentiment: str = UNAVAILABLE

    @property
    def long_name(self) -> str | None:
        return self.snapshot.long_name

    def to_dict(self) -> dict:
        data = asdict(self.snapshot)
        data["closes"] = list(self.snapshot.closes)
        return {
            "symbol": self.symbol,
            "long_name": self.long_name,
            "trend": self.trend,
            "sentiment": self.sentiment,
            "snapshot": data,
        }


# ---------------------------------------------------------------------------
# Decision side
# ---------------------------------------------------------------------------

@dataclass
class AnalysisInputs:
    """User-supplied values common to both horizons.

    Range checks (positivity, prev_low <= prev_high, focus in 1..5) are the
    caller's responsibility.
    """

    horizon: ClassVar[str] = "short"

    current_price: float
    prev_high: float
    prev_low: float
    market: Market = "jp"
    focus: int = 3
    sentiment: Sentiment = "normal"
    volume: float | None = None
    ticker: str = ""


@dataclass
class ShortInputs(AnalysisInputs):
    horizon: ClassVar[str] = "short"


@dataclass
class MidInputs(AnalysisInputs):
    horizon: ClassVar[str] = "mid"

    trend: Trend = "side"
    earnings_prox: EarningsProximity = "unknown"
    sector_mom: SectorMomentum = "neutral"
    target_price: float | None = None


@dataclass(frozen=True)
class EntrySignal:
    signal: SignalType
    label: str
    reason: str


@dataclass(frozen=True)
class PositionSize:
    size: SizeType
    label: str
    reason: str


@dataclass(frozen=True)
class RiskWarning:
    level: WarningLevel
    message: str


@dataclass
class AnalysisResult:
    horizon: Horizon
    ticker: str
    market: Market
    breakdown: dict[str, int]
    price_position: PricePosition
    entry_signal: EntrySignal
    stop_loss: float
    loss_percent: float
    position_size: PositionSize
    warnings: list[RiskWarning] = field(default_factory=list)
    risk_reward: float | None = None

    @property
    def total_score(self) -> int:
        return sum(self.breakdown.values())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["total_score"] = self.total_score
        return data
