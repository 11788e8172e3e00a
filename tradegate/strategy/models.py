"""Strategy data models — typed representations for indicators and zones."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar for strategy consumption."""

    time: int  # unix seconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class AdxResult:
    """ADX with the directional indicators from the last smoothed bar."""

    adx: float
    plus_di: float
    minus_di: float


@dataclass(frozen=True)
class SwingPoint:
    """A confirmed local extreme."""

    price: float
    index: int
    move_percent: float
    time: int


@dataclass(frozen=True)
class Level:
    """A candidate price level before clustering."""

    kind: str  # "EMA", "SUPPORT" or "RESISTANCE"
    timeframe: str
    price: float
    distance: float  # % from current price
    label: str
    strength: int
    tests: int = 0
    period: Optional[int] = None
    last_test: Optional[int] = None


@dataclass(frozen=True)
class Station:
    """A clustered support/resistance zone with a 0-10 quality score."""

    price: float
    zone_type: str  # "SUPPORT", "RESISTANCE" or "PIVOT"
    quality: int
    factors: tuple[str, ...]
    timeframes: tuple[str, ...]
    tests: int
    distance: float
    factor_count: int = 1
    strength: int = 1

    @property
    def label(self) -> str:
        """Title-cased zone type, e.g. ``"Support"``."""
        return self.zone_type.capitalize()


@dataclass(frozen=True)
class TradeEvaluation:
    """How well a trade direction fits the nearest station."""

    suitable: bool
    reason: str
    risk_adjustment: int


@dataclass(frozen=True)
class StationSummary:
    total_stations: int
    within_1_percent: int
    within_2_percent: int
    strong_stations: int


@dataclass(frozen=True)
class StationAnalysis:
    """Full station report for one price and candle set."""

    available: bool
    reason: str = ""
    current_price: Optional[float] = None
    at_station: bool = False
    nearest_station: Optional[Station] = None
    all_stations: tuple[Station, ...] = ()
    trade_evaluation: Optional[TradeEvaluation] = None
    summary: Optional[StationSummary] = None


@dataclass(frozen=True)
class CandlePattern:
    """A recognised candlestick pattern on the most recent candles."""

    name: str
    candles: int
    direction: str  # "bullish", "bearish" or "neutral"
    meaning: str
    strength: str  # "strong", "moderate" or "weak"


@dataclass(frozen=True)
class VolumeSignal:
    """Classification of the latest candle's volume behaviour."""

    signal: str
    detail: str
    actionable: str


@dataclass(frozen=True)
class PatternEvaluation:
    """Candle patterns judged against a trade bias.

    When ``passed`` is false, the remaining fields describe the strongest
    conflicting pattern.
    """

    passed: bool
    label: Optional[str] = None
    name: str = ""
    meaning: str = ""
    severity: str = ""
    risk_score: int = 0
    all_conflicts: tuple[str, ...] = ()
