"""Trade context — the frozen snapshot every agent check reads.

Built once per evaluation request by the orchestrator.  Optional per-agent
market data (``structure``, ``pattern``, ``station``, ``oi``) is ``None``
when that agent was not requested or its data could not be fetched.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Optional

from tradegate.strategy.bias import is_swing, trade_bias
from tradegate.strategy.models import CandleData

OPEN_ORDER_STATUSES = frozenset({"OPEN", "TRIGGER PENDING", "AMO REQ RECEIVED"})


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class OrderInfo:
    """The proposed order being evaluated."""

    symbol: str
    transaction_type: str
    exchange: str = "NSE"
    instrument_type: str = "EQ"
    spot_price: Optional[float] = None
    product_type: str = "MIS"

    @property
    def trade_bias(self) -> str:
        return trade_bias(self.instrument_type, self.transaction_type)

    @property
    def is_swing(self) -> bool:
        return is_swing(self.product_type)

    @classmethod
    def from_request(cls, body: dict) -> "OrderInfo":
        """Build from a camelCase request body.  ``symbol`` and ``transactionType`` must be present."""
        return cls(
            symbol=str(body["symbol"]).upper(),
            transaction_type=str(body["transactionType"]).upper(),
            exchange=str(body.get("exchange") or "NSE").upper(),
            instrument_type=str(body.get("instrumentType") or "EQ").upper(),
            spot_price=_float_or_none(body.get("spotPrice")),
            product_type=str(body.get("productType") or "MIS").upper(),
        )


# ── Account snapshots ────────────────────────────────────────────────────


@dataclass(frozen=True)
class Position:
    tradingsymbol: str
    quantity: int
    pnl: float = 0.0
    exchange: str = ""
    product: str = ""


@dataclass(frozen=True)
class OpenOrder:
    tradingsymbol: str
    status: str
    transaction_type: str = ""
    quantity: int = 0


@dataclass(frozen=True)
class PositionsSnapshot:
    """Open (non-zero quantity) positions plus the one matching the order symbol."""

    all: tuple[Position, ...] = ()
    same_symbol: Optional[Position] = None

    @property
    def count(self) -> int:
        return len(self.all)

    @classmethod
    def for_symbol(cls, positions: list[Position], symbol: str) -> "PositionsSnapshot":
        open_positions = tuple(p for p in positions if p.quantity != 0)
        upper = symbol.upper()
        # Option and future symbols start with the underlying, e.g. NIFTY24...
        same = next(
            (
                p for p in open_positions
                if p.tradingsymbol.upper() == upper or p.tradingsymbol.upper().startswith(upper)
            ),
            None,
        )
        return cls(all=open_positions, same_symbol=same)

    def to_dict(self) -> dict:
        return {
            "all": [asdict(p) for p in self.all],
            "count": self.count,
            "sameSymbol": asdict(self.same_symbol) if self.same_symbol else None,
        }


@dataclass(frozen=True)
class OrdersSnapshot:
    open: tuple[OpenOrder, ...] = ()

    @property
    def open_count(self) -> int:
        return len(self.open)

    @classmethod
    def from_orders(cls, orders: list[OpenOrder]) -> "OrdersSnapshot":
        return cls(open=tuple(o for o in orders if o.status.upper() in OPEN_ORDER_STATUSES))

    def to_dict(self) -> dict:
        return {"open": [asdict(o) for o in self.open], "openCount": self.open_count}


# ── Market summaries ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Sentiment:
    overall_bias: str = "NEUTRAL"
    intraday_bias: str = "NEUTRAL"
    overall_score: float = 50.0
    intraday_score: float = 50.0

    def to_dict(self) -> dict:
        return {
            "overallBias": self.overall_bias,
            "intradayBias": self.intraday_bias,
            "overallScore": self.overall_score,
            "intradayScore": self.intraday_score,
        }


@dataclass(frozen=True)
class SectorSnapshot:
    name: Optional[str] = None
    change: Optional[float] = None
    bias: str = "NEUTRAL"

    def to_dict(self) -> dict:
        return {"name": self.name, "change": self.change, "bias": self.bias}


@dataclass(frozen=True)
class MarketBreadth:
    advances: int
    declines: int


@dataclass(frozen=True)
class MarketActivity:
    activity: str
    description: str = ""
    actionable: str = ""


# ── Per-agent market data ────────────────────────────────────────────────


@dataclass(frozen=True)
class StructureData:
    candles_15m: tuple[CandleData, ...] = ()
    candles_daily: tuple[CandleData, ...] = ()
    candles_weekly: tuple[CandleData, ...] = ()
    benchmark_daily: tuple[CandleData, ...] = ()
    breadth: Optional[MarketBreadth] = None


@dataclass(frozen=True)
class PatternData:
    candles_15m: tuple[CandleData, ...] = ()
    candles_daily: tuple[CandleData, ...] = ()


@dataclass(frozen=True)
class StationData:
    candles_15m: tuple[CandleData, ...] = ()
    candles_daily: tuple[CandleData, ...] = ()


@dataclass(frozen=True)
class OIData:
    """Option-chain summary for an index underlying."""

    spot_price: Optional[float] = None
    pcr: Optional[float] = None
    support: Optional[float] = None
    support_oi: Optional[float] = None
    resistance: Optional[float] = None
    resistance_oi: Optional[float] = None
    max_pain: Optional[float] = None
    expiry: Optional[date] = None
    market_activity: Optional[MarketActivity] = None


@dataclass(frozen=True)
class TradeContext:
    """Read-only input shared by every check of every agent."""

    order: OrderInfo
    positions: PositionsSnapshot = PositionsSnapshot()
    orders: OrdersSnapshot = OrdersSnapshot()
    sentiment: Sentiment = Sentiment()
    sector: SectorSnapshot = SectorSnapshot()
    vix: Optional[float] = None
    structure: Optional[StructureData] = None
    pattern: Optional[PatternData] = None
    station: Optional[StationData] = None
    oi: Optional[OIData] = None
    as_of: int = 0  # unix seconds the context was built at
    utc_offset_minutes: int = 330
