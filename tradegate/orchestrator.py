"""Order intelligence — fan out to collaborators, build one context, run agents.

Every collaborator call is isolated: a failed fetch is logged and only
degrades its own field (neutral default, or ``unavailable`` for the agent
that needed it).  The agents themselves are synchronous and run on the
frozen :class:`TradeContext` built once per request.
"""

import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from tradegate.agents.base import AgentResult, unavailable_result
from tradegate.agents.behavioral import run_behavioral_agent
from tradegate.agents.context import (
    OrderInfo,
    OrdersSnapshot,
    PatternData,
    PositionsSnapshot,
    SectorSnapshot,
    Sentiment,
    StationData,
    StructureData,
    TradeContext,
)
from tradegate.agents.oi import run_oi_agent, supports_oi
from tradegate.agents.pattern import run_pattern_agent
from tradegate.agents.station import run_station_agent
from tradegate.agents.structure import run_structure_agent

logger = logging.getLogger("tradegate")

# Calendar-day lookbacks per Kite interval
LOOKBACK_DAYS = {
    "15minute": 10,
    "day": 400,
    "week": 3 * 365,
}

REQUIRED_FIELDS = ("symbol", "transactionType")


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def missing_fields(request: dict) -> list[str]:
    """Return the required request fields that are absent or empty."""
    return [f for f in REQUIRED_FIELDS if not request.get(f)]


class OrderIntelligence:
    """Evaluate a proposed order against account state and market structure.

    Args:
        broker: a ``KiteClient`` (or duck-type) providing ``list_positions``,
            ``list_orders``, ``resolve_token`` and ``fetch_candles``.
        market_data: a ``MarketDataClient`` (or duck-type).
        utc_offset_minutes: exchange-local offset used for sessions and expiry.
        benchmark_symbol: index the relative-strength check compares against.
        clock: returns the current unix time in seconds.
    """

    def __init__(
        self,
        broker,
        market_data,
        utc_offset_minutes: int = 330,
        benchmark_symbol: str = "NIFTY",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._broker = broker
        self._market_data = market_data
        self._utc_offset_minutes = utc_offset_minutes
        self._benchmark_symbol = benchmark_symbol.upper()
        self._clock = clock

    # ── Collaborator fetches ─────────────────────────────────────────────

    def _local_now(self, now: int) -> datetime:
        local = datetime.fromtimestamp(now + self._utc_offset_minutes * 60, tz=timezone.utc)
        return local.replace(tzinfo=None)

    async def _fetch_series(self, symbol: str, intervals: tuple[str, ...], now: int) -> dict:
        token = await self._broker.resolve_token(symbol)
        if token is None:
            raise LookupError(f"No instrument token for {symbol}")
        end = self._local_now(now)
        series = await asyncio.gather(*(
            self._broker.fetch_candles(token, interval, end - timedelta(days=LOOKBACK_DAYS[interval]), end)
            for interval in intervals
        ))
        return {interval: tuple(candles) for interval, candles in zip(intervals, series)}

    async def _collect(self, order: OrderInfo, flags: dict, now: int) -> dict:
        tasks: dict[str, Any] = {
            "positions": self._broker.list_positions(),
            "orders": self._broker.list_orders(),
            "sentiment": self._market_data.fetch_sentiment(),
            "sector": self._market_data.fetch_sector(order.symbol),
            "vix": self._market_data.fetch_vix(),
        }

        swing_structure = flags["structure"] and order.is_swing
        if flags["structure"] or flags["pattern"] or flags["station"]:
            intervals = ("15minute", "day", "week") if swing_structure else ("15minute", "day")
            tasks["candles"] = self._fetch_series(order.symbol, intervals, now)
        if flags["structure"]:
            tasks["breadth"] = self._market_data.fetch_breadth()
        if swing_structure:
            tasks["benchmark"] = self._fetch_series(self._benchmark_symbol, ("day",), now)
        if flags["oi"] and supports_oi(order.symbol):
            tasks["oi"] = self._market_data.fetch_oi(order.symbol)

        names = list(tasks)
        results = await asyncio.gather(*tasks.values(), return_exceptions=True)

        fetched: dict[str, Any] = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Order intelligence: %s fetch failed for %s: %s",
                    name, order.symbol, result,
                )
                continue
            fetched[name] = result
        return fetched

    # ── Context ──────────────────────────────────────────────────────────

    def _build_context(self, order: OrderInfo, flags: dict, fetched: dict, now: int) -> TradeContext:
        candles = fetched.get("candles")
        c15 = candles.get("15minute", ()) if candles else ()
        daily = candles.get("day", ()) if candles else ()

        # Fall back to the last traded close when the caller sent no spot price
        if order.spot_price is None and c15:
            order = replace(order, spot_price=c15[-1].close)

        structure = None
        if flags["structure"] and candles is not None:
            benchmark = fetched.get("benchmark") or {}
            structure = StructureData(
                candles_15m=c15,
                candles_daily=daily,
                candles_weekly=candles.get("week", ()),
                benchmark_daily=benchmark.get("day", ()),
                breadth=fetched.get("breadth"),
            )

        return TradeContext(
            order=order,
            positions=PositionsSnapshot.for_symbol(fetched.get("positions") or [], order.symbol),
            orders=OrdersSnapshot.from_orders(fetched.get("orders") or []),
            sentiment=fetched.get("sentiment") or Sentiment(),
            sector=fetched.get("sector") or SectorSnapshot(),
            vix=fetched.get("vix"),
            structure=structure,
            pattern=PatternData(c15, daily) if flags["pattern"] and candles is not None else None,
            station=StationData(c15, daily) if flags["station"] and candles is not None else None,
            oi=fetched.get("oi") if flags["oi"] else None,
            as_of=now,
            utc_offset_minutes=self._utc_offset_minutes,
        )

    @staticmethod
    def _run_agent(name: str, agent: Callable[[TradeContext], AgentResult], ctx: TradeContext) -> AgentResult:
        try:
            return agent(ctx)
        except Exception:
            logger.warning("Order intelligence: %s agent failed", name, exc_info=True)
            return unavailable_result()

    # ── Public API ───────────────────────────────────────────────────────

    async def evaluate(self, request: dict) -> dict:
        """Evaluate *request* and return the combined order-intelligence payload.

        Raises ``ValueError`` when ``symbol`` or ``transactionType`` is missing.
        """
        missing = missing_fields(request)
        if missing:
            raise ValueError(f"{' and '.join(missing)} required")

        order = OrderInfo.from_request(request)
        flags = {
            "structure": _truthy(request.get("includeStructure")),
            "pattern": _truthy(request.get("includePattern")),
            "station": _truthy(request.get("includeStation")),
            "oi": _truthy(request.get("includeOI")),
        }
        now = int(self._clock())

        fetched = await self._collect(order, flags, now)
        ctx = self._build_context(order, flags, fetched, now)

        if "positions" in fetched and "orders" in fetched:
            behavioral = self._run_agent("behavioral", run_behavioral_agent, ctx)
        else:
            behavioral = unavailable_result()

        def optional(flag: str, name: str, agent) -> Optional[dict]:
            if not flags[flag]:
                return None
            return self._run_agent(name, agent, ctx).to_dict()

        result = {
            "positions": ctx.positions.to_dict(),
            "orders": ctx.orders.to_dict(),
            "sentiment": ctx.sentiment.to_dict(),
            "sector": ctx.sector.to_dict(),
            "vix": ctx.vix,
            "behavioral": behavioral.to_dict(),
            "structure": optional("structure", "structure", run_structure_agent),
            "pattern": optional("pattern", "pattern", run_pattern_agent),
            "station": optional("station", "station", run_station_agent),
            "oi": optional("oi", "oi", run_oi_agent),
        }
        logger.info(
            "Order intelligence %s %s: behavioral %s (%d)",
            order.transaction_type, order.symbol,
            behavioral.verdict, behavioral.risk_score,
        )
        return result
