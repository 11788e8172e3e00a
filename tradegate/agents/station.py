"""Station agent — is price at the right zone to trade?

A zone has price memory: a prior swing high or low, an EMA, or an S/R flip.
Three scenarios are tradeable or not:

* Break + retest: enter in the direction of the break.
* Rejection at the zone: reversal entry.
* Inside the zone: no-trade.

Intraday trades run five checks; swing trades add two daily checks.
"""

from dataclasses import dataclass
from typing import Optional, Union

from tradegate.agents.base import (
    AgentResult,
    Check,
    Finding,
    Pass,
    Registry,
    run_checks,
    unavailable_result,
)
from tradegate.agents.context import TradeContext
from tradegate.strategy.candle_patterns import body, lower_wick, upper_wick
from tradegate.strategy.indicators import average_volume
from tradegate.strategy.models import CandleData, Station, StationAnalysis
from tradegate.strategy.stations import detect_stations

ZONE_BAND_PCT = 0.005
RECENT_WINDOW = 15
MAX_ZONE_DISTANCE_PCT = 2.0
REJECTION_WICK_MULTIPLE = 1.5
BREAK_VOLUME_EXPANSION = 1.5
DAILY_EXTENSION_PCT = 0.01

APPROACHING = "APPROACHING"
AT_ZONE = "AT_ZONE"
INSIDE_ZONE = "INSIDE_ZONE"
BREAK_RETEST = "BREAK_RETEST"
REJECTION = "REJECTION"


def _closed_beyond(zone: Station, candle: CandleData, band: float) -> bool:
    if zone.zone_type == "RESISTANCE":
        return candle.close > zone.price + band
    if zone.zone_type == "SUPPORT":
        return candle.close < zone.price - band
    return False


def determine_zone_state(
    zone: Optional[Station],
    candles_15m: list[CandleData],
    spot_price: Optional[float],
) -> str:
    """Classify where price stands relative to *zone*.

    Rules in precedence order:

    1. At least 3 of the last 5 candles straddle the zone price: INSIDE_ZONE.
    2. A close beyond the zone by more than the band, at least 3 candles
       before the latest, with price back within the band: BREAK_RETEST.
    3. Within the band and the last candle's zone-facing wick exceeds
       1.5x its body: REJECTION.
    4. Within the band: AT_ZONE.
    5. Otherwise APPROACHING.
    """
    if zone is None or not candles_15m or spot_price is None:
        return APPROACHING

    band = zone.price * ZONE_BAND_PCT
    at_zone = abs(spot_price - zone.price) <= band
    recent = candles_15m[-RECENT_WINDOW:]

    straddles = sum(1 for c in candles_15m[-5:] if c.high > zone.price and c.low < zone.price)
    if straddles >= 3:
        return INSIDE_ZONE

    # The break needs at least 3 later candles for a pullback to form
    has_break = any(_closed_beyond(zone, c, band) for c in recent[:len(recent) - 3])
    if has_break and at_zone:
        return BREAK_RETEST

    if at_zone:
        last = recent[-1]
        wick_limit = body(last) * REJECTION_WICK_MULTIPLE
        rejected = (
            (zone.zone_type == "RESISTANCE" and upper_wick(last) > wick_limit)
            or (zone.zone_type == "SUPPORT" and lower_wick(last) > wick_limit)
        )
        return REJECTION if rejected else AT_ZONE

    return APPROACHING


def find_break_volume_ratio(zone: Station, candles_15m: list[CandleData]) -> Optional[float]:
    """Volume of the first break candle in the recent window over the 20-bar average."""
    avg20 = average_volume(candles_15m, 20)
    if not avg20:
        return None
    band = zone.price * ZONE_BAND_PCT
    for c in candles_15m[-RECENT_WINDOW:]:
        if _closed_beyond(zone, c, band):
            return c.volume / avg20
    return None


@dataclass(frozen=True)
class StationContext:
    """Station analysis and zone state, built once and shared by every check."""

    trade: TradeContext
    analysis: StationAnalysis
    zone_state: str
    candles_15m: tuple[CandleData, ...] = ()
    candles_daily: tuple[CandleData, ...] = ()

    @property
    def zone(self) -> Optional[Station]:
        if not self.analysis.available:
            return None
        return self.analysis.nearest_station

    @property
    def near_zone(self) -> Optional[Station]:
        """The nearest zone, when it lies within 2% of price."""
        zone = self.zone
        if zone is None or zone.distance > MAX_ZONE_DISTANCE_PCT:
            return None
        return zone

    @property
    def bias(self) -> str:
        return self.trade.order.trade_bias


def build_station_context(ctx: TradeContext) -> StationContext:
    data = ctx.station
    c15 = data.candles_15m if data else ()
    daily = data.candles_daily if data else ()
    # 5m candles are not fetched for this agent
    analysis = detect_stations(
        None,
        list(c15),
        list(daily),
        ctx.order.spot_price,
        ctx.order.transaction_type,
    )
    zone = analysis.nearest_station if analysis.available else None
    return StationContext(
        trade=ctx,
        analysis=analysis,
        zone_state=determine_zone_state(zone, list(c15), ctx.order.spot_price),
        candles_15m=c15,
        candles_daily=daily,
    )


# ── Checks ───────────────────────────────────────────────────────────────


def check_zone_presence(sc: StationContext) -> Pass:
    zone = sc.zone
    if zone is None:
        return Pass("No major zone within 2%, open space entry")
    if zone.distance > MAX_ZONE_DISTANCE_PCT:
        return Pass(
            f"Nearest zone {zone.price:.0f} ({zone.zone_type.lower()}) at {zone.distance:.1f}%, approaching"
        )

    if not zone.factors:
        suffix = f", quality {zone.quality}/10"
    elif len(zone.factors) == 1:
        suffix = f", {zone.factors[0]}"
    else:
        suffix = f", {', '.join(zone.factors)} ({len(zone.factors)} signals)"
    return Pass(f"{zone.label} {zone.price:.0f}{suffix}")


def check_zone_alignment(sc: StationContext) -> Union[Finding, Pass, None]:
    zone = sc.near_zone
    if zone is None:
        return None
    bias = sc.bias
    price = f"{zone.price:.0f}"

    # A broken level flips role
    if sc.zone_state == BREAK_RETEST:
        if zone.zone_type == "RESISTANCE" and bias == "BULLISH":
            return Pass(f"Resistance {price} flipped to support after the break, aligned")
        if zone.zone_type == "SUPPORT" and bias == "BEARISH":
            return Pass(f"Support {price} flipped to resistance after the break, aligned")

    if zone.zone_type == "PIVOT":
        return Pass(f"Pivot zone {price}, bidirectional decision point")
    if zone.zone_type == "SUPPORT" and bias == "BULLISH":
        return Pass(f"Buying at support {price}, zone is demand")
    if zone.zone_type == "RESISTANCE" and bias == "BEARISH":
        return Pass(f"Selling at resistance {price}, zone is supply")

    factors = ", ".join(zone.factors)
    if zone.zone_type == "RESISTANCE":
        return Finding(
            "ZONE_ALIGNMENT_CONFLICT", "warning",
            f"Buying into resistance {price}, zone is supply pressure",
            f"This zone ({factors}) has acted as resistance. Without a confirmed breakout, buying here "
            "means fighting supply. Wait for a break or trade from support below.",
            15,
        )
    return Finding(
        "ZONE_ALIGNMENT_CONFLICT", "warning",
        f"Selling into support {price}, zone is demand",
        f"This zone ({factors}) has acted as support. Without a confirmed breakdown, selling here "
        "means fighting demand. Wait for a break or trade from resistance above.",
        15,
    )


def check_zone_scenario(sc: StationContext) -> Union[Finding, Pass, None]:
    zone = sc.near_zone
    if zone is None:
        return None
    where = f"{zone.label} {zone.price:.0f}"

    if sc.zone_state == BREAK_RETEST:
        return Pass(f"Break+Retest at {where}, high-probability continuation")
    if sc.zone_state == REJECTION:
        return Pass(f"Rejection from {where}, wick confirms reversal")
    if sc.zone_state == INSIDE_ZONE:
        low = zone.price * (1 - ZONE_BAND_PCT)
        high = zone.price * (1 + ZONE_BAND_PCT)
        return Finding(
            "INSIDE_ZONE", "caution",
            f"Price inside {where}, no-trade zone",
            f"Overlapping candles inside the {zone.label} zone. Wait for a confirmed break above "
            f"{high:.0f} or below {low:.0f} before entering.",
            12,
        )
    return Pass(f"Approaching {where}, watch for setup confirmation")


def check_volume_expansion(sc: StationContext) -> Union[Finding, Pass, None]:
    if sc.zone_state != BREAK_RETEST or sc.zone is None:
        return None
    ratio = find_break_volume_ratio(sc.zone, list(sc.candles_15m))
    if ratio is None:
        return None
    if ratio < BREAK_VOLUME_EXPANSION:
        return Finding(
            "LOW_BREAK_VOLUME", "caution",
            f"Break without volume expansion ({ratio:.1f}x avg), fakeout risk",
            "The break candle had below-average volume. Volume should expand on a genuine "
            "breakout to confirm participation.",
            8,
        )
    return Pass(f"Volume expanded on break ({ratio:.1f}x avg), breakout confirmed")


def check_zone_strength(sc: StationContext) -> Union[Finding, Pass, None]:
    zone = sc.near_zone
    if zone is None:
        return None

    if zone.quality < 4:
        return Finding(
            "WEAK_ZONE", "caution",
            f"Weak {zone.label} zone (quality {zone.quality}/10), single-timeframe only",
            f"Zone has low confluence ({', '.join(zone.factors)}). Multi-timeframe zones "
            "(quality 6 and above) are more reliable.",
            8,
        )
    if zone.tests > 3:
        return Finding(
            "ZONE_WEAKENED", "caution",
            f"{zone.label} zone weakened, {zone.tests} retests reduce reliability",
            f"This {zone.label} zone has been tested {zone.tests} times. Each retest consumes "
            "liquidity; zones become less reliable after 3 tests.",
            8,
        )
    if zone.quality >= 6:
        return Pass(f"Strong {zone.label} zone, quality {zone.quality}/10, {zone.tests} prior test(s)")
    return Pass(f"{zone.label} zone quality {zone.quality}/10")


def check_daily_zone_confluence(sc: StationContext) -> Union[Finding, Pass, None]:
    zone = sc.near_zone
    if zone is None:
        return None
    has_daily = "Daily" in zone.timeframes or any("Daily" in f for f in zone.factors)
    if has_daily:
        return Pass("Zone confirmed on daily timeframe, suitable for swing")
    return Finding(
        "NO_DAILY_CONFLUENCE", "caution",
        "Zone is intraday-only, no daily timeframe confirmation",
        "For swing trades, zones with daily factors (daily EMA or daily swing S/R) carry more weight. "
        f"Current zone factors: {', '.join(zone.factors) or 'none'}.",
        10,
    )


def check_daily_approach_angle(sc: StationContext) -> Union[Finding, Pass, None]:
    zone = sc.near_zone
    daily = sc.candles_daily
    if zone is None or len(daily) < 3:
        return None

    threshold = zone.price * DAILY_EXTENSION_PCT
    past = sum(
        1 for c in daily[-3:]
        if (zone.zone_type == "RESISTANCE" and c.close > zone.price + threshold)
        or (zone.zone_type == "SUPPORT" and c.close < zone.price - threshold)
    )
    if past >= 2:
        return Finding(
            "ZONE_EXTENDED", "caution",
            "Price has moved well beyond the zone on daily, may be extended",
            f"{past} of the last 3 daily candles closed more than 1% beyond the zone ({zone.price:.0f}). "
            "The zone may no longer be relevant for the current swing setup.",
            8,
        )
    return Pass(f"Daily approach angle to zone {zone.price:.0f} looks intact")


INTRADAY_CHECKS: Registry = (
    Check("zone_presence", check_zone_presence, "No major zone within 2%, open space entry"),
    Check("zone_alignment", check_zone_alignment, "Zone aligned with trade direction"),
    Check("zone_scenario", check_zone_scenario, "No zone scenario conflict"),
    Check("volume_expansion", check_volume_expansion, "Volume confirms move"),
    Check("zone_strength", check_zone_strength, "Zone strength adequate"),
)

SWING_EXTRA_CHECKS: Registry = (
    Check("daily_zone_confluence", check_daily_zone_confluence, "Daily zone confluence present"),
    Check("daily_approach_angle", check_daily_approach_angle, "Daily approach angle intact"),
)


def run_station_agent(ctx: TradeContext) -> AgentResult:
    if ctx.station is None:
        return unavailable_result()
    registry = INTRADAY_CHECKS + SWING_EXTRA_CHECKS if ctx.order.is_swing else INTRADAY_CHECKS
    return run_checks(registry, build_station_context(ctx), agent="station")
