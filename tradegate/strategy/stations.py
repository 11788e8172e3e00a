"""Station detection — cluster EMA and S/R levels into scored zones."""

from typing import Optional

from tradegate.strategy.ema_levels import detect_all_emas
from tradegate.strategy.models import (
    CandleData,
    Level,
    Station,
    StationAnalysis,
    StationSummary,
    TradeEvaluation,
)
from tradegate.strategy.sr_zones import detect_all_sr

CLUSTER_THRESHOLD_PCT = 0.5
AT_STATION_THRESHOLD_PCT = 0.5
STRONG_QUALITY = 7


# ── Clustering ───────────────────────────────────────────────────────────


def _quality(members: list[Level], timeframe_count: int) -> int:
    score = min(4, len(members))

    if timeframe_count >= 3:
        score += 3
    elif timeframe_count == 2:
        score += 2
    else:
        score += 1

    max_tests = max(m.tests for m in members)
    if max_tests >= 5:
        score += 3
    elif max_tests >= 3:
        score += 2
    elif max_tests >= 1:
        score += 1

    return min(10, score)


def _zone_type(members: list[Level]) -> str:
    # EMAs below price act as support, so they vote with SUPPORT
    support_votes = sum(1 for m in members if m.kind in ("SUPPORT", "EMA"))
    resistance_votes = sum(1 for m in members if m.kind == "RESISTANCE")
    if support_votes > resistance_votes:
        return "SUPPORT"
    if resistance_votes > support_votes:
        return "RESISTANCE"
    return "PIVOT"


def _build_station(members: list[Level], reference_price: Optional[float]) -> Station:
    weights = [m.strength or 1 for m in members]
    total_weight = sum(weights)
    price = sum(m.price * w for m, w in zip(members, weights)) / total_weight

    timeframes: list[str] = []
    for m in members:
        if m.timeframe not in timeframes:
            timeframes.append(m.timeframe)

    if reference_price:
        distance = abs((reference_price - price) / price * 100)
    else:
        distance = min(m.distance for m in members)

    return Station(
        price=price,
        zone_type=_zone_type(members),
        quality=_quality(members, len(timeframes)),
        factors=tuple(m.label for m in members),
        timeframes=tuple(timeframes),
        tests=max(m.tests for m in members),
        distance=distance,
        factor_count=len(members),
        strength=round(total_weight / len(members)),
    )


def cluster_levels(
    levels: list[Level],
    threshold_pct: float = CLUSTER_THRESHOLD_PCT,
    reference_price: Optional[float] = None,
) -> list[Station]:
    """Group levels lying within *threshold_pct* of each other into stations.

    Levels are sorted by price and walked once; a new cluster starts when
    the gap to the previous member exceeds the threshold.  Each cluster
    therefore covers a contiguous run of sorted prices.

    Returns:
        Stations in ascending price order.
    """
    if not levels:
        return []

    ordered = sorted(levels, key=lambda lv: lv.price)
    clusters: list[list[Level]] = [[ordered[0]]]
    for level in ordered[1:]:
        prev = clusters[-1][-1]
        gap = abs((level.price - prev.price) / prev.price * 100)
        if gap <= threshold_pct:
            clusters[-1].append(level)
        else:
            clusters.append([level])

    return [_build_station(members, reference_price) for members in clusters]


# ── Trade vs station ─────────────────────────────────────────────────────


def find_nearest_station(stations: list[Station], current_price: float) -> Optional[Station]:
    """Return the station closest to *current_price*, with its distance refreshed."""
    nearest: Optional[Station] = None
    min_distance = float("inf")
    for station in stations:
        distance = abs((current_price - station.price) / station.price * 100)
        if distance < min_distance:
            min_distance = distance
            nearest = station
    if nearest is None:
        return None
    return _with_distance(nearest, min_distance)


def _with_distance(station: Station, distance: float) -> Station:
    return Station(
        price=station.price,
        zone_type=station.zone_type,
        quality=station.quality,
        factors=station.factors,
        timeframes=station.timeframes,
        tests=station.tests,
        distance=distance,
        factor_count=station.factor_count,
        strength=station.strength,
    )


def is_at_station(station: Optional[Station], threshold_pct: float = AT_STATION_THRESHOLD_PCT) -> bool:
    if station is None:
        return False
    return station.distance <= threshold_pct


def score_trade_vs_station(
    at_station: bool,
    station: Optional[Station],
    transaction_type: str,
) -> TradeEvaluation:
    """Judge whether the trade direction suits the nearest station.

    Buying at support or selling at resistance lowers risk; the opposite
    raises it.  Trading away from any station raises it the most.
    """
    if not at_station or station is None:
        if station is None:
            reason = "Not at a station. No level detected nearby"
        else:
            reason = (
                f"Not at a station. Nearest level is {station.zone_type} at "
                f"{station.price:.0f} ({station.distance:.2f}% away)"
            )
        return TradeEvaluation(suitable=False, reason=reason, risk_adjustment=20)

    grade = "STRONG" if station.quality >= STRONG_QUALITY else "MODERATE"
    factors = " + ".join(station.factors)
    buying = transaction_type == "BUY"
    selling = transaction_type == "SELL"

    if station.zone_type == "SUPPORT" and buying:
        return TradeEvaluation(
            suitable=True,
            reason=f"At {grade} support (Quality {station.quality}/10). {factors}. Ideal for long entry.",
            risk_adjustment=-10,
        )
    if station.zone_type == "RESISTANCE" and selling:
        return TradeEvaluation(
            suitable=True,
            reason=f"At {grade} resistance (Quality {station.quality}/10). {factors}. Ideal for short entry.",
            risk_adjustment=-10,
        )
    if station.zone_type == "SUPPORT" and selling:
        return TradeEvaluation(
            suitable=False,
            reason=f"At support ({factors}) but selling. High risk of bounce. Wait for breakdown confirmation.",
            risk_adjustment=15,
        )
    if station.zone_type == "RESISTANCE" and buying:
        return TradeEvaluation(
            suitable=False,
            reason=f"At resistance ({factors}) but buying. High risk of rejection. Wait for breakout confirmation.",
            risk_adjustment=15,
        )
    return TradeEvaluation(
        suitable=True,
        reason=f"At PIVOT zone ({factors}). Major decision level, watch for breakout or breakdown.",
        risk_adjustment=0,
    )


# ── Full analysis ────────────────────────────────────────────────────────


def detect_stations(
    candles_5m: Optional[list[CandleData]],
    candles_15m: Optional[list[CandleData]],
    candles_daily: Optional[list[CandleData]],
    current_price: Optional[float],
    transaction_type: str,
) -> StationAnalysis:
    """Detect every station around *current_price* and score the trade.

    Levels come from EMA 9/21/50/200 and swing S/R on each timeframe that
    has candles.  They are clustered at 0.5%, and the nearest cluster
    decides whether price is at a station.
    """
    by_timeframe = {"5m": candles_5m, "15m": candles_15m, "Daily": candles_daily}
    if not current_price or not any(by_timeframe.values()):
        return StationAnalysis(available=False, reason="Insufficient data for station detection")

    levels = detect_all_emas(by_timeframe, current_price) + detect_all_sr(by_timeframe, current_price)
    if not levels:
        return StationAnalysis(available=False, reason="No stations detected near current price")

    stations = cluster_levels(levels, CLUSTER_THRESHOLD_PCT, reference_price=current_price)
    nearest = find_nearest_station(stations, current_price)
    at_station = is_at_station(nearest)
    by_distance = tuple(sorted(stations, key=lambda s: s.distance))

    return StationAnalysis(
        available=True,
        current_price=current_price,
        at_station=at_station,
        nearest_station=nearest,
        all_stations=by_distance,
        trade_evaluation=score_trade_vs_station(at_station, nearest, transaction_type),
        summary=StationSummary(
            total_stations=len(stations),
            within_1_percent=sum(1 for s in stations if s.distance < 1.0),
            within_2_percent=sum(1 for s in stations if s.distance < 2.0),
            strong_stations=sum(1 for s in stations if s.quality >= STRONG_QUALITY),
        ),
    )
