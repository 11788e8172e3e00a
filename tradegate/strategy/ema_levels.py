"""EMA levels near the current price, used as station candidates."""

from tradegate.strategy.indicators import calculate_ema
from tradegate.strategy.models import CandleData, Level

EMA_PERIODS = (9, 21, 50, 200)
MIN_EMA_CANDLES = 200
MAX_EMA_DISTANCE_PCT = 2.0


def ema_strength(period: int) -> int:
    """Longer EMAs hold better, so they weigh more in a cluster."""
    if period >= 200:
        return 5
    if period >= 50:
        return 4
    if period >= 21:
        return 3
    return 2


def detect_ema_levels(
    candles: list[CandleData],
    timeframe: str,
    current_price: float,
) -> list[Level]:
    """Return the EMA 9/21/50/200 values lying within 2% of *current_price*.

    Needs at least 200 candles so that every period is computed from the
    same history.
    """
    if len(candles) < MIN_EMA_CANDLES or not current_price:
        return []

    levels: list[Level] = []
    for period in EMA_PERIODS:
        ema = calculate_ema(candles, period)
        if not ema:
            continue
        distance = abs((current_price - ema) / ema * 100)
        if distance < MAX_EMA_DISTANCE_PCT:
            levels.append(
                Level(
                    kind="EMA",
                    timeframe=timeframe,
                    price=ema,
                    distance=distance,
                    label=f"{timeframe} EMA{period}",
                    strength=ema_strength(period),
                    period=period,
                )
            )
    return levels


def detect_all_emas(
    candles_by_timeframe: dict[str, list[CandleData] | None],
    current_price: float,
) -> list[Level]:
    levels: list[Level] = []
    for timeframe, candles in candles_by_timeframe.items():
        if candles:
            levels.extend(detect_ema_levels(candles, timeframe, current_price))
    return levels
