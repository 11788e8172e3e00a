"""Support/Resistance level detection from swing points — pure functions."""

from tradegate.strategy.models import CandleData, Level, SwingPoint

# Most recent swings kept per timeframe
MAX_SWINGS_BY_TIMEFRAME: dict[str, int] = {
    "5m": 20,
    "15m": 15,
    "Daily": 10,
}

MIN_SR_CANDLES = 30
MAX_LEVEL_DISTANCE_PCT = 5.0


def find_swing_highs(
    candles: list[CandleData],
    lookback: int = 5,
    threshold: float = 1.0,
) -> list[SwingPoint]:
    """Identify swing highs.

    A swing high is a candle whose high is strictly higher than the highs
    of the *lookback* candles on each side.  To filter noise, the rise
    from the lowest low in that window to the high must be at least
    *threshold* percent.
    """
    if len(candles) < lookback * 2 + 1:
        return []

    swings: list[SwingPoint] = []
    for i in range(lookback, len(candles) - lookback):
        high = candles[i].high
        is_swing = True
        for j in range(1, lookback + 1):
            if candles[i - j].high >= high or candles[i + j].high >= high:
                is_swing = False
                break
        if not is_swing:
            continue

        window = candles[i - lookback:i] + candles[i + 1:i + lookback + 1]
        min_low = min(c.low for c in window)
        if min_low <= 0:
            continue
        move = (high - min_low) / min_low * 100
        if move >= threshold:
            swings.append(SwingPoint(price=high, index=i, move_percent=move, time=candles[i].time))
    return swings


def find_swing_lows(
    candles: list[CandleData],
    lookback: int = 5,
    threshold: float = 1.0,
) -> list[SwingPoint]:
    """Identify swing lows.

    A swing low is a candle whose low is strictly lower than the lows of
    the *lookback* candles on each side, with a bounce of at least
    *threshold* percent to the highest high in that window.
    """
    if len(candles) < lookback * 2 + 1:
        return []

    swings: list[SwingPoint] = []
    for i in range(lookback, len(candles) - lookback):
        low = candles[i].low
        is_swing = True
        for j in range(1, lookback + 1):
            if candles[i - j].low <= low or candles[i + j].low <= low:
                is_swing = False
                break
        if not is_swing or low <= 0:
            continue

        window = candles[i - lookback:i] + candles[i + 1:i + lookback + 1]
        max_high = max(c.high for c in window)
        move = (max_high - low) / low * 100
        if move >= threshold:
            swings.append(SwingPoint(price=low, index=i, move_percent=move, time=candles[i].time))
    return swings


def count_tests(
    candles: list[CandleData],
    level: float,
    tolerance_pct: float = 0.5,
    min_gap: int = 5,
) -> int:
    """Count how many times price tested *level*.

    A candle tests the level when its high or low is within
    *tolerance_pct* percent of it.  Touches closer than *min_gap* candles
    to the previously counted touch belong to the same test.
    """
    if level <= 0:
        return 0

    count = 0
    last_test_index = -(min_gap * 2)
    for i, candle in enumerate(candles):
        high_dist = abs((candle.high - level) / level * 100)
        low_dist = abs((candle.low - level) / level * 100)
        if high_dist <= tolerance_pct or low_dist <= tolerance_pct:
            if i - last_test_index > min_gap:
                count += 1
                last_test_index = i
    return count


def _swing_levels(
    candles: list[CandleData],
    swings: list[SwingPoint],
    kind: str,
    timeframe: str,
    current_price: float,
) -> list[Level]:
    levels: list[Level] = []
    for swing in swings:
        distance = abs((current_price - swing.price) / swing.price * 100)
        if distance >= MAX_LEVEL_DISTANCE_PCT:
            continue
        tests = count_tests(candles, swing.price)
        levels.append(
            Level(
                kind=kind,
                timeframe=timeframe,
                price=swing.price,
                distance=distance,
                label=f"{timeframe} {kind.capitalize()}",
                strength=min(5, tests),
                tests=tests,
                last_test=swing.time,
            )
        )
    return levels


def detect_sr_levels(
    candles: list[CandleData],
    timeframe: str,
    current_price: float,
    max_swings: int = 20,
) -> list[Level]:
    """Detect support and resistance levels near *current_price*.

    Args:
        candles: Candle history for one timeframe, oldest-first.
        timeframe: Label such as ``"15m"`` or ``"Daily"``.
        current_price: Reference price for the distance filter.
        max_swings: Number of most-recent swings kept on each side.

    Returns:
        Resistance levels (from swing highs) followed by support levels
        (from swing lows), each within 5% of *current_price*.
    """
    if len(candles) < MIN_SR_CANDLES or not current_price or current_price <= 0:
        return []

    highs = find_swing_highs(candles)[-max_swings:]
    lows = find_swing_lows(candles)[-max_swings:]

    return (
        _swing_levels(candles, highs, "RESISTANCE", timeframe, current_price)
        + _swing_levels(candles, lows, "SUPPORT", timeframe, current_price)
    )


def detect_all_sr(
    candles_by_timeframe: dict[str, list[CandleData] | None],
    current_price: float,
) -> list[Level]:
    """Run :func:`detect_sr_levels` on every timeframe that has candles."""
    levels: list[Level] = []
    for timeframe, candles in candles_by_timeframe.items():
        if not candles:
            continue
        max_swings = MAX_SWINGS_BY_TIMEFRAME.get(timeframe, 20)
        levels.extend(detect_sr_levels(candles, timeframe, current_price, max_swings))
    return levels
