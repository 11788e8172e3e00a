"""Candlestick pattern recognition and volume classification — pure functions.

Patterns are read from the last three candles only.  Directions are
lower-case (``bullish`` / ``bearish`` / ``neutral``) while trade biases are
upper-case (``BULLISH`` / ``BEARISH``).
"""

from typing import Optional

from tradegate.strategy.models import (
    CandleData,
    CandlePattern,
    PatternEvaluation,
    VolumeSignal,
)


# ── Candle anatomy ───────────────────────────────────────────────────────


def body(c: CandleData) -> float:
    return abs(c.close - c.open)


def candle_range(c: CandleData) -> float:
    return c.high - c.low


def upper_wick(c: CandleData) -> float:
    return c.high - max(c.open, c.close)


def lower_wick(c: CandleData) -> float:
    return min(c.open, c.close) - c.low


def is_bullish(c: CandleData) -> bool:
    return c.close > c.open


def is_bearish(c: CandleData) -> bool:
    return c.close < c.open


def is_doji(c: CandleData) -> bool:
    """Body smaller than 10% of a non-zero range."""
    r = candle_range(c)
    return r > 0 and body(c) / r < 0.1


def is_bullish_engulfing(prev: CandleData, cur: CandleData) -> bool:
    return (
        is_bearish(prev) and is_bullish(cur)
        and cur.open < prev.close and cur.close > prev.open
        and body(cur) > body(prev)
    )


def is_bearish_engulfing(prev: CandleData, cur: CandleData) -> bool:
    return (
        is_bullish(prev) and is_bearish(cur)
        and cur.open > prev.close and cur.close < prev.open
        and body(cur) > body(prev)
    )


# ── Pattern detection ────────────────────────────────────────────────────


def detect_patterns(candles: list[CandleData]) -> list[CandlePattern]:
    """Detect 1-, 2- and 3-candle patterns ending at the latest candle.

    Returns an empty list when fewer than three candles are given.
    """
    if len(candles) < 3:
        return []

    c1, c2, c3 = candles[-3:]
    patterns: list[CandlePattern] = []

    # 1-candle
    if is_doji(c3):
        patterns.append(CandlePattern(
            "Doji", 1, "neutral",
            "Indecision: buyers and sellers in balance. Wait for confirmation.",
            "weak",
        ))

    b3 = body(c3)
    if lower_wick(c3) > b3 * 2 and upper_wick(c3) < b3 * 0.5 and candle_range(c3) > 0:
        if is_bullish(c3):
            patterns.append(CandlePattern(
                "Hammer", 1, "bullish",
                "Buyers rejected lower prices, potential reversal up.",
                "moderate",
            ))
        else:
            patterns.append(CandlePattern(
                "Hanging Man", 1, "bearish",
                "Hanging Man after an uptrend signals a potential reversal down.",
                "moderate",
            ))

    if upper_wick(c3) > b3 * 2 and lower_wick(c3) < b3 * 0.5 and candle_range(c3) > 0:
        if is_bearish(c3):
            patterns.append(CandlePattern(
                "Shooting Star", 1, "bearish",
                "Sellers rejected higher prices, potential reversal down.",
                "moderate",
            ))
        else:
            patterns.append(CandlePattern(
                "Inverted Hammer", 1, "neutral",
                "Inverted Hammer needs bullish confirmation on the next candle.",
                "moderate",
            ))

    # 2-candle
    if is_bullish_engulfing(c2, c3):
        patterns.append(CandlePattern(
            "Bullish Engulfing", 2, "bullish",
            "Bulls fully engulfed the previous bearish candle, strong reversal signal.",
            "strong",
        ))
    if is_bearish_engulfing(c2, c3):
        patterns.append(CandlePattern(
            "Bearish Engulfing", 2, "bearish",
            "Bears fully engulfed the previous bullish candle, strong reversal signal.",
            "strong",
        ))
    if (is_bullish(c2) and is_bearish(c3) and c3.open < c2.close
            and c3.close > c2.open and body(c3) < body(c2)):
        patterns.append(CandlePattern(
            "Bearish Harami", 2, "bearish",
            "Inside bearish candle after a bullish one, momentum slowing.",
            "moderate",
        ))
    if (is_bearish(c2) and is_bullish(c3) and c3.open > c2.close
            and c3.close < c2.open and body(c3) < body(c2)):
        patterns.append(CandlePattern(
            "Bullish Harami", 2, "bullish",
            "Inside bullish candle after a bearish one, potential base forming.",
            "moderate",
        ))

    # 3-candle
    c1_mid = (c1.open + c1.close) / 2
    if (is_bearish(c1) and is_doji(c2) and is_bullish(c3)
            and c3.close > c1_mid and body(c3) > body(c1) * 0.5):
        patterns.append(CandlePattern(
            "Morning Star", 3, "bullish",
            "Down, doji, up. Strong bullish reversal after a downtrend.",
            "strong",
        ))
    if (is_bullish(c1) and is_doji(c2) and is_bearish(c3)
            and c3.close < c1_mid and body(c3) > body(c1) * 0.5):
        patterns.append(CandlePattern(
            "Evening Star", 3, "bearish",
            "Up, doji, down. Strong bearish reversal after an uptrend.",
            "strong",
        ))
    if (is_bullish(c1) and is_bullish(c2) and is_bullish(c3)
            and c2.close > c1.close and c3.close > c2.close
            and body(c2) > body(c1) * 0.7 and body(c3) > body(c2) * 0.7):
        patterns.append(CandlePattern(
            "Three White Soldiers", 3, "bullish",
            "Three consecutive strong bullish candles, sustained buying pressure.",
            "strong",
        ))
    if (is_bearish(c1) and is_bearish(c2) and is_bearish(c3)
            and c2.close < c1.close and c3.close < c2.close
            and body(c2) > body(c1) * 0.7 and body(c3) > body(c2) * 0.7):
        patterns.append(CandlePattern(
            "Three Black Crows", 3, "bearish",
            "Three consecutive strong bearish candles, sustained selling pressure.",
            "strong",
        ))

    return patterns


# ── Volume classification ────────────────────────────────────────────────

# Fractions of the previous close, not percentages
FAKEOUT_MOVE_FRACTION = 0.5
CHURN_MOVE_FRACTION = 0.1


def analyze_volume(candles: list[CandleData]) -> Optional[VolumeSignal]:
    """Classify the latest candle's volume behaviour.

    The baseline average is taken over ``candles[-20:-5]`` and always
    divided by 15.  Rules are tried in a fixed order and the first match
    wins: climax, divergence, fakeout, churn, bullish, bearish,
    weak_bullish, weak_bearish, then neutral.

    Returns ``None`` with fewer than six candles.
    """
    if len(candles) < 6:
        return None

    recent = candles[-5:]
    avg_vol = sum(c.volume for c in candles[-20:-5]) / 15
    last = recent[-1]
    prev = recent[-2]
    price_up = last.close > prev.close
    vol_up = last.volume > prev.volume
    vol_ratio = last.volume / avg_vol if avg_vol > 0 else 1.0
    move = abs(last.close - prev.close)
    max_vol = max(c.volume for c in recent)

    if (last.volume == max_vol and vol_ratio > 2.5
            and move < abs(prev.close - recent[-3].close) * 0.5):
        return VolumeSignal(
            "climax",
            f"Volume climax: {vol_ratio:.1f}x avg, price stalling",
            "Volume climax, exhaustion likely. Watch for a sharp reversal.",
        )
    if (price_up and last.volume < prev.volume) or (not price_up and last.volume > prev.volume):
        return VolumeSignal(
            "divergence",
            "Price and volume diverging, trend may be weakening.",
            "Volume divergence: move not confirmed by participation.",
        )
    if vol_ratio < 1 and move > FAKEOUT_MOVE_FRACTION * prev.close:
        return VolumeSignal(
            "fakeout",
            "Breakout lacks volume confirmation, risk of fakeout.",
            "Low volume breakout, high fakeout risk.",
        )
    if vol_ratio > 1.5 and move < CHURN_MOVE_FRACTION * prev.close:
        return VolumeSignal(
            "churn",
            f"Churn: {vol_ratio:.1f}x avg volume, little price movement.",
            "High volume churn, large players absorbing, direction unclear.",
        )
    if price_up and vol_up and vol_ratio > 1.5:
        return VolumeSignal(
            "bullish",
            f"Volume {vol_ratio:.1f}x avg, strong buying confirmation",
            "Strong bullish volume.",
        )
    if not price_up and vol_up and vol_ratio > 1.5:
        return VolumeSignal(
            "bearish",
            f"Volume {vol_ratio:.1f}x avg, strong selling pressure",
            "Strong bearish volume.",
        )
    if price_up and not vol_up:
        return VolumeSignal(
            "weak_bullish",
            "Price rising on declining volume, weak move.",
            "Weak bullish move, may not sustain without volume.",
        )
    if not price_up and not vol_up:
        return VolumeSignal(
            "weak_bearish",
            "Price falling on declining volume, weak selling.",
            "Weak selling, may find support.",
        )
    return VolumeSignal("neutral", f"Volume near average ({vol_ratio:.1f}x)", "")


# ── Pattern vs trade bias ────────────────────────────────────────────────

_STRENGTH_RANK = {"strong": 3, "moderate": 2, "weak": 1}
_STRENGTH_SEVERITY = {"strong": "warning", "moderate": "caution", "weak": "caution"}
_STRENGTH_SCORE = {"strong": 18, "moderate": 10, "weak": 5}


def evaluate_patterns(patterns: list[CandlePattern], trade_bias: str) -> PatternEvaluation:
    """Pick the strongest pattern conflicting with *trade_bias*.

    With no conflict the result passes, labelled with the confirming or
    neutral patterns when there are any.
    """
    opposite = {"BULLISH": "bearish", "BEARISH": "bullish"}.get(trade_bias)
    own = trade_bias.lower()

    conflicts = [p for p in patterns if p.direction == opposite]
    if not conflicts:
        confirms = [p.name for p in patterns if p.direction == own]
        if confirms:
            return PatternEvaluation(passed=True, label=f"Pattern confirms trade: {', '.join(confirms)}")
        neutrals = [p.name for p in patterns if p.direction == "neutral"]
        if neutrals:
            return PatternEvaluation(
                passed=True,
                label=f"Neutral pattern: {', '.join(neutrals)} (wait for confirmation)",
            )
        return PatternEvaluation(passed=True)

    ranked = sorted(conflicts, key=lambda p: _STRENGTH_RANK.get(p.strength, 0), reverse=True)
    worst = ranked[0]
    return PatternEvaluation(
        passed=False,
        name=worst.name,
        meaning=worst.meaning,
        severity=_STRENGTH_SEVERITY[worst.strength],
        risk_score=_STRENGTH_SCORE[worst.strength],
        all_conflicts=tuple(p.name for p in ranked),
    )
