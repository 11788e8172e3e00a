"""Pattern agent — what is price action saying in the last few candles?

Intraday trades run eight checks on 15m candles; swing trades add four
checks on daily candles.
"""

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
from tradegate.strategy.candle_patterns import (
    analyze_volume,
    body,
    candle_range,
    detect_patterns,
    evaluate_patterns,
    is_bearish,
    is_bearish_engulfing,
    is_bullish,
    is_bullish_engulfing,
    lower_wick,
    upper_wick,
)
from tradegate.strategy.indicators import calculate_atr
from tradegate.strategy.models import CandleData

BIG_CANDLE_ATR_MULTIPLE = 2.0
WICK_REJECTION_RATIO = 0.6
PIN_BAR_BODY_RATIO = 0.3


def _candles_15m(ctx: TradeContext) -> list[CandleData]:
    return list(ctx.pattern.candles_15m) if ctx.pattern else []


def _candles_daily(ctx: TradeContext) -> list[CandleData]:
    return list(ctx.pattern.candles_daily) if ctx.pattern else []


def _consecutive_against(candles: list[CandleData], bias: str) -> int:
    """Length of the run of candles against *bias* ending at the latest candle."""
    count = 0
    for c in reversed(candles):
        against = (bias == "BULLISH" and is_bearish(c)) or (bias == "BEARISH" and is_bullish(c))
        if not against:
            break
        count += 1
    return count


def _big_candle_ratio(candles: list[CandleData]) -> Optional[tuple[float, float, float]]:
    atr = calculate_atr(candles, 14)
    if not atr:
        return None
    last_body = body(candles[-1])
    return last_body / atr, last_body, atr


# ── 15m checks ───────────────────────────────────────────────────────────


def check_candle_patterns_15m(ctx: TradeContext) -> Union[Finding, Pass, None]:
    candles = _candles_15m(ctx)
    patterns = detect_patterns(candles)
    if not patterns:
        return None

    bias = ctx.order.trade_bias
    result = evaluate_patterns(patterns, bias)
    if result.passed:
        return Pass(result.label) if result.label else None

    also = ""
    if len(result.all_conflicts) > 1:
        also = f" (also: {', '.join(result.all_conflicts[1:])})"
    return Finding(
        "PATTERN_CONFLICT_15M", result.severity,
        f"{result.name} on 15m, conflicts with {bias.lower()} trade",
        result.meaning + also,
        result.risk_score,
    )


def check_volume_alignment_15m(ctx: TradeContext) -> Optional[Finding]:
    vol = analyze_volume(_candles_15m(ctx))
    if vol is None:
        return None

    bias = ctx.order.trade_bias
    if vol.signal == "climax":
        return Finding(
            "VOLUME_CLIMAX_15M", "warning",
            "Volume climax on 15m, exhaustion signal",
            f"{vol.detail}. {vol.actionable}",
            12,
        )
    if vol.signal == "divergence":
        return Finding(
            "VOLUME_DIVERGENCE_15M", "caution",
            "Volume-price divergence on 15m",
            f"{vol.detail} {vol.actionable}",
            8,
        )
    if vol.signal == "fakeout":
        return Finding(
            "VOLUME_FAKEOUT_15M", "caution",
            "Low volume move, fakeout risk on 15m",
            vol.actionable,
            10,
        )
    if vol.signal == "weak_bullish" and bias == "BEARISH":
        return Finding(
            "VOLUME_WEAK_MOVE_15M", "caution",
            "Weak bullish move (low volume), conflicting with a bearish trade",
            vol.detail,
            5,
        )
    if vol.signal == "weak_bearish" and bias == "BULLISH":
        return Finding(
            "VOLUME_WEAK_MOVE_15M", "caution",
            "Weak bearish move (low volume), conflicting with a bullish trade",
            vol.detail,
            5,
        )
    return None


def check_big_candle_15m(ctx: TradeContext) -> Optional[Finding]:
    measured = _big_candle_ratio(_candles_15m(ctx))
    if measured is None:
        return None
    ratio, last_body, atr = measured
    if ratio < BIG_CANDLE_ATR_MULTIPLE:
        return None
    return Finding(
        "BIG_CANDLE_15M", "warning",
        f"Big candle on 15m, {ratio:.1f}x ATR body",
        f"Last 15m candle body ({last_body:.1f}) is {ratio:.1f}x the 14-period ATR ({atr:.1f}). "
        "Entering after an extended candle increases mean-reversion risk.",
        15,
    )


def check_inside_bar_15m(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_15m(ctx)
    if len(candles) < 2:
        return None
    prev, cur = candles[-2], candles[-1]
    if not (cur.high <= prev.high and cur.low >= prev.low):
        return None
    return Finding(
        "INSIDE_BAR_15M", "caution",
        "Inside bar on 15m, breakout not yet confirmed",
        f"Current 15m candle is contained within the previous candle's range "
        f"({prev.low:.0f}-{prev.high:.0f}). Wait for a clear breakout of the inside bar before entering.",
        8,
    )


def check_wick_rejection_15m(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_15m(ctx)
    if not candles:
        return None
    last = candles[-1]
    r = candle_range(last)
    if r == 0:
        return None

    # Buyers worry about an upper wick, sellers about a lower one
    bullish = ctx.order.trade_bias == "BULLISH"
    ratio = (upper_wick(last) if bullish else lower_wick(last)) / r
    if ratio < WICK_REJECTION_RATIO:
        return None

    direction = "upper" if bullish else "lower"
    side = "sell" if bullish else "buy"
    return Finding(
        "WICK_REJECTION_15M", "caution",
        f"Wick rejection on 15m, {side}ers rejected your entry direction",
        f"Last 15m candle has a {direction} wick covering {ratio * 100:.0f}% of its range. "
        "Supply or demand is pushing back in your trade direction.",
        10,
    )


def check_consecutive_candles_15m(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_15m(ctx)
    if len(candles) < 3:
        return None
    bias = ctx.order.trade_bias
    count = _consecutive_against(candles[-5:], bias)
    if count < 3:
        return None
    direction = "bearish" if bias == "BULLISH" else "bullish"
    return Finding(
        "CONSECUTIVE_CANDLES_15M", "caution",
        f"{count} consecutive {direction} 15m candles against your trade",
        f"Last {count} candles closed {direction}. Short-term 15m momentum is against "
        f"your {bias.lower()} trade.",
        8,
    )


def check_pin_bar_15m(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_15m(ctx)
    if not candles:
        return None
    c = candles[-1]
    r = candle_range(c)
    if r == 0:
        return None

    b = body(c)
    if b / r >= PIN_BAR_BODY_RATIO:
        return None

    up, low = upper_wick(c), lower_wick(c)
    shooting_star = up > b * 2 and up > low
    hammer = low > b * 2 and low > up

    bias = ctx.order.trade_bias
    if not ((bias == "BULLISH" and shooting_star) or (bias == "BEARISH" and hammer)):
        return None

    name = "Shooting Star pin bar" if shooting_star else "Hammer pin bar"
    who = "sellers" if shooting_star else "buyers"
    return Finding(
        "PIN_BAR_15M", "warning",
        f"{name} on 15m, {who} rejected the move",
        f"Strong wick ({max(up, low) / r * 100:.0f}% of candle range) with a small body "
        f"({b / r * 100:.0f}% of range). {who.capitalize()} aggressively rejected this price level.",
        15,
    )


def check_engulfing_recent_15m(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_15m(ctx)
    if len(candles) < 2:
        return None
    prev, cur = candles[-2], candles[-1]

    if is_bullish_engulfing(prev, cur):
        pattern, direction = "Bullish Engulfing", "BULLISH"
    elif is_bearish_engulfing(prev, cur):
        pattern, direction = "Bearish Engulfing", "BEARISH"
    else:
        return None

    bias = ctx.order.trade_bias
    if direction == bias:
        return None
    return Finding(
        "ENGULFING_15M", "warning",
        f"{pattern} on 15m, conflicts with {bias.lower()} trade",
        f"{pattern} is a strong {direction.lower()} reversal signal. Entering a {bias.lower()} "
        "trade against this pattern increases risk significantly.",
        15,
    )


# ── Daily checks (swing only) ────────────────────────────────────────────


def check_candle_pattern_daily(ctx: TradeContext) -> Optional[Finding]:
    patterns = detect_patterns(_candles_daily(ctx))
    if not patterns:
        return None

    bias = ctx.order.trade_bias
    result = evaluate_patterns(patterns, bias)
    if result.passed:
        return None

    # Daily patterns weigh more: lift moderate and weak conflicts toward warning
    boost = 0 if result.severity == "warning" else 5
    return Finding(
        "PATTERN_CONFLICT_DAILY", result.severity,
        f"{result.name} on Daily, conflicts with {bias.lower()} swing trade",
        result.meaning + " Daily-level patterns carry higher significance for swing trades.",
        result.risk_score + boost,
    )


def check_big_candle_daily(ctx: TradeContext) -> Optional[Finding]:
    measured = _big_candle_ratio(_candles_daily(ctx))
    if measured is None:
        return None
    ratio, _, _ = measured
    if ratio < BIG_CANDLE_ATR_MULTIPLE:
        return None
    return Finding(
        "BIG_CANDLE_DAILY", "warning",
        f"Big daily candle, {ratio:.1f}x ATR body",
        f"The last daily candle body was {ratio:.1f}x the 14-period ATR. "
        "Entering the day after a wide-range candle increases mean-reversion risk.",
        15,
    )


def check_consecutive_daily_candles(ctx: TradeContext) -> Optional[Finding]:
    candles = _candles_daily(ctx)
    if len(candles) < 4:
        return None
    bias = ctx.order.trade_bias
    count = _consecutive_against(candles[-8:], bias)
    if count < 4:
        return None
    direction = "bearish" if bias == "BULLISH" else "bullish"
    return Finding(
        "CONSECUTIVE_DAILY_CANDLES", "warning",
        f"{count} consecutive {direction} daily candles",
        f"Daily candles have closed {direction} for {count} straight sessions. "
        f"Strong daily momentum is against your {bias.lower()} swing trade.",
        18,
    )


def check_volume_alignment_daily(ctx: TradeContext) -> Optional[Finding]:
    vol = analyze_volume(_candles_daily(ctx))
    if vol is None:
        return None
    if vol.signal == "climax":
        return Finding(
            "VOLUME_CLIMAX_DAILY", "warning",
            "Volume climax on daily, exhaustion signal",
            f"{vol.detail}. {vol.actionable} Higher significance on the daily timeframe for swing trades.",
            12,
        )
    if vol.signal == "divergence":
        return Finding(
            "VOLUME_DIVERGENCE_DAILY", "caution",
            "Volume-price divergence on daily",
            f"{vol.detail} {vol.actionable}",
            8,
        )
    return None


INTRADAY_CHECKS: Registry = (
    Check("candle_patterns_15m", check_candle_patterns_15m, "No conflicting candle pattern (15m)"),
    Check("volume_alignment_15m", check_volume_alignment_15m, "Volume aligned with move (15m)"),
    Check("big_candle_15m", check_big_candle_15m, "Normal candle size, not extended (15m)"),
    Check("inside_bar_15m", check_inside_bar_15m, "No inside bar, breakout confirmed (15m)"),
    Check("wick_rejection_15m", check_wick_rejection_15m, "No wick rejection at entry (15m)"),
    Check("consecutive_candles_15m", check_consecutive_candles_15m, "No momentum conflict (15m)"),
    Check("pin_bar_15m", check_pin_bar_15m, "No pin bar rejection (15m)"),
    Check("engulfing_recent_15m", check_engulfing_recent_15m, "No conflicting engulfing (15m)"),
)

SWING_EXTRA_CHECKS: Registry = (
    Check("candle_pattern_daily", check_candle_pattern_daily, "No conflicting daily candle pattern"),
    Check("big_candle_daily", check_big_candle_daily, "Normal daily candle size"),
    Check("consecutive_daily_candles", check_consecutive_daily_candles, "No consecutive daily candles against trade"),
    Check("volume_alignment_daily", check_volume_alignment_daily, "Daily volume aligned"),
)


def run_pattern_agent(ctx: TradeContext) -> AgentResult:
    if ctx.pattern is None:
        return unavailable_result()
    registry = INTRADAY_CHECKS + SWING_EXTRA_CHECKS if ctx.order.is_swing else INTRADAY_CHECKS
    return run_checks(registry, ctx, agent="pattern")
