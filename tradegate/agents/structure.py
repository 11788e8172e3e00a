"""Structure agent — is the trade structurally valid?

Checks price, momentum, volume and market regime against the trade
direction.  Intraday trades run eight checks over 15m and daily candles;
swing trades (NRML / CNC) add four daily/weekly checks.
"""

from dataclasses import dataclass
from typing import Optional

from tradegate.agents.base import (
    AgentResult,
    Check,
    Finding,
    Registry,
    run_checks,
    unavailable_result,
)
from tradegate.agents.context import StructureData, TradeContext
from tradegate.strategy.indicators import (
    average_volume,
    calculate_adx,
    calculate_ema,
    calculate_rsi,
    calculate_vwap,
)
from tradegate.strategy.models import AdxResult, CandleData
from tradegate.strategy.session_filter import session_start_timestamp

RS_LOOKBACK = 20


@dataclass(frozen=True)
class StructureIndicators:
    """Everything the structure checks read, computed once per request."""

    spot_price: Optional[float] = None
    ema9_15m: Optional[float] = None
    ema21_15m: Optional[float] = None
    rsi_15m: Optional[float] = None
    vwap: Optional[float] = None
    adx_15m: Optional[AdxResult] = None
    avg_vol_20: Optional[float] = None
    last_vol: Optional[float] = None
    or_high: Optional[float] = None
    or_low: Optional[float] = None
    ema50_day: Optional[float] = None
    ema200_day: Optional[float] = None
    rsi_day: Optional[float] = None
    daily_closes_5: tuple[float, ...] = ()
    up_days_10: Optional[int] = None
    down_days_10: Optional[int] = None
    ema20_week: Optional[float] = None


@dataclass(frozen=True)
class StructureContext:
    trade: TradeContext
    data: StructureData
    indicators: StructureIndicators

    @property
    def bias(self) -> str:
        return self.trade.order.trade_bias


def compute_indicators(
    data: StructureData,
    spot_price: Optional[float],
    session_start: int,
) -> StructureIndicators:
    c15 = list(data.candles_15m)
    day = list(data.candles_daily)
    week = list(data.candles_weekly)
    values: dict = {"spot_price": spot_price}

    if c15:
        values["ema9_15m"] = calculate_ema(c15, 9)
        values["ema21_15m"] = calculate_ema(c15, 21)
        values["rsi_15m"] = calculate_rsi(c15, 14)
        values["vwap"] = calculate_vwap(c15, session_start)
        values["adx_15m"] = calculate_adx(c15, 14)

        avg_vol = average_volume(c15, 20)
        if avg_vol is not None:
            values["avg_vol_20"] = avg_vol
            values["last_vol"] = c15[-1].volume

        # Opening range: the first two 15m candles of today's session
        today = [c for c in c15 if c.time >= session_start]
        if len(today) >= 2:
            values["or_high"] = max(c.high for c in today[:2])
            values["or_low"] = min(c.low for c in today[:2])

    if day:
        values["ema50_day"] = calculate_ema(day, 50)
        values["ema200_day"] = calculate_ema(day, 200)
        values["rsi_day"] = calculate_rsi(day, 14)

        if len(day) >= 5:
            values["daily_closes_5"] = tuple(c.close for c in day[-5:])

        if len(day) >= 10:
            last10 = day[-10:]
            up = sum(1 for i in range(1, 10) if last10[i].close > last10[i - 1].close)
            values["up_days_10"] = up
            values["down_days_10"] = 9 - up

    if week:
        values["ema20_week"] = calculate_ema(week, 20)

    return StructureIndicators(**values)


# ── Intraday checks ──────────────────────────────────────────────────────


def check_ema_alignment(sc: StructureContext) -> Optional[Finding]:
    ind = sc.indicators
    price, ema9, ema21 = ind.spot_price, ind.ema9_15m, ind.ema21_15m
    if price is None or ema9 is None or ema21 is None:
        return None

    stacked_bull = price > ema9 > ema21
    stacked_bear = price < ema9 < ema21

    if sc.bias == "BULLISH" and stacked_bear:
        return Finding(
            "EMA_MISALIGNED", "warning",
            "EMAs bearish on 15m, selling into your buy",
            f"Price ({price:.0f}) < EMA9 ({ema9:.0f}) < EMA21 ({ema21:.0f}). 15m structure is bearish.",
            15,
        )
    if sc.bias == "BEARISH" and stacked_bull:
        return Finding(
            "EMA_MISALIGNED", "warning",
            "EMAs bullish on 15m, buying into your sell",
            f"Price ({price:.0f}) > EMA9 ({ema9:.0f}) > EMA21 ({ema21:.0f}). 15m structure is bullish.",
            15,
        )

    if (sc.bias == "BULLISH" and price < ema9) or (sc.bias == "BEARISH" and price > ema9):
        return Finding(
            "EMA_PARTIAL_CONFLICT", "caution",
            "Price outside EMA9, marginal 15m alignment",
            f"Price is on the wrong side of EMA9 ({ema9:.0f}). Consider waiting for a pullback entry.",
            8,
        )
    return None


def check_vwap(sc: StructureContext) -> Optional[Finding]:
    price, vwap = sc.indicators.spot_price, sc.indicators.vwap
    if price is None or vwap is None:
        return None

    above = price > vwap
    if (sc.bias == "BULLISH" and above) or (sc.bias == "BEARISH" and not above):
        return None

    side = "above" if above else "below"
    return Finding(
        "VWAP_CONFLICT", "caution",
        f"Price {side} VWAP, against trade bias",
        f"VWAP is {vwap:.0f}. Price ({price:.0f}) is {side} it, "
        f"which conflicts with your {sc.bias.lower()} trade.",
        10,
    )


def check_adx(sc: StructureContext) -> Optional[Finding]:
    result = sc.indicators.adx_15m
    if result is None or result.adx >= 20:
        return None
    return Finding(
        "LOW_ADX", "caution",
        f"ADX {result.adx:.0f}, choppy market on 15m",
        "ADX below 20 indicates a range-bound, directionless market. "
        "Breakout and momentum trades have a lower success rate in this regime.",
        8,
    )


def check_rsi(sc: StructureContext) -> Optional[Finding]:
    rsi = sc.indicators.rsi_15m
    if rsi is None:
        return None
    if sc.bias == "BULLISH" and rsi > 70:
        return Finding(
            "RSI_OVERBOUGHT", "warning",
            f"RSI {rsi:.0f}, overbought on 15m",
            "Buying when RSI is above 70 means entering an extended move. Mean reversion risk is elevated.",
            15,
        )
    if sc.bias == "BEARISH" and rsi < 30:
        return Finding(
            "RSI_OVERSOLD", "warning",
            f"RSI {rsi:.0f}, oversold on 15m",
            "Selling when RSI is below 30 means entering a stretched move. Bounce risk is elevated.",
            15,
        )
    return None


def check_volume(sc: StructureContext) -> Optional[Finding]:
    avg, last = sc.indicators.avg_vol_20, sc.indicators.last_vol
    if avg is None or last is None or avg == 0:
        return None
    ratio = last / avg
    if ratio >= 0.5:
        return None
    return Finding(
        "LOW_VOLUME", "caution",
        "Low volume on last 15m candle",
        f"Last candle volume ({last:,.0f}) is {ratio * 100:.0f}% of the 20-bar average. "
        "Breakouts on low volume often fail.",
        8,
    )


def check_opening_range(sc: StructureContext) -> Optional[Finding]:
    ind = sc.indicators
    if ind.or_high is None or ind.or_low is None or ind.spot_price is None:
        return None
    if not (ind.or_low <= ind.spot_price <= ind.or_high):
        return None
    return Finding(
        "INSIDE_OPENING_RANGE", "caution",
        "Price inside opening range",
        f"Price ({ind.spot_price:.0f}) is within the opening range ({ind.or_low:.0f} - {ind.or_high:.0f}). "
        "Wait for a confirmed breakout of the range before entering.",
        8,
    )


def check_hh_hl(sc: StructureContext) -> Optional[Finding]:
    closes = sc.indicators.daily_closes_5
    if len(closes) < 5:
        return None

    # A flat close counts as up
    down = sum(1 for i in range(1, len(closes)) if closes[i] < closes[i - 1])
    up = (len(closes) - 1) - down
    strong_down = down >= 3
    strong_up = up >= 3

    if sc.bias == "BULLISH" and strong_down:
        return Finding(
            "HH_HL_BEARISH", "warning",
            "Daily structure bearish, lower closes forming",
            f"{down} of the last 4 daily candles closed lower. Daily trend is against your buy trade.",
            18,
        )
    if sc.bias == "BEARISH" and strong_up:
        return Finding(
            "HH_HL_BULLISH", "warning",
            "Daily structure bullish, higher closes forming",
            f"{up} of the last 4 daily candles closed higher. Daily trend is against your sell trade.",
            18,
        )
    if sc.bias == "BULLISH" and down >= 2 and not strong_up:
        return Finding(
            "HH_HL_WEAK", "caution",
            "Weak daily structure for a buy",
            f"{down} of the last 4 daily candles closed lower. Daily momentum is not supporting a long.",
            10,
        )
    if sc.bias == "BEARISH" and up >= 2 and not strong_down:
        return Finding(
            "HH_HL_WEAK", "caution",
            "Weak daily structure for a sell",
            f"{up} of the last 4 daily candles closed higher. Daily momentum is not supporting a short.",
            10,
        )
    return None


def check_market_breadth(sc: StructureContext) -> Optional[Finding]:
    breadth = sc.data.breadth
    if breadth is None:
        return None
    total = breadth.advances + breadth.declines
    if total == 0:
        return None

    ratio = breadth.advances / total
    counts = f"({breadth.advances} up vs {breadth.declines} down)"
    if sc.bias == "BULLISH" and ratio < 0.35:
        return Finding(
            "BREADTH_BEARISH", "caution",
            "Weak market breadth, most stocks falling",
            f"Only {ratio * 100:.0f}% of stocks are advancing {counts}. Broad market is not supporting a long.",
            8,
        )
    if sc.bias == "BEARISH" and ratio > 0.65:
        return Finding(
            "BREADTH_BULLISH", "caution",
            "Strong market breadth, most stocks rising",
            f"{ratio * 100:.0f}% of stocks are advancing {counts}. Broad market is not supporting a short.",
            8,
        )
    return None


# ── Swing-only checks ────────────────────────────────────────────────────


def check_daily_ema(sc: StructureContext) -> Optional[Finding]:
    ind = sc.indicators
    price, ema50, ema200 = ind.spot_price, ind.ema50_day, ind.ema200_day
    if price is None or (ema50 is None and ema200 is None):
        return None

    below_both = ema50 is not None and ema200 is not None and price < ema50 and price < ema200
    above_both = ema50 is not None and ema200 is not None and price > ema50 and price > ema200

    if sc.bias == "BULLISH" and below_both:
        return Finding(
            "DAILY_EMA_BEARISH", "warning",
            "Price below EMA50 & EMA200 on daily",
            f"Swing long when price is below both daily EMAs is high-risk. "
            f"EMA50: {ema50:.0f}, EMA200: {ema200:.0f}.",
            18,
        )
    if sc.bias == "BEARISH" and above_both:
        return Finding(
            "DAILY_EMA_BULLISH", "warning",
            "Price above EMA50 & EMA200 on daily",
            f"Swing short when price is above both daily EMAs is high-risk. "
            f"EMA50: {ema50:.0f}, EMA200: {ema200:.0f}.",
            18,
        )
    if ema50 is None:
        return None
    if sc.bias == "BULLISH" and price < ema50:
        return Finding(
            "DAILY_EMA_PARTIAL", "caution",
            "Price below EMA50 on daily",
            f"Price ({price:.0f}) is below EMA50 ({ema50:.0f}) on the daily chart. "
            "Swing structure is not confirmed bullish.",
            10,
        )
    if sc.bias == "BEARISH" and price > ema50:
        return Finding(
            "DAILY_EMA_PARTIAL", "caution",
            "Price above EMA50 on daily",
            f"Price ({price:.0f}) is above EMA50 ({ema50:.0f}) on the daily chart. "
            "Swing structure is not confirmed bearish.",
            10,
        )
    return None


def check_weekly_trend(sc: StructureContext) -> Optional[Finding]:
    price, ema20 = sc.indicators.spot_price, sc.indicators.ema20_week
    if price is None or ema20 is None:
        return None
    if sc.bias == "BULLISH" and price < ema20:
        return Finding(
            "WEEKLY_TREND_BEARISH", "caution",
            "Price below weekly EMA20",
            f"Weekly trend is bearish. Price ({price:.0f}) is below EMA20 ({ema20:.0f}) on the weekly chart.",
            10,
        )
    if sc.bias == "BEARISH" and price > ema20:
        return Finding(
            "WEEKLY_TREND_BULLISH", "caution",
            "Price above weekly EMA20",
            f"Weekly trend is bullish. Price ({price:.0f}) is above EMA20 ({ema20:.0f}) on the weekly chart.",
            10,
        )
    return None


def check_daily_momentum(sc: StructureContext) -> Optional[Finding]:
    up, down = sc.indicators.up_days_10, sc.indicators.down_days_10
    if up is None or down is None:
        return None
    if sc.bias == "BULLISH" and down >= 7:
        return Finding(
            "DAILY_MOMENTUM_BEARISH", "caution",
            "Negative daily momentum",
            f"{down} of the last 9 trading days closed lower. Daily momentum is against your long.",
            8,
        )
    if sc.bias == "BEARISH" and up >= 7:
        return Finding(
            "DAILY_MOMENTUM_BULLISH", "caution",
            "Positive daily momentum",
            f"{up} of the last 9 trading days closed higher. Daily momentum is against your short.",
            8,
        )
    return None


def _period_return(candles: tuple[CandleData, ...], lookback: int) -> float:
    start = candles[-lookback - 1].close
    end = candles[-1].close
    return (end - start) / start * 100


def check_relative_strength(sc: StructureContext) -> Optional[Finding]:
    bench, stock = sc.data.benchmark_daily, sc.data.candles_daily
    if len(bench) < RS_LOOKBACK + 1 or len(stock) < RS_LOOKBACK + 1:
        return None

    bench_ret = _period_return(bench, RS_LOOKBACK)
    stock_ret = _period_return(stock, RS_LOOKBACK)
    rs_diff = stock_ret - bench_ret

    if sc.bias == "BULLISH" and rs_diff < -5:
        return Finding(
            "WEAK_RELATIVE_STRENGTH", "caution",
            "Stock underperforming the index (20d)",
            f"Stock returned {stock_ret:.1f}% vs index {bench_ret:.1f}% over 20 sessions "
            f"(RS: {rs_diff:.1f}%). Prefer stocks with positive RS for long trades.",
            8,
        )
    if sc.bias == "BEARISH" and rs_diff > 5:
        return Finding(
            "STRONG_RELATIVE_STRENGTH", "caution",
            "Stock outperforming the index (20d)",
            f"Stock returned {stock_ret:.1f}% vs index {bench_ret:.1f}% over 20 sessions "
            f"(RS: +{rs_diff:.1f}%). Shorting relative strength carries higher risk.",
            8,
        )
    return None


INTRADAY_CHECKS: Registry = (
    Check("ema_alignment", check_ema_alignment, "EMA aligned on 15m"),
    Check("vwap", check_vwap, "Price on correct side of VWAP"),
    Check("adx", check_adx, "Trending market on 15m (ADX OK)"),
    Check("rsi", check_rsi, "RSI not extreme on 15m"),
    Check("volume", check_volume, "Volume confirms move"),
    Check("opening_range", check_opening_range, "Price broke opening range"),
    Check("hh_hl", check_hh_hl, "Daily structure supports trade"),
    Check("market_breadth", check_market_breadth, "Market breadth aligned"),
)

SWING_EXTRA_CHECKS: Registry = (
    Check("daily_ema", check_daily_ema, "Price aligned with daily EMAs"),
    Check("weekly_trend", check_weekly_trend, "Weekly trend supports trade"),
    Check("daily_momentum", check_daily_momentum, "Daily momentum aligned"),
    Check("relative_strength", check_relative_strength, "Relative strength favourable"),
)


def build_structure_context(ctx: TradeContext) -> StructureContext:
    data = ctx.structure or StructureData()
    session_start = session_start_timestamp(ctx.as_of, ctx.utc_offset_minutes)
    return StructureContext(
        trade=ctx,
        data=data,
        indicators=compute_indicators(data, ctx.order.spot_price, session_start),
    )


def run_structure_agent(ctx: TradeContext) -> AgentResult:
    if ctx.structure is None:
        return unavailable_result()
    registry = INTRADAY_CHECKS + SWING_EXTRA_CHECKS if ctx.order.is_swing else INTRADAY_CHECKS
    return run_checks(registry, build_structure_context(ctx), agent="structure")
