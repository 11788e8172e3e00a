"""OI agent — what does open interest say about the trade?

Index options only (NIFTY, BANKNIFTY); any other symbol is unavailable.
"""

from datetime import date, datetime, timezone
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

OI_SYMBOLS = frozenset({"NIFTY", "BANKNIFTY"})
WALL_BAND_PCT = 0.0075
MAX_PAIN_EXPIRY_DAYS = 3
MAX_PAIN_DIVERGENCE_PCT = 1.5

ACTIVITY_BIAS = {
    "Long Buildup": "BULLISH",
    "Short Covering": "BULLISH",
    "Long Unwinding": "BEARISH",
    "Short Buildup": "BEARISH",
}


def supports_oi(symbol: str) -> bool:
    return symbol.upper() in OI_SYMBOLS


def format_oi(oi: Optional[float]) -> str:
    """Contracts in lakhs, e.g. ``1250000`` → ``"12.5L"``."""
    if not oi:
        return "0L"
    return f"{oi / 100000:.1f}L"


def days_to_expiry(expiry: date, as_of: int, utc_offset_minutes: int = 330) -> int:
    """Calendar days from the exchange-local date of *as_of* to *expiry*."""
    today = datetime.fromtimestamp(as_of + utc_offset_minutes * 60, tz=timezone.utc).date()
    return (expiry - today).days


def check_pcr_bias(ctx: TradeContext) -> Union[Finding, Pass, None]:
    pcr = ctx.oi.pcr
    if pcr is None:
        return None
    bias = ctx.order.trade_bias

    if pcr < 0.7 and bias == "BULLISH":
        return Finding(
            "PCR_EXTREME_GREED", "caution",
            f"PCR {pcr:.2f}, excessive call writing, contrarian risk for bulls",
            "PCR below 0.7 signals crowded bullishness. When everyone is long, the market tends "
            "to reverse from extremes. Consider reducing size.",
            10,
        )
    if pcr > 1.5 and bias == "BEARISH":
        return Finding(
            "PCR_EXTREME_FEAR", "caution",
            f"PCR {pcr:.2f}, excessive put buying, contrarian risk for bears",
            "PCR above 1.5 signals extreme fear. Crowded shorts often get squeezed. "
            "Consider waiting for PCR to normalise.",
            10,
        )
    return Pass(f"PCR {pcr:.2f}, no crowding extreme")


def check_oi_wall_alignment(ctx: TradeContext) -> Union[Finding, Pass, None]:
    oi = ctx.oi
    if not oi.support or not oi.resistance or not oi.spot_price:
        return None

    bias = ctx.order.trade_bias
    band = oi.spot_price * WALL_BAND_PCT
    near_resistance = abs(oi.spot_price - oi.resistance) <= band
    near_support = abs(oi.spot_price - oi.support) <= band

    if near_resistance and bias == "BULLISH":
        return Finding(
            "BUYING_INTO_CE_WALL", "warning",
            f"Buying into CE wall at {oi.resistance:.0f}, {format_oi(oi.resistance_oi)} contracts overhead",
            f"Call writers hold heavy positions at {oi.resistance:.0f}. Strong supply overhead. "
            "Wait for the wall to break or shift before entering long.",
            15,
        )
    if near_support and bias == "BEARISH":
        return Finding(
            "SELLING_INTO_PE_WALL", "warning",
            f"Selling into PE wall at {oi.support:.0f}, {format_oi(oi.support_oi)} contracts below",
            f"Put writers are defending {oi.support:.0f}. Strong demand below. "
            "Risk of a bounce if the wall holds; wait for it to break before shorting.",
            15,
        )
    if near_support and bias == "BULLISH":
        return Pass(f"PE wall at {oi.support:.0f} ({format_oi(oi.support_oi)}), demand floor supporting trade")
    if near_resistance and bias == "BEARISH":
        return Pass(
            f"CE wall at {oi.resistance:.0f} ({format_oi(oi.resistance_oi)}), supply ceiling supporting trade"
        )
    return Pass("No OI wall within 0.75%, price in open space")


def check_max_pain(ctx: TradeContext) -> Union[Finding, Pass, None]:
    oi = ctx.oi
    if not oi.max_pain or not oi.spot_price or oi.expiry is None:
        return None

    days = days_to_expiry(oi.expiry, ctx.as_of, ctx.utc_offset_minutes)
    pct = abs(oi.spot_price - oi.max_pain) / oi.spot_price * 100

    if days <= MAX_PAIN_EXPIRY_DAYS and pct > MAX_PAIN_DIVERGENCE_PCT:
        return Finding(
            "MAX_PAIN_DIVERGENCE", "caution",
            f"Max pain {oi.max_pain:.0f} is {pct:.1f}% from spot, {days}d to expiry",
            "Near expiry, option writers defend max pain to minimise payouts. "
            f"Price tends to gravitate to {oi.max_pain:.0f} into settlement.",
            10,
        )
    if days <= MAX_PAIN_EXPIRY_DAYS:
        return Pass(f"Price near max pain {oi.max_pain:.0f}, expiry pinning risk is low")
    return Pass(f"Max pain {oi.max_pain:.0f}, {days}d to expiry, low pinning pressure")


def check_market_activity(ctx: TradeContext) -> Union[Finding, Pass, None]:
    activity = ctx.oi.market_activity
    if activity is None or not activity.activity:
        return None
    activity_bias = ACTIVITY_BIAS.get(activity.activity)
    if activity_bias is None:
        return None

    bias = ctx.order.trade_bias
    if activity_bias == bias:
        return Pass(f"{activity.activity}, OI flow aligned with {bias.lower()} trade")

    detail = activity.description
    if activity.actionable:
        detail = f"{detail}. {activity.actionable}"
    return Finding(
        "ACTIVITY_CONFLICT", "caution",
        f"{activity.activity}, OI flow conflicts with {bias.lower()} trade",
        detail.strip(),
        12,
    )


OI_CHECKS: Registry = (
    Check("pcr_bias", check_pcr_bias, "PCR within normal range"),
    Check("oi_wall_alignment", check_oi_wall_alignment, "No nearby OI wall conflict"),
    Check("max_pain", check_max_pain, "Max pain, no expiry pressure"),
    Check("market_activity", check_market_activity, "OI activity, no signal yet"),
)


def run_oi_agent(ctx: TradeContext) -> AgentResult:
    if ctx.oi is None or not supports_oi(ctx.order.symbol):
        return unavailable_result()
    return run_checks(OI_CHECKS, ctx, agent="oi")
