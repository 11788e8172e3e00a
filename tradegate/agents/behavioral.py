"""Behavioral agent — flags risky habits given the account's positions and orders."""

from typing import Optional

from tradegate.agents.base import AgentResult, Check, Finding, Registry, run_checks
from tradegate.agents.context import TradeContext
from tradegate.market.sector_map import get_sector, root_symbol

NFO_LOSS_THRESHOLD = -500.0
DEFAULT_LOSS_THRESHOLD = -200.0


def check_adding_to_loser(ctx: TradeContext) -> Optional[Finding]:
    pos = ctx.positions.same_symbol
    if pos is None:
        return None

    side = ctx.order.transaction_type
    adding = (pos.quantity > 0 and side == "BUY") or (pos.quantity < 0 and side == "SELL")
    if not adding:
        return None

    threshold = NFO_LOSS_THRESHOLD if ctx.order.exchange == "NFO" else DEFAULT_LOSS_THRESHOLD
    if pos.pnl >= threshold:
        return None

    return Finding(
        id="ADDING_TO_LOSER",
        severity="warning",
        title="Adding to a losing position",
        detail=f"{pos.tradingsymbol} is currently down {abs(pos.pnl):.0f}. Averaging in increases your risk.",
        risk_score=25,
    )


def check_against_trend(ctx: TradeContext) -> Optional[Finding]:
    bias = ctx.order.trade_bias
    sentiment = ctx.sentiment
    # Intraday bias wins unless it is missing
    market_bias = sentiment.intraday_bias or sentiment.overall_bias

    conflicts: list[tuple[str, str]] = []
    if market_bias and market_bias != "NEUTRAL" and market_bias != bias:
        conflicts.append(("Market", market_bias))

    symbol_sector = get_sector(ctx.order.symbol)
    sector_bias = ctx.sector.bias
    if symbol_sector and sector_bias and sector_bias != "NEUTRAL" and sector_bias != bias:
        conflicts.append((ctx.sector.name or symbol_sector, sector_bias))

    if not conflicts:
        return None

    both = len(conflicts) == 2
    text = " and ".join(f"{label} is {b.lower()}" for label, b in conflicts)
    return Finding(
        id="AGAINST_TREND",
        severity="warning" if both else "caution",
        title="Going against the trend",
        detail=f"Counter-trend trade: {text}.",
        risk_score=20 if both else 10,
    )


def check_position_count(ctx: TradeContext) -> Optional[Finding]:
    count = ctx.positions.count
    if count < 4:
        return None
    heavy = count >= 6
    return Finding(
        id="HIGH_POSITION_COUNT",
        severity="warning" if heavy else "caution",
        title="High number of open positions",
        detail=f"You already have {count} open positions. Adding more increases overall portfolio risk.",
        risk_score=15 if heavy else 8,
    )


def check_high_vix(ctx: TradeContext) -> Optional[Finding]:
    vix = ctx.vix
    if vix is None or vix != vix:  # NaN
        return None
    if vix > 25:
        return Finding(
            id="HIGH_VIX",
            severity="warning",
            title=f"High volatility, VIX {vix:.1f}",
            detail="VIX above 25 means options are expensive and wide swings are likely. "
                   "Use tighter stops and smaller size.",
            risk_score=18,
        )
    if vix > 18:
        return Finding(
            id="ELEVATED_VIX",
            severity="caution",
            title=f"Elevated volatility, VIX {vix:.1f}",
            detail="VIX above 18, premium is above normal. Factor in a wider stop-loss.",
            risk_score=8,
        )
    return None


def check_duplicate_order(ctx: TradeContext) -> Optional[Finding]:
    symbol = ctx.order.symbol.upper()
    if not symbol:
        return None
    dupe = next((o for o in ctx.orders.open if o.tradingsymbol.upper().startswith(symbol)), None)
    if dupe is None:
        return None
    return Finding(
        id="DUPLICATE_ORDER",
        severity="caution",
        title="Open order already exists",
        detail=f"{dupe.tradingsymbol} has a {dupe.status.lower()} {dupe.transaction_type.lower()} order pending. "
               "Placing another may double your exposure.",
        risk_score=12,
    )


def check_sector_exposure(ctx: TradeContext) -> Optional[Finding]:
    sector_name = ctx.sector.name
    if not sector_name or not ctx.positions.all:
        return None

    count = sum(1 for p in ctx.positions.all if get_sector(root_symbol(p.tradingsymbol)) == sector_name)
    if count < 2:
        return None

    heavy = count >= 3
    return Finding(
        id="SECTOR_OVEREXPOSURE",
        severity="warning" if heavy else "caution",
        title="Sector overexposure",
        detail=f"You already have {count} open positions in {sector_name}. Adding more concentrates sector risk.",
        risk_score=18 if heavy else 10,
    )


BEHAVIORAL_CHECKS: Registry = (
    Check("adding_to_loser", check_adding_to_loser, "No loser averaging"),
    Check("against_trend", check_against_trend, "Trade aligned with trend"),
    Check("position_count", check_position_count, "Position count OK"),
    Check("high_vix", check_high_vix, "VIX within normal range"),
    Check("duplicate_order", check_duplicate_order, "No duplicate open order"),
    Check("sector_exposure", check_sector_exposure, "Sector exposure is diversified"),
)


def run_behavioral_agent(ctx: TradeContext) -> AgentResult:
    return run_checks(BEHAVIORAL_CHECKS, ctx, agent="behavioral")
