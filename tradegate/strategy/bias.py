"""Direction and horizon helpers shared by every agent."""

from typing import Optional

SWING_PRODUCTS = frozenset({"NRML", "CNC"})
SECTOR_BIAS_THRESHOLD = 0.3


def trade_bias(instrument_type: Optional[str], transaction_type: Optional[str]) -> str:
    """Market direction a trade profits from.

    Buying a put is bearish and selling a put is bullish; every other
    instrument (CE, EQ, FUT) follows the transaction side.
    """
    buying = (transaction_type or "").upper() == "BUY"
    if (instrument_type or "").upper() == "PE":
        return "BEARISH" if buying else "BULLISH"
    return "BULLISH" if buying else "BEARISH"


def is_swing(product_type: Optional[str]) -> bool:
    """NRML and CNC positions are held overnight; everything else is intraday."""
    return (product_type or "").upper() in SWING_PRODUCTS


def normalise_bias(bias: Optional[str]) -> str:
    """Collapse free-form bias labels (``"Mildly Bullish"``...) to BULLISH / BEARISH / NEUTRAL."""
    if not bias:
        return "NEUTRAL"
    lowered = bias.lower()
    if "bullish" in lowered:
        return "BULLISH"
    if "bearish" in lowered:
        return "BEARISH"
    return "NEUTRAL"


def sector_change_to_bias(change_percent: Optional[float]) -> str:
    if change_percent is None:
        return "NEUTRAL"
    if change_percent > SECTOR_BIAS_THRESHOLD:
        return "BULLISH"
    if change_percent < -SECTOR_BIAS_THRESHOLD:
        return "BEARISH"
    return "NEUTRAL"
