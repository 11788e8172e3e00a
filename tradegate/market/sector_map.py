"""Static symbol → sector mapping, using the sector names reported by the sector-performance feed."""

from typing import Optional

SECTOR_MAP: dict[str, str] = {
    # Bank Nifty
    "HDFCBANK": "Bank Nifty",
    "ICICIBANK": "Bank Nifty",
    "KOTAKBANK": "Bank Nifty",
    "AXISBANK": "Bank Nifty",
    "INDUSINDBK": "Bank Nifty",
    "FEDERALBNK": "Bank Nifty",
    "IDFCFIRSTB": "Bank Nifty",
    "AUBANK": "Bank Nifty",
    "BANDHANBNK": "Bank Nifty",
    # PSU Bank
    "SBIN": "PSU Bank",
    "BANKBARODA": "PSU Bank",
    "PNB": "PSU Bank",
    "CANBK": "PSU Bank",
    "UNIONBANK": "PSU Bank",
    "BANKINDIA": "PSU Bank",
    # IT
    "TCS": "IT",
    "INFY": "IT",
    "WIPRO": "IT",
    "HCLTECH": "IT",
    "TECHM": "IT",
    "LTIM": "IT",
    "PERSISTENT": "IT",
    "COFORGE": "IT",
    "MPHASIS": "IT",
    # Financial
    "BAJFINANCE": "Financial",
    "BAJAJFINSV": "Financial",
    "HDFCLIFE": "Financial",
    "SBILIFE": "Financial",
    "CHOLAFIN": "Financial",
    "SHRIRAMFIN": "Financial",
    "MUTHOOTFIN": "Financial",
    "ICICIGI": "Financial",
    # Auto
    "MARUTI": "Auto",
    "TATAMOTORS": "Auto",
    "M&M": "Auto",
    "BAJAJ-AUTO": "Auto",
    "HEROMOTOCO": "Auto",
    "EICHERMOT": "Auto",
    "TVSMOTOR": "Auto",
    "ASHOKLEY": "Auto",
    # Pharma
    "SUNPHARMA": "Pharma",
    "DRREDDY": "Pharma",
    "CIPLA": "Pharma",
    "DIVISLAB": "Pharma",
    "LUPIN": "Pharma",
    "AUROPHARMA": "Pharma",
    "TORNTPHARM": "Pharma",
    # Metal
    "TATASTEEL": "Metal",
    "JSWSTEEL": "Metal",
    "HINDALCO": "Metal",
    "VEDL": "Metal",
    "SAIL": "Metal",
    "JINDALSTEL": "Metal",
    "NMDC": "Metal",
    "COALINDIA": "Metal",
    # FMCG
    "HINDUNILVR": "FMCG",
    "ITC": "FMCG",
    "NESTLEIND": "FMCG",
    "BRITANNIA": "FMCG",
    "DABUR": "FMCG",
    "TATACONSUM": "FMCG",
    "GODREJCP": "FMCG",
    "MARICO": "FMCG",
    # Realty
    "DLF": "Realty",
    "GODREJPROP": "Realty",
    "OBEROIRLTY": "Realty",
    "PRESTIGE": "Realty",
    "LODHA": "Realty",
    # Energy
    "RELIANCE": "Energy",
    "ONGC": "Energy",
    "NTPC": "Energy",
    "POWERGRID": "Energy",
    "BPCL": "Energy",
    "IOC": "Energy",
    "TATAPOWER": "Energy",
    "ADANIGREEN": "Energy",
    # Media
    "ZEEL": "Media",
    "SUNTV": "Media",
    "PVRINOX": "Media",
    # Infra
    "LT": "Infra",
    "ULTRACEMCO": "Infra",
    "GRASIM": "Infra",
    "ADANIPORTS": "Infra",
    "BHARTIARTL": "Infra",
}


def get_sector(symbol: Optional[str]) -> Optional[str]:
    """Return the sector name for *symbol*, or None when unmapped."""
    if not symbol:
        return None
    return SECTOR_MAP.get(symbol.upper())


def root_symbol(tradingsymbol: Optional[str]) -> str:
    """Strip the expiry/strike suffix: ``RELIANCE26MAR1400CE`` → ``RELIANCE``."""
    if not tradingsymbol:
        return ""
    for i, ch in enumerate(tradingsymbol):
        if ch.isdigit():
            return tradingsymbol[:i].upper()
    return tradingsymbol.upper()
