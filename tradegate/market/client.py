"""Internal market-data services client.

Sentiment, sector performance, India VIX, market breadth and the index
option-chain summary are served by sibling HTTP services; this client
turns their JSON into the frozen summaries the agents read.
"""

import logging
from datetime import date
from typing import Any, Optional

from tradegate.agents.context import (
    MarketActivity,
    MarketBreadth,
    OIData,
    SectorSnapshot,
    Sentiment,
)
from tradegate.broker.http import request_with_retry
from tradegate.config import Config
from tradegate.market.sector_map import get_sector
from tradegate.strategy.bias import normalise_bias, sector_change_to_bias

logger = logging.getLogger("tradegate")


def _num(value: Any) -> Optional[float]:
    """Services send numbers as strings, numbers or ``"---"``."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _score(value: Any) -> float:
    score = _num(value)
    return 50.0 if score is None else score


def _parse_expiry(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_sentiment(payload: dict) -> Sentiment:
    timeframes = payload.get("timeframes") or {}
    daily = timeframes.get("daily") or {}
    intraday = timeframes.get("intraday") or {}
    return Sentiment(
        overall_bias=normalise_bias(daily.get("bias")),
        intraday_bias=normalise_bias(intraday.get("bias")),
        overall_score=_score(daily.get("score")),
        intraday_score=_score(intraday.get("score")),
    )


def parse_sector(payload: dict, symbol: str) -> SectorSnapshot:
    """Pick the row for *symbol*'s sector out of a sector-performance payload."""
    sector_name = get_sector(symbol)
    sectors = payload.get("sectors")
    if not sector_name or not isinstance(sectors, list):
        return SectorSnapshot()
    match = next((s for s in sectors if s.get("name") == sector_name), None)
    if match is None:
        return SectorSnapshot()
    change = _num(match.get("value"))
    return SectorSnapshot(name=sector_name, change=change, bias=sector_change_to_bias(change))


def parse_oi(payload: dict) -> OIData:
    activity = payload.get("marketActivity")
    market_activity = None
    if isinstance(activity, dict) and activity.get("activity"):
        market_activity = MarketActivity(
            activity=activity["activity"],
            description=activity.get("description") or "",
            actionable=activity.get("actionable") or "",
        )
    return OIData(
        spot_price=_num(payload.get("spotPrice")),
        pcr=_num(payload.get("pcr")),
        support=_num(payload.get("support")),
        support_oi=_num(payload.get("supportOI")),
        resistance=_num(payload.get("resistance")),
        resistance_oi=_num(payload.get("resistanceOI")),
        max_pain=_num(payload.get("maxPain")),
        expiry=_parse_expiry(payload.get("expiry")),
        market_activity=market_activity,
    )


class MarketDataClient:
    """Async client for the internal market-data services."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.market_data_base_url

    async def _get_json(self, path: str, **kwargs) -> dict:
        resp = await request_with_retry(
            "get", f"{self._base_url}{path}", service="Market data", **kwargs
        )
        return resp.json()

    async def fetch_sentiment(self) -> Sentiment:
        return parse_sentiment(await self._get_json("/sentiment"))

    async def fetch_sector(self, symbol: str) -> SectorSnapshot:
        return parse_sector(await self._get_json("/sector-performance"), symbol)

    async def fetch_vix(self) -> Optional[float]:
        payload = await self._get_json("/market-data")
        return _num((payload.get("indices") or {}).get("vix"))

    async def fetch_breadth(self) -> Optional[MarketBreadth]:
        payload = await self._get_json("/market-data")
        sentiment = payload.get("sentiment") or {}
        advances = sentiment.get("advances")
        declines = sentiment.get("declines")
        if advances is None or declines is None:
            return None
        return MarketBreadth(advances=int(advances), declines=int(declines))

    async def fetch_oi(self, underlying: str) -> OIData:
        """Option-chain summary for an index underlying (``NIFTY``, ``BANKNIFTY``)."""
        payload = await self._get_json(
            "/option-chain", params={"underlying": underlying.upper()}
        )
        if payload.get("error"):
            raise ValueError(f"Option chain unavailable for {underlying}: {payload['error']}")
        logger.debug("Option chain for %s: PCR %s", underlying, payload.get("pcr"))
        return parse_oi(payload)
