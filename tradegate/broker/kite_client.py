"""Kite Connect REST API async client.

Handles the broker reads TradeGate needs: historical candles, the
positions and orders snapshots, and symbol → instrument-token resolution.
"""

import asyncio
import csv
import io
import logging
from datetime import datetime
from typing import Optional

import httpx

from tradegate.agents.context import OpenOrder, Position
from tradegate.broker.http import request_with_retry
from tradegate.cache import CacheProtocol
from tradegate.config import Config
from tradegate.strategy.models import CandleData

logger = logging.getLogger("tradegate")

_KITE_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_KITE_QUERY_FORMAT = "%Y-%m-%d %H:%M:%S"
_TOKEN_MAP_CACHE_KEY = "kite:token-map:NSE"

# Indices are not EQ rows in the NSE instruments dump.
INDEX_TOKENS = {
    "NIFTY": 256265,
    "BANKNIFTY": 260105,
    "FINNIFTY": 257801,
    "MIDCPNIFTY": 288009,
    "SENSEX": 265,
}


def parse_kite_time(value: str) -> int:
    """``"2024-01-15T09:15:00+0530"`` → unix seconds."""
    return int(datetime.strptime(value, _KITE_TIME_FORMAT).timestamp())


def parse_token_map(csv_text: str) -> dict[str, int]:
    """Build ``{tradingsymbol: instrument_token}`` from the EQ rows of an instruments dump."""
    token_map: dict[str, int] = {}
    for row in csv.DictReader(io.StringIO(csv_text.strip())):
        if (row.get("instrument_type") or "").strip() != "EQ":
            continue
        symbol = (row.get("tradingsymbol") or "").strip().upper()
        try:
            token = int(row.get("instrument_token") or "")
        except ValueError:
            continue
        if symbol:
            token_map[symbol] = token
    return token_map


class KiteClient:
    """Async client wrapping the Kite Connect v3 REST API."""

    def __init__(self, config: Config, cache: Optional[CacheProtocol] = None) -> None:
        self._config = config
        self._base_url = config.kite_base_url
        self._cache = cache
        self._headers = {
            "Authorization": config.kite_auth_header,
            "X-Kite-Version": "3",
        }
        # Fallback when no cache collaborator is injected
        self._token_map: Optional[dict[str, int]] = None
        self._token_map_loaded_at = 0.0

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        return await request_with_retry(
            method, url, headers=self._headers, service="Kite", **kwargs
        )

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        instrument_token: int,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> list[CandleData]:
        """Fetch historical candles from Kite.

        Args:
            instrument_token: numeric Kite instrument token
            interval: e.g. ``"15minute"``, ``"day"``, ``"week"``
            start: range start, exchange-local
            end: range end, exchange-local

        Returns:
            List of ``CandleData`` ordered oldest-first.
        """
        cache_key = (
            f"kite:candles:{instrument_token}:{interval}:"
            f"{start:%Y%m%d%H%M}:{end:%Y%m%d%H%M}"
        )
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return list(cached)

        url = f"{self._base_url}/instruments/historical/{instrument_token}/{interval}"
        params = {
            "from": start.strftime(_KITE_QUERY_FORMAT),
            "to": end.strftime(_KITE_QUERY_FORMAT),
        }
        resp = await self._request_with_retry("get", url, params=params)

        candles: list[CandleData] = []
        for row in resp.json().get("data", {}).get("candles", []):
            candles.append(
                CandleData(
                    time=parse_kite_time(row[0]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]) if len(row) > 5 else 0.0,
                )
            )
        candles.sort(key=lambda c: c.time)

        if self._cache is not None:
            self._cache.set(cache_key, tuple(candles), self._config.candle_cache_ttl_seconds)
        logger.debug(
            "Fetched %d %s candles for token %d", len(candles), interval, instrument_token
        )
        return candles

    # ── Account snapshots ────────────────────────────────────────────────

    async def list_positions(self) -> list[Position]:
        """Return the net positions of the account (zero-quantity rows included)."""
        url = f"{self._base_url}/portfolio/positions"
        resp = await self._request_with_retry("get", url)

        positions: list[Position] = []
        for p in resp.json().get("data", {}).get("net", []):
            positions.append(
                Position(
                    tradingsymbol=p.get("tradingsymbol", ""),
                    quantity=int(p.get("quantity") or 0),
                    pnl=float(p.get("pnl") or 0.0),
                    exchange=p.get("exchange", ""),
                    product=p.get("product", ""),
                )
            )
        return positions

    async def list_orders(self) -> list[OpenOrder]:
        """Return every order of the trading day, whatever its status."""
        url = f"{self._base_url}/orders"
        resp = await self._request_with_retry("get", url)

        return [
            OpenOrder(
                tradingsymbol=o.get("tradingsymbol", ""),
                status=o.get("status") or "",
                transaction_type=o.get("transaction_type") or "",
                quantity=int(o.get("quantity") or 0),
            )
            for o in resp.json().get("data", [])
        ]

    # ── Instrument tokens ────────────────────────────────────────────────

    async def _load_token_map(self) -> dict[str, int]:
        if self._cache is not None:
            cached = self._cache.get(_TOKEN_MAP_CACHE_KEY)
            if cached is not None:
                return cached
        else:
            age = asyncio.get_running_loop().time() - self._token_map_loaded_at
            if self._token_map is not None and age < self._config.token_cache_ttl_seconds:
                return self._token_map

        url = f"{self._base_url}/instruments/NSE"
        resp = await self._request_with_retry("get", url)
        token_map = parse_token_map(resp.text)
        logger.info("Loaded %d NSE equity instrument tokens", len(token_map))

        if self._cache is not None:
            self._cache.set(_TOKEN_MAP_CACHE_KEY, token_map, self._config.token_cache_ttl_seconds)
        else:
            self._token_map = token_map
            self._token_map_loaded_at = asyncio.get_running_loop().time()
        return token_map

    async def resolve_token(self, symbol: str) -> Optional[int]:
        """Return the instrument token for *symbol*, or ``None`` when unknown."""
        upper = (symbol or "").upper()
        if not upper:
            return None
        if upper in INDEX_TOKENS:
            return INDEX_TOKENS[upper]
        token_map = await self._load_token_map()
        return token_map.get(upper)
