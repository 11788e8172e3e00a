"""TradeGate — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_REQUIRED_VARS = [
    "KITE_API_KEY",
    "KITE_ACCESS_TOKEN",
]


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    kite_api_key: str
    kite_access_token: str
    kite_base_url: str
    market_data_base_url: str
    session_utc_offset_minutes: int
    benchmark_symbol: str
    token_cache_ttl_seconds: int
    candle_cache_ttl_seconds: int
    log_level: str
    api_port: int

    @property
    def kite_auth_header(self) -> str:
        """Return the Kite Connect ``Authorization`` header value."""
        return f"token {self.kite_api_key}:{self.kite_access_token}"


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Config(
        kite_api_key=os.environ["KITE_API_KEY"],
        kite_access_token=os.environ["KITE_ACCESS_TOKEN"],
        kite_base_url=os.environ.get("KITE_BASE_URL", "https://api.kite.trade").rstrip("/"),
        market_data_base_url=os.environ.get(
            "MARKET_DATA_BASE_URL", "http://localhost:3000/api"
        ).rstrip("/"),
        session_utc_offset_minutes=int(os.environ.get("SESSION_UTC_OFFSET_MINUTES", "330")),
        benchmark_symbol=os.environ.get("BENCHMARK_SYMBOL", "NIFTY").upper(),
        token_cache_ttl_seconds=int(os.environ.get("TOKEN_CACHE_TTL_SECONDS", "86400")),
        candle_cache_ttl_seconds=int(os.environ.get("CANDLE_CACHE_TTL_SECONDS", "60")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=int(os.environ.get("API_PORT", "8080")),
    )
