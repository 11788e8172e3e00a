"""TradeGate — application entry point.

Boots the FastAPI internal server and provides the CLI entry point.
"""

import logging

from fastapi import FastAPI

from tradegate.api.routers import router

app = FastAPI(title="TradeGate Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradegate")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


def build_intelligence(config):
    """Wire the collaborator clients into an ``OrderIntelligence``."""
    from tradegate.broker.kite_client import KiteClient
    from tradegate.cache import InMemoryCache
    from tradegate.market.client import MarketDataClient
    from tradegate.orchestrator import OrderIntelligence

    broker = KiteClient(config, cache=InMemoryCache())
    market_data = MarketDataClient(config)
    return OrderIntelligence(
        broker=broker,
        market_data=market_data,
        utc_offset_minutes=config.session_utc_offset_minutes,
        benchmark_symbol=config.benchmark_symbol,
    )


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and start the API server."""
    import argparse

    import uvicorn

    from tradegate.api.routers import configure_routers
    from tradegate.config import load_config

    parser = argparse.ArgumentParser(description="TradeGate order intelligence service")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port (default: API_PORT or 8080)")
    parser.add_argument("--env-file", help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    configure_routers(intelligence=build_intelligence(config))

    port = args.port or config.api_port
    logger.info("Starting TradeGate on %s:%d", args.host, port)
    uvicorn.run(app, host=args.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    _run_cli()
