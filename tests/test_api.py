"""Tests for the internal API — /order-intelligence, /status and /health."""

from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from tradegate.agents.context import SectorSnapshot, Sentiment
from tradegate.api.routers import configure_routers
from tradegate.config import Config
from tradegate.main import app, build_intelligence
from tradegate.orchestrator import OrderIntelligence

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_intelligence(payload=None):
    """Return a mock OrderIntelligence with a canned evaluate response."""
    intelligence = AsyncMock()
    intelligence.evaluate.return_value = payload or {
        "behavioral": {"checks": [], "triggered": [], "riskScore": 0, "verdict": "clear"},
        "structure": None,
    }
    return intelligence


def _intelligence_with_fakes() -> OrderIntelligence:
    """Return a real OrderIntelligence over mocked broker and market-data clients."""
    broker = AsyncMock()
    broker.list_positions.return_value = []
    broker.list_orders.return_value = []
    broker.fetch_candles.return_value = []
    market = AsyncMock()
    market.fetch_sentiment.return_value = Sentiment()
    market.fetch_sector.return_value = SectorSnapshot()
    market.fetch_vix.return_value = 14.0
    # 2026-03-24 11:00 IST
    return OrderIntelligence(broker, market, clock=lambda: 1774330200.0)


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health_ok(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestOrderIntelligenceEndpoint:
    def test_returns_evaluation(self):
        intelligence = _make_intelligence()
        configure_routers(intelligence=intelligence)
        body = {"symbol": "INFY", "transactionType": "BUY", "includeStructure": False}
        resp = client.post("/order-intelligence", json=body)
        assert resp.status_code == 200
        assert resp.json()["behavioral"]["verdict"] == "clear"
        intelligence.evaluate.assert_awaited_once_with(body)

    def test_missing_symbol_is_400(self):
        intelligence = _make_intelligence()
        configure_routers(intelligence=intelligence)
        resp = client.post("/order-intelligence", json={"transactionType": "BUY"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "symbol required"}
        intelligence.evaluate.assert_not_called()

    def test_missing_both_is_400(self):
        configure_routers(intelligence=_make_intelligence())
        resp = client.post("/order-intelligence", json={"exchange": "NSE"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "symbol and transactionType required"

    def test_unparseable_spot_price_still_evaluates(self):
        body = {"symbol": "INFY", "transactionType": "BUY", "spotPrice": "abc"}
        configure_routers(intelligence=_intelligence_with_fakes())
        resp = client.post("/order-intelligence", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert "unavailable" not in data["behavioral"]
        assert data["behavioral"]["riskScore"] == 0

    def test_not_configured_is_503(self):
        configure_routers(intelligence=None)
        resp = client.post("/order-intelligence", json={"symbol": "INFY", "transactionType": "BUY"})
        assert resp.status_code == 503


class TestStatusEndpoint:
    def test_counts_evaluations(self):
        configure_routers(intelligence=_make_intelligence())
        client.post("/order-intelligence", json={"symbol": "INFY", "transactionType": "BUY"})
        client.post("/order-intelligence", json={"symbol": "TCS"})
        data = client.get("/status").json()
        assert data["configured"] is True
        assert data["evaluations"] == 1
        assert data["uptime_seconds"] >= 0

    def test_unconfigured(self):
        configure_routers(intelligence=None)
        assert client.get("/status").json()["configured"] is False


class TestBuildIntelligence:
    def test_wires_orchestrator(self):
        config = Config(
            kite_api_key="kite-key",
            kite_access_token="kite-token",
            kite_base_url="https://api.kite.test",
            market_data_base_url="http://dashboard.test/api",
            session_utc_offset_minutes=330,
            benchmark_symbol="BANKNIFTY",
            token_cache_ttl_seconds=86400,
            candle_cache_ttl_seconds=60,
            log_level="INFO",
            api_port=8080,
        )
        assert isinstance(build_intelligence(config), OrderIntelligence)
