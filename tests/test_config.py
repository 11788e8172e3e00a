"""Tests for tradegate.config — environment variable loading and validation."""

import pytest

from tradegate.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure TradeGate env vars are cleared between tests."""
    for var in [
        "KITE_API_KEY",
        "KITE_ACCESS_TOKEN",
        "KITE_BASE_URL",
        "MARKET_DATA_BASE_URL",
        "SESSION_UTC_OFFSET_MINUTES",
        "BENCHMARK_SYMBOL",
        "TOKEN_CACHE_TTL_SECONDS",
        "CANDLE_CACHE_TTL_SECONDS",
        "LOG_LEVEL",
        "API_PORT",
    ]:
        monkeypatch.delenv(var, raising=False)


def _set_required(monkeypatch):
    """Set the minimum required environment variables."""
    monkeypatch.setenv("KITE_API_KEY", "kite-key")
    monkeypatch.setenv("KITE_ACCESS_TOKEN", "kite-token")


class TestLoadConfig:
    def test_loads_required_vars(self, monkeypatch, tmp_path):
        _set_required(monkeypatch)
        cfg = load_config(env_path=str(tmp_path / "nonexistent.env"))
        assert cfg.kite_api_key == "kite-key"
        assert cfg.kite_access_token == "kite-token"
        assert cfg.kite_auth_header == "token kite-key:kite-token"

    def test_defaults(self, monkeypatch, tmp_path):
        _set_required(monkeypatch)
        cfg = load_config(env_path=str(tmp_path / "nonexistent.env"))
        assert cfg.kite_base_url == "https://api.kite.trade"
        assert cfg.market_data_base_url == "http://localhost:3000/api"
        assert cfg.session_utc_offset_minutes == 330
        assert cfg.benchmark_symbol == "NIFTY"
        assert cfg.token_cache_ttl_seconds == 86400
        assert cfg.candle_cache_ttl_seconds == 60
        assert cfg.log_level == "INFO"
        assert cfg.api_port == 8080

    def test_overrides(self, monkeypatch, tmp_path):
        _set_required(monkeypatch)
        monkeypatch.setenv("MARKET_DATA_BASE_URL", "http://dashboard:3000/api/")
        monkeypatch.setenv("BENCHMARK_SYMBOL", "banknifty")
        monkeypatch.setenv("SESSION_UTC_OFFSET_MINUTES", "0")
        cfg = load_config(env_path=str(tmp_path / "nonexistent.env"))
        assert cfg.market_data_base_url == "http://dashboard:3000/api"
        assert cfg.benchmark_symbol == "BANKNIFTY"
        assert cfg.session_utc_offset_minutes == 0

    def test_config_missing_var(self, monkeypatch, tmp_path):
        # Only set one of two required vars; use a non-existent env_path
        # so load_dotenv doesn't re-populate from the real .env file
        monkeypatch.setenv("KITE_API_KEY", "kite-key")
        with pytest.raises(ValueError, match="KITE_ACCESS_TOKEN"):
            load_config(env_path=str(tmp_path / "nonexistent.env"))

    def test_reads_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("KITE_API_KEY=file-key\nKITE_ACCESS_TOKEN=file-token\nAPI_PORT=9000\n")
        cfg = load_config(env_path=str(env_file))
        assert cfg.kite_api_key == "file-key"
        assert cfg.api_port == 9000
