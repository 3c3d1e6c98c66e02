"""Tests for configuration."""

import pytest

from turnrelay.config import PROJECT_ROOT, RelayConfig, parse_token_regime, resolve_db_path
from turnrelay.models import TokenRegime

ENV_VARS = (
    "ENGINE_DOMAIN",
    "VOICEFLOW_DOMAIN",
    "ENGINE_API_KEY",
    "VOICEFLOW_API_KEY",
    "TOKEN_CONSUMPTION_TYPE",
    "APP_ENV",
    "ALLOWED_ORIGINS",
    "PORT",
    "API_PORT",
    "DATABASE_URL",
    "SPAN_REGISTRY_SIZE",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestRelayConfig:
    """Tests for RelayConfig.from_env()."""

    def test_defaults(self, clean_env):
        """Test defaults when nothing is set."""
        config = RelayConfig.from_env()

        assert config.engine_base_url == "https://general-runtime.voiceflow.com"
        assert config.port == 5252
        assert config.token_regime is TokenRegime.RAW
        assert config.span_registry_size == 50
        assert config.cors_origins == ["*"]

    def test_legacy_names(self, clean_env):
        """Test the engine's own variable names as fallbacks."""
        clean_env.setenv("VOICEFLOW_DOMAIN", "runtime.eu.example.com")
        clean_env.setenv("VOICEFLOW_API_KEY", "VF.DM.abc")

        config = RelayConfig.from_env()

        assert config.engine_base_url == "https://runtime.eu.example.com"
        assert config.engine_api_key == "VF.DM.abc"

    def test_production_origins(self, clean_env):
        """Test that production restricts CORS to the allowed origins."""
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")

        assert RelayConfig.from_env().cors_origins == ["https://a.example", "https://b.example"]

    def test_development_allows_all(self, clean_env):
        """Test that development ignores the allowed list."""
        clean_env.setenv("ALLOWED_ORIGINS", "https://a.example")

        assert RelayConfig.from_env().cors_origins == ["*"]

    def test_port(self, clean_env):
        clean_env.setenv("PORT", "8080")

        assert RelayConfig.from_env().port == 8080


class TestHelpers:
    """Tests for config helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("voiceflow", TokenRegime.POST_MULTIPLIER),
            ("VOICEFLOW", TokenRegime.POST_MULTIPLIER),
            ("raw", TokenRegime.RAW),
            ("", TokenRegime.RAW),
            (None, TokenRegime.RAW),
        ],
    )
    def test_parse_token_regime(self, value, expected):
        assert parse_token_regime(value) is expected

    def test_resolve_db_path(self):
        """Test memory, relative and absolute database paths."""
        assert resolve_db_path(":memory:") == ":memory:"
        assert resolve_db_path("03_data/test.db") == PROJECT_ROOT / "03_data/test.db"
        assert str(resolve_db_path("/tmp/spans.db")) == "/tmp/spans.db"
