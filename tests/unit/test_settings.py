"""Unit tests for settings."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from binproxy.config.settings import DEFAULT_SWAGGER_FILE, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove environment variables that would leak into settings."""
    for name in ("PORT", "BINANCE_API_URL", "BINPROXY_PORT", "BINPROXY_UPSTREAM_URL", "BINPROXY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Test default settings."""
    settings = Settings()

    assert settings.port == 8080
    assert settings.upstream_url == "https://api.binance.com/api/v3"
    assert settings.timeout == 30.0
    assert settings.api_prefix == "/api"
    assert settings.symbols_param == "symbols"
    assert settings.user_agent == "Binance-Proxy/1.0"
    assert settings.strict_decompression is False
    assert settings.get_swagger_path() == DEFAULT_SWAGGER_FILE


def test_legacy_env_names(monkeypatch):
    """Test PORT and BINANCE_API_URL are honoured."""
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("BINANCE_API_URL", "https://testnet.binance.vision/api/v3")

    settings = Settings()

    assert settings.port == 9090
    assert settings.upstream_url == "https://testnet.binance.vision/api/v3"


def test_prefixed_env_names(monkeypatch):
    """Test BINPROXY_ prefixed variables."""
    monkeypatch.setenv("BINPROXY_TIMEOUT", "5")
    monkeypatch.setenv("BINPROXY_UPSTREAM_URL", "http://localhost:9000")

    settings = Settings()

    assert settings.timeout == 5.0
    assert settings.upstream_url == "http://localhost:9000"


def test_load_from_file():
    """Test loading settings from YAML."""
    with TemporaryDirectory() as tmpdir:
        config_file = Path(tmpdir) / "config.yaml"
        config_file.write_text(
            "port: 7000\nupstream_url: http://localhost:9000\nstrict_decompression: true\n",
            encoding="utf-8",
        )

        settings = Settings.load_from_file(str(config_file))

    assert settings.port == 7000
    assert settings.upstream_url == "http://localhost:9000"
    assert settings.strict_decompression is True


def test_overrides_via_copy():
    """Test settings are immutable but can be copied with overrides."""
    settings = Settings()
    updated = settings.model_copy(update={"port": 1234})

    assert updated.port == 1234
    assert settings.port == 8080
