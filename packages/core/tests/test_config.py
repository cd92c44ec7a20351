"""Tests for the configuration system."""

from pathlib import Path

import pytest

from zakat_core.config import DEFAULT_PRICE_URL, PriceSourceConfig, ZakatConfig


class TestPriceSourceConfig:
    """Test suite for PriceSourceConfig."""

    def test_default_values(self):
        """PriceSourceConfig should have sensible defaults."""
        config = PriceSourceConfig()

        assert config.url == DEFAULT_PRICE_URL == "https://api.metals.live/v1/spot"
        assert config.timeout == 10.0
        assert config.cache_max_age == 3600
        assert config.cache_max_age_ms == 3_600_000
        assert config.enabled is True

    def test_custom_values(self):
        config = PriceSourceConfig(
            url="http://localhost:8080/spot",
            timeout=2.5,
            cache_max_age=60,
            enabled=False,
        )

        assert config.url == "http://localhost:8080/spot"
        assert config.timeout == 2.5
        assert config.cache_max_age_ms == 60_000
        assert config.enabled is False

    def test_url_validation(self):
        """Only http(s) URLs are accepted."""
        assert PriceSourceConfig(url="  https://example.test/spot ").url == "https://example.test/spot"

        with pytest.raises(ValueError):
            PriceSourceConfig(url="ftp://example.test/spot")

        with pytest.raises(ValueError):
            PriceSourceConfig(url="")

    def test_positive_limits(self):
        with pytest.raises(ValueError):
            PriceSourceConfig(timeout=0)

        with pytest.raises(ValueError):
            PriceSourceConfig(cache_max_age=-1)

    def test_from_environment(self, monkeypatch):
        """PriceSourceConfig should load from environment variables."""
        monkeypatch.setenv("ZAKAT_PRICE_URL", "https://mirror.test/spot")
        monkeypatch.setenv("ZAKAT_PRICE_TIMEOUT", "3")
        monkeypatch.setenv("ZAKAT_PRICE_CACHE_MAX_AGE", "120")
        monkeypatch.setenv("ZAKAT_PRICE_ENABLED", "false")

        config = PriceSourceConfig()

        assert config.url == "https://mirror.test/spot"
        assert config.timeout == 3.0
        assert config.cache_max_age == 120
        assert config.enabled is False


class TestZakatConfig:
    """Test suite for ZakatConfig."""

    def test_default_values(self):
        """ZakatConfig should have sensible defaults."""
        config = ZakatConfig()

        assert config.log_level == "WARNING"
        assert config.log_json is False
        assert config.storage_dir == Path("./data")
        assert isinstance(config.price, PriceSourceConfig)

    def test_log_level_validation(self):
        config = ZakatConfig(log_level="debug")

        assert config.log_level == "DEBUG"
        assert ZakatConfig(log_level=" info ").log_level == "INFO"

        with pytest.raises(ValueError):
            ZakatConfig(log_level="VERBOSE")

    def test_from_environment(self, monkeypatch):
        """ZakatConfig should load from environment variables."""
        monkeypatch.setenv("ZAKAT_LOG_LEVEL", "INFO")
        monkeypatch.setenv("ZAKAT_LOG_JSON", "true")
        monkeypatch.setenv("ZAKAT_STORAGE_DIR", "/custom/path")
        monkeypatch.setenv("ZAKAT_PRICE_ENABLED", "false")

        config = ZakatConfig()

        assert config.log_level == "INFO"
        assert config.log_json is True
        assert config.storage_dir == Path("/custom/path")
        assert config.price.enabled is False

    def test_loads_from_dotenv_file(self, tmp_path, monkeypatch):
        """ZakatConfig should load from .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "ZAKAT_LOG_JSON=true\n"
            "ZAKAT_LOG_LEVEL=ERROR\n"
            "ZAKAT_PRICE_CACHE_MAX_AGE=900\n"
        )
        monkeypatch.chdir(tmp_path)

        config = ZakatConfig()

        assert config.log_json is True
        assert config.log_level == "ERROR"
        assert config.price.cache_max_age == 900

    def test_unknown_settings_ignored(self, monkeypatch):
        """Variables under the prefix that name no setting are ignored."""
        monkeypatch.setenv("ZAKAT_ENV", "production")

        config = ZakatConfig()

        assert not hasattr(config, "env")
        assert "env" not in config.model_dump()

    def test_nested_override(self, tmp_path):
        config = ZakatConfig(storage_dir=tmp_path, price=PriceSourceConfig(enabled=False))

        assert config.storage_dir == tmp_path
        assert config.price.enabled is False
