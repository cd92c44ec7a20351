"""Configuration system for the Zakat worksheet.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults.

Usage:
    from zakat_core.config import ZakatConfig

    # Load from environment variables and .env file
    config = ZakatConfig()

    # Access price source settings
    print(config.price.url)
    print(config.price.cache_max_age)
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PRICE_URL = "https://api.metals.live/v1/spot"


class PriceSourceConfig(BaseSettings):
    """Silver spot price source settings.

    Environment Variables:
        ZAKAT_PRICE_URL: Endpoint returning the silver spot price per troy ounce
        ZAKAT_PRICE_TIMEOUT: Request timeout in seconds
        ZAKAT_PRICE_CACHE_MAX_AGE: Seconds a cached price stays fresh
        ZAKAT_PRICE_ENABLED: Fetch the price at startup
    """

    model_config = SettingsConfigDict(
        env_prefix="ZAKAT_PRICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(
        default=DEFAULT_PRICE_URL,
        description="Silver spot price endpoint",
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Request timeout in seconds",
    )
    cache_max_age: int = Field(
        default=60 * 60,
        gt=0,
        description="Seconds a cached price is reused without a network call",
    )
    enabled: bool = Field(
        default=True,
        description="Look the price up when a session starts",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure the URL is an http(s) URL."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Price source URL must be http(s): {v!r}")
        return v

    @property
    def cache_max_age_ms(self) -> int:
        return self.cache_max_age * 1000


class ZakatConfig(BaseSettings):
    """Root configuration for the Zakat worksheet.

    Environment Variables:
        ZAKAT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        ZAKAT_LOG_JSON: Render logs as JSON lines
        ZAKAT_STORAGE_DIR: Directory holding the snapshot and price cache

    Example:
        config = ZakatConfig(
            storage_dir="/tmp/zakat",
            price=PriceSourceConfig(enabled=False),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="ZAKAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(
        default="WARNING",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output",
    )
    storage_dir: Path = Field(
        default=Path("./data"),
        description="Directory for the local snapshot and price cache",
    )

    price: PriceSourceConfig = Field(default_factory=PriceSourceConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper
