"""
Configuration Management Module

This module handles all service configuration loading from environment
variables and an optional .env file. It uses pydantic-settings for validation
and type safety. The resulting settings object is frozen: it is read-only
process-wide configuration injected into the request translator.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

ALLOWED_INTERVALS: Tuple[str, ...] = (
    "1s",
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
)


class Settings(BaseSettings):
    """
    Main configuration class for the kline proxy.

    Every field can be overridden with a ``KLINE_PROXY_``-prefixed
    environment variable (e.g. ``KLINE_PROXY_UPSTREAM_TIMEOUT=5``).

    Usage:
        settings = Settings()
        url = settings.upstream_klines_url
    """

    # Environment
    environment: str = Field(default="dev", description="dev/test/prod")

    # Upstream
    upstream_base_url: str = Field(default="https://api.binance.com")
    upstream_klines_path: str = Field(default="/api/v3/klines")
    upstream_user_agent: str = Field(default="kline-worker/1.0")
    upstream_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Total timeout for the outbound call in seconds"
    )
    source_name: str = Field(default="binance", description="Source tag echoed in responses")

    # Query defaults
    default_symbol: str = Field(default="BTCUSDT")
    default_interval: str = Field(default="1m")
    default_limit: int = Field(default=100, gt=0)
    max_limit: int = Field(default=1000, gt=0)
    allowed_intervals: Tuple[str, ...] = Field(default=ALLOWED_INTERVALS)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    timezone: str = Field(default="UTC", description="Timezone used in log timestamps")

    # API Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_reload: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="KLINE_PROXY_",
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator('upstream_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended directly"""
        return v.rstrip("/")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is a known level name"""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_defaults(self) -> "Settings":
        """Defaults must themselves pass validation"""
        if self.default_interval not in self.allowed_intervals:
            raise ValueError("default_interval must be one of allowed_intervals")
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must be <= max_limit")
        return self

    @property
    def upstream_klines_url(self) -> str:
        """Full upstream endpoint without query string"""
        return f"{self.upstream_base_url}{self.upstream_klines_path}"


# Global config instance
_config: Optional[Settings] = None


def get_config() -> Settings:
    """
    Get global configuration instance (singleton pattern).

    Returns:
        Settings object
    """
    global _config
    if _config is None:
        _config = Settings()
    return _config


def reload_config() -> Settings:
    """
    Reload configuration from environment.

    Returns:
        New Settings object
    """
    global _config
    _config = Settings()
    return _config
