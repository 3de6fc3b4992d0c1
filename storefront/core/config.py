"""Core configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from storefront.schemas.rate_limit import RateLimitPolicy


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class CacheSettings(BaseSettings):
    """TTL cache configuration. Durations are in milliseconds."""

    default_ttl_ms: int = Field(
        5 * 60 * 1000,
        description="TTL applied when set() is called without an explicit ttl",
        ge=1,
    )
    max_size: int = Field(
        1000,
        description="Maximum number of entries held by the cache",
        ge=1,
    )
    cleanup_interval_ms: int = Field(
        60 * 1000,
        description="Interval between background sweeps of expired entries",
        ge=1,
    )
    cleanup_enabled: bool = Field(
        True,
        description="Schedule the background sweep when the context initializes",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiter configuration.

    ``policies`` is read from RATE_LIMIT_POLICIES as a JSON object, e.g.
    ``{"login": {"window_ms": 60000, "max_requests": 3, "message": "..."}}``,
    and overrides the built-in defaults per endpoint.
    """

    cleanup_interval_ms: int = Field(
        5 * 60 * 1000,
        description="Interval between background sweeps of expired windows",
        ge=1,
    )
    cleanup_enabled: bool = Field(
        True,
        description="Schedule the background sweep when the context initializes",
    )
    policies: dict[str, RateLimitPolicy] = Field(
        default_factory=dict,
        description="Per-endpoint policy overrides applied on top of the defaults",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level name",
    )
    format: str = Field(
        "json",
        description="Log format: json or plain",
    )
    output: str = Field(
        "stdout",
        description="Log destination: stdout or file",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file. Every field
    has a default, so an empty environment yields a working configuration.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance; the composition root reads it when no explicit
# Settings object is passed.
settings = Settings()
