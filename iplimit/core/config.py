"""Application configuration using Pydantic Settings.

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


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_csv(value: str | None) -> set[str]:
    """Parse a comma-separated setting into a set of trimmed, non-empty items.

    Examples:
        >>> sorted(parse_csv("/health, /docs"))
        ['/docs', '/health']
        >>> parse_csv(None)
        set()
    """
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    name: str = Field(
        "iplimit",
        description="Service name reported in OpenAPI metadata",
    )
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LimitSettings(BaseSettings):
    """Per-client-address admission limits.

    The window and count are read once at startup; changing them requires a
    restart.
    """

    enabled: bool = Field(
        True,
        description="Mount the default rate limit middleware on the app",
    )
    limit_time_ip: int = Field(
        3600,
        description="Fixed window length in seconds",
        ge=1,
    )
    limit_count_ip: int = Field(
        15000,
        description="Maximum admissions per client address per window",
        ge=1,
    )
    key_prefix: str = Field(
        "ip_limit:",
        description="Prefix prepended to the client address to build counter keys",
    )
    fail_open_on_store_error: bool = Field(
        False,
        description="Admit requests when the counter store errors instead of rejecting them",
    )
    exempt_paths: str = Field(
        "/health",
        description="Comma-separated request paths never counted by the middleware",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMIT_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Shared counter store connection.

    When disabled, no store is configured and the default policy admits every
    request.
    """

    enabled: bool = Field(
        False,
        description="Connect to Redis for shared rate limit counters",
    )
    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (use rediss:// for TLS)",
    )
    socket_timeout: float | None = Field(
        2.0,
        description="Per-command deadline in seconds; None waits indefinitely",
    )
    socket_connect_timeout: float | None = Field(
        2.0,
        description="Connection deadline in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    limit: LimitSettings = Field(default_factory=LimitSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
