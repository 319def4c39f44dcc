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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    title: str = Field(
        "Recipe Gate",
        description="Title shown in the OpenAPI document",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiter store sizing, client identification and named policies.

    Request budgets are not range-checked: a ``*_max_requests`` of 0 rejects
    every request after the first one of each window.
    """

    enabled: bool = Field(
        True,
        description="Enable per-client rate limiting",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-Limit and X-RateLimit-Reset headers when throttling",
    )

    store_max_size: int = Field(
        5000,
        description="Maximum distinct client identifiers retained per policy store",
        ge=1,
    )
    cleanup_interval_ms: int = Field(
        60_000,
        description="Minimum time between two sweeps of expired windows",
        ge=0,
    )
    eviction_fraction: float = Field(
        0.2,
        description="Share of capacity evicted when a new client arrives at a full store",
        ge=0,
        le=1,
    )

    client_id_headers: str = Field(
        "x-forwarded-for,x-real-ip,cf-connecting-ip",
        description="Comma-separated request headers checked in order for the client identifier",
    )
    fallback_client_id: str = Field(
        "anonymous",
        description="Identifier shared by every client without identifying headers",
    )

    strict_interval_ms: int = Field(60_000, gt=0)
    strict_max_requests: int = Field(5, description="Authentication endpoints")
    write_interval_ms: int = Field(60_000, gt=0)
    write_max_requests: int = Field(30, description="Mutating operations")
    read_interval_ms: int = Field(60_000, gt=0)
    read_max_requests: int = Field(100, description="Read-only queries")
    upload_interval_ms: int = Field(60_000, gt=0)
    upload_max_requests: int = Field(10, description="File uploads")

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and return the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
