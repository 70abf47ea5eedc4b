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

_env_path = PROJECT_ROOT / ENV_FILE_MAP.get(APP_ENV, ".env.development")

# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_path.is_file():
    from dotenv import load_dotenv

    load_dotenv(_env_path, override=True)


class RateLimitSettings(BaseSettings):
    """Admission control configuration."""

    enabled: bool = Field(
        True,
        description="Enforce quotas; when false every request is admitted",
    )
    default_max_requests: int = Field(
        100,
        description="Requests per window for endpoints with no matching policy",
        ge=1,
    )
    default_window_seconds: int = Field(
        900,
        description="Window length in seconds for the default policy",
        ge=1,
    )
    overrides: dict[str, str] = Field(
        default_factory=dict,
        description='Extra endpoint policies as JSON, e.g. {"auth/login": "3/900"}',
    )
    shard_count: int = Field(
        16,
        description="Number of independently locked partitions in the store",
        ge=1,
    )
    sweep_interval_seconds: float | None = Field(
        None,
        description="Seconds between expired-window sweeps (default: a third of the smallest window)",
        gt=0,
    )
    api_prefix: str = Field(
        "/api/",
        description="Path prefix stripped before deriving the endpoint key",
    )
    include_headers: bool = Field(
        True,
        description="Attach X-RateLimit-* headers to admitted responses",
    )
    subject_claims: list[str] = Field(
        default_factory=lambda: ["userId", "sub", "user_id"],
        description="Bearer token claims checked, in order, for a subject id",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Admin endpoint protection."""

    api_key_required: bool = Field(
        True,
        description="Whether admin endpoints require X-Admin-Key",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin keys",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate log file at this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Composed from the per-concern settings above. Raises validation errors on
    startup if any value is out of range.
    """

    app_env: str = APP_ENV
    debug: bool = Field(False, description="Enable debug mode")
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


settings = Settings()
