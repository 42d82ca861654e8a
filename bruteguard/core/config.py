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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class BruteSettings(BaseSettings):
    """Brute-force protection policy knobs.

    These map one-to-one onto ``BrutePolicy``; range checks that depend on
    more than one field (e.g. max_wait_ms >= min_wait_ms) live on the policy.
    """

    free_retries: int = Field(
        2,
        description="Attempts allowed before any lockout delay applies",
        ge=0,
    )
    min_wait_ms: int = Field(
        500,
        description="First lockout delay in milliseconds (floored at 1)",
    )
    max_wait_ms: int = Field(
        1000 * 60 * 15,
        description="Lockout delay ceiling in milliseconds",
        ge=1,
    )
    lifetime_seconds: int | None = Field(
        None,
        description="How long failure counters live; derived from the delay schedule when unset",
        ge=1,
    )
    attach_reset_to_request: bool = Field(
        True,
        description="Attach a reset handle to request.state for each guarded request",
    )
    fail_policy: str = Field(
        "too_many_requests",
        description="Response on deny: too_many_requests, forbidden or mark",
    )
    ignore_ip: bool = Field(
        False,
        description="Leave the client address out of key derivation for the default dependency",
    )

    model_config = SettingsConfigDict(
        env_prefix="BRUTE_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Point store backend selection."""

    backend: str = Field(
        "memory",
        description="Point store backend: memory or redis",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (redis backend only)",
    )
    key_prefix: str = Field(
        "bruteguard",
        description="Prefix prepended to every store namespace",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file past this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the correlation id",
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
    guard_name: str = Field(
        "login",
        description="Instance identifier namespacing keys of the demo guard",
    )
    demo_username: str = Field(
        "admin",
        description="Username accepted by the demo login endpoint",
    )
    demo_password: str | None = Field(
        None,
        description="Password accepted by the demo login endpoint; login always fails when unset",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    brute: BruteSettings = Field(default_factory=BruteSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    app: AppSettings = Field(default_factory=AppSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
