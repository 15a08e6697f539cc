"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Supports multiple environments (production, staging, dev)
- Defaults to SQLite (file-based) for easy local development
- Rollup schedule and query limits are tunable without code changes
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Database Configuration
    # For SQLite: sqlite+aiosqlite:///./linkstats.db (default)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./linkstats.db",
        description="Database connection string holding redirects, visits and daily summaries"
    )

    # Rollup Scheduling
    # The daily job aggregates the previous UTC day
    ROLLUP_SCHEDULER_ENABLED: bool = Field(
        default=True,
        description="Start the in-process daily rollup scheduler on application startup"
    )
    ROLLUP_HOUR: int = Field(
        default=0,
        ge=0,
        le=23,
        description="UTC hour at which the daily rollup runs"
    )
    ROLLUP_MINUTE: int = Field(
        default=15,
        ge=0,
        le=59,
        description="Minute of ROLLUP_HOUR at which the daily rollup runs"
    )
    ROLLUP_MISFIRE_GRACE_SECONDS: int = Field(
        default=3600,
        description="How late a missed daily rollup may still start (seconds)"
    )

    # Query Layer Limits
    STATS_DEFAULT_LIMIT: int = Field(
        default=10,
        description="Default number of rows returned by top-N queries"
    )
    STATS_MAX_LIMIT: int = Field(
        default=100,
        description="Upper bound accepted for the limit query parameter"
    )
    STATS_MAX_DAYS: int = Field(
        default=365,
        description="Upper bound accepted for the trailing-days query parameter"
    )
    RECENT_VISITS_LIMIT: int = Field(
        default=100,
        description="Number of raw visits returned by the per-redirect visit listing"
    )


settings = Settings()
