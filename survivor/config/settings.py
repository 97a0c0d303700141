"""
Strongly typed configuration using pydantic-settings.

All settings are validated at startup and loaded from:
1. Default values defined here
2. .env file (if present)
3. Environment variables (highest priority)

Environment variable naming:
- StoreSettings: STORE_DB_PATH
- SchedulerSettings: SCHEDULER_LOOKAHEAD_HOURS, SCHEDULER_SIMULATED_NOW, etc.
- ScoreFeedSettings: FEED_BASE_URL, FEED_TIMEOUT_S, etc.
- ApiSettings: CRON_SECRET (no prefix)
- ObservabilitySettings: ENVIRONMENT, LOG_LEVEL (no prefix)
"""
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """SQLite store location and connection behaviour."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    db_path: Path = Field(default=Path("data/survivor.db"), description="SQLite database file")
    busy_timeout_ms: int = Field(default=30000, ge=0, description="Wait on a locked database")


class SchedulerSettings(BaseSettings):
    """Round activation windows."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    # A round goes live when its deadline is inside [-lookbehind, +lookahead] of now
    lookahead_hours: float = Field(default=6.0, gt=0, le=48)
    lookbehind_hours: float = Field(default=24.0, ge=0, le=72)

    # Pick deadline = earliest tip-off minus this lead
    deadline_lead_minutes: int = Field(default=5, ge=0, le=120)

    # Test mode: pin the scheduler clock
    simulated_now: Optional[datetime] = Field(default=None)


class ScoreFeedSettings(BaseSettings):
    """ESPN scoreboard client settings."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    base_url: str = Field(
        default="https://site.api.espn.com/apis/site/v2/sports/basketball/mens-college-basketball"
    )
    timeout_s: float = Field(default=10.0, gt=0, le=60)
    max_retries: int = Field(default=2, ge=0, le=5)
    retry_delay_s: float = Field(default=1.0, ge=0.0, le=30.0)
    user_agent: str = Field(default="MBB-Survivor-Pool/1.0")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class ApiSettings(BaseSettings):
    """Trigger endpoint authentication."""

    model_config = SettingsConfigDict(env_prefix="")  # Direct: CRON_SECRET

    cron_secret: Optional[str] = Field(default=None, description="Shared bearer token for schedulers")


class ObservabilitySettings(BaseSettings):
    """Logging and metrics settings."""

    model_config = SettingsConfigDict(env_prefix="")  # Direct: ENVIRONMENT, LOG_LEVEL

    environment: str = Field(default="development", pattern="^(development|staging|production)$")
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    enable_metrics: bool = Field(default=True)


class Settings(BaseSettings):
    """
    Root settings aggregating all subsections.

    Usage:
        from survivor.config import settings

        settings.store.db_path
        settings.scheduler.lookahead_hours
        settings.feed.timeout_s
        settings.api.cron_secret
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    store: StoreSettings = Field(default_factory=StoreSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    feed: ScoreFeedSettings = Field(default_factory=ScoreFeedSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
