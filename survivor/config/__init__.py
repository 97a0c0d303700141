"""
Configuration module with strongly typed settings.

Usage:
    from survivor.config import settings

    print(settings.scheduler.lookahead_hours)
    print(settings.store.db_path)
"""
from .settings import (
    Settings,
    StoreSettings,
    SchedulerSettings,
    ScoreFeedSettings,
    ApiSettings,
    ObservabilitySettings,
)

# Singleton instance - validates on import
settings = Settings()

__all__ = [
    "settings",
    "Settings",
    "StoreSettings",
    "SchedulerSettings",
    "ScoreFeedSettings",
    "ApiSettings",
    "ObservabilitySettings",
]
