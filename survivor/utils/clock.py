"""
Effective "now" for scheduling decisions.

In test mode SCHEDULER_SIMULATED_NOW pins the clock so rounds can be walked
through without waiting for real deadlines.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def effective_now(override: Optional[datetime] = None) -> datetime:
    """Explicit override, else simulated clock from settings, else wall clock."""
    if override is not None:
        return ensure_utc(override)

    from survivor.config import settings

    if settings.scheduler.simulated_now is not None:
        return ensure_utc(settings.scheduler.simulated_now)
    return utc_now()


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value is not None else None


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
