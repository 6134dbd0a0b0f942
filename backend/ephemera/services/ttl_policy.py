# backend/ephemera/services/ttl_policy.py
from datetime import datetime, timedelta, timezone

from ephemera.config import Settings
from ephemera.errors import InvalidTTL
from ephemera.utils.duration import parse_duration


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ttl(value: str) -> timedelta:
    """Parse a user supplied duration, raising InvalidTTL instead of ValueError."""
    try:
        return parse_duration(value)
    except ValueError as e:
        raise InvalidTTL(f"failed to parse ttl duration {value!r}: {e}") from e


def max_horizon(settings: Settings) -> timedelta:
    return timedelta(hours=settings.max_ttl_hours)


def initial_ttl(settings: Settings, value: str, now: datetime) -> datetime:
    """Absolute expiry for a new instance, bounded to the maximum horizon."""
    duration = parse_ttl(value)
    if duration <= timedelta(0):
        raise InvalidTTL(f"ttl must be positive, got {value!r}")
    if duration > max_horizon(settings):
        raise InvalidTTL(f"maximum ttl is {settings.max_ttl_hours}h")
    return now + duration
