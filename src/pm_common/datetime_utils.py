"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_midnight(value: datetime) -> datetime:
    """Floor a timestamp to 00:00 UTC of its day."""
    return ensure_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def next_utc_midnight(value: datetime) -> datetime:
    return utc_midnight(value) + ONE_DAY
