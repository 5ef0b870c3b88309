from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(t: time, *, is_end_time: bool = False) -> int:
    """
    Convert time to minutes since midnight.

    Args:
        t: Time object.
        is_end_time: If True, treat time(0, 0) as 1440 (end of day).

    Returns:
        Minutes since midnight (0-1440).
    """
    minutes = t.hour * 60 + t.minute
    if is_end_time and minutes == 0:
        return MINUTES_PER_DAY
    return minutes


def minutes_to_time_str(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM.

    1440 is rendered as "24:00".
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return "24:00"
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_of_week(d: date) -> int:
    """Day index with 0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def week_start_sunday(d: date) -> date:
    return d - timedelta(days=day_of_week(d))


def day_start_utc(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def combine_utc(d: date, minutes: int) -> datetime:
    """Instant at `minutes` past UTC midnight of d (1440 rolls over to the next day)."""
    return day_start_utc(d) + timedelta(minutes=minutes)


def iter_dates(first: date, last: date) -> Iterator[date]:
    """Yield every date from first to last inclusive."""
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)
