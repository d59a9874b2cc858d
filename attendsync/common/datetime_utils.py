# attendsync/common/datetime_utils.py
from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo

MINUTES_PER_DAY = 24 * 60


def utc_now() -> datetime:
    """Current aware UTC time.

    Wrapped so tests can patch it easily.
    """
    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are interpreted as UTC, which is how SQLite hands back
    timestamps that were written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_since_midnight(value: datetime, day: date, tz: tzinfo) -> float:
    """
    Wall-clock minutes between local midnight of `day` and `value`.

    The result is not clipped, so instants on the previous or next day give
    negative values or values above 1440.
    """
    local = ensure_utc(value).astimezone(tz)
    delta = local.replace(tzinfo=None) - datetime.combine(day, time.min)
    return delta.total_seconds() / 60.0


def is_weekday(day: date) -> bool:
    return day.weekday() < 5
