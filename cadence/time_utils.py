"""
Time helpers.

Everything inside Cadence works in naive UTC datetimes; aware values coming
in from HTTP or collaborators are normalised here.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC. Naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def at_hour(day: date, hour: int) -> datetime:
    """Naive datetime for `day` at `hour`:00."""
    return datetime.combine(day, time(hour=hour))


def month_key(value: datetime) -> str:
    """Bucket key used for per-month counts, e.g. '2025-01'."""
    return value.strftime("%Y-%m")


def month_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """Half-open [first day of month, first day of next month)."""
    start = datetime(value.year, value.month, 1)
    if value.month == 12:
        end = datetime(value.year + 1, 1, 1)
    else:
        end = datetime(value.year, value.month + 1, 1)
    return start, end


def week_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """Half-open [Monday 00:00, next Monday 00:00) of the ISO week containing value."""
    start = start_of_day(value) - timedelta(days=value.weekday())
    return start, start + timedelta(days=7)
