"""Time helpers — UTC normalization and calendar ranges.

Invariants:
    - Every datetime leaving this module is timezone-aware UTC
    - Functions take `now` as a parameter; only utc_now() reads the clock

Design Decisions:
    - ensure_utc treats naive datetimes as UTC: SQLite drops tzinfo on
      round-trip while PostgreSQL keeps it, so comparisons must normalize
"""

import calendar
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_range(now: datetime) -> tuple[datetime, datetime]:
    """First and last instant of the month containing `now`."""
    now = ensure_utc(now)
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(
        day=last_day, hour=23, minute=59, second=59, microsecond=999999,
    )
    return start, end


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Jan 31 + 1 -> Feb 28/29)."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
