"""Date helpers shared by the JSON-backed history and the services."""

import calendar
from datetime import date, datetime, UTC
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]


def to_date(value: DateLike) -> Optional[date]:
    """Coerce a date, datetime or ISO string (date or datetime) to a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def to_iso(value: DateLike) -> Optional[str]:
    parsed = to_date(value)
    return parsed.isoformat() if parsed else None


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole days from start to end (may be negative)."""
    start_d, end_d = to_date(start), to_date(end)
    if start_d is None or end_d is None:
        return 0
    return (end_d - start_d).days


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
