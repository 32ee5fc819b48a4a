"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timezone


def add_months(start: date, months: int) -> date:
    """
    Advance a date by whole calendar months.

    The day is clamped to the last day of the target month, so
    Jan 31 + 1 month is Feb 28 (or 29), not Mar 3.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def months_between(start: date, end: date) -> int:
    """Number of complete calendar months from start to end (0 if end precedes start)"""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(months, 0)


def days_between(start: date, end: date) -> int:
    """Signed day difference end - start"""
    return (end - start).days


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on the way back)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
