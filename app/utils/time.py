"""Time Utilities for UTC management and calendar arithmetic"""

import calendar
from datetime import datetime, timezone
from typing import Tuple


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    Avoids 'datetime.utcnow()' deprecation warnings.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    return add_months(value, 12 * years)


def day_of_next_month(value: datetime, day: int) -> datetime:
    """Midnight on ``day`` of the month after ``value`` (e.g. the 11th for usage billing)."""
    first = add_months(start_of_day(value.replace(day=1)), 1)
    return first.replace(day=min(day, calendar.monthrange(first.year, first.month)[1]))


def previous_month(value: datetime) -> Tuple[int, int]:
    """(month, year) of the calendar month before ``value``."""
    if value.month == 1:
        return 12, value.year - 1
    return value.month - 1, value.year


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def month_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """First and last instant of ``value``'s calendar month."""
    last_day = calendar.monthrange(value.year, value.month)[1]
    return (
        start_of_day(value.replace(day=1)),
        end_of_day(value.replace(day=last_day)),
    )
