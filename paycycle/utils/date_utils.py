"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import List, Tuple


def is_leap_year(year: int) -> bool:
    """Gregorian leap-year rule"""
    return calendar.isleap(year)


def last_day_of_month(year: int, month: int) -> int:
    """Number of the last day in a 1-indexed month"""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return calendar.monthrange(year, month)[1]


def days_in_month(year: int, month: int) -> int:
    return last_day_of_month(year, month)


def weekday(day: date) -> int:
    """Day of week with Monday=0 ... Sunday=6"""
    return day.weekday()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move a (year, month) pair by a number of months, rolling the year over"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def add_months(day: date, months: int) -> date:
    """
    Add calendar months to a date.

    The day is clamped to the target month's length, so Jan 31 + 1 month
    is Feb 28 (or Feb 29 in a leap year) rather than spilling into March.
    """
    year, month = shift_month(day.year, day.month, months)
    return date(year, month, min(day.day, last_day_of_month(year, month)))


def next_month(year: int, month: int) -> Tuple[int, int]:
    return shift_month(year, month, 1)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    return shift_month(year, month, -1)


def month_range(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month (inclusive bounds)"""
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def is_same_month(first: date, second: date) -> bool:
    return (first.year, first.month) == (second.year, second.month)


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def to_iso(day: date) -> str:
    """Format as YYYY-MM-DD"""
    return day.isoformat()


def parse_iso(value: str) -> date:
    """Parse a YYYY-MM-DD string; raises ValueError when malformed"""
    return date.fromisoformat(value)
