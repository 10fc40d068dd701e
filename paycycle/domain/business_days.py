"""Business-day classification and shifting"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import FrozenSet, Iterable, List, Optional, Tuple

from paycycle.config import settings
from paycycle.utils.date_utils import generate_date_range, month_range

SATURDAY = 5
SUNDAY = 6


@dataclass(frozen=True)
class HolidayCalendar:
    """Fixed-date holidays, matched on (month, day) every year"""

    fixed_dates: FrozenSet[Tuple[int, int]] = frozenset({(1, 1)})

    @classmethod
    def from_strings(cls, values: Iterable[str]) -> "HolidayCalendar":
        """Build from MM-DD strings as stored in settings"""
        pairs = set()
        for raw in values:
            month, _, day = raw.partition("-")
            pairs.add((int(month), int(day)))
        return cls(fixed_dates=frozenset(pairs))

    def with_dates(self, *pairs: Tuple[int, int]) -> "HolidayCalendar":
        return HolidayCalendar(fixed_dates=self.fixed_dates | frozenset(pairs))

    def matches(self, day: date) -> bool:
        return (day.month, day.day) in self.fixed_dates


DEFAULT_CALENDAR = HolidayCalendar.from_strings(settings.holidays)


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def is_holiday(day: date, holidays: Optional[HolidayCalendar] = None) -> bool:
    return (holidays or DEFAULT_CALENDAR).matches(day)


def is_non_business_day(day: date, holidays: Optional[HolidayCalendar] = None) -> bool:
    return is_weekend(day) or is_holiday(day, holidays)


def is_business_day(day: date, holidays: Optional[HolidayCalendar] = None) -> bool:
    return not is_non_business_day(day, holidays)


def adjust_forward(day: date, holidays: Optional[HolidayCalendar] = None) -> date:
    """First business day on or after `day` (identity on a business day)"""
    adjusted = day
    while is_non_business_day(adjusted, holidays):
        adjusted += timedelta(days=1)
    return adjusted


def adjust_backward(day: date, holidays: Optional[HolidayCalendar] = None) -> date:
    """Last business day on or before `day` (identity on a business day)"""
    adjusted = day
    while is_non_business_day(adjusted, holidays):
        adjusted -= timedelta(days=1)
    return adjusted


def business_days_in_month(year: int, month: int, holidays: Optional[HolidayCalendar] = None) -> List[date]:
    first, last = month_range(year, month)
    return [d for d in generate_date_range(first, last) if is_business_day(d, holidays)]


def business_days_between(start: date, end: date, holidays: Optional[HolidayCalendar] = None) -> int:
    """Count business days in [start, end]; 0 when start is after end"""
    if start > end:
        return 0
    return sum(1 for d in generate_date_range(start, end) if is_business_day(d, holidays))
