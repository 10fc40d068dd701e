"""Billing-day token parsing: literal day numbers and the month-end sentinel"""

from typing import Union

from paycycle.config import settings
from paycycle.domain.exceptions import InvalidDayToken
from paycycle.domain.models import MONTH_END, DayOfMonth, DayToken, MonthEnd
from paycycle.utils.date_utils import last_day_of_month

MONTH_END_ALIASES = frozenset({"月末", "month-end", "monthend", "eom"})


def is_month_end(raw: str) -> bool:
    normalized = raw.strip().lower()
    return normalized in MONTH_END_ALIASES or normalized == settings.month_end_token.lower()


def parse_day_token(raw: Union[str, int, DayToken], field: str = "day") -> DayToken:
    """
    Turn a raw billing-day value into a DayToken.

    Accepts the month-end sentinel, a numeric string or an int in 1..31,
    or an already-parsed token (returned unchanged).

    Raises:
        InvalidDayToken: non-numeric non-sentinel input, or a number outside 1..31
    """
    if isinstance(raw, (DayOfMonth, MonthEnd)):
        if isinstance(raw, DayOfMonth) and not 1 <= raw.day <= 31:
            raise InvalidDayToken(raw.day, field)
        return raw

    if isinstance(raw, bool):
        raise InvalidDayToken(raw, field)

    if isinstance(raw, int):
        day = raw
    elif isinstance(raw, str):
        if is_month_end(raw):
            return MONTH_END
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidDayToken(raw, field)
        day = int(text)
    else:
        raise InvalidDayToken(raw, field)

    if day < 1 or day > 31:
        raise InvalidDayToken(raw, field)
    return DayOfMonth(day)


def resolve_day(token: Union[str, int, DayToken], year: int, month: int, field: str = "day") -> int:
    """
    Resolve a billing-day token to a concrete day of the given month.

    Month-end resolves to the month's last day. A literal day that does not
    exist in the month (e.g. 31 in April) is clamped to the last day, never
    wrapped into the next month.
    """
    parsed = parse_day_token(token, field)
    last_day = last_day_of_month(year, month)
    if isinstance(parsed, MonthEnd):
        return last_day
    return min(parsed.day, last_day)


def format_day_token(token: DayToken) -> str:
    """Storage form of a token: "月末" or the day number"""
    return str(token)
