"""Calendar-aware month arithmetic.

Every operation here moves by calendar months and snaps to month
boundaries. Nothing subtracts a fixed number of days: "one month before
March 1st" is February 1st whatever February's length.
"""

import calendar
from datetime import datetime, time

from .models import CalendarRange


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(instant: datetime, n: int) -> datetime:
    """Shift ``instant`` by ``n`` calendar months (negative moves backwards).

    The day of month is kept when the target month has it, otherwise it is
    clamped to the target month's last day. Time of day and tzinfo carry over.
    """

    month_index = instant.year * 12 + (instant.month - 1) + n
    year, month = divmod(month_index, 12)
    month += 1
    day = min(instant.day, days_in_month(year, month))
    return instant.replace(year=year, month=month, day=day)


def months_ago(n: int, from_: datetime) -> datetime:
    if n < 0:
        raise ValueError(f"months_ago expects a non-negative month count, got {n}")
    return add_months(from_, -n)


def start_of_month(instant: datetime) -> datetime:
    return datetime.combine(instant.date().replace(day=1), time.min, tzinfo=instant.tzinfo)


def end_of_month(instant: datetime) -> datetime:
    last_day = days_in_month(instant.year, instant.month)
    return datetime.combine(instant.date().replace(day=last_day), time.max, tzinfo=instant.tzinfo)


def month_range(n: int, from_: datetime) -> CalendarRange:
    """Whole calendar month lying ``n`` months before ``from_`` (0 is the current month)."""

    target = months_ago(n, from_)
    return CalendarRange(start=start_of_month(target), end=end_of_month(target))


def months_span(n: int, from_: datetime) -> CalendarRange:
    """Rolling window from the start of the month ``n`` months ago to the end of ``from_``'s month."""

    return CalendarRange(start=start_of_month(months_ago(n, from_)), end=end_of_month(from_))
