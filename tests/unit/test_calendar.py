from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from timescope.domain.calendar_math import (
    add_months,
    days_in_month,
    end_of_month,
    month_range,
    months_ago,
    months_span,
    start_of_month,
)
from timescope.domain.models import CalendarRange, InvalidRange, as_instant


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "from_,n,expected",
    [
        (utc(2017, 3, 31), 1, utc(2017, 2, 28)),
        (utc(2016, 3, 31), 1, utc(2016, 2, 29)),
        (utc(2017, 5, 31), 1, utc(2017, 4, 30)),
        (utc(2017, 1, 15), 1, utc(2016, 12, 15)),
        (utc(2017, 1, 31), 13, utc(2015, 12, 31)),
        (utc(2016, 2, 29), 12, utc(2015, 2, 28)),
        (utc(2017, 5, 6), 0, utc(2017, 5, 6)),
    ],
)
def test_months_ago_clamps_to_last_valid_day(from_, n, expected):
    assert months_ago(n, from_) == expected


def test_months_ago_keeps_time_of_day_and_zone():
    tz = ZoneInfo("America/New_York")
    result = months_ago(2, datetime(2017, 5, 6, 14, 30, 5, 123, tzinfo=tz))
    assert result == datetime(2017, 3, 6, 14, 30, 5, 123, tzinfo=tz)
    assert result.tzinfo is tz


def test_months_ago_rejects_negative_count():
    with pytest.raises(ValueError):
        months_ago(-1, utc(2017, 5, 6))


def test_add_months_forward_clamps():
    assert add_months(utc(2017, 1, 31), 1) == utc(2017, 2, 28)
    assert add_months(utc(2017, 12, 15), 1) == utc(2018, 1, 15)


def test_days_in_month_handles_leap_years():
    assert days_in_month(2016, 2) == 29
    assert days_in_month(2017, 2) == 28
    assert days_in_month(1900, 2) == 28
    assert days_in_month(2000, 2) == 29


def test_start_and_end_of_month():
    instant = utc(2017, 5, 6, 13, 45)
    assert start_of_month(instant) == utc(2017, 5, 1)
    assert end_of_month(instant) == utc(2017, 5, 31, 23, 59, 59, 999999)
    assert end_of_month(utc(2017, 2, 10)) == utc(2017, 2, 28, 23, 59, 59, 999999)


def test_month_range_for_previous_month_from_first_of_march():
    range_ = month_range(1, utc(2017, 3, 1))
    assert range_.start == utc(2017, 2, 1)
    assert range_.end == utc(2017, 2, 28, 23, 59, 59, 999999)

    # "31 days ago" from March 1st lands in January
    assert (utc(2017, 3, 1) - timedelta(days=31)).month == 1


def test_month_range_rolls_over_year():
    range_ = month_range(1, utc(2018, 1, 10))
    assert range_.start == utc(2017, 12, 1)
    assert range_.end == utc(2017, 12, 31, 23, 59, 59, 999999)


def test_month_range_zero_is_current_month():
    range_ = month_range(0, utc(2017, 5, 6))
    assert range_ == CalendarRange(utc(2017, 5, 1), utc(2017, 5, 31, 23, 59, 59, 999999))


def test_months_span_covers_whole_months():
    span = months_span(2, utc(2017, 5, 6))
    assert span.start == utc(2017, 3, 1)
    assert span.end == utc(2017, 5, 31, 23, 59, 59, 999999)


def test_calendar_range_rejects_inverted_bounds():
    with pytest.raises(InvalidRange):
        CalendarRange(utc(2017, 5, 2), utc(2017, 5, 1))


def test_as_instant_reads_naive_values_in_zone():
    tz = ZoneInfo("Europe/Berlin")
    assert as_instant(datetime(2017, 3, 1), tz) == datetime(2017, 3, 1, tzinfo=tz)
    assert as_instant(utc(2017, 3, 1), tz) == datetime(2017, 3, 1, 1, tzinfo=tz)
