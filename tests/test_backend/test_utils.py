"""Tests for date and schedule helper functions."""
from datetime import date, datetime, time
from types import SimpleNamespace
import pytest
from shared.utils import (
    day_bounds, parse_iso_date, month_bounds, week_day_index, is_scheduled_on, format_sleep_duration,
    format_time_ago, parse_dose_quantity, estimate_daily_usage
)


def make_schedule(days, quantity='1', as_needed=False, active=True):
    return SimpleNamespace(days_of_week=days, quantity=quantity, as_needed=as_needed, active=active, time=time(8, 0))


def test_day_bounds():
    """A day runs from midnight to the next midnight."""
    start, end = day_bounds(date(2030, 2, 28))
    assert start == datetime(2030, 2, 28, 0, 0)
    assert end == datetime(2030, 3, 1, 0, 0)


def test_parse_iso_date():
    assert parse_iso_date('2030-05-10') == date(2030, 5, 10)
    assert parse_iso_date('2030-05-10T09:30:00') == date(2030, 5, 10)
    assert parse_iso_date(None) is None
    assert parse_iso_date('') is None
    assert parse_iso_date('10/05/2030') is None


def test_month_bounds():
    assert month_bounds('2030-06') == (date(2030, 6, 1), date(2030, 7, 1))
    # December rolls over into the next year
    assert month_bounds('2030-12') == (date(2030, 12, 1), date(2031, 1, 1))

    with pytest.raises(ValueError):
        month_bounds('June')
    with pytest.raises(ValueError):
        month_bounds('2030-13')


def test_week_day_index_starts_on_sunday():
    assert week_day_index(date(2030, 3, 3)) == 0  # Sunday
    assert week_day_index(date(2030, 3, 4)) == 1
    assert week_day_index(date(2030, 3, 9)) == 6  # Saturday


def test_is_scheduled_on():
    monday = date(2030, 3, 4)
    assert is_scheduled_on(make_schedule([1, 3, 5]), monday) is True
    assert is_scheduled_on(make_schedule([0, 6]), monday) is False
    assert is_scheduled_on(make_schedule([1], active=False), monday) is False
    assert is_scheduled_on(make_schedule(None), monday) is False


def test_format_sleep_duration():
    start = datetime(2030, 3, 4, 22, 0)
    assert format_sleep_duration(start, datetime(2030, 3, 5, 5, 45)) == '7h 45m'
    assert format_sleep_duration(start, datetime(2030, 3, 4, 22, 40)) == '40m'
    # An end before the start is clamped to zero
    assert format_sleep_duration(start, datetime(2030, 3, 4, 21, 0)) == '0m'
    assert format_sleep_duration(datetime.now(), None).endswith('(ongoing)')


def test_format_time_ago():
    reference = datetime(2030, 3, 4, 12, 0)
    assert format_time_ago(datetime(2030, 3, 4, 11, 59, 30), reference) == 'just now'
    assert format_time_ago(datetime(2030, 3, 4, 11, 59), reference) == '1 minute ago'
    assert format_time_ago(datetime(2030, 3, 4, 9, 0), reference) == '3 hours ago'
    assert format_time_ago(datetime(2030, 3, 2, 12, 0), reference) == '2 days ago'


def test_parse_dose_quantity():
    assert parse_dose_quantity('2') == 2.0
    assert parse_dose_quantity('0.5') == 0.5
    assert parse_dose_quantity('2 tablets') == 2.0
    assert parse_dose_quantity('half') == 1.0
    assert parse_dose_quantity(None) == 1.0


def test_estimate_daily_usage():
    schedules = [
        make_schedule(list(range(7)), quantity='2'),
        make_schedule([1, 3, 5, 0, 2, 4, 6], quantity='1'),
        make_schedule(list(range(7)), quantity='5', as_needed=True),
        make_schedule(list(range(7)), quantity='5', active=False),
        make_schedule([], quantity='5'),
    ]
    assert estimate_daily_usage(schedules) == pytest.approx(3.0)
    assert estimate_daily_usage([make_schedule([1], quantity='7')]) == pytest.approx(1.0)
    assert estimate_daily_usage([]) == 0.0
