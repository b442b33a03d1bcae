"""Tests for the working-hours calendar"""
from datetime import date, datetime, timezone

import pytest

from ictserve.domain.models import BusinessHours
from ictserve.engine.business_hours import BusinessCalendar


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def calendar() -> BusinessCalendar:
    return BusinessCalendar(BusinessHours())


def test_within_same_day(calendar):
    # Monday 10:00 local
    assert calendar.add_working_hours(utc(2025, 1, 6, 2, 0), 3) == utc(2025, 1, 6, 5, 0)


def test_start_before_opening_counts_from_opening(calendar):
    # Monday 06:00 local
    assert calendar.add_working_hours(utc(2025, 1, 5, 22, 0), 1) == utc(2025, 1, 6, 1, 0)


def test_start_after_closing_rolls_to_next_day(calendar):
    # Monday 18:00 local -> Tuesday 08:30 local
    assert calendar.add_working_hours(utc(2025, 1, 6, 10, 0), 0.5) == utc(2025, 1, 7, 0, 30)


def test_weekend_is_skipped(calendar):
    # Saturday 09:00 local -> Monday 10:00 local
    assert calendar.add_working_hours(utc(2025, 1, 4, 1, 0), 2) == utc(2025, 1, 6, 2, 0)


def test_holidays_are_skipped_when_excluded():
    calendar = BusinessCalendar(BusinessHours(holidays=[date(2025, 1, 6)]))
    # Friday 16:00 local + 2h -> Tuesday 09:00 local
    assert calendar.add_working_hours(utc(2025, 1, 3, 8, 0), 2) == utc(2025, 1, 7, 1, 0)


def test_holidays_ignored_when_not_excluded():
    calendar = BusinessCalendar(BusinessHours(holidays=[date(2025, 1, 6)], exclude_holidays=False))
    assert calendar.add_working_hours(utc(2025, 1, 3, 8, 0), 2) == utc(2025, 1, 6, 1, 0)


def test_zero_hours_returns_start(calendar):
    assert calendar.add_working_hours(utc(2025, 1, 4, 1, 0), 0) == utc(2025, 1, 4, 1, 0)


def test_sunday_numbered_seven_is_normalised():
    hours = BusinessHours(working_days=[7, 1])
    assert hours.working_days == [0, 1]
    assert BusinessCalendar(hours).is_working_day(date(2025, 1, 5))


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        BusinessHours(start_time="17:00", end_time="08:00")
    with pytest.raises(ValueError):
        BusinessHours(timezone="Mars/Olympus_Mons")
