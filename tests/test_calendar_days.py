"""Tests for visible window generation and navigation."""

from datetime import date, datetime, timezone

import pytest
from dateutil import tz

from renfield_calendar_grid.calendar_days import (
    month_days,
    shift_month,
    shift_week,
    single_day,
    start_of_week,
    today_in,
    visible_range,
    week_days,
)

NY = tz.gettz("America/New_York")
NOW = datetime(2024, 6, 12, 16, 0, tzinfo=timezone.utc)  # Wed 12 June, noon in New York


class TestNavigation:
    def test_start_of_week_sunday(self):
        assert start_of_week(date(2024, 6, 12), "Sunday") == date(2024, 6, 9)
        assert start_of_week(date(2024, 6, 9), "Sunday") == date(2024, 6, 9)

    def test_start_of_week_monday(self):
        assert start_of_week(date(2024, 6, 12), "Monday") == date(2024, 6, 10)
        assert start_of_week(date(2024, 6, 9), "Monday") == date(2024, 6, 3)

    def test_shift_week(self):
        assert shift_week(date(2024, 6, 9), 1) == date(2024, 6, 16)
        assert shift_week(date(2024, 6, 9), -2) == date(2024, 5, 26)

    def test_shift_month(self):
        assert shift_month(2024, 12, 1) == (2025, 1)
        assert shift_month(2024, 1, -1) == (2023, 12)
        assert shift_month(2024, 6, 0) == (2024, 6)
        assert shift_month(2024, 6, -18) == (2022, 12)

    def test_today_in_display_timezone(self):
        late_utc = datetime(2024, 6, 10, 2, 0, tzinfo=timezone.utc)
        assert today_in(NY, late_utc) == date(2024, 6, 9)

    def test_today_naive_now(self):
        assert today_in(NY, datetime(2024, 6, 10, 2, 0)) == date(2024, 6, 10)


class TestWeekDays:
    def test_sunday_start(self):
        days = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        assert len(days) == 7
        assert [d.date for d in days] == [9, 10, 11, 12, 13, 14, 15]
        assert days[0].weekday == "SUN"
        assert days[6].weekday == "SAT"
        assert all(d.is_in_focused_period for d in days)

    def test_monday_start(self):
        days = week_days(date(2024, 6, 12), "Monday", NY, NOW)
        assert days[0].day == date(2024, 6, 10)
        assert days[0].weekday == "MON"

    def test_is_today_uses_injected_now(self):
        days = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        assert [d.is_today for d in days] == [False, False, False, True, False, False, False]

    def test_full_date_is_local_midnight(self):
        days = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        first = days[0].full_date
        assert (first.hour, first.minute) == (0, 0)
        assert first.utcoffset().total_seconds() == -4 * 3600

    def test_week_across_month_boundary(self):
        days = week_days(date(2024, 7, 2), "Sunday", NY, NOW)
        assert days[0].day == date(2024, 6, 30)
        assert days[-1].day == date(2024, 7, 6)

    def test_rebuilt_not_shared(self):
        first = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        second = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        assert first == second
        assert first is not second


class TestMonthDays:
    def test_june_2024_sunday_start(self):
        days = month_days(2024, 6, "Sunday", NY, NOW)
        assert len(days) == 42
        assert days[0].day == date(2024, 5, 26)
        assert days[-1].day == date(2024, 7, 6)
        assert len(days) % 7 == 0

    def test_june_2024_monday_start(self):
        days = month_days(2024, 6, "Monday", NY, NOW)
        assert len(days) == 35
        assert days[0].day == date(2024, 5, 27)
        assert days[-1].day == date(2024, 6, 30)

    def test_padding_not_focused(self):
        days = month_days(2024, 6, "Sunday", NY, NOW)
        focused = [d for d in days if d.is_in_focused_period]
        assert len(focused) == 30
        assert focused[0].day == date(2024, 6, 1)
        assert not days[0].is_in_focused_period
        assert not days[-1].is_in_focused_period

    def test_month_without_padding(self):
        # February 2026 starts on a Sunday and has exactly four weeks
        days = month_days(2026, 2, "Sunday", NY, NOW)
        assert len(days) == 28
        assert all(d.is_in_focused_period for d in days)

    def test_today_marked_once(self):
        days = month_days(2024, 6, "Sunday", NY, NOW)
        assert [d.day for d in days if d.is_today] == [date(2024, 6, 12)]


class TestVisibleRange:
    def test_half_open_range(self):
        days = week_days(date(2024, 6, 12), "Sunday", NY, NOW)
        time_min, time_max = visible_range(days)
        assert time_min == days[0].full_date
        assert time_max.date() == date(2024, 6, 16)
        assert (time_max.hour, time_max.minute) == (0, 0)

    def test_single_day(self):
        days = single_day(date(2024, 6, 12), NY, NOW)
        assert len(days) == 1
        assert days[0].is_today
        time_min, time_max = visible_range(days)
        assert time_max.date() == date(2024, 6, 13)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            visible_range([])
