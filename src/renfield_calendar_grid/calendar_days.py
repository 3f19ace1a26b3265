"""Visible windows: the days of a week or month grid and navigation between them."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, tzinfo

from .models import CalendarDay

WEEKDAY_SHORT = ["MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN"]

# date.weekday() of the first column
_FIRST_WEEKDAY = {"Monday": 0, "Sunday": 6}


def today_in(zone: tzinfo, now: datetime) -> date:
    """Calendar date of ``now`` in ``zone``. Naive ``now`` is taken as already local."""
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(zone).date()


def start_of_week(day: date, week_starts_on: str = "Sunday") -> date:
    first = _FIRST_WEEKDAY[week_starts_on]
    return day - timedelta(days=(day.weekday() - first) % 7)


def shift_week(anchor: date, weeks: int) -> date:
    return anchor + timedelta(weeks=weeks)


def shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _make_day(day: date, zone: tzinfo, today: date, focused: bool) -> CalendarDay:
    return CalendarDay(
        date=day.day,
        full_date=datetime.combine(day, time.min, tzinfo=zone),
        is_today=day == today,
        is_in_focused_period=focused,
        weekday=WEEKDAY_SHORT[day.weekday()],
    )


def week_days(anchor: date, week_starts_on: str, zone: tzinfo, now: datetime) -> list[CalendarDay]:
    """The seven days of the week containing ``anchor``."""
    today = today_in(zone, now)
    first = start_of_week(anchor, week_starts_on)
    return [_make_day(first + timedelta(days=i), zone, today, True) for i in range(7)]


def month_days(year: int, month: int, week_starts_on: str, zone: tzinfo, now: datetime) -> list[CalendarDay]:
    """The month padded with adjacent-month days to whole weeks.

    Padding days have ``is_in_focused_period=False``.
    """
    today = today_in(zone, now)
    first_of_month = date(year, month, 1)
    last_of_month = date(year, month, calendar.monthrange(year, month)[1])

    cursor = start_of_week(first_of_month, week_starts_on)
    end = start_of_week(last_of_month, week_starts_on) + timedelta(days=6)

    days = []
    while cursor <= end:
        focused = cursor.month == month and cursor.year == year
        days.append(_make_day(cursor, zone, today, focused))
        cursor += timedelta(days=1)
    return days


def visible_range(days: list[CalendarDay]) -> tuple[datetime, datetime]:
    """Half-open ``[time_min, time_max)`` covering all visible days."""
    if not days:
        raise ValueError("visible window is empty")
    return days[0].full_date, days[-1].full_date + timedelta(days=1)


def single_day(day: date, zone: tzinfo, now: datetime) -> list[CalendarDay]:
    """A one-cell window, used for the expanded day listing."""
    return [_make_day(day, zone, today_in(zone, now), True)]
