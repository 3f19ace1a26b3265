"""Time labels and period titles for 12h / 24h display."""

from __future__ import annotations

import calendar
from datetime import datetime

from .models import CalendarDay


def hour_label(hour: int, time_format: str = "12h") -> str:
    """Grid row label: ``"06:00"`` in 24h, ``"6:00am"`` in 12h."""
    if time_format == "24h":
        return f"{hour:02d}:00"
    suffix = "am" if hour < 12 else "pm"
    display_hour = hour % 12 or 12
    return f"{display_hour}:00{suffix}"


def format_time(value: datetime, time_format: str = "12h") -> str:
    if time_format == "24h":
        return value.strftime("%H:%M")
    display_hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{display_hour:02d}:{value.minute:02d} {suffix}"


def week_title(days: list[CalendarDay]) -> str:
    """``"Jun 9 - 15, 2024"`` or ``"Jun 30 - Jul 6, 2024"``."""
    if not days:
        return ""
    start = days[0].full_date
    end = days[-1].full_date
    start_month = calendar.month_abbr[start.month]
    end_month = calendar.month_abbr[end.month]
    if start.year != end.year:
        return f"{start_month} {start.day}, {start.year} - {end_month} {end.day}, {end.year}"
    if start.month == end.month:
        return f"{start_month} {start.day} - {end.day}, {end.year}"
    return f"{start_month} {start.day} - {end_month} {end.day}, {end.year}"


def month_title(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"
