#!/usr/bin/env python3
"""
renfield-calendar-grid — Calendar layout MCP server.

Fetches events from the configured calendars (Google Calendar, CalDAV,
Exchange EWS) and serves render-ready week and month grids: day buckets,
overlap columns for timed events, and "+N more" truncation.

Environment variables:
    CALENDAR_CONFIG — Path to calendar_grid.yaml (default: /config/calendar_grid.yaml)
"""

import logging
import os
import sys
from datetime import date, datetime, timezone
from typing import Any

from mcp.server.fastmcp import FastMCP

from .backends.base import CalendarBackend
from .calendar_days import today_in, visible_range
from .config import AppConfig, CalendarAccount, load_config
from .errors import ConfigError, FetchError
from .formatting import format_time, hour_label, month_title, week_title
from .models import CalendarDay, ClassifiedEvent, DayRenderModel, Event, LayoutSlot
from .pipeline import RenderContext

# MCP stdio servers must NEVER write to stdout — log to stderr only.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("renfield-calendar-grid")


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_config: AppConfig = AppConfig()
_backends: dict[str, CalendarBackend] = {}


def _now() -> datetime:
    """Current instant. Tests pin it by patching this function."""
    return datetime.now(timezone.utc)


def _init_backend(account: CalendarAccount) -> CalendarBackend:
    """Create backend instance for a calendar account. Raises ConfigError on missing credentials."""
    if account.type == "google":
        from .backends.google import GoogleCalendarBackend
        return GoogleCalendarBackend(account.name, account.config)
    elif account.type == "caldav":
        from .backends.caldav_backend import CalDAVBackend
        return CalDAVBackend(account.name, account.config)
    elif account.type == "ews":
        from .backends.ews import EWSBackend
        return EWSBackend(account.name, account.config)
    else:
        raise ConfigError(f"Unknown backend type: {account.type}")


def _get_backend(calendar: str) -> CalendarBackend | None:
    """Get backend by calendar name. Lazy-initializes on first access."""
    if calendar not in _config.accounts:
        return None
    if calendar not in _backends:
        _backends[calendar] = _init_backend(_config.accounts[calendar])
    return _backends[calendar]


def _validate_calendar(calendar: str) -> dict | None:
    """Return error dict if calendar is invalid, None if valid."""
    if not _config.accounts:
        return {"error": "No calendars configured. Set CALENDAR_CONFIG env var."}
    if calendar not in _config.accounts:
        return {"error": f"Unknown calendar '{calendar}'. Available: {list(_config.accounts.keys())}"}
    return None


def _parse_date(value: str) -> date:
    """Parse an ISO 8601 date or datetime string, keeping only the date."""
    from dateutil.parser import parse as parse_dt
    return parse_dt(value).date()


async def _fetch_all(
    calendars: list[str], time_min: datetime, time_max: datetime
) -> tuple[list[Event], list[str]]:
    """Fetch from every calendar, collecting per-calendar fetch errors.

    All backends are created before the first request so a missing credential
    (ConfigError) stops the call before anything goes over the wire.
    """
    backends = {name: _get_backend(name) for name in calendars}

    events: list[Event] = []
    errors: list[str] = []
    for name, backend in backends.items():
        if backend is None:
            errors.append(f"Backend not available: {name}")
            continue
        try:
            events.extend(await backend.fetch_events(time_min, time_max))
        except FetchError as e:
            hint = " (retryable)" if e.retryable else ""
            logger.warning("Failed to fetch events from '%s': %s", name, e)
            errors.append(f"{name}: {e}{hint}")
    return events, errors


def _event_to_dict(event: ClassifiedEvent, time_format: str) -> dict[str, Any]:
    """Convert ClassifiedEvent to JSON-friendly dict."""
    start, end = event.normalized_start, event.normalized_end
    result = {
        "id": event.id,
        "calendar": event.event.calendar,
        "title": event.title,
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "all_day": event.is_all_day,
        "multi_day": event.is_multi_day,
        "description": event.event.description,
        "location": event.event.location,
    }
    if start and not event.is_all_day:
        result["time"] = format_time(start, time_format)
    if event.event.attendees:
        result["attendees"] = [
            {"email": a.email, "name": a.display_name, "status": a.response_status}
            for a in event.event.attendees
        ]
    return result


def _slot_to_dict(slot: LayoutSlot, time_format: str) -> dict[str, Any]:
    return {
        **_event_to_dict(slot.event, time_format),
        "column": slot.column,
        "column_count": slot.column_count,
        "top_offset_minutes": slot.top_offset_minutes,
        "duration_minutes": slot.duration_minutes,
    }


def _day_to_dict(model: DayRenderModel, time_format: str, expanded: bool = False) -> dict[str, Any]:
    day: CalendarDay = model.day
    result = {
        "date": day.day.isoformat(),
        "day": day.date,
        "weekday": day.weekday,
        "is_today": day.is_today,
        "in_period": day.is_in_focused_period,
        "all_day": [_event_to_dict(e, time_format) for e in model.all_day_or_multi_day],
        "timed": [_slot_to_dict(s, time_format) for s in model.timed_slots],
        "visible": [_event_to_dict(e, time_format) for e in model.visible],
        "more_count": model.more_count,
    }
    if expanded:
        result["events"] = [_event_to_dict(e, time_format) for e in model.full_list]
    return result


async def _render(
    calendar: str, context: RenderContext, days: list[CalendarDay], expanded: bool = False
) -> dict[str, Any]:
    """Fetch, lay out and serialize the given visible days."""
    if calendar:
        err = _validate_calendar(calendar)
        if err:
            return err
        calendars_to_query = [calendar]
    else:
        calendars_to_query = list(_config.accounts.keys())

    time_min, time_max = visible_range(days)
    try:
        events, errors = await _fetch_all(calendars_to_query, time_min, time_max)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return {"error": str(e)}

    rendered = context.render(events, days)
    time_format = context.display.time_format

    result: dict[str, Any] = {
        "calendars_queried": calendars_to_query,
        "timezone": context.display.timezone,
        "start": time_min.isoformat(),
        "end": time_max.isoformat(),
        "count": len(events),
        "days": [_day_to_dict(d, time_format, expanded) for d in rendered.days],
    }
    if rendered.warnings:
        result["warnings"] = rendered.warnings
    if errors:
        result["errors"] = errors
    return result


# ---------------------------------------------------------------------------
# MCP Server + Tools
# ---------------------------------------------------------------------------

mcp = FastMCP("renfield-calendar-grid")


@mcp.tool()
async def list_calendars() -> dict:
    """List all configured calendar accounts.

    Returns name, label, and type for each calendar.
    """
    if not _config.accounts:
        return {"error": "No calendars configured"}
    return {
        "calendars": [
            {"name": a.name, "label": a.label, "type": a.type}
            for a in _config.accounts.values()
        ]
    }


@mcp.tool()
async def get_week_view(calendar: str = "", date: str = "") -> dict:
    """Week grid layout: all-day bars, timed events with overlap columns.

    Args:
        calendar: Calendar name (e.g. "work", "family"). Empty = all calendars.
        date: Any date inside the wanted week (ISO 8601, e.g. "2026-02-13"). Default: today.
    """
    context = RenderContext(_config.display)
    now = _now()
    if date:
        try:
            anchor = _parse_date(date)
        except (ValueError, OverflowError):
            return {"error": f"Invalid date: {date}"}
    else:
        anchor = today_in(context.tzinfo, now)

    days = context.week(anchor, now)
    result = await _render(calendar, context, days)
    if "error" not in result:
        result["title"] = week_title(days)
        result["hours"] = [hour_label(h, context.display.time_format) for h in range(24)]
    return result


@mcp.tool()
async def get_month_view(calendar: str = "", month: str = "") -> dict:
    """Month grid layout with at most max_visible_per_day events per cell.

    Args:
        calendar: Calendar name. Empty = all calendars.
        month: Month as "YYYY-MM" (e.g. "2026-02"). Default: current month.
    """
    context = RenderContext(_config.display)
    now = _now()
    if month:
        try:
            year_str, month_str = month.strip().split("-")[:2]
            year, month_num = int(year_str), int(month_str)
            if not 1 <= month_num <= 12:
                raise ValueError(month)
        except ValueError:
            return {"error": f"Invalid month: {month}"}
    else:
        today = today_in(context.tzinfo, now)
        year, month_num = today.year, today.month

    days = context.month(year, month_num, now)
    result = await _render(calendar, context, days)
    if "error" not in result:
        result["title"] = month_title(year, month_num)
    return result


@mcp.tool()
async def get_day_events(calendar: str = "", date: str = "") -> dict:
    """All events of one day, untruncated (the "+N more" expanded view).

    Args:
        calendar: Calendar name. Empty = all calendars.
        date: Day (ISO 8601, e.g. "2026-02-13"). Default: today.
    """
    context = RenderContext(_config.display)
    now = _now()
    if date:
        try:
            day = _parse_date(date)
        except (ValueError, OverflowError):
            return {"error": f"Invalid date: {date}"}
    else:
        day = today_in(context.tzinfo, now)

    result = await _render(calendar, context, context.day(day, now), expanded=True)
    if "error" in result:
        return result

    rendered = result.pop("days")[0]
    result["date"] = rendered["date"]
    result["events"] = rendered["events"]
    result["timed"] = rendered["timed"]
    return result


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for console script and python -m."""
    global _config

    try:
        _config = load_config()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    if _config.accounts:
        logger.info("Loaded %d calendar(s): %s", len(_config.accounts), list(_config.accounts.keys()))
    else:
        logger.warning("No calendars loaded (CALENDAR_CONFIG=%s)", os.environ.get("CALENDAR_CONFIG", ""))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
