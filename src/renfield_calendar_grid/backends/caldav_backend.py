"""CalDAV backend (Nextcloud, ownCloud, Radicale, etc.)."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date, datetime, timedelta
from typing import Any

from ..errors import ConfigError, FetchError
from ..models import NO_TITLE, Attendee, Event, EventTime
from .base import DEFAULT_MAX_RESULTS

logger = logging.getLogger("renfield-calendar-grid")


def _event_time(value: date | datetime | None) -> EventTime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        zone = getattr(value.tzinfo, "key", None) or getattr(value.tzinfo, "zone", None)
        return EventTime.at(value, zone)
    return EventTime.on(value)


def _attendee(raw: Any) -> Attendee:
    email = str(raw)
    if email.lower().startswith("mailto:"):
        email = email[len("mailto:"):]
    params = getattr(raw, "params", {})
    return Attendee(
        email=email,
        display_name=str(params.get("CN", "")),
        response_status=str(params.get("PARTSTAT", "NEEDS-ACTION")).lower(),
    )


def event_from_vevent(vevent: Any, calendar: str = "") -> Event:
    """Parse a VEVENT component into an Event.

    DTEND falls back to DTSTART + DURATION, then to DTSTART (plus one day for
    date-only starts, matching the exclusive end convention).
    """
    summary = str(vevent.get("summary")) if vevent.get("summary") else NO_TITLE
    description = str(vevent.get("description")) if vevent.get("description") else ""
    location = str(vevent.get("location")) if vevent.get("location") else ""

    dtstart = vevent.get("dtstart")
    dtend = vevent.get("dtend")
    duration = vevent.get("duration")

    ev_start = dtstart.dt if dtstart else None
    if dtend:
        ev_end = dtend.dt
    elif ev_start is not None and duration:
        ev_end = ev_start + duration.dt
    elif ev_start is not None and not isinstance(ev_start, datetime):
        ev_end = ev_start + timedelta(days=1)
    else:
        ev_end = ev_start

    raw_attendees = vevent.get("attendee") or []
    if not isinstance(raw_attendees, list):
        raw_attendees = [raw_attendees]

    uid = str(vevent.get("uid")) if vevent.get("uid") else ""
    recurrence_id = vevent.get("recurrence-id")
    if recurrence_id:
        # Expanded instances share a UID
        uid = f"{uid}_{recurrence_id.dt.isoformat()}"

    return Event(
        id=uid,
        title=summary,
        start=_event_time(ev_start),
        end=_event_time(ev_end),
        description=description,
        location=location,
        calendar=calendar,
        attendees=tuple(_attendee(a) for a in raw_attendees),
    )


class CalDAVBackend:
    """Calendar backend for CalDAV servers (Nextcloud, etc.)."""

    def __init__(self, calendar_name: str, config: dict[str, Any]):
        self._name = calendar_name
        self._config = config
        self._calendar = None  # Lazy init
        self._username = os.environ.get(config["username_env"], "")
        self._password = os.environ.get(config["password_env"], "")
        if not self._username or not self._password:
            raise ConfigError(
                f"Calendar '{self._name}': CalDAV credentials not set "
                f"({config['username_env']}, {config['password_env']})"
            )

    def _get_calendar(self):
        """Lazy-initialize CalDAV client and calendar."""
        if self._calendar is not None:
            return self._calendar

        import caldav

        url = self._config["url"]
        client = caldav.DAVClient(url=url, username=self._username, password=self._password)

        # Either find the calendar by display name or use the URL directly
        calendar_name_filter = self._config.get("calendar_name")
        if calendar_name_filter:
            calendars = client.principal().calendars()
            for cal in calendars:
                if cal.name == calendar_name_filter:
                    self._calendar = cal
                    break
            if self._calendar is None:
                available = [c.name for c in calendars]
                raise FetchError(
                    404,
                    f"Calendar '{self._name}': CalDAV calendar '{calendar_name_filter}' not found. "
                    f"Available: {available}"
                )
        else:
            self._calendar = caldav.Calendar(client=client, url=url)

        logger.info("CalDAV connected: %s → %s", self._name, url)
        return self._calendar

    def _fetch_events_sync(
        self, time_min: datetime | None, time_max: datetime | None, max_results: int | None
    ) -> list[Event]:
        from caldav.lib.error import AuthorizationError, DAVError, NotFoundError

        limit = max_results or int(self._config.get("max_results", DEFAULT_MAX_RESULTS))
        try:
            cal = self._get_calendar()
            results = cal.search(start=time_min, end=time_max, event=True, expand=True)
            events = []
            for event_obj in results:
                for vevent in event_obj.icalendar_instance.walk("VEVENT"):
                    events.append(event_from_vevent(vevent, self._name))
        except AuthorizationError as e:
            raise FetchError(401, f"Calendar '{self._name}': {e}") from e
        except NotFoundError as e:
            raise FetchError(404, f"Calendar '{self._name}': {e}") from e
        except DAVError as e:
            status = getattr(e, "status", None)
            raise FetchError(int(status) if status and str(status).isdigit() else None, f"Calendar '{self._name}': {e}") from e
        except OSError as e:
            raise FetchError(None, f"Calendar '{self._name}': {e}") from e

        return events[:limit]

    async def fetch_events(
        self,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        max_results: int | None = None,
    ) -> list[Event]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._fetch_events_sync, time_min, time_max, max_results)
