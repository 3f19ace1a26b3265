"""Exchange Web Services (EWS) backend via exchangelib."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import ConfigError, FetchError
from ..models import NO_TITLE, Attendee, Event, EventTime
from .base import DEFAULT_MAX_RESULTS

logger = logging.getLogger("renfield-calendar-grid")


def event_from_ews(item: Any, calendar: str = "", local_tz: Any = None) -> Event:
    """Convert an exchangelib CalendarItem to an Event.

    exchangelib hands all-day items over as dates with an inclusive end; the
    day is added back so every provider reaches the classifier with an
    exclusive end. Items still carrying datetimes keep EWS's exclusive
    midnight.
    """
    is_all_day = bool(getattr(item, "is_all_day", False))
    if item.start is None or item.end is None:
        start = end = None
    elif not isinstance(item.start, datetime):
        start = EventTime.on(item.start)
        end = EventTime.on(item.end + timedelta(days=1))
    elif is_all_day:
        start = EventTime.on(item.start.astimezone(local_tz).date())
        end = EventTime.on(item.end.astimezone(local_tz).date())
    else:
        start = EventTime.at(item.start, getattr(item.start.tzinfo, "key", None))
        end = EventTime.at(item.end, getattr(item.end.tzinfo, "key", None))

    attendees = []
    for attendee in (getattr(item, "required_attendees", None) or []) + (getattr(item, "optional_attendees", None) or []):
        mailbox = attendee.mailbox
        attendees.append(Attendee(
            email=getattr(mailbox, "email_address", "") or "",
            display_name=getattr(mailbox, "name", "") or "",
            response_status=(attendee.response_type or "Unknown").lower(),
        ))

    return Event(
        id=str(item.id),
        title=item.subject or NO_TITLE,
        start=start,
        end=end,
        description=str(item.body) if getattr(item, "body", None) else "",
        location=getattr(item, "location", None) or "",
        calendar=calendar,
        attendees=tuple(attendees),
    )


class EWSBackend:
    """Calendar backend for Microsoft Exchange via EWS."""

    def __init__(self, calendar_name: str, config: dict[str, Any]):
        self._name = calendar_name
        self._config = config
        self._account = None  # Lazy init
        self._username = os.environ.get(config["username_env"], "")
        self._password = os.environ.get(config["password_env"], "")
        if not self._username or not self._password:
            raise ConfigError(
                f"Calendar '{self._name}': EWS credentials not set "
                f"({config['username_env']}, {config['password_env']})"
            )

    def _get_account(self):
        """Lazy-initialize exchangelib Account."""
        if self._account is not None:
            return self._account

        from exchangelib import DELEGATE, Account, Configuration, Credentials

        ews_url = self._config["ews_url"]
        credentials = Credentials(username=self._username, password=self._password)
        ews_config = Configuration(
            server=ews_url.split("//")[1].split("/")[0],  # Extract hostname
            credentials=credentials,
            service_endpoint=ews_url,
        )

        self._account = Account(
            primary_smtp_address=self._config.get("email", self._username),
            config=ews_config,
            autodiscover=False,
            access_type=DELEGATE,
        )
        logger.info("EWS connected: %s → %s", self._name, ews_url)
        return self._account

    def _fetch_events_sync(
        self, time_min: datetime | None, time_max: datetime | None, max_results: int | None
    ) -> list[Event]:
        from exchangelib import EWSDateTime, EWSTimeZone
        from exchangelib.errors import EWSError, UnauthorizedError

        if time_min is None or time_max is None:
            raise ValueError("EWS calendar views need both time_min and time_max")

        limit = max_results or int(self._config.get("max_results", DEFAULT_MAX_RESULTS))
        tz = EWSTimeZone.localzone()
        try:
            account = self._get_account()
            ews_start = EWSDateTime.from_datetime(_aware(time_min).astimezone(tz))
            ews_end = EWSDateTime.from_datetime(_aware(time_max).astimezone(tz))
            # view() expands recurring series into single occurrences
            items = account.calendar.view(start=ews_start, end=ews_end, max_items=limit)
            return [event_from_ews(item, self._name, tz) for item in items]
        except UnauthorizedError as e:
            raise FetchError(401, f"Calendar '{self._name}': {e}") from e
        except (EWSError, OSError) as e:
            raise FetchError(None, f"Calendar '{self._name}': {e}") from e

    async def fetch_events(
        self,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        max_results: int | None = None,
    ) -> list[Event]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._fetch_events_sync, time_min, time_max, max_results)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
