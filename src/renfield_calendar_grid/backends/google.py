"""Google Calendar API backend."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from ..errors import ConfigError, FetchError
from ..models import NO_TITLE, Attendee, Event, EventTime
from .base import DEFAULT_MAX_RESULTS

logger = logging.getLogger("renfield-calendar-grid")

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
PAGE_SIZE = 250


def _event_time(raw: dict[str, Any] | None) -> EventTime | None:
    """``{"date": ...}`` or ``{"dateTime": ..., "timeZone": ...}``."""
    if not raw:
        return None
    if raw.get("dateTime"):
        return EventTime.at(raw["dateTime"], raw.get("timeZone"))
    if raw.get("date"):
        return EventTime.on(raw["date"])
    return None


def event_from_google(item: dict[str, Any], calendar: str = "") -> Event:
    """Convert one Google Calendar API event resource to an Event.

    Also accepts the flattened ``title``/``startTime``/``endTime`` shape that
    some callers cache, so nothing downstream branches on shape.
    """
    start = _event_time(item.get("start"))
    end = _event_time(item.get("end"))
    if start is None and item.get("startTime"):
        start = EventTime.at(item["startTime"])
    if end is None and item.get("endTime"):
        end = EventTime.at(item["endTime"])

    attendees = tuple(
        Attendee(
            email=a.get("email", ""),
            display_name=a.get("displayName", ""),
            response_status=a.get("responseStatus", "needsAction"),
        )
        for a in item.get("attendees", [])
    )

    return Event(
        id=str(item.get("id", "")),
        title=item.get("summary") or item.get("title") or NO_TITLE,
        start=start,
        end=end,
        description=item.get("description", ""),
        location=item.get("location", ""),
        calendar=calendar,
        attendees=attendees,
    )


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class GoogleCalendarBackend:
    """Calendar backend for Google Calendar via Google API."""

    def __init__(self, calendar_name: str, config: dict[str, Any]):
        self._name = calendar_name
        self._config = config
        self._service = None  # Lazy init
        self._credentials = None
        self._calendar_id = config.get("calendar_id", "primary")
        self._max_results = int(config.get("max_results", DEFAULT_MAX_RESULTS))
        self._api_key = ""
        self._token_file = config.get("token_file", "")

        api_key_env = config.get("api_key_env")
        if api_key_env:
            self._api_key = os.environ.get(api_key_env, "")
        if not self._api_key and not (self._token_file and os.path.isfile(self._token_file)):
            raise ConfigError(
                f"Calendar '{self._name}': no Google credentials "
                f"(env var '{api_key_env}' unset, token file '{self._token_file}' missing)"
            )
        if not self._api_key:
            self._credentials = self._load_credentials()

    def _get_service(self):
        """Lazy-initialize Google Calendar API service."""
        if self._service is not None:
            return self._service

        from googleapiclient.discovery import build

        if self._api_key:
            self._service = build("calendar", "v3", developerKey=self._api_key, cache_discovery=False)
        else:
            self._refresh_credentials()
            self._service = build("calendar", "v3", credentials=self._credentials, cache_discovery=False)
        logger.info("Google Calendar connected: %s (calendar_id=%s)", self._name, self._calendar_id)
        return self._service

    def _load_credentials(self):
        """Read the authorized-user token file. Raises ConfigError if it is unusable."""
        from google.oauth2.credentials import Credentials

        try:
            with open(self._token_file, "r") as f:
                token_data = json.load(f)
            creds = Credentials.from_authorized_user_info(token_data, SCOPES)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Calendar '{self._name}': unreadable Google token file {self._token_file}: {e}") from e

        if not creds.valid and not creds.refresh_token:
            raise ConfigError(f"Calendar '{self._name}': Google token in {self._token_file} is not usable")
        return creds

    def _refresh_credentials(self) -> None:
        from google.auth.exceptions import RefreshError
        from google.auth.transport.requests import Request

        creds = self._credentials
        if creds.valid:
            return
        try:
            creds.refresh(Request())
        except RefreshError as e:
            raise FetchError(401, f"Calendar '{self._name}': Google token refresh failed: {e}") from e
        # Persist refreshed token
        with open(self._token_file, "w") as f:
            json.dump(json.loads(creds.to_json()), f)
        logger.info("Google token refreshed for '%s'", self._name)

    def _fetch_events_sync(
        self, time_min: datetime | None, time_max: datetime | None, max_results: int | None
    ) -> list[Event]:
        import httplib2
        from google.auth.exceptions import TransportError
        from googleapiclient.errors import HttpError

        limit = max_results or self._max_results
        params: dict[str, Any] = {
            "calendarId": self._calendar_id,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if time_min is not None:
            params["timeMin"] = _rfc3339(time_min)
        if time_max is not None:
            params["timeMax"] = _rfc3339(time_max)

        items: list[dict[str, Any]] = []
        page_token = None
        try:
            service = self._get_service()
            while len(items) < limit:
                page = {"maxResults": min(PAGE_SIZE, limit - len(items))}
                if page_token:
                    page["pageToken"] = page_token
                result = service.events().list(**params, **page).execute()
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    break
        except HttpError as e:
            raise FetchError(e.resp.status, f"Calendar '{self._name}': {e.reason}") from e
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            raise FetchError(None, f"Calendar '{self._name}': {e}") from e

        return [event_from_google(item, self._name) for item in items[:limit]]

    async def fetch_events(
        self,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        max_results: int | None = None,
    ) -> list[Event]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._fetch_events_sync, time_min, time_max, max_results)
