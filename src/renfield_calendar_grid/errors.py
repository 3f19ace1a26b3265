"""Error taxonomy for fetching and laying out calendar events."""

from __future__ import annotations


class CalendarGridError(Exception):
    """Base class for all calendar grid errors."""


class ConfigError(CalendarGridError, ValueError):
    """Missing or invalid configuration. Fatal: raised before any fetch."""


class FetchError(CalendarGridError):
    """A provider request failed (HTTP status or transport problem).

    Recoverable; the caller decides whether and when to retry.
    """

    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{prefix}{message}")

    @property
    def retryable(self) -> bool:
        """Transport failures, throttling and server errors are worth retrying."""
        return self.status is None or self.status == 429 or self.status >= 500


class TimezoneConversionError(CalendarGridError):
    """A timestamp could not be moved into the display timezone."""


class MalformedEventError(CalendarGridError):
    """An event lacks a usable start or end boundary."""

    def __init__(self, event_id: str, message: str):
        self.event_id = event_id
        super().__init__(f"Event '{event_id}': {message}")
