"""Protocol that calendar providers implement."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from ..models import Event

DEFAULT_MAX_RESULTS = 2500


@runtime_checkable
class CalendarBackend(Protocol):
    """Read-only event source.

    ``fetch_events`` returns expanded single instances overlapping
    ``[time_min, time_max)``. It raises FetchError on transport or HTTP
    failures; credentials are checked when the backend is constructed and
    raise ConfigError there.
    """

    async def fetch_events(
        self,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
        max_results: int | None = None,
    ) -> list[Event]: ...
