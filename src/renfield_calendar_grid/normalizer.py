"""Move event boundaries into the display timezone."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo

from dateutil import tz
from dateutil.parser import isoparse

from .errors import ConfigError, TimezoneConversionError
from .models import Event, EventTime

logger = logging.getLogger("renfield-calendar-grid")


class ConversionCache:
    """Bounded cache of instant -> display wall clock conversions.

    Keyed by ``(utc timestamp, timezone name)``. Past ``size_limit`` entries the
    oldest insertion is evicted (FIFO). One cache belongs to one render
    context; the lock covers backends that feed it from executor threads.
    """

    def __init__(self, size_limit: int = 1000):
        if size_limit < 1:
            raise ValueError(f"size_limit must be >= 1, got {size_limit}")
        self.size_limit = size_limit
        self._entries: dict[tuple[float, str], datetime] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: tuple[float, str]) -> datetime | None:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def put(self, key: tuple[float, str], value: datetime) -> None:
        with self._lock:
            if key in self._entries:
                return
            self._entries[key] = value
            while len(self._entries) > self.size_limit:
                del self._entries[next(iter(self._entries))]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class NormalizedTimes:
    start: datetime | None
    end: datetime | None
    problems: tuple[str, ...] = ()


class TimeZoneNormalizer:
    """Converts raw event boundaries to aware datetimes in one display timezone."""

    def __init__(self, display_timezone: str, cache: ConversionCache | None = None):
        zone = tz.gettz(display_timezone)
        if zone is None:
            raise ConfigError(f"Unknown display timezone: '{display_timezone}'")
        self.display_timezone = display_timezone
        self.tzinfo: tzinfo = zone
        self.cache = cache if cache is not None else ConversionCache()

    def normalize(self, event: Event) -> NormalizedTimes:
        problems: list[str] = []
        start = self._normalize_boundary(event, "start", event.start, problems)
        end = self._normalize_boundary(event, "end", event.end, problems)
        return NormalizedTimes(start=start, end=end, problems=tuple(problems))

    def local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tzinfo)

    def to_display(self, instant: datetime) -> datetime:
        """Convert an aware instant to display wall clock, through the cache.

        Raises TimezoneConversionError if the instant cannot be represented.
        """
        try:
            key = (instant.timestamp(), self.display_timezone)
        except (OverflowError, ValueError, OSError) as e:
            raise TimezoneConversionError(f"Cannot convert {instant!r}: {e}") from e

        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            converted = instant.astimezone(self.tzinfo)
        except (OverflowError, ValueError) as e:
            raise TimezoneConversionError(f"Cannot convert {instant!r}: {e}") from e
        self.cache.put(key, converted)
        return converted

    def _normalize_boundary(
        self, event: Event, side: str, boundary: EventTime | None, problems: list[str]
    ) -> datetime | None:
        if boundary is None:
            return None

        if boundary.all_day:
            day = _parse_date(boundary.value)
            if day is None:
                msg = f"Event '{event.id}': unparseable {side} date {boundary.value!r}"
                logger.warning(msg)
                problems.append(msg)
                return None
            return self.local_midnight(day)

        instant = _parse_instant(boundary.value)
        if instant is None:
            msg = f"Event '{event.id}': unparseable {side} time {boundary.value!r}"
            logger.warning(msg)
            problems.append(msg)
            return None

        if instant.tzinfo is None:
            try:
                instant = instant.replace(tzinfo=self._source_zone(boundary.time_zone))
            except TimezoneConversionError as e:
                msg = f"Event '{event.id}': {e}; using {self.display_timezone}"
                logger.warning(msg)
                problems.append(msg)
                instant = instant.replace(tzinfo=self.tzinfo)

        try:
            return self.to_display(instant)
        except TimezoneConversionError as e:
            msg = f"Event '{event.id}': {e}; keeping original instant"
            logger.warning(msg)
            problems.append(msg)
            return instant

    def _source_zone(self, name: str | None) -> tzinfo:
        if not name:
            return self.tzinfo
        zone = tz.gettz(name)
        if zone is None:
            raise TimezoneConversionError(f"unknown source timezone '{name}'")
        return zone


def _parse_date(value: str | date) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value).strip()).date()
    except (ValueError, OverflowError):
        return None


def _parse_instant(value: str | date) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        return isoparse(str(value).strip())
    except (ValueError, OverflowError):
        return None
