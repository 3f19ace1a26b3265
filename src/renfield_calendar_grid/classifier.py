"""Derive all-day / multi-day flags and inclusive boundaries per event."""

from __future__ import annotations

import logging
from datetime import timedelta, timezone

from .errors import MalformedEventError
from .models import ClassifiedEvent, Event
from .normalizer import TimeZoneNormalizer

logger = logging.getLogger("renfield-calendar-grid")

ONE_DAY = timedelta(days=1)


class EventClassifier:
    def __init__(self, normalizer: TimeZoneNormalizer):
        self.normalizer = normalizer

    def classify(self, event: Event, problems: list[str] | None = None) -> ClassifiedEvent:
        """Classify one event.

        Raises MalformedEventError if a boundary is missing altogether. An
        unparseable boundary does not raise; the event comes back unplaceable
        and the normalizer's complaint is appended to ``problems``.
        """
        if event.start is None or event.end is None:
            missing = "start" if event.start is None else "end"
            raise MalformedEventError(event.id, f"missing {missing} boundary")

        times = self.normalizer.normalize(event)
        if problems is not None:
            problems.extend(times.problems)
        if times.start is None or times.end is None:
            return self.unplaceable(event)

        is_all_day = event.start.all_day and event.end.all_day
        start, end = times.start, times.end
        if is_all_day:
            # Provider all-day ends are exclusive: the day after the last included day
            end = end - ONE_DAY

        # Ordering and length on UTC instants: wall clocks repeat on DST fall-back nights
        if end.astimezone(timezone.utc) < start.astimezone(timezone.utc):
            if not is_all_day:
                logger.warning("Event '%s': end %s before start %s, clamping", event.id, end, start)
            end = start

        is_multi_day = (
            is_all_day
            or end.date() != start.date()
            or end.astimezone(timezone.utc) - start.astimezone(timezone.utc) >= ONE_DAY
        )

        return ClassifiedEvent(
            event=event,
            is_all_day=is_all_day,
            is_multi_day=is_multi_day,
            normalized_start=start,
            normalized_end=end,
        )

    def unplaceable(self, event: Event) -> ClassifiedEvent:
        """Placeholder classification for events that could not be classified."""
        return ClassifiedEvent(
            event=event,
            is_all_day=False,
            is_multi_day=False,
            normalized_start=None,
            normalized_end=None,
        )
