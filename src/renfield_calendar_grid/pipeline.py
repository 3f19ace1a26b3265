"""One render pass: raw events in, per-day render models out."""

from __future__ import annotations

import logging
from datetime import date, datetime

from .aggregator import aggregate
from .calendar_days import month_days, single_day, week_days
from .classifier import EventClassifier
from .config import DisplayConfig
from .errors import MalformedEventError
from .indexer import index_into_days
from .models import CalendarDay, ClassifiedEvent, Event, RenderResult
from .normalizer import ConversionCache, TimeZoneNormalizer
from .overlap import OverlapLayoutEngine

logger = logging.getLogger("renfield-calendar-grid")


class RenderContext:
    """Owns the conversion cache and engines for render passes in one display setup.

    A pass never mutates its inputs, so rendering the same events and days
    twice gives equal results.
    """

    def __init__(self, display: DisplayConfig | None = None, cache: ConversionCache | None = None):
        self.display = display or DisplayConfig()
        self.cache = cache if cache is not None else ConversionCache(self.display.cache_size_limit)
        self.normalizer = TimeZoneNormalizer(self.display.timezone, self.cache)
        self.classifier = EventClassifier(self.normalizer)
        self.layout_engine = OverlapLayoutEngine(self.display.min_event_minutes)

    @property
    def tzinfo(self):
        return self.normalizer.tzinfo

    def week(self, anchor: date, now: datetime) -> list[CalendarDay]:
        return week_days(anchor, self.display.week_starts_on, self.tzinfo, now)

    def month(self, year: int, month: int, now: datetime) -> list[CalendarDay]:
        return month_days(year, month, self.display.week_starts_on, self.tzinfo, now)

    def day(self, day: date, now: datetime) -> list[CalendarDay]:
        return single_day(day, self.tzinfo, now)

    def classify_all(self, events: list[Event], warnings: list[str] | None = None) -> list[ClassifiedEvent]:
        """Classify every event. Bad events are logged and kept as unplaceable."""
        if warnings is None:
            warnings = []
        classified = []
        for event in events:
            try:
                classified.append(self.classifier.classify(event, warnings))
            except MalformedEventError as e:
                logger.warning("Skipping malformed event: %s", e)
                warnings.append(str(e))
                classified.append(self.classifier.unplaceable(event))
        return classified

    def render(self, events: list[Event], visible_days: list[CalendarDay]) -> RenderResult:
        result = RenderResult()
        result.all_events = self.classify_all(events, result.warnings)

        buckets = index_into_days(result.all_events, visible_days)
        for index in range(len(visible_days)):
            bucket = buckets[index]
            slots = self.layout_engine.layout_day(list(bucket.timed), bucket.day.day)
            result.days.append(aggregate(bucket, slots, self.display.max_visible_per_day))

        logger.debug(
            "Rendered %d day(s) from %d event(s), %d unplaceable",
            len(visible_days), len(events), len(result.unplaceable),
        )
        return result
