"""Tests for per-day composition and truncation."""

from datetime import date, datetime, timezone

import pytest
from dateutil import tz

from renfield_calendar_grid.aggregator import aggregate
from renfield_calendar_grid.calendar_days import single_day
from renfield_calendar_grid.classifier import EventClassifier
from renfield_calendar_grid.models import DayEventBucket, Event, EventTime
from renfield_calendar_grid.normalizer import TimeZoneNormalizer
from renfield_calendar_grid.overlap import OverlapLayoutEngine

CLASSIFIER = EventClassifier(TimeZoneNormalizer("America/New_York"))
DAY = single_day(date(2024, 6, 10), tz.gettz("America/New_York"), datetime(2024, 6, 1, tzinfo=timezone.utc))[0]


def _all_day(id: str):
    return CLASSIFIER.classify(Event(id=id, title=id, start=EventTime.on("2024-06-10"), end=EventTime.on("2024-06-11")))


def _timed(id: str, hour: int):
    return CLASSIFIER.classify(Event(
        id=id, title=id,
        start=EventTime.at(f"2024-06-10T{hour:02d}:00"),
        end=EventTime.at(f"2024-06-10T{hour:02d}:45"),
    ))


def _bucket(all_day=(), timed=()):
    return DayEventBucket(day=DAY, all_day_or_multi_day=tuple(all_day), timed=tuple(timed))


class TestAggregate:
    def test_empty_day(self):
        model = aggregate(_bucket(), [], 3)
        assert model.is_empty
        assert model.more_count == 0
        assert model.visible == ()

    def test_no_truncation_at_limit(self):
        timed = [_timed("a", 9), _timed("b", 10), _timed("c", 11)]
        model = aggregate(_bucket(timed=timed), None, 3)
        assert model.more_count == 0
        assert len(model.visible) == 3

    def test_truncation_keeps_full_list(self):
        all_day = [_all_day("holiday"), _all_day("birthday")]
        timed = [_timed("a", 9), _timed("b", 10), _timed("c", 11)]
        model = aggregate(_bucket(all_day, timed), [], 3)
        assert model.more_count == 2
        assert len(model.full_list) == 5
        assert model.visible == model.full_list[:3]

    def test_all_day_before_timed(self):
        model = aggregate(_bucket([_all_day("holiday")], [_timed("early", 6)]), [], 3)
        assert [e.id for e in model.full_list] == ["holiday", "early"]

    def test_layout_slots_carried(self):
        timed = [_timed("a", 9), _timed("b", 9)]
        slots = OverlapLayoutEngine().layout_day(timed, DAY.day)
        model = aggregate(_bucket(timed=timed), slots, 3)
        assert model.timed_slots == tuple(slots)
        assert model.all_day_or_multi_day == ()

    def test_custom_limit(self):
        timed = [_timed(str(h), h) for h in range(8, 14)]
        model = aggregate(_bucket(timed=timed), [], 1)
        assert model.more_count == 5
        assert [e.id for e in model.visible] == ["8"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            aggregate(_bucket(), [], 0)
