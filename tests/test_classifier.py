"""Tests for all-day / multi-day classification."""

from datetime import date, timedelta, timezone

import pytest

from renfield_calendar_grid.classifier import EventClassifier
from renfield_calendar_grid.errors import MalformedEventError
from renfield_calendar_grid.models import Event, EventTime
from renfield_calendar_grid.normalizer import TimeZoneNormalizer


@pytest.fixture
def classifier():
    return EventClassifier(TimeZoneNormalizer("America/New_York"))


def _all_day(start: str, end: str, id: str = "evt-1") -> Event:
    return Event(id=id, title="Holiday", start=EventTime.on(start), end=EventTime.on(end))


def _timed(start: str, end: str, id: str = "evt-1") -> Event:
    return Event(id=id, title="Meeting", start=EventTime.at(start), end=EventTime.at(end))


class TestAllDay:
    def test_exclusive_end_becomes_inclusive(self, classifier):
        result = classifier.classify(_all_day("2024-03-01", "2024-03-03"))
        assert result.is_all_day
        assert result.is_multi_day
        assert result.normalized_start.date() == date(2024, 3, 1)
        assert result.normalized_end.date() == date(2024, 3, 2)

    def test_single_all_day(self, classifier):
        result = classifier.classify(_all_day("2024-03-01", "2024-03-02"))
        assert result.is_all_day
        assert result.is_multi_day
        assert result.normalized_start == result.normalized_end

    def test_end_equal_to_start_is_clamped(self, classifier):
        result = classifier.classify(_all_day("2024-03-01", "2024-03-01"))
        assert result.normalized_end == result.normalized_start

    def test_adjustment_applied_once(self, classifier):
        event = _all_day("2024-03-01", "2024-03-05")
        first = classifier.classify(event)
        second = classifier.classify(event)
        assert first.normalized_end.date() == date(2024, 3, 4)
        assert second == first

    def test_mixed_boundaries_are_not_all_day(self, classifier):
        event = Event(
            id="mixed", title="Mixed",
            start=EventTime.on("2024-03-01"), end=EventTime.at("2024-03-01T12:00:00"),
        )
        result = classifier.classify(event)
        assert not result.is_all_day
        assert not result.is_multi_day
        assert result.normalized_end.hour == 12


class TestTimed:
    def test_single_day(self, classifier):
        result = classifier.classify(_timed("2024-06-10T09:00", "2024-06-10T10:00"))
        assert not result.is_all_day
        assert not result.is_multi_day
        assert result.placeable

    def test_crossing_midnight_is_multi_day(self, classifier):
        result = classifier.classify(_timed("2024-06-10T23:00", "2024-06-11T02:00"))
        assert result.is_multi_day
        assert result.normalized_end.date() == date(2024, 6, 11)

    def test_long_event_is_multi_day(self, classifier):
        result = classifier.classify(_timed("2024-06-10T08:00", "2024-06-12T08:00"))
        assert result.is_multi_day

    def test_crossing_midnight_in_display_timezone(self, classifier):
        # 22:00-23:30 UTC is 18:00-19:30 in New York: one day
        result = classifier.classify(_timed("2024-06-10T22:00:00Z", "2024-06-10T23:30:00Z"))
        assert not result.is_multi_day
        # 03:00-05:00 UTC is 23:00-01:00 in New York: crosses midnight there
        result = classifier.classify(_timed("2024-06-11T03:00:00Z", "2024-06-11T05:00:00Z"))
        assert result.is_multi_day

    def test_end_before_start_is_clamped(self, classifier):
        result = classifier.classify(_timed("2024-06-10T10:00", "2024-06-10T09:00"))
        assert result.normalized_end == result.normalized_start
        assert not result.is_multi_day

    def test_fall_back_night_keeps_real_end(self, classifier):
        # 01:30 EDT to 01:15 EST: the wall clock goes backwards, the instant does not
        problems = []
        result = classifier.classify(_timed("2024-11-03T05:30:00Z", "2024-11-03T06:15:00Z"), problems)
        start = result.normalized_start.astimezone(timezone.utc)
        end = result.normalized_end.astimezone(timezone.utc)
        assert end - start == timedelta(minutes=45)
        assert not result.is_multi_day
        assert problems == []

    def test_zero_duration(self, classifier):
        result = classifier.classify(_timed("2024-06-10T10:00", "2024-06-10T10:00"))
        assert not result.is_multi_day
        assert result.normalized_end == result.normalized_start


class TestUnplaceable:
    def test_missing_start_raises(self, classifier):
        event = Event(id="bad", title="Bad", start=None, end=EventTime.on("2024-03-02"))
        with pytest.raises(MalformedEventError, match="start"):
            classifier.classify(event)

    def test_missing_end_raises(self, classifier):
        event = Event(id="bad", title="Bad", start=EventTime.on("2024-03-01"), end=None)
        with pytest.raises(MalformedEventError, match="end"):
            classifier.classify(event)

    def test_unparseable_boundary(self, classifier):
        problems: list[str] = []
        result = classifier.classify(_timed("garbage", "2024-06-10T10:00"), problems)
        assert not result.placeable
        assert not result.is_multi_day
        assert result.normalized_start is None
        assert result.normalized_end is None
        assert len(problems) == 1

    def test_unplaceable_placeholder(self, classifier):
        event = _timed("2024-06-10T09:00", "2024-06-10T10:00")
        result = classifier.unplaceable(event)
        assert result.event is event
        assert not result.placeable
