"""Bucket classified events into the visible days they touch."""

from __future__ import annotations

from datetime import timezone

from .models import CalendarDay, ClassifiedEvent, DayEventBucket


def timed_sort_key(event: ClassifiedEvent):
    # UTC so the repeated hour of a DST fall-back night still sorts by instant
    return (event.normalized_start.astimezone(timezone.utc), event.id)


def index_into_days(
    events: list[ClassifiedEvent], visible_days: list[CalendarDay]
) -> dict[int, DayEventBucket]:
    """Map each visible day index to its bucket.

    Multi-day and all-day events land in every day they span (calendar-day
    comparison, so time of day never causes an off-by-one). Timed events
    land in the single day they start on. Unplaceable events are skipped.
    """
    placeable = [e for e in events if e.placeable]
    buckets: dict[int, DayEventBucket] = {}

    for index, day in enumerate(visible_days):
        current = day.day
        spanning = []
        timed = []
        for event in placeable:
            if event.is_multi_day or event.is_all_day:
                if event.normalized_start.date() <= current <= event.normalized_end.date():
                    spanning.append(event)
            elif event.normalized_start.date() == current:
                timed.append(event)

        timed.sort(key=timed_sort_key)
        buckets[index] = DayEventBucket(
            day=day,
            all_day_or_multi_day=tuple(spanning),
            timed=tuple(timed),
        )

    return buckets
