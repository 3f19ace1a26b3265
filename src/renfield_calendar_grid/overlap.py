"""Column layout for overlapping timed events within one day.

Events are taken in start order and each is dropped into the lowest-numbered
column that is free at its start time (greedy interval-graph colouring). A
cluster is a run of events connected by overlap; it closes as soon as every
column is free again. All events of a cluster share the cluster's column count,
so a lone event after a busy morning still gets the full width.
"""

from __future__ import annotations

import heapq
from datetime import date, datetime, time, timedelta, timezone

from .indexer import timed_sort_key
from .models import ClassifiedEvent, LayoutSlot


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class OverlapLayoutEngine:
    def __init__(self, min_duration_minutes: int = 20):
        if min_duration_minutes < 1:
            raise ValueError(f"min_duration_minutes must be >= 1, got {min_duration_minutes}")
        self.min_duration_minutes = min_duration_minutes

    def layout_day(self, timed_events: list[ClassifiedEvent], day: date | None = None) -> list[LayoutSlot]:
        """Assign (column, column_count) to each timed event of ``day``.

        ``day`` defaults to the first event's start date. Output follows the
        sorted (start, id) order and is deterministic for a given input set.
        """
        events = sorted((e for e in timed_events if e.placeable), key=timed_sort_key)
        if not events:
            return []

        if day is None:
            day = events[0].normalized_start.date()
        midnight = datetime.combine(day, time.min, tzinfo=events[0].normalized_start.tzinfo)

        floor = timedelta(minutes=self.min_duration_minutes)
        active: list[tuple[datetime, int]] = []  # (UTC end, column)
        free: list[int] = []
        opened = 0

        placed: list[tuple[ClassifiedEvent, int, int, int]] = []  # (event, column, top, duration)
        widths: list[int] = []
        cluster_start = 0
        cluster_width = 0

        for event in events:
            # Collisions use exact UTC instants; only the offset is wall-clock
            start = event.normalized_start.astimezone(timezone.utc)
            end = max(event.normalized_end.astimezone(timezone.utc), start + floor)
            top = max(0, _minutes(event.normalized_start - midnight))
            duration = max(self.min_duration_minutes, _minutes(end - start))

            while active and active[0][0] <= start:
                heapq.heappush(free, heapq.heappop(active)[1])

            if not active:
                # Every column is free: the previous cluster is complete
                widths.extend([cluster_width] * (len(placed) - cluster_start))
                cluster_start = len(placed)
                cluster_width = 0

            column = heapq.heappop(free) if free else opened
            if column == opened:
                opened += 1

            heapq.heappush(active, (end, column))
            cluster_width = max(cluster_width, column + 1)
            placed.append((event, column, top, duration))

        widths.extend([cluster_width] * (len(placed) - cluster_start))

        return [
            LayoutSlot(
                event=event,
                column=column,
                column_count=width,
                top_offset_minutes=top,
                duration_minutes=duration,
            )
            for (event, column, top, duration), width in zip(placed, widths)
        ]
