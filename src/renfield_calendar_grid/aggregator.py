"""Compose the per-day event list and apply the "+N more" truncation."""

from __future__ import annotations

from .models import DayEventBucket, DayRenderModel, LayoutSlot


def aggregate(bucket: DayEventBucket, layout_slots: list[LayoutSlot] | None, max_visible: int = 3) -> DayRenderModel:
    """Build the render model for one day.

    All-day and multi-day events come first in bucket order, then timed events
    in start order. The full list is kept on the model so the expanded view
    needs no second pass.
    """
    if max_visible < 1:
        raise ValueError(f"max_visible must be >= 1, got {max_visible}")

    full_list = bucket.all_day_or_multi_day + bucket.timed
    return DayRenderModel(
        day=bucket.day,
        all_day_or_multi_day=bucket.all_day_or_multi_day,
        timed_slots=tuple(layout_slots or ()),
        more_count=max(0, len(full_list) - max_visible),
        full_list=full_list,
        max_visible=max_visible,
    )
