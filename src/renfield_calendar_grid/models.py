"""Value types flowing through the layout pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

NO_TITLE = "(No title)"


@dataclass(frozen=True)
class EventTime:
    """One event boundary: a date-only value or a zoned instant.

    ``value`` is either an ISO 8601 string or an already parsed
    ``date``/``datetime``; parsing happens during normalization.
    """

    value: str | date
    all_day: bool = False
    time_zone: str | None = None  # source timezone, IANA name

    @classmethod
    def on(cls, day: str | date) -> EventTime:
        return cls(value=day, all_day=True)

    @classmethod
    def at(cls, instant: str | datetime, time_zone: str | None = None) -> EventTime:
        return cls(value=instant, all_day=False, time_zone=time_zone)


@dataclass(frozen=True)
class Attendee:
    email: str
    display_name: str = ""
    response_status: str = "needsAction"


@dataclass(frozen=True)
class Event:
    """Unified calendar event representation."""

    id: str
    title: str
    start: EventTime | None
    end: EventTime | None
    description: str = ""
    location: str = ""
    calendar: str = ""  # Account name from the config
    attendees: tuple[Attendee, ...] = ()


@dataclass(frozen=True)
class ClassifiedEvent:
    """An event with its display-timezone boundaries and derived flags.

    ``normalized_end`` is inclusive. Both boundaries are ``None`` when the
    event could not be placed.
    """

    event: Event
    is_all_day: bool
    is_multi_day: bool
    normalized_start: datetime | None
    normalized_end: datetime | None

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def title(self) -> str:
        return self.event.title

    @property
    def placeable(self) -> bool:
        return self.normalized_start is not None and self.normalized_end is not None


@dataclass(frozen=True)
class CalendarDay:
    """A visible day cell."""

    date: int  # day of month
    full_date: datetime  # local midnight in the display timezone
    is_today: bool
    is_in_focused_period: bool
    weekday: str = ""  # "SUN", "MON", ...

    @property
    def day(self) -> date:
        return self.full_date.date()


@dataclass(frozen=True)
class DayEventBucket:
    day: CalendarDay
    all_day_or_multi_day: tuple[ClassifiedEvent, ...] = ()
    timed: tuple[ClassifiedEvent, ...] = ()


@dataclass(frozen=True)
class LayoutSlot:
    """Placement of one timed event inside a day column."""

    event: ClassifiedEvent
    column: int
    column_count: int
    top_offset_minutes: int
    duration_minutes: int


@dataclass(frozen=True)
class DayRenderModel:
    """Everything the view needs to draw one day cell."""

    day: CalendarDay
    all_day_or_multi_day: tuple[ClassifiedEvent, ...]
    timed_slots: tuple[LayoutSlot, ...]
    more_count: int
    full_list: tuple[ClassifiedEvent, ...]
    max_visible: int = 3

    @property
    def visible(self) -> tuple[ClassifiedEvent, ...]:
        return self.full_list[: self.max_visible]

    @property
    def is_empty(self) -> bool:
        return not self.full_list


@dataclass
class RenderResult:
    """Output of one render pass."""

    days: list[DayRenderModel] = field(default_factory=list)
    all_events: list[ClassifiedEvent] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def unplaceable(self) -> list[ClassifiedEvent]:
        return [e for e in self.all_events if not e.placeable]
