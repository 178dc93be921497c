"""24-hour day timeline layout.

Placements are expressed in minutes from local midnight; ``TimelineScale``
turns them into pixels. Simultaneous events are not packed into columns,
they share the same vertical span.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Iterable, List, Optional, Union

from .aggregator import as_day
from .classifier import NormalizedEvent, apply_filter, localize, normalize_events
from .formatting import event_label
from .schemas import ClosedInterval, Event, EventCategory, FilterCategory, OpenInterval

MINUTES_PER_DAY = 24 * 60
POINT_EVENT_MAX_MINUTES = 30
SLEEP_MIN_DISPLAY_MINUTES = 15


@dataclass(frozen=True)
class Placement:
    event_id: str
    category: EventCategory
    top_minute_offset: int
    display_duration_minutes: float
    true_duration_minutes: Optional[int] = None
    is_ongoing: bool = False
    label: str = ""

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "category": self.category.value,
            "top_minute_offset": self.top_minute_offset,
            "display_duration_minutes": self.display_duration_minutes,
            "true_duration_minutes": self.true_duration_minutes,
            "is_ongoing": self.is_ongoing,
            "label": self.label,
        }


@dataclass(frozen=True)
class TimelineLayout:
    day: date
    placements: List[Placement] = field(default_factory=list)
    now_marker_offset: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "placements": [placement.to_dict() for placement in self.placements],
            "now_marker_offset": self.now_marker_offset,
        }


@dataclass(frozen=True)
class TimelineScale:
    """Pixel mapping with a minimum block height so short events stay legible."""

    pixels_per_minute: float = 2.0
    min_block_px: float = 40.0

    @property
    def axis_px(self) -> float:
        return MINUTES_PER_DAY * self.pixels_per_minute

    def top_px(self, minute_offset: float) -> float:
        return minute_offset * self.pixels_per_minute

    def height_px(self, duration_minutes: float) -> float:
        return max(duration_minutes * self.pixels_per_minute, self.min_block_px)


def minute_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def display_duration(
    event: NormalizedEvent,
    now: Optional[datetime] = None,
    point_max_minutes: int = POINT_EVENT_MAX_MINUTES,
    sleep_floor_minutes: int = SLEEP_MIN_DISPLAY_MINUTES,
) -> float:
    """Rendering extent in minutes; never the stored duration for point events."""

    interval = event.interval
    if isinstance(interval, ClosedInterval):
        return max(sleep_floor_minutes, interval.minutes)
    if isinstance(interval, OpenInterval):
        top = minute_of_day(interval.start)
        if now is not None and now.date() == interval.start.date():
            extent = minute_of_day(now) - top
        else:
            extent = MINUTES_PER_DAY - top
        return max(sleep_floor_minutes, extent)
    return point_max_minutes


def layout(
    day_events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    now: Optional[datetime] = None,
    category_filter: Optional[FilterCategory] = None,
    point_max_minutes: int = POINT_EVENT_MAX_MINUTES,
    sleep_floor_minutes: int = SLEEP_MIN_DISPLAY_MINUTES,
    tz: Optional[tzinfo] = None,
) -> TimelineLayout:
    """Place the viewed day's events on a 1440-minute axis.

    Events on other days and events with unparseable timestamps are left out.
    The now marker is only set when ``now`` falls on the viewed day.
    With ``tz`` raw events and ``now`` are localized before placement.
    """

    day = as_day(reference_date)
    if now is not None:
        now = localize(now, tz)
    normalized = [
        event
        for event in apply_filter(normalize_events(day_events, tz=tz), category_filter)
        if event.day == day
    ]
    normalized.sort(key=lambda event: event.start)

    placements = [
        Placement(
            event_id=event.id,
            category=event.category,
            top_minute_offset=minute_of_day(event.start),
            display_duration_minutes=display_duration(
                event,
                now=now,
                point_max_minutes=point_max_minutes,
                sleep_floor_minutes=sleep_floor_minutes,
            ),
            true_duration_minutes=event.classification.sleep_minutes,
            is_ongoing=event.is_open_sleep,
            label=event_label(event),
        )
        for event in normalized
    ]

    now_marker: Optional[int] = None
    if now is not None and now.date() == day:
        now_marker = minute_of_day(now)
    return TimelineLayout(day=day, placements=placements, now_marker_offset=now_marker)
