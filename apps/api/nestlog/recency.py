"""Time-since-last tracking across the full event history."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Union

from .classifier import (
    BUCKET_DIRTY,
    BUCKET_MILK,
    BUCKET_SOLID,
    BUCKET_WET,
    NormalizedEvent,
    apply_filter,
    localize,
    normalize_events,
)
from .formatting import format_elapsed
from .schemas import ClosedInterval, Event, EventCategory, FilterCategory, OpenInterval

SLEEP_ASLEEP = "asleep"
SLEEP_AWAKE = "awake"

# Sub-kinds tracked independently of their parent category.
SUB_KIND_KEYS = {
    BUCKET_MILK: "milk_feed",
    BUCKET_SOLID: "solid_feed",
    BUCKET_WET: "wet_diaper",
    BUCKET_DIRTY: "dirty_diaper",
}


@dataclass(frozen=True)
class RecencyEntry:
    key: str
    event_id: str
    last_instant: datetime
    is_ongoing: bool
    elapsed_minutes: int
    sleep_state: Optional[str] = None

    @property
    def label(self) -> str:
        # Ongoing sleep reads as a duration ("for 1h 5m"), everything else as "ago".
        return format_elapsed(self.elapsed_minutes, suffix=not self.is_ongoing)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "event_id": self.event_id,
            "last_instant": self.last_instant.isoformat(),
            "is_ongoing": self.is_ongoing,
            "elapsed_minutes": self.elapsed_minutes,
            "sleep_state": self.sleep_state,
            "label": self.label,
        }


def elapsed_minutes(since: datetime, now: datetime) -> int:
    return int(math.floor((now - since).total_seconds() / 60))


def _sleep_entry(event: NormalizedEvent, now: datetime) -> RecencyEntry:
    interval = event.interval
    if isinstance(interval, OpenInterval):
        return RecencyEntry(
            key=EventCategory.SLEEP.value,
            event_id=event.id,
            last_instant=interval.start,
            is_ongoing=True,
            elapsed_minutes=elapsed_minutes(interval.start, now),
            sleep_state=SLEEP_ASLEEP,
        )
    if isinstance(interval, ClosedInterval):
        return RecencyEntry(
            key=EventCategory.SLEEP.value,
            event_id=event.id,
            last_instant=interval.end,
            is_ongoing=False,
            elapsed_minutes=elapsed_minutes(interval.end, now),
            sleep_state=SLEEP_AWAKE,
        )
    raise TypeError(f"sleep event {event.id} has no interval")


def _point_entry(key: str, event: NormalizedEvent, now: datetime) -> RecencyEntry:
    return RecencyEntry(
        key=key,
        event_id=event.id,
        last_instant=event.start,
        is_ongoing=False,
        elapsed_minutes=elapsed_minutes(event.start, now),
    )


def newest_first(events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
    return sorted(events, key=lambda event: event.start, reverse=True)


def recency(
    events: Iterable[Union[Event, NormalizedEvent]],
    now: datetime,
    category_filter: Optional[FilterCategory] = None,
    tz: Optional[tzinfo] = None,
) -> Dict[str, RecencyEntry]:
    """Most recent event per category and sub-kind, with elapsed minutes.

    Sleep is reported as asleep (elapsed since the open nap started) or
    awake (elapsed since the last nap ended).
    Pass ``tz`` when the snapshot mixes naive and aware timestamps; raw
    events and ``now`` are then brought into that zone first.
    """

    now = localize(now, tz)
    entries: Dict[str, RecencyEntry] = {}
    for event in newest_first(apply_filter(normalize_events(events, tz=tz), category_filter)):
        category_key = event.category.value
        if category_key not in entries:
            if event.category == EventCategory.SLEEP:
                entries[category_key] = _sleep_entry(event, now)
            else:
                entries[category_key] = _point_entry(category_key, event, now)
        sub_key = SUB_KIND_KEYS.get(event.classification.bucket)
        if sub_key and sub_key not in entries:
            entries[sub_key] = _point_entry(sub_key, event, now)
    return entries
