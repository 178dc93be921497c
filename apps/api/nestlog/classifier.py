"""Event classification and ingestion normalization.

Every consumer (aggregation, recency, timeline layout, reports) works on
``NormalizedEvent`` records produced here, so fallback rules such as "a feed
with no method is a bottle feed" live in exactly one place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from .schemas import (
    DETAILS_BY_CATEGORY,
    WELLNESS_CATEGORIES,
    ClosedInterval,
    DiaperDetails,
    DiaperStatus,
    Event,
    EventCategory,
    EventDetails,
    FeedDetails,
    FeedMethod,
    FilterCategory,
    MeasurementDetails,
    MeasurementType,
    OpenInterval,
    SleepInterval,
    UnclassifiedDetails,
    unit_for_measurement,
)

logger = logging.getLogger(__name__)

BUCKET_MILK = "milk"
BUCKET_SOLID = "solid"
BUCKET_SLEEP = "sleep"
BUCKET_WET = "wet"
BUCKET_DIRTY = "dirty"
BUCKET_WELLNESS = "wellness"

DIRTY_STATUSES = {DiaperStatus.DIRTY, DiaperStatus.MIXED}

# Older records store the volume as "amountml".
_LEGACY_DETAIL_KEYS = {"amountml": "amountMl"}


class MixedSubjectError(ValueError):
    """Raised when one snapshot carries events for more than one subject."""


@dataclass(frozen=True)
class Classification:
    category: EventCategory
    bucket: str
    feed_method: Optional[FeedMethod] = None
    volume_ml: float = 0.0
    is_dirty_diaper: Optional[bool] = None
    sleep_minutes: Optional[int] = None

    @property
    def is_milk(self) -> bool:
        return self.bucket == BUCKET_MILK

    @property
    def is_solid(self) -> bool:
        return self.bucket == BUCKET_SOLID


@dataclass(frozen=True)
class NormalizedEvent:
    event: Event
    start: datetime
    end: Optional[datetime]
    details: EventDetails
    classification: Classification
    interval: Optional[SleepInterval] = None

    @property
    def id(self) -> str:
        return self.event.id

    @property
    def category(self) -> EventCategory:
        return self.event.category

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def is_open_sleep(self) -> bool:
        return isinstance(self.interval, OpenInterval)


def parse_instant(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def localize(value: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _validate_fieldwise(model: Type[BaseModel], raw: Dict[str, Any], category: EventCategory) -> EventDetails:
    data = dict(raw)
    while True:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            invalid = {error["loc"][0] for error in exc.errors() if error["loc"] and error["loc"][0] in data}
            if not invalid:
                raise
            logger.debug(
                "dropping invalid detail fields",
                extra={"category": category.value, "fields": sorted(invalid)},
            )
            for key in invalid:
                data.pop(key)


def resolve_details(category: EventCategory, details: Optional[Dict[str, Any]]) -> EventDetails:
    """Validate the open details bag into the shape for ``category``.

    Fields that fail validation are dropped and the rest is validated again,
    so one malformed field never changes the method, status or type that
    decides the bucket. Only a bag that still cannot validate comes back as
    ``UnclassifiedDetails``.
    """

    raw = dict(details or {})
    for legacy, current in _LEGACY_DETAIL_KEYS.items():
        if legacy in raw and current not in raw:
            raw[current] = raw.pop(legacy)
    raw.pop("kind", None)

    model = DETAILS_BY_CATEGORY.get(category)
    if model is None:
        return UnclassifiedDetails.model_validate(raw)
    try:
        resolved = _validate_fieldwise(model, raw, category)
    except ValidationError:
        logger.debug("unclassified details", extra={"category": category.value})
        return UnclassifiedDetails.model_validate(raw)

    if isinstance(resolved, MeasurementDetails) and not resolved.unit:
        resolved = resolved.model_copy(update={"unit": unit_for_measurement(resolved.type)})
    return resolved


def _classify(
    category: EventCategory,
    details: EventDetails,
    interval: Optional[SleepInterval],
) -> Classification:
    if category == EventCategory.FEED:
        method = details.method if isinstance(details, FeedDetails) else FeedMethod.BOTTLE
        if method == FeedMethod.SOLID:
            return Classification(category=category, bucket=BUCKET_SOLID, feed_method=method)
        volume = 0.0
        if isinstance(details, FeedDetails) and details.amount_ml:
            volume = float(details.amount_ml)
        return Classification(category=category, bucket=BUCKET_MILK, feed_method=method, volume_ml=volume)

    if category == EventCategory.DIAPER:
        status = details.status if isinstance(details, DiaperDetails) else None
        dirty = status in DIRTY_STATUSES
        return Classification(
            category=category,
            bucket=BUCKET_DIRTY if dirty else BUCKET_WET,
            is_dirty_diaper=dirty,
        )

    if category == EventCategory.SLEEP:
        minutes = interval.minutes if isinstance(interval, ClosedInterval) else None
        return Classification(category=category, bucket=BUCKET_SLEEP, sleep_minutes=minutes)

    return Classification(category=category, bucket=BUCKET_WELLNESS)


def normalize_event(event: Event, tz: Optional[tzinfo] = None) -> Optional[NormalizedEvent]:
    """Resolve one stored event; ``None`` when its timestamps are unusable."""

    start = parse_instant(event.start_time)
    if start is None:
        logger.debug("dropping event with invalid start", extra={"event_id": event.id})
        return None
    start = localize(start, tz)

    end: Optional[datetime] = None
    if event.end_time is not None and event.end_time != "":
        end = parse_instant(event.end_time)
        if end is None:
            logger.debug("dropping event with invalid end", extra={"event_id": event.id})
            return None
        end = localize(end, tz)

    interval: Optional[SleepInterval] = None
    if event.category == EventCategory.SLEEP:
        interval = ClosedInterval(start=start, end=end) if end is not None else OpenInterval(start=start)

    details = resolve_details(event.category, event.details)
    return NormalizedEvent(
        event=event,
        start=start,
        end=end,
        details=details,
        classification=_classify(event.category, details, interval),
        interval=interval,
    )


def normalize_events(
    events: Iterable[Union[Event, NormalizedEvent]],
    subject_id: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> List[NormalizedEvent]:
    """Normalize a single subject's snapshot, dropping malformed records.

    With ``subject_id`` other subjects' records are skipped; without it a
    snapshot spanning several subjects raises ``MixedSubjectError``.
    """

    normalized: List[NormalizedEvent] = []
    seen_subject: Optional[str] = subject_id
    dropped = 0
    for item in events:
        record = item.event if isinstance(item, NormalizedEvent) else item
        if subject_id is not None and record.subject_id != subject_id:
            continue
        if seen_subject is None:
            seen_subject = record.subject_id
        elif record.subject_id != seen_subject:
            raise MixedSubjectError(
                f"events for subjects {seen_subject!r} and {record.subject_id!r} in one snapshot"
            )
        if isinstance(item, NormalizedEvent):
            normalized.append(item)
            continue
        resolved = normalize_event(record, tz=tz)
        if resolved is None:
            dropped += 1
            continue
        normalized.append(resolved)
    if dropped:
        logger.info("dropped malformed events", extra={"subject_id": seen_subject, "count": dropped})
    return normalized


def classify(event: Event) -> Optional[Classification]:
    resolved = normalize_event(event)
    return resolved.classification if resolved is not None else None


def is_wellness(category: EventCategory) -> bool:
    return category in WELLNESS_CATEGORIES


def matches_filter(category: EventCategory, category_filter: Optional[FilterCategory]) -> bool:
    """Shared category-membership predicate for every dashboard view."""

    if category_filter is None:
        return True
    if category_filter == FilterCategory.WELLNESS:
        return is_wellness(category)
    return category.value == category_filter.value


def apply_filter(
    events: Iterable[NormalizedEvent],
    category_filter: Optional[FilterCategory],
) -> List[NormalizedEvent]:
    return [event for event in events if matches_filter(event.category, category_filter)]


def is_health_log_entry(event: NormalizedEvent) -> bool:
    if event.category == EventCategory.SYMPTOM:
        return True
    return (
        event.category == EventCategory.MEASUREMENT
        and isinstance(event.details, MeasurementDetails)
        and event.details.type == MeasurementType.TEMPERATURE
    )
