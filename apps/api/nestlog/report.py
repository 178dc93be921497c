"""Report, dashboard, and day-list builders on top of the analytics core."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional, Union

from .aggregator import (
    DEFAULT_TRAILING_DAYS,
    TODAY,
    TRAILING_WEEK,
    YESTERDAY,
    CategoryCounters,
    DailyAverages,
    aggregate,
    as_day,
    daily_average,
    standard_windows,
)
from .classifier import NormalizedEvent, apply_filter, is_health_log_entry, normalize_events
from .formatting import describe_event, format_duration
from .recency import SLEEP_AWAKE, RecencyEntry, newest_first, recency
from .schemas import Event, EventCategory, FilterCategory, MeasurementDetails, SymptomDetails

HEALTH_LOG_DAYS = 30
HEALTH_LOG_LIMIT = 10


@dataclass(frozen=True)
class HealthLogEntry:
    event_id: str
    kind: str
    start: datetime
    summary: str
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "kind": self.kind,
            "start": self.start.isoformat(),
            "summary": self.summary,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class ReportModel:
    reference_day: date
    today: CategoryCounters
    yesterday: CategoryCounters
    trailing_week: CategoryCounters
    averages: DailyAverages
    health_log: List[HealthLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "reference_day": self.reference_day.isoformat(),
            "today": _counters_payload(self.today),
            "yesterday": _counters_payload(self.yesterday),
            "trailing_week": _counters_payload(self.trailing_week),
            "averages": {
                **self.averages.to_dict(),
                "sleep_total": format_duration(self.averages.sleep_minutes),
            },
            "health_log": [entry.to_dict() for entry in self.health_log],
        }


@dataclass(frozen=True)
class DaySummary:
    day: date
    milk_count: int
    milk_volume_ml: float
    solid_count: int
    nap_count: int
    sleep_minutes: float
    wet_count: int
    dirty_count: int
    wellness_count: int
    health_alert: bool
    sleep_state: str
    recency: Dict[str, RecencyEntry] = field(default_factory=dict)

    @property
    def sleep_total(self) -> str:
        return format_duration(self.sleep_minutes)

    def recency_label(self, key: str) -> Optional[str]:
        entry = self.recency.get(key)
        return entry.label if entry is not None else None

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "milk": {"count": self.milk_count, "volume_ml": self.milk_volume_ml},
            "solids": {"count": self.solid_count},
            "sleep": {
                "count": self.nap_count,
                "minutes": self.sleep_minutes,
                "total": self.sleep_total,
                "state": self.sleep_state,
            },
            "diaper": {"wet": self.wet_count, "dirty": self.dirty_count},
            "wellness": {"count": self.wellness_count, "is_alert": self.health_alert},
            "recency": {key: entry.to_dict() for key, entry in self.recency.items()},
        }


def _counters_payload(counters: CategoryCounters) -> dict:
    return {**counters.to_dict(), "sleep_total": format_duration(counters.sleep_minutes)}


def _health_log_entry(event: NormalizedEvent) -> HealthLogEntry:
    details = event.details
    if event.category == EventCategory.SYMPTOM:
        summary = details.description if isinstance(details, SymptomDetails) else None
        return HealthLogEntry(
            event_id=event.id,
            kind="symptom",
            start=event.start,
            summary=summary or "Symptom logged",
            notes=event.event.notes,
        )
    summary = ""
    if isinstance(details, MeasurementDetails) and details.value is not None:
        summary = f"{details.value:g}{details.unit or ''}"
    return HealthLogEntry(
        event_id=event.id,
        kind="temperature",
        start=event.start,
        summary=summary or "Temperature logged",
        notes=event.event.notes,
    )


def health_log(
    events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    days: int = HEALTH_LOG_DAYS,
    limit: int = HEALTH_LOG_LIMIT,
    tz: Optional[tzinfo] = None,
) -> List[HealthLogEntry]:
    """Symptoms and temperature readings from the last ``days`` days, newest first.

    Both ends are inclusive calendar days: an event exactly ``days`` days
    before the reference day is kept.
    """

    last_day = as_day(reference_date)
    first_day = last_day - timedelta(days=days)
    eligible = [
        event
        for event in normalize_events(events, tz=tz)
        if is_health_log_entry(event) and first_day <= event.day <= last_day
    ]
    return [_health_log_entry(event) for event in newest_first(eligible)[:limit]]


def compose(
    events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    trailing_days: int = DEFAULT_TRAILING_DAYS,
    health_log_days: int = HEALTH_LOG_DAYS,
    health_log_limit: int = HEALTH_LOG_LIMIT,
    tz: Optional[tzinfo] = None,
) -> ReportModel:
    normalized = normalize_events(events, tz=tz)
    windows = standard_windows(reference_date, trailing_days=trailing_days)
    totals = aggregate(normalized, reference_date, windows)
    return ReportModel(
        reference_day=as_day(reference_date),
        today=totals[TODAY],
        yesterday=totals[YESTERDAY],
        trailing_week=totals[TRAILING_WEEK],
        averages=daily_average(totals[TRAILING_WEEK], days=windows[TRAILING_WEEK].days),
        health_log=health_log(normalized, reference_date, days=health_log_days, limit=health_log_limit),
    )


def summarize_day(
    events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    now: datetime,
    category_filter: Optional[FilterCategory] = None,
    tz: Optional[tzinfo] = None,
) -> DaySummary:
    """Dashboard cards: the viewed day's counts plus all-history recency."""

    normalized = normalize_events(events, tz=tz)
    day = as_day(reference_date)
    counters = aggregate(normalized, day, {TODAY: standard_windows(day)[TODAY]}, category_filter)[TODAY]
    latest = recency(normalized, now, category_filter, tz=tz)
    sleep_entry = latest.get(EventCategory.SLEEP.value)
    return DaySummary(
        day=day,
        milk_count=counters.milk_count,
        milk_volume_ml=counters.milk_volume_ml,
        solid_count=counters.solid_count,
        nap_count=counters.nap_count,
        sleep_minutes=counters.sleep_minutes,
        wet_count=counters.wet_count,
        dirty_count=counters.dirty_count,
        wellness_count=counters.wellness_count,
        health_alert=counters.symptom_count > 0,
        sleep_state=sleep_entry.sleep_state if sleep_entry is not None else SLEEP_AWAKE,
        recency=latest,
    )


def list_day_events(
    events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    category_filter: Optional[FilterCategory] = None,
    tz: Optional[tzinfo] = None,
) -> List[dict]:
    day = as_day(reference_date)
    todays = [event for event in apply_filter(normalize_events(events, tz=tz), category_filter) if event.day == day]
    return [
        {
            "id": event.id,
            "category": event.category.value,
            "start": event.start.isoformat(),
            "end": event.end.isoformat() if event.end is not None else None,
            "description": describe_event(event),
            "notes": event.event.notes,
        }
        for event in newest_first(todays)
    ]
