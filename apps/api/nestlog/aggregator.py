"""Windowed per-category counters and trailing averages."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional, Union

from .classifier import (
    BUCKET_DIRTY,
    BUCKET_MILK,
    BUCKET_SLEEP,
    BUCKET_SOLID,
    BUCKET_WELLNESS,
    BUCKET_WET,
    NormalizedEvent,
    apply_filter,
    normalize_events,
)
from .schemas import Event, EventCategory, FeedMethod, FilterCategory

TODAY = "today"
YESTERDAY = "yesterday"
TRAILING_WEEK = "trailing_week"

DEFAULT_TRAILING_DAYS = 7


@dataclass(frozen=True)
class Window:
    """An inclusive range of calendar days."""

    name: str
    first_day: date
    last_day: date

    @property
    def days(self) -> int:
        return (self.last_day - self.first_day).days + 1

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day


@dataclass
class CategoryCounters:
    bottle_count: int = 0
    breast_count: int = 0
    solid_count: int = 0
    milk_volume_ml: float = 0.0
    nap_count: int = 0
    sleep_minutes: float = 0.0
    wet_count: int = 0
    dirty_count: int = 0
    wellness_count: int = 0
    symptom_count: int = 0

    @property
    def milk_count(self) -> int:
        return self.bottle_count + self.breast_count

    @property
    def feed_count(self) -> int:
        return self.milk_count + self.solid_count

    @property
    def diaper_count(self) -> int:
        return self.wet_count + self.dirty_count

    def add(self, event: NormalizedEvent) -> None:
        result = event.classification
        if result.bucket == BUCKET_MILK:
            if result.feed_method == FeedMethod.BREAST:
                self.breast_count += 1
            else:
                self.bottle_count += 1
            self.milk_volume_ml += result.volume_ml
        elif result.bucket == BUCKET_SOLID:
            self.solid_count += 1
        elif result.bucket == BUCKET_SLEEP:
            self.nap_count += 1
            # Open sleep only shows up through recency.
            self.sleep_minutes += result.sleep_minutes or 0
        elif result.bucket == BUCKET_DIRTY:
            self.dirty_count += 1
        elif result.bucket == BUCKET_WET:
            self.wet_count += 1
        elif result.bucket == BUCKET_WELLNESS:
            self.wellness_count += 1
            if result.category == EventCategory.SYMPTOM:
                self.symptom_count += 1

    def to_dict(self) -> Dict[str, float]:
        payload = asdict(self)
        payload["milk_count"] = self.milk_count
        payload["feed_count"] = self.feed_count
        payload["diaper_count"] = self.diaper_count
        return payload


@dataclass(frozen=True)
class DailyAverages:
    bottle_count: int = 0
    breast_count: int = 0
    milk_count: int = 0
    solid_count: int = 0
    milk_volume_ml: int = 0
    nap_count: int = 0
    sleep_minutes: float = 0.0
    wet_count: int = 0
    dirty_count: int = 0
    wellness_count: int = 0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def as_day(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def standard_windows(
    reference_date: Union[date, datetime],
    trailing_days: int = DEFAULT_TRAILING_DAYS,
) -> Dict[str, Window]:
    today = as_day(reference_date)
    yesterday = today - timedelta(days=1)
    return {
        TODAY: Window(TODAY, today, today),
        YESTERDAY: Window(YESTERDAY, yesterday, yesterday),
        TRAILING_WEEK: Window(TRAILING_WEEK, today - timedelta(days=trailing_days - 1), today),
    }


def aggregate(
    events: Iterable[Union[Event, NormalizedEvent]],
    reference_date: Union[date, datetime],
    windows: Optional[Dict[str, Window]] = None,
    category_filter: Optional[FilterCategory] = None,
) -> Dict[str, CategoryCounters]:
    """Count events per window by their local calendar day.

    Events whose timestamps cannot be parsed never match a window.
    """

    if windows is None:
        windows = standard_windows(reference_date)
    totals = {name: CategoryCounters() for name in windows}
    for event in apply_filter(normalize_events(events), category_filter):
        day = event.day
        for name, window in windows.items():
            if window.contains(day):
                totals[name].add(event)
    return totals


def daily_average(counters: CategoryCounters, days: int = DEFAULT_TRAILING_DAYS) -> DailyAverages:
    """Average window totals over every day in the window, empty days included."""

    if days <= 0:
        return DailyAverages()
    return DailyAverages(
        bottle_count=round_half_up(counters.bottle_count / days),
        breast_count=round_half_up(counters.breast_count / days),
        milk_count=round_half_up(counters.milk_count / days),
        solid_count=round_half_up(counters.solid_count / days),
        milk_volume_ml=round_half_up(counters.milk_volume_ml / days),
        nap_count=round_half_up(counters.nap_count / days),
        # Left fractional; formatting rounds once when rendering "Hh Mm".
        sleep_minutes=counters.sleep_minutes / days,
        wet_count=round_half_up(counters.wet_count / days),
        dirty_count=round_half_up(counters.dirty_count / days),
        wellness_count=round_half_up(counters.wellness_count / days),
    )
