"""Display strings shared by the dashboard, event list, timeline, and report."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .classifier import NormalizedEvent
from .schemas import (
    DiaperDetails,
    EventCategory,
    FeedDetails,
    MeasurementDetails,
    MovementDetails,
    NoteDetails,
    SymptomDetails,
)

JUST_NOW = "Just now"


def format_elapsed(minutes: Optional[float], suffix: bool = True) -> Optional[str]:
    """``Xh Ym ago`` past an hour, ``Ym ago`` under it; negatives read as "Just now"."""

    if minutes is None:
        return None
    if minutes < 0:
        return JUST_NOW
    whole = int(math.floor(minutes))
    hours, mins = divmod(whole, 60)
    text = f"{mins}m" if hours == 0 else f"{hours}h {mins}m"
    return f"{text} ago" if suffix else text


def format_duration(minutes: float) -> str:
    """Render minutes as ``Hh Mm``, rounding once on the total."""

    total = max(0, int(math.floor(minutes + 0.5)))
    hours, mins = divmod(total, 60)
    return f"{hours}h {mins}m"


def format_time(dt: datetime, target_timezone: Optional[str] = None) -> str:
    display_dt = dt
    if target_timezone and dt.tzinfo is not None:
        try:
            display_dt = dt.astimezone(ZoneInfo(target_timezone))
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return display_dt.strftime("%I:%M %p").lstrip("0").lower()


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def describe_event(event: NormalizedEvent) -> str:
    details = event.details
    if event.category == EventCategory.FEED:
        if not isinstance(details, FeedDetails):
            return "bottle"
        parts = [details.method.value]
        if details.amount_ml:
            parts.append(f"{_format_number(details.amount_ml)}ml")
        if details.side:
            parts.append(details.side)
        if details.item:
            parts.append(details.item)
        return " • ".join(parts)
    if event.category == EventCategory.DIAPER:
        if not isinstance(details, DiaperDetails) or details.status is None:
            return "wet"
        parts = [details.status.value]
        if details.color:
            parts.append(details.color)
        return " • ".join(parts)
    if event.category == EventCategory.SLEEP:
        if event.is_open_sleep:
            return "Currently sleeping"
        return f"Slept until {format_time(event.end)}"
    if event.category == EventCategory.MEASUREMENT:
        if not isinstance(details, MeasurementDetails) or details.value is None:
            return "Measurement logged"
        return f"{_format_number(details.value)} {details.unit}"
    if event.category == EventCategory.SYMPTOM:
        if isinstance(details, SymptomDetails) and details.description:
            return details.description
        return "Symptom logged"
    if event.category == EventCategory.MOVEMENT:
        if isinstance(details, MovementDetails) and details.description:
            return details.description
        return "Movement logged"
    if isinstance(details, NoteDetails):
        return details.description or details.notes or ""
    return ""


def event_label(event: NormalizedEvent) -> str:
    """Short label drawn inside a timeline block."""

    if event.event.notes:
        return event.event.notes
    details = event.details
    if isinstance(details, FeedDetails) and details.amount_ml is not None:
        return f"{_format_number(details.amount_ml)}ml"
    if isinstance(details, MeasurementDetails) and details.value is not None and details.unit:
        return f"{_format_number(details.value)}{details.unit}"
    description = getattr(details, "description", None)
    return description or ""
