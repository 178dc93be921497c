"""Pydantic schemas shared across the API."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EventCategory(str, Enum):
    FEED = "feed"
    SLEEP = "sleep"
    DIAPER = "diaper"
    SYMPTOM = "symptom"
    MOVEMENT = "movement"
    MEASUREMENT = "measurement"
    NOTE = "note"


WELLNESS_CATEGORIES = frozenset(
    {
        EventCategory.SYMPTOM,
        EventCategory.MOVEMENT,
        EventCategory.MEASUREMENT,
        EventCategory.NOTE,
    }
)


class FilterCategory(str, Enum):
    FEED = "feed"
    SLEEP = "sleep"
    DIAPER = "diaper"
    WELLNESS = "wellness"


class FeedMethod(str, Enum):
    BOTTLE = "bottle"
    BREAST = "breast"
    SOLID = "solid"


class DiaperStatus(str, Enum):
    WET = "wet"
    DIRTY = "dirty"
    MIXED = "mixed"


class MeasurementType(str, Enum):
    WEIGHT = "weight"
    HEIGHT = "height"
    TEMPERATURE = "temperature"


# Fixed type -> unit pairing; the unit is never chosen by the caregiver.
MEASUREMENT_UNITS = {
    MeasurementType.WEIGHT: "lb",
    MeasurementType.HEIGHT: "in",
    MeasurementType.TEMPERATURE: "°F",
}


def unit_for_measurement(measurement_type: MeasurementType | str) -> str:
    """Return the unit paired with a measurement type (weight when unknown)."""

    try:
        kind = MeasurementType(measurement_type)
    except ValueError:
        kind = MeasurementType.WEIGHT
    return MEASUREMENT_UNITS[kind]


class Event(BaseModel):
    """One timestamped caregiving record, as stored.

    Timestamps are kept as given (datetime or ISO string) so that a single
    malformed stored value is dropped during normalization instead of
    failing the whole snapshot.
    """

    id: str
    subject_id: str
    category: EventCategory
    start_time: Union[datetime, str]
    end_time: Optional[Union[datetime, str]] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None
    created_by_email: Optional[str] = None


class _Details(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class FeedDetails(_Details):
    kind: Literal["feed"] = "feed"
    method: FeedMethod = FeedMethod.BOTTLE
    amount_ml: Optional[float] = Field(default=None, alias="amountMl")
    side: Optional[Literal["left", "right", "both"]] = None
    item: Optional[str] = None


class DiaperDetails(_Details):
    kind: Literal["diaper"] = "diaper"
    status: Optional[DiaperStatus] = None
    color: Optional[str] = None
    texture: Optional[str] = None


class SleepDetails(_Details):
    kind: Literal["sleep"] = "sleep"


class SymptomDetails(_Details):
    kind: Literal["symptom"] = "symptom"
    description: Optional[str] = None


class MeasurementDetails(_Details):
    kind: Literal["measurement"] = "measurement"
    type: MeasurementType = MeasurementType.WEIGHT
    value: Optional[float] = None
    unit: Optional[str] = None


class MovementDetails(_Details):
    kind: Literal["movement"] = "movement"
    description: Optional[str] = None


class NoteDetails(_Details):
    kind: Literal["note"] = "note"
    description: Optional[str] = None
    notes: Optional[str] = None


class UnclassifiedDetails(_Details):
    """Fallback for legacy or unknown detail shapes."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["unclassified"] = "unclassified"


EventDetails = Union[
    FeedDetails,
    DiaperDetails,
    SleepDetails,
    SymptomDetails,
    MeasurementDetails,
    MovementDetails,
    NoteDetails,
    UnclassifiedDetails,
]

DETAILS_BY_CATEGORY = {
    EventCategory.FEED: FeedDetails,
    EventCategory.SLEEP: SleepDetails,
    EventCategory.DIAPER: DiaperDetails,
    EventCategory.SYMPTOM: SymptomDetails,
    EventCategory.MEASUREMENT: MeasurementDetails,
    EventCategory.MOVEMENT: MovementDetails,
    EventCategory.NOTE: NoteDetails,
}


@dataclass(frozen=True)
class ClosedInterval:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        seconds = (self.end - self.start).total_seconds()
        if seconds <= 0:
            return 0
        return int(seconds / 60 + 0.5)


@dataclass(frozen=True)
class OpenInterval:
    start: datetime


SleepInterval = Union[ClosedInterval, OpenInterval]
