from datetime import datetime
from typing import Any, Dict, List, Optional

import logging

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ..classifier import parse_instant
from ..db import delete_event, get_event, insert_event, list_events, update_event
from ..schemas import Event, EventCategory

router = APIRouter(prefix="/api/v1", tags=["events"])
logger = logging.getLogger(__name__)


class CreateEventPayload(BaseModel):
    subject_id: str = Field(..., min_length=1)
    category: EventCategory
    start_time: datetime
    end_time: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    created_by_email: Optional[str] = None


class UpdateEventPayload(BaseModel):
    category: Optional[EventCategory] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    details: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


def _check_interval(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is None or end is None:
        return
    try:
        ordered = end >= start
    except TypeError:
        raise HTTPException(status_code=400, detail="start_time and end_time must share a timezone style")
    if not ordered:
        raise HTTPException(status_code=400, detail="end_time must not be before start_time")


@router.post("/events", response_model=Event)
async def create_event_endpoint(payload: CreateEventPayload) -> Event:
    _check_interval(payload.start_time, payload.end_time)
    event = insert_event(
        subject_id=payload.subject_id,
        category=payload.category,
        start_time=payload.start_time,
        end_time=payload.end_time,
        details=payload.details,
        notes=payload.notes,
        created_by_email=payload.created_by_email,
    )
    logger.info(
        "subject-scoped request",
        extra={"method": "POST", "path": "/api/v1/events", "subject_id": payload.subject_id},
    )
    return event


@router.get("/events", response_model=List[Event])
async def list_events_endpoint(
    subject_id: Optional[str] = Query(None, description="Subject identifier"),
    start: Optional[datetime] = Query(None, description="Start of range"),
    end: Optional[datetime] = Query(None, description="End of range"),
) -> List[Event]:
    """Return a subject's logged events, newest first."""

    if not subject_id:
        raise HTTPException(status_code=400, detail="subject_id is required for events.")
    events = list_events(
        subject_id,
        start.isoformat() if start else None,
        end.isoformat() if end else None,
    )
    logger.info(
        "events query",
        extra={"subject_id": subject_id, "count": len(events)},
    )
    return events


@router.get("/events/{event_id}", response_model=Event)
async def get_event_endpoint(event_id: str) -> Event:
    try:
        return get_event(event_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.patch("/events/{event_id}", response_model=Event)
async def update_event_endpoint(event_id: str, payload: UpdateEventPayload) -> Event:
    try:
        current = get_event(event_id)
        updates: dict = {}
        for name in ("category", "start_time", "end_time", "details", "notes"):
            if name in payload.model_fields_set:
                updates[name] = getattr(payload, name)
        if "start_time" in updates or "end_time" in updates:
            start = updates.get("start_time") or current.start_time
            end = updates.get("end_time", current.end_time)
            _check_interval(parse_instant(start), parse_instant(end))
        return update_event(event_id, **updates)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.delete("/events/{event_id}")
async def delete_event_endpoint(event_id: str) -> dict:
    try:
        delete_event(event_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "ok"}
