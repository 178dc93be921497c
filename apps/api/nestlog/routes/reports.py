from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, HTTPException, Query

from ..classifier import NormalizedEvent, normalize_events
from ..config import CONFIG
from ..db import list_events
from ..report import compose, list_day_events, summarize_day
from ..schemas import FilterCategory
from ..timeline import TimelineScale, layout

router = APIRouter(prefix="/api/v1", tags=["reports"])
logger = logging.getLogger(__name__)


def resolve_timezone(value: Optional[str]) -> tzinfo:
    """Return the requested IANA zone, falling back to the configured default."""

    for candidate in (value, CONFIG.default_timezone):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate.strip())
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown timezone", extra={"timezone": candidate})
    return ZoneInfo("UTC")


def _load_snapshot(subject_id: Optional[str], tz: tzinfo, path: str) -> List[NormalizedEvent]:
    if not subject_id:
        raise HTTPException(status_code=400, detail="subject_id is required for reports.")
    logger.info(
        "subject-scoped request",
        extra={"method": "GET", "path": path, "subject_id": subject_id},
    )
    return normalize_events(list_events(subject_id), subject_id=subject_id, tz=tz)


def _reference_day(value: Optional[date], now: datetime) -> date:
    return value if value is not None else now.date()


@router.get("/report")
async def report_endpoint(
    subject_id: Optional[str] = Query(None, description="Subject identifier"),
    day: Optional[date] = Query(None, alias="date", description="Viewed calendar day"),
    timezone: Optional[str] = Query(None, description="IANA timezone for day boundaries"),
) -> dict:
    tz = resolve_timezone(timezone)
    now = datetime.now(tz)
    events = _load_snapshot(subject_id, tz, "/api/v1/report")
    model = compose(
        events,
        _reference_day(day, now),
        trailing_days=CONFIG.trailing_window_days,
        health_log_days=CONFIG.health_log_days,
        health_log_limit=CONFIG.health_log_limit,
    )
    return model.to_dict()


@router.get("/dashboard")
async def dashboard_endpoint(
    subject_id: Optional[str] = Query(None, description="Subject identifier"),
    day: Optional[date] = Query(None, alias="date", description="Viewed calendar day"),
    category: Optional[FilterCategory] = Query(None, alias="filter", description="Category filter"),
    timezone: Optional[str] = Query(None, description="IANA timezone for day boundaries"),
) -> dict:
    tz = resolve_timezone(timezone)
    now = datetime.now(tz)
    events = _load_snapshot(subject_id, tz, "/api/v1/dashboard")
    reference_day = _reference_day(day, now)
    summary = summarize_day(events, reference_day, now, category_filter=category)
    return {
        **summary.to_dict(),
        "events": list_day_events(events, reference_day, category_filter=category),
    }


@router.get("/timeline")
async def timeline_endpoint(
    subject_id: Optional[str] = Query(None, description="Subject identifier"),
    day: Optional[date] = Query(None, alias="date", description="Viewed calendar day"),
    category: Optional[FilterCategory] = Query(None, alias="filter", description="Category filter"),
    timezone: Optional[str] = Query(None, description="IANA timezone for day boundaries"),
) -> dict:
    tz = resolve_timezone(timezone)
    now = datetime.now(tz)
    events = _load_snapshot(subject_id, tz, "/api/v1/timeline")
    result = layout(
        events,
        _reference_day(day, now),
        now=now,
        category_filter=category,
        point_max_minutes=CONFIG.point_event_max_minutes,
        sleep_floor_minutes=CONFIG.sleep_min_display_minutes,
    )
    scale = TimelineScale(
        pixels_per_minute=CONFIG.pixels_per_minute,
        min_block_px=CONFIG.min_block_px,
    )
    payload = result.to_dict()
    for placement, item in zip(result.placements, payload["placements"]):
        item["top_px"] = scale.top_px(placement.top_minute_offset)
        item["height_px"] = scale.height_px(placement.display_duration_minutes)
    payload["axis_px"] = scale.axis_px
    if result.now_marker_offset is not None:
        payload["now_marker_px"] = scale.top_px(result.now_marker_offset)
    logger.info(
        "timeline layout",
        extra={"subject_id": subject_id, "day": result.day.isoformat(), "count": len(result.placements)},
    )
    return payload
