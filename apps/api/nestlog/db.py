"""SQLite helpers."""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from uuid import uuid4

from .config import CONFIG
from .schemas import Event, EventCategory

_DB_PATH = CONFIG.resolved_database_path

_UNSET = object()


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    cursor = conn.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in cursor.fetchall()}
    if column not in existing:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")


def initialize_db() -> None:
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(_DB_PATH) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id TEXT PRIMARY KEY,
                subject_id TEXT NOT NULL,
                category TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                details_json TEXT NOT NULL DEFAULT '{}',
                notes TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        _ensure_column(conn, "events", "created_by_email", "TEXT")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_subject_start ON events (subject_id, start_time)"
        )
        conn.commit()


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _row_to_event(row: sqlite3.Row) -> Event:
    data = dict(row)
    try:
        details = json.loads(data.get("details_json") or "{}")
    except json.JSONDecodeError:
        details = {}
    return Event(
        id=data["id"],
        subject_id=data["subject_id"],
        category=EventCategory(data["category"]),
        start_time=data["start_time"],
        end_time=data.get("end_time"),
        details=details if isinstance(details, dict) else {},
        notes=data.get("notes"),
        created_at=data.get("created_at"),
        created_by_email=data.get("created_by_email"),
    )


def insert_event(
    *,
    subject_id: str,
    category: EventCategory,
    start_time: datetime | str,
    end_time: datetime | str | None = None,
    details: Optional[Dict[str, Any]] = None,
    notes: Optional[str] = None,
    created_by_email: Optional[str] = None,
) -> Event:
    event_id = str(uuid4())
    now = datetime.now(timezone.utc).isoformat()
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO events (
                id,
                subject_id,
                category,
                start_time,
                end_time,
                details_json,
                notes,
                created_at,
                created_by_email
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event_id,
                subject_id,
                EventCategory(category).value,
                _iso(start_time),
                _iso(end_time),
                json.dumps(details or {}),
                notes,
                now,
                created_by_email,
            ),
        )
        conn.commit()
    return get_event(event_id)


def get_event(event_id: str) -> Event:
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
    if not row:
        raise ValueError(f"Event {event_id} not found")
    return _row_to_event(row)


def list_events(
    subject_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[Event]:
    """Return a subject's events newest first, optionally within [start, end)."""

    query = "SELECT * FROM events WHERE subject_id = ?"
    params: list = [subject_id]
    if start is not None:
        query += " AND start_time >= ?"
        params.append(start)
    if end is not None:
        query += " AND start_time < ?"
        params.append(end)
    query += " ORDER BY start_time DESC"
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(query, tuple(params)).fetchall()
    return [_row_to_event(row) for row in rows]


def update_event(
    event_id: str,
    *,
    category: Any = _UNSET,
    start_time: Any = _UNSET,
    end_time: Any = _UNSET,
    details: Any = _UNSET,
    notes: Any = _UNSET,
) -> Event:
    """Edit an event in place; id, subject and creation time never change.

    Switching category without new details clears the details bag.
    """

    current = get_event(event_id)
    fields: Dict[str, Any] = {}
    if category is not _UNSET and category is not None:
        new_category = EventCategory(category)
        if new_category != current.category:
            fields["category"] = new_category.value
            if details is _UNSET:
                fields["details_json"] = "{}"
    if start_time is not _UNSET and start_time is not None:
        fields["start_time"] = _iso(start_time)
    if end_time is not _UNSET:
        fields["end_time"] = _iso(end_time)
    if details is not _UNSET:
        fields["details_json"] = json.dumps(details or {})
    if notes is not _UNSET:
        fields["notes"] = notes
    if not fields:
        return current

    assignments = ", ".join(f"{column} = ?" for column in fields)
    with get_connection() as conn:
        conn.execute(
            f"UPDATE events SET {assignments} WHERE id = ?",
            (*fields.values(), event_id),
        )
        conn.commit()
    return get_event(event_id)


def delete_event(event_id: str) -> None:
    with get_connection() as conn:
        cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        conn.commit()
    if cursor.rowcount == 0:
        raise ValueError(f"Event {event_id} not found")
