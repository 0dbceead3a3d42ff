"""
SQLite appointment store.

Usage:
    from agendabot.store.sqlite_store import SQLiteAppointmentStore

    store = SQLiteAppointmentStore("data/agendabot.db")
    await store.save(appointment)
    upcoming = await store.find_by_date_range(DateRangeQuery(start, end, "alice"))
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from agendabot.domain.appointment import Appointment
from agendabot.store.base import AppointmentStore, DateRangeQuery

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, user_id, title, description, location, start_time, end_time, "
    "attendees, source, external_event_id, status, created_at, updated_at"
)


def _utc_iso(value: datetime) -> str:
    # Stored in UTC so range queries can compare strings
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _ensure_tables(conn: sqlite3.Connection) -> None:
    """Create appointment tables if they don't exist."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS appointments (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            location TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            attendees TEXT DEFAULT '[]',
            source TEXT DEFAULT 'assistant',
            external_event_id TEXT,
            status TEXT DEFAULT 'Scheduled',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_appointments_user_start
            ON appointments(user_id, start_time);
        CREATE INDEX IF NOT EXISTS idx_appointments_external
            ON appointments(external_event_id);
    """)
    conn.commit()


def _to_row(appointment: Appointment) -> tuple:
    refs = appointment.external_refs
    date_time = appointment.date_time
    return (
        appointment.id,
        appointment.user_id,
        appointment.title,
        appointment.description,
        appointment.location,
        _utc_iso(date_time.start),
        _utc_iso(date_time.end),
        json.dumps(appointment.attendees),
        appointment.source.value,
        refs.google_calendar_event_id if refs else None,
        appointment.status.value,
        _utc_iso(appointment.created_at),
        _utc_iso(appointment.updated_at),
    )


def _from_row(row: sqlite3.Row) -> Appointment:
    external_id = row["external_event_id"]
    return Appointment.from_dict({
        "id": row["id"],
        "user_id": row["user_id"],
        "title": row["title"],
        "description": row["description"],
        "location": row["location"],
        "start": row["start_time"],
        "end": row["end_time"],
        "attendees": json.loads(row["attendees"] or "[]"),
        "source": row["source"],
        "external_refs": {"google_calendar_event_id": external_id} if external_id else None,
        "status": row["status"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    })


class SQLiteAppointmentStore(AppointmentStore):
    """Appointment store backed by a local SQLite file."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection, creating tables on first use."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        _ensure_tables(conn)
        return conn

    async def save(self, appointment: Appointment) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                f"INSERT INTO appointments ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                _to_row(appointment),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug(f"Appointment {appointment.id} saved")

    async def update(self, appointment: Appointment) -> None:
        row = _to_row(appointment)
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                """UPDATE appointments
                   SET user_id = ?, title = ?, description = ?, location = ?,
                       start_time = ?, end_time = ?, attendees = ?, source = ?,
                       external_event_id = ?, status = ?, created_at = ?, updated_at = ?
                   WHERE id = ?""",
                (*row[1:], row[0]),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise KeyError(f"Appointment not found: {appointment.id}")
        finally:
            conn.close()
        logger.debug(f"Appointment {appointment.id} updated")

    async def find_by_id(self, appointment_id: str) -> Appointment | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM appointments WHERE id = ?",
                (appointment_id,),
            ).fetchone()
        finally:
            conn.close()
        return _from_row(row) if row else None

    async def find_by_external_ref(self, external_id: str) -> Appointment | None:
        conn = self.get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM appointments WHERE external_event_id = ?",
                (external_id,),
            ).fetchone()
        finally:
            conn.close()
        return _from_row(row) if row else None

    async def find_by_date_range(self, query: DateRangeQuery) -> list[Appointment]:
        sql = f"SELECT {_COLUMNS} FROM appointments WHERE start_time >= ? AND start_time <= ?"
        params: list = [_utc_iso(query.start), _utc_iso(query.end)]
        if query.user_id:
            sql += " AND user_id = ?"
            params.append(query.user_id)
        sql += " ORDER BY start_time"

        conn = self.get_connection()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [_from_row(row) for row in rows]
