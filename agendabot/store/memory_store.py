"""In-memory appointment store for local runs and tests."""

from __future__ import annotations

from datetime import timezone

from agendabot.domain.appointment import Appointment
from agendabot.store.base import AppointmentStore, DateRangeQuery


class InMemoryAppointmentStore(AppointmentStore):
    """Keeps serialized snapshots so callers never share state with the store."""

    def __init__(self):
        self._rows: dict[str, dict] = {}

    async def save(self, appointment: Appointment) -> None:
        if appointment.id in self._rows:
            raise KeyError(f"Appointment already exists: {appointment.id}")
        self._rows[appointment.id] = appointment.to_dict()

    async def update(self, appointment: Appointment) -> None:
        if appointment.id not in self._rows:
            raise KeyError(f"Appointment not found: {appointment.id}")
        self._rows[appointment.id] = appointment.to_dict()

    async def find_by_id(self, appointment_id: str) -> Appointment | None:
        row = self._rows.get(appointment_id)
        return Appointment.from_dict(row) if row else None

    async def find_by_external_ref(self, external_id: str) -> Appointment | None:
        for row in self._rows.values():
            refs = row.get("external_refs") or {}
            if refs.get("google_calendar_event_id") == external_id:
                return Appointment.from_dict(row)
        return None

    async def find_by_date_range(self, query: DateRangeQuery) -> list[Appointment]:
        start = query.start.astimezone(timezone.utc)
        end = query.end.astimezone(timezone.utc)

        matches = []
        for row in self._rows.values():
            if query.user_id and row["user_id"] != query.user_id:
                continue
            appointment = Appointment.from_dict(row)
            if start <= appointment.date_time.start <= end:
                matches.append(appointment)

        return sorted(matches, key=lambda a: a.date_time.start)
