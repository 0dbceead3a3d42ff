"""
Appointment Store Base

Durable storage for appointments across invocations. The orchestrator
never deletes; cancelled appointments are updated in place.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from agendabot.domain.appointment import Appointment


@dataclass(frozen=True)
class DateRangeQuery:
    """Appointments starting within [start, end], optionally for one user."""

    start: datetime
    end: datetime
    user_id: str | None = None


class AppointmentStore(ABC):
    """Abstract base class for appointment persistence."""

    @abstractmethod
    async def save(self, appointment: Appointment) -> None:
        """Persist a new appointment."""

    @abstractmethod
    async def update(self, appointment: Appointment) -> None:
        """Overwrite the stored state of an existing appointment."""

    @abstractmethod
    async def find_by_id(self, appointment_id: str) -> Appointment | None:
        """Return the appointment, or None if absent."""

    @abstractmethod
    async def find_by_external_ref(self, external_id: str) -> Appointment | None:
        """Return the appointment linked to a calendar event id, or None."""

    @abstractmethod
    async def find_by_date_range(self, query: DateRangeQuery) -> list[Appointment]:
        """Return appointments starting within the range, ordered by start."""
