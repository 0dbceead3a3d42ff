"""
Calendar Backend Base

Defines the interface the orchestrator uses to reach an external calendar.
Every operation is async and raises on failure (CalendarError for API
problems); the orchestrator turns those into failed results.

Usage:
    from agendabot.calendar.base import CalendarBackend
    from agendabot.calendar.google_calendar import GoogleCalendarBackend

    calendar = GoogleCalendarBackend()
    if await calendar.check_availability(start, end, user_id):
        event_id = await calendar.schedule_event(appointment)
"""

from abc import ABC, abstractmethod
from datetime import datetime

from agendabot.domain.appointment import Appointment


class CalendarBackend(ABC):
    """
    Abstract base class for calendar providers.

    The backend keeps its own copy of each event, linked to the domain
    Appointment through ExternalRefs.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'google')."""
        pass

    @abstractmethod
    async def schedule_event(self, appointment: Appointment) -> str:
        """
        Create an event for the appointment.

        Returns:
            The provider's event id
        """
        pass

    @abstractmethod
    async def check_availability(self, start: datetime, end: datetime, user_id: str) -> bool:
        """Return True if nothing is booked between start and end."""
        pass

    @abstractmethod
    async def update_event(self, appointment: Appointment) -> None:
        """Push the appointment's current state to its external event."""
        pass

    @abstractmethod
    async def cancel_event(self, external_id: str) -> None:
        """Cancel/remove the external event."""
        pass

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime, user_id: str) -> list[Appointment]:
        """
        List events in a date range as imported appointments.

        Returns:
            Appointments with source=import and the event id as external ref
        """
        pass
