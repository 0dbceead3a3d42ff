"""Calendar backends.

Components:
    base.py: CalendarBackend contract
    google_calendar.py: Google Calendar v3 implementation
"""

from agendabot.calendar.base import CalendarBackend

__all__ = ["CalendarBackend"]
