"""Domain layer: the Appointment entity and its error types."""

from agendabot.domain.appointment import (
    Appointment,
    AppointmentSource,
    AppointmentStatus,
    DateTimeRange,
    ExternalRefs,
)
from agendabot.domain.errors import (
    AgendaError,
    CalendarError,
    InterpreterError,
    ValidationError,
)

__all__ = [
    "AgendaError",
    "Appointment",
    "AppointmentSource",
    "AppointmentStatus",
    "CalendarError",
    "DateTimeRange",
    "ExternalRefs",
    "InterpreterError",
    "ValidationError",
]
