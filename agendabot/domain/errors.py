"""Exception types raised by the domain and its collaborators.

Use-case failures (not found, conflict, low confidence) are not exceptions;
they come back as a failed CommandResult from the orchestrator.
"""


class AgendaError(Exception):
    """Base class for agendabot errors."""


class ValidationError(AgendaError):
    """An Appointment invariant would be violated."""


class CalendarError(AgendaError):
    """The calendar backend rejected or failed an operation."""


class InterpreterError(AgendaError):
    """The interpreter could not be invoked with the given input."""
