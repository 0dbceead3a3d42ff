"""
Appointment entity.

An Appointment is one scheduled (or cancelled) event owned by a single user.
All invariants are checked on construction and on every mutation; a failed
check raises ValidationError and leaves the object untouched.

Usage:
    from agendabot.domain.appointment import Appointment, DateTimeRange

    appt = Appointment(
        id="appt-1",
        user_id="alice",
        title="Dentista",
        date_time=DateTimeRange(start, end),
    )
    appt.reschedule(DateTimeRange(new_start, new_end))
    appt.cancel()
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from agendabot.domain.errors import ValidationError


class AppointmentStatus(str, Enum):
    """Lifecycle status. Only SCHEDULED -> CANCELLED is allowed."""

    SCHEDULED = "Scheduled"
    CANCELLED = "Cancelled"


class AppointmentSource(str, Enum):
    """Where an appointment came from."""

    USER = "user"
    ASSISTANT = "assistant"
    IMPORT = "import"


@dataclass(frozen=True)
class DateTimeRange:
    """A start/end pair. Ordering is validated by Appointment, not here."""

    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class ExternalRefs:
    """Identifiers of the appointment's counterparts in external systems."""

    google_calendar_event_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"google_calendar_event_id": self.google_calendar_event_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExternalRefs | None:
        if not data:
            return None
        return cls(google_calendar_event_id=data.get("google_calendar_event_id"))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _validate_range(date_time: DateTimeRange | None) -> DateTimeRange:
    if date_time is None or date_time.start is None or date_time.end is None:
        raise ValidationError("Appointment date_time must have start and end")
    if not isinstance(date_time.start, datetime) or not isinstance(date_time.end, datetime):
        raise ValidationError("Appointment start and end must be datetimes")

    start = _as_aware(date_time.start)
    end = _as_aware(date_time.end)
    if end <= start:
        raise ValidationError("Appointment end must be after start")
    return DateTimeRange(start=start, end=end)


def _clean_title(title: str | None) -> str:
    cleaned = title.strip() if isinstance(title, str) else ""
    if not cleaned:
        raise ValidationError("Appointment title must be non-empty")
    return cleaned


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


def _coerce_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid appointment {field_name}: {value!r}") from None


class Appointment:
    """
    A scheduled event owned by exactly one user.

    id, user_id and created_at never change. The time range is owned by
    reschedule(), the status by cancel(), the title by rename(); each of
    them refreshes updated_at.
    """

    def __init__(
        self,
        id: str,
        user_id: str,
        title: str,
        date_time: DateTimeRange,
        description: str | None = None,
        location: str | None = None,
        attendees: list[str] | None = None,
        source: AppointmentSource = AppointmentSource.ASSISTANT,
        external_refs: ExternalRefs | None = None,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        if not id or not user_id:
            raise ValidationError("Appointment requires id and user_id")

        # Validate everything before assigning anything
        cleaned_title = _clean_title(title)
        cleaned_range = _validate_range(date_time)
        cleaned_source = _coerce_enum(AppointmentSource, source, "source")
        cleaned_status = _coerce_enum(AppointmentStatus, status, "status")
        now = _utcnow()

        self._id = id
        self._user_id = user_id
        self._title = cleaned_title
        self._description = _clean_optional(description)
        self._date_time = cleaned_range
        self._location = _clean_optional(location)
        self._attendees = list(attendees) if attendees else []
        self._source = cleaned_source
        self._external_refs = external_refs
        self._status = cleaned_status
        self._created_at = _as_aware(created_at) if created_at else now
        self._updated_at = _as_aware(updated_at) if updated_at else now

    def __repr__(self) -> str:
        return (
            f"Appointment(id={self._id!r}, user_id={self._user_id!r}, "
            f"title={self._title!r}, start={self._date_time.start.isoformat()}, "
            f"status={self._status.value})"
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def date_time(self) -> DateTimeRange:
        return DateTimeRange(start=self._date_time.start, end=self._date_time.end)

    @property
    def location(self) -> str | None:
        return self._location

    @property
    def attendees(self) -> list[str]:
        return list(self._attendees)

    @property
    def source(self) -> AppointmentSource:
        return self._source

    @property
    def external_refs(self) -> ExternalRefs | None:
        return self._external_refs

    @property
    def status(self) -> AppointmentStatus:
        return self._status

    @property
    def is_cancelled(self) -> bool:
        return self._status == AppointmentStatus.CANCELLED

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    # =========================================================================
    # Mutations
    # =========================================================================

    def reschedule(self, new_range: DateTimeRange | None) -> None:
        """Replace the time range. Raises ValidationError if it is malformed."""
        cleaned = _validate_range(new_range)
        self._date_time = cleaned
        self._touch()

    def cancel(self) -> None:
        """Mark as cancelled. Repeated calls keep refreshing updated_at."""
        self._status = AppointmentStatus.CANCELLED
        self._touch()

    def rename(self, new_title: str) -> None:
        """Replace the title, with the same rules as construction."""
        self._title = _clean_title(new_title)
        self._touch()

    def with_external_refs(self, external_refs: ExternalRefs) -> Appointment:
        """Return a copy of this appointment carrying the given external refs."""
        return Appointment(
            id=self._id,
            user_id=self._user_id,
            title=self._title,
            date_time=self._date_time,
            description=self._description,
            location=self._location,
            attendees=self._attendees,
            source=self._source,
            external_refs=external_refs,
            status=self._status,
            created_at=self._created_at,
            updated_at=self._updated_at,
        )

    def _touch(self) -> None:
        # updated_at never moves backwards, even if the wall clock does
        self._updated_at = max(_utcnow(), self._updated_at)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "id": self._id,
            "user_id": self._user_id,
            "title": self._title,
            "description": self._description,
            "start": self._date_time.start.isoformat(),
            "end": self._date_time.end.isoformat(),
            "location": self._location,
            "attendees": list(self._attendees),
            "source": self._source.value,
            "external_refs": self._external_refs.to_dict() if self._external_refs else None,
            "status": self._status.value,
            "created_at": self._created_at.isoformat(),
            "updated_at": self._updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Appointment:
        """Create from dict produced by to_dict()."""
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data["title"],
            date_time=DateTimeRange(
                start=datetime.fromisoformat(data["start"]),
                end=datetime.fromisoformat(data["end"]),
            ),
            description=data.get("description"),
            location=data.get("location"),
            attendees=data.get("attendees") or [],
            source=data.get("source", AppointmentSource.ASSISTANT.value),
            external_refs=ExternalRefs.from_dict(data.get("external_refs")),
            status=data.get("status", AppointmentStatus.SCHEDULED.value),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
        )
