"""Intent and result data models.

Defines the closed set of intents the interpreter can produce and the
uniform result returned to the transport layer:
    raw input -> Intent -> CommandResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class IntentType(str, Enum):
    """Scheduling command intent types."""

    SCHEDULE = "SCHEDULE"
    RESCHEDULE = "RESCHEDULE"
    CANCEL = "CANCEL"
    LIST = "LIST"
    UNKNOWN = "UNKNOWN"


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed). Naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid datetime: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return parse_datetime(value)


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Missing field: {key}")
    return value


@dataclass(frozen=True)
class ScheduleData:
    """Payload of a SCHEDULE intent."""

    title: str
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None
    attendees: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleData:
        attendees = data.get("attendees") or []
        if not isinstance(attendees, list):
            raise ValueError("attendees must be a list")
        return cls(
            title=_require_str(data, "title"),
            start=parse_datetime(data.get("start")),
            end=parse_datetime(data.get("end")),
            description=data.get("description"),
            location=data.get("location"),
            attendees=[str(a) for a in attendees],
        )


@dataclass(frozen=True)
class RescheduleData:
    """Payload of a RESCHEDULE intent."""

    appointment_id: str
    new_start: datetime
    new_end: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RescheduleData:
        return cls(
            appointment_id=_require_str(data, "appointmentId"),
            new_start=parse_datetime(data.get("newStart")),
            new_end=parse_datetime(data.get("newEnd")),
        )


@dataclass(frozen=True)
class CancelData:
    """Payload of a CANCEL intent."""

    appointment_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CancelData:
        return cls(appointment_id=_require_str(data, "appointmentId"))


@dataclass(frozen=True)
class ListData:
    """Payload of a LIST intent. Missing bounds are resolved by the orchestrator."""

    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListData:
        return cls(
            start=_optional_datetime(data.get("start")),
            end=_optional_datetime(data.get("end")),
        )


IntentData = Union[ScheduleData, RescheduleData, CancelData, ListData]

_PAYLOAD_TYPES: dict[IntentType, type] = {
    IntentType.SCHEDULE: ScheduleData,
    IntentType.RESCHEDULE: RescheduleData,
    IntentType.CANCEL: CancelData,
    IntentType.LIST: ListData,
}


@dataclass(frozen=True)
class Intent:
    """
    A structured user intent produced by an interpreter.

    ``data`` holds the payload matching ``type``; UNKNOWN intents carry an
    explanatory ``message`` instead. ``raw_text`` echoes the original input.
    """

    type: IntentType
    confidence: float
    raw_text: str = ""
    data: IntentData | None = None
    message: str | None = None

    @classmethod
    def unknown(cls, message: str, raw_text: str = "", confidence: float = 0.0) -> Intent:
        return cls(
            type=IntentType.UNKNOWN,
            confidence=confidence,
            raw_text=raw_text,
            message=message,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Intent:
        """Build an Intent from interpreter JSON. Raises ValueError if malformed."""
        try:
            intent_type = IntentType(str(data.get("type", "")).upper())
        except ValueError:
            raise ValueError(f"Unknown intent type: {data.get('type')!r}") from None

        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid confidence: {data.get('confidence')!r}") from None
        confidence = min(1.0, max(0.0, confidence))

        raw_text = str(data.get("rawText") or "")

        if intent_type == IntentType.UNKNOWN:
            return cls.unknown(
                message=str(data.get("message") or "Não consegui entender o comando"),
                raw_text=raw_text,
                confidence=confidence,
            )

        payload = data.get("data")
        if payload is None and intent_type == IntentType.LIST:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError(f"{intent_type.value} intent requires a data object")

        return cls(
            type=intent_type,
            confidence=confidence,
            raw_text=raw_text,
            data=_PAYLOAD_TYPES[intent_type].from_dict(payload),
        )


@dataclass
class CommandResult:
    """Result from executing a command. Transport-agnostic."""

    success: bool
    message: str
    data: Any = None
    intent: IntentType | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.data
        if isinstance(data, list):
            data = [item.to_dict() if hasattr(item, "to_dict") else item for item in data]
        return {
            "success": self.success,
            "message": self.message,
            "data": data,
            "intent": self.intent.value if self.intent else None,
            "error": self.error,
        }
