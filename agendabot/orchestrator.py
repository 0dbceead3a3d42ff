"""Turn one raw command into calendar and store side effects.

The orchestrator asks the interpreter for an Intent, applies the confidence
gate, dispatches to one handler per intent type and always returns a
CommandResult. Collaborator exceptions and domain validation errors are
caught once, at the top of execute().

Call order inside one invocation is fixed:
    SCHEDULE    availability -> calendar create -> store save
    RESCHEDULE  store read -> availability -> calendar update -> store update
    CANCEL      store read -> calendar cancel (if linked) -> store update

Nothing here serializes concurrent invocations. Two SCHEDULE commands for
overlapping windows can both pass the availability check unless the
calendar backend detects the conflict atomically.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable
from zoneinfo import ZoneInfo

from agendabot.calendar.base import CalendarBackend
from agendabot.config_models import AssistantConfig
from agendabot.domain.appointment import (
    Appointment,
    AppointmentSource,
    DateTimeRange,
    ExternalRefs,
)
from agendabot.intents.interpreter import Interpreter
from agendabot.intents.models import CommandResult, Intent, IntentType
from agendabot.store.base import AppointmentStore, DateRangeQuery

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.6

MSG_REPHRASE = "Não consegui entender seu comando. Pode reformular?"
MSG_NOT_FOUND = "Agendamento não encontrado."
MSG_CANCELLED = "Agendamento cancelado."
MSG_ALREADY_CANCELLED = "Este agendamento já foi cancelado."
MSG_EMPTY_LIST = "Nenhum compromisso neste período."
MSG_UNRECOGNIZED = "Comando não reconhecido."

# Handler type: async function(user_id, intent) -> CommandResult
HandlerFn = Callable[[str, Intent], Awaitable[CommandResult]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CommandOrchestrator:
    """Executes scheduling commands against a calendar backend and a store."""

    def __init__(
        self,
        interpreter: Interpreter,
        calendar: CalendarBackend,
        store: AppointmentStore,
        config: AssistantConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.interpreter = interpreter
        self.calendar = calendar
        self.store = store
        self.config = config or AssistantConfig()
        self.clock = clock
        self._tz = ZoneInfo(self.config.timezone)
        self._handlers: dict[IntentType, HandlerFn] = {
            IntentType.SCHEDULE: self._handle_schedule,
            IntentType.RESCHEDULE: self._handle_reschedule,
            IntentType.CANCEL: self._handle_cancel,
            IntentType.LIST: self._handle_list,
            IntentType.UNKNOWN: self._handle_unknown,
        }

    def format_datetime(self, value: datetime) -> str:
        """Render a datetime in the assistant's timezone."""
        return value.astimezone(self._tz).strftime(self.config.date_format)

    async def execute(
        self,
        user_id: str,
        input: str | bytes,
        mime_type: str | None = None,
    ) -> CommandResult:
        """Interpret and execute one command for user_id. Never raises."""
        start = time.monotonic()
        intent_type: IntentType | None = None

        try:
            intent = await self.interpreter.interpret_command(input, mime_type)
            intent_type = intent.type

            if intent.confidence < CONFIDENCE_THRESHOLD:
                logger.info(
                    f"Low confidence intent for {user_id}: "
                    f"{intent.type.value} ({intent.confidence:.2f})"
                )
                result = CommandResult(
                    success=False,
                    message=MSG_REPHRASE,
                    error="low_confidence",
                )
            else:
                handler = self._handlers.get(intent.type)
                if handler is None:
                    result = CommandResult(
                        success=False,
                        message=MSG_UNRECOGNIZED,
                        error="unrecognized_command",
                    )
                else:
                    result = await handler(user_id, intent)

        except Exception as e:
            logger.exception(f"Command failed for {user_id}: {e}")
            result = CommandResult(
                success=False,
                message=f"Erro ao processar comando: {str(e) or type(e).__name__}",
                error="internal_error",
            )

        result.intent = intent_type
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Command for {user_id}: intent={intent_type.value if intent_type else None} "
            f"success={result.success} error={result.error} elapsed_ms={elapsed_ms}"
        )
        return result

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _handle_schedule(self, user_id: str, intent: Intent) -> CommandResult:
        data = intent.data

        available = await self.calendar.check_availability(data.start, data.end, user_id)
        if not available:
            return CommandResult(
                success=False,
                message=(
                    "Conflito detectado: você já tem compromisso entre "
                    f"{self.format_datetime(data.start)} e {self.format_datetime(data.end)}."
                ),
                error="conflict",
            )

        appointment = Appointment(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=data.title,
            description=data.description,
            date_time=DateTimeRange(start=data.start, end=data.end),
            location=data.location,
            attendees=data.attendees,
            source=AppointmentSource.ASSISTANT,
        )

        external_id = await self.calendar.schedule_event(appointment)

        # The external id only exists after the calendar call; persist the linked copy
        linked = appointment.with_external_refs(
            ExternalRefs(google_calendar_event_id=external_id)
        )
        await self.store.save(linked)

        return CommandResult(
            success=True,
            message=(
                f'Agendamento criado com sucesso: "{linked.title}" '
                f"em {self.format_datetime(linked.date_time.start)}."
            ),
            data={"appointment_id": linked.id, "external_id": external_id},
        )

    async def _handle_reschedule(self, user_id: str, intent: Intent) -> CommandResult:
        data = intent.data

        appointment = await self._find_owned(data.appointment_id, user_id)
        if appointment is None:
            return CommandResult(success=False, message=MSG_NOT_FOUND, error="not_found")
        if appointment.is_cancelled:
            return CommandResult(
                success=False, message=MSG_ALREADY_CANCELLED, error="already_cancelled"
            )

        available = await self.calendar.check_availability(data.new_start, data.new_end, user_id)
        if not available:
            return CommandResult(
                success=False,
                message=(
                    "Conflito no novo horário: "
                    f"{self.format_datetime(data.new_start)} - {self.format_datetime(data.new_end)}."
                ),
                error="conflict",
            )

        appointment.reschedule(DateTimeRange(start=data.new_start, end=data.new_end))
        # Calendar first so the store never records a state the calendar lacks
        await self.calendar.update_event(appointment)
        await self.store.update(appointment)

        return CommandResult(
            success=True,
            message=f"Reagendado para {self.format_datetime(data.new_start)}.",
            data={"appointment_id": appointment.id},
        )

    async def _handle_cancel(self, user_id: str, intent: Intent) -> CommandResult:
        data = intent.data

        appointment = await self._find_owned(data.appointment_id, user_id)
        if appointment is None:
            return CommandResult(success=False, message=MSG_NOT_FOUND, error="not_found")

        refs = appointment.external_refs
        # A repeated cancel only refreshes the stored record
        if refs and refs.google_calendar_event_id and not appointment.is_cancelled:
            await self.calendar.cancel_event(refs.google_calendar_event_id)

        appointment.cancel()
        await self.store.update(appointment)

        return CommandResult(
            success=True,
            message=MSG_CANCELLED,
            data={"appointment_id": appointment.id},
        )

    async def _handle_list(self, user_id: str, intent: Intent) -> CommandResult:
        data = intent.data
        now = self.clock()
        range_start = data.start if data and data.start else now
        range_end = (
            data.end if data and data.end
            else now + timedelta(days=self.config.list_window_days)
        )

        appointments = await self.store.find_by_date_range(
            DateRangeQuery(start=range_start, end=range_end, user_id=user_id)
        )

        if not appointments:
            return CommandResult(success=True, message=MSG_EMPTY_LIST, data=[])

        summary = "\n".join(
            f"- {a.title} em {self.format_datetime(a.date_time.start)}" for a in appointments
        )
        return CommandResult(
            success=True,
            message=f"Você tem {len(appointments)} compromisso(s):\n{summary}",
            data=appointments,
        )

    async def _handle_unknown(self, user_id: str, intent: Intent) -> CommandResult:
        return CommandResult(
            success=False,
            message=intent.message or MSG_REPHRASE,
            error="unknown_intent",
        )

    async def _find_owned(self, appointment_id: str, user_id: str) -> Appointment | None:
        """Load an appointment only if user_id owns it.

        Absence and foreign ownership look the same to the caller; only the
        log tells them apart.
        """
        appointment = await self.store.find_by_id(appointment_id)
        if appointment is None:
            logger.info(f"Appointment {appointment_id} not found for {user_id}")
            return None
        if appointment.user_id != user_id:
            logger.warning(
                f"User {user_id} referenced appointment {appointment_id} owned by another user"
            )
            return None
        return appointment
