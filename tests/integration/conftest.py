"""
Integration test fixtures for agendabot.

Provides fixtures specific to integration testing:
- FastAPI test client with a recording bot
- A scripted interpreter and an in-process calendar backend
- A real orchestrator wired to SQLite
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from agendabot.calendar.base import CalendarBackend
from agendabot.config_models import AgendabotConfig, AssistantConfig
from agendabot.intents.interpreter import Interpreter
from agendabot.intents.models import Intent
from agendabot.orchestrator import CommandOrchestrator
from agendabot.server import create_app
from agendabot.store.sqlite_store import SQLiteAppointmentStore


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Doubles
# ─────────────────────────────────────────────────────────────────────────────


class RecordingBot:
    """Stands in for TelegramBot; keeps every update it was handed."""

    def __init__(self):
        self.updates: list[dict] = []
        self.closed = False

    async def handle_update(self, update: dict) -> None:
        self.updates.append(update)

    async def aclose(self) -> None:
        self.closed = True


class ScriptedInterpreter(Interpreter):
    """Returns queued intents in order, one per command."""

    def __init__(self):
        self.queue: list[Intent] = []
        self.inputs: list = []

    @property
    def name(self) -> str:
        return "scripted"

    async def interpret_command(self, input, mime_type=None) -> Intent:
        self.inputs.append(input)
        return self.queue.pop(0)


class InProcessCalendar(CalendarBackend):
    """Calendar backend that keeps events in a dict and reports overlaps as busy."""

    def __init__(self):
        self.events: dict[str, tuple[datetime, datetime]] = {}
        self._counter = 0

    @property
    def provider_name(self) -> str:
        return "in-process"

    async def schedule_event(self, appointment) -> str:
        self._counter += 1
        event_id = f"evt-{self._counter}"
        self.events[event_id] = (appointment.date_time.start, appointment.date_time.end)
        return event_id

    async def check_availability(self, start, end, user_id) -> bool:
        return all(end <= s or start >= e for s, e in self.events.values())

    async def update_event(self, appointment) -> None:
        event_id = appointment.external_refs.google_calendar_event_id
        self.events[event_id] = (appointment.date_time.start, appointment.date_time.end)

    async def cancel_event(self, external_id) -> None:
        self.events.pop(external_id, None)

    async def list_events(self, start, end, user_id) -> list:
        return []


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def recording_bot() -> RecordingBot:
    return RecordingBot()


@pytest.fixture
def test_client(recording_bot):
    """TestClient for the webhook app with the lifespan running."""
    app = create_app(bot=recording_bot, config=AgendabotConfig())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def scripted_interpreter() -> ScriptedInterpreter:
    return ScriptedInterpreter()


@pytest.fixture
def in_process_calendar() -> InProcessCalendar:
    return InProcessCalendar()


@pytest.fixture
def sqlite_store(temp_db) -> SQLiteAppointmentStore:
    return SQLiteAppointmentStore(temp_db)


@pytest.fixture
def wired_orchestrator(scripted_interpreter, in_process_calendar, sqlite_store, now):
    return CommandOrchestrator(
        interpreter=scripted_interpreter,
        calendar=in_process_calendar,
        store=sqlite_store,
        config=AssistantConfig(timezone="America/Sao_Paulo"),
        clock=lambda: now,
    )
