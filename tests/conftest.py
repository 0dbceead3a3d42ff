"""Shared test fixtures for agendabot tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- Standard user ids and timestamps
- A controllable clock for Appointment timestamps
- AsyncMock collaborators for the orchestrator

Usage:
    def test_something(temp_db):
        # temp_db is automatically cleaned up after the test
        ...
"""

import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "agendabot"


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file (and WAL side files) are deleted after the test.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    for suffix in ("", "-wal", "-shm"):
        path = Path(f"{db_path}{suffix}")
        if path.exists():
            os.unlink(path)


# ─────────────────────────────────────────────────────────────────────────────
# User / Time Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_user_id() -> str:
    """Standard test user ID."""
    return "user-123"


@pytest.fixture
def other_user_id() -> str:
    """A second user who must never see the first user's appointments."""
    return "user-999"


@pytest.fixture
def base_time() -> datetime:
    """A fixed, timezone-aware reference instant."""
    return datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc)


class StepClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def step_clock(monkeypatch, base_time) -> StepClock:
    """Patch the Appointment clock so every timestamp read advances by one second."""
    clock = StepClock(base_time)
    monkeypatch.setattr("agendabot.domain.appointment._utcnow", clock)
    return clock


# ─────────────────────────────────────────────────────────────────────────────
# Collaborator Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_interpreter() -> AsyncMock:
    """Interpreter double; set interpret_command.return_value per test."""
    interpreter = AsyncMock()
    interpreter.name = "mock"
    return interpreter


@pytest.fixture
def mock_calendar() -> AsyncMock:
    """Calendar backend double: available by default, returns 'ext-1' on create."""
    calendar = AsyncMock()
    calendar.provider_name = "mock"
    calendar.check_availability.return_value = True
    calendar.schedule_event.return_value = "ext-1"
    calendar.list_events.return_value = []
    return calendar


@pytest.fixture
def mock_store() -> AsyncMock:
    """Appointment store double with empty lookups."""
    store = AsyncMock()
    store.find_by_id.return_value = None
    store.find_by_external_ref.return_value = None
    store.find_by_date_range.return_value = []
    return store


# ─────────────────────────────────────────────────────────────────────────────
# Project Home
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def agendabot_home(tmp_path, monkeypatch) -> Path:
    """Point AGENDABOT_HOME at an empty temporary directory."""
    monkeypatch.setenv("AGENDABOT_HOME", str(tmp_path))
    return tmp_path
