"""
Explicit wiring of the orchestrator and its collaborators.

Usage:
    from agendabot.container import build_orchestrator

    orchestrator = build_orchestrator()
"""

from __future__ import annotations

import logging
import os

from agendabot import project_root
from agendabot.calendar.google_calendar import GoogleCalendarBackend
from agendabot.config_models import AgendabotConfig, load_and_validate
from agendabot.intents.llm_interpreter import LLMInterpreter
from agendabot.intents.transcriber import WhisperTranscriber
from agendabot.orchestrator import CommandOrchestrator
from agendabot.store.base import AppointmentStore
from agendabot.store.memory_store import InMemoryAppointmentStore
from agendabot.store.sqlite_store import SQLiteAppointmentStore
from agendabot.telegram import TelegramBot

logger = logging.getLogger(__name__)


def build_store(config: AgendabotConfig) -> AppointmentStore:
    """Create the configured appointment store."""
    backend = config.store.backend
    if backend == "memory":
        return InMemoryAppointmentStore()
    if backend == "sqlite":
        db_path = project_root() / config.store.database_path
        return SQLiteAppointmentStore(db_path)
    raise ValueError(f"Unknown store backend: {backend}")


def build_orchestrator(config: AgendabotConfig | None = None) -> CommandOrchestrator:
    """Create an orchestrator wired to the configured collaborators."""
    config = config or load_and_validate()

    if config.interpreter.provider != "anthropic":
        raise ValueError(f"Unknown interpreter provider: {config.interpreter.provider}")
    if config.calendar.provider != "google":
        raise ValueError(f"Unknown calendar provider: {config.calendar.provider}")

    interpreter = LLMInterpreter(
        config=config.interpreter,
        assistant_config=config.assistant,
        transcriber=WhisperTranscriber(config.transcription),
    )
    calendar = GoogleCalendarBackend(config.calendar)
    store = build_store(config)

    logger.info(
        f"Orchestrator wired: interpreter={interpreter.name} "
        f"calendar={calendar.provider_name} store={config.store.backend}"
    )
    return CommandOrchestrator(interpreter, calendar, store, config=config.assistant)


def build_telegram_bot(
    orchestrator: CommandOrchestrator,
    config: AgendabotConfig | None = None,
) -> TelegramBot:
    """Create the Telegram bot using the token from the environment."""
    config = config or load_and_validate()
    token = os.environ.get(config.telegram.token_env, "")
    if not token:
        raise ValueError(f"{config.telegram.token_env} is required")
    return TelegramBot(token, orchestrator, timeout=config.telegram.request_timeout_seconds)
