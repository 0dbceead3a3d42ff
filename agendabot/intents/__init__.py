"""Intents - what the user wants, as produced by an interpreter.

Components:
    models.py: IntentType, payload dataclasses, Intent, CommandResult
    interpreter.py: Interpreter contract
    llm_interpreter.py: Claude-backed interpreter
    transcriber.py: Whisper transcription for voice notes
"""

from agendabot.intents.models import (
    CancelData,
    CommandResult,
    Intent,
    IntentType,
    ListData,
    RescheduleData,
    ScheduleData,
)

__all__ = [
    "CancelData",
    "CommandResult",
    "Intent",
    "IntentType",
    "ListData",
    "RescheduleData",
    "ScheduleData",
]
