"""
agendabot - conversational scheduling assistant

Turns natural-language (text or voice) commands into calendar actions.

Components:
- domain/: Appointment entity and error types
- intents/: Intent model, interpreter contract, LLM interpreter
- calendar/: Calendar backend contract and Google Calendar backend
- store/: Appointment store contract, SQLite and in-memory stores
- orchestrator.py: CommandOrchestrator (intent -> calendar/store actions)
- telegram.py, server.py: Telegram webhook transport

Usage:
    from agendabot.container import build_orchestrator

    orchestrator = build_orchestrator()
    result = await orchestrator.execute("alice", "marcar dentista amanhã às 10h")
"""

import os
from pathlib import Path

__version__ = "0.1.0"

HOME_ENV = "AGENDABOT_HOME"


def project_root() -> Path:
    """Directory holding args/ and data/: $AGENDABOT_HOME, else the working directory."""
    return Path(os.environ.get(HOME_ENV) or Path.cwd())


def config_path() -> Path:
    return project_root() / "args" / "agendabot.yaml"


__all__ = [
    "__version__",
    "HOME_ENV",
    "project_root",
    "config_path",
]
