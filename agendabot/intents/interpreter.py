"""Abstract base class for command interpreters."""

from __future__ import annotations

from abc import ABC, abstractmethod

from agendabot.intents.models import Intent


class Interpreter(ABC):
    """Turns raw text or audio into a structured Intent.

    Implementations should return an UNKNOWN intent with confidence 0 on
    internal failure instead of raising, and must keep confidence in [0, 1].
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Interpreter identifier (e.g. 'anthropic')."""

    @abstractmethod
    async def interpret_command(
        self,
        input: str | bytes,
        mime_type: str | None = None,
    ) -> Intent:
        """Interpret a text command or an audio clip (with its MIME type)."""
