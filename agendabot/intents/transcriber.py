"""
Voice note transcription via the OpenAI Whisper API.

Usage:
    from agendabot.intents.transcriber import WhisperTranscriber

    transcriber = WhisperTranscriber()
    result = await transcriber.transcribe(audio_bytes, mime_type="audio/ogg")
    if result.success:
        print(result.text)
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any

import openai

from agendabot.config_models import TranscriptionConfig

logger = logging.getLogger(__name__)


@dataclass
class TranscriptionResult:
    """Result from audio transcription."""

    success: bool
    text: str | None = None
    language: str | None = None
    error: str | None = None


class WhisperTranscriber:
    """Transcribes voice notes with Whisper."""

    SUPPORTED_FORMATS = {
        "mp3", "mp4", "mpeg", "mpga", "m4a", "wav", "webm", "ogg", "oga", "flac"
    }

    MIME_TO_EXT = {
        "audio/ogg": "ogg",
        "audio/mpeg": "mp3",
        "audio/mp4": "m4a",
        "audio/wav": "wav",
        "audio/x-wav": "wav",
        "audio/webm": "webm",
        "audio/flac": "flac",
        "audio/x-m4a": "m4a",
        "audio/opus": "ogg",  # Opus usually in OGG container
    }

    def __init__(
        self,
        config: TranscriptionConfig | None = None,
        client: openai.AsyncOpenAI | None = None,
    ):
        self.config = config or TranscriptionConfig()
        self._client = client

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI()
        return self._client

    def _get_extension(self, mime_type: str) -> str:
        base_type = mime_type.split(";")[0].strip().lower()
        ext = self.MIME_TO_EXT.get(base_type)
        if ext is None and "/" in base_type:
            ext = base_type.split("/")[-1]
        if ext not in self.SUPPORTED_FORMATS:
            ext = "ogg"
        return ext

    async def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/ogg") -> TranscriptionResult:
        """Transcribe audio to text. Never raises; failures are reported in the result."""
        if not audio_bytes:
            return TranscriptionResult(success=False, error="Empty audio")

        if len(audio_bytes) > self.config.max_audio_bytes:
            return TranscriptionResult(
                success=False,
                error=f"Audio file too large (>{self.config.max_audio_bytes} bytes)",
            )

        audio_file = io.BytesIO(audio_bytes)
        audio_file.name = f"audio.{self._get_extension(mime_type)}"

        kwargs: dict[str, Any] = {"model": self.config.model, "file": audio_file}
        if self.config.language:
            kwargs["language"] = self.config.language

        try:
            response = await self.client.audio.transcriptions.create(**kwargs)
        except openai.APIError as e:
            logger.error(f"Whisper API error: {e}")
            return TranscriptionResult(success=False, error=f"Whisper API error: {str(e)[:100]}")
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            return TranscriptionResult(success=False, error=f"Transcription failed: {str(e)[:100]}")

        text = (response.text or "").strip()
        if not text:
            return TranscriptionResult(success=False, error="No speech detected in audio")

        return TranscriptionResult(
            success=True,
            text=text,
            language=getattr(response, "language", None),
        )
