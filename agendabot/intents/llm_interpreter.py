"""
LLM-backed command interpreter.

Sends the user's command (voice notes are transcribed first) to Claude with
a system prompt describing the intent JSON schema, then parses the reply
into an Intent. Any failure yields an UNKNOWN intent with confidence 0.

Usage:
    from agendabot.intents.llm_interpreter import LLMInterpreter

    interpreter = LLMInterpreter()
    intent = await interpreter.interpret_command("marcar dentista amanhã às 10h")
    voice_intent = await interpreter.interpret_command(ogg_bytes, "audio/ogg")

Dependencies:
    - anthropic (intent extraction)
    - openai (Whisper transcription of voice notes)
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import anthropic

from agendabot.config_models import AssistantConfig, InterpreterConfig
from agendabot.domain.errors import InterpreterError
from agendabot.intents.interpreter import Interpreter
from agendabot.intents.models import Intent
from agendabot.intents.transcriber import WhisperTranscriber

logger = logging.getLogger(__name__)

AUDIO_PLACEHOLDER = "<audio>"
INTERPRETER_FAILURE_MESSAGE = "Erro ao processar comando com IA"

WEEKDAYS_PT = [
    "segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
    "sexta-feira", "sábado", "domingo",
]

SYSTEM_PROMPT_TEMPLATE = """Você é um assistente de agendamento inteligente. Sua função é interpretar comandos do usuário e retornar JSON estruturado.

{date_context}

SCHEMA DE RESPOSTA (retorne APENAS JSON válido, sem markdown):
{{
  "type": "SCHEDULE" | "RESCHEDULE" | "CANCEL" | "LIST" | "UNKNOWN",
  "data": {{ ... }},
  "confidence": 0.0 a 1.0,
  "rawText": "texto original"
}}

TIPOS DE INTENÇÃO:

1. SCHEDULE (agendar novo compromisso):
{{"type": "SCHEDULE", "data": {{"title": "Título", "start": "2025-12-10T10:00:00-03:00", "end": "2025-12-10T11:00:00-03:00", "description": "opcional", "location": "opcional", "attendees": ["email@example.com"]}}, "confidence": 0.95, "rawText": "texto original"}}

2. RESCHEDULE (reagendar):
{{"type": "RESCHEDULE", "data": {{"appointmentId": "identificador", "newStart": "2025-12-11T14:00:00-03:00", "newEnd": "2025-12-11T15:00:00-03:00"}}, "confidence": 0.85, "rawText": "texto original"}}

3. CANCEL (cancelar):
{{"type": "CANCEL", "data": {{"appointmentId": "identificador"}}, "confidence": 0.9, "rawText": "texto original"}}

4. LIST (listar compromissos, datas opcionais):
{{"type": "LIST", "data": {{"start": "2025-12-01T00:00:00-03:00", "end": "2025-12-31T23:59:59-03:00"}}, "confidence": 0.95, "rawText": "texto original"}}

5. UNKNOWN (não entendeu):
{{"type": "UNKNOWN", "message": "Não consegui entender o comando", "confidence": 0.3, "rawText": "texto original"}}

REGRAS:
- Interprete datas relativas: "segunda", "amanhã", "próxima semana", "daqui 2 dias"
- Use o fuso horário {timezone} por padrão e inclua o offset nas datas ISO 8601
- Duração padrão de compromisso: {default_duration} minutos se não especificado
- Se confiança < 0.6, retorne UNKNOWN
- Para reagendar/cancelar sem ID explícito, tente inferir pelo contexto (ex: "dentista") mas com confiança mais baixa
- Horário comercial padrão: 8h-18h
- Sempre retorne JSON válido"""


def extract_json(text: str) -> dict[str, Any]:
    """Parse a JSON object from an LLM reply, tolerating markdown fences."""
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError("Interpreter reply is not a JSON object")
    return parsed


class LLMInterpreter(Interpreter):
    """Interprets commands with Claude; voice notes go through Whisper first."""

    def __init__(
        self,
        config: InterpreterConfig | None = None,
        assistant_config: AssistantConfig | None = None,
        client: anthropic.AsyncAnthropic | None = None,
        transcriber: WhisperTranscriber | None = None,
    ):
        self.config = config or InterpreterConfig()
        self.assistant_config = assistant_config or AssistantConfig()
        self._client = client
        self.transcriber = transcriber or WhisperTranscriber()

    @property
    def name(self) -> str:
        return self.config.provider

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            api_key = os.environ.get(self.config.api_key_env)
            if not api_key:
                raise InterpreterError(f"{self.config.api_key_env} is required")
            self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    async def interpret_command(
        self,
        input: str | bytes,
        mime_type: str | None = None,
    ) -> Intent:
        raw_text = input if isinstance(input, str) else AUDIO_PLACEHOLDER

        try:
            text = await self._to_text(input, mime_type)
            raw_text = text

            logger.debug(
                f"Sending command to {self.config.model} "
                f"(input_type={'text' if isinstance(input, str) else 'audio'}, mime_type={mime_type})"
            )

            message = await self.client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=self.build_system_prompt(),
                messages=[{"role": "user", "content": text}],
            )
            reply = "".join(
                block.text for block in message.content if getattr(block, "type", "") == "text"
            )
            logger.debug(f"Received interpreter reply: {reply}")

            intent = Intent.from_dict(extract_json(reply))
            if not intent.raw_text:
                intent = dataclasses.replace(intent, raw_text=text)

            logger.info(
                f"Command interpreted: type={intent.type.value} confidence={intent.confidence:.2f}"
            )
            return intent

        except Exception as e:
            logger.error(f"Failed to interpret command: {e}")
            return Intent.unknown(INTERPRETER_FAILURE_MESSAGE, raw_text=raw_text)

    async def _to_text(self, input: str | bytes, mime_type: str | None) -> str:
        if isinstance(input, str):
            return input

        if not mime_type:
            raise InterpreterError("mime_type is required for audio input")

        result = await self.transcriber.transcribe(input, mime_type=mime_type)
        if not result.success or not result.text:
            raise InterpreterError(result.error or "Transcription failed")

        logger.info(f"Voice note transcribed ({len(result.text)} chars)")
        return result.text

    def build_system_prompt(self, now: datetime | None = None) -> str:
        tz = ZoneInfo(self.assistant_config.timezone)
        now = now.astimezone(tz) if now else datetime.now(tz)
        date_context = (
            f"Hoje é {WEEKDAYS_PT[now.weekday()]}, {now.strftime('%d/%m/%Y')}. "
            f"Hora atual: {now.strftime('%H:%M')} ({self.assistant_config.timezone})."
        )
        return SYSTEM_PROMPT_TEMPLATE.format(
            date_context=date_context,
            timezone=self.assistant_config.timezone,
            default_duration=self.config.default_duration_minutes,
        )
