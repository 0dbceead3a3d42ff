from __future__ import annotations

import logging
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from agendabot import config_path

logger = logging.getLogger(__name__)


# =============================================================================
# AgendabotConfig (args/agendabot.yaml)
# =============================================================================

class AssistantConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    list_window_days: int = Field(default=7, ge=1)
    timezone: str = Field(default="America/Sao_Paulo")
    date_format: str = Field(default="%d/%m/%Y %H:%M")


class InterpreterConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    provider: str = Field(default="anthropic")
    model: str = Field(default="claude-3-5-haiku-20241022")
    temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    max_tokens: int = Field(default=1024, ge=1)
    api_key_env: str = Field(default="ANTHROPIC_API_KEY")
    default_duration_minutes: int = Field(default=60, ge=1)


class TranscriptionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    model: str = Field(default="whisper-1")
    language: Optional[str] = Field(default="pt")
    max_audio_bytes: int = Field(default=25 * 1024 * 1024, ge=1)


class ReminderConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    method: str = Field(default="popup")
    minutes: int = Field(default=30, ge=0)


class CalendarConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    provider: str = Field(default="google")
    calendar_id: str = Field(default="primary")
    timezone: str = Field(default="America/Sao_Paulo")
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    reminders: list[ReminderConfig] = Field(
        default_factory=lambda: [
            ReminderConfig(method="popup", minutes=30),
            ReminderConfig(method="email", minutes=24 * 60),
        ]
    )


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    backend: str = Field(default="sqlite")
    database_path: str = Field(default="data/agendabot.db")


class TelegramConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    webhook_path: str = Field(default="/webhook/telegram")
    token_env: str = Field(default="TELEGRAM_BOT_TOKEN")
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)


class AgendabotConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    interpreter: InterpreterConfig = Field(default_factory=InterpreterConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def load_and_validate(path=None) -> AgendabotConfig:
    """Load args/agendabot.yaml, falling back to defaults if it is missing or invalid."""
    yaml_path = path or config_path()

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return AgendabotConfig.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {yaml_path}: {e}, using defaults")
        return AgendabotConfig()
