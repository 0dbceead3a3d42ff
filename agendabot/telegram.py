"""
Telegram transport.

Receives Telegram updates, feeds text and voice messages to the orchestrator
and replies with the result. Updates arrive either as webhook payloads
(handed over by the FastAPI server) or through a polling Application.

Usage:
    from agendabot.telegram import TelegramBot

    bot = TelegramBot(token, orchestrator)
    await bot.handle_update(update_dict)
    await bot.set_webhook("https://example.com/webhook/telegram")

    # Polling mode
    bot.build_application().run_polling()

Dependencies (pip):
    - python-telegram-bot>=20.0

Secrets (environment):
    - TELEGRAM_BOT_TOKEN
"""

from __future__ import annotations

import logging
from typing import Any

from telegram import Bot, Update
from telegram.constants import ChatAction
from telegram.ext import Application, ApplicationBuilder, ContextTypes, TypeHandler
from telegram.request import HTTPXRequest

from agendabot.orchestrator import CommandOrchestrator

logger = logging.getLogger(__name__)

MSG_UNSUPPORTED = "❓ Envie um comando de texto ou mensagem de voz."
MSG_FAILURE = "⚠️ Desculpe, ocorreu um erro ao processar seu comando. Tente novamente."
DEFAULT_VOICE_MIME = "audio/ogg"


class TelegramBot:
    """python-telegram-bot client plus the update handler."""

    def __init__(
        self,
        token: str,
        orchestrator: CommandOrchestrator,
        bot: Bot | None = None,
        timeout: float = 30.0,
    ):
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")
        self.token = token
        self.orchestrator = orchestrator
        self.bot = bot or Bot(
            token,
            request=HTTPXRequest(connect_timeout=timeout, read_timeout=timeout),
        )

    async def initialize(self) -> None:
        await self.bot.initialize()

    async def aclose(self) -> None:
        await self.bot.shutdown()

    # =========================================================================
    # Bot API
    # =========================================================================

    async def send_message(self, chat_id: int, text: str) -> None:
        await self.bot.send_message(chat_id=chat_id, text=text)

    async def download_voice(self, file_id: str) -> bytes:
        """Resolve a file_id and download its contents."""
        file_info = await self.bot.get_file(file_id)
        return bytes(await file_info.download_as_bytearray())

    async def set_webhook(self, url: str) -> None:
        await self.bot.set_webhook(url=url)
        logger.info(f"Telegram webhook set to {url}")

    async def delete_webhook(self) -> None:
        await self.bot.delete_webhook()
        logger.info("Telegram webhook removed")

    # =========================================================================
    # Polling
    # =========================================================================

    def build_application(self) -> Application:
        """Application that routes every polled update to handle_update."""
        application = ApplicationBuilder().bot(self.bot).build()
        application.add_handler(TypeHandler(Update, self._on_update))
        return application

    async def _on_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self.handle_update(update)

    # =========================================================================
    # Update handling
    # =========================================================================

    def _parse_update(self, update: Update | dict[str, Any]) -> Update | None:
        if isinstance(update, Update):
            return update
        try:
            return Update.de_json(update, self.bot)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed Telegram update {update.get('update_id')}: {e}")
            return None

    async def handle_update(self, update: Update | dict[str, Any]) -> None:
        """Process one update. Errors are reported to the chat, not raised."""
        parsed = self._parse_update(update)
        if parsed is None:
            return

        message = parsed.message
        if message is None:
            logger.debug(f"Update {parsed.update_id} without message, ignoring")
            return

        chat_id = message.chat_id
        if message.from_user is None:
            logger.warning(f"Message without sender in chat {chat_id}")
            return
        user_id = str(message.from_user.id)

        try:
            if message.text:
                input: str | bytes = message.text
                mime_type = None
                logger.info(f"Processing text message from {user_id} in chat {chat_id}")
            elif message.voice:
                logger.info(f"Processing voice message from {user_id} in chat {chat_id}")
                await self.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
                input = await self.download_voice(message.voice.file_id)
                mime_type = message.voice.mime_type or DEFAULT_VOICE_MIME
            else:
                await self.send_message(chat_id, MSG_UNSUPPORTED)
                return

            result = await self.orchestrator.execute(user_id, input, mime_type)

            icon = "✅" if result.success else "❌"
            await self.send_message(chat_id, f"{icon} {result.message}")

        except Exception as e:
            logger.exception(f"Error processing Telegram update {parsed.update_id}: {e}")
            try:
                await self.send_message(chat_id, MSG_FAILURE)
            except Exception as notify_error:
                logger.error(f"Could not notify chat {chat_id}: {notify_error}")
