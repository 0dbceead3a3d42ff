"""
agendabot HTTP server - FastAPI application

Exposes the Telegram webhook, a service-info root and a health check.
Every request is logged with method, path, status and duration.

Usage:
    uvicorn --factory agendabot.server:build_app --host 0.0.0.0 --port 3000

    Or via the CLI:
    agendabot serve
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

# Load .env file before anything else
from dotenv import load_dotenv
load_dotenv()

from fastapi import BackgroundTasks, FastAPI, Request

from agendabot import __version__
from agendabot.config_models import AgendabotConfig, load_and_validate
from agendabot.logging_config import get_logger, setup_logging
from agendabot.telegram import TelegramBot

logger = logging.getLogger(__name__)
request_logger = get_logger("agendabot.server.requests")


def create_app(
    bot: TelegramBot | None = None,
    config: AgendabotConfig | None = None,
) -> FastAPI:
    """Build the app. Without a bot, one is wired from config at startup."""
    config = config or load_and_validate()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = time.monotonic()
        owns_bot = False

        if app.state.bot is None:
            from agendabot.container import build_orchestrator, build_telegram_bot

            app.state.bot = build_telegram_bot(build_orchestrator(config), config)
            await app.state.bot.initialize()
            owns_bot = True

        logger.info(f"agendabot {__version__} started")
        yield

        if owns_bot:
            await app.state.bot.aclose()
        logger.info("agendabot stopped")

    app = FastAPI(title="agendabot", version=__version__, lifespan=lifespan)
    app.state.bot = bot
    app.state.started_at = time.monotonic()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        request_logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return response

    @app.get("/")
    async def root():
        return {"service": "agendabot", "version": __version__, "status": "running"}

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.monotonic() - request.app.state.started_at, 3),
        }

    @app.post(config.telegram.webhook_path)
    async def telegram_webhook(request: Request, background_tasks: BackgroundTasks):
        # Always 200 so Telegram does not keep retrying the update
        try:
            update = await request.json()
        except ValueError:
            logger.warning("Telegram webhook received invalid JSON")
            return {"ok": False}

        if not isinstance(update, dict):
            logger.warning("Telegram webhook received a non-object payload")
            return {"ok": False}

        logger.debug(f"Received Telegram update {update.get('update_id')}")
        background_tasks.add_task(request.app.state.bot.handle_update, update)
        return {"ok": True}

    return app


def build_app() -> FastAPI:
    """Factory for uvicorn (`uvicorn --factory agendabot.server:build_app`)."""
    setup_logging()
    return create_app()
