"""
Integration tests for the agendabot HTTP server.

Tests the FastAPI routes:
- / (service info) and /health
- request logging
- the Telegram webhook (update hand-off to the bot)
"""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from agendabot import __version__
from agendabot.config_models import AgendabotConfig
from agendabot.intents.models import CommandResult
from agendabot.server import create_app
from agendabot.telegram import TelegramBot


# ─────────────────────────────────────────────────────────────────────────────
# Root / Health
# ─────────────────────────────────────────────────────────────────────────────


class TestRootEndpoint:

    def test_service_info(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json() == {
            "service": "agendabot",
            "version": __version__,
            "status": "running",
        }


class TestHealthEndpoint:

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert data["uptime_seconds"] >= 0


# ─────────────────────────────────────────────────────────────────────────────
# Telegram Webhook
# ─────────────────────────────────────────────────────────────────────────────


class TestTelegramWebhook:

    def test_update_is_handed_to_bot(self, test_client, recording_bot):
        update = {
            "update_id": 99,
            "message": {"from": {"id": 42}, "chat": {"id": 7}, "text": "meus compromissos"},
        }

        response = test_client.post("/webhook/telegram", json=update)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert recording_bot.updates == [update]

    def test_invalid_json_is_acknowledged(self, test_client, recording_bot):
        response = test_client.post(
            "/webhook/telegram",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": False}
        assert recording_bot.updates == []

    def test_non_object_payload(self, test_client, recording_bot):
        response = test_client.post("/webhook/telegram", json=[1, 2, 3])

        assert response.json() == {"ok": False}
        assert recording_bot.updates == []

    def test_provided_bot_is_not_closed_on_shutdown(self, recording_bot):
        with TestClient(create_app(bot=recording_bot, config=AgendabotConfig())):
            pass

        assert recording_bot.closed is False


# ─────────────────────────────────────────────────────────────────────────────
# Request Logging
# ─────────────────────────────────────────────────────────────────────────────


class TestRequestLogging:

    def test_each_request_is_logged(self, test_client, monkeypatch):
        request_logger = MagicMock()
        monkeypatch.setattr("agendabot.server.request_logger", request_logger)

        test_client.get("/health")
        test_client.get("/nowhere")

        events = [c.kwargs for c in request_logger.info.call_args_list]
        assert [(e["method"], e["path"], e["status"]) for e in events] == [
            ("GET", "/health", 200),
            ("GET", "/nowhere", 404),
        ]
        assert all(e["duration_ms"] >= 0 for e in events)
        assert request_logger.info.call_args.args == ("http_request",)


# ─────────────────────────────────────────────────────────────────────────────
# Webhook through the real transport
# ─────────────────────────────────────────────────────────────────────────────


class TestWebhookToOrchestrator:

    def test_text_update_is_answered(self):
        api = AsyncMock()
        api.defaults = None
        orchestrator = AsyncMock()
        orchestrator.execute.return_value = CommandResult(
            success=True, message="Nenhum compromisso neste período."
        )
        bot = TelegramBot("123:abc", orchestrator, bot=api)
        update = {
            "update_id": 100,
            "message": {
                "message_id": 5,
                "date": 1736164800,
                "from": {"id": 42, "is_bot": False, "first_name": "Ana"},
                "chat": {"id": 7, "type": "private"},
                "text": "minha agenda",
            },
        }

        with TestClient(create_app(bot=bot, config=AgendabotConfig())) as client:
            response = client.post("/webhook/telegram", json=update)

        assert response.json() == {"ok": True}
        orchestrator.execute.assert_awaited_once_with("42", "minha agenda", None)
        api.send_message.assert_awaited_once_with(
            chat_id=7, text="✅ Nenhum compromisso neste período."
        )
