#    Copyright 2025, Stankevich Andrey, stankevich.as@phystech.edu

#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at

#        http://www.apache.org/licenses/LICENSE-2.0

#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""Unit tests for bot.src.main FastAPI application.

Coverage:
- Webhook secret validation and update queueing
- Health check in both deployment modes
- Lifespan startup and shutdown in polling mode
- Handler registration and the fallback for unknown commands
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
import pytest
from telegram import Bot, Chat, Message, MessageEntity, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    Updater,
)

from bot.src.context import create_context
from bot.src.handlers import help_cmd, message_received, ORCHESTRATOR_KEY
from bot.src.main import build_application, create_app, webhook_path
from bot.src.orchestrator import Orchestrator


UPDATE_JSON = {
    "update_id": 1,
    "message": {
        "message_id": 10,
        "date": 1714521600,
        "chat": {"id": 42, "type": "private"},
        "text": "hello",
    },
}


@pytest.fixture
def webhook_app(webhook_settings):
    """Webhook mode app, lifespan is not entered."""
    return create_app(webhook_settings)


class TestWebhook:
    """Test suite for the webhook endpoint."""

    def test_path_contains_secret(self, webhook_settings):  # noqa: D102
        assert webhook_path(webhook_settings) == "/webhook/test-secret-token-42"

    def test_wrong_secret(self, webhook_app, webhook_settings):  # noqa: D102
        client = TestClient(webhook_app)
        response = client.post(
            webhook_path(webhook_settings),
            json=UPDATE_JSON,
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )
        assert response.status_code == 403

    def test_missing_secret(self, webhook_app, webhook_settings):  # noqa: D102
        client = TestClient(webhook_app)
        response = client.post(webhook_path(webhook_settings), json=UPDATE_JSON)
        assert response.status_code == 403

    def test_update_is_queued(self, webhook_app, webhook_settings):
        """Valid updates are put on the application queue."""
        client = TestClient(webhook_app)
        response = client.post(
            webhook_path(webhook_settings),
            json=UPDATE_JSON,
            headers={"X-Telegram-Bot-Api-Secret-Token": "test-secret-token-42"},
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

        queue = webhook_app.state.tg_app.update_queue
        assert queue.qsize() == 1
        assert queue.get_nowait().message.text == "hello"


class TestHealth:
    """Test suite for the health check."""

    def test_webhook_mode_not_started(self, webhook_app):  # noqa: D102
        response = TestClient(webhook_app).get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "not_ready", "mode": "webhook"}

    def test_polling_mode_has_no_webhook(self, test_settings):  # noqa: D102
        client = TestClient(create_app(test_settings))
        assert client.get("/health").json()["mode"] == "polling"
        response = client.post(webhook_path(test_settings), json=UPDATE_JSON)
        assert response.status_code == 404


class TestLifespan:
    """Test suite for startup and shutdown."""

    def test_polling_lifecycle(self, mocker, test_settings):
        """Polling is started on startup, the application stopped on exit."""
        for name in ("initialize", "start", "stop", "shutdown"):
            mocker.patch.object(Application, name, new_callable=AsyncMock)
        start_polling = mocker.patch.object(
            Updater, "start_polling", new_callable=AsyncMock)
        mocker.patch.object(
            Bot, "username",
            new_callable=mocker.PropertyMock,
            return_value="cognitive_bot",
        )

        app = create_app(test_settings)
        with TestClient(app):
            Application.initialize.assert_awaited_once()
            Application.start.assert_awaited_once()
            start_polling.assert_awaited_once_with(poll_interval=1.0)

        Application.stop.assert_awaited_once()
        Application.shutdown.assert_awaited_once()


def test_build_application(test_settings):
    """Handlers are registered and the orchestrator is stored."""
    tg_app = build_application(create_context(test_settings))

    assert isinstance(tg_app.bot_data[ORCHESTRATOR_KEY], Orchestrator)
    handler_types = [type(h) for h in tg_app.handlers[0]]
    assert handler_types == [
        CommandHandler,
        CommandHandler,
        CallbackQueryHandler,
        MessageHandler,
        MessageHandler,
    ]


def _text_update(text, entities=()):
    message = Message(
        message_id=10,
        date=datetime(2024, 5, 1, tzinfo=timezone.utc),
        chat=Chat(id=42, type=Chat.PRIVATE),
        text=text,
        entities=list(entities),
    )
    return Update(update_id=1, message=message)


def test_unknown_command_gets_help(test_settings):
    """Commands other than /start and /help fall through to the help reply."""
    tg_app = build_application(create_context(test_settings))
    messages, fallback = tg_app.handlers[0][-2:]
    assert messages.callback is message_received
    assert fallback.callback is help_cmd

    command = _text_update(
        "/foo", [MessageEntity(MessageEntity.BOT_COMMAND, 0, 4)])
    assert fallback.check_update(command)
    assert not messages.check_update(command)

    plain = _text_update("hello")
    assert messages.check_update(plain)
    assert not fallback.check_update(plain)
