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

"""
Telegram Bot with FastAPI Integration.

A Telegram bot that routes user images through remote vision
analysis services and sends back annotated images and reports,
implemented with python-telegram-bot library and FastAPI web
framework. The bot supports both polling and webhook deployment
modes for flexible hosting options.

Architecture:
    - FastAPI web server for webhook handling and health checks
    - python-telegram-bot for Telegram Bot API integration
    - Dual deployment modes: polling (development) and webhook (production)
    - Asynchronous operation with concurrent update processing

Bot Handlers:
    - /start, /help: Help message
    - Any message: operation prompt for images, help otherwise
    - Callback queries: operation selection on a prompt

Action Sequence:
    1. Load settings, configure logging
    2. Build the read-only context: font, code tables, service clients
    3. Initialize the Telegram application and register handlers
    4. On startup: configure either polling or webhook mode
    5. Process incoming updates through registered handlers
    6. On shutdown: wait for running analyses, stop the application

Security:
    - Webhook endpoint protected with secret token validation
    - Header-based authentication for incoming webhook requests

Usage:
    uvicorn bot.src.main:create_app --factory
    Run with polling: set POLL_MODE=true
    Run with webhook: set WEBHOOK_BASE and SECRET_TOKEN
"""

from contextlib import asynccontextmanager
import logging
from typing import Annotated, Optional

from fastapi import FastAPI, HTTPException, Header, Request
from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from bot.src.context import BotContext, create_context
from bot.src.handlers import (
    help_cmd,
    message_received,
    ORCHESTRATOR_KEY,
    selection_received,
    start_cmd,
)
from bot.src.settings import get_settings, Settings
from bot.src.transport import TelegramTransport


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str):
    """Configure the root logger once per process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_application(context: BotContext) -> Application:
    """Create the Telegram application and register handlers."""
    tg_app: Application = (
        ApplicationBuilder()
        .token(context.settings.bot_token)
        .concurrent_updates(True)
        .build()
    )

    tg_app.bot_data[ORCHESTRATOR_KEY] = context.orchestrator(
        TelegramTransport(
            tg_app.bot, download_timeout=context.settings.request_timeout),
        spawn=tg_app.create_task,
    )

    # Register handlers
    tg_app.add_handler(CommandHandler("start", start_cmd))
    tg_app.add_handler(CommandHandler("help", help_cmd))
    tg_app.add_handler(CallbackQueryHandler(selection_received))
    tg_app.add_handler(MessageHandler(~filters.COMMAND, message_received))
    # unknown commands get the help text
    tg_app.add_handler(MessageHandler(filters.COMMAND, help_cmd))
    return tg_app


def webhook_path(settings: Settings) -> str:  # noqa: D103
    return f"/webhook/{settings.secret_token}"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Assemble the FastAPI app wrapping the Telegram application.

    Raises:
        FontLoadError, ConfigurationError: on invalid startup
        resources, which must stop the process
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    tg_app = build_application(create_context(settings))

    # ---------- POLLING MODE ---------- #
    async def run_polling():
        """Launch the updater in polling mode."""
        await tg_app.initialize()
        await tg_app.start()
        await tg_app.updater.start_polling(
            poll_interval=settings.poll_interval)
        logger.info("Polling started ➜ Ctrl-C to stop")

    # ---------- WEBHOOK MODE ---------- #
    async def set_webhook():
        """Register the webhook and start processing updates."""
        await tg_app.initialize()
        await tg_app.bot.set_webhook(
            url=f"{settings.webhook_base}{webhook_path(settings)}",
            secret_token=settings.secret_token,
            drop_pending_updates=True,
        )
        await tg_app.start()
        logger.info("Webhook registered")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Context manager for app startup/shutdown."""
        # ---------- START-UP ---------- #
        if settings.poll_mode:
            await run_polling()
        else:
            await set_webhook()
        logger.info(f"Starting bot: @{tg_app.bot.username}")

        yield

        # ---------- SHUTDOWN ---------- #
        if tg_app.updater and tg_app.updater.running:
            await tg_app.updater.stop()
        await tg_app.bot_data[ORCHESTRATOR_KEY].drain()
        await tg_app.stop()
        await tg_app.shutdown()

    app = FastAPI(title="CognitiveBot", lifespan=lifespan)
    app.state.tg_app = tg_app

    @app.get("/health")
    def health_check():
        """Report whether the Telegram application is running."""
        return {
            "status": "healthy" if tg_app.running else "not_ready",
            "mode": "polling" if settings.poll_mode else "webhook",
        }

    if not settings.poll_mode:
        @app.post(webhook_path(settings))
        async def telegram_webhook(
            request: Request,
            x_telegram_bot_api_secret_token: Annotated[
                str | None, Header()] = None,
        ) -> dict:
            """Handle the update if the token is valid.

            Asyncio coroutine that checks whether the request header
            secret token matches the one provided in settings.
            If it does, the request json body is put on the update
            queue of the application, otherwise, a HTTPException is thrown.

            Returns:
                dict: {"ok": True}
            Raises:
                HTTPException: 403 Forbidden if secret token does not match
            """
            if x_telegram_bot_api_secret_token != settings.secret_token:
                raise HTTPException(status_code=403, detail="Forbidden")
            update = Update.de_json(await request.json(), tg_app.bot)
            await tg_app.update_queue.put(update)
            return {"ok": True}

    return app
