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
Module that provides bot interaction logic.

Implements asyncio coroutines that are executed upon
/start and /help command, the event of a user sending
a message to the bot, and a press of an operation button.
The coroutines translate telegram updates into orchestrator
events; the orchestrator itself is kept in bot_data.

"""

import logging
from typing import Optional

from telegram import CallbackQuery, Message, Update
from telegram.ext import ContextTypes

from .orchestrator import (
    MESSAGE_HELP,
    Orchestrator,
    Selection,
    Submission,
)


logger = logging.getLogger(__name__)

ORCHESTRATOR_KEY = "orchestrator"


def _orchestrator(ctx: ContextTypes.DEFAULT_TYPE) -> Orchestrator:
    return ctx.bot_data[ORCHESTRATOR_KEY]


def image_file_ref(message: Optional[Message]) -> Optional[str]:
    """Get the file id of the image attached to the message, if any.

    Photos come in several sizes, the last one being the largest.
    Documents count as images when their MIME type says so.
    """
    if message is None:
        return None
    if message.photo:
        return message.photo[-1].file_id
    document = message.document
    if document and (document.mime_type or "").startswith("image/"):
        return document.file_id
    return None


def selection_from_query(query: CallbackQuery) -> Optional[Selection]:
    """Convert a callback query into a Selection.

    Returns None for queries without data or without
    an accessible prompt message.
    """
    message = query.message
    if query.data is None or not isinstance(message, Message):
        return None

    user = query.from_user
    return Selection(
        selection_id=query.id,
        chat_id=message.chat_id,
        message_id=message.message_id,
        message_text=message.text or "",
        data=query.data,
        username=(user.username or user.first_name) if user else "unknown",
        replied_file_ref=image_file_ref(message.reply_to_message),
    )


async def start_cmd(update: Update, ctx: ContextTypes.DEFAULT_TYPE):
    """Handle /start command logic.

    Attributes:
        update (telegram.Update): the telegram update event
        containing the message info
        ctx: callback context
    """
    if not update.message:
        return

    await update.message.reply_text(MESSAGE_HELP)

help_cmd = start_cmd  # alias


async def message_received(update: Update, ctx: ContextTypes.DEFAULT_TYPE):
    """Offer operations for an image, send help for anything else.

    Attributes:
        update (telegram.Update): the telegram update event
        containing the message info
        ctx: callback context
    """
    message = update.message
    if not message:
        return

    submission = Submission(
        chat_id=message.chat_id,
        message_id=message.message_id,
        file_ref=image_file_ref(message),
    )
    state = await _orchestrator(ctx).handle_submission(submission)
    logger.debug(f"Submission {message.message_id} -> {state.value}")


async def selection_received(update: Update, ctx: ContextTypes.DEFAULT_TYPE):
    """Dispatch a press of an operation or cancel button.

    Attributes:
        update (telegram.Update): the telegram update event
        containing the callback query
        ctx: callback context
    """
    query = update.callback_query
    if not query:
        return

    selection = selection_from_query(query)
    if selection is None:
        logger.warning(f"Callback query {query.id} is not processable")
        await query.answer()
        return

    state = await _orchestrator(ctx).handle_selection(selection)
    logger.debug(f"Selection {selection.selection_id} -> {state.value}")
