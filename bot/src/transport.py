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

"""Messaging transport used by the orchestrator.

Provides:
- Transport: abstract messaging capabilities
- TelegramTransport: implementation on top of python-telegram-bot

Every failing call raises TransportError with the
platform's description of the problem.
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Sequence
from typing import Optional

import aiohttp
from telegram import (
    Bot,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    ReplyParameters,
)
from telegram.error import TelegramError


# rows of (button text, callback data)
Keyboard = Sequence[Sequence[tuple[str, str]]]

DOWNLOAD_TIMEOUT = 30.0


class TransportError(Exception):
    """Raised when the messaging platform rejects a call."""


class Transport(ABC):
    """Messaging capabilities required by the orchestrator."""

    @abstractmethod
    async def send_text(
        self,
        chat_id: int,
        text: str,
        reply_to: Optional[int] = None,
        keyboard: Optional[Keyboard] = None,
    ) -> int:
        """Send a text message, return its id."""
        ...

    @abstractmethod
    async def send_image(
        self,
        chat_id: int,
        data: bytes,
        caption: Optional[str] = None,
        reply_to: Optional[int] = None,
    ) -> int:
        """Send an encoded image, return the message id."""
        ...

    @abstractmethod
    async def edit_text(self, chat_id: int, message_id: int, text: str):
        """Replace message text, dropping its buttons."""
        ...

    @abstractmethod
    async def delete_message(self, chat_id: int, message_id: int):
        ...

    @abstractmethod
    async def answer_selection(self, selection_id: str):
        """Acknowledge a button press to the platform."""
        ...

    @abstractmethod
    async def fetch_file_url(self, file_ref: str) -> str:
        """Resolve an opaque file reference to a download URL."""
        ...

    @abstractmethod
    async def download(self, url: str) -> bytes:
        ...

    @abstractmethod
    async def send_action(self, chat_id: int, action: str):
        """Show a chat action such as 'typing'."""
        ...


def to_markup(keyboard: Optional[Keyboard]) -> Optional[InlineKeyboardMarkup]:
    """Convert button rows to a Telegram inline keyboard."""
    if keyboard is None:
        return None
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(text, callback_data=data) for text, data in row]
        for row in keyboard
    ])


class TelegramTransport(Transport):
    """Transport over the Telegram Bot API."""

    def __init__(self, bot: Bot, download_timeout: float = DOWNLOAD_TIMEOUT):
        """Wrap an initialized telegram.Bot.

        Attributes:
            bot (telegram.Bot): bot used for API calls
            download_timeout (float): total timeout for
            downloading files by URL
        """
        self.bot = bot
        self.download_timeout = download_timeout

    @staticmethod
    def _reply(reply_to: Optional[int]) -> Optional[ReplyParameters]:
        if reply_to is None:
            return None
        return ReplyParameters(
            message_id=reply_to, allow_sending_without_reply=True)

    async def send_text(  # noqa: D102
        self, chat_id, text, reply_to=None, keyboard=None
    ) -> int:
        try:
            message = await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_parameters=self._reply(reply_to),
                reply_markup=to_markup(keyboard),
            )
        except TelegramError as e:
            raise TransportError(e.message) from e
        return message.message_id

    async def send_image(  # noqa: D102
        self, chat_id, data, caption=None, reply_to=None
    ) -> int:
        try:
            message = await self.bot.send_photo(
                chat_id=chat_id,
                photo=data,
                caption=caption,
                reply_parameters=self._reply(reply_to),
            )
        except TelegramError as e:
            raise TransportError(e.message) from e
        return message.message_id

    async def edit_text(self, chat_id, message_id, text):  # noqa: D102
        try:
            await self.bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=message_id)
        except TelegramError as e:
            raise TransportError(e.message) from e

    async def delete_message(self, chat_id, message_id):  # noqa: D102
        try:
            await self.bot.delete_message(
                chat_id=chat_id, message_id=message_id)
        except TelegramError as e:
            raise TransportError(e.message) from e

    async def answer_selection(self, selection_id):  # noqa: D102
        try:
            await self.bot.answer_callback_query(selection_id)
        except TelegramError as e:
            raise TransportError(e.message) from e

    async def fetch_file_url(self, file_ref) -> str:  # noqa: D102
        try:
            file = await self.bot.get_file(file_ref)
        except TelegramError as e:
            raise TransportError(e.message) from e
        if not file.file_path:
            raise TransportError(f"File {file_ref} has no download path")
        return file.file_path

    async def download(self, url) -> bytes:  # noqa: D102
        timeout = aiohttp.ClientTimeout(total=self.download_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as resp:
                    if resp.status != 200:
                        raise TransportError(
                            f"Download failed (status {resp.status})")
                    return await resp.read()
        except asyncio.TimeoutError as e:
            raise TransportError("Download timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(str(e)) from e

    async def send_action(self, chat_id, action):  # noqa: D102
        try:
            await self.bot.send_chat_action(chat_id=chat_id, action=action)
        except TelegramError as e:
            raise TransportError(e.message) from e
