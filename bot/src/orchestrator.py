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
Command orchestration: from a submitted image to the analysis result.

Interaction states:
    AWAITING_SUBMISSION -> OPERATION_OFFERED -> PROCESSING -> COMPLETED
    with CANCELED and FAILED as terminal alternatives.

Action Sequence:
    1. An image submission is answered with a prompt holding one button
       per operation, plus a cancel button
    2. A button press is acknowledged and the prompt text is replaced
       with "processing" before anything else happens
    3. The file reference is resolved to a URL and the analysis runs
       in a spawned task, so slow remote calls never block updates
    4. The task sends the result image and/or text, deletes the prompt
       and reports any failure to the user

Every per-request error ends up as a user-visible message and a log
line; nothing raised here is meant to stop the process.
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
import contextlib
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Optional

from cognitive.interfaces import (
    EmotionService,
    FaceService,
    ImageAnalysisService,
)
from cognitive.schema import DEFAULT_FACE_ATTRIBUTES, RemoteAnalysisError
from vision.annotation import AnnotationEngine
from vision.operations import OperationKind
from vision.schema import (
    DecodeError,
    DetectionInstance,
    EmptyResult,
    EncodeError,
    RenderError,
)

from .dispatch import DispatchError, DispatchProtocol, TokenTooLongError
from .transport import Keyboard, Transport, TransportError


logger = logging.getLogger(__name__)


MESSAGE_ACTION_IMAGE = "Choose action for this image:"
MESSAGE_UNPROCESSABLE = "Unprocessable message."
MESSAGE_FAILED_TO_GET_FILE = "Failed to get file from the server."
MESSAGE_CANCELED = "Canceled."
MESSAGE_HELP = (
    "Send any image to this bot, and select one of the following actions:\n"
    "\n"
    + "\n".join(f"- {op.label}" for op in OperationKind)
    + "\n\n"
    "then it will send the result message or image back to you.\n"
)

CANCEL_LABEL = "Cancel"
ACTION_TYPING = "typing"
ACTION_UPLOAD_PHOTO = "upload_photo"

_NO_FACE = "No face detected on this image."
_NO_TEXT = "Could not recognize any text from given image."

EMPTY_MESSAGES = {
    OperationKind.EMOTION: "No emotion recognized on this image.",
    OperationKind.FACE: _NO_FACE,
    OperationKind.CENSOR_EYES: _NO_FACE,
    OperationKind.MASK_FACES: _NO_FACE,
    OperationKind.DESCRIBE: "Could not describe given image.",
    OperationKind.OCR: _NO_TEXT,
    OperationKind.HANDWRITTEN: _NO_TEXT,
    OperationKind.TAG: "Could not tag given image.",
}

FAILURE_PREFIXES = {
    OperationKind.EMOTION: "Failed to recognize emotion",
    OperationKind.FACE: "Failed to detect faces",
    OperationKind.CENSOR_EYES: "Failed to detect faces",
    OperationKind.MASK_FACES: "Failed to detect faces",
    OperationKind.DESCRIBE: "Failed to describe image",
    OperationKind.OCR: "Failed to recognize text",
    OperationKind.HANDWRITTEN: "Failed to recognize handwritten text",
    OperationKind.TAG: "Failed to tag image",
}


class InteractionState(Enum):
    """States of a single user interaction."""
    AWAITING_SUBMISSION = "awaiting_submission"
    OPERATION_OFFERED = "operation_offered"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


@dataclass(frozen=True)
class Submission:
    """An incoming user message.

    Attributes:
        chat_id: chat the message came from
        message_id: id of the message
        file_ref: platform file id of the attached image,
            None if the message carries no image
    """
    chat_id: int
    message_id: int
    file_ref: Optional[str] = None


@dataclass(frozen=True)
class Selection:
    """A press of one of the prompt buttons.

    Attributes:
        selection_id: platform id of the button press
        chat_id: chat holding the prompt
        message_id: id of the prompt message
        message_text: current text of the prompt message
        data: dispatch token carried by the button
        username: who pressed the button, for request logs
        replied_file_ref: image of the submission the prompt
            replies to, used for tokens without a reference
    """
    selection_id: str
    chat_id: int
    message_id: int
    message_text: str
    data: str
    username: str = "unknown"
    replied_file_ref: Optional[str] = None


class OperationFailed(Exception):
    """Carries the user-facing message of a failed processing step."""


Spawn = Callable[[Coroutine[Any, Any, Any]], Awaitable[Any]]


class Orchestrator:
    """Drives interactions between users, vision services and the renderer."""

    def __init__(
        self,
        transport: Transport,
        protocol: DispatchProtocol,
        engine: AnnotationEngine,
        emotion: EmotionService,
        faces: FaceService,
        analysis: ImageAnalysisService,
        spawn: Optional[Spawn] = None,
        max_concurrent_tasks: int = 0,
    ):
        """Wire collaborators together.

        Attributes:
            transport: messaging platform
            protocol: dispatch token codec
            engine: annotation engine
            emotion, faces, analysis: remote vision services
            spawn: starts a coroutine as a task without awaiting it,
                asyncio.create_task by default
            max_concurrent_tasks: bound on simultaneously running
                analysis tasks, 0 means unbounded
        """
        self.transport = transport
        self.protocol = protocol
        self.engine = engine
        self.emotion = emotion
        self.faces = faces
        self.analysis = analysis
        self._spawn = spawn or asyncio.create_task
        self._slots = (
            asyncio.Semaphore(max_concurrent_tasks)
            if max_concurrent_tasks > 0 else None
        )
        self._tasks: set[asyncio.Future] = set()

    # ---------- PROMPT ---------- #
    def keyboard(self, file_ref: str) -> Keyboard:
        """Build one button per operation and a cancel button.

        Falls back to reference-free tokens when the file id does
        not fit into the button payload; the image is then taken
        from the submission the prompt replies to.
        """
        try:
            tokens = [self.protocol.encode(op, file_ref) for op in OperationKind]
        except TokenTooLongError as e:
            logger.debug(f"File reference omitted from tokens: {e}")
            tokens = [self.protocol.encode(op, "") for op in OperationKind]

        rows = [
            [(op.label, token)] for op, token in zip(OperationKind, tokens)
        ]
        rows.append([(CANCEL_LABEL, self.protocol.cancel_token)])
        return rows

    async def handle_submission(self, submission: Submission) -> InteractionState:
        """Offer operations for an image, or reply with help otherwise."""
        if submission.file_ref is None:
            text, keyboard = MESSAGE_HELP, None
            state = InteractionState.AWAITING_SUBMISSION
        else:
            text, keyboard = MESSAGE_ACTION_IMAGE, self.keyboard(submission.file_ref)
            state = InteractionState.OPERATION_OFFERED

        try:
            await self.transport.send_text(
                submission.chat_id,
                text,
                reply_to=submission.message_id,
                keyboard=keyboard,
            )
        except TransportError as e:
            logger.error(f"Failed to send message: {e}")
            return InteractionState.FAILED
        return state

    # ---------- SELECTION ---------- #
    async def _replace_prompt(self, selection: Selection, text: str) -> bool:
        try:
            await self.transport.edit_text(
                selection.chat_id, selection.message_id, text)
        except TransportError as e:
            logger.error(f"Failed to edit message text: {e}")
            return False
        return True

    async def _reject(self, selection: Selection, reason: str) -> InteractionState:
        logger.warning(f"Unprocessable selection '{selection.data}': {reason}")
        await self._replace_prompt(selection, MESSAGE_UNPROCESSABLE)
        return InteractionState.FAILED

    async def handle_selection(self, selection: Selection) -> InteractionState:
        """Process a button press on an operation prompt.

        The acknowledgment replaces the prompt before the file is
        resolved; if it cannot be sent nothing else is attempted.
        """
        try:
            await self.transport.answer_selection(selection.selection_id)
        except TransportError as e:
            logger.error(f"Failed to answer callback query: {e}")
            return InteractionState.FAILED

        if self.protocol.is_cancel(selection.data):
            await self._replace_prompt(selection, MESSAGE_CANCELED)
            return InteractionState.CANCELED

        try:
            op, file_ref = self.protocol.decode(selection.data)
        except DispatchError as e:
            return await self._reject(selection, str(e))

        # the prompt may have been edited since the button was sent
        if "image" not in selection.message_text:
            return await self._reject(selection, "prompt is stale")

        file_ref = file_ref or selection.replied_file_ref
        if not file_ref:
            return await self._reject(selection, "no image to process")

        acknowledged = await self._replace_prompt(
            selection, f"Processing '{op.label}' on received image...")
        if not acknowledged:
            return InteractionState.FAILED

        try:
            file_url = await self.transport.fetch_file_url(file_ref)
        except TransportError as e:
            logger.error(f"Failed to get file from url: {e}")
            await self._replace_prompt(selection, MESSAGE_FAILED_TO_GET_FILE)
            return InteractionState.FAILED

        logger.info(
            f"Request from {selection.username}: '{op.label}' on {file_ref}")
        self._start(self.process(
            selection.chat_id, selection.message_id, file_url, op))
        return InteractionState.PROCESSING

    def _start(self, coro: Coroutine[Any, Any, Any]):
        task = asyncio.ensure_future(self._spawn(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self):
        """Wait for every spawned analysis task to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ---------- PROCESSING ---------- #
    async def process(
        self,
        chat_id: int,
        prompt_id: int,
        file_url: str,
        op: OperationKind,
    ) -> InteractionState:
        """Run the operation and deliver its result.

        The prompt message is deleted whatever the outcome.
        """
        slot = self._slots if self._slots is not None else contextlib.nullcontext()
        async with slot:
            error_message = None
            try:
                await self._send_action(chat_id, ACTION_TYPING)
                if op.renders_image:
                    await self._render(chat_id, file_url, op)
                else:
                    await self._describe(chat_id, file_url, op)
            except EmptyResult:
                error_message = EMPTY_MESSAGES[op]
            except RemoteAnalysisError as e:
                error_message = f"{FAILURE_PREFIXES[op]}: {e}"
            except DecodeError as e:
                error_message = f"Failed to decode image: {e}"
            except EncodeError as e:
                error_message = f"Failed to encode image: {e}"
            except RenderError as e:
                error_message = f"Failed to render image: {e}"
            except OperationFailed as e:
                error_message = str(e)
            except Exception as e:
                logger.exception(f"Unexpected error while processing '{op.label}'")
                error_message = f"Failed to process '{op.label}': {e}"

            try:
                await self.transport.delete_message(chat_id, prompt_id)
            except TransportError as e:
                logger.warning(f"Failed to delete message {prompt_id}: {e}")

            if error_message is None:
                return InteractionState.COMPLETED

            logger.error(error_message)
            try:
                await self.transport.send_text(chat_id, error_message)
            except TransportError as e:
                logger.error(f"Failed to send error message: {e}")
            return InteractionState.FAILED

    async def _send_action(self, chat_id: int, action: str):
        try:
            await self.transport.send_action(chat_id, action)
        except TransportError as e:
            logger.warning(f"Failed to send chat action: {e}")

    async def _detect(
        self, file_url: str, op: OperationKind
    ) -> list[DetectionInstance]:
        if op is OperationKind.EMOTION:
            return await self.emotion.recognize(file_url)
        return await self.faces.detect(file_url, DEFAULT_FACE_ATTRIBUTES)

    async def _render(self, chat_id: int, file_url: str, op: OperationKind):
        instances = await self._detect(file_url, op)
        if not instances:
            raise EmptyResult()

        try:
            data = await self.transport.download(file_url)
        except TransportError as e:
            raise OperationFailed(f"Failed to open image: {e}") from e

        result = await asyncio.to_thread(self.engine.annotate, data, instances, op)
        image = await asyncio.to_thread(self.engine.encode, result)

        await self._send_action(chat_id, ACTION_UPLOAD_PHOTO)
        try:
            photo_id = await self.transport.send_image(
                chat_id, image, caption=f"Process result of '{op.label}'")
        except TransportError as e:
            raise OperationFailed(f"Failed to send image: {e}") from e

        if result.report:
            try:
                await self.transport.send_text(
                    chat_id, result.report, reply_to=photo_id)
            except TransportError as e:
                raise OperationFailed(f"Failed to send result: {e}") from e

    async def _analyze_text(self, file_url: str, op: OperationKind) -> str:
        if op is OperationKind.DESCRIBE:
            return (await self.analysis.describe(file_url)).as_text()
        if op is OperationKind.OCR:
            return await self.analysis.recognize_text(file_url)
        if op is OperationKind.HANDWRITTEN:
            return await self.analysis.recognize_handwriting(file_url)
        if op is OperationKind.TAG:
            tags = await self.analysis.tag(file_url)
            return "\n".join(t.as_text() for t in tags)
        raise OperationFailed(f"Command not supported: {op.label}")

    async def _describe(self, chat_id: int, file_url: str, op: OperationKind):
        text = await self._analyze_text(file_url, op)
        if not text.strip():
            raise EmptyResult()

        try:
            await self.transport.send_text(chat_id, text)
        except TransportError as e:
            raise OperationFailed(f"Failed to send result: {e}") from e
