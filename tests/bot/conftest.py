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
Pytest configuration and fixtures for the Telegram bot test suite.

This module provides shared fixtures for testing the bot
without network access: settings taken from a mocked environment,
a transport mock standing in for the Telegram API, mocked remote
vision services and an orchestrator wired to all of them.

Fixtures:
- test_settings: settings in polling mode, read from environment
- webhook_settings: settings in webhook mode
- transport: Transport mock with plausible return values
- emotion, faces, analysis: remote vision service mocks
- orchestrator: Orchestrator over the mocks above
- jpeg_bytes: small encoded image served by transport.download
- detected_face: face detection result with full landmarks
- make_selection: factory of button presses on the prompt
"""

from unittest.mock import AsyncMock

import cv2
import numpy as np
import pytest

from bot.src.dispatch import DispatchProtocol
from bot.src.orchestrator import MESSAGE_ACTION_IMAGE, Orchestrator, Selection
from bot.src.settings import Settings
from bot.src.transport import Transport
from cognitive.interfaces import (
    EmotionService,
    FaceService,
    ImageAnalysisService,
)
from vision import AnnotationEngine, LabelFont, RenderContext
from vision.schema import DetectionInstance, Point, Rectangle


CHAT_ID = 42
SUBMISSION_ID = 10
PROMPT_ID = 11
PHOTO_ID = 12
REPORT_ID = 13
FILE_REF = "AgACAgIAAxkBAAIBb2Z"
FILE_URL = "https://api.telegram.org/file/bottest/photos/file_0.jpg"


@pytest.fixture
def test_settings(monkeypatch):
    """Create a test settings mock."""
    monkeypatch.setenv("BOT_TOKEN", "test-token-42")
    monkeypatch.setenv("POLL_MODE", "true")
    monkeypatch.setenv("WEBHOOK_BASE", "https://test-webhook.local")
    monkeypatch.setenv("SECRET_TOKEN", "test-secret-token-42")
    monkeypatch.setenv("FACE_SUBSCRIPTION_KEY", "face-key")
    monkeypatch.delenv("FONT_PATH", raising=False)
    return Settings()


@pytest.fixture
def webhook_settings(test_settings):  # noqa: D103
    return test_settings.model_copy(update={"poll_mode": False})


@pytest.fixture
def jpeg_bytes():  # noqa: D103
    ok, buffer = cv2.imencode(
        ".jpg", np.full((240, 320, 3), 127, dtype=np.uint8))
    assert ok
    return buffer.tobytes()


@pytest.fixture
def transport(jpeg_bytes):
    """Transport mock answering like a healthy Telegram API."""
    mock = AsyncMock(spec=Transport)
    mock.send_text.return_value = REPORT_ID
    mock.send_image.return_value = PHOTO_ID
    mock.fetch_file_url.return_value = FILE_URL
    mock.download.return_value = jpeg_bytes
    return mock


@pytest.fixture
def emotion():  # noqa: D103
    return AsyncMock(spec=EmotionService)


@pytest.fixture
def faces():  # noqa: D103
    return AsyncMock(spec=FaceService)


@pytest.fixture
def analysis():  # noqa: D103
    return AsyncMock(spec=ImageAnalysisService)


@pytest.fixture
def orchestrator(transport, emotion, faces, analysis):  # noqa: D103
    return Orchestrator(
        transport=transport,
        protocol=DispatchProtocol.from_operations(),
        engine=AnnotationEngine(RenderContext(font=LabelFont.builtin())),
        emotion=emotion,
        faces=faces,
        analysis=analysis,
    )


@pytest.fixture
def detected_face():
    """Face with every landmark, scored for emotion only."""
    def at(x, y):
        return Point(float(x), float(y))

    return DetectionInstance(
        rectangle=Rectangle(60, 40, 100, 100),
        landmarks={
            "noseTip": at(110, 95),
            "pupilLeft": at(90, 75),
            "pupilRight": at(130, 75),
            "mouthLeft": at(95, 115),
            "mouthRight": at(125, 115),
            "eyeLeftTop": at(90, 71),
            "eyeLeftBottom": at(90, 79),
            "eyeLeftOuter": at(80, 75),
            "eyeRightTop": at(130, 71),
            "eyeRightBottom": at(130, 79),
            "eyeRightOuter": at(140, 75),
        },
        scores={"emotion": {"happiness": 0.9, "neutral": 0.1}},
    )


@pytest.fixture
def make_selection():
    """Factory of button presses on the operation prompt."""
    def _make(data, message_text=MESSAGE_ACTION_IMAGE, replied_file_ref=None):
        return Selection(
            selection_id="cbq-1",
            chat_id=CHAT_ID,
            message_id=PROMPT_ID,
            message_text=message_text,
            data=data,
            username="ann",
            replied_file_ref=replied_file_ref,
        )
    return _make
