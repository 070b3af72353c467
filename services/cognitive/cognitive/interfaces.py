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

"""Interfaces of the remote vision services used by the bot.

Provides abstract interfaces for:
- EmotionService: per-face emotion scores
- FaceService: face detection with landmarks and attributes
- ImageAnalysisService: image-level description, OCR and tagging

Every method takes a publicly reachable image URL and raises
RemoteAnalysisError on failure.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from vision.schema import DetectionInstance

from .schema import DEFAULT_FACE_ATTRIBUTES, ImageDescription, ImageTag


class EmotionService(ABC):
    """Recognizes emotions of every face on an image."""

    @abstractmethod
    async def recognize(self, image_url: str) -> list[DetectionInstance]:
        """Get face boxes with scores under the "emotion" category."""
        ...


class FaceService(ABC):
    """Detects faces with their landmarks and attributes."""

    @abstractmethod
    async def detect(
        self,
        image_url: str,
        attributes: Sequence[str] = DEFAULT_FACE_ATTRIBUTES,
    ) -> list[DetectionInstance]:
        """Get detected faces in the order reported by the service."""
        ...


class ImageAnalysisService(ABC):
    """Analyzes an image as a whole."""

    @abstractmethod
    async def describe(self, image_url: str) -> ImageDescription:
        ...

    @abstractmethod
    async def recognize_text(self, image_url: str) -> str:
        """Recognize printed text, words joined with spaces."""
        ...

    @abstractmethod
    async def recognize_handwriting(self, image_url: str) -> str:
        """Recognize handwritten text, lines joined with spaces."""
        ...

    @abstractmethod
    async def tag(self, image_url: str) -> list[ImageTag]:
        ...
