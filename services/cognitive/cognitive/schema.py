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

"""Defines remote vision service results and errors."""


from dataclasses import dataclass, field
from typing import Optional


DEFAULT_FACE_ATTRIBUTES = (
    "age",
    "gender",
    "headPose",
    "smile",
    "facialHair",
    "glasses",
    "emotion",
)


@dataclass
class ImageCaption:
    """Natural language caption of an image."""
    text: str
    confidence: float


@dataclass
class ImageTag:
    """Content tag of an image."""
    name: str
    confidence: float

    def as_text(self) -> str:  # noqa: D102
        return f"{self.name} ({self.confidence * 100.0:.3f}%)"


@dataclass
class ImageDescription:
    """Result of the describe operation."""
    captions: list[ImageCaption] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def as_text(self) -> str:
        """Captions one per line, followed by the tags in parentheses.

        Returns an empty string when the service found nothing.
        """
        parts = []
        if self.captions:
            parts.append("\n".join(
                f"{c.text} ({c.confidence * 100.0:.3f}%)"
                for c in self.captions
            ))
        if self.tags:
            parts.append(f"({', '.join(self.tags)})")
        return "\n\n".join(parts)


class RemoteAnalysisError(Exception):
    """Raised when a vision service call fails."""
    def __init__(  # noqa: D107
        self,
        message: str,
        code: str = "REMOTE_ERROR",
        status: Optional[int] = None
    ):
        super().__init__(message)
        self.code, self.status = code, status
