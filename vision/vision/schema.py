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

"""Defines detection records, render results and vision errors."""


from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np


Color = tuple[int, int, int]


@dataclass(frozen=True)
class Point:
    """Landmark coordinates in pixels, origin at the top-left corner."""
    x: float
    y: float


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned bounding box in pixel units."""
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:  # noqa: D102
        return self.left + self.width

    @property
    def bottom(self) -> int:  # noqa: D102
        return self.top + self.height


@dataclass
class DetectionInstance:
    """One detected face as reported by a remote vision service.

    Attributes:
        rectangle: face bounding box
        landmarks: named landmark points; the set of present
            names differs between instances and must be treated
            as partial
        scores: attribute score mappings grouped by category,
            e.g. {"emotion": {"happiness": 0.98, ...}}
        attributes: scalar attributes (age, gender, ...) that
            do not take part in rendering
        face_id: remote identifier of the face, if any
    """
    rectangle: Rectangle
    landmarks: dict[str, Point] = field(default_factory=dict)
    scores: dict[str, dict[str, float]] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)
    face_id: Optional[str] = None


@dataclass
class RenderedResult:
    """Annotated raster (BGR, source dimensions) and optional text report."""
    image: np.ndarray
    report: Optional[str] = None


class VisionError(Exception):
    """Base class for annotation pipeline errors."""
    def __init__(  # noqa: D107
        self,
        message: str,
        code: str = "VISION_ERROR"
    ):
        super().__init__(message)
        self.code = code


class RenderError(VisionError):
    """Raised when the annotated image cannot be produced."""
    def __init__(  # noqa: D107
        self,
        detail: str = "Failed to render image",
        code: str = "RENDER_ERROR"
    ):
        super().__init__(detail, code)


class DecodeError(RenderError):
    """Raised when the source image bytes cannot be decoded."""
    def __init__(  # noqa: D107
        self,
        detail: str = "Invalid or corrupted image"
    ):
        super().__init__(detail, "DECODE_ERROR")


class EncodeError(RenderError):
    """Raised when the annotated raster cannot be serialized."""
    def __init__(  # noqa: D107
        self,
        detail: str = "Failed to encode image"
    ):
        super().__init__(detail, "ENCODE_ERROR")


class FontLoadError(VisionError):
    """Raised at startup when the label font cannot be loaded."""
    def __init__(  # noqa: D107
        self,
        detail: str = "Failed to load label font"
    ):
        super().__init__(detail, "FONT_LOAD_ERROR")


class EmptyResult(Exception):
    """Signals that nothing was detected, so there is nothing to render.

    Not a failure: callers report it as a distinct notice instead
    of sending an unmodified image back.
    """
    def __init__(  # noqa: D107
        self,
        detail: str = "Nothing detected on the image"
    ):
        super().__init__(detail)
        self.code = "EMPTY_RESULT"
