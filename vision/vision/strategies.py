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

"""Annotation strategies applied to a canvas one detection at a time.

Provides:
- AnnotationStrategy: common interface
- BoxLabelStrategy: colored face box and "Face #n" label
- LandmarkStrategy: nose tip, pupils and mouth markers
- EyeMaskStrategy: opaque quadrilateral over both eyes
- PixelateStrategy: block pixelation of the face box
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import ImageFont

from .canvas import Canvas
from .geometry import (
    ColorCycle,
    eye_mask_points,
    has_all_keys,
    MASK_COLOR,
    pixelate_block_size,
)
from .schema import Color, DetectionInstance


CIRCLE_RADIUS = 6

LANDMARK_KEYS = (
    "noseTip",
    "pupilRight",
    "pupilLeft",
    "mouthRight",
    "mouthLeft",
)
EYE_LANDMARK_KEYS = (
    "eyeLeftTop",
    "eyeLeftBottom",
    "eyeLeftOuter",
    "eyeRightTop",
    "eyeRightBottom",
    "eyeRightOuter",
)


@dataclass(frozen=True)
class DrawStyle:
    """Sizes derived from the height of the image being annotated."""
    font: ImageFont.FreeTypeFont
    font_size: float
    stroke_width: int


class AnnotationStrategy(ABC):
    """Draws the overlay of a single detection instance."""

    @abstractmethod
    def apply(
        self,
        canvas: Canvas,
        index: int,
        instance: DetectionInstance,
        style: DrawStyle,
    ) -> None:
        """Apply the overlay for instance number `index` to the canvas.

        Args:
            canvas: surface to draw on
            index: 0-based position of the instance in the
                detection list; defines color and numbering
            instance: detection to draw
            style: image-scaled sizes
        """
        ...


class BoxLabelStrategy(AnnotationStrategy):
    """Outline the face and caption it below the bottom-left corner."""

    def __init__(self, colors: ColorCycle):  # noqa: D107
        self.colors = colors

    def apply(self, canvas, index, instance, style):  # noqa: D102
        color = self.colors.color_for_index(index)
        rect = instance.rectangle

        canvas.rectangle(rect, color, style.stroke_width)
        canvas.text(
            f"Face #{index + 1}",
            (rect.left, rect.bottom + style.font_size),
            style.font,
            color,
        )


class LandmarkStrategy(AnnotationStrategy):
    """Mark nose tip, pupils and mouth line.

    Nothing is drawn unless every landmark in LANDMARK_KEYS
    is present for the instance.
    """

    def __init__(  # noqa: D107
        self, colors: ColorCycle, radius: int = CIRCLE_RADIUS
    ):
        self.colors = colors
        self.radius = radius

    def apply(self, canvas, index, instance, style):  # noqa: D102
        points = instance.landmarks
        if not has_all_keys(LANDMARK_KEYS, points):
            return

        color = self.colors.color_for_index(index)
        for key in ("noseTip", "pupilRight", "pupilLeft"):
            canvas.circle(points[key], self.radius, color)
        canvas.line(
            points["mouthRight"],
            points["mouthLeft"],
            color,
            style.stroke_width,
        )


class EyeMaskStrategy(AnnotationStrategy):
    """Hide both eyes under an opaque quadrilateral."""

    def __init__(self, mask_color: Color = MASK_COLOR):  # noqa: D107
        self.mask_color = mask_color

    def apply(self, canvas, index, instance, style):  # noqa: D102
        points = instance.landmarks
        if not has_all_keys(EYE_LANDMARK_KEYS, points):
            return

        corners = eye_mask_points(*(points[k] for k in EYE_LANDMARK_KEYS))
        canvas.fill_polygon(corners, self.mask_color)


class PixelateStrategy(AnnotationStrategy):
    """Pixelate the face box with blocks of 1/8 of its width."""

    def apply(self, canvas, index, instance, style):  # noqa: D102
        rect = instance.rectangle
        canvas.pixelate(rect, pixelate_block_size(rect.width))
