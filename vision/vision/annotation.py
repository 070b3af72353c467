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

"""Annotation engine rendering detection results over a source image.

Action Sequence:
    1. Pick the strategies registered for the requested operation
    2. Signal EmptyResult if there is nothing to draw
    3. Decode the source bytes and copy them onto a fresh canvas
    4. Scale font size and stroke width to the image height
    5. Apply every strategy to every instance, in instance order
    6. Attach the text report, if the operation has one
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
import logging

import numpy as np

from .canvas import Canvas
from .codec import DEFAULT_JPEG_QUALITY, encode_jpeg, read_bytes_bgr
from .fonts import LabelFont
from .geometry import ColorCycle, MASK_COLOR
from .operations import OperationKind
from .report import build_report
from .schema import (
    Color,
    DetectionInstance,
    EmptyResult,
    RenderedResult,
    RenderError,
)
from .strategies import (
    AnnotationStrategy,
    BoxLabelStrategy,
    CIRCLE_RADIUS,
    DrawStyle,
    EyeMaskStrategy,
    LandmarkStrategy,
    PixelateStrategy,
)


logger = logging.getLogger(__name__)

FONT_SIZE_DIVISOR = 24.0
STROKE_PER_FONT_SIZE = 1 / 6


@dataclass(frozen=True)
class RenderContext:
    """Read-only rendering resources, created once at startup."""
    font: LabelFont
    colors: ColorCycle = field(default_factory=ColorCycle)
    mask_color: Color = MASK_COLOR
    circle_radius: int = CIRCLE_RADIUS
    jpeg_quality: int = DEFAULT_JPEG_QUALITY


def draw_style(font: LabelFont, image_height: int) -> DrawStyle:
    """Scale label font and stroke to the image height."""
    font_size = image_height / FONT_SIZE_DIVISOR
    stroke_width = max(1, int(round(font_size * STROKE_PER_FONT_SIZE)))
    return DrawStyle(
        font=font.sized(font_size),
        font_size=font_size,
        stroke_width=stroke_width,
    )


class AnnotationEngine:
    """Renders overlays for the image-producing operations."""

    def __init__(self, context: RenderContext):
        """Register the strategies of every rendering operation."""
        self.context = context

        box = BoxLabelStrategy(context.colors)
        self._strategies: dict[OperationKind, tuple[AnnotationStrategy, ...]] = {
            OperationKind.EMOTION: (box,),
            OperationKind.FACE: (
                box,
                LandmarkStrategy(context.colors, context.circle_radius),
            ),
            OperationKind.CENSOR_EYES: (EyeMaskStrategy(context.mask_color),),
            OperationKind.MASK_FACES: (PixelateStrategy(),),
        }

    def strategies_for(
        self, op: OperationKind
    ) -> tuple[AnnotationStrategy, ...]:
        """Get the strategies for the operation.

        Raises:
            RenderError: if the operation does not render images
        """
        try:
            return self._strategies[op]
        except KeyError:
            raise RenderError(
                f"Operation '{op.label}' does not produce an image",
                code="UNSUPPORTED_OPERATION",
            ) from None

    def annotate(
        self,
        image: bytes | bytearray | np.ndarray,
        instances: Sequence[DetectionInstance],
        op: OperationKind,
    ) -> RenderedResult:
        """Draw the overlays of `op` for every instance.

        Args:
            image: encoded source image or an already decoded
                (H, W, 3) BGR array, which is left untouched
            instances: detections in the order received from
                the remote service
            op: requested operation

        Returns:
            RenderedResult with the annotated copy and the report

        Raises:
            EmptyResult: if instances is empty
            DecodeError: if image bytes cannot be decoded
            RenderError: if op does not render images
        """
        strategies = self.strategies_for(op)
        if not instances:
            raise EmptyResult(f"Nothing to render for '{op.label}'")

        if isinstance(image, np.ndarray):
            raster = image
        else:
            raster = read_bytes_bgr(image)

        canvas = Canvas(raster)
        style = draw_style(self.context.font, canvas.height)

        for index, instance in enumerate(instances):
            for strategy in strategies:
                strategy.apply(canvas, index, instance, style)

        logger.debug(
            f"Rendered '{op.label}' for {len(instances)} instance(s) "
            f"on {canvas.width}x{canvas.height} image"
        )
        return RenderedResult(
            image=canvas.pixels,
            report=build_report(instances, op),
        )

    def encode(self, result: RenderedResult) -> bytes:
        """Serialize the annotated raster to JPEG.

        Raises:
            EncodeError: if the raster cannot be encoded
        """
        return encode_jpeg(result.image, self.context.jpeg_quality)
