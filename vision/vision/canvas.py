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

"""Mutable drawing surface over a copy of a BGR raster.

Shapes are drawn with OpenCV, text with Pillow since OpenCV
cannot render outline fonts. Colors are accepted as RGB.
"""

from collections.abc import Sequence

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .geometry import clip_rectangle
from .schema import Color, Point, Rectangle


def _bgr(color: Color) -> tuple[int, int, int]:
    r, g, b = color
    return int(b), int(g), int(r)


def _pt(p: Point) -> tuple[int, int]:
    return int(round(p.x)), int(round(p.y))


class Canvas:
    """Drawing surface that never touches the source array."""

    def __init__(self, image: np.ndarray):
        """Copy the (H, W, 3) uint8 source into a fresh buffer."""
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(
                f"Expected a (H, W, 3) image, got shape {image.shape}")
        self.pixels = np.ascontiguousarray(image, dtype=np.uint8).copy()

    @property
    def height(self) -> int:  # noqa: D102
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:  # noqa: D102
        return int(self.pixels.shape[1])

    def rectangle(self, rect: Rectangle, color: Color, thickness: int):
        """Stroke the rectangle outline."""
        cv2.rectangle(
            self.pixels,
            (rect.left, rect.top),
            (rect.right, rect.bottom),
            _bgr(color),
            thickness,
        )

    def circle(self, center: Point, radius: int, color: Color):
        """Draw a filled circle."""
        cv2.circle(self.pixels, _pt(center), radius, _bgr(color), -1)

    def line(self, p1: Point, p2: Point, color: Color, thickness: int):
        cv2.line(self.pixels, _pt(p1), _pt(p2), _bgr(color), thickness)

    def fill_polygon(self, points: Sequence[Point], color: Color):
        """Fill the polygon with an opaque color."""
        pts = np.array([_pt(p) for p in points], dtype=np.int32)
        cv2.fillPoly(self.pixels, [pts], _bgr(color))

    def pixelate(self, rect: Rectangle, block: int):
        """Replace every block x block cell of the region with its mean.

        The region is clipped to the image and shrunk onto a grid of
        ceil(w / block) x ceil(h / block) cells by area averaging, then
        blown back up with nearest-neighbour sampling. Where the region
        is a whole number of blocks each cell holds the rounded mean of
        its pixels; otherwise the cells are stretched evenly across it.
        """
        clipped = clip_rectangle(rect, self.width, self.height)
        if clipped is None:
            return
        x1, y1, x2, y2 = clipped
        region = self.pixels[y1:y2, x1:x2]
        h, w = region.shape[:2]
        block = max(1, block)

        grid = (-(-w // block), -(-h // block))
        cells = cv2.resize(
            np.ascontiguousarray(region), grid, interpolation=cv2.INTER_AREA)
        region[...] = cv2.resize(cells, (w, h), interpolation=cv2.INTER_NEAREST)

    def text(
        self,
        text: str,
        origin: tuple[float, float],
        font: ImageFont.FreeTypeFont,
        color: Color,
    ):
        """Draw text with its baseline starting at origin.

        Only the patch under the text bounding box goes through Pillow.
        """
        ox, oy = origin
        left, top, right, bottom = font.getbbox(text, anchor="ls")
        # one pixel of slack for antialiased edges
        patch = clip_rectangle(
            Rectangle(
                int(np.floor(ox + left)) - 1,
                int(np.floor(oy + top)) - 1,
                int(np.ceil(right - left)) + 3,
                int(np.ceil(bottom - top)) + 3,
            ),
            self.width,
            self.height,
        )
        if patch is None:
            return
        x1, y1, x2, y2 = patch

        roi = self.pixels[y1:y2, x1:x2]
        rgb = cv2.cvtColor(np.ascontiguousarray(roi), cv2.COLOR_BGR2RGB)
        img = Image.fromarray(rgb)
        ImageDraw.Draw(img).text(
            (ox - x1, oy - y1), text, font=font, fill=tuple(color), anchor="ls")
        roi[...] = cv2.cvtColor(np.asarray(img), cv2.COLOR_RGB2BGR)
