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

"""Pure geometry helpers used by the annotation strategies.

Index:
    - rectangle_corners
    - clip_rectangle
    - ColorCycle
    - has_all_keys
    - distance
    - eye_mask_points
    - pixelate_block_size

"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
import math
from typing import Any, Optional

from .schema import Color, Point, Rectangle


DEFAULT_COLORS: tuple[Color, ...] = (
    (255, 255, 0),  # yellow
    (0, 255, 255),  # cyan
    (255, 0, 255),  # purple
    (0, 255, 0),    # green
    (0, 0, 255),    # blue
    (255, 0, 0),    # red
)
MASK_COLOR: Color = (0, 0, 0)

EYE_MASK_MARGIN_X = 0.2
EYE_MASK_MARGIN_Y = 0.3
PIXELATE_DIVISOR = 8


def rectangle_corners(
    rect: Rectangle
) -> tuple[tuple[int, int], tuple[int, int], tuple[int, int], tuple[int, int]]:
    """Get rectangle corners clockwise, starting from the top-left one."""
    return (
        (rect.left, rect.top),
        (rect.right, rect.top),
        (rect.right, rect.bottom),
        (rect.left, rect.bottom),
    )


def clip_rectangle(
    rect: Rectangle, width: int, height: int
) -> Optional[tuple[int, int, int, int]]:
    """Clip the rectangle so it fits a (width, height) image.

    Returns:
        (x1, y1, x2, y2) of the clipped region, or None
        if nothing of the rectangle lies within the image.
    """
    x1, y1 = max(0, rect.left), max(0, rect.top)
    x2, y2 = min(width, rect.right), min(height, rect.bottom)
    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2, y2


@dataclass(frozen=True)
class ColorCycle:
    """Fixed sequence of colors assigned to instances by index."""
    colors: tuple[Color, ...] = DEFAULT_COLORS

    def __post_init__(self):  # noqa: D105
        if not self.colors:
            raise ValueError("Color cycle requires at least one color")

    def __len__(self) -> int:  # noqa: D105
        return len(self.colors)

    def color_for_index(self, i: int) -> Color:
        """Rotate through the colors, colors[i mod length]."""
        return self.colors[i % len(self.colors)]


def has_all_keys(keys: Iterable[str], points: Mapping[str, Any]) -> bool:
    """Check if the mapping contains every requested key."""
    return all(k in points for k in keys)


def distance(a: Point, b: Point) -> float:  # noqa: D103
    return math.hypot(a.x - b.x, a.y - b.y)


def eye_mask_points(
    lt: Point,
    lb: Point,
    lo: Point,
    rt: Point,
    rb: Point,
    ro: Point,
) -> tuple[Point, Point, Point, Point]:
    """Derive a quadrilateral that fully covers both eyes.

    Args:
        lt, lb, lo: left eye top, bottom and outer points
        rt, rb, ro: right eye top, bottom and outer points

    Returns:
        (left upper, left lower, right lower, right upper) corners

    Notes:
        - the eye with the larger height is taken as reference for
        the offsets; on a tie the right eye is used
        - margins are 20% of the distance between outer points
        horizontally and 30% of the larger eye height vertically
    """
    l_eye_height = distance(lt, lb)
    r_eye_height = distance(rt, rb)
    eyes_width = distance(lo, ro)

    margin_x = eyes_width * EYE_MASK_MARGIN_X
    margin_y = max(l_eye_height, r_eye_height) * EYE_MASK_MARGIN_Y

    if l_eye_height > r_eye_height:
        top, bottom, outer = lt, lb, lo
    else:
        top, bottom, outer = rt, rb, ro

    dx = max(abs(top.x - outer.x), abs(bottom.x - outer.x)) + margin_x
    dy = max(abs(top.y - outer.y), abs(bottom.y - outer.y)) + margin_y

    return (
        Point(lt.x - dx, lt.y - dy),
        Point(lb.x - dx, lb.y + dy),
        Point(rb.x + dx, rb.y + dy),
        Point(rt.x + dx, rt.y - dy),
    )


def pixelate_block_size(width: int) -> int:
    """Get the pixelation block size for a face of given width."""
    return max(1, width // PIXELATE_DIVISOR)
