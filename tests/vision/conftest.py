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
Pytest fixtures for the annotation engine test suite.

Fixtures:
- engine: annotation engine with the builtin label font
- black_image, white_image: synthetic 400x300 BGR rasters
- make_face, full_face: detection instances with every landmark
and score
"""

import numpy as np
import pytest

from vision.annotation import AnnotationEngine, RenderContext
from vision.fonts import LabelFont
from vision.schema import DetectionInstance, Point, Rectangle


WIDTH, HEIGHT = 400, 300


@pytest.fixture
def engine():  # noqa: D103
    return AnnotationEngine(RenderContext(font=LabelFont.builtin()))


@pytest.fixture
def black_image():  # noqa: D103
    return np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def white_image():  # noqa: D103
    return np.full((HEIGHT, WIDTH, 3), 255, dtype=np.uint8)


def _make_face(left: int, top: int, size: int) -> DetectionInstance:
    """Face in a size x size box with landmarks laid out inside it."""
    def at(fx: float, fy: float) -> Point:
        return Point(left + fx * size, top + fy * size)

    return DetectionInstance(
        rectangle=Rectangle(left, top, size, size),
        landmarks={
            "noseTip": at(0.5, 0.55),
            "pupilLeft": at(0.3, 0.35),
            "pupilRight": at(0.7, 0.35),
            "mouthLeft": at(0.35, 0.75),
            "mouthRight": at(0.65, 0.75),
            "eyeLeftTop": at(0.3, 0.31),
            "eyeLeftBottom": at(0.3, 0.39),
            "eyeLeftOuter": at(0.2, 0.35),
            "eyeRightTop": at(0.7, 0.31),
            "eyeRightBottom": at(0.7, 0.39),
            "eyeRightOuter": at(0.8, 0.35),
        },
        scores={
            "facialHair": {"moustache": 0.1, "beard": 0.2, "sideburns": 0.0},
            "headPose": {"roll": -1.5, "yaw": 3.25, "pitch": 0.0},
            "emotion": {"happiness": 0.9, "neutral": 0.1},
        },
        attributes={"age": 31.0, "gender": "female"},
    )


@pytest.fixture
def make_face():
    """Factory of fully annotated faces, make_face(left, top, size)."""
    return _make_face


@pytest.fixture
def full_face():  # noqa: D103
    return _make_face(50, 40, 100)
