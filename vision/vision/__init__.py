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


"""Package vision/vision.

Initialization file provides the annotation engine API
available to the bot and to the remote service clients.
"""

from .annotation import AnnotationEngine, RenderContext
from .fonts import LabelFont
from .operations import OperationKind
from .schema import (
    DecodeError,
    DetectionInstance,
    EmptyResult,
    EncodeError,
    FontLoadError,
    Point,
    Rectangle,
    RenderedResult,
    RenderError,
    VisionError,
)

__all__ = [
    "AnnotationEngine",
    "DecodeError",
    "DetectionInstance",
    "EmptyResult",
    "EncodeError",
    "FontLoadError",
    "LabelFont",
    "OperationKind",
    "Point",
    "Rectangle",
    "RenderContext",
    "RenderedResult",
    "RenderError",
    "VisionError",
]
