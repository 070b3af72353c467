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


"""Package services/cognitive/cognitive.

Initialization file provides the remote vision service clients
available to the bot.
"""

from .clients import ComputerVisionClient, EmotionClient, FaceClient
from .interfaces import EmotionService, FaceService, ImageAnalysisService
from .schema import (
    DEFAULT_FACE_ATTRIBUTES,
    ImageCaption,
    ImageDescription,
    ImageTag,
    RemoteAnalysisError,
)

__all__ = [
    "ComputerVisionClient",
    "DEFAULT_FACE_ATTRIBUTES",
    "EmotionClient",
    "EmotionService",
    "FaceClient",
    "FaceService",
    "ImageAnalysisService",
    "ImageCaption",
    "ImageDescription",
    "ImageTag",
    "RemoteAnalysisError",
]
