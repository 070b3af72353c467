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

"""Closed set of analysis operations a user can request on an image."""

from enum import Enum


class OperationKind(Enum):
    """Supported analysis operations, valued by their human-readable label.

    Notes:
        - the first letter of every label has to be unique, it
        is used as the operation code in dispatch tokens
        - member order is the order in which operations
        are offered to the user
    """
    EMOTION = "Emotion Recognition"
    FACE = "Face Detection"
    DESCRIBE = "Describe This Image"
    OCR = "OCR"
    HANDWRITTEN = "Handwritten Text Recognition"
    TAG = "Tag This Image"
    CENSOR_EYES = "Censor Eyes"
    MASK_FACES = "Mask Faces"

    @property
    def label(self) -> str:  # noqa: D102
        return self.value

    @property
    def renders_image(self) -> bool:
        """Whether the operation produces an annotated image."""
        return self in RENDERING_OPERATIONS

    @property
    def uses_face_detection(self) -> bool:
        """Whether the operation is backed by the face detection service."""
        return self in FACE_OPERATIONS


FACE_OPERATIONS = frozenset({
    OperationKind.FACE,
    OperationKind.CENSOR_EYES,
    OperationKind.MASK_FACES,
})

RENDERING_OPERATIONS = FACE_OPERATIONS | {OperationKind.EMOTION}
