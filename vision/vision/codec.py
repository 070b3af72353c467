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

"""Raster codec: image bytes to BGR arrays and back."""

import cv2
import numpy as np
import numpy.typing as npt

from .schema import DecodeError, EncodeError


DEFAULT_JPEG_QUALITY = 90


def read_bytes_bgr(data: bytes | bytearray) -> npt.NDArray[np.uint8]:
    """Convert binary buffer with image data to a (H, W, 3) BGR array.

    Raises:
        DecodeError: if the buffer is empty or holds no
        image format OpenCV understands
    """
    if not data:
        raise DecodeError("Empty image buffer")

    arr = np.frombuffer(bytes(data), np.uint8)
    try:
        img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Unable to decode image: {e}") from e

    if img is None:
        raise DecodeError("Unable to decode image: unknown format")
    return np.asarray(img)


def encode_jpeg(
    img: npt.NDArray[np.uint8], quality: int = DEFAULT_JPEG_QUALITY
) -> bytes:
    """Serialize a BGR array to JPEG bytes.

    Raises:
        EncodeError: if OpenCV refuses to encode the array
    """
    try:
        ok, buffer = cv2.imencode(
            ".jpg", img, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)]
        )
    except cv2.error as e:
        raise EncodeError(f"Unable to encode image: {e}") from e

    if not ok:
        raise EncodeError("Unable to encode image")
    return buffer.tobytes()
