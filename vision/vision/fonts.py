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

"""Outline font used for rendering instance labels.

The font is read once at startup and kept as raw bytes, so that
a face label can be rendered at any size without touching the
filesystem during a request.
"""

import io
import logging
import os
from typing import Optional

from PIL import ImageFont

from .schema import FontLoadError


logger = logging.getLogger(__name__)

_PROBE_SIZE = 12


class LabelFont:
    """Immutable holder of an outline font."""

    def __init__(self, data: Optional[bytes] = None, source: str = "<builtin>"):
        """Wrap TrueType font bytes.

        Attributes:
            data (bytes, optional): raw TrueType/OpenType font file;
            None stands for the font bundled with Pillow
            source (str): human-readable origin, used in logs
        """
        self._data = data
        self.source = source

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> "LabelFont":
        """Read and validate the font file.

        Raises:
            FontLoadError: if the file is missing or not a font
        """
        try:
            with open(path, "rb") as f:
                data = f.read()
            ImageFont.truetype(io.BytesIO(data), _PROBE_SIZE)
        except OSError as e:
            raise FontLoadError(f"Failed to load font {path}: {e}") from e

        logger.info(f"Loaded label font from {path}")
        return cls(data=data, source=str(path))

    @classmethod
    def builtin(cls) -> "LabelFont":
        """Use the outline font shipped with Pillow."""
        return cls()

    def sized(self, size: float) -> ImageFont.FreeTypeFont:
        """Instantiate the font at the given pixel size."""
        size = max(1, int(round(size)))
        if self._data is None:
            return ImageFont.load_default(size=size)  # type: ignore
        return ImageFont.truetype(io.BytesIO(self._data), size)
