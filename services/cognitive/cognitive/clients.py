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

"""aiohttp clients for the Microsoft Cognitive Services vision APIs.

Every client sends the image by URL and authenticates with the
subscription key header. A fresh ClientSession with a total timeout
is opened per call. Transport failures and non-2xx answers are
converted into RemoteAnalysisError carrying the remote error code.
"""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import json
import logging
from typing import Any, Optional, TypeVar

import aiohttp

from vision.schema import DetectionInstance, Point, Rectangle

from .interfaces import EmotionService, FaceService, ImageAnalysisService
from .schema import (
    DEFAULT_FACE_ATTRIBUTES,
    ImageCaption,
    ImageDescription,
    ImageTag,
    RemoteAnalysisError,
)


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"

HANDWRITING_POLL_INTERVAL = 1.0
HANDWRITING_MAX_POLLS = 30

# raised by parsers on responses of unexpected shape
MALFORMED_ERRORS = (KeyError, TypeError, ValueError, AttributeError)

T = TypeVar("T")


@dataclass
class RemoteResponse:
    """Raw answer of a vision service."""
    status: int
    headers: Mapping[str, str]
    body: str


def parse_rectangle(data: Mapping[str, Any]) -> Rectangle:  # noqa: D103
    return Rectangle(
        left=int(data["left"]),
        top=int(data["top"]),
        width=max(0, int(data["width"])),
        height=max(0, int(data["height"])),
    )


def _is_score_mapping(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(v, (int, float)) and not isinstance(v, bool)
        for v in value.values()
    )


def parse_face(data: Mapping[str, Any]) -> DetectionInstance:
    """Convert one face of the detect response.

    Numeric mappings among face attributes (headPose, facialHair,
    emotion) become score categories, anything else is kept as
    a plain attribute.
    """
    landmarks = {
        name: Point(float(p["x"]), float(p["y"]))
        for name, p in (data.get("faceLandmarks") or {}).items()
    }

    scores: dict[str, dict[str, float]] = {}
    attributes: dict[str, Any] = {}
    for name, value in (data.get("faceAttributes") or {}).items():
        if _is_score_mapping(value):
            scores[name] = {k: float(v) for k, v in value.items()}
        else:
            attributes[name] = value

    return DetectionInstance(
        rectangle=parse_rectangle(data["faceRectangle"]),
        landmarks=landmarks,
        scores=scores,
        attributes=attributes,
        face_id=data.get("faceId"),
    )


def parse_emotion(data: Mapping[str, Any]) -> DetectionInstance:
    """Convert one face of the emotion recognition response."""
    return DetectionInstance(
        rectangle=parse_rectangle(data["faceRectangle"]),
        scores={
            "emotion": {
                k: float(v) for k, v in (data.get("scores") or {}).items()
            }
        },
    )


def parse_description(data: Any) -> ImageDescription:
    """Convert the describe response."""
    description = (data or {}).get("description") or {}
    return ImageDescription(
        captions=[
            ImageCaption(c["text"], float(c.get("confidence", 0.0)))
            for c in description.get("captions") or []
        ],
        tags=[str(t) for t in description.get("tags") or []],
    )


def parse_ocr(data: Any) -> str:
    """Join the words of every line of every region of the ocr response."""
    words = [
        word["text"]
        for region in (data or {}).get("regions") or []
        for line in region.get("lines") or []
        for word in line.get("words") or []
    ]
    return " ".join(words)


def parse_tags(data: Any) -> list[ImageTag]:  # noqa: D103
    return [
        ImageTag(t["name"], float(t.get("confidence", 0.0)))
        for t in (data or {}).get("tags") or []
    ]


def parse_text_operation(data: Any) -> tuple[Optional[str], Optional[str]]:
    """Get (status, recognized text) of a text recognition operation.

    The text is None until the operation has succeeded.
    """
    status = (data or {}).get("status")
    if status != "Succeeded":
        return status, None
    lines = (data.get("recognitionResult") or {}).get("lines") or []
    return status, " ".join(line["text"] for line in lines)


class CognitiveClient:
    """Base client holding the endpoint and credentials."""

    def __init__(
        self,
        endpoint: str,
        subscription_key: str,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Instantiate the client.

        Attributes:
            endpoint (str): service base URL, e.g.
            https://westus.api.cognitive.microsoft.com/face/v1.0
            subscription_key (str): key issued for the service
            timeout (float, default=30.0): total timeout of a call
        """
        self.endpoint = endpoint.rstrip("/")
        self.subscription_key = subscription_key
        self.timeout = timeout

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.endpoint}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> RemoteResponse:
        """Send a request to the service and read the whole answer."""
        headers = {SUBSCRIPTION_KEY_HEADER: self.subscription_key}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method,
                    self._url(path),
                    params=params,
                    json=payload,
                    headers=headers,
                ) as resp:
                    body = await resp.text()
                    return RemoteResponse(resp.status, resp.headers, body)

        except asyncio.TimeoutError as e:
            raise RemoteAnalysisError(
                "Request timed out", code="TIMEOUT") from e
        except aiohttp.ClientError as e:
            raise RemoteAnalysisError(
                f"Could not connect to the service: {e}",
                code="CONNECTION_ERROR"
            ) from e

    @staticmethod
    def _decode(response: RemoteResponse) -> Any:
        """Parse the JSON body of a successful answer.

        Raises:
            RemoteAnalysisError: on non-2xx status or invalid JSON
        """
        try:
            data = json.loads(response.body) if response.body else None
        except ValueError:
            data = None
            if 200 <= response.status < 300:
                raise RemoteAnalysisError(
                    "Malformed service response",
                    code="MALFORMED_RESPONSE",
                    status=response.status,
                )

        if 200 <= response.status < 300:
            return data

        error = data.get("error", data) if isinstance(data, dict) else {}
        if not isinstance(error, dict):
            error = {}
        code = str(error.get("code", "REMOTE_ERROR"))
        message = error.get("message") or f"HTTP {response.status}"
        raise RemoteAnalysisError(
            f"{code}: {message}", code=code, status=response.status)

    async def _post_url(
        self,
        path: str,
        image_url: str,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = await self._request(
            "POST", path, params=params, payload={"url": image_url})
        return self._decode(response)

    @staticmethod
    def _parse(parser: Callable[[Any], T], data: Any, what: str) -> T:
        """Apply the parser to a decoded answer.

        Raises:
            RemoteAnalysisError: if the answer has an unexpected shape
        """
        try:
            return parser(data)
        except MALFORMED_ERRORS as e:
            raise RemoteAnalysisError(
                f"Unexpected {what} response: {e!r}",
                code="MALFORMED_RESPONSE"
            ) from e


class EmotionClient(CognitiveClient, EmotionService):
    """Client of the Emotion API."""

    async def recognize(self, image_url: str) -> list[DetectionInstance]:  # noqa: D102
        data = await self._post_url("recognize", image_url)
        return self._parse(
            lambda items: [parse_emotion(item) for item in items or []],
            data,
            "emotion",
        )


class FaceClient(CognitiveClient, FaceService):
    """Client of the Face API."""

    async def detect(  # noqa: D102
        self,
        image_url: str,
        attributes: Sequence[str] = DEFAULT_FACE_ATTRIBUTES,
    ) -> list[DetectionInstance]:
        params = {
            "returnFaceId": "true",
            "returnFaceLandmarks": "true",
        }
        if attributes:
            params["returnFaceAttributes"] = ",".join(attributes)

        data = await self._post_url("detect", image_url, params=params)
        return self._parse(
            lambda items: [parse_face(item) for item in items or []],
            data,
            "face detection",
        )


class ComputerVisionClient(CognitiveClient, ImageAnalysisService):
    """Client of the Computer Vision API."""

    def __init__(
        self,
        endpoint: str,
        subscription_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = HANDWRITING_POLL_INTERVAL,
        max_polls: int = HANDWRITING_MAX_POLLS,
    ):
        """Instantiate the client.

        Attributes:
            poll_interval (float): seconds between polls of
            a pending handwriting recognition
            max_polls (int): polls before giving up on it
        """
        super().__init__(endpoint, subscription_key, timeout)
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    async def describe(  # noqa: D102
        self, image_url: str, max_candidates: int = 1
    ) -> ImageDescription:
        data = await self._post_url(
            "describe",
            image_url,
            params={"maxCandidates": str(max_candidates)},
        )
        return self._parse(parse_description, data, "describe")

    async def recognize_text(self, image_url: str) -> str:  # noqa: D102
        data = await self._post_url(
            "ocr",
            image_url,
            params={"language": "unk", "detectOrientation": "true"},
        )
        return self._parse(parse_ocr, data, "ocr")

    async def recognize_handwriting(self, image_url: str) -> str:
        """Submit the image and poll until recognition finishes.

        Raises:
            RemoteAnalysisError: if the service reports failure
            or the result is not ready after max_polls polls
        """
        response = await self._request(
            "POST",
            "recognizeText",
            params={"handwriting": "true"},
            payload={"url": image_url},
        )
        self._decode(response)

        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            raise RemoteAnalysisError(
                "Service did not return an operation location",
                code="MALFORMED_RESPONSE",
                status=response.status,
            )

        for _ in range(self.max_polls):
            await asyncio.sleep(self.poll_interval)
            data = self._decode(await self._request("GET", operation_url))
            status, text = self._parse(
                parse_text_operation, data, "handwriting recognition")
            if text is not None:
                return text
            if status == "Failed":
                raise RemoteAnalysisError(
                    "Handwriting recognition failed", code="FAILED")
            logger.debug(f"Handwriting recognition is {status}, polling")

        raise RemoteAnalysisError(
            "Handwriting recognition timed out", code="TIMEOUT")

    async def tag(self, image_url: str) -> list[ImageTag]:  # noqa: D102
        data = await self._post_url("tag", image_url)
        return self._parse(parse_tags, data, "tag")
