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

"""Read-only resources shared by every update, built once at startup."""

from dataclasses import dataclass
import logging

from cognitive import (
    ComputerVisionClient,
    EmotionClient,
    EmotionService,
    FaceClient,
    FaceService,
    ImageAnalysisService,
)
from vision import AnnotationEngine, LabelFont, RenderContext

from .dispatch import DispatchProtocol
from .orchestrator import Orchestrator, Spawn
from .settings import Settings
from .transport import Transport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotContext:
    """Immutable bundle of configuration, codecs and service clients."""
    settings: Settings
    protocol: DispatchProtocol
    engine: AnnotationEngine
    emotion: EmotionService
    faces: FaceService
    analysis: ImageAnalysisService

    def orchestrator(
        self, transport: Transport, spawn: Spawn | None = None
    ) -> Orchestrator:
        """Create the orchestrator working over the given transport."""
        return Orchestrator(
            transport=transport,
            protocol=self.protocol,
            engine=self.engine,
            emotion=self.emotion,
            faces=self.faces,
            analysis=self.analysis,
            spawn=spawn,
            max_concurrent_tasks=self.settings.max_concurrent_tasks,
        )


def create_context(settings: Settings) -> BotContext:
    """Load the font, build the code tables and the service clients.

    Raises:
        FontLoadError: if the configured font cannot be loaded
        ConfigurationError: if operation codes are ambiguous
    """
    if settings.font_path:
        font = LabelFont.from_path(settings.font_path)
    else:
        font = LabelFont.builtin()
        logger.info("FONT_PATH is not set, using the builtin font")

    engine = AnnotationEngine(
        RenderContext(font=font, jpeg_quality=settings.jpeg_quality))

    return BotContext(
        settings=settings,
        protocol=DispatchProtocol.from_operations(),
        engine=engine,
        emotion=EmotionClient(
            settings.emotion_endpoint,
            settings.emotion_subscription_key,
            timeout=settings.request_timeout,
        ),
        faces=FaceClient(
            settings.face_endpoint,
            settings.face_subscription_key,
            timeout=settings.request_timeout,
        ),
        analysis=ComputerVisionClient(
            settings.vision_endpoint,
            settings.vision_subscription_key,
            timeout=settings.request_timeout,
        ),
    )
