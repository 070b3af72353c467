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

"""Text reports that accompany annotated face images."""

from collections.abc import Mapping, Sequence
from typing import Callable, Optional

from .operations import OperationKind
from .schema import DetectionInstance


def format_probability(name: str, value: float) -> str:  # noqa: D103
    return f"  {name}: {value * 100.0:.3f}%"


def format_angle(name: str, value: float) -> str:  # noqa: D103
    return f"  {name}: {value:.2f}°"


# (score category, section title, line formatter)
FACE_SECTIONS: tuple[tuple[str, str, Callable[[str, float], str]], ...] = (
    ("facialHair", "Facial Hair", format_probability),
    ("headPose", "Head Pose", format_angle),
    ("emotion", "Emotion", format_probability),
)


def _lines(
    scores: Mapping[str, float],
    formatter: Callable[[str, float], str]
) -> list[str]:
    return [formatter(k, v) for k, v in scores.items()]


def face_section(index: int, instance: DetectionInstance) -> str:
    """Describe facial hair, head pose and emotion of one face."""
    parts = [f"[Face #{index + 1}]"]
    for category, title, formatter in FACE_SECTIONS:
        scores = instance.scores.get(category)
        if scores is None:
            continue
        parts.append(f"> {title}")
        parts.extend(_lines(scores, formatter))
    return "\n".join(parts)


def emotion_section(index: int, instance: DetectionInstance) -> str:
    """List emotion probabilities of one face."""
    parts = [f"[Face #{index + 1}]"]
    parts.extend(
        _lines(instance.scores.get("emotion", {}), format_probability))
    return "\n".join(parts)


def build_report(
    instances: Sequence[DetectionInstance], op: OperationKind
) -> Optional[str]:
    """Build the per-face report, sections separated by a blank line.

    Returns:
        report text for face detection and emotion recognition,
        None for the operations that produce no report
    """
    if op is OperationKind.FACE:
        section = face_section
    elif op is OperationKind.EMOTION:
        section = emotion_section
    else:
        return None

    return "\n\n".join(section(i, inst) for i, inst in enumerate(instances))
