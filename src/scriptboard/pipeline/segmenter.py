"""Script segmentation into ordered storyboard scenes."""

from __future__ import annotations

import re
from dataclasses import dataclass

from scriptboard.pipeline.extract import extract_character_bible

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_SENTENCE_END = re.compile(r"[.!?]")

MIN_SENTENCE_LENGTH = 20
MAX_TITLE_LENGTH = 80

WIDE_COMPOSITION = (
    "Use cinematic wide framing with a clear foreground-middle-background depth stack."
)
MEDIUM_COMPOSITION = (
    "Use medium shot with an anchored subject and leading lines guiding toward emotional focus."
)
NIGHT_NATURE = (
    "Night ambience with moonlight gradients, reflective highlights, and atmospheric haze."
)
DEFAULT_NATURE = (
    "Natural environmental storytelling with weather, vegetation, "
    "and terrain textures matching the scene tone."
)


@dataclass(frozen=True)
class StoryboardContext:
    """Project-level inputs shared by every frame of one storyboard run."""

    project_name: str
    character_notes: str | None = None
    environment_notes: str | None = None
    nature_notes: str | None = None
    reference_context: str = ""


@dataclass(frozen=True)
class SceneDescriptor:
    index: int
    title: str
    summary: str
    character_consistency: str
    composition: str
    nature: str


def _raw_units(script: str) -> list[str]:
    paragraphs = [block.strip() for block in _PARAGRAPH_BREAK.split(script)]
    paragraphs = [block for block in paragraphs if block]
    if len(paragraphs) >= 2:
        return paragraphs

    sentences = [part.strip() for part in _SENTENCE_BREAK.split(script)]
    sentences = [part for part in sentences if len(part) > MIN_SENTENCE_LENGTH]
    if sentences:
        return sentences

    # Short single-sentence scripts still produce something to draw.
    whole = script.strip()
    return [whole] if whole else []


def segment_script(script: str, count: int) -> list[str]:
    """Split *script* into at most *count* ordered, non-empty chunks.

    Paragraphs are used when there are at least two; otherwise sentences
    longer than 20 characters. Units are partitioned into ``max(2, count)``
    contiguous groups of roughly equal size, each holding at least one unit,
    so a short script may repeat a unit across adjacent chunks.

    Args:
        script: Source text.
        count: Requested number of scenes.

    Returns:
        Chunks in script order. Empty when the script has no content.
    """
    units = _raw_units(script)
    n = len(units)
    effective = max(2, count)

    chunks: list[str] = []
    for i in range(effective):
        start = (i * n) // effective
        end = ((i + 1) * n) // effective
        text = " ".join(units[start : max(start + 1, end)]).strip()
        if text:
            chunks.append(text)
    return chunks[: max(count, 0)]


def _scene_title(text: str, index: int) -> str:
    heading = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
    return (heading or f"Scene {index}")[:MAX_TITLE_LENGTH]


def _notes(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def build_scene_descriptors(
    script: str, count: int, context: StoryboardContext
) -> list[SceneDescriptor]:
    """Segment *script* and attach the per-frame guidance directives.

    Explicit notes in *context* override the derived directives for every
    scene. Without them, composition alternates between wide and medium
    framing and the nature directive switches to a night treatment when the
    scene mentions night.
    """
    character_consistency = _notes(context.character_notes) or extract_character_bible(script)
    composition_notes = _notes(context.environment_notes)
    nature_notes = _notes(context.nature_notes)

    scenes: list[SceneDescriptor] = []
    for position, text in enumerate(segment_script(script, count)):
        if composition_notes:
            composition = composition_notes
        else:
            composition = WIDE_COMPOSITION if position % 2 == 0 else MEDIUM_COMPOSITION
        if nature_notes:
            nature = nature_notes
        else:
            nature = NIGHT_NATURE if "night" in text.lower() else DEFAULT_NATURE

        scenes.append(
            SceneDescriptor(
                index=position + 1,
                title=_scene_title(text, position + 1),
                summary=text,
                character_consistency=character_consistency,
                composition=composition,
                nature=nature,
            )
        )
    return scenes
