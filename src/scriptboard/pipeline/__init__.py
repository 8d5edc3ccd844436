"""Script segmentation, prompt assembly and generation orchestration."""

from scriptboard.pipeline.orchestrator import (
    GenerationCancelledError,
    GenerationPipeline,
    failure_message,
)
from scriptboard.pipeline.segmenter import (
    SceneDescriptor,
    StoryboardContext,
    build_scene_descriptors,
    segment_script,
)

__all__ = [
    "GenerationCancelledError",
    "GenerationPipeline",
    "SceneDescriptor",
    "StoryboardContext",
    "build_scene_descriptors",
    "failure_message",
    "segment_script",
]
