"""Deterministic prompt assembly.

Each builder returns newline-joined labeled lines in a fixed order. Image
backends are sensitive to line order, so builders never reorder fields.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scriptboard.models.records import Asset
    from scriptboard.models.requests import AssetCategory
    from scriptboard.pipeline.segmenter import SceneDescriptor, StoryboardContext

MAX_REFERENCE_ASSETS = 12
REFERENCE_CATEGORIES = frozenset({"character", "environment", "nature"})

DEFAULT_STORYBOARD_STYLE = "cinematic anime storyboard concept art"
DEFAULT_PACK_STYLE = "anime concept art storyboard pre-production"

CONTINUITY_LINE = (
    "Keep continuity with prior frames: same character design language, "
    "costume colors, and location identity."
)
PACK_REUSE_LINE = "Designed for reuse as reference in consistent storyboard scene generation."
REFERENCE_HEADER = "Use these generated reference assets for consistency:"

_SUBJECT_TEMPLATES: dict[str, str] = {
    "character": (
        "Character design sheet: {descriptor}. "
        "Full body, expression clarity, repeatable costume shapes."
    ),
    "environment": (
        "Environment concept frame: {descriptor}. "
        "Strong layout readability and location identity."
    ),
    "nature": (
        "Nature mood plate: {descriptor}. Focus on weather, foliage, terrain and atmosphere."
    ),
}


def build_single_image_prompt(
    prompt: str,
    style_preset: str | None = None,
    negative_prompt: str | None = None,
) -> str:
    lines = [prompt]
    if style_preset:
        lines.append(f"Style: {style_preset}.")
    if negative_prompt:
        lines.append(f"Avoid: {negative_prompt}.")
    return "\n".join(lines)


def build_storyboard_prompt(
    scene: SceneDescriptor,
    context: StoryboardContext,
    style_preset: str | None = None,
) -> str:
    """Render the prompt for one storyboard frame.

    The reference-context block is omitted when there are no reference
    assets; every other line is always present.
    """
    style = style_preset or DEFAULT_STORYBOARD_STYLE
    lines = [
        f"Project: {context.project_name}",
        f"Storyboard scene {scene.index}: {scene.title}",
        f"Scene summary: {scene.summary}",
        f"Character consistency: {scene.character_consistency}",
        f"Composition guidance: {scene.composition}",
        f"Nature and environment guidance: {scene.nature}",
    ]
    if context.reference_context:
        lines.append(context.reference_context)
    lines.append(f"Visual style: {style}.")
    lines.append(CONTINUITY_LINE)
    return "\n".join(lines)


def build_project_asset_prompt(
    category: AssetCategory,
    descriptor: str,
    project_name: str,
    style_preset: str | None = None,
) -> str:
    """Render a reference-asset prompt for one project-pack category.

    Raises:
        ValueError: If *category* is not character, environment or nature.
    """
    try:
        template = _SUBJECT_TEMPLATES[category]
    except KeyError:
        msg = f"Unknown asset category: {category!r}"
        raise ValueError(msg) from None
    style = style_preset or DEFAULT_PACK_STYLE
    return "\n".join(
        [
            f"Project: {project_name}",
            template.format(descriptor=descriptor),
            f"Style: {style}.",
            PACK_REUSE_LINE,
        ]
    )


def select_reference_assets(
    assets: Iterable[Asset],
    project_name: str,
    reference_asset_ids: Sequence[int] | None = None,
) -> list[Asset]:
    """Pick the project's assets to cite as references.

    With explicit ids, only those assets are kept; otherwise assets tagged
    with a reference category. Either way at most 12, in listing order.
    """
    project_assets = [a for a in assets if a.metadata.get("projectName") == project_name]
    if reference_asset_ids:
        wanted = set(reference_asset_ids)
        selected = [a for a in project_assets if a.id in wanted]
    else:
        selected = [
            a for a in project_assets if a.metadata.get("assetCategory") in REFERENCE_CATEGORIES
        ]
    return selected[:MAX_REFERENCE_ASSETS]


def build_reference_context(
    assets: Iterable[Asset],
    project_name: str,
    reference_asset_ids: Sequence[int] | None = None,
) -> str:
    """Summarize prior project assets as a prompt block, or "" if there are none."""
    selected = select_reference_assets(assets, project_name, reference_asset_ids)
    if not selected:
        return ""
    lines = []
    for asset in selected:
        category = str(asset.metadata.get("assetCategory") or "reference")
        descriptor = asset.prompt or asset.title or f"asset-{asset.id}"
        lines.append(f"- [{category}] #{asset.id}: {descriptor}")
    return REFERENCE_HEADER + "\n" + "\n".join(lines)
