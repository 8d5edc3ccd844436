"""Generation pipeline for single images, project packs and storyboards.

Every flow follows the same frame: create a job in ``queued``, move it to
``running``, perform one or more generation calls strictly in sequence,
persist an asset and rendition per image, advance progress after each unit
and finish in a terminal status. Any failure inside a flow, cancellation
included, marks the job ``failed`` before the error propagates.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from scriptboard.models.requests import (
    AssetCategory,
    ProjectPackRequest,
    RequestValidationError,
    SingleImageRequest,
    StoryboardRequest,
    parse_request,
)
from scriptboard.models.results import (
    PackAssets,
    ProjectPackResult,
    SingleImageResult,
    StoryboardFrame,
    StoryboardResult,
)
from scriptboard.observability.logging import get_logger, job_context
from scriptboard.pipeline.extract import (
    extract_character_candidates,
    extract_environment_candidates,
    extract_nature_candidates,
)
from scriptboard.pipeline.prompts import (
    build_project_asset_prompt,
    build_reference_context,
    build_single_image_prompt,
    build_storyboard_prompt,
)
from scriptboard.pipeline.segmenter import StoryboardContext, build_scene_descriptors
from scriptboard.providers.image import NoImageDataError, parse_size
from scriptboard.storage.store import LedgerError

if TYPE_CHECKING:
    from scriptboard.models.records import Asset, AssetRendition, GenerationJob
    from scriptboard.providers.image import ImageProvider, ImageResult, ImageSize
    from scriptboard.storage.store import Ledger

log = get_logger(__name__)

NO_IMAGE_DATA_MESSAGE = "No image data returned"
CANCELLED_MESSAGE = "Cancelled"
FALLBACK_DESCRIPTOR_LENGTH = 120
MAX_TITLE_DESCRIPTOR = 64

PACK_CATEGORIES: tuple[AssetCategory, ...] = ("character", "environment", "nature")


class GenerationCancelledError(Exception):
    """Raised when a run observes its cancellation event between units."""


def failure_message(error: BaseException) -> str:
    """Error text recorded on a job that failed with *error*."""
    if isinstance(error, NoImageDataError):
        return NO_IMAGE_DATA_MESSAGE
    if isinstance(error, (GenerationCancelledError, asyncio.CancelledError)):
        return CANCELLED_MESSAGE
    return str(error) or type(error).__name__


@dataclass
class _Progress:
    """Monotonic progress over a fixed number of units."""

    total: int
    floor: int = 0
    done: int = 0

    def advance(self) -> int:
        self.done += 1
        proportional = math.floor(self.done / self.total * 100 + 0.5)
        self.floor = max(self.floor, min(proportional, 100))
        return self.floor

    @property
    def finished(self) -> bool:
        return self.done >= self.total


class GenerationPipeline:
    """Run generation flows against a ledger and an image provider.

    The pipeline holds no state of its own between runs; concurrent runs
    only share the ledger.
    """

    def __init__(self, ledger: Ledger, provider: ImageProvider) -> None:
        self._ledger = ledger
        self._provider = provider

    # -- Shared frame ----------------------------------------------------------

    @asynccontextmanager
    async def _job_scope(self, job: GenerationJob) -> AsyncIterator[None]:
        with job_context(job.id):
            try:
                yield
            except (Exception, asyncio.CancelledError) as e:
                message = failure_message(e)
                if isinstance(e, (GenerationCancelledError, asyncio.CancelledError)):
                    log.info("job_cancelled")
                else:
                    log.error("job_failed", error=message, exc_info=True)
                self._mark_failed(job.id, message)
                raise

    def _mark_failed(self, job_id: int, message: str) -> None:
        current = self._ledger.get_job(job_id)
        if current is None or current.is_terminal:
            return
        try:
            self._ledger.update_job(job_id, status="failed", progress=100, error=message)
        except LedgerError as e:
            # The original failure is still propagated by the caller.
            log.error("job_fail_update_failed", error=str(e))

    @staticmethod
    def _check_cancelled(cancel: asyncio.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise GenerationCancelledError(CANCELLED_MESSAGE)

    async def _render(self, prompt: str, size: ImageSize) -> ImageResult:
        start = time.perf_counter()
        image = await self._provider.generate(prompt, size=size)
        if not image.b64_data:
            raise NoImageDataError("pipeline", NO_IMAGE_DATA_MESSAGE)
        log.debug("image_generated", size=size, duration=f"{time.perf_counter() - start:.2f}s")
        return image

    def _persist(
        self,
        job_id: int,
        image: ImageResult,
        size: ImageSize,
        *,
        title: str | None,
        prompt: str | None,
        metadata: dict[str, Any],
    ) -> tuple[Asset, AssetRendition]:
        width, height = parse_size(size)
        asset = self._ledger.create_asset(
            job_id=job_id, title=title, prompt=prompt, metadata=metadata
        )
        rendition = self._ledger.create_rendition(
            asset_id=asset.id,
            width=width,
            height=height,
            data_base64=image.b64_data,
            mime_type=image.content_type,
        )
        return asset, rendition

    def _record_progress(self, job_id: int, progress: _Progress) -> GenerationJob:
        value = progress.advance()
        if progress.finished:
            job = self._ledger.update_job(job_id, status="succeeded", progress=100)
            log.info("job_succeeded", units=progress.total)
            return job
        return self._ledger.update_job(job_id, progress=value)

    # -- Single image ----------------------------------------------------------

    async def generate_single_image(
        self,
        request: SingleImageRequest | dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> SingleImageResult:
        """Generate one image from a free-form prompt.

        Raises:
            RequestValidationError: Before any ledger write, if the request is invalid.
            ImageProviderError: If the backend fails; the job is marked failed first.
            GenerationCancelledError: If *cancel* was set before generation.
        """
        req = parse_request(SingleImageRequest, request)
        job = self._ledger.create_job(
            prompt=req.prompt,
            negative_prompt=req.negative_prompt,
            style_preset=req.style_preset,
            size=req.size,
        )
        log.info("single_image_start", job_id=job.id, size=req.size)

        async with self._job_scope(job):
            self._ledger.update_job(job.id, status="running", progress=10)
            self._check_cancelled(cancel)
            image = await self._render(
                build_single_image_prompt(req.prompt, req.style_preset, req.negative_prompt),
                req.size,
            )
            asset, rendition = self._persist(
                job.id,
                image,
                req.size,
                title=req.title.strip() if req.title and req.title.strip() else None,
                prompt=req.prompt,
                metadata={
                    "projectName": req.project_name,
                    "assetCategory": req.asset_category or "general",
                    "stylePreset": req.style_preset,
                    "negativePrompt": req.negative_prompt,
                },
            )
            job = self._record_progress(job.id, _Progress(total=1, floor=10))

        return SingleImageResult(job=job, asset=asset, rendition=rendition)

    # -- Project pack ----------------------------------------------------------

    def _pack_units(self, req: ProjectPackRequest) -> list[tuple[AssetCategory, str]]:
        counts = {
            "character": req.character_count,
            "environment": req.environment_count,
            "nature": req.nature_count,
        }
        extractors = {
            "character": extract_character_candidates,
            "environment": extract_environment_candidates,
            "nature": extract_nature_candidates,
        }
        fallback = req.script[:FALLBACK_DESCRIPTOR_LENGTH]
        units: list[tuple[AssetCategory, str]] = []
        for category in PACK_CATEGORIES:
            descriptors = extractors[category](req.script, counts[category]) or [fallback]
            units.extend((category, descriptor) for descriptor in descriptors)
        return units

    async def generate_project_pack(
        self,
        request: ProjectPackRequest | dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> ProjectPackResult:
        """Generate reference assets for characters, environments and nature.

        Categories are processed in that fixed order, one generation call
        per descriptor. A category with no extracted descriptors falls back
        to the first 120 characters of the script, so each category yields
        at least one asset.
        """
        req = parse_request(ProjectPackRequest, request)
        units = self._pack_units(req)
        job = self._ledger.create_job(
            prompt=f"{req.project_name}: project pack generation",
            style_preset=req.style_preset,
            size=req.size,
        )
        log.info("project_pack_start", job_id=job.id, units=len(units))

        assets = PackAssets()
        buckets: dict[str, list[Asset]] = {
            "character": assets.characters,
            "environment": assets.environments,
            "nature": assets.nature,
        }
        async with self._job_scope(job):
            self._ledger.update_job(job.id, status="running", progress=10)
            progress = _Progress(total=len(units), floor=10)
            for category, descriptor in units:
                self._check_cancelled(cancel)
                prompt = build_project_asset_prompt(
                    category, descriptor, req.project_name, req.style_preset
                )
                image = await self._render(prompt, req.size)
                asset, _ = self._persist(
                    job.id,
                    image,
                    req.size,
                    title=f"{category.capitalize()} ref: {descriptor[:MAX_TITLE_DESCRIPTOR]}",
                    prompt=descriptor,
                    metadata={
                        "mode": "project-pack",
                        "projectName": req.project_name,
                        "assetCategory": category,
                        "generatedPrompt": prompt,
                    },
                )
                buckets[category].append(asset)
                job = self._record_progress(job.id, progress)

        return ProjectPackResult(job=job, assets=assets)

    # -- Storyboard ------------------------------------------------------------

    async def generate_storyboard(
        self,
        request: StoryboardRequest | dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> StoryboardResult:
        """Generate one frame per scene of a segmented script.

        Frames are generated strictly in order: frame N starts only after
        frame N-1 is persisted and progress recorded. The run aborts at the
        first failed frame; frames already persisted are kept.
        """
        req = parse_request(StoryboardRequest, request)
        reference_context = build_reference_context(
            self._ledger.list_assets(), req.project_name, req.reference_asset_ids
        )
        context = StoryboardContext(
            project_name=req.project_name,
            character_notes=req.character_notes,
            environment_notes=req.environment_notes,
            nature_notes=req.nature_notes,
            reference_context=reference_context,
        )
        scenes = build_scene_descriptors(req.script, req.scene_count, context)
        if not scenes:
            raise RequestValidationError("Script has no usable content", "script")

        job = self._ledger.create_job(
            prompt=f"{req.project_name}: storyboard generation ({len(scenes)} scenes)",
            style_preset=req.style_preset,
            size=req.size,
        )
        log.info(
            "storyboard_start",
            job_id=job.id,
            scenes=len(scenes),
            references=bool(reference_context),
        )

        frames: list[StoryboardFrame] = []
        async with self._job_scope(job):
            self._ledger.update_job(job.id, status="running", progress=0)
            progress = _Progress(total=len(scenes))
            for scene in scenes:
                self._check_cancelled(cancel)
                log.debug("storyboard_frame", scene=scene.index)
                image = await self._render(
                    build_storyboard_prompt(scene, context, req.style_preset), req.size
                )
                asset, rendition = self._persist(
                    job.id,
                    image,
                    req.size,
                    title=f"Scene {scene.index}: {scene.title}",
                    prompt=scene.summary,
                    metadata={
                        "mode": "storyboard",
                        "projectName": req.project_name,
                        "referenceAssetIds": list(req.reference_asset_ids or []),
                        "sceneIndex": scene.index,
                        "sceneTitle": scene.title,
                        "characterConsistency": scene.character_consistency,
                        "composition": scene.composition,
                        "nature": scene.nature,
                    },
                )
                frames.append(
                    StoryboardFrame(
                        index=scene.index,
                        title=scene.title,
                        summary=scene.summary,
                        character_consistency=scene.character_consistency,
                        composition=scene.composition,
                        nature=scene.nature,
                        asset=asset,
                        rendition=rendition,
                    )
                )
                job = self._record_progress(job.id, progress)

        return StoryboardResult(job=job, scenes=frames)
