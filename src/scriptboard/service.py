"""Logical generation and browsing operations with HTTP-style status codes.

A routing layer (or the CLI) calls these and forwards ``status`` and
``body`` unchanged. Unexpected errors are logged in full here and reported
to the caller without detail.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from scriptboard.models.requests import RequestValidationError
from scriptboard.models.results import SingleImageResult
from scriptboard.observability.logging import get_logger
from scriptboard.pipeline.orchestrator import (
    NO_IMAGE_DATA_MESSAGE,
    GenerationCancelledError,
    GenerationPipeline,
)
from scriptboard.providers.image import ImageProviderError, NoImageDataError

if TYPE_CHECKING:
    import asyncio

    from scriptboard.providers.image import ImageProvider
    from scriptboard.storage.store import Ledger

log = get_logger(__name__)

STARTER_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMB/6X8e0cAAAAASUVORK5CYII="
)
STARTER_PROMPT = "A clean product photo of a modern desk lamp, soft studio lighting"


@dataclass(frozen=True)
class ServiceResponse:
    status: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _dump(value: BaseModel | list[BaseModel]) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


class GenerationService:
    """Status-mapped facade over the generation pipeline and the ledger."""

    def __init__(self, ledger: Ledger, provider: ImageProvider | None = None) -> None:
        self._ledger = ledger
        self._pipeline = GenerationPipeline(ledger, provider) if provider is not None else None

    @property
    def pipeline(self) -> GenerationPipeline:
        if self._pipeline is None:
            msg = "GenerationService was created without an image provider"
            raise RuntimeError(msg)
        return self._pipeline

    async def _run(
        self,
        operation: str,
        flow: Callable[[], Awaitable[BaseModel]],
    ) -> ServiceResponse:
        try:
            result = await flow()
        except RequestValidationError as e:
            log.info("request_invalid", operation=operation, field=e.field, error=e.message)
            return ServiceResponse(400, e.to_dict())
        except NoImageDataError:
            return ServiceResponse(500, {"message": NO_IMAGE_DATA_MESSAGE})
        except ImageProviderError as e:
            log.warning("provider_failed", operation=operation, error=str(e))
            return ServiceResponse(500, {"message": "Image generation failed"})
        except GenerationCancelledError:
            return ServiceResponse(500, {"message": "Cancelled"})
        except Exception:
            log.exception("operation_failed", operation=operation)
            return ServiceResponse(500, {"message": "Internal error"})
        return ServiceResponse(201, _dump(result))

    # -- Generation ------------------------------------------------------------

    async def generate_image(
        self, payload: Any, *, cancel: asyncio.Event | None = None
    ) -> ServiceResponse:
        return await self._run(
            "generate_image",
            lambda: self.pipeline.generate_single_image(payload, cancel=cancel),
        )

    async def generate_project_pack(
        self, payload: Any, *, cancel: asyncio.Event | None = None
    ) -> ServiceResponse:
        return await self._run(
            "generate_project_pack",
            lambda: self.pipeline.generate_project_pack(payload, cancel=cancel),
        )

    async def generate_storyboard(
        self, payload: Any, *, cancel: asyncio.Event | None = None
    ) -> ServiceResponse:
        return await self._run(
            "generate_storyboard",
            lambda: self.pipeline.generate_storyboard(payload, cancel=cancel),
        )

    # -- Browsing --------------------------------------------------------------

    def list_jobs(self) -> ServiceResponse:
        return ServiceResponse(200, _dump(self._ledger.list_jobs()))

    def get_job(self, job_id: int) -> ServiceResponse:
        job = self._ledger.get_job(job_id)
        if job is None:
            return ServiceResponse(404, {"message": "Job not found"})
        return ServiceResponse(200, _dump(job))

    def list_assets(self) -> ServiceResponse:
        return ServiceResponse(200, _dump(self._ledger.list_assets()))

    def get_asset(self, asset_id: int) -> ServiceResponse:
        asset = self._ledger.get_asset(asset_id)
        if asset is None:
            return ServiceResponse(404, {"message": "Asset not found"})
        return ServiceResponse(200, _dump(asset))

    def get_latest_rendition(self, asset_id: int) -> ServiceResponse:
        rendition = self._ledger.get_latest_rendition(asset_id)
        if rendition is None:
            return ServiceResponse(404, {"message": "Rendition not found"})
        return ServiceResponse(200, _dump(rendition))

    # -- Seeding ---------------------------------------------------------------

    def seed_starter_asset(self) -> SingleImageResult | None:
        """Create a starter asset so a fresh ledger is not empty.

        Does nothing when any asset already exists.

        Returns:
            The seeded job, asset and rendition, or None if nothing was seeded.
        """
        if self._ledger.list_assets():
            return None

        job = self._ledger.create_job(
            prompt=STARTER_PROMPT,
            negative_prompt="blurry, low quality",
            style_preset="Photoreal",
            size="512x512",
            status="succeeded",
            progress=100,
        )
        asset = self._ledger.create_asset(
            job_id=job.id,
            title="Starter asset",
            prompt=job.prompt,
            metadata={"seeded": True},
        )
        rendition = self._ledger.create_rendition(
            asset_id=asset.id,
            width=1,
            height=1,
            data_base64=STARTER_PNG_BASE64,
        )
        log.info("starter_asset_seeded", asset_id=asset.id)
        return SingleImageResult(job=job, asset=asset, rendition=rendition)
