"""Tests for GenerationService status mapping and seeding."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from scriptboard.providers.image import (
    ImageProviderConnectionError,
    ImageResult,
    NoImageDataError,
)
from scriptboard.service import STARTER_PNG_BASE64, GenerationService
from scriptboard.storage import SqliteLedger


def _provider(*results: object) -> AsyncMock:
    provider = AsyncMock()
    provider.generate.side_effect = list(results)
    return provider


@pytest.fixture
def ledger() -> SqliteLedger:
    return SqliteLedger()


class TestGenerationStatus:
    @pytest.mark.asyncio()
    async def test_created(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger, _provider(ImageResult(b64_data="aGk=")))

        response = await service.generate_image({"prompt": "a red cube"})

        assert response.status == 201
        assert response.ok
        assert response.body["job"]["status"] == "succeeded"
        assert response.body["asset"]["prompt"] == "a red cube"
        assert response.body["rendition"]["data_base64"] == "aGk="

    @pytest.mark.asyncio()
    async def test_validation_error_is_400(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger, _provider())

        response = await service.generate_storyboard(
            {"script": "short", "projectName": "Skyline"}
        )

        assert response.status == 400
        assert response.body["field"] == "script"
        assert ledger.list_jobs() == []

    @pytest.mark.asyncio()
    async def test_no_image_data_is_500(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger, _provider(NoImageDataError("openai", "empty")))

        response = await service.generate_image({"prompt": "a red cube"})

        assert response.status == 500
        assert response.body == {"message": "No image data returned"}
        [job] = ledger.list_jobs()
        assert job.status == "failed"
        assert job.error == "No image data returned"

    @pytest.mark.asyncio()
    async def test_provider_error_is_500(self, ledger: SqliteLedger) -> None:
        service = GenerationService(
            ledger, _provider(ImageProviderConnectionError("bedrock", "refused"))
        )

        response = await service.generate_image({"prompt": "a red cube"})

        assert response.status == 500
        assert response.body == {"message": "Image generation failed"}

    @pytest.mark.asyncio()
    async def test_unexpected_error_hides_detail(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger, _provider(RuntimeError("secret detail")))

        response = await service.generate_project_pack(
            {"projectName": "P", "script": "x y z " * 10}
        )

        assert response.status == 500
        assert response.body == {"message": "Internal error"}
        [job] = ledger.list_jobs()
        assert job.status == "failed"
        assert job.error == "secret detail"

    @pytest.mark.asyncio()
    async def test_storyboard_created(self, ledger: SqliteLedger) -> None:
        service = GenerationService(
            ledger, _provider(*[ImageResult(b64_data="aGk=") for _ in range(2)])
        )

        response = await service.generate_storyboard(
            {
                "script": "First scene paragraph.\n\nSecond scene paragraph.",
                "projectName": "S",
                "sceneCount": 2,
            }
        )

        assert response.status == 201
        assert [scene["index"] for scene in response.body["scenes"]] == [1, 2]
        assert response.body["job"]["progress"] == 100


class TestBrowsing:
    def test_missing_records_are_404(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger)

        assert service.get_job(1).body == {"message": "Job not found"}
        assert service.get_asset(1).status == 404
        assert service.get_asset(1).body == {"message": "Asset not found"}
        assert service.get_latest_rendition(1).body == {"message": "Rendition not found"}

    def test_listing_is_200(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger)
        service.seed_starter_asset()

        jobs = service.list_jobs()
        assets = service.list_assets()

        assert jobs.status == 200
        assert len(jobs.body) == 1
        assert assets.body[0]["title"] == "Starter asset"
        assert service.get_job(jobs.body[0]["id"]).status == 200

    @pytest.mark.asyncio()
    async def test_generation_requires_provider(self, ledger: SqliteLedger) -> None:
        response = await GenerationService(ledger).generate_image({"prompt": "x"})
        assert response.status == 500


class TestSeedStarterAsset:
    def test_seeds_empty_ledger(self, ledger: SqliteLedger) -> None:
        seeded = GenerationService(ledger).seed_starter_asset()

        assert seeded is not None
        assert seeded.job.status == "succeeded"
        assert seeded.job.size == "512x512"
        assert seeded.job.style_preset == "Photoreal"
        assert seeded.job.negative_prompt == "blurry, low quality"
        assert seeded.asset.metadata == {"seeded": True}
        assert seeded.asset.prompt == seeded.job.prompt
        assert seeded.rendition.data_base64 == STARTER_PNG_BASE64
        assert (seeded.rendition.width, seeded.rendition.height) == (1, 1)

    def test_idempotent(self, ledger: SqliteLedger) -> None:
        service = GenerationService(ledger)
        service.seed_starter_asset()

        assert service.seed_starter_asset() is None
        assert len(ledger.list_assets()) == 1
