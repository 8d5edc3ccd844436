"""Tests for ImageProvider protocol, ImageResult, OpenAI backend and factory."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock

import pytest

from scriptboard.config import AppConfig, BearerCredentials, BedrockConfig, OpenAIConfig
from scriptboard.providers.image import (
    ImageContentPolicyError,
    ImageProvider,
    ImageProviderConnectionError,
    ImageProviderError,
    ImageResult,
    NoImageDataError,
    parse_size,
)

# ---------------------------------------------------------------------------
# ImageResult
# ---------------------------------------------------------------------------


class TestImageResult:
    def test_basic_creation(self) -> None:
        result = ImageResult(b64_data="cG5n", content_type="image/png")
        assert result.image_data == b"png"
        assert result.content_type == "image/png"
        assert result.provider_metadata == {}

    def test_from_bytes(self) -> None:
        result = ImageResult.from_bytes(b"test image data", model="test")
        assert base64.b64decode(result.b64_data) == b"test image data"
        assert result.provider_metadata["model"] == "test"

    def test_frozen(self) -> None:
        result = ImageResult(b64_data="ZGF0YQ==")
        with pytest.raises(AttributeError):
            result.b64_data = "other"  # type: ignore[misc]


class TestParseSize:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [("1024x1024", (1024, 1024)), ("512x512", (512, 512)), ("256x256", (256, 256))],
    )
    def test_supported_buckets(self, size: str, expected: tuple[int, int]) -> None:
        assert parse_size(size) == expected

    def test_unknown_bucket_raises(self) -> None:
        with pytest.raises(ValueError, match="Unsupported size"):
            parse_size("1536x1024")


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class TestExceptions:
    def test_base_error(self) -> None:
        err = ImageProviderError("openai", "something failed")
        assert err.provider == "openai"
        assert str(err) == "[openai] something failed"

    @pytest.mark.parametrize(
        "error_type",
        [ImageContentPolicyError, ImageProviderConnectionError, NoImageDataError],
    )
    def test_subclasses_inherit(self, error_type: type[ImageProviderError]) -> None:
        assert isinstance(error_type("openai", "x"), ImageProviderError)


# ---------------------------------------------------------------------------
# OpenAIImageProvider
# ---------------------------------------------------------------------------


def _images_response(*b64_values: str | None) -> object:
    items = [
        type("ImageItem", (), {"b64_json": value, "revised_prompt": None})()
        for value in b64_values
    ]
    return type("ImagesResponse", (), {"data": items})()


class TestOpenAIImageProvider:
    def test_missing_api_key_raises(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        with pytest.raises(ImageProviderError, match="API key"):
            OpenAIImageProvider(api_key=None)

    def test_conforms_to_protocol(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        assert isinstance(OpenAIImageProvider(api_key="sk-test"), ImageProvider)

    @pytest.mark.asyncio()
    async def test_generate_success(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        payload = base64.b64encode(b"fake_png_data").decode()
        provider = OpenAIImageProvider(api_key="sk-test", model="gpt-image-1")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(return_value=_images_response(payload))

        result = await provider.generate("a red cube", size="512x512")

        assert result.b64_data == payload
        assert result.image_data == b"fake_png_data"
        assert result.provider_metadata == {"model": "gpt-image-1", "size": "512x512"}

        call_kwargs = provider._client.images.generate.call_args.kwargs
        assert call_kwargs == {"model": "gpt-image-1", "prompt": "a red cube", "size": "512x512"}

    @pytest.mark.asyncio()
    async def test_dalle_requests_base64(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        provider = OpenAIImageProvider(api_key="sk-test", model="dall-e-2")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(return_value=_images_response("aGk="))

        await provider.generate("a red cube")

        call_kwargs = provider._client.images.generate.call_args.kwargs
        assert call_kwargs["response_format"] == "b64_json"

    @pytest.mark.asyncio()
    async def test_empty_response_raises_no_image_data(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        provider = OpenAIImageProvider(api_key="sk-test")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(return_value=_images_response())

        with pytest.raises(NoImageDataError):
            await provider.generate("test prompt")

    @pytest.mark.asyncio()
    async def test_missing_b64_raises_no_image_data(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        provider = OpenAIImageProvider(api_key="sk-test")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(return_value=_images_response(None))

        with pytest.raises(NoImageDataError):
            await provider.generate("test prompt")

    @pytest.mark.asyncio()
    async def test_content_policy_error(self) -> None:
        from openai import APIStatusError

        from scriptboard.providers.image_openai import OpenAIImageProvider

        mock_request = type(
            "Request",
            (),
            {
                "url": "https://api.openai.com/v1/images/generations",
                "method": "POST",
                "headers": {},
            },
        )()
        mock_response = type(
            "Response", (), {"status_code": 400, "headers": {}, "request": mock_request}
        )()
        error = APIStatusError(
            message="content_policy_violation: unsafe content",
            response=mock_response,  # type: ignore[arg-type]
            body=None,
        )

        provider = OpenAIImageProvider(api_key="sk-test")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(side_effect=error)

        with pytest.raises(ImageContentPolicyError):
            await provider.generate("test prompt")

    @pytest.mark.asyncio()
    async def test_connection_error(self) -> None:
        from openai import APIConnectionError

        from scriptboard.providers.image_openai import OpenAIImageProvider

        error = APIConnectionError(request=AsyncMock())

        provider = OpenAIImageProvider(api_key="sk-test")
        provider._client = AsyncMock()
        provider._client.images.generate = AsyncMock(side_effect=error)

        with pytest.raises(ImageProviderConnectionError):
            await provider.generate("test prompt")

    @pytest.mark.asyncio()
    async def test_unsupported_size_raises(self) -> None:
        from scriptboard.providers.image_openai import OpenAIImageProvider

        provider = OpenAIImageProvider(api_key="sk-test")

        with pytest.raises(ImageProviderError, match="Unsupported size"):
            await provider.generate("test prompt", size="1536x1024")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestCreateImageProvider:
    def test_placeholder(self) -> None:
        from scriptboard.providers.image_factory import create_image_provider
        from scriptboard.providers.image_placeholder import PlaceholderImageProvider

        provider = create_image_provider(AppConfig(image_provider="placeholder"))
        assert isinstance(provider, PlaceholderImageProvider)

    def test_openai_uses_configured_model(self) -> None:
        from scriptboard.providers.image_factory import create_image_provider

        config = AppConfig(
            image_provider="openai",
            openai=OpenAIConfig(model="dall-e-3", api_key="sk-test"),
        )
        provider = create_image_provider(config)

        assert isinstance(provider, ImageProvider)
        assert provider._model == "dall-e-3"  # type: ignore[attr-defined]

    def test_openai_without_key_raises(self) -> None:
        from scriptboard.providers.image_factory import create_image_provider

        with pytest.raises(ImageProviderError, match="API key"):
            create_image_provider(AppConfig(image_provider="openai"))

    def test_bedrock(self) -> None:
        from scriptboard.providers.image_bedrock import BedrockImageProvider
        from scriptboard.providers.image_factory import create_image_provider

        config = AppConfig(
            image_provider="bedrock",
            bedrock=BedrockConfig(credentials=BearerCredentials(api_key="key")),
        )
        assert isinstance(create_image_provider(config), BedrockImageProvider)

    def test_bedrock_without_settings_raises(self) -> None:
        from scriptboard.providers.image_factory import create_image_provider

        with pytest.raises(ImageProviderError, match="not configured"):
            create_image_provider(AppConfig(image_provider="bedrock"))

    def test_unknown_provider_raises(self) -> None:
        from scriptboard.providers.image_factory import create_image_provider

        with pytest.raises(ImageProviderError, match="Unknown image provider"):
            create_image_provider(AppConfig(image_provider="midjourney"))  # type: ignore[arg-type]
