"""Tests for PlaceholderImageProvider."""

from __future__ import annotations

import struct

import pytest

from scriptboard.providers.image import ImageProvider, ImageProviderError
from scriptboard.providers.image_placeholder import (
    PlaceholderImageProvider,
    make_png,
    prompt_colour,
)


class TestMakePng:
    """Test the pure-Python PNG generator."""

    def test_produces_valid_png_signature(self) -> None:
        data = make_png(2, 2, 128, 128, 128)
        assert data[:8] == b"\x89PNG\r\n\x1a\n"

    def test_header_carries_dimensions(self) -> None:
        data = make_png(512, 256, 0, 0, 0)
        width, height = struct.unpack(">II", data[16:24])
        assert (width, height) == (512, 256)

    def test_different_colors_produce_different_data(self) -> None:
        red = make_png(4, 4, 255, 0, 0)
        blue = make_png(4, 4, 0, 0, 255)
        assert red != blue


@pytest.mark.parametrize("prompt", ["", "a red cube", "Scene 1: dawn over the harbour"])
def test_prompt_colour_stays_muted(prompt: str) -> None:
    assert all(64 <= channel <= 191 for channel in prompt_colour(prompt))
    assert prompt_colour(prompt) == prompt_colour(prompt)


class TestPlaceholderImageProvider:
    """Test the placeholder provider."""

    def test_conforms_to_protocol(self) -> None:
        assert isinstance(PlaceholderImageProvider(), ImageProvider)

    @pytest.mark.asyncio()
    async def test_generate_returns_png_at_requested_size(self) -> None:
        provider = PlaceholderImageProvider()
        result = await provider.generate("test prompt", size="256x256")

        assert result.image_data[:8] == b"\x89PNG\r\n\x1a\n"
        assert result.content_type == "image/png"
        assert struct.unpack(">II", result.image_data[16:24]) == (256, 256)
        assert result.provider_metadata["quality"] == "placeholder"
        assert result.provider_metadata["size"] == "256x256"

    @pytest.mark.asyncio()
    async def test_deterministic_color(self) -> None:
        """Same prompt always produces the same color."""
        provider = PlaceholderImageProvider()
        r1 = await provider.generate("hello world", size="256x256")
        r2 = await provider.generate("hello world", size="256x256")

        assert r1.provider_metadata["color"] == r2.provider_metadata["color"]
        assert r1.b64_data == r2.b64_data

    @pytest.mark.asyncio()
    async def test_unsupported_size_raises(self) -> None:
        provider = PlaceholderImageProvider()

        with pytest.raises(ImageProviderError, match="Unsupported size"):
            await provider.generate("test", size="640x360")  # type: ignore[arg-type]

    @pytest.mark.asyncio()
    async def test_aclose_is_noop(self) -> None:
        await PlaceholderImageProvider().aclose()
