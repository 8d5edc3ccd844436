"""Image generation provider protocol and types.

Defines the ImageProvider protocol shared by every generation backend.
A provider takes a final prompt and one of three fixed size buckets and
returns a base64-encoded PNG payload.

Implementations:
    - OpenAIImageProvider (image_openai.py): hosted Images API
    - BedrockImageProvider (image_bedrock.py): signed/bearer HTTP invoke
    - PlaceholderImageProvider (image_placeholder.py): offline solid colours
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, get_args, runtime_checkable

ImageSize = Literal["1024x1024", "512x512", "256x256"]

SUPPORTED_SIZES: tuple[str, ...] = get_args(ImageSize)
DEFAULT_SIZE: ImageSize = "1024x1024"


def parse_size(size: str) -> tuple[int, int]:
    """Split a size bucket such as ``512x512`` into ``(width, height)``.

    Raises:
        ValueError: If *size* is not one of the supported buckets.
    """
    if size not in SUPPORTED_SIZES:
        supported = ", ".join(SUPPORTED_SIZES)
        raise ValueError(f"Unsupported size '{size}'. Supported: {supported}")
    width, height = size.split("x")
    return int(width), int(height)


@dataclass(frozen=True)
class ImageResult:
    """Result of an image generation call.

    Attributes:
        b64_data: Base64-encoded image payload, exactly as the backend returned it.
        content_type: MIME type (e.g., ``image/png``).
        provider_metadata: Provider-specific metadata (model, size, etc.).
    """

    b64_data: str
    content_type: str = "image/png"
    provider_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def image_data(self) -> bytes:
        """Decoded image bytes."""
        return base64.b64decode(self.b64_data)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        content_type: str = "image/png",
        **metadata: Any,
    ) -> ImageResult:
        """Create from raw image bytes.

        Args:
            data: Raw image bytes.
            content_type: MIME type of the image.
            **metadata: Additional provider metadata.

        Returns:
            ImageResult with the bytes base64-encoded.
        """
        return cls(
            b64_data=base64.b64encode(data).decode("ascii"),
            content_type=content_type,
            provider_metadata=metadata,
        )


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol for image generation backends.

    The protocol is runtime-checkable for isinstance() validation.
    """

    async def generate(self, prompt: str, *, size: ImageSize = DEFAULT_SIZE) -> ImageResult:
        """Generate one image from a text prompt.

        Args:
            prompt: Final, fully assembled prompt.
            size: One of the supported size buckets.

        Returns:
            ImageResult with the encoded payload.

        Raises:
            ImageProviderError: If generation fails. Never retried.
        """
        ...

    async def aclose(self) -> None:
        """Release any network resources held by the provider."""
        ...


class ImageProviderError(Exception):
    """Base exception for image provider errors."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class ImageContentPolicyError(ImageProviderError):
    """Raised when image generation is rejected by content policy."""


class ImageProviderConnectionError(ImageProviderError):
    """Raised when the image provider is unreachable."""


class NoImageDataError(ImageProviderError):
    """Raised when the provider answered but returned no image payload."""
