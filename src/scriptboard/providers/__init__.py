"""Image generation backends."""

from scriptboard.providers.image import (
    DEFAULT_SIZE,
    SUPPORTED_SIZES,
    ImageContentPolicyError,
    ImageProvider,
    ImageProviderConnectionError,
    ImageProviderError,
    ImageResult,
    ImageSize,
    NoImageDataError,
    parse_size,
)
from scriptboard.providers.image_factory import create_image_provider

__all__ = [
    "DEFAULT_SIZE",
    "SUPPORTED_SIZES",
    "ImageContentPolicyError",
    "ImageProvider",
    "ImageProviderConnectionError",
    "ImageProviderError",
    "ImageResult",
    "ImageSize",
    "NoImageDataError",
    "create_image_provider",
    "parse_size",
]
