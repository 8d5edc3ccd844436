"""Image provider factory.

Creates the provider selected in :class:`~scriptboard.config.AppConfig`.
Provider implementations are lazily imported so that, for example, the
placeholder backend never pulls in the OpenAI SDK.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scriptboard.providers.image import ImageProvider, ImageProviderError

if TYPE_CHECKING:
    from scriptboard.config import AppConfig


def create_image_provider(config: AppConfig) -> ImageProvider:
    """Create the configured image provider.

    Args:
        config: Resolved application configuration.

    Returns:
        Configured image provider.

    Raises:
        ImageProviderError: If the provider is unknown or its settings are incomplete.
    """
    name = config.image_provider

    if name == "placeholder":
        from scriptboard.providers.image_placeholder import PlaceholderImageProvider

        return PlaceholderImageProvider()

    if name == "openai":
        from scriptboard.providers.image_openai import OpenAIImageProvider

        return OpenAIImageProvider(api_key=config.openai.api_key, model=config.openai.model)

    if name == "bedrock":
        from scriptboard.providers.image_bedrock import BedrockImageProvider

        if config.bedrock is None:
            raise ImageProviderError("bedrock", "Bedrock selected but not configured")
        return BedrockImageProvider(config.bedrock)

    raise ImageProviderError(name, f"Unknown image provider: {name}")
