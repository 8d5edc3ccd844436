"""OpenAI image generation provider (Backend A).

Calls the hosted Images API with model, prompt, and size and returns the
first base64 payload of the response.

gpt-image-1 always answers with base64 data; dall-e models need an explicit
``response_format="b64_json"`` to do the same.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

from scriptboard.config import DEFAULT_OPENAI_MODEL
from scriptboard.observability.logging import get_logger
from scriptboard.providers.image import (
    DEFAULT_SIZE,
    SUPPORTED_SIZES,
    ImageContentPolicyError,
    ImageProviderConnectionError,
    ImageProviderError,
    ImageResult,
    ImageSize,
    NoImageDataError,
)

if TYPE_CHECKING:
    from openai import AsyncOpenAI

log = get_logger(__name__)


def _is_gpt_image_model(model: str) -> bool:
    """Return True for gpt-image-* models (not dall-e)."""
    return model.startswith("gpt-image")


class OpenAIImageProvider:
    """Image generation via OpenAI's Images API.

    Args:
        api_key: OpenAI API key.
        model: Model name (e.g., ``gpt-image-1``, ``dall-e-2``).
    """

    def __init__(self, api_key: str | None, model: str = DEFAULT_OPENAI_MODEL) -> None:
        if not api_key:
            raise ImageProviderError(
                "openai",
                "API key required. Set OPENAI_API_KEY environment variable.",
            )
        self._api_key = api_key
        self._model = model
        self._is_gpt_image = _is_gpt_image_model(model)

        # Create client once, reuse across calls
        self._client: AsyncOpenAI = self._create_client()

    def _create_client(self) -> AsyncOpenAI:
        from openai import AsyncOpenAI as _AsyncOpenAI

        return _AsyncOpenAI(api_key=self._api_key)

    async def aclose(self) -> None:
        """Close the underlying SDK client."""
        await self._client.close()

    async def generate(self, prompt: str, *, size: ImageSize = DEFAULT_SIZE) -> ImageResult:
        """Generate an image via OpenAI Images API.

        Args:
            prompt: Final prompt text.
            size: Size bucket, passed through unchanged.

        Returns:
            ImageResult with the first returned payload.

        Raises:
            NoImageDataError: If the response carries no base64 payload.
            ImageContentPolicyError: On content policy rejection.
            ImageProviderConnectionError: On network errors.
            ImageProviderError: On other API errors or an unsupported size.
        """
        if size not in SUPPORTED_SIZES:
            supported = ", ".join(SUPPORTED_SIZES)
            raise ImageProviderError("openai", f"Unsupported size '{size}'. Supported: {supported}")

        log.debug(
            "image_generate_start",
            model=self._model,
            size=size,
            prompt_length=len(prompt),
        )

        api_kwargs: dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "size": size,
        }
        if not self._is_gpt_image:
            api_kwargs["response_format"] = "b64_json"

        try:
            response = await self._client.images.generate(**api_kwargs)
        except Exception as e:
            self._handle_error(e)

        data = response.data or []
        b64_data = data[0].b64_json if data else None
        if not b64_data:
            raise NoImageDataError("openai", "OpenAI returned no image data")

        metadata: dict[str, Any] = {"model": self._model, "size": size}
        revised_prompt = getattr(data[0], "revised_prompt", None)
        if revised_prompt:
            metadata["revised_prompt"] = revised_prompt

        log.info("image_generate_complete", model=self._model, size=size)

        return ImageResult(b64_data=b64_data, content_type="image/png", provider_metadata=metadata)

    def _handle_error(self, error: Exception) -> NoReturn:
        """Convert OpenAI SDK exceptions to ImageProvider exceptions."""
        from openai import APIConnectionError, APIStatusError

        if isinstance(error, APIConnectionError):
            raise ImageProviderConnectionError("openai", f"Connection error: {error}") from error

        if isinstance(error, APIStatusError):
            status = error.status_code
            if status == 400 and "content_policy" in str(error).lower():
                raise ImageContentPolicyError(
                    "openai", f"Content policy rejection: {error}"
                ) from error
            raise ImageProviderError("openai", f"API error (HTTP {status}): {error}") from error

        raise ImageProviderError("openai", f"Image generation failed: {error}") from error
