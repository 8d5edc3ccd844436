"""Amazon Bedrock image provider (Backend B).

Invokes a text-to-image model through the Bedrock runtime REST endpoint::

    POST https://bedrock-runtime.{region}.amazonaws.com/model/{model_id}/invoke

The body uses the Nova Canvas ``TEXT_IMAGE`` task shape. Authentication is
either a SigV4 signature or a pre-issued bearer API key; the choice is made
once in configuration and never both at the same time.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any
from urllib.parse import quote

import httpx

from scriptboard.config import BearerCredentials, BedrockConfig, SignedCredentials
from scriptboard.observability.logging import get_logger
from scriptboard.providers.image import (
    DEFAULT_SIZE,
    ImageProviderConnectionError,
    ImageProviderError,
    ImageResult,
    ImageSize,
    NoImageDataError,
    parse_size,
)
from scriptboard.providers.sigv4 import sign_request

log = get_logger(__name__)

_DEFAULT_TIMEOUT = 120.0
_SERVICE = "bedrock"


def build_request_body(prompt: str, width: int, height: int) -> dict[str, Any]:
    """Build the TEXT_IMAGE invoke body for one image."""
    return {
        "taskType": "TEXT_IMAGE",
        "textToImageParams": {"text": prompt},
        "imageGenerationConfig": {
            "width": width,
            "height": height,
            "numberOfImages": 1,
            "quality": "standard",
        },
    }


class BedrockImageProvider:
    """Image provider using the Bedrock runtime invoke API.

    Args:
        config: Region, model id and the resolved credential kind.
        client: Optional pre-built ``httpx.AsyncClient`` (tests inject one).
    """

    def __init__(self, config: BedrockConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._host = config.host
        self._path = f"/model/{quote(config.model_id, safe='')}/invoke"
        self._client = client or httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT)

    @property
    def url(self) -> str:
        return f"https://{self._host}{self._path}"

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _auth_headers(self, body: bytes) -> dict[str, str]:
        """Build content and authorization headers for the configured credential kind."""
        credentials = self._config.credentials
        base = {
            "content-type": "application/json",
            "accept": "application/json",
        }

        if isinstance(credentials, BearerCredentials):
            return {**base, "authorization": f"Bearer {credentials.api_key}"}

        if isinstance(credentials, SignedCredentials):
            signed = sign_request(
                method="POST",
                host=self._host,
                path=self._path,
                payload=body,
                region=self._config.region,
                service=_SERVICE,
                credentials=credentials,
                headers={**base, "x-amz-content-sha256": hashlib.sha256(body).hexdigest()},
            )
            return signed.headers

        kind = type(credentials).__name__
        raise ImageProviderError("bedrock", f"Unsupported credentials: {kind}")

    async def generate(self, prompt: str, *, size: ImageSize = DEFAULT_SIZE) -> ImageResult:
        """Generate an image via the Bedrock invoke endpoint.

        Args:
            prompt: Final prompt text.
            size: Size bucket; split into width and height for the body.

        Returns:
            ImageResult with the first returned image.

        Raises:
            ImageProviderConnectionError: If Bedrock is unreachable or times out.
            ImageProviderError: On non-success HTTP status or an unsupported size.
            NoImageDataError: If the response carries no image.
        """
        try:
            width, height = parse_size(size)
        except ValueError as e:
            raise ImageProviderError("bedrock", str(e)) from e

        body = json.dumps(build_request_body(prompt, width, height)).encode("utf-8")
        headers = self._auth_headers(body)

        log.debug(
            "bedrock_generate_start",
            host=self._host,
            model=self._config.model_id,
            size=size,
            auth=type(self._config.credentials).__name__,
            prompt_length=len(prompt),
        )

        try:
            response = await self._client.post(self.url, content=body, headers=headers)
        except httpx.ConnectError as e:
            log.error("bedrock_connect_error", host=self._host, error=str(e))
            raise ImageProviderConnectionError(
                "bedrock", f"Cannot connect to Bedrock at {self._host}: {e}"
            ) from e
        except httpx.TimeoutException as e:
            log.error("bedrock_timeout", host=self._host, timeout=_DEFAULT_TIMEOUT)
            raise ImageProviderConnectionError(
                "bedrock",
                f"Request to Bedrock timed out after {_DEFAULT_TIMEOUT}s: {e}",
            ) from e

        if not response.is_success:
            body_preview = response.text[:200]
            log.error(
                "bedrock_http_error",
                status_code=response.status_code,
                body_preview=body_preview,
            )
            raise ImageProviderError(
                "bedrock",
                f"Bedrock request failed ({response.status_code}): {body_preview}",
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ImageProviderError("bedrock", f"Bedrock returned invalid JSON: {e}") from e

        images = data.get("images") if isinstance(data, dict) else None
        if not images:
            reason = data.get("error") if isinstance(data, dict) else None
            raise NoImageDataError("bedrock", reason or "Bedrock returned no image data")

        log.info("bedrock_generate_complete", model=self._config.model_id, size=size)

        return ImageResult(
            b64_data=images[0],
            content_type="image/png",
            provider_metadata={"model": self._config.model_id, "size": size},
        )
