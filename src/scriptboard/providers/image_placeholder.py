"""Placeholder image provider for offline development.

Generates solid-colour PNGs at the requested size bucket with no network
access. Zero cost, instant, and deterministic per prompt, which makes it
the backend of choice for CI and for exercising the ledger locally.
"""

from __future__ import annotations

import hashlib
import struct
import zlib

from scriptboard.providers.image import (
    DEFAULT_SIZE,
    ImageProviderError,
    ImageResult,
    ImageSize,
    parse_size,
)

# Channels stay within 64-191.
_CHANNEL_FLOOR = 64
_CHANNEL_SPAN = 128


def prompt_colour(prompt: str) -> tuple[int, int, int]:
    """Map *prompt* to a stable muted RGB colour."""
    digest = hashlib.sha256(prompt.encode("utf-8")).digest()
    r, g, b = (_CHANNEL_FLOOR + byte % _CHANNEL_SPAN for byte in digest[:3])
    return r, g, b


def make_png(width: int, height: int, r: int, g: int, b: int) -> bytes:
    """Generate a minimal solid-color RGB PNG in pure Python.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        r: Red channel (0-255).
        g: Green channel (0-255).
        b: Blue channel (0-255).

    Returns:
        Raw PNG bytes.
    """

    def _chunk(chunk_type: bytes, data: bytes) -> bytes:
        payload = chunk_type + data
        crc = struct.pack(">I", zlib.crc32(payload) & 0xFFFFFFFF)
        return struct.pack(">I", len(data)) + payload + crc

    sig = b"\x89PNG\r\n\x1a\n"

    # IHDR: width, height, 8-bit depth, RGB (color type 2)
    ihdr = _chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))

    # IDAT: filter byte 0 + RGB triplets per row
    row = bytes([0]) + bytes([r, g, b]) * width
    idat = _chunk(b"IDAT", zlib.compress(row * height))

    iend = _chunk(b"IEND", b"")

    return sig + ihdr + idat + iend


class PlaceholderImageProvider:
    """Zero-cost provider that renders solid-colour PNGs.

    The colour is chosen from the prompt hash, so the same prompt always
    produces the same image.
    """

    async def aclose(self) -> None:
        return None

    async def generate(self, prompt: str, *, size: ImageSize = DEFAULT_SIZE) -> ImageResult:
        try:
            width, height = parse_size(size)
        except ValueError as e:
            raise ImageProviderError("placeholder", str(e)) from e

        r, g, b = prompt_colour(prompt)

        return ImageResult.from_bytes(
            make_png(width, height, r, g, b),
            content_type="image/png",
            quality="placeholder",
            size=size,
            color=f"#{r:02x}{g:02x}{b:02x}",
        )
