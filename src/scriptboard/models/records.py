"""Persisted ledger records.

These mirror the rows kept by the job/asset ledger: one ``GenerationJob``
per top-level request, one ``Asset`` per generated image and one or more
``AssetRendition`` rows holding the encoded payload.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - pydantic needs it at runtime
from typing import Any, Literal

from pydantic import BaseModel, Field

from scriptboard.providers.image import DEFAULT_SIZE, ImageSize

JobStatus = Literal["queued", "running", "succeeded", "failed"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"succeeded", "failed"})


class GenerationJob(BaseModel):
    """Lifecycle record of one end-to-end generation request."""

    id: int
    prompt: str = Field(description="Prompt summary shown in job listings")
    negative_prompt: str | None = None
    style_preset: str | None = None
    size: ImageSize = DEFAULT_SIZE
    seed: int | None = None
    status: JobStatus = "queued"
    progress: int = Field(default=0, ge=0, le=100)
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Asset(BaseModel):
    """Metadata envelope for one generated image. Append-only."""

    id: int
    type: Literal["image"] = "image"
    job_id: int | None = None
    title: str | None = None
    prompt: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AssetRendition(BaseModel):
    """Encoded image payload tied to one asset."""

    id: int
    asset_id: int
    mime_type: str = "image/png"
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    data_base64: str = Field(repr=False)
    created_at: datetime
