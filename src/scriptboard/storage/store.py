"""Job/asset ledger protocol.

The generation flows depend only on this CRUD contract. SqliteLedger is the
shipped implementation; tests may substitute any object that satisfies
:class:`Ledger`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from scriptboard.models.records import (
        Asset,
        AssetRendition,
        GenerationJob,
        JobStatus,
    )
    from scriptboard.providers.image import ImageSize


class LedgerError(Exception):
    """Base class for ledger failures."""


class RecordNotFoundError(LedgerError):
    """Raised when updating or referencing a row that does not exist."""

    def __init__(self, kind: str, record_id: int) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class JobStateError(LedgerError):
    """Raised on an illegal job transition (leaving a terminal status, lowering progress)."""

    def __init__(self, job_id: int, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Job {job_id}: {reason}")


@runtime_checkable
class Ledger(Protocol):
    """Persistence contract for jobs, assets and renditions.

    Listings are newest first. The latest rendition of an asset is the most
    recently created row for it, ties broken by insertion order.
    """

    # -- Jobs ------------------------------------------------------------------

    def create_job(
        self,
        *,
        prompt: str,
        negative_prompt: str | None = None,
        style_preset: str | None = None,
        size: ImageSize = "1024x1024",
        seed: int | None = None,
        status: JobStatus = "queued",
        progress: int = 0,
    ) -> GenerationJob:
        """Insert a job row and return it."""
        ...

    def update_job(
        self,
        job_id: int,
        *,
        status: JobStatus | None = None,
        progress: int | None = None,
        error: str | None = None,
        completed_at: datetime | None = None,
    ) -> GenerationJob:
        """Apply a partial update and return the stored job."""
        ...

    def get_job(self, job_id: int) -> GenerationJob | None:
        """Return the job, or None."""
        ...

    def list_jobs(self) -> list[GenerationJob]:
        """Return all jobs, newest first."""
        ...

    # -- Assets ----------------------------------------------------------------

    def create_asset(
        self,
        *,
        job_id: int | None,
        title: str | None,
        prompt: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> Asset:
        """Insert an image asset and return it."""
        ...

    def get_asset(self, asset_id: int) -> Asset | None:
        """Return the asset, or None."""
        ...

    def list_assets(self) -> list[Asset]:
        """Return all assets, newest first."""
        ...

    # -- Renditions ------------------------------------------------------------

    def create_rendition(
        self,
        *,
        asset_id: int,
        width: int,
        height: int,
        data_base64: str,
        mime_type: str = "image/png",
    ) -> AssetRendition:
        """Insert a rendition for an existing asset and return it."""
        ...

    def get_latest_rendition(self, asset_id: int) -> AssetRendition | None:
        """Return the most recent rendition of the asset, or None."""
        ...

    def list_renditions(self, asset_id: int) -> list[AssetRendition]:
        """Return the asset's renditions, oldest first."""
        ...
