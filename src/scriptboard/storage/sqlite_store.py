"""SQLite-backed job/asset ledger.

SqliteLedger implements the :class:`~scriptboard.storage.store.Ledger`
protocol using stdlib sqlite3. Asset metadata lives in a JSON column;
rendition payloads are stored inline as base64 text.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from scriptboard.models.records import (
    TERMINAL_STATUSES,
    Asset,
    AssetRendition,
    GenerationJob,
    JobStatus,
)
from scriptboard.observability.logging import get_logger
from scriptboard.storage.store import JobStateError, RecordNotFoundError

if TYPE_CHECKING:
    from scriptboard.providers.image import ImageSize

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS generation_jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    prompt          TEXT NOT NULL,
    negative_prompt TEXT,
    style_preset    TEXT,
    size            TEXT NOT NULL DEFAULT '1024x1024',
    seed            INTEGER,
    status          TEXT NOT NULL DEFAULT 'queued',
    progress        INTEGER NOT NULL DEFAULT 0,
    error           TEXT,
    created_at      TEXT NOT NULL,
    completed_at    TEXT
);

CREATE TABLE IF NOT EXISTS assets (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    type       TEXT NOT NULL DEFAULT 'image',
    job_id     INTEGER REFERENCES generation_jobs(id),
    title      TEXT,
    prompt     TEXT,
    metadata   JSON NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_assets_job ON assets(job_id);

CREATE TABLE IF NOT EXISTS asset_renditions (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    asset_id    INTEGER NOT NULL REFERENCES assets(id),
    mime_type   TEXT NOT NULL DEFAULT 'image/png',
    width       INTEGER NOT NULL,
    height      INTEGER NOT NULL,
    data_base64 TEXT NOT NULL,
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_renditions_asset ON asset_renditions(asset_id, created_at);
"""

_JOB_COLUMNS = frozenset({"status", "progress", "error", "completed_at"})


def _now() -> datetime:
    return datetime.now(UTC)


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class SqliteLedger:
    """SQLite-backed ledger for generation jobs, assets and renditions."""

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        _conn: sqlite3.Connection | None = None,
    ) -> None:
        """Open or create a ledger database.

        Args:
            db_path: Path to ``.db`` file, or ``":memory:"`` for in-memory.
            _conn: Pre-existing connection (for testing). If provided,
                   *db_path* is ignored.
        """
        if _conn is not None:
            self._conn = _conn
            self._db_path: str = ":memory:"
        else:
            self._db_path = str(db_path)
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self._db_path,
                isolation_level=None,  # autocommit
            )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # -- Row conversion --------------------------------------------------------

    @staticmethod
    def _job(row: sqlite3.Row) -> GenerationJob:
        return GenerationJob.model_validate(dict(row))

    @staticmethod
    def _asset(row: sqlite3.Row) -> Asset:
        data = dict(row)
        data["metadata"] = json.loads(data["metadata"]) if data["metadata"] else {}
        return Asset.model_validate(data)

    @staticmethod
    def _rendition(row: sqlite3.Row) -> AssetRendition:
        return AssetRendition.model_validate(dict(row))

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
        created = _now()
        completed = _ts(created) if status in TERMINAL_STATUSES else None
        cursor = self._conn.execute(
            "INSERT INTO generation_jobs "
            "(prompt, negative_prompt, style_preset, size, seed, status, progress, "
            "created_at, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                prompt,
                negative_prompt,
                style_preset,
                size,
                seed,
                status,
                progress,
                _ts(created),
                completed,
            ),
        )
        job_id = int(cursor.lastrowid or 0)
        log.debug("job_created", job_id=job_id, status=status)
        return self._require_job(job_id)

    def update_job(
        self,
        job_id: int,
        *,
        status: JobStatus | None = None,
        progress: int | None = None,
        error: str | None = None,
        completed_at: datetime | None = None,
    ) -> GenerationJob:
        """Apply a partial update to a job.

        Terminal transitions stamp ``completed_at`` when the caller did not.

        Raises:
            RecordNotFoundError: If the job does not exist.
            JobStateError: If the job is already terminal or progress would decrease.
            ValueError: If progress is outside 0-100.
        """
        current = self._require_job(job_id)
        if current.is_terminal:
            raise JobStateError(job_id, f"already {current.status}")
        if progress is not None:
            if not 0 <= progress <= 100:
                msg = f"progress must be within 0-100, got {progress}"
                raise ValueError(msg)
            if progress < current.progress:
                raise JobStateError(
                    job_id, f"progress cannot decrease ({current.progress} -> {progress})"
                )

        updates: dict[str, Any] = {}
        if status is not None:
            updates["status"] = status
            if status in TERMINAL_STATUSES and completed_at is None:
                completed_at = _now()
        if progress is not None:
            updates["progress"] = progress
        if error is not None:
            updates["error"] = error
        if completed_at is not None:
            updates["completed_at"] = _ts(completed_at)
        if not updates:
            return current

        assert set(updates) <= _JOB_COLUMNS
        assignments = ", ".join(f"{column} = ?" for column in updates)
        self._conn.execute(
            f"UPDATE generation_jobs SET {assignments} WHERE id = ?",  # noqa: S608
            (*updates.values(), job_id),
        )
        return self._require_job(job_id)

    def get_job(self, job_id: int) -> GenerationJob | None:
        row = self._conn.execute(
            "SELECT * FROM generation_jobs WHERE id = ?", (job_id,)
        ).fetchone()
        return self._job(row) if row is not None else None

    def _require_job(self, job_id: int) -> GenerationJob:
        job = self.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("Job", job_id)
        return job

    def list_jobs(self) -> list[GenerationJob]:
        rows = self._conn.execute(
            "SELECT * FROM generation_jobs ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [self._job(row) for row in rows]

    # -- Assets ----------------------------------------------------------------

    def create_asset(
        self,
        *,
        job_id: int | None,
        title: str | None,
        prompt: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> Asset:
        try:
            cursor = self._conn.execute(
                "INSERT INTO assets (type, job_id, title, prompt, metadata, created_at) "
                "VALUES ('image', ?, ?, ?, ?, ?)",
                (job_id, title, prompt, json.dumps(metadata or {}), _ts(_now())),
            )
        except sqlite3.IntegrityError as e:
            raise RecordNotFoundError("Job", job_id or 0) from e
        asset = self.get_asset(int(cursor.lastrowid or 0))
        assert asset is not None
        return asset

    def get_asset(self, asset_id: int) -> Asset | None:
        row = self._conn.execute("SELECT * FROM assets WHERE id = ?", (asset_id,)).fetchone()
        return self._asset(row) if row is not None else None

    def list_assets(self) -> list[Asset]:
        rows = self._conn.execute(
            "SELECT * FROM assets ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [self._asset(row) for row in rows]

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
        try:
            cursor = self._conn.execute(
                "INSERT INTO asset_renditions "
                "(asset_id, mime_type, width, height, data_base64, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (asset_id, mime_type, width, height, data_base64, _ts(_now())),
            )
        except sqlite3.IntegrityError as e:
            raise RecordNotFoundError("Asset", asset_id) from e
        row = self._conn.execute(
            "SELECT * FROM asset_renditions WHERE id = ?", (cursor.lastrowid,)
        ).fetchone()
        return self._rendition(row)

    def get_latest_rendition(self, asset_id: int) -> AssetRendition | None:
        row = self._conn.execute(
            "SELECT * FROM asset_renditions WHERE asset_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT 1",
            (asset_id,),
        ).fetchone()
        return self._rendition(row) if row is not None else None

    def list_renditions(self, asset_id: int) -> list[AssetRendition]:
        rows = self._conn.execute(
            "SELECT * FROM asset_renditions WHERE asset_id = ? ORDER BY created_at, id",
            (asset_id,),
        ).fetchall()
        return [self._rendition(row) for row in rows]
