"""Tests for SqliteLedger, the SQLite job/asset ledger.

All tests use :memory: databases unless they exercise the file path.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from scriptboard.storage import JobStateError, Ledger, RecordNotFoundError, SqliteLedger

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def ledger() -> SqliteLedger:
    return SqliteLedger()


class TestSqliteLedgerProtocol:
    def test_is_runtime_checkable(self, ledger: SqliteLedger) -> None:
        assert isinstance(ledger, Ledger)

    def test_default_state(self, ledger: SqliteLedger) -> None:
        assert ledger.list_jobs() == []
        assert ledger.list_assets() == []

    def test_file_database_persists(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "ledger.db"
        first = SqliteLedger(db_path)
        first.create_job(prompt="persisted")
        first.close()

        second = SqliteLedger(db_path)
        assert [job.prompt for job in second.list_jobs()] == ["persisted"]
        second.close()


class TestSqliteLedgerJobs:
    def test_create_job_defaults(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="a red cube")

        assert job.id > 0
        assert job.status == "queued"
        assert job.progress == 0
        assert job.size == "1024x1024"
        assert job.error is None
        assert job.completed_at is None
        assert job.created_at.tzinfo is not None

    def test_create_job_fields(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(
            prompt="lamp",
            negative_prompt="blurry",
            style_preset="Photoreal",
            size="512x512",
        )
        assert ledger.get_job(job.id) == job
        assert job.negative_prompt == "blurry"
        assert job.style_preset == "Photoreal"
        assert job.size == "512x512"

    def test_get_missing_job_returns_none(self, ledger: SqliteLedger) -> None:
        assert ledger.get_job(999) is None

    def test_update_progress_and_status(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")

        running = ledger.update_job(job.id, status="running", progress=10)
        assert running.status == "running"
        assert running.progress == 10

        done = ledger.update_job(job.id, status="succeeded", progress=100)
        assert done.status == "succeeded"
        assert done.progress == 100
        assert done.completed_at is not None

    def test_update_error(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")
        failed = ledger.update_job(job.id, status="failed", progress=100, error="boom")

        assert failed.error == "boom"
        assert failed.is_terminal

    def test_progress_cannot_decrease(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")
        ledger.update_job(job.id, status="running", progress=50)

        with pytest.raises(JobStateError, match="cannot decrease"):
            ledger.update_job(job.id, progress=25)

    def test_progress_out_of_range(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")

        with pytest.raises(ValueError, match="0-100"):
            ledger.update_job(job.id, progress=101)

    def test_terminal_job_is_frozen(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")
        ledger.update_job(job.id, status="succeeded", progress=100)

        with pytest.raises(JobStateError, match="already succeeded"):
            ledger.update_job(job.id, status="failed", error="late")

    def test_update_missing_job(self, ledger: SqliteLedger) -> None:
        with pytest.raises(RecordNotFoundError, match="Job 42 not found"):
            ledger.update_job(42, progress=10)

    def test_list_jobs_newest_first(self, ledger: SqliteLedger) -> None:
        first = ledger.create_job(prompt="first")
        second = ledger.create_job(prompt="second")

        assert [job.id for job in ledger.list_jobs()] == [second.id, first.id]


class TestSqliteLedgerAssets:
    def test_create_and_get_asset(self, ledger: SqliteLedger) -> None:
        job = ledger.create_job(prompt="p")
        asset = ledger.create_asset(
            job_id=job.id,
            title="Scene 1: Dawn",
            prompt="summary",
            metadata={"projectName": "Demo", "sceneIndex": 1, "referenceAssetIds": [3]},
        )

        loaded = ledger.get_asset(asset.id)
        assert loaded == asset
        assert loaded.type == "image"
        assert loaded.metadata == {"projectName": "Demo", "sceneIndex": 1, "referenceAssetIds": [3]}

    def test_asset_without_job(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title=None, prompt=None)
        assert asset.job_id is None
        assert asset.metadata == {}

    def test_asset_for_missing_job_raises(self, ledger: SqliteLedger) -> None:
        with pytest.raises(RecordNotFoundError):
            ledger.create_asset(job_id=77, title="t", prompt="p")

    def test_list_assets_newest_first(self, ledger: SqliteLedger) -> None:
        a = ledger.create_asset(job_id=None, title="a", prompt=None)
        b = ledger.create_asset(job_id=None, title="b", prompt=None)

        assert [asset.id for asset in ledger.list_assets()] == [b.id, a.id]


class TestSqliteLedgerRenditions:
    def test_create_rendition(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title="a", prompt=None)
        rendition = ledger.create_rendition(
            asset_id=asset.id, width=512, height=512, data_base64="aGk="
        )

        assert rendition.asset_id == asset.id
        assert rendition.mime_type == "image/png"
        assert (rendition.width, rendition.height) == (512, 512)
        assert rendition.data_base64 == "aGk="

    def test_rendition_for_missing_asset_raises(self, ledger: SqliteLedger) -> None:
        with pytest.raises(RecordNotFoundError, match="Asset 5 not found"):
            ledger.create_rendition(asset_id=5, width=1, height=1, data_base64="")

    def test_latest_rendition_is_most_recent(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title="a", prompt=None)
        base = datetime(2025, 1, 1, tzinfo=UTC)

        with patch("scriptboard.storage.sqlite_store._now", return_value=base + timedelta(1)):
            newer = ledger.create_rendition(
                asset_id=asset.id, width=1, height=1, data_base64="Yg=="
            )
        with patch("scriptboard.storage.sqlite_store._now", return_value=base):
            ledger.create_rendition(asset_id=asset.id, width=1, height=1, data_base64="YQ==")

        latest = ledger.get_latest_rendition(asset.id)
        assert latest is not None
        assert latest.id == newer.id

    def test_latest_rendition_tie_uses_insertion_order(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title="a", prompt=None)
        stamp = datetime(2025, 1, 1, tzinfo=UTC)

        with patch("scriptboard.storage.sqlite_store._now", return_value=stamp):
            ledger.create_rendition(asset_id=asset.id, width=1, height=1, data_base64="YQ==")
            second = ledger.create_rendition(
                asset_id=asset.id, width=1, height=1, data_base64="Yg=="
            )

        latest = ledger.get_latest_rendition(asset.id)
        assert latest is not None
        assert latest.id == second.id

    def test_latest_rendition_missing(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title="a", prompt=None)
        assert ledger.get_latest_rendition(asset.id) is None

    def test_list_renditions_oldest_first(self, ledger: SqliteLedger) -> None:
        asset = ledger.create_asset(job_id=None, title="a", prompt=None)
        first = ledger.create_rendition(asset_id=asset.id, width=1, height=1, data_base64="YQ==")
        second = ledger.create_rendition(asset_id=asset.id, width=1, height=1, data_base64="Yg==")

        assert [r.id for r in ledger.list_renditions(asset.id)] == [first.id, second.id]
