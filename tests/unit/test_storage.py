"""Unit tests for upload-directory listing and cleanup."""

from __future__ import annotations

import os
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from knora.ingestion.models import ProcessedDocument
from knora.retrieval.vector_store import VectorStore
from knora.storage import SECONDS_PER_DAY, cleanup_old_files, storage_info

MakeDocument = Callable[..., ProcessedDocument]

NOW = 1_700_000_000.0


def _write(path: Path, payload: bytes, *, age_days: float) -> Path:
    path.write_bytes(payload)
    stamp = NOW - age_days * SECONDS_PER_DAY
    os.utime(path, (stamp, stamp))
    return path


@pytest.fixture()
def upload_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "uploads"
    directory.mkdir()
    return directory


class TestStorageInfo:
    def test_lists_top_level_files(self, upload_dir: Path) -> None:
        (upload_dir / "a.txt").write_bytes(b"x" * 10)
        (upload_dir / "b.pdf").write_bytes(b"y" * 30)
        (upload_dir / "nested").mkdir()
        (upload_dir / "nested" / "c.txt").write_bytes(b"z" * 99)

        info = storage_info(upload_dir)

        assert info.upload_dir == str(upload_dir)
        assert sorted((f.name, f.size_bytes) for f in info.files) == [("a.txt", 10), ("b.pdf", 30)]
        assert info.total_files == 2
        assert info.total_size_bytes == 40
        assert info.total_size_mb == pytest.approx(40 / (1024 * 1024))

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        info = storage_info(tmp_path / "absent")
        assert info.total_files == 0
        assert info.total_size_bytes == 0


class TestCleanupOldFiles:
    def test_removes_only_stale_files(self, store: VectorStore, upload_dir: Path) -> None:
        stale = _write(upload_dir / "stale.txt", b"s" * 40, age_days=45)
        fresh = _write(upload_dir / "fresh.txt", b"f" * 5, age_days=2)

        report = cleanup_old_files(store, upload_dir, days=30, now=NOW)

        assert report.deleted_files == 1
        assert report.freed_space_bytes == 40
        assert not stale.exists()
        assert fresh.exists()

    def test_stale_documents_dropped_from_store(
        self, store: VectorStore, upload_dir: Path, make_document: MakeDocument
    ) -> None:
        stale = _write(upload_dir / "stale.txt", b"old notes", age_days=31)
        fresh = _write(upload_dir / "fresh.txt", b"new notes", age_days=1)
        store.add_documents(
            [
                make_document(str(stale), "Archived meeting notes"),
                make_document(str(fresh), "Current meeting notes"),
            ]
        )

        report = cleanup_old_files(store, upload_dir, days=30, now=NOW)

        assert report.removed_documents == [str(stale)]
        assert store.get_stats().documents == [str(fresh)]
        assert len(store) == 1

    def test_document_keyed_by_file_name_is_dropped(
        self, store: VectorStore, upload_dir: Path, make_document: MakeDocument
    ) -> None:
        _write(upload_dir / "report.txt", b"quarterly", age_days=90)
        store.add_documents([make_document("report.txt", "Quarterly report body")])

        report = cleanup_old_files(store, upload_dir, days=30, now=NOW)

        assert report.removed_documents == ["report.txt"]
        assert len(store) == 0

    def test_retention_period_is_configurable(self, store: VectorStore, upload_dir: Path) -> None:
        _write(upload_dir / "week_old.txt", b"w", age_days=7)
        assert cleanup_old_files(store, upload_dir, days=30, now=NOW).deleted_files == 0
        assert cleanup_old_files(store, upload_dir, days=5, now=NOW).deleted_files == 1

    def test_defaults_to_current_time(self, store: VectorStore, upload_dir: Path) -> None:
        old = upload_dir / "old.txt"
        old.write_bytes(b"o")
        stamp = time.time() - 60 * SECONDS_PER_DAY
        os.utime(old, (stamp, stamp))

        assert cleanup_old_files(store, upload_dir).deleted_files == 1

    def test_missing_directory(self, store: VectorStore, tmp_path: Path) -> None:
        report = cleanup_old_files(store, tmp_path / "absent", now=NOW)
        assert report.deleted_files == 0
        assert report.freed_space_bytes == 0
        assert report.removed_documents == []
