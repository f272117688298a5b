"""Upload-directory housekeeping: storage listing and age-based cleanup.

Usage::

    from knora.retrieval import VectorStore
    from knora.storage import cleanup_old_files, storage_info

    info   = storage_info("data/uploads")
    report = cleanup_old_files(VectorStore(), "data/uploads", days=30)
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from pydantic import BaseModel, Field

from knora.config import settings
from knora.exceptions import PersistenceError
from knora.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_RETENTION_DAYS = 30


def _megabytes(size: int) -> float:
    return size / (1024.0 * 1024.0)


class StoredFile(BaseModel):
    """One regular file found in the upload directory."""

    name: str
    size_bytes: int = Field(ge=0)

    @property
    def size_mb(self) -> float:
        return _megabytes(self.size_bytes)


class StorageInfo(BaseModel):
    """Listing of the upload directory (top level only)."""

    upload_dir: str
    files: list[StoredFile] = Field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_size_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_size_mb(self) -> float:
        return _megabytes(self.total_size_bytes)


class CleanupReport(BaseModel):
    """Outcome of :func:`cleanup_old_files`.

    Attributes
    ----------
    deleted_files:
        Number of files actually removed from disk.
    freed_space_bytes:
        Sum of the sizes of the removed files.
    removed_documents:
        Store keys dropped because their file was removed.
    """

    deleted_files: int = 0
    freed_space_bytes: int = 0
    removed_documents: list[str] = Field(default_factory=list)

    @property
    def freed_space_mb(self) -> float:
        return _megabytes(self.freed_space_bytes)


def _regular_files(upload_dir: Path) -> list[os.DirEntry[str]]:
    if not upload_dir.exists():
        return []
    try:
        entries = list(os.scandir(upload_dir))
    except OSError:
        logger.warning("Failed to read upload directory %s", upload_dir, exc_info=True)
        return []
    return [entry for entry in entries if entry.is_file(follow_symlinks=False)]


def storage_info(upload_dir: str | Path = settings.upload_dir) -> StorageInfo:
    """List the regular files directly inside *upload_dir* with their sizes.

    A missing or unreadable directory yields an empty listing.
    """
    directory = Path(upload_dir)
    files: list[StoredFile] = []
    for entry in _regular_files(directory):
        try:
            files.append(StoredFile(name=entry.name, size_bytes=entry.stat(follow_symlinks=False).st_size))
        except OSError:
            logger.warning("Skipping %s while listing storage", entry.path, exc_info=True)

    info = StorageInfo(upload_dir=str(upload_dir), files=files)
    logger.info("Retrieved storage info: %d files, %.2f MB total", info.total_files, info.total_size_mb)
    return info


def _matching_documents(store: VectorStoreBase, removed: Path) -> list[str]:
    """Store keys that name *removed*, either as a path or as a bare file name."""
    target = removed.resolve()
    return [
        key
        for key in store.get_stats().documents
        if key == removed.name or Path(key).resolve() == target
    ]


def cleanup_old_files(
    store: VectorStoreBase,
    upload_dir: str | Path = settings.upload_dir,
    days: int = DEFAULT_RETENTION_DAYS,
    *,
    now: float | None = None,
) -> CleanupReport:
    """Delete upload files older than *days* and drop their documents from *store*.

    Age is judged by modification time.  A file that cannot be removed is
    logged and kept, and its store entries are left alone.  A store that
    fails to persist a deletion is logged; the sweep carries on.

    Parameters
    ----------
    store:
        Vector store whose documents mirror the upload directory.
    upload_dir:
        Directory to sweep; only its top-level regular files are considered.
    days:
        Retention period.  Files modified before ``now - days`` are removed.
    now:
        Reference timestamp (seconds since the epoch); defaults to the
        current time.

    Returns
    -------
    CleanupReport
        Counts of deleted files and freed bytes plus the removed store keys.
    """
    cutoff = (time.time() if now is None else now) - days * SECONDS_PER_DAY
    report = CleanupReport()

    for entry in _regular_files(Path(upload_dir)):
        try:
            stat = entry.stat(follow_symlinks=False)
            if stat.st_mtime >= cutoff:
                continue
            os.remove(entry.path)
        except OSError:
            logger.warning("Failed to delete old file %s", entry.path, exc_info=True)
            continue

        report.deleted_files += 1
        report.freed_space_bytes += stat.st_size

        for key in _matching_documents(store, Path(entry.path)):
            try:
                if store.delete_document(key):
                    report.removed_documents.append(key)
                    logger.info("Removed document from vector store: %s", key)
            except PersistenceError:
                logger.warning("Failed to delete document %s from vector store", key, exc_info=True)

    logger.info(
        "Cleanup: deleted %d files, freed %.2f MB",
        report.deleted_files,
        report.freed_space_mb,
    )
    return report
