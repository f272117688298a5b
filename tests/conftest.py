"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from knora.ingestion.models import Chunk, ProcessedDocument
from knora.retrieval.vector_store import VectorStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "threading: marks tests that exercise concurrent store access")


def build_document(file_path: str, *chunk_texts: str, file_size: int = 100) -> ProcessedDocument:
    """Build a ProcessedDocument whose chunks are exactly *chunk_texts*."""
    chunks = [Chunk(text=t, size=len(t) + 1, chunk_id=i) for i, t in enumerate(chunk_texts)]
    return ProcessedDocument(
        file_path=file_path,
        file_name=Path(file_path).name,
        file_type=Path(file_path).suffix or ".txt",
        text=" ".join(chunk_texts),
        chunks=chunks,
        file_size=file_size,
    )


@pytest.fixture()
def make_document() -> Callable[..., ProcessedDocument]:
    return build_document


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "vector_store"


@pytest.fixture()
def store(store_path: Path) -> VectorStore:
    return VectorStore(store_path, "all-MiniLM-L6-v2")
