"""Persistent brute-force vector store backed by three JSON files.

On-disk layout inside ``store_path``::

    metadata.json       flat list of chunk records, insertion order
    document_map.json   {file_path: document summary}
    config.json         {dimension, embedding_model, total_vectors, version}

Vectors are never written.  :meth:`VectorStore.load_store` re-embeds every
stored chunk text against the in-memory vocabulary, which is empty right
after construction; reloaded chunks therefore all carry the fallback
vector until :meth:`VectorStore.add_documents` grows the vocabulary again.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from knora.config import get_dimension, settings
from knora.exceptions import PersistenceError
from knora.ingestion.models import ProcessedDocument
from knora.retrieval.base import VectorStoreBase
from knora.retrieval.models import ChunkRecord, DocumentSummary, SearchResult, StoreStats
from knora.retrieval.tfidf import TfidfIndex

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
DOCUMENT_MAP_FILE = "document_map.json"
CONFIG_FILE = "config.json"
STORE_VERSION = "2.0.0"


def _dump_compact(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def directory_size(path: Path) -> int:
    """Sum the sizes of all files under *path*, skipping unreadable entries."""
    total = 0
    try:
        entries = list(os.scandir(path))
    except OSError:
        logger.warning("Could not list %s while measuring storage", path, exc_info=True)
        return 0

    for entry in entries:
        try:
            if entry.is_file(follow_symlinks=False):
                total += entry.stat(follow_symlinks=False).st_size
            elif entry.is_dir(follow_symlinks=False):
                total += directory_size(Path(entry.path))
        except OSError:
            logger.warning("Skipping %s while measuring storage", entry.path, exc_info=True)
    return total


class VectorStore(VectorStoreBase):
    """TF-IDF vector store with exact cosine search.

    All public operations run under one re-entrant lock, so the record list
    and the vector matrix are never observed out of step.

    Parameters
    ----------
    store_path:
        Directory holding the JSON files; created if missing.
    embedding_model:
        Model name used only to pick the vector dimension (384 or 768).
    """

    def __init__(
        self,
        store_path: str | Path = settings.vector_store_path,
        embedding_model: str = settings.embedding_model,
    ) -> None:
        super().__init__(embedding_model)
        self.store_path = Path(store_path)
        self.dimension = get_dimension(embedding_model)

        self._lock = threading.RLock()
        self._index = TfidfIndex(self.dimension)
        self._records: list[ChunkRecord] = []
        self._vectors: np.ndarray = self._empty_vectors()
        self._document_map: dict[str, DocumentSummary] = {}

        try:
            self.store_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create store directory {self.store_path}: {exc}") from exc

        self.load_store()

    # -- VectorStoreBase overrides --------------------------------------------

    def add_documents(self, documents: Sequence[ProcessedDocument]) -> None:
        new_records = [
            ChunkRecord(
                file_path=doc.file_path,
                file_name=doc.file_name,
                file_type=doc.file_type,
                chunk_id=chunk.chunk_id,
                chunk_size=chunk.size,
                text=chunk.text,
            )
            for doc in documents
            for chunk in doc.chunks
        ]
        if not new_records:
            return

        with self._lock:
            self._index.update_vocabulary(documents)
            embeddings = self._index.embed([r.text for r in new_records], len(self._records))

            self._vectors = np.vstack([self._vectors, embeddings])
            self._records = self._records + new_records

            for doc in documents:
                self._document_map[doc.file_path] = DocumentSummary(
                    file_name=doc.file_name,
                    file_type=doc.file_type,
                    num_chunks=doc.num_chunks,
                    file_size=doc.file_size,
                )

            self.save_store()
            logger.info(
                "Added %d vectors to store. Total: %d, vocabulary size: %d",
                len(new_records),
                len(self._records),
                len(self._index),
            )

    def search(self, query: str, k: int = 5, score_threshold: float = 0.0) -> list[SearchResult]:
        """Rank every stored chunk against *query*.

        The top *k* are taken first and only then filtered by
        ``score >= score_threshold``, so a low-scoring hit inside the top
        *k* is dropped rather than replaced.
        """
        with self._lock:
            if len(self._records) == 0 or k <= 0:
                return []

            query_vectors = self._index.embed([query], len(self._records))
            if query_vectors.shape[0] == 0:
                return []

            scores = self._score(query_vectors[0])
            order = np.argsort(-scores, kind="stable")[:k]

            return [
                SearchResult.from_record(self._records[idx], float(scores[idx]))
                for idx in order
                if scores[idx] >= score_threshold
            ]

    def get_stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(
                total_vectors=int(self._vectors.shape[0]),
                total_documents=len(self._document_map),
                embedding_model=self.embedding_model,
                dimension=self.dimension,
                store_path=str(self.store_path),
                documents=list(self._document_map),
                storage_size_mb=directory_size(self.store_path) / (1024.0 * 1024.0),
            )

    def delete_document(self, file_path: str) -> bool:
        with self._lock:
            if file_path not in self._document_map:
                return False

            keep = [idx for idx, record in enumerate(self._records) if record.file_path != file_path]
            if len(keep) != len(self._records):
                self._vectors = self._vectors[keep]
                self._records = [self._records[idx] for idx in keep]

            del self._document_map[file_path]
            self.save_store()
            logger.info("Deleted document %s; %d vectors remain", file_path, len(self._records))
            return True

    def clear_store(self) -> None:
        with self._lock:
            self._records = []
            self._vectors = self._empty_vectors()
            self._document_map = {}
            self._index.reset()

            try:
                if self.store_path.exists():
                    shutil.rmtree(self.store_path)
                self.store_path.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Failed to reset store directory {self.store_path}: {exc}") from exc

            logger.info("Vector store cleared")

    def health_check(self) -> bool:
        return self.store_path.is_dir()

    # -- extras -------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def vocabulary_size(self) -> int:
        with self._lock:
            return len(self._index)

    def documents(self) -> dict[str, DocumentSummary]:
        """Return a copy of the ``file_path → summary`` map."""
        with self._lock:
            return dict(self._document_map)

    # -- persistence ----------------------------------------------------------

    def save_store(self) -> None:
        """Write the three JSON files, one after another.

        Raises
        ------
        PersistenceError
            On serialisation or I/O failure.  In-memory state is left as is.
        """
        with self._lock:
            config = {
                "embedding_model": self.embedding_model,
                "dimension": self.dimension,
                "total_vectors": int(self._vectors.shape[0]),
                "version": STORE_VERSION,
            }
            try:
                (self.store_path / METADATA_FILE).write_text(
                    _dump_compact([r.model_dump() for r in self._records]), encoding="utf-8"
                )
                (self.store_path / DOCUMENT_MAP_FILE).write_text(
                    _dump_compact({path: s.model_dump() for path, s in self._document_map.items()}),
                    encoding="utf-8",
                )
                (self.store_path / CONFIG_FILE).write_text(
                    json.dumps(config, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8"
                )
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceError(f"Failed to save vector store to {self.store_path}: {exc}") from exc

            logger.info("Vector store saved to %s", self.store_path)

    def load_store(self) -> None:
        """Load records and summaries from disk and re-embed every chunk.

        A no-op when either data file is missing.
        """
        metadata_path = self.store_path / METADATA_FILE
        document_map_path = self.store_path / DOCUMENT_MAP_FILE

        with self._lock:
            if not metadata_path.exists() or not document_map_path.exists():
                logger.info("Vector store does not exist yet at %s", self.store_path)
                return

            try:
                raw_records = json.loads(metadata_path.read_text(encoding="utf-8"))
                raw_map = json.loads(document_map_path.read_text(encoding="utf-8"))
                records = [ChunkRecord.model_validate(item) for item in raw_records]
                document_map = {path: DocumentSummary.model_validate(s) for path, s in raw_map.items()}
            except (OSError, ValueError, TypeError, AttributeError, ValidationError) as exc:
                raise PersistenceError(f"Failed to load vector store from {self.store_path}: {exc}") from exc

            vectors = self._index.embed([r.text for r in records], len(records))
            if vectors.shape[0] == 0:
                vectors = self._empty_vectors()

            self._records = records
            self._vectors = vectors
            self._document_map = document_map

            logger.info(
                "Loaded vector store: %d vectors, %d documents",
                len(self._records),
                len(self._document_map),
            )

    # -- internals ------------------------------------------------------------

    def _empty_vectors(self) -> np.ndarray:
        return np.empty((0, self.dimension), dtype=np.float32)

    def _score(self, query_vector: np.ndarray) -> np.ndarray:
        """Cosine similarity of *query_vector* against every stored vector."""
        norms = np.linalg.norm(self._vectors, axis=1) * np.linalg.norm(query_vector)
        dots = self._vectors @ query_vector
        scores = np.zeros(len(dots), dtype=np.float64)
        np.divide(dots, norms, out=scores, where=norms > 0)
        return scores
