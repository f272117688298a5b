"""Semantic retriever: default-k search plus context assembly for answering.

Usage::

    from knora.retrieval import SemanticRetriever, VectorStore

    retriever = SemanticRetriever(VectorStore("data/vector_store"))
    results   = retriever.search("quarterly revenue by region")
    prompt_context = retriever.format_context(results)
"""

from __future__ import annotations

import logging
from typing import Any

from knora.config import settings
from knora.retrieval.base import VectorStoreBase
from knora.retrieval.models import SearchResult

logger = logging.getLogger(__name__)

MAX_CONTEXT_SOURCES = 5


class SemanticRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.  When *None*, a
        :class:`~knora.retrieval.vector_store.VectorStore` is created from
        the global settings.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score forwarded to the store.
    """

    def __init__(
        self,
        store: VectorStoreBase | None = None,
        *,
        default_k: int = settings.default_k,
        score_threshold: float = settings.score_threshold,
    ) -> None:
        if store is None:
            from knora.retrieval.vector_store import VectorStore

            store = VectorStore()
        self._store = store
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    def search(
        self,
        query: str,
        *,
        k: int | None = None,
        score_threshold: float | None = None,
    ) -> list[SearchResult]:
        """Run a search with the configured defaults filled in."""
        k = k or self.default_k
        threshold = self.score_threshold if score_threshold is None else score_threshold
        results = self._store.search(query, k, threshold)
        logger.info("Search query %r returned %d results", query, len(results))
        return results

    @staticmethod
    def format_context(results: list[SearchResult], max_sources: int = MAX_CONTEXT_SOURCES) -> str:
        """Join the top results as ``[Source n] text`` blocks separated by blank lines."""
        return "\n\n".join(
            f"[Source {i}] {result.text}" for i, result in enumerate(results[:max_sources], start=1)
        )

    @staticmethod
    def sources(results: list[SearchResult], max_sources: int = MAX_CONTEXT_SOURCES) -> list[dict[str, Any]]:
        """Return the citation fields of the results used in the context."""
        return [
            {
                "file_name": r.file_name,
                "file_path": r.file_path,
                "similarity_score": r.similarity_score,
                "chunk_id": r.chunk_id,
            }
            for r in results[:max_sources]
        ]
