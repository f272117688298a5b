"""Abstract base class for vector-store backends.

The retrieval facade and tests only talk to :class:`VectorStoreBase`, so an
alternative backend (an ANN index, a remote service) needs only to
subclass it and implement the abstract methods below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from knora.ingestion.models import ProcessedDocument
from knora.retrieval.models import SearchResult, StoreStats


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    embedding_model:
        Name of the embedding model; determines the vector dimension.
    """

    def __init__(self, embedding_model: str) -> None:
        self.embedding_model = embedding_model

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add_documents(self, documents: Sequence[ProcessedDocument]) -> None:
        """Index every chunk of *documents* and persist.

        Raises
        ------
        PersistenceError
            When the store could not be written.
        """
        ...

    @abstractmethod
    def search(self, query: str, k: int = 5, score_threshold: float = 0.0) -> list[SearchResult]:
        """Return up to *k* chunks ranked by similarity to *query*.

        Never raises on an empty store; returns ``[]`` instead.
        """
        ...

    @abstractmethod
    def get_stats(self) -> StoreStats:
        """Return counts, configuration and on-disk size."""
        ...

    @abstractmethod
    def delete_document(self, file_path: str) -> bool:
        """Remove every chunk of *file_path*; ``False`` if it is unknown."""
        ...

    @abstractmethod
    def clear_store(self) -> None:
        """Drop all indexed content, in memory and on disk."""
        ...

    # -- optional overrides ---------------------------------------------------

    def health_check(self) -> bool:
        """Return ``True`` when the backend is usable."""
        return True
