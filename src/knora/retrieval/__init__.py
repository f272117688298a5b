"""
Retrieval: TF-IDF embedding, the persistent vector store, and search.

Public surface
--------------
- :class:`VectorStore`: JSON-persisted brute-force store.
- :class:`VectorStoreBase`: abstract backend interface.
- :class:`TfidfIndex`, :func:`cosine_similarity`: embedding primitives.
- :class:`SemanticRetriever`: default-k search and context formatting.
- :class:`ChunkRecord`, :class:`DocumentSummary`, :class:`SearchResult`,
  :class:`StoreStats`: data models.
"""

from knora.retrieval.base import VectorStoreBase
from knora.retrieval.models import ChunkRecord, DocumentSummary, SearchResult, StoreStats
from knora.retrieval.retriever import SemanticRetriever
from knora.retrieval.tfidf import TfidfIndex, cosine_similarity, tokenize
from knora.retrieval.vector_store import VectorStore

__all__ = [
    "ChunkRecord",
    "DocumentSummary",
    "SearchResult",
    "SemanticRetriever",
    "StoreStats",
    "TfidfIndex",
    "VectorStore",
    "VectorStoreBase",
    "cosine_similarity",
    "tokenize",
]
