"""Domain models for stored chunks, document summaries and search hits."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChunkRecord(BaseModel):
    """Persisted description of one chunk.

    A record's position in the store's record list is the only link to its
    vector; the two lists are always the same length.
    """

    file_path: str
    file_name: str
    file_type: str
    chunk_id: int
    chunk_size: int
    text: str


class DocumentSummary(BaseModel):
    """Per-document entry of ``document_map.json``, keyed by file path."""

    file_name: str
    file_type: str
    num_chunks: int
    file_size: int


class SearchResult(ChunkRecord):
    """A ranked chunk returned by :meth:`VectorStore.search`."""

    similarity_score: float

    @classmethod
    def from_record(cls, record: ChunkRecord, score: float) -> SearchResult:
        return cls(**record.model_dump(), similarity_score=score)


class StoreStats(BaseModel):
    """Snapshot returned by :meth:`VectorStore.get_stats`."""

    total_vectors: int
    total_documents: int
    embedding_model: str
    dimension: int
    store_path: str
    documents: list[str] = Field(default_factory=list)
    storage_size_mb: float = 0.0
