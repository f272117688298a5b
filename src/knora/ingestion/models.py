"""Domain models produced by the ingestion layer."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class Chunk(BaseModel):
    """A bounded slice of a document's extracted text.

    Attributes
    ----------
    text:
        Trimmed chunk text; never empty.
    size:
        Running UTF-8 byte length recorded when the chunk was closed, including the
        single-space separators added while accumulating sentences.
    chunk_id:
        Ordinal within the owning document, starting at 0.
    """

    text: str = Field(min_length=1)
    size: int = Field(ge=0)
    chunk_id: int = Field(ge=0)


class ProcessedDocument(BaseModel):
    """One ingested file together with its chunks.

    ``num_chunks`` is always ``len(chunks)``; it is recomputed on
    construction so callers cannot hand in an inconsistent count.
    """

    file_path: str
    file_name: str
    file_type: str
    text: str
    chunks: list[Chunk] = Field(default_factory=list)
    num_chunks: int = 0
    file_size: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _derive_num_chunks(cls, data: object) -> object:
        if isinstance(data, dict):
            chunks = data.get("chunks") or []
            data = {**data, "num_chunks": len(chunks)}
        return data
