"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

# Embedding model name → vector dimension.  Unknown names fall back to 384.
EMBEDDING_DIMENSIONS: dict[str, int] = {
    "all-MiniLM-L6-v2": 384,
    "all-mpnet-base-v2": 768,
    "all-distilroberta-v1": 768,
    "paraphrase-MiniLM-L6-v2": 384,
    "paraphrase-mpnet-base-v2": 768,
}
DEFAULT_DIMENSION = 384


def get_dimension(embedding_model: str) -> int:
    """Return the vector dimension configured for *embedding_model*."""
    return EMBEDDING_DIMENSIONS.get(embedding_model, DEFAULT_DIMENSION)


class Settings(BaseSettings):
    """Engine-wide settings, populated from env vars or .env file."""

    # Storage
    vector_store_path: str = Field(default="data/vector_store", description="Directory holding the JSON store files")
    upload_dir: str = "data/uploads"

    # Embedding
    embedding_model: str = "all-MiniLM-L6-v2"

    # Chunking
    chunk_size: int = Field(default=1000, gt=0, description="Target chunk length in UTF-8 bytes")
    chunk_overlap: int = Field(default=200, ge=0, description="Bytes carried over between chunks")

    # Retrieval
    default_k: int = Field(default=5, ge=1)
    score_threshold: float = 0.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton: import `settings` wherever needed.
settings = Settings()
