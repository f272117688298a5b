"""Sentence-greedy text chunking with overlapping tails."""

from __future__ import annotations

import logging
import re

from knora.ingestion.models import Chunk

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"[.!?\n]")


def byte_length(text: str) -> int:
    """Length of *text* in UTF-8 bytes, the unit for chunk sizes and overlaps."""
    return len(text.encode("utf-8"))


def split_sentences(text: str) -> list[str]:
    """Split *text* on ``. ! ? \\n`` and drop empty, trimmed units."""
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def overlap_tail(text: str, chunk_overlap: int) -> str:
    """Return the tail of *text* used to seed the next chunk.

    The window is the last *chunk_overlap* UTF-8 bytes, advanced to the next
    character boundary.  Prefers starting just after the first ``". "`` in
    the window, then after its last space, so the seed does not begin
    mid-word.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= chunk_overlap:
        return text

    # Dropping leading continuation bytes lands on a character boundary.
    tail = encoded[len(encoded) - chunk_overlap :].decode("utf-8", errors="ignore")

    sentence_break = tail.find(". ")
    if sentence_break != -1:
        return tail[sentence_break + 2 :]

    word_break = tail.rfind(" ")
    if word_break != -1:
        return tail[word_break + 1 :]

    return tail


def create_chunks(text: str, chunk_size: int = 1000, chunk_overlap: int = 200) -> list[Chunk]:
    """Split *text* into overlapping chunks.

    Parameters
    ----------
    text:
        Full extracted document text.
    chunk_size:
        Target chunk length in UTF-8 bytes.  A single sentence longer than
        this still becomes one chunk.
    chunk_overlap:
        Maximum number of trailing bytes carried into the next chunk.

    Returns
    -------
    list[Chunk]
        Chunks with contiguous ``chunk_id`` values starting at 0.  Empty or
        whitespace-only input yields an empty list.
    """
    if not text.strip():
        return []

    chunks: list[Chunk] = []
    current = ""
    current_size = 0

    for sentence in split_sentences(text):
        if current_size + byte_length(sentence) > chunk_size and current:
            chunks.append(Chunk(text=current.strip(), size=current_size, chunk_id=len(chunks)))
            current = f"{overlap_tail(current, chunk_overlap)} {sentence}"
            current_size = byte_length(current)
        else:
            if current:
                current += " "
            current += sentence
            current_size += byte_length(sentence) + 1

    if current.strip():
        chunks.append(Chunk(text=current.strip(), size=current_size, chunk_id=len(chunks)))

    logger.info("Created %d chunks from text", len(chunks))
    return chunks
