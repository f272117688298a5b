"""
Ingestion: format extraction, dispatch, and chunking.

This module converts files on disk (PDF, DOCX, PPTX, spreadsheets, CSV,
JSON, Markdown, plain text) into normalised text and splits that text
into overlapping chunks ready for indexing.

Public surface
--------------
- :class:`DocumentProcessor`: extension dispatch + chunking entry point.
- :class:`FileFormat`: closed set of supported formats.
- :class:`Chunk`, :class:`ProcessedDocument`: data models.
- :func:`create_chunks`: the sentence-greedy chunker.
"""

from knora.ingestion.chunker import create_chunks
from knora.ingestion.models import Chunk, ProcessedDocument
from knora.ingestion.processor import SUPPORTED_EXTENSIONS, DocumentProcessor, FileFormat

__all__ = [
    "Chunk",
    "DocumentProcessor",
    "FileFormat",
    "ProcessedDocument",
    "SUPPORTED_EXTENSIONS",
    "create_chunks",
]
