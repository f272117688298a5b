"""Extraction dispatcher: extension → extractor → chunks.

Usage::

    from knora.ingestion import DocumentProcessor

    processor = DocumentProcessor(chunk_size=1000, chunk_overlap=200)
    document  = processor.process("/tmp/upload-3f2a", display_name="report.pdf")
    print(document.file_type, document.num_chunks)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path
from typing import Any

from knora.config import settings
from knora.exceptions import (
    EmptyContentError,
    ExtractionFailedError,
    KnoraError,
    NotFoundError,
    UnsupportedFormatError,
)
from knora.ingestion import extractors
from knora.ingestion.chunker import byte_length, create_chunks
from knora.ingestion.models import ProcessedDocument

logger = logging.getLogger(__name__)


class FileFormat(str, Enum):
    """Closed set of supported file formats, valued by their extension."""

    PDF = ".pdf"
    TXT = ".txt"
    DOC = ".doc"
    DOCX = ".docx"
    CSV = ".csv"
    XLSX = ".xlsx"
    XLS = ".xls"
    MD = ".md"
    PPTX = ".pptx"
    JSON = ".json"

    @classmethod
    def from_extension(cls, extension: str) -> FileFormat | None:
        try:
            return cls(extension.lower())
        except ValueError:
            return None


SUPPORTED_EXTENSIONS: list[str] = [fmt.value for fmt in FileFormat]

_EXTRACTORS: dict[FileFormat, Callable[[Path], str]] = {
    FileFormat.TXT: extractors.extract_txt,
    FileFormat.MD: extractors.extract_markdown,
    FileFormat.JSON: extractors.extract_json,
    FileFormat.CSV: extractors.extract_csv,
    FileFormat.XLSX: extractors.extract_excel,
    FileFormat.XLS: extractors.extract_excel,
    FileFormat.PDF: extractors.extract_pdf,
    FileFormat.DOCX: extractors.extract_docx,
    FileFormat.DOC: extractors.extract_doc,
    FileFormat.PPTX: extractors.extract_pptx,
}


def resolve_extension(path: Path, display_name: str | None = None) -> str | None:
    """Return the lower-cased ``.ext`` of *display_name*, else of *path*."""
    for candidate in (display_name, path.name):
        if candidate:
            suffix = Path(candidate).suffix
            if suffix and suffix != ".":
                return suffix.lower()
    return None


class DocumentProcessor:
    """Turn files on disk into :class:`ProcessedDocument` instances.

    The processor holds only its two chunking integers and is safe to share
    between threads.

    Parameters
    ----------
    chunk_size:
        Target chunk length in UTF-8 bytes.
    chunk_overlap:
        Bytes carried from the end of one chunk into the next.
    """

    def __init__(
        self,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
    ) -> None:
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    # -- public API -----------------------------------------------------------

    @staticmethod
    def supported_formats() -> list[str]:
        """Return the supported extensions, dot included."""
        return list(SUPPORTED_EXTENSIONS)

    def extract_text(self, file_path: str | Path, display_name: str | None = None) -> tuple[str, FileFormat]:
        """Resolve the format of *file_path* and return its raw extracted text.

        Raises
        ------
        NotFoundError
            *file_path* does not exist.
        UnsupportedFormatError
            The extension is missing or not in :data:`SUPPORTED_EXTENSIONS`.
        ExtractionFailedError
            The format-specific extractor failed.
        """
        path = Path(file_path)
        if not path.exists():
            raise NotFoundError(str(file_path))

        extension = resolve_extension(path, display_name)
        fmt = FileFormat.from_extension(extension) if extension else None
        if fmt is None:
            raise UnsupportedFormatError(extension, SUPPORTED_EXTENSIONS, str(file_path))

        try:
            text = _EXTRACTORS[fmt](path)
        except ExtractionFailedError:
            raise
        except Exception as exc:
            raise ExtractionFailedError(
                f"Error extracting {fmt.value} file {path.name}: {exc}", str(file_path)
            ) from exc

        return text, fmt

    def process(self, file_path: str | Path, display_name: str | None = None) -> ProcessedDocument:
        """Extract, validate and chunk one file.

        Parameters
        ----------
        file_path:
            Path of the bytes on disk (may be a staging name without extension).
        display_name:
            User-facing file name whose extension takes precedence.

        Returns
        -------
        ProcessedDocument
            Document with chunks computed and ``file_size`` read from disk.

        Raises
        ------
        EmptyContentError
            Extraction produced only whitespace.
        """
        text, fmt = self.extract_text(file_path, display_name)
        if not text.strip():
            raise EmptyContentError(str(file_path))

        chunks = create_chunks(text, self.chunk_size, self.chunk_overlap)
        path = Path(file_path)

        document = ProcessedDocument(
            file_path=str(file_path),
            file_name=path.name or "unknown",
            file_type=fmt.value,
            text=text,
            chunks=chunks,
            file_size=path.stat().st_size,
        )
        logger.info(
            "Successfully processed file: %s (%d bytes, %d chunks)",
            document.file_name,
            document.file_size,
            document.num_chunks,
        )
        return document

    def process_many(
        self, file_paths: Iterable[str | Path]
    ) -> tuple[list[ProcessedDocument], dict[str, KnoraError]]:
        """Process several files, collecting per-file failures instead of aborting.

        Returns
        -------
        tuple[list[ProcessedDocument], dict[str, KnoraError]]
            Successfully processed documents in input order, and the error
            raised for each path that failed.
        """
        documents: list[ProcessedDocument] = []
        failures: dict[str, KnoraError] = {}
        for file_path in file_paths:
            try:
                documents.append(self.process(file_path))
            except KnoraError as exc:
                logger.error("Error processing file %s: %s", file_path, exc)
                failures[str(file_path)] = exc
        return documents, failures

    def file_stats(self, file_path: str | Path, display_name: str | None = None) -> dict[str, Any]:
        """Summarise a file without indexing it."""
        document = self.process(file_path, display_name)
        return {
            "file_name": document.file_name,
            "file_type": document.file_type,
            "file_size": document.file_size,
            "num_chunks": document.num_chunks,
            "text_length": byte_length(document.text),
        }
