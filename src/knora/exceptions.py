"""Error taxonomy shared by the ingestion and retrieval layers."""

from __future__ import annotations

from collections.abc import Sequence


class KnoraError(Exception):
    """Base class for every error raised by the engine."""


class NotFoundError(KnoraError):
    """The input file does not exist."""

    def __init__(self, file_path: str) -> None:
        super().__init__(f"File not found: {file_path}")
        self.file_path = file_path


class UnsupportedFormatError(KnoraError):
    """The file extension is missing or not in the supported set."""

    def __init__(self, extension: str | None, supported: Sequence[str], file_path: str = "") -> None:
        if extension:
            message = f"Unsupported file format: {extension}. Supported formats: {list(supported)}"
        else:
            message = f"Cannot determine file extension for file: {file_path}"
        super().__init__(message)
        self.extension = extension
        self.supported = list(supported)
        self.file_path = file_path


class ExtractionFailedError(KnoraError):
    """A format-specific extractor could not produce text.

    The underlying exception, if any, is available as ``__cause__``.
    """

    def __init__(self, message: str, file_path: str = "") -> None:
        super().__init__(message)
        self.file_path = file_path


class EmptyContentError(KnoraError):
    """Extraction succeeded but produced only whitespace."""

    def __init__(self, file_path: str) -> None:
        super().__init__(f"No text content could be extracted from file: {file_path}")
        self.file_path = file_path


class PersistenceError(KnoraError):
    """Serialising or writing/reading the store files failed."""
