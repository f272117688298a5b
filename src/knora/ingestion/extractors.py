"""Per-format text extractors.

Every public ``extract_*`` function takes a path and returns plain text.
Format-specific problems are raised as :class:`ExtractionFailedError`;
anything else bubbles up and is wrapped by the dispatcher in
:mod:`knora.ingestion.processor`.

PDF and Office Open XML formats have hand-rolled fallbacks:

* :func:`scan_pdf_text` walks raw PDF bytes looking for ``BT``/``ET`` text
  objects and pulls out parenthesised literal strings.  It is used when the
  regular PDF loader yields nothing.
* :func:`strip_xml_tags` is a single-pass tag stripper used for
  ``word/document.xml`` and ``ppt/slides/slide*.xml``.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from langchain_community.document_loaders import PyPDFLoader, TextLoader
from openpyxl import load_workbook

from knora.exceptions import ExtractionFailedError

logger = logging.getLogger(__name__)

# Bytes treated as whitespace around BT/ET operators.
_PDF_WHITESPACE = frozenset(b" \t\n\r\x0c")
_SHEET_RULE = "─" * 50


def _read_text(path: Path) -> str:
    """Read a UTF-8 text file through the LangChain text loader."""
    docs = TextLoader(str(path), encoding="utf-8").load()
    return "".join(doc.page_content for doc in docs)


# ── Plain-text formats ────────────────────────────────────────────────


def extract_txt(path: str | Path) -> str:
    """Return the file contents unchanged."""
    text = _read_text(Path(path))
    logger.info("Extracted text from %s", path)
    return text


def extract_markdown(path: str | Path) -> str:
    """Lossy Markdown → text: strip list/heading markers and emphasis.

    Each line loses leading ``#``, spaces, ``-`` and ``*`` plus trailing
    ``*`` and ``_``; lines that end up empty are dropped.
    """
    content = _read_text(Path(path))
    lines = (line.lstrip("# -*").rstrip("*_") for line in content.splitlines())
    text = "\n".join(line for line in lines if line)
    logger.info("Extracted markdown from %s", path)
    return text


def render_json(value: Any) -> str:
    """Render a parsed JSON value as plain ``key: value`` lines."""
    if isinstance(value, dict):
        return "\n".join(f"{key}: {render_json(item)}" for key, item in value.items())
    if isinstance(value, list):
        return "\n".join(render_json(item) for item in value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def extract_json(path: str | Path) -> str:
    content = _read_text(Path(path))
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ExtractionFailedError(f"Failed to parse JSON: {exc}", str(path)) from exc
    logger.info("Extracted JSON from %s", path)
    return render_json(parsed)


def extract_csv(path: str | Path) -> str:
    """Render a CSV file as a ``" | "`` table under a ``Document:`` banner.

    Blank lines are skipped, and so are records whose field count differs
    from the header's.
    """
    path = Path(path)
    content = _read_text(path)

    records = (record for record in csv.reader(io.StringIO(content)) if record)
    lines = [f"Document: {path.name}", ""]

    header = next(records, None)
    if header is not None:
        lines.append(" | ".join(header))
        lines.append("---")
    for record in records:
        if header is not None and len(record) != len(header):
            logger.debug("Skipping ragged CSV record in %s: %r", path, record)
            continue
        lines.append(" | ".join(record))

    logger.info("Extracted CSV from %s", path)
    return "\n".join(lines) + "\n"


# ── Spreadsheets ──────────────────────────────────────────────────────


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def used_range(rows: Iterable[Sequence[Any]]) -> list[tuple[Any, ...]]:
    """Trim *rows* to the bounding box of the cells that hold a value.

    openpyxl reports sheets from ``A1``; this drops the empty rows and
    columns around the data so a table starting at ``C3`` renders without
    leading blank cells.
    """
    grid = [tuple(row) for row in rows]
    filled = [
        (r, c) for r, row in enumerate(grid) for c, value in enumerate(row) if value is not None
    ]
    if not filled:
        return []

    first_row = min(r for r, _ in filled)
    last_row = max(r for r, _ in filled)
    first_col = min(c for _, c in filled)
    last_col = max(c for _, c in filled)
    width = last_col - first_col + 1

    trimmed = []
    for row in grid[first_row : last_row + 1]:
        cells = row[first_col : last_col + 1]
        trimmed.append(cells + (None,) * (width - len(cells)))
    return trimmed


def extract_excel(path: str | Path) -> str:
    """Render every worksheet as ``Sheet: <name>``, a rule, and ``|`` rows.

    Only the used range of each sheet is rendered.  A sheet that cannot be
    read is logged and skipped; only failing to open the workbook itself is
    fatal.
    """
    try:
        workbook = load_workbook(str(path), read_only=True, data_only=True)
    except Exception as exc:
        raise ExtractionFailedError(f"Failed to open Excel file: {exc}", str(path)) from exc

    parts: list[str] = []
    try:
        for sheet_name in workbook.sheetnames:
            parts.append(f"Sheet: {sheet_name}\n{_SHEET_RULE}\n")
            try:
                rows = [
                    " | ".join(_cell_text(cell) for cell in row)
                    for row in used_range(workbook[sheet_name].iter_rows(values_only=True))
                ]
            except Exception:
                logger.warning("Could not read sheet %s", sheet_name, exc_info=True)
            else:
                parts.extend(f"{row}\n" for row in rows)
            parts.append("\n")
    finally:
        workbook.close()

    logger.info("Extracted Excel from %s", path)
    return "".join(parts)


# ── PDF ───────────────────────────────────────────────────────────────


def scan_pdf_text(content: bytes) -> str:
    """Pull literal strings out of ``BT ... ET`` text objects in raw PDF bytes.

    ``BT`` must be preceded and ``ET`` followed by whitespace (or the buffer
    edge).  Inside a text object every ``( ... )`` literal is read with
    backslash escapes skipped and nested parentheses balanced; printable
    ASCII is kept, CR/LF become spaces.  Text objects are newline-joined and
    the result is whitespace-collapsed.
    """
    size = len(content)
    objects: list[str] = []
    current: list[str] = []
    in_text_object = False
    i = 0

    while i < size:
        if content.startswith(b"BT", i) and (i == 0 or content[i - 1] in _PDF_WHITESPACE):
            in_text_object = True
            i += 2
            continue

        if (
            in_text_object
            and content.startswith(b"ET", i)
            and (i + 2 >= size or content[i + 2] in _PDF_WHITESPACE)
        ):
            in_text_object = False
            text = "".join(current)
            if text.strip():
                objects.append(text)
            current = []
            i += 2
            continue

        if in_text_object and content[i] == ord("("):
            j = i + 1
            depth = 1
            while j < size and depth > 0:
                byte = content[j]
                if byte == ord("\\") and j + 1 < size:
                    j += 2
                    continue
                if byte == ord("("):
                    depth += 1
                elif byte == ord(")"):
                    depth -= 1
                j += 1

            if j > i + 1:
                for byte in content[i + 1 : j - 1]:
                    if 32 <= byte <= 126:
                        current.append(chr(byte))
                    elif byte in (ord("\n"), ord("\r")):
                        current.append(" ")
                current.append(" ")
            i = j
            continue

        i += 1

    return " ".join("\n".join(objects).split())


def extract_pdf(path: str | Path) -> str:
    """Extract PDF text with the PDF loader, falling back to :func:`scan_pdf_text`."""
    path = Path(path)
    try:
        pages = PyPDFLoader(str(path)).load()
        text = "\n".join(page.page_content for page in pages)
        if text.strip():
            logger.info("Extracted PDF from %s using the PDF loader", path)
            return text
    except Exception:
        logger.warning("PDF loader failed for %s, trying byte-level fallback", path, exc_info=True)

    try:
        content = path.read_bytes()
    except OSError as exc:
        raise ExtractionFailedError(f"Failed to read PDF file: {exc}", str(path)) from exc

    text = scan_pdf_text(content)
    if not text:
        logger.warning("No text extracted from PDF %s", path)
        raise ExtractionFailedError(
            "Could not extract text from PDF - file may be image-based or encrypted", str(path)
        )

    logger.info("Extracted PDF from %s using byte-level fallback", path)
    return text


# ── Office Open XML ───────────────────────────────────────────────────


def strip_xml_tags(xml: str) -> str:
    """Drop every ``<...>`` tag and whitespace-normalise what is left.

    Text runs are flushed with a trailing space whenever a tag opens, so
    adjacent runs split by markup do not fuse together.
    """
    pieces: list[str] = []
    current: list[str] = []
    inside_tag = False

    for ch in xml:
        if ch == "<":
            inside_tag = True
            if current:
                pieces.append("".join(current))
                pieces.append(" ")
                current = []
        elif ch == ">":
            inside_tag = False
        elif not inside_tag:
            current.append(ch)

    if current:
        pieces.append("".join(current))

    return " ".join("".join(pieces).split())


def _open_archive(path: Path, kind: str) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ExtractionFailedError(f"Failed to read {kind} archive: {exc}", str(path)) from exc


def extract_docx(path: str | Path) -> str:
    path = Path(path)
    with _open_archive(path, "DOCX") as archive:
        try:
            xml = archive.read("word/document.xml").decode("utf-8")
        except KeyError as exc:
            raise ExtractionFailedError("Failed to find document.xml in DOCX", str(path)) from exc
        except (UnicodeDecodeError, zipfile.BadZipFile) as exc:
            raise ExtractionFailedError(f"Failed to read document.xml: {exc}", str(path)) from exc

    logger.info("Extracted DOCX from %s", path)
    return strip_xml_tags(xml)


def extract_pptx(path: str | Path) -> str:
    """Concatenate the text of every ``ppt/slides/slide*.xml`` entry."""
    path = Path(path)
    slides: list[str] = []
    with _open_archive(path, "PPTX") as archive:
        for name in archive.namelist():
            if not (name.startswith("ppt/slides/slide") and name.endswith(".xml")):
                continue
            try:
                xml = archive.read(name).decode("utf-8", errors="ignore")
            except (KeyError, zipfile.BadZipFile):
                logger.warning("Could not read slide %s in %s", name, path, exc_info=True)
                continue
            slides.append(strip_xml_tags(xml) + "\n")

    text = "".join(slides)
    if not text.strip():
        raise ExtractionFailedError("No text content found in PPTX file", str(path))

    logger.info("Extracted PPTX from %s", path)
    return text


def extract_doc(path: str | Path) -> str:
    """Legacy binary Word documents are not supported."""
    logger.warning("DOC extraction requested for %s", path)
    raise ExtractionFailedError(
        "DOC files require conversion to DOCX or TXT. "
        "Please convert your file using Microsoft Word or LibreOffice.",
        str(path),
    )
