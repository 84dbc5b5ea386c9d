"""Extractor registry: format detection and extractor dispatch.

Binary formats are detected from magic bytes, not extension or MIME type.
Anything without a recognized signature is treated as UTF-8 text; bytes
that do not decode fail with a structured ExtractionError.
"""

from __future__ import annotations

import asyncio
import zipfile
from collections.abc import Callable
from io import BytesIO

from docvault.extraction.base import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionLimits,
)
from docvault.extraction.docx import extract_docx_text
from docvault.extraction.pdf import extract_pdf_text
from docvault.extraction.text import extract_plain_text
from docvault.extraction.xlsx import extract_xlsx_text

PDF_MAGIC = b"%PDF-"
ZIP_MAGIC = b"PK\x03\x04"

# Image and legacy OLE signatures carry no extractable text.
_UNSUPPORTED_MAGIC: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "PNG"),
    (b"\xff\xd8\xff", "JPEG"),
    (b"GIF87a", "GIF"),
    (b"GIF89a", "GIF"),
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", "OLE"),
)

Extractor = Callable[[bytes, ExtractionLimits], str]

_EXTRACTORS: dict[str, Extractor] = {
    "PDF": extract_pdf_text,
    "DOCX": extract_docx_text,
    "XLSX": extract_xlsx_text,
    "TEXT": extract_plain_text,
}


def _detect_zip_format(data: bytes) -> str | None:
    """Detect an Office Open XML format from ZIP contents."""
    try:
        with zipfile.ZipFile(BytesIO(data), "r") as zf:
            names = zf.namelist()
    except zipfile.BadZipFile:
        return None

    if "xl/workbook.xml" in names:
        return "XLSX"
    if "word/document.xml" in names:
        return "DOCX"
    return None


def detect_format(data: bytes) -> str | None:
    """Detect document format from magic bytes.

    Returns:
        "PDF", "DOCX", "XLSX", "TEXT", or None for recognized binary formats
        that carry no extractable text (images, legacy Office, other ZIPs).
    """
    if data[:5] == PDF_MAGIC:
        return "PDF"
    if data[:4] == ZIP_MAGIC:
        return _detect_zip_format(data)
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return None
    for magic, _name in _UNSUPPORTED_MAGIC:
        if data.startswith(magic):
            return None
    return "TEXT"


def extract_text(data: bytes, limits: ExtractionLimits | None = None) -> str:
    """Extract text from document bytes by detecting format and dispatching.

    Raises:
        ExtractionError: For empty input, unsupported formats, or extractor failures.
    """
    limits = limits or ExtractionLimits()

    if len(data) == 0:
        raise ExtractionError(ExtractionErrorCode.UNSUPPORTED_FORMAT, "Empty file")

    detected = detect_format(data)
    if detected is None:
        raise ExtractionError(
            ExtractionErrorCode.UNSUPPORTED_FORMAT,
            "Unknown or unsupported file format",
            details={"header_bytes": data[:16].hex()},
        )
    return _EXTRACTORS[detected](data, limits)


class DocumentTextExtractor:
    """TextExtractor collaborator backed by the local extractors.

    Extraction is CPU-bound and runs in a worker thread.
    """

    def __init__(self, limits: ExtractionLimits | None = None) -> None:
        self._limits = limits or ExtractionLimits()

    async def extract(self, data: bytes) -> str:
        return await asyncio.to_thread(extract_text, data, self._limits)
