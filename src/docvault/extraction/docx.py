"""DOCX text extraction using python-docx.

Paragraphs come first in document order, then table cells row by row.
"""

from __future__ import annotations

import io
import zipfile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from docvault.extraction.base import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionLimits,
    check_size,
    normalize_text,
)


def extract_docx_text(data: bytes, limits: ExtractionLimits | None = None) -> str:
    """Extract text from DOCX bytes.

    Raises:
        ExtractionError: If the file is oversized or not a valid DOCX package.
    """
    limits = limits or ExtractionLimits()
    check_size(data, limits)

    try:
        doc = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ExtractionError(
            ExtractionErrorCode.CORRUPTED_FILE,
            "Invalid DOCX file: not a valid Office Open XML package",
            details={"error": str(e)},
        ) from e

    parts: list[str] = []
    for paragraph in doc.paragraphs:
        text = normalize_text(paragraph.text)
        if text:
            parts.append(text)

    for table in doc.tables:
        for row in table.rows:
            cells = [normalize_text(cell.text) for cell in row.cells]
            line = "\t".join(cell for cell in cells if cell)
            if line:
                parts.append(line)

    return "\n".join(parts)
