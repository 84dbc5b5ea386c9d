"""PDF text extraction using pypdf.

Pages are read in document order; pages without a text layer are skipped.
Encrypted and malformed PDFs fail with a structured ExtractionError.
No OCR.
"""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError, PdfStreamError

from docvault.extraction.base import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionLimits,
    check_size,
    normalize_text,
)

logger = logging.getLogger(__name__)


def extract_pdf_text(data: bytes, limits: ExtractionLimits | None = None) -> str:
    """Extract text from PDF bytes, one block per page separated by blank lines.

    Raises:
        ExtractionError: If the PDF is oversized, malformed, encrypted or too long.
    """
    limits = limits or ExtractionLimits()
    check_size(data, limits)

    try:
        reader = PdfReader(io.BytesIO(data))
    except (PdfReadError, PdfStreamError, ValueError, KeyError, TypeError) as e:
        raise ExtractionError(
            ExtractionErrorCode.CORRUPTED_FILE,
            "Failed to read PDF file",
            details={"error": str(e)},
        ) from e

    if reader.is_encrypted:
        raise ExtractionError(
            ExtractionErrorCode.ENCRYPTED_PDF,
            "PDF is encrypted and cannot be read without password",
        )

    total_pages = len(reader.pages)
    if total_pages > limits.max_pages:
        raise ExtractionError(
            ExtractionErrorCode.MAX_PAGES_EXCEEDED,
            f"PDF has {total_pages} pages, exceeds limit {limits.max_pages}",
            details={"pages": total_pages, "limit": limits.max_pages},
        )

    blocks: list[str] = []
    for page_num, page in enumerate(reader.pages, start=1):
        try:
            page_text = page.extract_text() or ""
        except (PdfReadError, PdfStreamError, ValueError, KeyError) as e:
            logger.warning("Page %d: text extraction failed (%s)", page_num, e)
            continue

        page_text = normalize_text(page_text)
        if page_text:
            blocks.append(page_text)

    return "\n\n".join(blocks)
