"""Plain text extraction (txt, md, csv)."""

from __future__ import annotations

from docvault.extraction.base import (
    ExtractionError,
    ExtractionErrorCode,
    ExtractionLimits,
    check_size,
    normalize_text,
)

_UTF8_BOM = b"\xef\xbb\xbf"


def extract_plain_text(data: bytes, limits: ExtractionLimits | None = None) -> str:
    """Decode UTF-8 text (BOM tolerated) and normalize line endings.

    Raises:
        ExtractionError: If the bytes are oversized or not valid UTF-8.
    """
    limits = limits or ExtractionLimits()
    check_size(data, limits)

    if data.startswith(_UTF8_BOM):
        data = data[len(_UTF8_BOM) :]
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExtractionError(
            ExtractionErrorCode.INVALID_ENCODING,
            "Text file is not valid UTF-8",
            details={"position": e.start},
        ) from e

    if "\x00" in text:
        raise ExtractionError(
            ExtractionErrorCode.UNSUPPORTED_FORMAT,
            "Binary content is not extractable as text",
        )
    return normalize_text(text)
