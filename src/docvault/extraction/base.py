"""Base types for text extraction, shared across all extractors.

Provides:
- ExtractionErrorCode: Standardized failure codes
- ExtractionError: DocvaultError carrying one of those codes
- ExtractionLimits: Configurable bounds to prevent resource exhaustion
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from docvault.errors import DocvaultError


class ExtractionErrorCode(str, Enum):
    """Standardized error codes for extraction failures."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    CORRUPTED_FILE = "corrupted_file"
    ENCRYPTED_PDF = "encrypted_pdf"
    MAX_PAGES_EXCEEDED = "max_pages_exceeded"
    MAX_SHEETS_EXCEEDED = "max_sheets_exceeded"
    MAX_CELLS_EXCEEDED = "max_cells_exceeded"
    MAX_SIZE_EXCEEDED = "max_size_exceeded"
    INVALID_ENCODING = "invalid_encoding"


class ExtractionError(DocvaultError):
    """Raised when a document's text cannot be extracted."""

    code = "EXTRACTION_FAILED"
    http_status = 422
    default_message = "Failed to extract document text"

    def __init__(
        self,
        reason: ExtractionErrorCode,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details={"reason": reason.value, **(details or {})})
        self.reason = reason


@dataclass(frozen=True, slots=True)
class ExtractionLimits:
    """Configurable extraction bounds.

    Attributes:
        max_bytes: Maximum file size in bytes (default 50MB).
        max_pages: Maximum PDF pages to process (default 500).
        max_sheets: Maximum XLSX sheets to process (default 50).
        max_total_cells: Maximum non-empty cells across all sheets (default 500,000).
    """

    max_bytes: int = 50 * 1024 * 1024
    max_pages: int = 500
    max_sheets: int = 50
    max_total_cells: int = 500_000


def normalize_text(text: str) -> str:
    """Normalize line endings and strip trailing whitespace per line."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def check_size(data: bytes, limits: ExtractionLimits) -> None:
    """Raise MAX_SIZE_EXCEEDED if data is larger than the configured limit."""
    if len(data) > limits.max_bytes:
        raise ExtractionError(
            ExtractionErrorCode.MAX_SIZE_EXCEEDED,
            f"File size {len(data)} bytes exceeds limit {limits.max_bytes}",
            details={"size": len(data), "limit": limits.max_bytes},
        )
