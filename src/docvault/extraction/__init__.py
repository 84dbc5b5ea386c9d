"""DocVault text extraction (PDF, DOCX, XLSX, plain text)."""

from docvault.extraction.base import ExtractionError, ExtractionErrorCode, ExtractionLimits
from docvault.extraction.registry import DocumentTextExtractor, detect_format, extract_text

__all__ = [
    "DocumentTextExtractor",
    "ExtractionError",
    "ExtractionErrorCode",
    "ExtractionLimits",
    "detect_format",
    "extract_text",
]
