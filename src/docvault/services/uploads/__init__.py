"""Upload credential issuance."""

from docvault.services.uploads.service import (
    MIME_TO_EXTENSIONS,
    FileTooLargeError,
    UnsupportedFileTypeError,
    UploadCredential,
    UploadService,
)

__all__ = [
    "MIME_TO_EXTENSIONS",
    "FileTooLargeError",
    "UnsupportedFileTypeError",
    "UploadCredential",
    "UploadService",
]
