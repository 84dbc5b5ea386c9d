"""Upload Service: tenant-scoped upload keys and presigned PUT credentials.

Request flow (fail closed, no credential unless every step passes):
1. File type check against the allowed extension list
2. Size check against the configured ceiling
3. Key generation (codec) with immediate ownership/structure validation
4. Guard check for the "upload" operation
5. Presigned PUT scoped to exactly that key
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from docvault.config import Settings
from docvault.errors import DocvaultError
from docvault.storage import keys
from docvault.storage.errors import InvalidKeyGeneratedError
from docvault.storage.guard import TenantGuard
from docvault.storage.models import PresignOperation
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

MIME_TO_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "application/pdf": ("pdf",),
    "application/msword": ("doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ("docx",),
    "text/plain": ("txt",),
    "text/markdown": ("md",),
    "application/vnd.ms-excel": ("xls",),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ("xlsx",),
    "text/csv": ("csv",),
    "image/png": ("png",),
    "image/jpeg": ("jpg", "jpeg"),
    "image/gif": ("gif",),
    "image/webp": ("webp",),
}


class UnsupportedFileTypeError(DocvaultError):
    """Raised when neither the extension nor the MIME type is allowed."""

    code = "UNSUPPORTED_FILE_TYPE"
    http_status = 400
    default_message = "File type not allowed"


class FileTooLargeError(DocvaultError):
    """Raised when the declared size exceeds the configured maximum."""

    code = "FILE_TOO_LARGE"
    http_status = 413
    default_message = "File size exceeds maximum allowed size"


@dataclass(frozen=True)
class UploadCredential:
    """Presigned upload credential returned to the client.

    Attributes:
        credential: Presigned PUT URL for exactly one key.
        key: The key the client must upload to.
        filename: Original filename as supplied.
        expires_in: Credential lifetime in seconds.
    """

    credential: str
    key: str
    filename: str
    expires_in: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API response shape."""
        return {
            "credential": self.credential,
            "key": self.key,
            "filename": self.filename,
            "expiresIn": self.expires_in,
        }


def _file_extension(filename: str) -> str:
    """Text after the last dot, lowercased; empty when there is no dot."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


class UploadService:
    """Issues upload credentials for tenant-scoped keys."""

    def __init__(self, store: ObjectStore, guard: TenantGuard, settings: Settings) -> None:
        self._store = store
        self._guard = guard
        self._settings = settings

    def generate_key(
        self,
        tenant_id: str,
        filename: str,
        document_id: str | None = None,
    ) -> str:
        """Build a raw-stage key and verify it before anyone uses it.

        A missing document id is replaced with a fresh one so concurrent
        uploads of the same filename never share a key.

        Raises:
            InvalidParameterError: If tenant id or filename sanitize to empty.
            InvalidKeyGeneratedError: If the built key fails validation.
        """
        doc_id = document_id or uuid.uuid4().hex
        key = keys.build_key(tenant_id, doc_id, filename, keys.Stage.RAW)

        if not self._guard.validate(key, tenant_id):
            logger.error(
                "Generated storage key failed validation",
                extra={"key": key, "tenant_id": tenant_id},
            )
            raise InvalidKeyGeneratedError(tenant_id=tenant_id, key=key)

        logger.info(
            "Generated storage key",
            extra={"tenant_id": tenant_id, "key": key, "original_filename": filename},
        )
        return key

    def validate_file_type(
        self,
        mime_type: str | None,
        filename: str | None,
        allowed: tuple[str, ...] | list[str] | None = None,
    ) -> bool:
        """Check the file type; extension first, then the MIME table. Never raises."""
        if not filename:
            return False

        allowed_types = [t.strip().lower() for t in (allowed or self._settings.allowed_file_types)]
        extension = _file_extension(filename)

        if extension in allowed_types:
            return True

        extensions = MIME_TO_EXTENSIONS.get((mime_type or "").lower())
        if extensions and extension in extensions:
            return any(a in extensions for a in allowed_types)
        return False

    def validate_file_size(self, size: int, max_bytes: int | None = None) -> bool:
        limit = self._settings.max_file_size_bytes if max_bytes is None else max_bytes
        return 0 <= size <= limit

    async def request_upload_credential(
        self,
        tenant_id: str,
        filename: str,
        mime_type: str | None,
        size: int,
        document_id: str | None = None,
    ) -> UploadCredential:
        """Issue a presigned PUT credential for a new tenant-scoped key.

        Raises:
            UnsupportedFileTypeError: If the file type is not allowed.
            FileTooLargeError: If size is negative or above the maximum.
            InvalidParameterError: If the tenant id or filename is unusable.
            InvalidKeyGeneratedError: If the generated key fails validation.
            UnauthorizedAccessError: If the guard rejects the key.
        """
        if not self.validate_file_type(mime_type, filename):
            logger.error(
                "File type not allowed",
                extra={"mime_type": mime_type, "original_filename": filename},
            )
            raise UnsupportedFileTypeError(
                tenant_id=tenant_id, details={"mime_type": mime_type, "filename": filename}
            )

        if not self.validate_file_size(size):
            logger.error(
                "File size exceeds limit",
                extra={
                    "size_bytes": size,
                    "max_bytes": self._settings.max_file_size_bytes,
                    "original_filename": filename,
                },
            )
            raise FileTooLargeError(
                tenant_id=tenant_id,
                details={"size": size, "max_size": self._settings.max_file_size_bytes},
            )

        key = self.generate_key(tenant_id, filename, document_id)
        self._guard.guard(key, tenant_id, "upload")

        expires_in = self._settings.presign_expiry_seconds
        presigned = await self._store.presign(PresignOperation.PUT, key, expires_in)

        logger.info(
            "Issued upload credential",
            extra={"tenant_id": tenant_id, "key": key, "mime_type": mime_type},
        )
        return UploadCredential(
            credential=presigned.url,
            key=key,
            filename=filename,
            expires_in=expires_in,
        )

    def validate_upload_key(self, key: str | None, tenant_id: str | None) -> bool:
        """Confirm a client-reported key belongs to the tenant before registration."""
        return self._guard.validate(key, tenant_id)
