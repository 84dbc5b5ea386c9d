"""DocVault object storage error types.

Provides typed exceptions for storage operations and tenant guard failures.
All errors are fail-closed: operations that cannot complete safely raise errors.
"""

from __future__ import annotations

from docvault.errors import DocvaultError


class ObjectStorageError(DocvaultError):
    """Base exception for object storage operations.

    Raised when a storage operation fails. Subclasses provide more specific
    error types for different failure modes.
    """

    code = "OBJECT_STORAGE_ERROR"
    http_status = 500
    default_message = "Object storage operation failed"


class ObjectNotFoundError(ObjectStorageError):
    """Raised when an object is not found in the bucket."""

    code = "OBJECT_NOT_FOUND"
    http_status = 404
    default_message = "Object not found"


class PathTraversalError(ObjectStorageError):
    """Raised when an object key contains path traversal sequences.

    This is a security error indicating an attempt to escape the storage
    sandbox via keys like "../", absolute paths, or other traversal patterns.
    """

    code = "PATH_TRAVERSAL"
    http_status = 400
    default_message = "Invalid key: path traversal detected"


class StorageBackendError(ObjectStorageError):
    """Raised when the storage backend cannot complete an operation.

    This error indicates the backend itself failed (e.g., disk full,
    permission denied, network error) rather than a logical error like
    object not found.
    """

    code = "STORAGE_BACKEND_ERROR"
    http_status = 502
    default_message = "Storage backend error"

    def __init__(
        self,
        message: str | None = None,
        *,
        tenant_id: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, tenant_id=tenant_id, key=key)
        self.cause = cause


class UnauthorizedAccessError(ObjectStorageError):
    """Raised by the tenant guard when a key does not belong to the caller's tenant."""

    code = "UNAUTHORIZED_ACCESS"
    http_status = 403
    default_message = "Unauthorized storage access"


class InvalidStorageLocationError(ObjectStorageError):
    """Raised when a stored record points at a key that is missing or foreign."""

    code = "INVALID_STORAGE_LOCATION"
    http_status = 403
    default_message = "Invalid document storage location"


class InvalidKeyGeneratedError(ObjectStorageError):
    """Raised when a freshly built key fails its own guard validation."""

    code = "INVALID_KEY_GENERATED"
    http_status = 500
    default_message = "Generated storage key failed tenant validation"


class CredentialNotRedeemableError(ObjectStorageError):
    """Raised when a backend's credentials are redeemed by the provider, not by DocVault."""

    code = "CREDENTIAL_NOT_REDEEMABLE"
    http_status = 400
    default_message = "Credentials of this storage backend are not redeemed by DocVault"
