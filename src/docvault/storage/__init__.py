"""DocVault shared-bucket object storage.

One bucket holds every tenant's objects. Isolation is enforced in application
code: keys are built only by docvault.storage.keys and checked by
docvault.storage.guard.TenantGuard before any backend call.

Backends:
- FilesystemObjectStore: Local filesystem (dev/test)
- InMemoryObjectStore: Process memory (tests)
- S3ObjectStore: AWS S3 compatible (production)

Environment Variables:
    DOCVAULT_OBJECT_STORE_BACKEND: "filesystem", "memory" or "s3" (default: "filesystem")
    DOCVAULT_OBJECT_STORE_BASE_DIR: Base directory for filesystem backend
        (default: OS temp dir / docvault_objects)
"""

from docvault.storage.errors import (
    CredentialNotRedeemableError,
    InvalidKeyGeneratedError,
    InvalidStorageLocationError,
    ObjectNotFoundError,
    ObjectStorageError,
    PathTraversalError,
    StorageBackendError,
    UnauthorizedAccessError,
)
from docvault.storage.guard import TenantGuard
from docvault.storage.keys import Stage, StorageKey
from docvault.storage.models import (
    BatchDeleteResult,
    ObjectListing,
    PresignedCredential,
    PresignOperation,
    StoredObject,
    StoredObjectMetadata,
)
from docvault.storage.object_store import ObjectStore

__all__ = [
    "BatchDeleteResult",
    "CredentialNotRedeemableError",
    "InvalidKeyGeneratedError",
    "InvalidStorageLocationError",
    "ObjectListing",
    "ObjectNotFoundError",
    "ObjectStorageError",
    "ObjectStore",
    "PathTraversalError",
    "PresignOperation",
    "PresignedCredential",
    "Stage",
    "StorageBackendError",
    "StorageKey",
    "StoredObject",
    "StoredObjectMetadata",
    "TenantGuard",
    "UnauthorizedAccessError",
]
