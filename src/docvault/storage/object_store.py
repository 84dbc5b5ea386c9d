"""DocVault object storage interface definition.

Provides the ObjectStore interface that all storage backends must implement.
The store models ONE shared bucket: it has no notion of tenants. Tenant
isolation is the caller's responsibility and is enforced by TenantGuard before
any call into a store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docvault.storage.errors import CredentialNotRedeemableError
from docvault.storage.models import (
    BatchDeleteResult,
    ObjectListing,
    PresignedCredential,
    PresignOperation,
    StoredObject,
    StoredObjectMetadata,
)

# Bulk delete ceiling of S3-compatible backends.
MAX_DELETE_BATCH = 1000
DEFAULT_LIST_PAGE_SIZE = 1000


class ObjectStore(ABC):
    """Abstract base class for shared-bucket storage backends.

    Implementations:
    - FilesystemObjectStore: Local filesystem (dev/test)
    - InMemoryObjectStore: Process memory (tests)
    - S3ObjectStore: AWS S3 compatible (production)
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """"filesystem", "memory" or "s3"; reported by /health and on spans."""
        ...

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        """Store an object, overwriting any existing object at key.

        Raises:
            PathTraversalError: If key contains traversal sequences.
            StorageBackendError: If the backend cannot complete the write.
        """
        ...

    @abstractmethod
    async def get(self, key: str) -> StoredObject:
        """Retrieve an object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            PathTraversalError: If key contains traversal sequences.
            StorageBackendError: If the backend cannot complete the read.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a single object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            StorageBackendError: If the backend cannot complete the deletion.
        """
        ...

    @abstractmethod
    async def delete_batch(self, keys: list[str]) -> BatchDeleteResult:
        """Delete up to MAX_DELETE_BATCH objects in one request.

        Per-key failures are reported in the result, not raised.

        Raises:
            ValueError: If more than MAX_DELETE_BATCH keys are passed.
            StorageBackendError: If the request as a whole fails.
        """
        ...

    @abstractmethod
    async def list(
        self,
        prefix: str,
        continuation_token: str | None = None,
    ) -> ObjectListing:
        """List one page of keys under a prefix.

        Args:
            prefix: Key prefix; callers always pass a tenant-scoped prefix.
            continuation_token: Token from a previous page, or None.

        Returns:
            ObjectListing with keys and the next continuation token.

        Raises:
            StorageBackendError: If the backend cannot complete the listing.
        """
        ...

    @abstractmethod
    async def presign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
    ) -> PresignedCredential:
        """Issue a credential permitting one operation on exactly one key.

        Raises:
            PathTraversalError: If key contains traversal sequences.
            StorageBackendError: If the credential cannot be generated.
        """
        ...

    def verify_credential(self, credential: str, operation: PresignOperation) -> str:
        """Return the key a credential issued by this store is scoped to.

        Only backends that sign their own credentials redeem them here; S3
        credentials go straight to S3.

        Raises:
            CredentialNotRedeemableError: If this backend does not redeem credentials.
            UnauthorizedAccessError: If the credential is tampered, expired or
                issued for another operation.
        """
        raise CredentialNotRedeemableError(details={"backend": self.backend_name})
