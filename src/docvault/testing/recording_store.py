"""In-memory bucket that records every key and prefix handed to it.

Used to show that a service never reaches the bucket with a key outside the
calling tenant: run the service, then check keys_outside(tenant_id) is empty.
"""

from __future__ import annotations

from docvault.storage import keys
from docvault.storage.guard import TenantGuard
from docvault.storage.memory_store import InMemoryObjectStore
from docvault.storage.models import (
    BatchDeleteResult,
    ObjectListing,
    PresignedCredential,
    PresignOperation,
    StoredObject,
    StoredObjectMetadata,
)
from docvault.storage.object_store import DEFAULT_LIST_PAGE_SIZE


class RecordingObjectStore(InMemoryObjectStore):
    """InMemoryObjectStore that remembers its callers' keys.

    Attributes:
        touched: Every object key passed to put, get, delete, delete_batch
            or presign, in call order.
        fetched: Keys passed to get.
        prefixes: Prefixes passed to list.
    """

    def __init__(
        self,
        *,
        presign_secret: str | None = "test-secret",
        page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ) -> None:
        super().__init__(presign_secret=presign_secret, page_size=page_size)
        self.touched: list[str] = []
        self.fetched: list[str] = []
        self.prefixes: list[str] = []

    def clear_calls(self) -> None:
        """Forget recorded calls (e.g. after seeding fixtures)."""
        self.touched.clear()
        self.fetched.clear()
        self.prefixes.clear()

    def keys_outside(self, tenant_id: str) -> list[str]:
        """Recorded keys and prefixes that do not belong to tenant_id."""
        guard = TenantGuard()
        own_prefix = keys.tenant_prefix(tenant_id)
        foreign = [key for key in self.touched if not guard.validate(key, tenant_id)]
        foreign.extend(prefix for prefix in self.prefixes if not prefix.startswith(own_prefix))
        return foreign

    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        self.touched.append(key)
        return await super().put(key, data, content_type=content_type)

    async def get(self, key: str) -> StoredObject:
        self.touched.append(key)
        self.fetched.append(key)
        return await super().get(key)

    async def delete(self, key: str) -> None:
        self.touched.append(key)
        await super().delete(key)

    async def delete_batch(self, keys: list[str]) -> BatchDeleteResult:
        self.touched.extend(keys)
        return await super().delete_batch(keys)

    async def list(
        self,
        prefix: str,
        continuation_token: str | None = None,
    ) -> ObjectListing:
        self.prefixes.append(prefix)
        return await super().list(prefix, continuation_token)

    async def presign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
    ) -> PresignedCredential:
        self.touched.append(key)
        return await super().presign(operation, key, expires_in)
