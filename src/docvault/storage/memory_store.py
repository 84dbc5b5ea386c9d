"""In-memory shared bucket for testing and local development."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime

from docvault.storage.errors import ObjectNotFoundError, PathTraversalError
from docvault.storage.models import (
    BatchDeleteResult,
    ObjectListing,
    PresignedCredential,
    PresignOperation,
    StoredObject,
    StoredObjectMetadata,
)
from docvault.storage.object_store import DEFAULT_LIST_PAGE_SIZE, MAX_DELETE_BATCH, ObjectStore
from docvault.storage.signing import UrlSigner
from docvault.storage.tracing import traced_storage_operation


class InMemoryObjectStore(ObjectStore):
    """Dictionary-backed bucket with the same semantics as the S3 backend.

    Not durable; contents are lost when the process exits.
    """

    def __init__(
        self,
        *,
        bucket: str = "docvault-memory",
        presign_secret: str | None = None,
        page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ) -> None:
        self._objects: dict[str, StoredObject] = {}
        self._page_size = page_size
        self._signer = UrlSigner(bucket=bucket, secret=presign_secret)

    @property
    def backend_name(self) -> str:
        return "memory"

    @property
    def signer(self) -> UrlSigner:
        return self._signer

    def verify_credential(self, credential: str, operation: PresignOperation) -> str:
        return self._signer.verify(credential, operation)

    @property
    def object_count(self) -> int:
        return len(self._objects)

    @staticmethod
    def _check_key(key: str) -> None:
        if not key or "\x00" in key or any(part in ("", ".", "..") for part in key.split("/")):
            raise PathTraversalError(key=key)

    @traced_storage_operation("put")
    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        self._check_key(key)
        metadata = StoredObjectMetadata(
            key=key,
            sha256=hashlib.sha256(data).hexdigest(),
            size_bytes=len(data),
            content_type=content_type,
            created_at=datetime.now(UTC),
        )
        self._objects[key] = StoredObject(metadata=metadata, body=bytes(data))
        return metadata

    @traced_storage_operation("get")
    async def get(self, key: str) -> StoredObject:
        stored = self._objects.get(key)
        if stored is None:
            raise ObjectNotFoundError(key=key)
        return stored

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        if self._objects.pop(key, None) is None:
            raise ObjectNotFoundError(key=key)

    @traced_storage_operation("delete_batch")
    async def delete_batch(self, keys: list[str]) -> BatchDeleteResult:
        if len(keys) > MAX_DELETE_BATCH:
            raise ValueError(f"delete_batch accepts at most {MAX_DELETE_BATCH} keys")
        for key in keys:
            self._objects.pop(key, None)
        return BatchDeleteResult(deleted_keys=list(keys))

    @traced_storage_operation("list")
    async def list(
        self,
        prefix: str,
        continuation_token: str | None = None,
    ) -> ObjectListing:
        matched = sorted(
            key
            for key in self._objects
            if key.startswith(prefix) and (continuation_token is None or key > continuation_token)
        )
        page = matched[: self._page_size]
        next_token = page[-1] if len(matched) > self._page_size else None
        return ObjectListing(keys=page, next_token=next_token)

    @traced_storage_operation("presign", key_position=1)
    async def presign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
    ) -> PresignedCredential:
        self._check_key(key)
        return PresignedCredential(
            url=self._signer.sign(operation, key, expires_in),
            key=key,
            operation=operation,
            expires_in=expires_in,
        )
