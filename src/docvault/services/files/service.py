"""File Service: tenant-guarded per-key operations on the shared bucket.

Every method runs TenantGuard.guard on each key it is given before the
bucket sees it; copy guards both keys. The credential methods redeem the
self-signed URLs of the filesystem and memory backends: the signature fixes
the key, the guard fixes the tenant.

Deleting a document soft-deletes its record (the row stays until tenant
deletion) and then removes the raw object. A failed object removal is logged
and reported, not raised, once the record is marked deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from docvault.config import Settings
from docvault.persistence.records import DocumentStore
from docvault.services.downloads.service import NotFoundOrForbiddenError
from docvault.services.uploads.service import FileTooLargeError
from docvault.storage import keys
from docvault.storage.errors import ObjectNotFoundError, ObjectStorageError
from docvault.storage.guard import TenantGuard
from docvault.storage.models import PresignOperation, StoredObject, StoredObjectMetadata
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentDeletion:
    """Outcome of a user document delete."""

    document_id: str
    storage_key: str | None
    object_deleted: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.document_id,
            "deleted": True,
            "storage_key": self.storage_key,
            "object_deleted": self.object_deleted,
        }


class FileService:
    """Single-key reads, writes, copies and deletes on behalf of one tenant."""

    def __init__(
        self,
        store: ObjectStore,
        documents: DocumentStore,
        guard: TenantGuard,
        settings: Settings,
    ) -> None:
        self._store = store
        self._documents = documents
        self._guard = guard
        self._settings = settings

    async def delete_file(self, key: str, tenant_id: str) -> None:
        """Delete one object of the tenant.

        Raises:
            UnauthorizedAccessError: If the key is not the tenant's.
            ObjectNotFoundError: If nothing is stored at the key.
        """
        self._guard.guard(key, tenant_id, "delete")
        logger.info("Deleting file", extra={"key": key, "tenant_id": tenant_id})
        await self._store.delete(key)

    async def copy_file(self, source_key: str, destination_key: str, tenant_id: str) -> str:
        """Copy an object to another key of the same tenant; returns the destination.

        Raises:
            UnauthorizedAccessError: If either key is not the tenant's.
            ObjectNotFoundError: If the source does not exist.
        """
        self._guard.guard(source_key, tenant_id, "copy")
        self._guard.guard(destination_key, tenant_id, "copy")

        source = await self._store.get(source_key)
        await self._store.put(
            destination_key, source.body, content_type=source.metadata.content_type
        )
        logger.info(
            "Copied file",
            extra={
                "source_key": source_key,
                "destination_key": destination_key,
                "tenant_id": tenant_id,
            },
        )
        return destination_key

    async def file_exists(self, key: str, tenant_id: str) -> bool:
        self._guard.guard(key, tenant_id, "exists")
        try:
            await self._store.get(key)
        except ObjectNotFoundError:
            return False
        return True

    async def list_tenant_files(self, tenant_id: str, sub_prefix: str | None = None) -> list[str]:
        """List the tenant's keys, optionally narrowed to a sub-prefix.

        sub_prefix is relative to tenants/{tenant_id}/ (e.g. "documents/raw/")
        and is stripped of traversal sequences before use.
        """
        prefix = keys.tenant_prefix(tenant_id)
        if sub_prefix:
            prefix += self._guard.sanitize_key(sub_prefix).lstrip("/")

        listed: list[str] = []
        token: str | None = None
        while True:
            page = await self._store.list(prefix, token)
            listed.extend(page.keys)
            token = page.next_token
            if not token:
                break
        return self._guard.filter_valid(listed, tenant_id)

    async def upload_with_credential(
        self,
        credential: str,
        tenant_id: str,
        data: bytes,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        """Store data at the key a PUT credential was issued for.

        Raises:
            CredentialNotRedeemableError: If the backend does not sign its own URLs.
            UnauthorizedAccessError: Invalid or expired credential, or a key
                outside the tenant.
            FileTooLargeError: If data exceeds the configured maximum.
        """
        key = self._store.verify_credential(credential, PresignOperation.PUT)
        self._guard.guard(key, tenant_id, "upload")

        max_bytes = self._settings.max_file_size_bytes
        if len(data) > max_bytes:
            logger.error(
                "Uploaded body exceeds limit",
                extra={"key": key, "size_bytes": len(data), "max_bytes": max_bytes},
            )
            raise FileTooLargeError(
                tenant_id=tenant_id, key=key, details={"size": len(data), "max_size": max_bytes}
            )

        metadata = await self._store.put(key, data, content_type=content_type)
        logger.info(
            "Stored uploaded object",
            extra={"key": key, "tenant_id": tenant_id, "size_bytes": metadata.size_bytes},
        )
        return metadata

    async def download_with_credential(self, credential: str, tenant_id: str) -> StoredObject:
        """Read the object a GET credential was issued for.

        Raises:
            CredentialNotRedeemableError: If the backend does not sign its own URLs.
            UnauthorizedAccessError: Invalid or expired credential, or a key
                outside the tenant.
            ObjectNotFoundError: If nothing is stored at the key.
        """
        key = self._store.verify_credential(credential, PresignOperation.GET)
        self._guard.guard(key, tenant_id, "download")
        return await self._store.get(key)

    async def delete_document(self, document_id: str, tenant_id: str) -> DocumentDeletion:
        """Soft-delete a document of the tenant, then remove its raw object.

        Raises:
            NotFoundOrForbiddenError: No live document with this id in the tenant.
        """
        document = await self._documents.soft_delete(document_id, tenant_id)
        if document is None:
            logger.warning(
                "Document not found for deletion",
                extra={"document_id": document_id, "tenant_id": tenant_id},
            )
            raise NotFoundOrForbiddenError(tenant_id=tenant_id)

        object_deleted = False
        if document.storage_key:
            try:
                await self.delete_file(document.storage_key, tenant_id)
                object_deleted = True
            except ObjectNotFoundError:
                # Already gone counts as removed.
                object_deleted = True
            except ObjectStorageError as e:
                logger.error(
                    "Failed to delete file from storage",
                    extra={
                        "document_id": document_id,
                        "key": document.storage_key,
                        "tenant_id": tenant_id,
                        "error": e.code,
                    },
                )

        logger.info(
            "Document deleted",
            extra={
                "document_id": document_id,
                "tenant_id": tenant_id,
                "object_deleted": object_deleted,
            },
        )
        return DocumentDeletion(
            document_id=document.id,
            storage_key=document.storage_key,
            object_deleted=object_deleted,
        )
