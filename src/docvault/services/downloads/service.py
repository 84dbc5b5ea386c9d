"""Download Service: tenant-scoped document lookup and presigned GET credentials.

A document that does not exist, belongs to another tenant, or is hidden by
role restrictions yields the same NotFoundOrForbiddenError, so callers cannot
tell apart documents they may not see.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from docvault.config import Settings
from docvault.errors import DocvaultError
from docvault.persistence.records import DocumentRecord, DocumentStore
from docvault.services.downloads.access import DEFAULT_RESOLVERS, AccessResolver, resolve_access
from docvault.storage.errors import InvalidStorageLocationError
from docvault.storage.guard import TenantGuard
from docvault.storage.models import PresignOperation
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class NotFoundOrForbiddenError(DocvaultError):
    """Document missing, in another tenant, or not visible to the caller's roles."""

    code = "NOT_FOUND_OR_FORBIDDEN"
    http_status = 403
    default_message = "Document not found or access denied"


@dataclass(frozen=True)
class DownloadCredential:
    """Presigned download credential returned to the client."""

    credential: str
    document_id: str
    filename: str
    mime_type: str | None
    expires_in: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API response shape."""
        return {
            "credential": self.credential,
            "documentId": self.document_id,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "expiresIn": self.expires_in,
        }


class DownloadService:
    """Issues download credentials after tenant, role and key checks."""

    def __init__(
        self,
        documents: DocumentStore,
        store: ObjectStore,
        guard: TenantGuard,
        settings: Settings,
        resolvers: Sequence[AccessResolver] = DEFAULT_RESOLVERS,
    ) -> None:
        self._documents = documents
        self._store = store
        self._guard = guard
        self._settings = settings
        self._resolvers = tuple(resolvers)

    async def resolve_document(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        """Look up a live document by id AND tenant in a single query."""
        if not document_id or not tenant_id:
            return None
        return await self._documents.find_document(document_id, tenant_id)

    def check_role_access(
        self, document: DocumentRecord, user_roles: Sequence[str] | None
    ) -> bool:
        return resolve_access(document, user_roles, self._resolvers)

    async def _authorize(
        self,
        document_id: str,
        user_id: str | None,
        tenant_id: str,
        user_roles: Sequence[str] | None,
    ) -> tuple[DocumentRecord, str]:
        """Run every check; returns the document and its validated storage key."""
        document = await self.resolve_document(document_id, tenant_id)
        if document is None:
            logger.warning(
                "Document not found or tenant mismatch",
                extra={"document_id": document_id, "user_id": user_id, "tenant_id": tenant_id},
            )
            raise NotFoundOrForbiddenError(tenant_id=tenant_id)

        if not self.check_role_access(document, user_roles):
            logger.warning(
                "User lacks role access to document",
                extra={
                    "document_id": document_id,
                    "user_id": user_id,
                    "tenant_id": tenant_id,
                    "user_roles": list(user_roles or ()),
                },
            )
            raise NotFoundOrForbiddenError(tenant_id=tenant_id)

        if not document.storage_key:
            logger.error(
                "Document has no storage key",
                extra={"document_id": document_id, "tenant_id": tenant_id},
            )
            raise InvalidStorageLocationError(tenant_id=tenant_id)

        if not self._guard.validate(document.storage_key, tenant_id):
            logger.error(
                "Document storage key failed tenant validation",
                extra={
                    "document_id": document_id,
                    "key": document.storage_key,
                    "tenant_id": tenant_id,
                },
            )
            raise InvalidStorageLocationError(tenant_id=tenant_id, key=document.storage_key)

        return document, document.storage_key

    async def issue_download_credential(
        self,
        document_id: str,
        user_id: str | None,
        tenant_id: str,
        user_roles: Sequence[str] | None,
    ) -> DownloadCredential:
        """Issue a presigned GET credential scoped to the document's key.

        Raises:
            NotFoundOrForbiddenError: Missing record or failed role check.
            InvalidStorageLocationError: Empty key or key failing tenant validation.
        """
        document, key = await self._authorize(document_id, user_id, tenant_id, user_roles)

        expires_in = self._settings.presign_expiry_seconds
        presigned = await self._store.presign(PresignOperation.GET, key, expires_in)

        logger.info(
            "Issued download credential",
            extra={"document_id": document.id, "user_id": user_id, "tenant_id": tenant_id},
        )
        return DownloadCredential(
            credential=presigned.url,
            document_id=document.id,
            filename=document.display_name,
            mime_type=document.mime_type,
            expires_in=expires_in,
        )

    async def validate_access(
        self,
        document_id: str,
        user_id: str | None,
        tenant_id: str,
        user_roles: Sequence[str] | None,
    ) -> bool:
        """Run the same checks as issue_download_credential without issuing one."""
        try:
            await self._authorize(document_id, user_id, tenant_id, user_roles)
        except (NotFoundOrForbiddenError, InvalidStorageLocationError):
            return False
        return True
