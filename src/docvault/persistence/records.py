"""Metadata records and store contracts.

Records are immutable snapshots returned by the stores. The DocumentStore and
TenantStore protocols are what the services depend on; SQL repositories in
docvault.persistence.repositories implement them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class DocumentStatus(str, Enum):
    """Ingestion state of a document.

    PENDING -> EXTRACTED -> READY, or ERROR from any state.
    """

    PENDING = "PENDING"
    EXTRACTED = "EXTRACTED"
    READY = "READY"
    ERROR = "ERROR"


PROCESSABLE_STATUSES: tuple[DocumentStatus, ...] = (
    DocumentStatus.PENDING,
    DocumentStatus.EXTRACTED,
)

USER_STATUS_ACTIVE = "ACTIVE"


@dataclass(frozen=True)
class FolderRecord:
    """Folder row; only the allowed-roles fallback is used by DocVault."""

    id: str
    tenant_id: str
    name: str
    allowed_roles: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocumentRecord:
    """Document metadata row.

    Attributes:
        id: Document ID (also the key's document segment).
        tenant_id: Owning tenant.
        name: Stored (sanitized) filename.
        storage_key: Key of the raw object, or None if never uploaded.
        status: Ingestion status.
        original_name: Filename as supplied by the uploader.
        mime_type: Declared MIME type.
        size_bytes: Declared size.
        folder_id: Owning folder, if any.
        allowed_roles: Explicit role allow-list; empty means "inherit".
        extracted_text: Text persisted after extraction.
        metadata: Free-form JSON (carries "error" after a failed ingestion).
        folder: Owning folder row when loaded together with the document.
    """

    id: str
    tenant_id: str
    name: str
    storage_key: str | None
    status: DocumentStatus
    original_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    folder_id: str | None = None
    allowed_roles: tuple[str, ...] = ()
    extracted_text: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    deleted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    folder: FolderRecord | None = None

    @property
    def display_name(self) -> str:
        """Filename presented to downloaders."""
        return self.original_name or self.name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization (text excluded)."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "storage_key": self.storage_key,
            "status": self.status.value,
            "folder_id": self.folder_id,
            "allowed_roles": list(self.allowed_roles),
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class TenantRecord:
    """Tenant row."""

    id: str
    name: str
    status: str


@dataclass(frozen=True)
class TenantPurgeCounts:
    """Rows removed by TenantStore.delete_tenant_records."""

    documents: int
    folders: int
    users: int
    tenants: int

    def to_dict(self) -> dict[str, int]:
        return {
            "documents": self.documents,
            "folders": self.folders,
            "users": self.users,
            "tenants": self.tenants,
        }


@runtime_checkable
class DocumentStore(Protocol):
    """Document metadata store contract.

    Every lookup is scoped by tenant in the query itself.
    """

    async def find_document(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        """Find a non-deleted document by id AND tenant, with its folder loaded."""
        ...

    async def get_folder(self, folder_id: str, tenant_id: str) -> FolderRecord | None: ...

    async def create_document(
        self,
        *,
        document_id: str,
        tenant_id: str,
        name: str,
        storage_key: str,
        original_name: str | None = None,
        mime_type: str | None = None,
        size_bytes: int | None = None,
        folder_id: str | None = None,
        allowed_roles: list[str] | None = None,
    ) -> DocumentRecord: ...

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        extracted_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Set status, optionally persisting text and merging metadata."""
        ...

    async def soft_delete(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        """Set deleted_at on a live document of the tenant.

        Returns:
            The deleted record, or None if no live document matches id AND tenant.
        """
        ...

    async def list_processable(
        self,
        tenant_id: str,
        *,
        limit: int,
        folder_id: str | None = None,
    ) -> list[DocumentRecord]:
        """Non-deleted documents of a tenant in PENDING or EXTRACTED state."""
        ...

    async def tenants_with_pending(self) -> list[str]:
        """Distinct tenant IDs owning at least one PENDING or EXTRACTED document."""
        ...


@runtime_checkable
class TenantStore(Protocol):
    """Tenant store contract used by the deletion workflow."""

    async def get_tenant(self, tenant_id: str) -> TenantRecord | None: ...

    async def count_active_users(self, tenant_id: str) -> int: ...

    async def delete_tenant_records(self, tenant_id: str) -> TenantPurgeCounts:
        """Delete documents, folders, users, then the tenant, in one transaction."""
        ...
