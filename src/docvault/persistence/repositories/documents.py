"""Document metadata repositories.

Provides SQL persistence for document records plus an in-memory fallback for
development/testing without a database. Every lookup filters on tenant_id in
the query itself; there is no unscoped "get by id".
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, insert, select, update

from docvault.persistence.records import (
    PROCESSABLE_STATUSES,
    DocumentRecord,
    DocumentStatus,
    FolderRecord,
)
from docvault.persistence.schema import documents, folders

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class DocumentNotFoundError(Exception):
    """Raised when a status update targets a document that does not exist."""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


def _roles(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(role) for role in value)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on round trip.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlDocumentStore:
    """SQLAlchemy-backed DocumentStore.

    Blocking SQL runs in a worker thread via asyncio.to_thread; each call uses
    its own short transaction.
    """

    def __init__(self, engine: Engine) -> None:
        """Initialize repository.

        Args:
            engine: SQLAlchemy engine for the metadata database.
        """
        self._engine = engine

    def _row_to_record(self, row: Any) -> DocumentRecord:
        """Convert database row to DocumentRecord."""
        mapping = row._mapping
        folder = None
        if mapping.get("folder_ref_id") is not None:
            folder = FolderRecord(
                id=mapping["folder_ref_id"],
                tenant_id=mapping["folder_tenant_id"],
                name=mapping["folder_name"],
                allowed_roles=_roles(mapping["folder_allowed_roles"]),
            )

        return DocumentRecord(
            id=mapping["id"],
            tenant_id=mapping["tenant_id"],
            name=mapping["name"],
            storage_key=mapping["storage_key"],
            status=DocumentStatus(mapping["status"]),
            original_name=mapping["original_name"],
            mime_type=mapping["mime_type"],
            size_bytes=mapping["size_bytes"],
            folder_id=mapping["folder_id"],
            allowed_roles=_roles(mapping["allowed_roles"]),
            extracted_text=mapping["extracted_text"],
            metadata=dict(mapping["metadata"] or {}),
            deleted_at=_aware(mapping["deleted_at"]),
            created_at=_aware(mapping["created_at"]),
            updated_at=_aware(mapping["updated_at"]),
            folder=folder,
        )

    def _select_with_folder(self) -> Any:
        # Folder join is tenant-scoped too, so a foreign folder never leaks roles.
        joined = documents.outerjoin(
            folders,
            and_(
                documents.c.folder_id == folders.c.id,
                folders.c.tenant_id == documents.c.tenant_id,
            ),
        )
        return select(
            documents,
            folders.c.id.label("folder_ref_id"),
            folders.c.tenant_id.label("folder_tenant_id"),
            folders.c.name.label("folder_name"),
            folders.c.allowed_roles.label("folder_allowed_roles"),
        ).select_from(joined)

    def _find(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        stmt = self._select_with_folder().where(
            documents.c.id == document_id,
            documents.c.tenant_id == tenant_id,
            documents.c.deleted_at.is_(None),
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return self._row_to_record(row) if row is not None else None

    def _get_folder(self, folder_id: str, tenant_id: str) -> FolderRecord | None:
        stmt = select(folders).where(folders.c.id == folder_id, folders.c.tenant_id == tenant_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        if row is None:
            return None
        return FolderRecord(
            id=row.id,
            tenant_id=row.tenant_id,
            name=row.name,
            allowed_roles=_roles(row.allowed_roles),
        )

    def _create(self, values: dict[str, Any]) -> None:
        with self._engine.begin() as conn:
            conn.execute(insert(documents).values(**values))

    def _update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        extracted_text: str | None,
        metadata: dict[str, Any] | None,
    ) -> None:
        with self._engine.begin() as conn:
            row = conn.execute(
                select(documents.c.metadata).where(documents.c.id == document_id)
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(document_id)

            values: dict[str, Any] = {"status": status.value, "updated_at": datetime.now(UTC)}
            if extracted_text is not None:
                values["extracted_text"] = extracted_text
            if metadata:
                values["metadata"] = {**(row._mapping["metadata"] or {}), **metadata}

            conn.execute(update(documents).where(documents.c.id == document_id).values(**values))

    def _soft_delete(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        now = datetime.now(UTC)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(documents)
                .where(
                    documents.c.id == document_id,
                    documents.c.tenant_id == tenant_id,
                    documents.c.deleted_at.is_(None),
                )
                .values(deleted_at=now, updated_at=now)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(
                self._select_with_folder().where(documents.c.id == document_id)
            ).fetchone()
        return self._row_to_record(row)

    def _list_processable(
        self, tenant_id: str, limit: int, folder_id: str | None
    ) -> list[DocumentRecord]:
        stmt = self._select_with_folder().where(
            documents.c.tenant_id == tenant_id,
            documents.c.status.in_([status.value for status in PROCESSABLE_STATUSES]),
            documents.c.deleted_at.is_(None),
        )
        if folder_id is not None:
            stmt = stmt.where(documents.c.folder_id == folder_id)
        stmt = stmt.order_by(documents.c.created_at, documents.c.id).limit(limit)

        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [self._row_to_record(row) for row in rows]

    def _tenants_with_pending(self) -> list[str]:
        stmt = (
            select(documents.c.tenant_id)
            .where(
                documents.c.status.in_([status.value for status in PROCESSABLE_STATUSES]),
                documents.c.deleted_at.is_(None),
            )
            .group_by(documents.c.tenant_id)
            .order_by(documents.c.tenant_id)
        )
        with self._engine.connect() as conn:
            return [row.tenant_id for row in conn.execute(stmt).fetchall()]

    async def find_document(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        """Find a non-deleted document by id AND tenant (folder joined)."""
        return await asyncio.to_thread(self._find, document_id, tenant_id)

    async def get_folder(self, folder_id: str, tenant_id: str) -> FolderRecord | None:
        """Find a folder by id AND tenant."""
        return await asyncio.to_thread(self._get_folder, folder_id, tenant_id)

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
    ) -> DocumentRecord:
        """Insert a PENDING document record."""
        now = datetime.now(UTC)
        values = {
            "id": document_id,
            "tenant_id": tenant_id,
            "folder_id": folder_id,
            "name": name,
            "original_name": original_name,
            "mime_type": mime_type,
            "size_bytes": size_bytes,
            "storage_key": storage_key,
            "status": DocumentStatus.PENDING.value,
            "allowed_roles": list(allowed_roles) if allowed_roles else None,
            "metadata": {},
            "created_at": now,
        }
        await asyncio.to_thread(self._create, values)
        logger.info(
            "Created document record",
            extra={"document_id": document_id, "tenant_id": tenant_id},
        )
        return DocumentRecord(
            id=document_id,
            tenant_id=tenant_id,
            name=name,
            storage_key=storage_key,
            status=DocumentStatus.PENDING,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            folder_id=folder_id,
            allowed_roles=_roles(allowed_roles),
            created_at=now,
        )

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        extracted_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Set status, optionally persisting text and merging metadata."""
        await asyncio.to_thread(
            self._update_status, document_id, status, extracted_text, metadata
        )

    async def soft_delete(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        """Mark a live document of the tenant deleted; the row stays."""
        return await asyncio.to_thread(self._soft_delete, document_id, tenant_id)

    async def list_processable(
        self,
        tenant_id: str,
        *,
        limit: int,
        folder_id: str | None = None,
    ) -> list[DocumentRecord]:
        """Non-deleted PENDING/EXTRACTED documents of a tenant, oldest first."""
        return await asyncio.to_thread(self._list_processable, tenant_id, limit, folder_id)

    async def tenants_with_pending(self) -> list[str]:
        """Tenants owning at least one non-deleted PENDING or EXTRACTED document."""
        return await asyncio.to_thread(self._tenants_with_pending)


class InMemoryDocumentStore:
    """In-memory fallback DocumentStore for when no database is configured.

    Used for development/testing without database dependency.
    """

    def __init__(self) -> None:
        self._documents: dict[str, DocumentRecord] = {}
        self._folders: dict[str, FolderRecord] = {}

    def add_folder(self, folder: FolderRecord) -> None:
        """Seed a folder."""
        self._folders[folder.id] = folder

    def add_document(self, document: DocumentRecord) -> None:
        """Seed a document record as-is."""
        self._documents[document.id] = document

    def get_raw(self, document_id: str) -> DocumentRecord | None:
        """Return a record regardless of tenant or deletion (test inspection only)."""
        return self._documents.get(document_id)

    def _with_folder(self, document: DocumentRecord) -> DocumentRecord:
        folder = self._folders.get(document.folder_id) if document.folder_id else None
        if folder is not None and folder.tenant_id != document.tenant_id:
            folder = None
        return replace(document, folder=folder)

    async def find_document(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        document = self._documents.get(document_id)
        if document is None or document.tenant_id != tenant_id or document.deleted_at is not None:
            return None
        return self._with_folder(document)

    async def get_folder(self, folder_id: str, tenant_id: str) -> FolderRecord | None:
        folder = self._folders.get(folder_id)
        if folder is None or folder.tenant_id != tenant_id:
            return None
        return folder

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
    ) -> DocumentRecord:
        record = DocumentRecord(
            id=document_id,
            tenant_id=tenant_id,
            name=name,
            storage_key=storage_key,
            status=DocumentStatus.PENDING,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            folder_id=folder_id,
            allowed_roles=_roles(allowed_roles),
            created_at=datetime.now(UTC),
        )
        self._documents[document_id] = record
        return record

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        extracted_text: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        current = self._documents.get(document_id)
        if current is None:
            raise DocumentNotFoundError(document_id)
        changes: dict[str, Any] = {"status": status, "updated_at": datetime.now(UTC)}
        if extracted_text is not None:
            changes["extracted_text"] = extracted_text
        if metadata:
            changes["metadata"] = {**current.metadata, **metadata}
        self._documents[document_id] = replace(current, **changes)

    async def soft_delete(self, document_id: str, tenant_id: str) -> DocumentRecord | None:
        document = self._documents.get(document_id)
        if document is None or document.tenant_id != tenant_id or document.deleted_at is not None:
            return None
        now = datetime.now(UTC)
        deleted = replace(document, deleted_at=now, updated_at=now)
        self._documents[document_id] = deleted
        return self._with_folder(deleted)

    async def list_processable(
        self,
        tenant_id: str,
        *,
        limit: int,
        folder_id: str | None = None,
    ) -> list[DocumentRecord]:
        matched = [
            self._with_folder(document)
            for document in self._documents.values()
            if document.tenant_id == tenant_id
            and document.status in PROCESSABLE_STATUSES
            and document.deleted_at is None
            and (folder_id is None or document.folder_id == folder_id)
        ]
        return matched[:limit]

    async def tenants_with_pending(self) -> list[str]:
        return sorted(
            {
                document.tenant_id
                for document in self._documents.values()
                if document.status in PROCESSABLE_STATUSES and document.deleted_at is None
            }
        )

    def purge_tenant(self, tenant_id: str) -> tuple[int, int]:
        """Remove a tenant's documents and folders; returns (documents, folders)."""
        doc_ids = [d.id for d in self._documents.values() if d.tenant_id == tenant_id]
        folder_ids = [f.id for f in self._folders.values() if f.tenant_id == tenant_id]
        for doc_id in doc_ids:
            del self._documents[doc_id]
        for folder_id in folder_ids:
            del self._folders[folder_id]
        return len(doc_ids), len(folder_ids)
