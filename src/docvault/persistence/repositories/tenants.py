"""Tenant repositories used by the tenant deletion workflow."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select

from docvault.persistence.records import USER_STATUS_ACTIVE, TenantPurgeCounts, TenantRecord
from docvault.persistence.schema import documents, folders, tenants, users

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from docvault.persistence.repositories.documents import InMemoryDocumentStore

logger = logging.getLogger(__name__)


class SqlTenantStore:
    """SQLAlchemy-backed TenantStore."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _get(self, tenant_id: str) -> TenantRecord | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(tenants).where(tenants.c.id == tenant_id)).fetchone()
        if row is None:
            return None
        return TenantRecord(id=row.id, name=row.name, status=row.status)

    def _count_active_users(self, tenant_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(users)
            .where(users.c.tenant_id == tenant_id, users.c.status == USER_STATUS_ACTIVE)
        )
        with self._engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())

    def _delete_records(self, tenant_id: str) -> TenantPurgeCounts:
        # Children before parents, all in one transaction.
        with self._engine.begin() as conn:
            doc_count = conn.execute(
                delete(documents).where(documents.c.tenant_id == tenant_id)
            ).rowcount
            folder_count = conn.execute(
                delete(folders).where(folders.c.tenant_id == tenant_id)
            ).rowcount
            user_count = conn.execute(delete(users).where(users.c.tenant_id == tenant_id)).rowcount
            tenant_count = conn.execute(delete(tenants).where(tenants.c.id == tenant_id)).rowcount

        return TenantPurgeCounts(
            documents=doc_count,
            folders=folder_count,
            users=user_count,
            tenants=tenant_count,
        )

    async def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        return await asyncio.to_thread(self._get, tenant_id)

    async def count_active_users(self, tenant_id: str) -> int:
        return await asyncio.to_thread(self._count_active_users, tenant_id)

    async def delete_tenant_records(self, tenant_id: str) -> TenantPurgeCounts:
        """Delete documents, folders, users and the tenant row atomically.

        Returns:
            Number of rows removed from each table.
        """
        counts = await asyncio.to_thread(self._delete_records, tenant_id)
        logger.info(
            "Deleted tenant records",
            extra={"tenant_id": tenant_id, **counts.to_dict()},
        )
        return counts


class InMemoryTenantStore:
    """In-memory fallback TenantStore for development/testing.

    Shares the document store so a purge removes the tenant's documents too.
    """

    def __init__(self, document_store: InMemoryDocumentStore | None = None) -> None:
        self._tenants: dict[str, TenantRecord] = {}
        self._user_statuses: dict[str, dict[str, str]] = {}
        self._document_store = document_store

    def add_tenant(self, tenant: TenantRecord) -> None:
        self._tenants[tenant.id] = tenant
        self._user_statuses.setdefault(tenant.id, {})

    def add_user(self, tenant_id: str, user_id: str, status: str = USER_STATUS_ACTIVE) -> None:
        self._user_statuses.setdefault(tenant_id, {})[user_id] = status

    async def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        return self._tenants.get(tenant_id)

    async def count_active_users(self, tenant_id: str) -> int:
        statuses = self._user_statuses.get(tenant_id, {})
        return sum(1 for status in statuses.values() if status == USER_STATUS_ACTIVE)

    async def delete_tenant_records(self, tenant_id: str) -> TenantPurgeCounts:
        doc_count, folder_count = (0, 0)
        if self._document_store is not None:
            doc_count, folder_count = self._document_store.purge_tenant(tenant_id)
        user_count = len(self._user_statuses.pop(tenant_id, {}))
        tenant_count = 1 if self._tenants.pop(tenant_id, None) is not None else 0
        return TenantPurgeCounts(
            documents=doc_count,
            folders=folder_count,
            users=user_count,
            tenants=tenant_count,
        )
