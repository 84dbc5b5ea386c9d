"""Persistence repositories for DocVault.

Provides tenant-scoped metadata access with SQL persistence and in-memory
fallback for development/testing.
"""

from docvault.persistence.repositories.documents import (
    DocumentNotFoundError,
    InMemoryDocumentStore,
    SqlDocumentStore,
)
from docvault.persistence.repositories.tenants import InMemoryTenantStore, SqlTenantStore

__all__ = [
    "DocumentNotFoundError",
    "InMemoryDocumentStore",
    "InMemoryTenantStore",
    "SqlDocumentStore",
    "SqlTenantStore",
]
