"""DocVault metadata persistence: engine, schema, store contracts and migrations."""

from docvault.persistence.db import (
    DatabaseConfigError,
    get_database_url,
    get_engine,
    is_database_configured,
)
from docvault.persistence.records import (
    DocumentRecord,
    DocumentStatus,
    DocumentStore,
    FolderRecord,
    TenantPurgeCounts,
    TenantRecord,
    TenantStore,
)

__all__ = [
    "DatabaseConfigError",
    "DocumentRecord",
    "DocumentStatus",
    "DocumentStore",
    "FolderRecord",
    "TenantPurgeCounts",
    "TenantRecord",
    "TenantStore",
    "get_database_url",
    "get_engine",
    "is_database_configured",
]
