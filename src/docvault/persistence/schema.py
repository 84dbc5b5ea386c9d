"""Relational schema for DocVault metadata.

SQLAlchemy Core table definitions shared by the repositories, the audit sink
and the test suite. The Postgres migration in migrations/versions/0001 creates
the same tables; keep the two in step.

Only what correlates a document with its storage key and tenant is modelled,
plus the tenant/user/folder rows the deletion workflow purges.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

tenants = Table(
    "tenants",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", Text, nullable=False),
    Column("status", String(32), nullable=False, default="ACTIVE"),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

users = Table(
    "users",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("tenant_id", String(64), ForeignKey("tenants.id"), nullable=False),
    Column("email", Text, nullable=False),
    Column("status", String(32), nullable=False, default="ACTIVE"),
    Column("roles", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_users_tenant_id", "tenant_id"),
)

folders = Table(
    "folders",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("tenant_id", String(64), ForeignKey("tenants.id"), nullable=False),
    Column("name", Text, nullable=False),
    Column("allowed_roles", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_folders_tenant_id", "tenant_id"),
)

documents = Table(
    "documents",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("tenant_id", String(64), ForeignKey("tenants.id"), nullable=False),
    Column("folder_id", String(64), ForeignKey("folders.id"), nullable=True),
    Column("name", Text, nullable=False),
    Column("original_name", Text, nullable=True),
    Column("mime_type", Text, nullable=True),
    Column("size_bytes", BigInteger, nullable=True),
    Column("storage_key", Text, nullable=True),
    Column("status", String(16), nullable=False, default="PENDING"),
    Column("extracted_text", Text, nullable=True),
    Column("allowed_roles", JSON, nullable=True),
    Column("metadata", JSON, nullable=True),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Index("ix_documents_tenant_status", "tenant_id", "status"),
    Index("ix_documents_folder_id", "folder_id"),
)

# No foreign key to tenants: audit rows must outlive the tenant they describe.
audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tenant_id", String(64), nullable=True),
    Column("action", String(64), nullable=False),
    Column("entity_type", String(64), nullable=False),
    Column("entity_id", String(64), nullable=True),
    Column("actor_type", String(32), nullable=False),
    Column("actor_id", String(64), nullable=True),
    Column("metadata", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_audit_logs_tenant_id", "tenant_id"),
    Index("ix_audit_logs_action", "action"),
)
