"""DocVault foundation: tenants, users, folders, documents, audit_logs.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the metadata tables that correlate documents with their storage keys
and tenants, plus the append-only audit log. audit_logs has no foreign key to
tenants so offboarding records outlive the tenant they describe.
"""

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Apply migration: create tables, indexes and the audit immutability trigger."""

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS tenants (
            id VARCHAR(64) PRIMARY KEY,
            name TEXT NOT NULL,
            status VARCHAR(32) NOT NULL DEFAULT 'ACTIVE',
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(64) PRIMARY KEY,
            tenant_id VARCHAR(64) NOT NULL REFERENCES tenants (id),
            email TEXT NOT NULL,
            status VARCHAR(32) NOT NULL DEFAULT 'ACTIVE',
            roles JSON,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_tenant_id ON users (tenant_id)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS folders (
            id VARCHAR(64) PRIMARY KEY,
            tenant_id VARCHAR(64) NOT NULL REFERENCES tenants (id),
            name TEXT NOT NULL,
            allowed_roles JSON,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_folders_tenant_id ON folders (tenant_id)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            id VARCHAR(64) PRIMARY KEY,
            tenant_id VARCHAR(64) NOT NULL REFERENCES tenants (id),
            folder_id VARCHAR(64) REFERENCES folders (id),
            name TEXT NOT NULL,
            original_name TEXT,
            mime_type TEXT,
            size_bytes BIGINT,
            storage_key TEXT,
            status VARCHAR(16) NOT NULL DEFAULT 'PENDING',
            extracted_text TEXT,
            allowed_roles JSON,
            metadata JSON,
            deleted_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ
        )
        """
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_documents_tenant_status ON documents (tenant_id, status)"
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_documents_folder_id ON documents (folder_id)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id VARCHAR(36) PRIMARY KEY,
            tenant_id VARCHAR(64),
            action VARCHAR(64) NOT NULL,
            entity_type VARCHAR(64) NOT NULL,
            entity_id VARCHAR(64),
            actor_type VARCHAR(32) NOT NULL,
            actor_id VARCHAR(64),
            metadata JSON,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_tenant_id ON audit_logs (tenant_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_audit_logs_action ON audit_logs (action)")

    op.execute(
        """
        CREATE OR REPLACE FUNCTION docvault_reject_audit_mutation()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION 'Audit logs are immutable: UPDATE and DELETE are not allowed';
        END;
        $$ LANGUAGE plpgsql
        """
    )

    op.execute(
        """
        CREATE TRIGGER audit_logs_immutability
        BEFORE UPDATE OR DELETE ON audit_logs
        FOR EACH ROW EXECUTE FUNCTION docvault_reject_audit_mutation()
        """
    )


def downgrade() -> None:
    """Revert migration: drop trigger, function and tables."""

    op.execute("DROP TRIGGER IF EXISTS audit_logs_immutability ON audit_logs")
    op.execute("DROP FUNCTION IF EXISTS docvault_reject_audit_mutation()")

    op.execute("DROP TABLE IF EXISTS audit_logs")
    op.execute("DROP TABLE IF EXISTS documents")
    op.execute("DROP TABLE IF EXISTS folders")
    op.execute("DROP TABLE IF EXISTS users")
    op.execute("DROP TABLE IF EXISTS tenants")
