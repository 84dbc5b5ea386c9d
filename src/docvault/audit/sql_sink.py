"""SQL audit sink for DocVault.

Appends audit entries to the audit_logs table. INSERT only; the Postgres
migration installs a trigger rejecting UPDATE and DELETE.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from docvault.audit.sink import AuditSinkError
from docvault.persistence.schema import audit_logs

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("id", "action", "entity_type", "actor_type", "created_at")


class SqlAuditSink:
    """Audit sink writing to the audit_logs table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def emit(self, event: dict[str, Any]) -> None:
        """Insert one audit entry.

        Raises:
            AuditSinkError: If required fields are missing or the INSERT fails.
        """
        missing = [name for name in _REQUIRED_FIELDS if not event.get(name)]
        if missing:
            raise AuditSinkError(f"Audit event missing required fields: {', '.join(missing)}")

        created_at = event["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        elif not isinstance(created_at, datetime):
            created_at = datetime.now(UTC)

        try:
            with self._engine.begin() as conn:
                conn.execute(
                    insert(audit_logs).values(
                        id=event["id"],
                        tenant_id=event.get("tenant_id"),
                        action=event["action"],
                        entity_type=event["entity_type"],
                        entity_id=event.get("entity_id"),
                        actor_type=event["actor_type"],
                        actor_id=event.get("actor_id"),
                        metadata=event.get("metadata") or {},
                        created_at=created_at,
                    )
                )
        except SQLAlchemyError as e:
            raise AuditSinkError(f"Failed to emit audit event: {e}") from e

        logger.debug("Emitted audit event %s (%s)", event["id"], event["action"])
