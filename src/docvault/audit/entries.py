"""Audit log entries and best-effort recording.

Audit failures never fail the primary operation that triggered them:
record_audit_entry catches AuditSinkError, logs it and reports False.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from docvault.audit.sink import AuditSink, AuditSinkError

logger = logging.getLogger(__name__)

ACTION_TENANT_S3_DATA_DELETED = "TENANT_S3_DATA_DELETED"
ACTION_TENANT_DELETED = "TENANT_DELETED"

ACTOR_SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only audit record.

    Attributes:
        action: What happened (e.g. TENANT_S3_DATA_DELETED).
        entity_type: Kind of entity acted upon.
        entity_id: ID of the entity acted upon.
        actor_type: Who acted (SYSTEM, USER, SERVICE).
        actor_id: ID of the actor.
        tenant_id: Tenant the entry belongs to.
        metadata: Counts, timestamps and other safe context.
    """

    action: str
    entity_type: str
    entity_id: str | None
    actor_type: str = ACTOR_SYSTEM
    actor_id: str | None = ACTOR_SYSTEM
    tenant_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the sink event dict."""
        return {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_type": self.actor_type,
            "actor_id": self.actor_id,
            "tenant_id": self.tenant_id,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat().replace("+00:00", "Z"),
        }


async def record_audit_entry(sink: AuditSink, entry: AuditLogEntry) -> bool:
    """Emit an audit entry without letting a sink failure propagate.

    Returns:
        True if the sink accepted the entry, False if it failed (logged).
    """
    try:
        await asyncio.to_thread(sink.emit, entry.to_dict())
    except AuditSinkError as e:
        logger.error(
            "Failed to write audit log entry",
            extra={"action": entry.action, "entity_id": entry.entity_id, "error": str(e)},
        )
        return False
    return True
