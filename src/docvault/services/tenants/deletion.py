"""Tenant deletion workflow: purge a tenant's objects from the shared bucket.

Pre-conditions abort before any side effect:
- tenant id must already be in sanitized form (nothing stripped)
- tenant must exist
- no ACTIVE users unless force=True

Object deletion:
1. List every object under tenants/{tenant_id}/ (all pages)
2. Every listed key must validate for the tenant; any foreign key aborts
   the whole workflow before the first delete request
3. Delete in batches of at most 1000; batch errors are logged and accumulated
4. Re-list to verify the prefix is empty
5. Write one audit entry whatever the outcome (audit failure is only logged)

Complete deletion removes relational records only after step 4 verified an
empty prefix, so metadata never outlives data that may still be stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from docvault.audit.entries import (
    ACTION_TENANT_DELETED,
    ACTION_TENANT_S3_DATA_DELETED,
    AuditLogEntry,
    record_audit_entry,
)
from docvault.audit.sink import AuditSink
from docvault.config import Settings
from docvault.errors import DocvaultError, InvalidParameterError
from docvault.persistence.records import TenantPurgeCounts, TenantStore
from docvault.storage import keys
from docvault.storage.guard import TenantGuard
from docvault.storage.object_store import MAX_DELETE_BATCH, ObjectStore

logger = logging.getLogger(__name__)


class TenantNotFoundError(DocvaultError):
    code = "TENANT_NOT_FOUND"
    http_status = 404
    default_message = "Tenant not found"


class TenantHasActiveUsersError(DocvaultError):
    """Raised when the tenant still has ACTIVE users and force is not set."""

    code = "TENANT_HAS_ACTIVE_USERS"
    http_status = 409
    default_message = "Tenant has active users. Use force=true to override."


class ForeignObjectsDetectedError(DocvaultError):
    """Raised when the tenant prefix lists keys that do not validate for the tenant."""

    code = "FOREIGN_OBJECTS_DETECTED"
    http_status = 409
    default_message = "Invalid objects found in tenant prefix"


class DeletionVerificationError(DocvaultError):
    """Raised when objects remain after deletion; relational records are kept."""

    code = "DELETION_NOT_VERIFIED"
    http_status = 409
    default_message = "Storage data not fully deleted, aborting"


@dataclass(frozen=True)
class DeletionError:
    """One failure recorded during batch deletion.

    key is None when the whole batch request failed.
    """

    batch_index: int
    code: str
    message: str
    key: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_index": self.batch_index,
            "key": self.key,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class ObjectDeletionResult:
    """Outcome of deleting a tenant's objects.

    Attributes:
        tenant_id: Tenant id (validated, never rewritten).
        requested_count: Keys submitted for deletion.
        deleted_count: Keys the backend confirmed deleted.
        batch_count: Delete requests issued.
        errors: Per-key and per-batch failures.
        verified: True iff the post-deletion listing was empty.
        remaining_count: Keys still listed afterwards (None if the listing failed).
        audited: True iff the audit entry was written.
    """

    tenant_id: str
    requested_count: int = 0
    deleted_count: int = 0
    batch_count: int = 0
    errors: list[DeletionError] = field(default_factory=list)
    verified: bool = False
    remaining_count: int | None = None
    audited: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "requested_count": self.requested_count,
            "deleted_count": self.deleted_count,
            "batch_count": self.batch_count,
            "errors": [error.to_dict() for error in self.errors],
            "verified": self.verified,
            "remaining_count": self.remaining_count,
            "audited": self.audited,
        }


@dataclass(frozen=True)
class TenantDeletionResult:
    """Outcome of a complete tenant deletion (objects, then relational records)."""

    tenant_id: str
    objects: ObjectDeletionResult
    records: TenantPurgeCounts

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "objects": self.objects.to_dict(),
            "records": self.records.to_dict(),
        }


class TenantDeletionService:
    """Deletes all of a tenant's data, storage first, then metadata."""

    def __init__(
        self,
        store: ObjectStore,
        tenants: TenantStore,
        guard: TenantGuard,
        audit_sink: AuditSink,
        settings: Settings,
    ) -> None:
        self._store = store
        self._tenants = tenants
        self._guard = guard
        self._audit_sink = audit_sink
        self._batch_size = min(settings.delete_batch_size, MAX_DELETE_BATCH)

    def _require_tenant_id(self, tenant_id: str) -> str:
        # "t_1!" must not resolve to t_1.
        sanitized = self._guard.sanitize_tenant_id(tenant_id)
        if sanitized is None or sanitized != tenant_id:
            logger.error("Invalid tenant ID format for deletion", extra={"tenant_id": tenant_id})
            raise InvalidParameterError("Invalid tenant ID format", tenant_id=tenant_id)
        return sanitized

    async def _check_preconditions(self, tenant_id: str, force: bool) -> str:
        sanitized = self._require_tenant_id(tenant_id)

        tenant = await self._tenants.get_tenant(sanitized)
        if tenant is None:
            logger.error("Tenant not found for deletion", extra={"tenant_id": sanitized})
            raise TenantNotFoundError(tenant_id=sanitized)

        active_users = await self._tenants.count_active_users(sanitized)
        if active_users > 0 and not force:
            logger.warning(
                "Tenant has active users, skipping deletion",
                extra={"tenant_id": sanitized, "active_users": active_users},
            )
            raise TenantHasActiveUsersError(
                f"Tenant has {active_users} active users. Use force=true to override.",
                tenant_id=sanitized,
                details={"active_users": active_users},
            )
        return sanitized

    async def list_tenant_objects(self, tenant_id: str) -> list[str]:
        """List every key under tenants/{tenant_id}/, following continuation tokens."""
        prefix = keys.tenant_prefix(self._require_tenant_id(tenant_id))
        object_keys: list[str] = []
        token: str | None = None
        while True:
            page = await self._store.list(prefix, token)
            object_keys.extend(page.keys)
            token = page.next_token
            if not token:
                return object_keys

    async def verify_deletion(self, tenant_id: str) -> bool:
        """True iff the tenant prefix is empty; a failed listing counts as not clean."""
        verified, _ = await self._verify(tenant_id)
        return verified

    async def _verify(self, tenant_id: str) -> tuple[bool, int | None]:
        try:
            remaining = await self.list_tenant_objects(tenant_id)
        except Exception as e:
            logger.error(
                "Error verifying tenant data deletion",
                extra={"tenant_id": tenant_id, "error": str(e)},
            )
            return False, None

        is_clean = not remaining
        logger.info(
            "Tenant data deletion verification",
            extra={"tenant_id": tenant_id, "is_clean": is_clean, "remaining": len(remaining)},
        )
        return is_clean, len(remaining)

    async def _delete_in_batches(self, result: ObjectDeletionResult, valid_keys: list[str]) -> None:
        for start in range(0, len(valid_keys), self._batch_size):
            batch = valid_keys[start : start + self._batch_size]
            batch_index = result.batch_count
            result.batch_count += 1
            try:
                outcome = await self._store.delete_batch(batch)
            except Exception as e:
                logger.error(
                    "Storage deletion batch failed",
                    extra={"tenant_id": result.tenant_id, "batch": batch_index, "error": str(e)},
                )
                result.errors.append(
                    DeletionError(
                        batch_index=batch_index,
                        code=e.code if isinstance(e, DocvaultError) else type(e).__name__,
                        message=str(e),
                    )
                )
                continue

            if outcome.errors:
                logger.error(
                    "Errors during storage deletion",
                    extra={
                        "tenant_id": result.tenant_id,
                        "batch": batch_index,
                        "errors": [error.to_dict() for error in outcome.errors],
                    },
                )
                result.errors.extend(
                    DeletionError(
                        batch_index=batch_index,
                        code=error.code,
                        message=error.message,
                        key=error.key,
                    )
                    for error in outcome.errors
                )

            result.deleted_count += len(outcome.deleted_keys)
            logger.info(
                "Storage deletion batch completed",
                extra={
                    "tenant_id": result.tenant_id,
                    "batch": batch_index,
                    "deleted_in_batch": len(outcome.deleted_keys),
                    "deleted_so_far": result.deleted_count,
                },
            )

    async def _audit_object_deletion(self, result: ObjectDeletionResult) -> bool:
        entry = AuditLogEntry(
            action=ACTION_TENANT_S3_DATA_DELETED,
            entity_type="tenant",
            entity_id=result.tenant_id,
            tenant_id=result.tenant_id,
            metadata={
                "deletedObjectCount": result.deleted_count,
                "requestedDeletionCount": result.requested_count,
                "deletionTimestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            },
        )
        return await record_audit_entry(self._audit_sink, entry)

    async def delete_tenant_objects(
        self, tenant_id: str, force: bool = False
    ) -> ObjectDeletionResult:
        """Delete every object under the tenant prefix.

        Raises:
            InvalidParameterError: Tenant id empty or altered by sanitization.
            TenantNotFoundError: Tenant does not exist.
            TenantHasActiveUsersError: ACTIVE users remain and force is False.
            ForeignObjectsDetectedError: A listed key does not validate for the tenant.
        """
        sanitized = await self._check_preconditions(tenant_id, force)

        logger.info(
            "Starting tenant storage deletion",
            extra={"tenant_id": sanitized, "prefix": keys.tenant_prefix(sanitized)},
        )
        listed = await self.list_tenant_objects(sanitized)

        valid_keys = self._guard.filter_valid(listed, sanitized)
        if len(valid_keys) != len(listed):
            logger.error(
                "Found objects that do not belong to tenant",
                extra={
                    "tenant_id": sanitized,
                    "total_objects": len(listed),
                    "valid_objects": len(valid_keys),
                },
            )
            raise ForeignObjectsDetectedError(
                tenant_id=sanitized,
                details={"total": len(listed), "foreign": len(listed) - len(valid_keys)},
            )

        result = ObjectDeletionResult(tenant_id=sanitized, requested_count=len(valid_keys))
        await self._delete_in_batches(result, valid_keys)

        result.verified, result.remaining_count = await self._verify(sanitized)
        result.audited = await self._audit_object_deletion(result)

        logger.info(
            "Tenant storage deletion completed",
            extra={
                "tenant_id": sanitized,
                "deleted": result.deleted_count,
                "requested": result.requested_count,
                "verified": result.verified,
            },
        )
        return result

    async def delete_complete(self, tenant_id: str, force: bool = False) -> TenantDeletionResult:
        """Delete the tenant's objects, then its relational records in one transaction.

        Raises:
            DeletionVerificationError: Objects remain; no relational record is touched.
            Everything delete_tenant_objects raises.
        """
        objects = await self.delete_tenant_objects(tenant_id, force)
        sanitized = objects.tenant_id

        if not objects.verified:
            logger.error(
                "Storage data not fully deleted, aborting database deletion",
                extra={"tenant_id": sanitized, "remaining": objects.remaining_count},
            )
            raise DeletionVerificationError(
                tenant_id=sanitized,
                details={"remaining_count": objects.remaining_count},
            )

        records = await self._tenants.delete_tenant_records(sanitized)
        await record_audit_entry(
            self._audit_sink,
            AuditLogEntry(
                action=ACTION_TENANT_DELETED,
                entity_type="tenant",
                entity_id=sanitized,
                tenant_id=sanitized,
                metadata={"deletedRecords": records.to_dict()},
            ),
        )

        logger.info(
            "Complete tenant deletion completed",
            extra={
                "tenant_id": sanitized,
                "deleted_objects": objects.deleted_count,
                "deleted_records": records.to_dict(),
            },
        )
        return TenantDeletionResult(tenant_id=sanitized, objects=objects, records=records)
