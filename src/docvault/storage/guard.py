"""Tenant isolation guard for shared-bucket storage keys.

The bucket has no per-tenant partition, so every read, write, list and delete
issued by upload, download, ingestion and tenant deletion must pass through
this guard first. There is no other enforcement boundary in the application.

Two call shapes are kept distinct:
- Predicates (validate, validate_ownership, validate_structure, filter_valid)
  return booleans or filtered lists and never raise.
- guard() is the fail-closed enforcement point: it raises
  UnauthorizedAccessError and writes a security audit log record.

All functions are pure (no I/O besides logging).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from docvault.storage import keys
from docvault.storage.errors import UnauthorizedAccessError

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("docvault.security")

_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


class TenantGuard:
    """Validation and enforcement primitives for tenant-scoped keys.

    Stateless; a single instance can be shared by every service.
    """

    def sanitize_tenant_id(self, raw: str | None) -> str | None:
        """Strip disallowed characters from a tenant ID.

        Returns:
            Sanitized tenant ID, or None if nothing remains.
        """
        sanitized = keys.sanitize_identifier(raw)
        return sanitized or None

    def sanitize_key(self, raw: str | None) -> str:
        """Strip control characters and traversal sequences from a key.

        Idempotent. Never returns None; an empty string means the key is unusable.
        """
        if not raw or not isinstance(raw, str):
            return ""
        return keys.strip_traversal(_CONTROL_CHARACTERS.sub("", raw))

    def validate_ownership(self, key: str | None, tenant_id: str | None) -> bool:
        """Return True iff the sanitized key starts with tenants/{sanitized tenant}/."""
        if not key or not tenant_id:
            logger.error(
                "Storage key or tenant ID missing for validation",
                extra={"key": key, "tenant_id": tenant_id},
            )
            return False

        sanitized_key = self.sanitize_key(key)
        sanitized_tenant = self.sanitize_tenant_id(tenant_id)
        if not sanitized_key or not sanitized_tenant:
            logger.error(
                "Invalid storage key or tenant ID format",
                extra={"key": key, "tenant_id": tenant_id},
            )
            return False

        expected_prefix = f"{keys.KEY_ROOT}/{sanitized_tenant}/"
        if not sanitized_key.startswith(expected_prefix):
            logger.warning(
                "Storage key does not belong to tenant",
                extra={
                    "key": sanitized_key,
                    "tenant_id": sanitized_tenant,
                    "expected_prefix": expected_prefix,
                },
            )
            return False

        return True

    def validate_structure(self, key: str | None) -> bool:
        """Return True iff the key has >= 4 segments anchored at tenants/*/documents."""
        if not key:
            return False

        parts = key.split("/")
        if len(parts) < 4:
            logger.warning(
                "Storage key has insufficient segments",
                extra={"key": key, "segments": len(parts)},
            )
            return False

        if parts[0] != keys.KEY_ROOT:
            logger.warning("Storage key does not start with tenants/", extra={"key": key})
            return False

        if parts[2] != keys.DOCUMENTS_SEGMENT:
            logger.warning("Storage key does not follow documents structure", extra={"key": key})
            return False

        return True

    def validate(self, key: str | None, tenant_id: str | None) -> bool:
        """Return True iff the key is owned by the tenant and well-formed."""
        return self.validate_ownership(key, tenant_id) and self.validate_structure(key)

    def guard(self, key: str | None, tenant_id: str | None, operation: str = "access") -> None:
        """Enforce tenant ownership before a storage operation.

        Args:
            key: Storage key about to be used.
            tenant_id: Tenant on whose behalf the operation runs.
            operation: Operation name recorded in the security log.

        Raises:
            UnauthorizedAccessError: If validate() is False.
        """
        if self.validate(key, tenant_id):
            return

        security_logger.error(
            "Unauthorized storage %s attempt",
            operation,
            extra={"key": key, "tenant_id": tenant_id, "operation": operation},
        )
        raise UnauthorizedAccessError(
            f"Unauthorized storage access for tenant {tenant_id}",
            tenant_id=tenant_id,
            key=key,
            details={"operation": operation},
        )

    def filter_valid(self, candidate_keys: Iterable[str], tenant_id: str | None) -> list[str]:
        """Keep only keys that validate for the tenant, preserving order."""
        valid = [key for key in candidate_keys if self.validate(key, tenant_id)]
        return valid

    def extract_tenant_id(self, key: str | None) -> str | None:
        """Return the tenant segment of a key (see keys.extract_tenant_id)."""
        return keys.extract_tenant_id(key)
