"""Tenant lifecycle services."""

from docvault.services.tenants.deletion import (
    DeletionError,
    DeletionVerificationError,
    ForeignObjectsDetectedError,
    ObjectDeletionResult,
    TenantDeletionResult,
    TenantDeletionService,
    TenantHasActiveUsersError,
    TenantNotFoundError,
)

__all__ = [
    "DeletionError",
    "DeletionVerificationError",
    "ForeignObjectsDetectedError",
    "ObjectDeletionResult",
    "TenantDeletionResult",
    "TenantDeletionService",
    "TenantHasActiveUsersError",
    "TenantNotFoundError",
]
