"""DocVault domain error taxonomy.

Every error raised by the storage, upload, download, ingestion and tenant
deletion layers derives from DocvaultError. Each error carries a stable
machine-readable code and the HTTP status the API maps it to, so the API
layer never needs per-exception handlers.

Fail-closed: isolation violations always surface as errors, never as
silently empty results.
"""

from __future__ import annotations

from typing import Any


class DocvaultError(Exception):
    """Base exception for DocVault domain errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code (e.g. "UNAUTHORIZED_ACCESS").
        http_status: HTTP status code the API responds with.
        tenant_id: Tenant ID associated with the operation (if applicable).
        key: Storage key associated with the operation (if applicable).
        details: Optional safe context for the error envelope.
    """

    code: str = "DOCVAULT_ERROR"
    http_status: int = 500
    default_message: str = "DocVault operation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        tenant_id: str | None = None,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.tenant_id = tenant_id
        self.key = key
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.tenant_id:
            parts.append(f"tenant_id={self.tenant_id}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class InvalidParameterError(DocvaultError):
    """Raised when a tenant ID, document ID or filename fails sanitization."""

    code = "INVALID_PARAMETER"
    http_status = 400
    default_message = "Invalid parameters for storage key generation"


class ConfigError(DocvaultError):
    """Raised when configuration is missing or invalid."""

    code = "CONFIG_ERROR"
    http_status = 500
    default_message = "Invalid DocVault configuration"
