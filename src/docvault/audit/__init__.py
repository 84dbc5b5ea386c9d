"""DocVault Audit module - append-only audit log entries."""

from docvault.audit.entries import AuditLogEntry, record_audit_entry
from docvault.audit.sink import (
    AuditSink,
    AuditSinkError,
    InMemoryAuditSink,
    JsonlFileAuditSink,
    get_audit_sink,
)

__all__ = [
    "AuditLogEntry",
    "AuditSink",
    "AuditSinkError",
    "InMemoryAuditSink",
    "JsonlFileAuditSink",
    "get_audit_sink",
    "record_audit_entry",
]
