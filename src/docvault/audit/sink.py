"""Audit sinks.

A sink appends audit events and never rewrites or removes one. Sinks raise
AuditSinkError on any failure. Callers that must not fail because of audit
go through record_audit_entry, which catches it.

Events are serialized with sorted keys and compact separators, so the same
event always produces the same line.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

AUDIT_LOG_PATH_ENV = "DOCVAULT_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH = "./var/audit/audit_events.jsonl"


class AuditSinkError(Exception):
    """Raised when an audit event could not be persisted."""


@runtime_checkable
class AuditSink(Protocol):
    def emit(self, event: dict[str, Any]) -> None:
        """Persist one event (see AuditLogEntry.to_dict).

        Raises:
            AuditSinkError: If the event was not persisted.
        """
        ...


def serialize_event(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Audit event is not JSON serializable: {e}") from e


class JsonlFileAuditSink:
    """One JSON line per event, appended to DOCVAULT_AUDIT_LOG_PATH.

    The path defaults to ./var/audit/audit_events.jsonl; missing parent
    directories are created on first write.
    """

    def __init__(self, file_path: str | Path | None = None) -> None:
        if file_path is None:
            file_path = os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH
        self.file_path = Path(file_path)

    def emit(self, event: dict[str, Any]) -> None:
        line = serialize_event(event)
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with self.file_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise AuditSinkError(f"Cannot append to audit log {self.file_path}: {e}") from e


class InMemoryAuditSink:
    """Keeps events in a list (tests, local runs)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def emit(self, event: dict[str, Any]) -> None:
        # Stored as decoded JSON so tests see exactly what a file sink would write.
        self._events.append(json.loads(serialize_event(event)))

    @property
    def events(self) -> list[dict[str, Any]]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()


def get_audit_sink() -> AuditSink:
    """SQL sink when DOCVAULT_DATABASE_URL is set, else the JSONL file sink."""
    from docvault.persistence.db import get_engine, is_database_configured

    if is_database_configured():
        from docvault.audit.sql_sink import SqlAuditSink

        return SqlAuditSink(get_engine())
    return JsonlFileAuditSink()
