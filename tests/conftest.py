"""Pytest configuration and fixtures for DocVault tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from docvault.audit.sink import AUDIT_LOG_PATH_ENV, InMemoryAuditSink
from docvault.config import Settings
from docvault.persistence.db import DOCVAULT_DATABASE_URL_ENV
from docvault.persistence.records import DocumentRecord, DocumentStatus
from docvault.persistence.repositories import InMemoryDocumentStore, InMemoryTenantStore
from docvault.storage import keys
from docvault.storage.guard import TenantGuard
from docvault.storage.memory_store import InMemoryObjectStore

TENANT_A = "t_1"
TENANT_B = "t_2"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests off any real database and out of the working directory.

    Tests that need a database build their own SQLite engine.
    """
    monkeypatch.delenv(DOCVAULT_DATABASE_URL_ENV, raising=False)
    monkeypatch.delenv("DOCVAULT_OTEL_ENABLED", raising=False)
    monkeypatch.setenv(AUDIT_LOG_PATH_ENV, str(tmp_path / "audit" / "audit_events.jsonl"))


@pytest.fixture
def tenant_a() -> str:
    return TENANT_A


@pytest.fixture
def tenant_b() -> str:
    return TENANT_B


@pytest.fixture
def settings() -> Settings:
    """Settings for the in-memory backend with a fixed presign secret."""
    return Settings(object_store_backend="memory", presign_secret="test-secret")


@pytest.fixture
def guard() -> TenantGuard:
    return TenantGuard()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore(presign_secret="test-secret")


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def tenant_store(document_store: InMemoryDocumentStore) -> InMemoryTenantStore:
    return InMemoryTenantStore(document_store)


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


def _make_document(
    document_id: str,
    tenant_id: str,
    filename: str = "report.pdf",
    *,
    storage_key: str | None = None,
    status: DocumentStatus = DocumentStatus.PENDING,
    **fields: object,
) -> DocumentRecord:
    """Build a document record whose key is derived from its id and tenant."""
    if storage_key is None:
        storage_key = keys.build_key(tenant_id, document_id, filename)
    return DocumentRecord(
        id=document_id,
        tenant_id=tenant_id,
        name=filename,
        storage_key=storage_key,
        status=status,
        **fields,  # type: ignore[arg-type]
    )


@pytest.fixture
def make_document() -> Callable[..., DocumentRecord]:
    """Factory for document records keyed by their id and tenant."""
    return _make_document
