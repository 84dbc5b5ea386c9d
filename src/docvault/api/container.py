"""Service wiring for the API and CLI.

build_container() assembles every service from Settings. With
DOCVAULT_DATABASE_URL set, metadata and audit go to SQL; otherwise the
in-memory stores and the JSONL audit sink are used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from docvault.audit.sink import AuditSink, get_audit_sink
from docvault.config import Settings, load_settings
from docvault.extraction.registry import DocumentTextExtractor
from docvault.persistence.db import get_engine, is_database_configured
from docvault.persistence.records import DocumentStore, TenantStore
from docvault.persistence.repositories import (
    InMemoryDocumentStore,
    InMemoryTenantStore,
    SqlDocumentStore,
    SqlTenantStore,
)
from docvault.services.downloads.service import DownloadService
from docvault.services.files.service import FileService
from docvault.services.ingestion.collaborators import (
    DeterministicEmbedder,
    Embedder,
    InMemoryVectorStore,
    TextExtractor,
    VectorStore,
)
from docvault.services.ingestion.job import IngestionJob
from docvault.services.ingestion.pipeline import IngestionPipeline
from docvault.services.ingestion.worker import IngestionWorker
from docvault.services.tenants.deletion import TenantDeletionService
from docvault.services.uploads.service import UploadService
from docvault.storage.factory import create_object_store
from docvault.storage.guard import TenantGuard
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """All services of one DocVault process, sharing one bucket client."""

    settings: Settings
    store: ObjectStore
    guard: TenantGuard
    documents: DocumentStore
    tenants: TenantStore
    audit_sink: AuditSink
    vector_store: VectorStore
    uploads: UploadService
    downloads: DownloadService
    files: FileService
    pipeline: IngestionPipeline
    job: IngestionJob
    deletion: TenantDeletionService

    def create_worker(self) -> IngestionWorker:
        return IngestionWorker(self.job, self.settings.ingestion_interval_seconds)


def build_container(
    settings: Settings | None = None,
    *,
    store: ObjectStore | None = None,
    documents: DocumentStore | None = None,
    tenants: TenantStore | None = None,
    audit_sink: AuditSink | None = None,
    extractor: TextExtractor | None = None,
    embedder: Embedder | None = None,
    vector_store: VectorStore | None = None,
) -> ServiceContainer:
    """Assemble services; any collaborator may be injected (tests)."""
    if settings is None:
        settings = load_settings()
    if store is None:
        store = create_object_store(settings)
    guard = TenantGuard()

    if documents is None or tenants is None:
        if is_database_configured():
            engine = get_engine()
            documents = documents or SqlDocumentStore(engine)
            tenants = tenants or SqlTenantStore(engine)
        else:
            logger.warning("DOCVAULT_DATABASE_URL not set; using in-memory metadata stores")
            memory_documents = InMemoryDocumentStore()
            documents = documents or memory_documents
            tenants = tenants or InMemoryTenantStore(memory_documents)

    if audit_sink is None:
        audit_sink = get_audit_sink()
    if vector_store is None:
        vector_store = InMemoryVectorStore()

    pipeline = IngestionPipeline(
        store,
        documents,
        guard,
        extractor or DocumentTextExtractor(),
        embedder or DeterministicEmbedder(),
        vector_store,
        settings,
    )

    return ServiceContainer(
        settings=settings,
        store=store,
        guard=guard,
        documents=documents,
        tenants=tenants,
        audit_sink=audit_sink,
        vector_store=vector_store,
        uploads=UploadService(store, guard, settings),
        downloads=DownloadService(documents, store, guard, settings),
        files=FileService(store, documents, guard, settings),
        pipeline=pipeline,
        job=IngestionJob(pipeline, documents),
        deletion=TenantDeletionService(store, tenants, guard, audit_sink, settings),
    )


def get_container(request: Request) -> ServiceContainer:
    container: ServiceContainer = request.app.state.container
    return container


Container = Annotated[ServiceContainer, Depends(get_container)]
