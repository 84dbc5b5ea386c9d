"""Batch ingestion job: sweeps tenants with pending documents.

Tenants are processed sequentially; one tenant's failure is logged and the
sweep moves on.
"""

from __future__ import annotations

import logging

from docvault.persistence.records import DocumentStore
from docvault.services.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class IngestionJob:
    """Entry points used by the worker, the CLI and the admin API."""

    def __init__(self, pipeline: IngestionPipeline, documents: DocumentStore) -> None:
        self._pipeline = pipeline
        self._documents = documents

    async def process_pending(self) -> int:
        """Process pending documents of every tenant; returns total processed."""
        tenant_ids = await self._documents.tenants_with_pending()
        logger.info("Starting ingestion sweep", extra={"tenant_count": len(tenant_ids)})

        total = 0
        for tenant_id in tenant_ids:
            try:
                total += await self._pipeline.process_all_for_tenant(tenant_id)
            except Exception as e:
                logger.error(
                    "Error processing documents for tenant",
                    extra={"tenant_id": tenant_id, "error": str(e)},
                    exc_info=True,
                )

        logger.info("Ingestion sweep completed", extra={"processed": total})
        return total

    async def process_tenant(self, tenant_id: str) -> int:
        return await self._pipeline.process_all_for_tenant(tenant_id)

    async def process_document(self, document_id: str, tenant_id: str) -> bool:
        """Process one document, looked up by id AND tenant.

        Returns:
            False when the record or its storage key is missing, else the
            pipeline outcome.
        """
        document = await self._documents.find_document(document_id, tenant_id)
        if document is None or not document.storage_key:
            logger.warning(
                "Document not found or has no storage key",
                extra={"document_id": document_id, "tenant_id": tenant_id},
            )
            return False
        return await self._pipeline.process_document(document.storage_key, tenant_id, document.id)
