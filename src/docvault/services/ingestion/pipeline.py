"""Ingestion pipeline: fetch, extract, chunk, embed and index tenant documents.

Flow per document (storage key validated against the tenant first):
1. Fetch raw bytes from the shared bucket
2. Extract text, persist it, write the extracted stage object, mark EXTRACTED
3. Chunk into fixed windows (no overlap); write one chunks stage object each
4. Embed all chunks in one batched call
5. Store one vector per chunk ({documentId}_chunk_{i}) with the tenant envelope
6. Mark READY

Stage objects are keyed by the tenant and document id, and the extracted
object reuses the raw filename. The embeddings stage is not written: vectors
live in the vector store.

Any failure after validation marks the document ERROR. Side effects already
written are left in place; reprocessing overwrites vectors and stage objects
by id.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from docvault.config import Settings
from docvault.persistence.records import DocumentRecord, DocumentStatus, DocumentStore
from docvault.services.ingestion.collaborators import Embedder, TextExtractor, VectorStore
from docvault.storage import keys
from docvault.storage.guard import TenantGuard
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """A fixed-size window of a document's extracted text."""

    id: str
    text: str
    index: int
    document_id: str


def chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index}"


def build_envelope(
    tenant_id: str, document_id: str, chunk: Chunk, source_key: str
) -> dict[str, Any]:
    """Vector metadata envelope; tenantId is the only isolation in the vector index."""
    return {
        "tenantId": tenant_id,
        "documentId": document_id,
        "chunkIndex": chunk.index,
        "text": chunk.text,
        "source": source_key,
    }


def encode_chunk(envelope: dict[str, Any]) -> bytes:
    return json.dumps(envelope, sort_keys=True).encode("utf-8")


class IngestionPipeline:
    """Tenant-safe document ingestion."""

    def __init__(
        self,
        store: ObjectStore,
        documents: DocumentStore,
        guard: TenantGuard,
        extractor: TextExtractor,
        embedder: Embedder,
        vector_store: VectorStore,
        settings: Settings,
    ) -> None:
        self._store = store
        self._documents = documents
        self._guard = guard
        self._extractor = extractor
        self._embedder = embedder
        self._vector_store = vector_store
        self._settings = settings

    def chunk_text(self, text: str, document_id: str) -> list[Chunk]:
        """Split text into chunk_size-character windows; the last may be shorter."""
        size = self._settings.chunk_size
        return [
            Chunk(
                id=chunk_id(document_id, index),
                text=text[start : start + size],
                index=index,
                document_id=document_id,
            )
            for index, start in enumerate(range(0, len(text), size))
        ]

    async def process_document(self, key: str, tenant_id: str, document_id: str) -> bool:
        """Ingest one document.

        Returns:
            True when the document reached READY. False when the key does not
            belong to the tenant (nothing fetched) or any step failed (ERROR).
        """
        if not self._guard.validate(key, tenant_id):
            logger.error(
                "Storage key does not belong to tenant",
                extra={"key": key, "tenant_id": tenant_id, "document_id": document_id},
            )
            return False

        try:
            stored = await self._store.get(key)
            extracted_text = await self._extractor.extract(stored.body)

            extracted_key = keys.build_key(
                tenant_id, document_id, key.rsplit("/", 1)[-1], keys.Stage.EXTRACTED
            )
            await self._write_artifact(
                extracted_key,
                tenant_id,
                extracted_text.encode("utf-8"),
                "text/plain; charset=utf-8",
            )

            await self._documents.update_status(
                document_id, DocumentStatus.EXTRACTED, extracted_text=extracted_text
            )

            chunks = self.chunk_text(extracted_text, document_id)
            for chunk in chunks:
                await self._write_artifact(
                    keys.build_key(
                        tenant_id,
                        document_id,
                        None,
                        keys.Stage.CHUNKS,
                        chunk_id=chunk.index,
                    ),
                    tenant_id,
                    encode_chunk(build_envelope(tenant_id, document_id, chunk, key)),
                    "application/json",
                )

            if chunks:
                vectors = await self._embedder.embed([chunk.text for chunk in chunks])
                if len(vectors) != len(chunks):
                    raise ValueError(
                        f"Embedder returned {len(vectors)} vectors for {len(chunks)} chunks"
                    )
                for chunk, vector in zip(chunks, vectors, strict=True):
                    await self._vector_store.store(
                        chunk.id, vector, build_envelope(tenant_id, document_id, chunk, key)
                    )

            await self._documents.update_status(document_id, DocumentStatus.READY)
        except Exception as e:
            logger.error(
                "Error processing document for ingestion",
                extra={
                    "error": str(e),
                    "document_id": document_id,
                    "tenant_id": tenant_id,
                    "key": key,
                },
            )
            await self._mark_error(document_id, str(e))
            return False

        logger.info(
            "Document processed successfully",
            extra={"document_id": document_id, "tenant_id": tenant_id, "chunk_count": len(chunks)},
        )
        return True

    async def _write_artifact(
        self, key: str, tenant_id: str, data: bytes, content_type: str
    ) -> None:
        self._guard.guard(key, tenant_id, "ingest")
        await self._store.put(key, data, content_type=content_type)

    async def _mark_error(self, document_id: str, message: str) -> None:
        try:
            await self._documents.update_status(
                document_id, DocumentStatus.ERROR, metadata={"error": message}
            )
        except Exception as update_error:
            logger.error(
                "Error updating document status",
                extra={"error": str(update_error), "document_id": document_id},
            )

    async def _process_batch(self, tenant_id: str, batch: list[DocumentRecord]) -> int:
        processed = 0
        for document in batch:
            key = document.storage_key
            if not key or not self._guard.validate(key, tenant_id):
                logger.warning(
                    "Document storage key does not match tenant",
                    extra={
                        "document_id": document.id,
                        "tenant_id": tenant_id,
                        "key": key,
                    },
                )
                continue
            if await self.process_document(key, tenant_id, document.id):
                processed += 1
        return processed

    async def process_all_for_tenant(self, tenant_id: str) -> int:
        """Process up to ingestion_batch_size PENDING/EXTRACTED documents of a tenant."""
        batch = await self._documents.list_processable(
            tenant_id, limit=self._settings.ingestion_batch_size
        )
        processed = await self._process_batch(tenant_id, batch)
        logger.info(
            "Tenant documents processing completed",
            extra={"tenant_id": tenant_id, "processed": processed, "total": len(batch)},
        )
        return processed

    async def process_folder(self, tenant_id: str, folder_id: str) -> int:
        """Process up to folder_batch_size PENDING/EXTRACTED documents of one folder."""
        batch = await self._documents.list_processable(
            tenant_id, limit=self._settings.folder_batch_size, folder_id=folder_id
        )
        processed = await self._process_batch(tenant_id, batch)
        logger.info(
            "Folder documents processing completed",
            extra={"tenant_id": tenant_id, "folder_id": folder_id, "processed": processed},
        )
        return processed

    async def list_for_tenant(
        self, tenant_id: str, stage: keys.Stage | str = keys.Stage.RAW
    ) -> list[str]:
        """List every key in one stage of a tenant, dropping any that fail validation."""
        prefix = keys.stage_prefix(tenant_id, stage)
        listed: list[str] = []
        token: str | None = None
        while True:
            page = await self._store.list(prefix, token)
            listed.extend(page.keys)
            token = page.next_token
            if not token:
                break
        return self._guard.filter_valid(listed, tenant_id)
