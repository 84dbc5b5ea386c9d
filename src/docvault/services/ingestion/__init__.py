"""Tenant-safe document ingestion (extract, chunk, embed, index)."""

from docvault.services.ingestion.collaborators import (
    DeterministicEmbedder,
    Embedder,
    InMemoryVectorStore,
    TextExtractor,
    VectorMatch,
    VectorStore,
)
from docvault.services.ingestion.job import IngestionJob
from docvault.services.ingestion.pipeline import Chunk, IngestionPipeline, build_envelope
from docvault.services.ingestion.worker import IngestionWorker

__all__ = [
    "Chunk",
    "DeterministicEmbedder",
    "Embedder",
    "InMemoryVectorStore",
    "IngestionJob",
    "IngestionPipeline",
    "IngestionWorker",
    "TextExtractor",
    "VectorMatch",
    "VectorStore",
    "build_envelope",
]
