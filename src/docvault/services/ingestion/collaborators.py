"""External collaborator contracts for ingestion, plus local implementations.

The vector store has no native tenant concept; isolation there relies on the
tenantId carried in every vector's metadata and on filtering by it at query
time.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

DEFAULT_EMBEDDING_DIMENSIONS = 64


@runtime_checkable
class TextExtractor(Protocol):
    async def extract(self, data: bytes) -> str: ...


@runtime_checkable
class Embedder(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, in order."""
        ...


@runtime_checkable
class VectorStore(Protocol):
    async def store(self, vector_id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        """Upsert a vector by id (an existing id is overwritten)."""
        ...

    async def query(
        self, vector: list[float], tenant_id: str, top_k: int = 5
    ) -> list[VectorMatch]: ...


def deterministic_embedding(
    text: str, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS
) -> list[float]:
    """Hash-derived unit vector; identical text always yields the identical vector."""
    seed = text.encode("utf-8", errors="ignore")
    values: list[float] = []
    nonce = 0

    while len(values) < dimensions:
        digest = hashlib.sha256(seed + nonce.to_bytes(4, "big", signed=False)).digest()
        for i in range(0, len(digest), 2):
            if len(values) >= dimensions:
                break
            raw = int.from_bytes(digest[i : i + 2], "big", signed=False)
            values.append((raw / 65535.0) * 2.0 - 1.0)
        nonce += 1

    norm = math.sqrt(sum(v * v for v in values)) or 1.0
    return [v / norm for v in values]


def cosine_similarity(left: list[float], right: list[float]) -> float:
    if not left or not right:
        return 0.0
    size = min(len(left), len(right))
    dot = sum(left[i] * right[i] for i in range(size))
    left_norm = math.sqrt(sum(left[i] * left[i] for i in range(size))) or 1.0
    right_norm = math.sqrt(sum(right[i] * right[i] for i in range(size))) or 1.0
    return dot / (left_norm * right_norm)


class DeterministicEmbedder:
    """Offline Embedder producing hash-derived vectors (dev/test)."""

    def __init__(self, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS) -> None:
        self._dimensions = dimensions

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [deterministic_embedding(text, self._dimensions) for text in texts]


@dataclass(frozen=True)
class VectorMatch:
    """One query hit."""

    vector_id: str
    score: float
    metadata: dict[str, Any]


class InMemoryVectorStore:
    """In-memory VectorStore for development/testing.

    Overwrites by id, so reprocessing a document replaces its chunk vectors.
    """

    def __init__(self) -> None:
        self._vectors: dict[str, tuple[list[float], dict[str, Any]]] = {}

    async def store(self, vector_id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        if not metadata.get("tenantId"):
            raise ValueError("Vector metadata must carry tenantId")
        self._vectors[vector_id] = (list(vector), dict(metadata))

    async def query(
        self, vector: list[float], tenant_id: str, top_k: int = 5
    ) -> list[VectorMatch]:
        """Rank only the tenant's vectors by cosine similarity."""
        scored = [
            VectorMatch(vector_id=vid, score=cosine_similarity(vector, stored), metadata=meta)
            for vid, (stored, meta) in self._vectors.items()
            if meta.get("tenantId") == tenant_id
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]

    def get(self, vector_id: str) -> tuple[list[float], dict[str, Any]] | None:
        return self._vectors.get(vector_id)

    def __len__(self) -> int:
        return len(self._vectors)
