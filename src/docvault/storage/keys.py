"""Storage key codec for the shared DocVault bucket.

Every object the application writes or reads lives under the canonical shape:

    tenants/{tenant_id}/documents/{stage}/{document_id}/{filename}

where stage is one of raw, extracted, chunks, embeddings. This module is the
only place key strings are built or split; callers pass typed components and
get a key back, or pass a key and get typed components back.

Stage filename rules:
    raw         sanitized original filename
    extracted   sanitized original filename + ".txt"
    chunks      chunk_{chunk_id|timestamp}.json
    embeddings  embedding_{chunk_id|timestamp}.json (reserved; vectors live in
                the vector store and nothing writes this stage)

A metadata.json object may sit alongside a raw document at the same
document path (see build_metadata_key).
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from enum import Enum

from docvault.errors import InvalidParameterError

KEY_ROOT = "tenants"
DOCUMENTS_SEGMENT = "documents"
METADATA_FILENAME = "metadata.json"

_IDENTIFIER_DISALLOWED = re.compile(r"[^a-zA-Z0-9_-]")
_BASENAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9 _-]")
_EXTENSION_DISALLOWED = re.compile(r"[^a-zA-Z0-9.]")
_TENANT_FROM_KEY = re.compile(r"^tenants/([^/]+)/")

_TRAVERSAL_SEQUENCES = ("../", "..\\", "/..", "\\..")


class Stage(str, Enum):
    """Pipeline phase of a document's stored artifacts."""

    RAW = "raw"
    EXTRACTED = "extracted"
    CHUNKS = "chunks"
    EMBEDDINGS = "embeddings"


@dataclass(frozen=True)
class StorageKey:
    """Typed view of a canonical storage key.

    Attributes:
        tenant_id: Owning tenant (ownership segment).
        stage: Pipeline stage segment.
        document_id: Document the object belongs to.
        filename: Final path segment.
    """

    tenant_id: str
    stage: Stage
    document_id: str
    filename: str

    @property
    def key(self) -> str:
        """Render the key string."""
        return (
            f"{KEY_ROOT}/{self.tenant_id}/{DOCUMENTS_SEGMENT}/"
            f"{self.stage.value}/{self.document_id}/{self.filename}"
        )

    def __str__(self) -> str:
        return self.key


def strip_traversal(value: str) -> str:
    """Remove path traversal sequences until none remain.

    Repeats until stable so that nested sequences such as "....//" cannot
    reassemble into "../" after a single pass.
    """
    previous = None
    while previous != value:
        previous = value
        for sequence in _TRAVERSAL_SEQUENCES:
            value = value.replace(sequence, "")
    return value


def sanitize_identifier(value: str | None) -> str:
    """Keep only alphanumerics, hyphens and underscores.

    Returns an empty string when nothing survives; callers treat that as invalid.
    """
    if not value or not isinstance(value, str):
        return ""
    return _IDENTIFIER_DISALLOWED.sub("", value)


def sanitize_filename(filename: str | None) -> str:
    """Sanitize a caller-supplied filename for use as a key segment.

    Strips traversal sequences and null bytes, then splits the extension at the
    last dot (only when the dot is not the first character). Disallowed base
    name characters become "_"; the extension keeps only [A-Za-z0-9.].

    Args:
        filename: Original filename from the client.

    Returns:
        Sanitized filename, or "" if nothing usable remains.
    """
    if not filename or not isinstance(filename, str):
        return ""

    cleaned = strip_traversal(filename.replace("\x00", ""))

    dot_index = cleaned.rfind(".")
    if dot_index > 0:
        base_name, extension = cleaned[:dot_index], cleaned[dot_index:]
    else:
        base_name, extension = cleaned, ""

    base_name = _BASENAME_DISALLOWED.sub("_", base_name)
    extension = _EXTENSION_DISALLOWED.sub("", extension)

    return base_name + extension


def _require_identifier(value: str | None, field_name: str) -> str:
    sanitized = sanitize_identifier(value)
    if not sanitized:
        raise InvalidParameterError(
            f"Invalid {field_name}: empty after sanitization",
            details={"field": field_name},
        )
    return sanitized


def _coerce_stage(stage: Stage | str) -> Stage:
    try:
        return Stage(stage)
    except ValueError as e:
        raise InvalidParameterError(
            f"Invalid storage stage: {stage}",
            details={"field": "stage"},
        ) from e


def _generation_timestamp() -> str:
    return str(int(time.time() * 1000))


def stage_filename(
    stage: Stage | str,
    filename: str | None = None,
    *,
    chunk_id: str | int | None = None,
) -> str:
    """Derive the final key segment for a stage.

    Args:
        stage: Target stage.
        filename: Original filename (required for raw and extracted).
        chunk_id: Chunk identifier for chunks/embeddings. When omitted, a
            millisecond generation timestamp is used instead.

    Returns:
        Sanitized filename segment.

    Raises:
        InvalidParameterError: If the resulting segment is empty.
    """
    resolved = _coerce_stage(stage)

    if resolved in (Stage.CHUNKS, Stage.EMBEDDINGS):
        kind = "chunk" if resolved is Stage.CHUNKS else "embedding"
        suffix = _generation_timestamp() if chunk_id is None else str(chunk_id)
        suffix = sanitize_identifier(suffix)
        if not suffix:
            raise InvalidParameterError(
                "Invalid chunk identifier", details={"field": "chunk_id"}
            )
        return f"{kind}_{suffix}.json"

    sanitized = sanitize_filename(filename)
    if not sanitized:
        raise InvalidParameterError("Invalid filename", details={"field": "filename"})

    if resolved is Stage.EXTRACTED:
        return f"{sanitized}.txt"
    return sanitized


def build_key(
    tenant_id: str,
    document_id: str,
    filename: str | None,
    stage: Stage | str = Stage.RAW,
    *,
    chunk_id: str | int | None = None,
) -> str:
    """Build a canonical storage key.

    Deterministic for raw and extracted stages. Chunk and embedding keys embed
    a generation timestamp unless a chunk_id is supplied.

    Args:
        tenant_id: Tenant identifier (sanitized to [A-Za-z0-9_-]).
        document_id: Document identifier (sanitized to [A-Za-z0-9_-]).
        filename: Original filename; ignored for chunks/embeddings.
        stage: Target stage (default raw).
        chunk_id: Optional chunk identifier for chunks/embeddings.

    Returns:
        Key string in canonical shape.

    Raises:
        InvalidParameterError: If any sanitized component is empty or the
            stage is unknown.
    """
    resolved = _coerce_stage(stage)
    return StorageKey(
        tenant_id=_require_identifier(tenant_id, "tenant_id"),
        stage=resolved,
        document_id=_require_identifier(document_id, "document_id"),
        filename=stage_filename(resolved, filename, chunk_id=chunk_id),
    ).key


def build_metadata_key(tenant_id: str, document_id: str) -> str:
    """Build the key of the metadata.json object beside a raw document."""
    return StorageKey(
        tenant_id=_require_identifier(tenant_id, "tenant_id"),
        stage=Stage.RAW,
        document_id=_require_identifier(document_id, "document_id"),
        filename=METADATA_FILENAME,
    ).key


def extract_tenant_id(key: str | None) -> str | None:
    """Return the tenant segment of a key, or None if the key is not tenant-scoped."""
    if not key:
        return None
    match = _TENANT_FROM_KEY.match(key)
    return match.group(1) if match else None


def parse_stage(key: str) -> str:
    """Return the fourth path segment (the stage) of a key.

    Raises:
        InvalidParameterError: If the key has fewer than four segments.
    """
    parts = (key or "").split("/")
    if len(parts) < 4:
        raise InvalidParameterError(
            "Storage key has insufficient segments",
            key=key,
            details={"segments": len(parts)},
        )
    return parts[3]


def parse_key(key: str) -> StorageKey:
    """Split a canonical key into its typed components.

    Raises:
        InvalidParameterError: If the key does not match the canonical shape.
    """
    parts = (key or "").split("/")
    if len(parts) != 6 or parts[0] != KEY_ROOT or parts[2] != DOCUMENTS_SEGMENT:
        raise InvalidParameterError("Storage key does not match canonical shape", key=key)

    _, tenant_id, _, stage_raw, document_id, filename = parts
    stage = _coerce_stage(stage_raw)

    if sanitize_identifier(tenant_id) != tenant_id or not tenant_id:
        raise InvalidParameterError("Storage key has invalid tenant segment", key=key)
    if sanitize_identifier(document_id) != document_id or not document_id:
        raise InvalidParameterError("Storage key has invalid document segment", key=key)
    if not filename:
        raise InvalidParameterError("Storage key has empty filename", key=key)

    return StorageKey(
        tenant_id=tenant_id,
        stage=stage,
        document_id=document_id,
        filename=filename,
    )


def tenant_prefix(tenant_id: str) -> str:
    """Prefix covering every object a tenant owns: tenants/{tenant_id}/."""
    return f"{KEY_ROOT}/{_require_identifier(tenant_id, 'tenant_id')}/"


def stage_prefix(tenant_id: str, stage: Stage | str) -> str:
    """Prefix for one stage of a tenant: tenants/{t}/documents/{stage}/."""
    resolved = _coerce_stage(stage)
    return f"{tenant_prefix(tenant_id)}{DOCUMENTS_SEGMENT}/{resolved.value}/"


def document_prefix(tenant_id: str, document_id: str, stage: Stage | str = Stage.RAW) -> str:
    """Prefix for one document within a stage."""
    return f"{stage_prefix(tenant_id, stage)}{_require_identifier(document_id, 'document_id')}/"
