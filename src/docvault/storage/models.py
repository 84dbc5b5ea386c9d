"""DocVault object storage data models.

Provides typed dataclasses for object metadata, listings, batch deletion
results and presigned credentials.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class PresignOperation(str, Enum):
    """Storage operation a presigned credential permits."""

    PUT = "put"
    GET = "get"


@dataclass(frozen=True)
class StoredObjectMetadata:
    """Metadata for a stored object.

    Attributes:
        key: Full bucket key of the object.
        sha256: SHA256 hash of the object content (hex string).
        size_bytes: Size of the object content in bytes.
        content_type: MIME type of the content (e.g., "application/pdf").
        created_at: Timestamp when the object was written.
    """

    key: str
    sha256: str
    size_bytes: int
    content_type: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert metadata to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "sha256": self.sha256,
            "size_bytes": self.size_bytes,
            "content_type": self.content_type,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str | int | None]) -> StoredObjectMetadata:
        """Create metadata from dictionary."""
        created_at_raw = data.get("created_at")
        if isinstance(created_at_raw, str):
            created_at = datetime.fromisoformat(created_at_raw)
        else:
            created_at = datetime.now(UTC)

        size_bytes_raw = data.get("size_bytes")
        size_bytes = int(size_bytes_raw) if size_bytes_raw is not None else 0

        content_type_raw = data.get("content_type")
        content_type = str(content_type_raw) if content_type_raw else None

        return cls(
            key=str(data["key"]),
            sha256=str(data["sha256"]),
            size_bytes=size_bytes,
            content_type=content_type,
            created_at=created_at,
        )


@dataclass(frozen=True)
class StoredObject:
    """A stored object with metadata and body content."""

    metadata: StoredObjectMetadata
    body: bytes


@dataclass(frozen=True)
class ObjectListing:
    """One page of a prefix listing.

    Attributes:
        keys: Keys on this page, in backend order.
        next_token: Continuation token for the next page, or None when exhausted.
    """

    keys: list[str]
    next_token: str | None = None


@dataclass(frozen=True)
class BatchDeleteError:
    """A key the backend reported it could not delete."""

    key: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class BatchDeleteResult:
    """Outcome of one bulk delete request."""

    deleted_keys: list[str] = field(default_factory=list)
    errors: list[BatchDeleteError] = field(default_factory=list)


@dataclass(frozen=True)
class PresignedCredential:
    """A time-bounded credential scoped to exactly one key and operation.

    Attributes:
        url: Opaque credential (presigned URL) handed to the client.
        key: The single key the credential permits.
        operation: Permitted operation.
        expires_in: Lifetime in seconds from issuance.
    """

    url: str
    key: str
    operation: PresignOperation
    expires_in: int
