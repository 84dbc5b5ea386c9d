"""DocVault filesystem object storage backend.

Provides a local directory acting as the single shared bucket, for development
and testing, with:
- Key-to-path mapping that mirrors the bucket key hierarchy
- Path traversal protection
- SHA256 content hashing with sidecar metadata
- Sorted, token-paginated prefix listings
- HMAC-signed presigned URLs

Environment Variables:
    DOCVAULT_OBJECT_STORE_BASE_DIR: Base directory for storage
        (default: tempfile.gettempdir() / docvault_objects)
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
import tempfile
import uuid
from datetime import UTC, datetime
from pathlib import Path

from docvault.storage.errors import (
    ObjectNotFoundError,
    PathTraversalError,
    StorageBackendError,
)
from docvault.storage.models import (
    BatchDeleteError,
    BatchDeleteResult,
    ObjectListing,
    PresignedCredential,
    PresignOperation,
    StoredObject,
    StoredObjectMetadata,
)
from docvault.storage.object_store import DEFAULT_LIST_PAGE_SIZE, MAX_DELETE_BATCH, ObjectStore
from docvault.storage.signing import UrlSigner
from docvault.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

DOCVAULT_OBJECT_STORE_BASE_DIR_ENV = "DOCVAULT_OBJECT_STORE_BASE_DIR"

_SAFE_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_\-./ ]+$")

_OBJECTS_DIR = "objects"
_METADATA_DIR = "metadata"
_METADATA_SUFFIX = ".meta.json"


def _is_path_traversal(key: str) -> bool:
    """Check if a key contains path traversal sequences.

    Detects:
    - "..", "." and empty segments
    - Absolute paths (starting with / or ~, or a drive letter)
    - Backslashes and null bytes
    - Characters outside the safe key alphabet
    """
    if not key:
        return True

    if "\x00" in key or "\\" in key:
        return True

    if key.startswith("/") or key.startswith("~"):
        return True

    if len(key) >= 2 and key[1] == ":":
        return True

    segments = key.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        return True

    return not bool(_SAFE_KEY_PATTERN.match(key))


def _validate_key(key: str) -> None:
    """Validate object key and raise if invalid."""
    if _is_path_traversal(key):
        raise PathTraversalError(
            "Invalid key: path traversal or unsafe characters detected",
            key=key,
        )


def _validate_prefix(prefix: str) -> None:
    """Validate a listing prefix (may end with "/")."""
    stripped = prefix[:-1] if prefix.endswith("/") else prefix
    _validate_key(stripped)


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of data and return as hex string."""
    return hashlib.sha256(data).hexdigest()


class FilesystemObjectStore(ObjectStore):
    """Filesystem-based shared bucket.

    Objects are stored in a directory structure mirroring their keys:
        {base_dir}/objects/{key}                 # content
        {base_dir}/metadata/{key}.meta.json      # metadata

    Blocking file I/O runs in a worker thread via asyncio.to_thread.
    """

    def __init__(
        self,
        base_dir: str | Path | None = None,
        *,
        presign_secret: str | None = None,
        page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory for storage. If None, uses
                DOCVAULT_OBJECT_STORE_BASE_DIR env var or OS temp directory.
            presign_secret: HMAC secret for presigned URLs.
            page_size: Maximum keys returned per list() page.
        """
        if base_dir is None:
            base_dir = os.environ.get(DOCVAULT_OBJECT_STORE_BASE_DIR_ENV)

        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / "docvault_objects"
        else:
            base_dir = Path(base_dir)

        self._base_dir = base_dir.resolve()
        self._page_size = page_size
        self._signer = UrlSigner(bucket=self._base_dir.name or "docvault", secret=presign_secret)
        logger.debug("FilesystemObjectStore initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    @property
    def signer(self) -> UrlSigner:
        """Return the URL signer (used to verify issued credentials)."""
        return self._signer

    def verify_credential(self, credential: str, operation: PresignOperation) -> str:
        """Verify an HMAC-signed URL issued by presign()."""
        return self._signer.verify(credential, operation)

    def _ensure_resolved_within_base(self, path: Path, key: str) -> Path:
        """Ensure a path resolves within the base directory (defense in depth)."""
        resolved = path.resolve()
        try:
            resolved.relative_to(self._base_dir)
        except ValueError as e:
            raise PathTraversalError(
                "Path resolves outside storage base directory",
                key=key,
            ) from e
        return resolved

    def _content_path(self, key: str) -> Path:
        _validate_key(key)
        return self._ensure_resolved_within_base(self._base_dir / _OBJECTS_DIR / key, key)

    def _metadata_path(self, key: str) -> Path:
        _validate_key(key)
        return self._ensure_resolved_within_base(
            self._base_dir / _METADATA_DIR / f"{key}{_METADATA_SUFFIX}", key
        )

    def _write_atomic(self, target: Path, data: bytes, key: str) -> None:
        """Write a file atomically via a temp file and rename."""
        tmp_file = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_file.write_bytes(data)
            tmp_file.replace(target)
        except OSError as e:
            tmp_file.unlink(missing_ok=True)
            raise StorageBackendError(
                f"Failed to write object file: {e}",
                key=key,
                cause=e,
            ) from e

    def _read_metadata(self, key: str) -> StoredObjectMetadata | None:
        meta_file = self._metadata_path(key)
        if not meta_file.exists():
            return None
        try:
            data = json.loads(meta_file.read_text(encoding="utf-8"))
            return StoredObjectMetadata.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError) as e:
            logger.warning("Failed to read metadata for key_sha256=%s: %s", _hash(key), e)
            return None

    def _put_sync(self, key: str, data: bytes, content_type: str | None) -> StoredObjectMetadata:
        content_file = self._content_path(key)
        metadata = StoredObjectMetadata(
            key=key,
            sha256=_compute_sha256(data),
            size_bytes=len(data),
            content_type=content_type,
            created_at=datetime.now(UTC),
        )
        self._write_atomic(content_file, data, key)
        self._write_atomic(
            self._metadata_path(key),
            json.dumps(metadata.to_dict(), indent=2).encode("utf-8"),
            key,
        )
        logger.debug("Stored object key_sha256=%s sha256=%s", _hash(key), metadata.sha256)
        return metadata

    def _get_sync(self, key: str) -> StoredObject:
        content_file = self._content_path(key)
        if not content_file.is_file():
            raise ObjectNotFoundError(key=key)

        try:
            body = content_file.read_bytes()
        except OSError as e:
            raise StorageBackendError(f"Failed to read object: {e}", key=key, cause=e) from e

        metadata = self._read_metadata(key)
        if metadata is None:
            metadata = StoredObjectMetadata(
                key=key,
                sha256=_compute_sha256(body),
                size_bytes=len(body),
                content_type=None,
                created_at=datetime.fromtimestamp(content_file.stat().st_mtime, UTC),
            )
        return StoredObject(metadata=metadata, body=body)

    def _delete_sync(self, key: str) -> None:
        content_file = self._content_path(key)
        if not content_file.is_file():
            raise ObjectNotFoundError(key=key)
        try:
            content_file.unlink()
            self._metadata_path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageBackendError(f"Failed to delete object: {e}", key=key, cause=e) from e

    def _delete_batch_sync(self, keys: list[str]) -> BatchDeleteResult:
        deleted: list[str] = []
        errors: list[BatchDeleteError] = []
        for key in keys:
            try:
                self._delete_sync(key)
                deleted.append(key)
            except ObjectNotFoundError:
                # S3 semantics: deleting a missing key is a success.
                deleted.append(key)
            except (PathTraversalError, StorageBackendError) as e:
                errors.append(BatchDeleteError(key=key, code=e.code, message=e.message))
        return BatchDeleteResult(deleted_keys=deleted, errors=errors)

    def _list_sync(self, prefix: str, continuation_token: str | None) -> ObjectListing:
        _validate_prefix(prefix)
        objects_root = self._base_dir / _OBJECTS_DIR

        # Walk only the deepest directory the prefix fully names.
        directory_part = prefix.rsplit("/", 1)[0] if "/" in prefix else ""
        search_root = objects_root / directory_part if directory_part else objects_root
        self._ensure_resolved_within_base(search_root, prefix)

        if not search_root.is_dir():
            return ObjectListing(keys=[])

        matched: list[str] = []
        try:
            for path in search_root.rglob("*"):
                if not path.is_file() or path.name.endswith(".tmp"):
                    continue
                key = path.relative_to(objects_root).as_posix()
                if key.startswith(prefix) and (
                    continuation_token is None or key > continuation_token
                ):
                    matched.append(key)
        except OSError as e:
            raise StorageBackendError(f"Failed to list objects: {e}", cause=e) from e

        matched.sort()
        page = matched[: self._page_size]
        next_token = page[-1] if len(matched) > self._page_size else None
        return ObjectListing(keys=page, next_token=next_token)

    @traced_storage_operation("put")
    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        """Store an object."""
        return await asyncio.to_thread(self._put_sync, key, data, content_type)

    @traced_storage_operation("get")
    async def get(self, key: str) -> StoredObject:
        """Retrieve an object."""
        return await asyncio.to_thread(self._get_sync, key)

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        """Delete an object."""
        await asyncio.to_thread(self._delete_sync, key)

    @traced_storage_operation("delete_batch")
    async def delete_batch(self, keys: list[str]) -> BatchDeleteResult:
        """Delete up to MAX_DELETE_BATCH objects."""
        if len(keys) > MAX_DELETE_BATCH:
            raise ValueError(f"delete_batch accepts at most {MAX_DELETE_BATCH} keys")
        return await asyncio.to_thread(self._delete_batch_sync, list(keys))

    @traced_storage_operation("list")
    async def list(
        self,
        prefix: str,
        continuation_token: str | None = None,
    ) -> ObjectListing:
        """List one page of keys under prefix, sorted lexicographically."""
        return await asyncio.to_thread(self._list_sync, prefix, continuation_token)

    @traced_storage_operation("presign", key_position=1)
    async def presign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
    ) -> PresignedCredential:
        """Issue an HMAC-signed URL for one operation on key."""
        _validate_key(key)
        url = self._signer.sign(operation, key, expires_in)
        return PresignedCredential(
            url=url, key=key, operation=operation, expires_in=expires_in
        )


def _hash(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
