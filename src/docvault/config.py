"""DocVault runtime configuration.

Settings are read once from environment variables into an immutable
Settings object and passed to the components that need them. Invalid values
fail closed with ConfigError at load time rather than at first use.

Environment Variables:
    DOCVAULT_OBJECT_STORE_BACKEND: "filesystem", "memory" or "s3" (default: filesystem)
    DOCVAULT_OBJECT_STORE_BASE_DIR: Bucket directory for the filesystem backend
        (default: OS temp dir / docvault_objects)
    DOCVAULT_S3_BUCKET: Bucket name (required for the s3 backend)
    DOCVAULT_S3_REGION: Bucket region (default: us-east-1)
    DOCVAULT_S3_ENDPOINT_URL: Optional S3-compatible endpoint
    DOCVAULT_PRESIGN_SECRET: HMAC secret for filesystem/memory presigned URLs
    DOCVAULT_PRESIGN_EXPIRY_SECONDS: Credential lifetime (default: 3600)
    DOCVAULT_MAX_FILE_SIZE_BYTES: Upload size ceiling (default: 50 MiB)
    DOCVAULT_ALLOWED_FILE_TYPES: Comma-separated extensions
    DOCVAULT_CHUNK_SIZE: Characters per chunk (default: 1000)
    DOCVAULT_INGESTION_BATCH_SIZE: Documents per tenant pass (default: 100)
    DOCVAULT_FOLDER_BATCH_SIZE: Documents per folder pass (default: 50)
    DOCVAULT_INGESTION_INTERVAL_SECONDS: Background job interval (default: 300)
    DOCVAULT_INGESTION_WORKER_ENABLED: Start the background job with the API
    DOCVAULT_DELETE_BATCH_SIZE: Keys per bulk delete, 1..1000 (default: 1000)
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from docvault.errors import ConfigError
from docvault.storage.object_store import MAX_DELETE_BATCH

logger = logging.getLogger(__name__)

ENV_OBJECT_STORE_BACKEND: Final[str] = "DOCVAULT_OBJECT_STORE_BACKEND"
ENV_OBJECT_STORE_BASE_DIR: Final[str] = "DOCVAULT_OBJECT_STORE_BASE_DIR"
ENV_S3_BUCKET: Final[str] = "DOCVAULT_S3_BUCKET"
ENV_S3_REGION: Final[str] = "DOCVAULT_S3_REGION"
ENV_S3_ENDPOINT_URL: Final[str] = "DOCVAULT_S3_ENDPOINT_URL"
ENV_PRESIGN_SECRET: Final[str] = "DOCVAULT_PRESIGN_SECRET"
ENV_PRESIGN_EXPIRY_SECONDS: Final[str] = "DOCVAULT_PRESIGN_EXPIRY_SECONDS"
ENV_MAX_FILE_SIZE_BYTES: Final[str] = "DOCVAULT_MAX_FILE_SIZE_BYTES"
ENV_ALLOWED_FILE_TYPES: Final[str] = "DOCVAULT_ALLOWED_FILE_TYPES"
ENV_CHUNK_SIZE: Final[str] = "DOCVAULT_CHUNK_SIZE"
ENV_INGESTION_BATCH_SIZE: Final[str] = "DOCVAULT_INGESTION_BATCH_SIZE"
ENV_FOLDER_BATCH_SIZE: Final[str] = "DOCVAULT_FOLDER_BATCH_SIZE"
ENV_INGESTION_INTERVAL_SECONDS: Final[str] = "DOCVAULT_INGESTION_INTERVAL_SECONDS"
ENV_INGESTION_WORKER_ENABLED: Final[str] = "DOCVAULT_INGESTION_WORKER_ENABLED"
ENV_DELETE_BATCH_SIZE: Final[str] = "DOCVAULT_DELETE_BATCH_SIZE"

SUPPORTED_BACKENDS: Final[frozenset[str]] = frozenset({"filesystem", "memory", "s3"})

DEFAULT_PRESIGN_EXPIRY_SECONDS: Final[int] = 3600
DEFAULT_MAX_FILE_SIZE_BYTES: Final[int] = 50 * 1024 * 1024
DEFAULT_ALLOWED_FILE_TYPES: Final[tuple[str, ...]] = (
    "pdf",
    "doc",
    "docx",
    "txt",
    "md",
    "xls",
    "xlsx",
    "csv",
    "png",
    "jpg",
    "jpeg",
    "gif",
    "webp",
)
DEFAULT_CHUNK_SIZE: Final[int] = 1000
DEFAULT_INGESTION_BATCH_SIZE: Final[int] = 100
DEFAULT_FOLDER_BATCH_SIZE: Final[int] = 50
DEFAULT_INGESTION_INTERVAL_SECONDS: Final[int] = 300


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def _parse_positive_int(env_var: str, default: int) -> int:
    """Parse a positive integer from environment variable.

    Raises:
        ConfigError: If value is set but not a positive integer.
    """
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default

    raw = raw.strip()
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e

    if value <= 0:
        raise ConfigError(f"{env_var} must be a positive integer, got {value}")

    return value


def _parse_csv(env_var: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """DocVault configuration (immutable).

    Attributes:
        object_store_backend: Storage backend name.
        object_store_base_dir: Bucket directory for the filesystem backend.
        s3_bucket: Bucket name for the s3 backend.
        s3_region: AWS region for the s3 backend.
        s3_endpoint_url: Optional endpoint for S3-compatible services.
        presign_secret: HMAC secret for locally signed URLs (None = random per process).
        presign_expiry_seconds: Lifetime of upload/download credentials.
        max_file_size_bytes: Upload size ceiling.
        allowed_file_types: Allowed file extensions (lowercase, no dot).
        chunk_size: Characters per ingestion chunk.
        ingestion_batch_size: Documents picked per tenant pass.
        folder_batch_size: Documents picked per folder pass.
        ingestion_interval_seconds: Background job poll interval.
        ingestion_worker_enabled: Start the background job with the API.
        delete_batch_size: Keys per bulk delete request.
    """

    object_store_backend: str = "filesystem"
    object_store_base_dir: Path = Path(tempfile.gettempdir()) / "docvault_objects"
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    presign_secret: str | None = None
    presign_expiry_seconds: int = DEFAULT_PRESIGN_EXPIRY_SECONDS
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    allowed_file_types: tuple[str, ...] = DEFAULT_ALLOWED_FILE_TYPES
    chunk_size: int = DEFAULT_CHUNK_SIZE
    ingestion_batch_size: int = DEFAULT_INGESTION_BATCH_SIZE
    folder_batch_size: int = DEFAULT_FOLDER_BATCH_SIZE
    ingestion_interval_seconds: int = DEFAULT_INGESTION_INTERVAL_SECONDS
    ingestion_worker_enabled: bool = False
    delete_batch_size: int = MAX_DELETE_BATCH

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.object_store_backend not in SUPPORTED_BACKENDS:
            raise ConfigError(
                f"{ENV_OBJECT_STORE_BACKEND} must be one of {sorted(SUPPORTED_BACKENDS)}, "
                f"got '{self.object_store_backend}'"
            )
        if self.object_store_backend == "s3" and not self.s3_bucket:
            raise ConfigError(f"{ENV_S3_BUCKET} is required for the s3 backend")
        if not 1 <= self.delete_batch_size <= MAX_DELETE_BATCH:
            raise ConfigError(
                f"{ENV_DELETE_BATCH_SIZE} must be between 1 and {MAX_DELETE_BATCH}, "
                f"got {self.delete_batch_size}"
            )
        if not self.allowed_file_types:
            raise ConfigError(f"{ENV_ALLOWED_FILE_TYPES} must list at least one type")
        for name in (
            "presign_expiry_seconds",
            "max_file_size_bytes",
            "chunk_size",
            "ingestion_batch_size",
            "folder_batch_size",
            "ingestion_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be a positive integer")


def load_settings() -> Settings:
    """Load settings from environment variables.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If any value is invalid.
    """
    base_dir_raw = os.environ.get(ENV_OBJECT_STORE_BASE_DIR)
    base_dir = (
        Path(base_dir_raw) if base_dir_raw else Path(tempfile.gettempdir()) / "docvault_objects"
    )

    settings = Settings(
        object_store_backend=os.environ.get(ENV_OBJECT_STORE_BACKEND, "filesystem")
        .strip()
        .lower(),
        object_store_base_dir=base_dir,
        s3_bucket=os.environ.get(ENV_S3_BUCKET) or None,
        s3_region=os.environ.get(ENV_S3_REGION) or "us-east-1",
        s3_endpoint_url=os.environ.get(ENV_S3_ENDPOINT_URL) or None,
        presign_secret=os.environ.get(ENV_PRESIGN_SECRET) or None,
        presign_expiry_seconds=_parse_positive_int(
            ENV_PRESIGN_EXPIRY_SECONDS, DEFAULT_PRESIGN_EXPIRY_SECONDS
        ),
        max_file_size_bytes=_parse_positive_int(
            ENV_MAX_FILE_SIZE_BYTES, DEFAULT_MAX_FILE_SIZE_BYTES
        ),
        allowed_file_types=_parse_csv(ENV_ALLOWED_FILE_TYPES, DEFAULT_ALLOWED_FILE_TYPES),
        chunk_size=_parse_positive_int(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
        ingestion_batch_size=_parse_positive_int(
            ENV_INGESTION_BATCH_SIZE, DEFAULT_INGESTION_BATCH_SIZE
        ),
        folder_batch_size=_parse_positive_int(ENV_FOLDER_BATCH_SIZE, DEFAULT_FOLDER_BATCH_SIZE),
        ingestion_interval_seconds=_parse_positive_int(
            ENV_INGESTION_INTERVAL_SECONDS, DEFAULT_INGESTION_INTERVAL_SECONDS
        ),
        ingestion_worker_enabled=get_env_bool(ENV_INGESTION_WORKER_ENABLED, False),
        delete_batch_size=_parse_positive_int(ENV_DELETE_BATCH_SIZE, MAX_DELETE_BATCH),
    )

    logger.debug(
        "Loaded settings",
        extra={
            "object_store_backend": settings.object_store_backend,
            "presign_expiry_seconds": settings.presign_expiry_seconds,
        },
    )
    return settings
