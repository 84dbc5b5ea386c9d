"""Object store construction from settings."""

from __future__ import annotations

import logging

from docvault.config import Settings
from docvault.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


def create_object_store(settings: Settings) -> ObjectStore:
    """Build the configured shared-bucket backend.

    Args:
        settings: Loaded settings; object_store_backend selects the backend.

    Returns:
        ObjectStore instance.
    """
    backend = settings.object_store_backend

    if backend == "s3":
        from docvault.storage.s3_store import S3ObjectStore

        assert settings.s3_bucket is not None
        store: ObjectStore = S3ObjectStore(
            settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
        )
    elif backend == "memory":
        from docvault.storage.memory_store import InMemoryObjectStore

        store = InMemoryObjectStore(presign_secret=settings.presign_secret)
    else:
        from docvault.storage.filesystem_store import FilesystemObjectStore

        store = FilesystemObjectStore(
            settings.object_store_base_dir,
            presign_secret=settings.presign_secret,
        )

    logger.info("Object store backend selected", extra={"backend": store.backend_name})
    return store
