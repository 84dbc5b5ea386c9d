"""DocVault S3 object storage backend.

Production backend for the shared bucket. boto3 calls are blocking, so each
one runs in a worker thread via asyncio.to_thread. Presigned URLs are always
SigV4: regions launched after 2014 reject SigV2 signatures.

Environment Variables:
    DOCVAULT_S3_BUCKET: Bucket name
    DOCVAULT_S3_REGION: Bucket region (default: us-east-1)
    DOCVAULT_S3_ENDPOINT_URL: Optional S3-compatible endpoint (MinIO, LocalStack)
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from docvault.storage.errors import ObjectNotFoundError, StorageBackendError
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
from docvault.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})

_PRESIGN_CLIENT_METHODS = {
    PresignOperation.PUT: "put_object",
    PresignOperation.GET: "get_object",
}


def create_s3_client(region: str, endpoint_url: str | None = None) -> Any:
    """Create a boto3 S3 client configured for SigV4 presigned URLs."""
    config = Config(signature_version="s3v4", s3={"addressing_style": "virtual"})
    return boto3.client("s3", region_name=region, endpoint_url=endpoint_url, config=config)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore(ObjectStore):
    """S3-backed shared bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        client: Any | None = None,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        page_size: int = DEFAULT_LIST_PAGE_SIZE,
    ) -> None:
        """Initialize the S3 backend.

        Args:
            bucket: Bucket name.
            client: Pre-built boto3 S3 client (tests inject a stub).
            region: AWS region used when client is None.
            endpoint_url: Optional S3-compatible endpoint used when client is None.
            page_size: MaxKeys per list_objects_v2 page.
        """
        self._bucket = bucket
        self._client = client if client is not None else create_s3_client(region, endpoint_url)
        self._page_size = page_size

    @property
    def backend_name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    async def _call(self, method: str, key: str | None = None, **params: Any) -> Any:
        """Run one boto3 client method off the event loop, mapping errors."""
        func = getattr(self._client, method)
        try:
            return await asyncio.to_thread(func, **params)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(key=key) from e
            raise StorageBackendError(
                f"S3 {method} failed: {_error_code(e) or e}",
                key=key,
                cause=e,
            ) from e
        except BotoCoreError as e:
            raise StorageBackendError(f"S3 {method} failed: {e}", key=key, cause=e) from e

    @traced_storage_operation("put")
    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
    ) -> StoredObjectMetadata:
        params: dict[str, Any] = {"Bucket": self._bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        await self._call("put_object", key, **params)

        return StoredObjectMetadata(
            key=key,
            sha256=hashlib.sha256(data).hexdigest(),
            size_bytes=len(data),
            content_type=content_type,
            created_at=datetime.now(UTC),
        )

    @traced_storage_operation("get")
    async def get(self, key: str) -> StoredObject:
        response = await self._call("get_object", key, Bucket=self._bucket, Key=key)
        body = await asyncio.to_thread(response["Body"].read)

        last_modified = response.get("LastModified")
        metadata = StoredObjectMetadata(
            key=key,
            sha256=hashlib.sha256(body).hexdigest(),
            size_bytes=len(body),
            content_type=response.get("ContentType"),
            created_at=last_modified if isinstance(last_modified, datetime) else datetime.now(UTC),
        )
        return StoredObject(metadata=metadata, body=body)

    @traced_storage_operation("delete")
    async def delete(self, key: str) -> None:
        await self._call("delete_object", key, Bucket=self._bucket, Key=key)

    @traced_storage_operation("delete_batch")
    async def delete_batch(self, keys: list[str]) -> BatchDeleteResult:
        if len(keys) > MAX_DELETE_BATCH:
            raise ValueError(f"delete_batch accepts at most {MAX_DELETE_BATCH} keys")
        if not keys:
            return BatchDeleteResult()

        response = await self._call(
            "delete_objects",
            Bucket=self._bucket,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
        )

        deleted = [item["Key"] for item in response.get("Deleted", [])]
        errors = [
            BatchDeleteError(
                key=item.get("Key", ""),
                code=item.get("Code", "Unknown"),
                message=item.get("Message", ""),
            )
            for item in response.get("Errors", [])
        ]
        return BatchDeleteResult(deleted_keys=deleted, errors=errors)

    @traced_storage_operation("list")
    async def list(
        self,
        prefix: str,
        continuation_token: str | None = None,
    ) -> ObjectListing:
        params: dict[str, Any] = {
            "Bucket": self._bucket,
            "Prefix": prefix,
            "MaxKeys": self._page_size,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        response = await self._call("list_objects_v2", **params)
        keys = [item["Key"] for item in response.get("Contents", [])]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ObjectListing(keys=keys, next_token=next_token)

    @traced_storage_operation("presign", key_position=1)
    async def presign(
        self,
        operation: PresignOperation,
        key: str,
        expires_in: int,
    ) -> PresignedCredential:
        url = await self._call(
            "generate_presigned_url",
            key,
            ClientMethod=_PRESIGN_CLIENT_METHODS[operation],
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expires_in,
        )
        logger.debug(
            "Issued presigned URL",
            extra={"operation": operation.value, "expires_in": expires_in},
        )
        return PresignedCredential(
            url=url, key=key, operation=operation, expires_in=expires_in
        )
