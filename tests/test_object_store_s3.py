"""Tests for the S3 backend against a stub boto3 client.

The stub records every call, so the tests pin down exactly which requests
the backend issues (bucket, prefix, MaxKeys, Delete payload, presign method).
"""

from __future__ import annotations

import asyncio
import io
from datetime import UTC, datetime
from typing import Any

import pytest
from botocore.exceptions import ClientError

from docvault.storage.errors import (
    CredentialNotRedeemableError,
    ObjectNotFoundError,
    StorageBackendError,
)
from docvault.storage.models import PresignOperation
from docvault.storage.s3_store import S3ObjectStore, create_s3_client

BUCKET = "docvault-shared"


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class StubS3Client:
    """Minimal stand-in for a boto3 S3 client."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failing_keys: set[str] = set()
        self.page_size_seen: list[int] = []

    def put_object(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("put_object", params))
        self.objects[params["Key"]] = params["Body"]
        return {}

    def get_object(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("get_object", params))
        if params["Key"] not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {
            "Body": io.BytesIO(self.objects[params["Key"]]),
            "ContentType": "application/pdf",
            "LastModified": datetime(2026, 1, 1, tzinfo=UTC),
        }

    def delete_object(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("delete_object", params))
        self.objects.pop(params["Key"], None)
        return {}

    def delete_objects(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("delete_objects", params))
        deleted, errors = [], []
        for item in params["Delete"]["Objects"]:
            key = item["Key"]
            if key in self.failing_keys:
                errors.append({"Key": key, "Code": "AccessDenied", "Message": "Access Denied"})
            else:
                self.objects.pop(key, None)
                deleted.append({"Key": key})
        return {"Deleted": deleted, "Errors": errors}

    def list_objects_v2(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("list_objects_v2", params))
        matched = sorted(k for k in self.objects if k.startswith(params["Prefix"]))
        start = int(params.get("ContinuationToken", "0"))
        page = matched[start : start + params["MaxKeys"]]
        end = start + len(page)
        response: dict[str, Any] = {"Contents": [{"Key": k} for k in page]}
        response["IsTruncated"] = end < len(matched)
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(end)
        return response

    def generate_presigned_url(self, **params: Any) -> str:
        self.calls.append(("generate_presigned_url", params))
        key = params["Params"]["Key"]
        return f"https://{BUCKET}.s3.amazonaws.com/{key}?X-Amz-Expires={params['ExpiresIn']}"


@pytest.fixture
def client() -> StubS3Client:
    return StubS3Client()


@pytest.fixture
def store(client: StubS3Client) -> S3ObjectStore:
    return S3ObjectStore(BUCKET, client=client, page_size=2)


def _key(tenant: str, doc: str) -> str:
    return f"tenants/{tenant}/documents/raw/{doc}/f.pdf"


class TestPutGet:
    def test_put_sends_content_type(self, store: S3ObjectStore, client: StubS3Client) -> None:
        metadata = asyncio.run(
            store.put(_key("t_1", "d_1"), b"pdf", content_type="application/pdf")
        )

        name, params = client.calls[-1]
        assert name == "put_object"
        assert params == {
            "Bucket": BUCKET,
            "Key": _key("t_1", "d_1"),
            "Body": b"pdf",
            "ContentType": "application/pdf",
        }
        assert metadata.size_bytes == 3

    def test_get_reads_body(self, store: S3ObjectStore) -> None:
        asyncio.run(store.put(_key("t_1", "d_1"), b"content"))

        stored = asyncio.run(store.get(_key("t_1", "d_1")))

        assert stored.body == b"content"
        assert stored.metadata.content_type == "application/pdf"
        assert stored.metadata.created_at == datetime(2026, 1, 1, tzinfo=UTC)

    def test_no_such_key_maps_to_not_found(self, store: S3ObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            asyncio.run(store.get(_key("t_1", "missing")))

    def test_other_client_errors_map_to_backend_error(
        self, store: S3ObjectStore, client: StubS3Client, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def denied(**params: Any) -> dict[str, Any]:
            raise _client_error("AccessDenied", "PutObject")

        monkeypatch.setattr(client, "put_object", denied)

        with pytest.raises(StorageBackendError, match="AccessDenied"):
            asyncio.run(store.put(_key("t_1", "d_1"), b"x"))


class TestList:
    def test_list_follows_continuation_tokens(
        self, store: S3ObjectStore, client: StubS3Client
    ) -> None:
        for i in range(3):
            client.objects[_key("t_1", f"d_{i}")] = b"x"
        client.objects[_key("t_2", "d_0")] = b"x"

        first = asyncio.run(store.list("tenants/t_1/"))
        second = asyncio.run(store.list("tenants/t_1/", first.next_token))

        assert first.keys == [_key("t_1", "d_0"), _key("t_1", "d_1")]
        assert first.next_token == "2"
        assert second.keys == [_key("t_1", "d_2")]
        assert second.next_token is None

        list_calls = [params for name, params in client.calls if name == "list_objects_v2"]
        assert list_calls[0] == {"Bucket": BUCKET, "Prefix": "tenants/t_1/", "MaxKeys": 2}
        assert list_calls[1]["ContinuationToken"] == "2"


class TestDeleteBatch:
    def test_delete_batch_maps_deleted_and_errors(
        self, store: S3ObjectStore, client: StubS3Client
    ) -> None:
        keys = [_key("t_1", f"d_{i}") for i in range(3)]
        for key in keys:
            client.objects[key] = b"x"
        client.failing_keys.add(keys[1])

        result = asyncio.run(store.delete_batch(keys))

        assert result.deleted_keys == [keys[0], keys[2]]
        assert len(result.errors) == 1
        assert result.errors[0].key == keys[1]
        assert result.errors[0].code == "AccessDenied"

        _, params = client.calls[-1]
        assert params["Delete"]["Objects"] == [{"Key": key} for key in keys]

    def test_empty_batch_issues_no_request(
        self, store: S3ObjectStore, client: StubS3Client
    ) -> None:
        result = asyncio.run(store.delete_batch([]))

        assert result.deleted_keys == []
        assert client.calls == []

    def test_over_limit_rejected_before_request(
        self, store: S3ObjectStore, client: StubS3Client
    ) -> None:
        with pytest.raises(ValueError):
            asyncio.run(store.delete_batch([_key("t_1", f"d_{i}") for i in range(1001)]))
        assert client.calls == []


class TestPresign:
    @pytest.mark.parametrize(
        ("operation", "client_method"),
        [(PresignOperation.PUT, "put_object"), (PresignOperation.GET, "get_object")],
    )
    def test_presign_scoped_to_one_key(
        self,
        store: S3ObjectStore,
        client: StubS3Client,
        operation: PresignOperation,
        client_method: str,
    ) -> None:
        key = _key("t_1", "d_1")

        credential = asyncio.run(store.presign(operation, key, 3600))

        name, params = client.calls[-1]
        assert name == "generate_presigned_url"
        assert params == {
            "ClientMethod": client_method,
            "Params": {"Bucket": BUCKET, "Key": key},
            "ExpiresIn": 3600,
        }
        assert credential.key == key
        assert credential.expires_in == 3600

    def test_credentials_are_not_redeemed_locally(self, store: S3ObjectStore) -> None:
        credential = asyncio.run(store.presign(PresignOperation.GET, _key("t_1", "d_1"), 60))

        with pytest.raises(CredentialNotRedeemableError) as exc_info:
            store.verify_credential(credential.url, PresignOperation.GET)

        assert exc_info.value.details == {"backend": "s3"}


class TestClientFactory:
    def test_client_uses_sigv4(self) -> None:
        s3 = create_s3_client("eu-west-1")

        assert s3.meta.config.signature_version == "s3v4"
        assert s3.meta.region_name == "eu-west-1"
