"""Tests for the in-memory shared bucket.

The in-memory backend backs most service tests, so its listing, batch delete
and presign semantics must match the S3 backend.
"""

from __future__ import annotations

import asyncio

import pytest

from docvault.storage.errors import (
    ObjectNotFoundError,
    PathTraversalError,
    UnauthorizedAccessError,
)
from docvault.storage.memory_store import InMemoryObjectStore
from docvault.storage.models import PresignOperation
from docvault.storage.object_store import MAX_DELETE_BATCH


def _key(tenant: str, doc: str, name: str = "f.txt") -> str:
    return f"tenants/{tenant}/documents/raw/{doc}/{name}"


class TestPutGetDelete:
    def test_roundtrip(self, object_store: InMemoryObjectStore) -> None:
        key = _key("t_1", "d_1")

        metadata = asyncio.run(object_store.put(key, b"hello", content_type="text/plain"))
        stored = asyncio.run(object_store.get(key))

        assert stored.body == b"hello"
        assert stored.metadata == metadata
        assert metadata.size_bytes == 5
        assert metadata.content_type == "text/plain"

    def test_put_overwrites(self, object_store: InMemoryObjectStore) -> None:
        key = _key("t_1", "d_1")
        asyncio.run(object_store.put(key, b"v1"))
        asyncio.run(object_store.put(key, b"v2"))

        assert asyncio.run(object_store.get(key)).body == b"v2"
        assert object_store.object_count == 1

    def test_get_missing_raises(self, object_store: InMemoryObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            asyncio.run(object_store.get(_key("t_1", "missing")))

    def test_delete_missing_raises(self, object_store: InMemoryObjectStore) -> None:
        with pytest.raises(ObjectNotFoundError):
            asyncio.run(object_store.delete(_key("t_1", "missing")))

    @pytest.mark.parametrize("key", ["", "tenants/t_1/../t_2/x", "tenants//x", "a/./b", "x\x00"])
    def test_put_rejects_traversal(self, object_store: InMemoryObjectStore, key: str) -> None:
        with pytest.raises(PathTraversalError):
            asyncio.run(object_store.put(key, b"x"))


class TestListing:
    def test_list_is_prefix_scoped(self, object_store: InMemoryObjectStore) -> None:
        asyncio.run(object_store.put(_key("t_1", "d_1"), b"a"))
        asyncio.run(object_store.put(_key("t_10", "d_2"), b"b"))

        listing = asyncio.run(object_store.list("tenants/t_1/"))

        assert listing.keys == [_key("t_1", "d_1")]
        assert listing.next_token is None

    def test_pagination_follows_tokens(self) -> None:
        store = InMemoryObjectStore(page_size=2)
        expected = [_key("t_1", f"d_{i}") for i in range(5)]
        for key in expected:
            asyncio.run(store.put(key, b"x"))

        collected: list[str] = []
        token: str | None = None
        pages = 0
        while True:
            listing = asyncio.run(store.list("tenants/t_1/", token))
            collected.extend(listing.keys)
            pages += 1
            token = listing.next_token
            if token is None:
                break

        assert collected == sorted(expected)
        assert pages == 3


class TestDeleteBatch:
    def test_delete_batch_removes_keys(self, object_store: InMemoryObjectStore) -> None:
        keys = [_key("t_1", f"d_{i}") for i in range(3)]
        for key in keys:
            asyncio.run(object_store.put(key, b"x"))

        result = asyncio.run(object_store.delete_batch(keys))

        assert result.deleted_keys == keys
        assert result.errors == []
        assert object_store.object_count == 0

    def test_delete_batch_over_limit_rejected(self, object_store: InMemoryObjectStore) -> None:
        keys = [_key("t_1", f"d_{i}") for i in range(MAX_DELETE_BATCH + 1)]

        with pytest.raises(ValueError):
            asyncio.run(object_store.delete_batch(keys))


class TestPresign:
    def test_presign_is_verifiable_and_scoped(self, object_store: InMemoryObjectStore) -> None:
        key = _key("t_1", "d_1")

        credential = asyncio.run(object_store.presign(PresignOperation.PUT, key, 900))

        assert credential.key == key
        assert credential.operation is PresignOperation.PUT
        assert credential.expires_in == 900
        assert object_store.signer.verify(credential.url, PresignOperation.PUT) == key

    def test_verify_credential_checks_operation(self, object_store: InMemoryObjectStore) -> None:
        key = _key("t_1", "d_1")
        credential = asyncio.run(object_store.presign(PresignOperation.GET, key, 900))

        assert object_store.verify_credential(credential.url, PresignOperation.GET) == key
        with pytest.raises(UnauthorizedAccessError):
            object_store.verify_credential(credential.url, PresignOperation.PUT)
