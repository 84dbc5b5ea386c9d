"""HTTP tests for the DocVault API.

Runs the FastAPI app against in-memory services. Covers authentication, the
upload/register/download flow (credentials redeemed through /v1/objects),
document deletion, tenant isolation on every route, admin authorization and
the error envelope.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from docvault.api.auth import API_KEY_HEADER, DOCVAULT_API_KEYS_ENV
from docvault.api.container import ServiceContainer, build_container
from docvault.api.main import create_app
from docvault.api.middleware.request_id import REQUEST_ID_HEADER
from docvault.audit.sink import InMemoryAuditSink
from docvault.config import Settings
from docvault.persistence.records import FolderRecord, TenantRecord
from docvault.persistence.repositories import InMemoryDocumentStore, InMemoryTenantStore
from docvault.storage.memory_store import InMemoryObjectStore

KEY_A = "key-tenant-a"
KEY_B = "key-tenant-b"
KEY_ADMIN = "key-platform-admin"


@pytest.fixture
def api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    registry = {
        KEY_A: {"tenant_id": "t_1", "actor_id": "u_1", "roles": ["viewer"]},
        KEY_B: {"tenant_id": "t_2", "actor_id": "u_2", "roles": ["viewer"]},
        KEY_ADMIN: {"tenant_id": "t_ops", "actor_id": "ops", "roles": ["PLATFORM_ADMIN"]},
    }
    monkeypatch.setenv(DOCVAULT_API_KEYS_ENV, json.dumps(registry))


@pytest.fixture
def container(
    settings: Settings,
    object_store: InMemoryObjectStore,
    document_store: InMemoryDocumentStore,
    tenant_store: InMemoryTenantStore,
    audit_sink: InMemoryAuditSink,
) -> ServiceContainer:
    return build_container(
        settings,
        store=object_store,
        documents=document_store,
        tenants=tenant_store,
        audit_sink=audit_sink,
    )


@pytest.fixture
def client(api_keys: None, container: ServiceContainer) -> TestClient:
    return TestClient(create_app(container))


def _headers(api_key: str) -> dict[str, str]:
    return {API_KEY_HEADER: api_key}


class TestHealth:
    def test_health_without_auth(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"
        assert body["storage_backend"] == "memory"


class TestAuthentication:
    def test_missing_key(self, client: TestClient) -> None:
        response = client.get("/v1/storage/raw")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_unknown_key(self, client: TestClient) -> None:
        response = client.get("/v1/storage/raw", headers=_headers("nope"))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid API key"

    def test_empty_registry_rejects_everything(
        self, container: ServiceContainer, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv(DOCVAULT_API_KEYS_ENV, raising=False)
        client = TestClient(create_app(container))

        assert client.get("/v1/storage/raw", headers=_headers(KEY_A)).status_code == 401


class TestUploads:
    def test_credential_is_tenant_scoped(self, client: TestClient) -> None:
        response = client.post(
            "/v1/uploads/credential",
            json={
                "filename": "../../secret.pdf",
                "mime_type": "application/pdf",
                "size_bytes": 1024,
            },
            headers=_headers(KEY_A),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["key"].startswith("tenants/t_1/documents/raw/")
        assert ".." not in body["key"]
        assert body["expiresIn"] == 3600
        assert body["credential"].startswith("docvault://")

    def test_unsupported_type(self, client: TestClient) -> None:
        response = client.post(
            "/v1/uploads/credential",
            json={"filename": "run.exe", "mime_type": "application/x-msdownload", "size_bytes": 1},
            headers=_headers(KEY_A),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "UNSUPPORTED_FILE_TYPE"

    def test_negative_size_fails_request_validation(self, client: TestClient) -> None:
        response = client.post(
            "/v1/uploads/credential",
            json={"filename": "a.pdf", "size_bytes": -1},
            headers=_headers(KEY_A),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "REQUEST_VALIDATION_FAILED"
        assert body["details"]["errors"][0]["field"] == "size_bytes"

    def test_validate_own_and_foreign_key(self, client: TestClient) -> None:
        own = client.post(
            "/v1/uploads/validate",
            json={"key": "tenants/t_1/documents/raw/d1/a.pdf"},
            headers=_headers(KEY_A),
        )
        foreign = client.post(
            "/v1/uploads/validate",
            json={"key": "tenants/t_2/documents/raw/d1/a.pdf"},
            headers=_headers(KEY_A),
        )

        assert own.json() == {"valid": True}
        assert foreign.status_code == 403
        assert foreign.json()["code"] == "UNAUTHORIZED_ACCESS"


class TestDocuments:
    def _register(self, client: TestClient, key: str, api_key: str = KEY_A, **extra):
        return client.post(
            "/v1/documents",
            json={"key": key, "filename": "notes.txt", "mime_type": "text/plain", **extra},
            headers=_headers(api_key),
        )

    def test_register_then_download(self, client: TestClient) -> None:
        key = "tenants/t_1/documents/raw/doc_1/notes.txt"

        registered = self._register(client, key)
        download = client.get("/v1/documents/doc_1/download-url", headers=_headers(KEY_A))

        assert registered.status_code == 201
        assert registered.json()["id"] == "doc_1"
        assert registered.json()["status"] == "PENDING"
        assert download.status_code == 200
        assert download.json()["documentId"] == "doc_1"
        assert download.json()["filename"] == "notes.txt"

    def test_other_tenant_cannot_download(self, client: TestClient) -> None:
        self._register(client, "tenants/t_1/documents/raw/doc_1/notes.txt")

        response = client.get("/v1/documents/doc_1/download-url", headers=_headers(KEY_B))
        access = client.get("/v1/documents/doc_1/access", headers=_headers(KEY_B))

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_FOUND_OR_FORBIDDEN"
        assert access.status_code == 403

    def test_access_check(self, client: TestClient) -> None:
        self._register(client, "tenants/t_1/documents/raw/doc_1/notes.txt")

        response = client.get("/v1/documents/doc_1/access", headers=_headers(KEY_A))

        assert response.json() == {"valid": True}

    def test_register_foreign_key_rejected(self, client: TestClient) -> None:
        response = self._register(client, "tenants/t_2/documents/raw/doc_1/notes.txt")

        assert response.status_code == 403
        assert response.json()["code"] == "UNAUTHORIZED_ACCESS"

    def test_register_non_raw_key_rejected(self, client: TestClient) -> None:
        response = self._register(client, "tenants/t_1/documents/extracted/doc_1/notes.txt.txt")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARAMETER"

    def test_register_unknown_folder(
        self, client: TestClient, document_store: InMemoryDocumentStore
    ) -> None:
        document_store.add_folder(FolderRecord(id="f_2", tenant_id="t_2", name="Theirs"))

        response = self._register(
            client, "tenants/t_1/documents/raw/doc_1/notes.txt", folder_id="f_2"
        )

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_ingest_document(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        key = "tenants/t_1/documents/raw/doc_1/notes.txt"
        asyncio.run(object_store.put(key, b"hello world", content_type="text/plain"))
        self._register(client, key)

        response = client.post("/v1/documents/doc_1/ingest", headers=_headers(KEY_A))
        foreign = client.post("/v1/documents/doc_1/ingest", headers=_headers(KEY_B))

        assert response.json() == {"document_id": "doc_1", "processed": True}
        assert foreign.json() == {"document_id": "doc_1", "processed": False}


    def test_delete_document(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        key = "tenants/t_1/documents/raw/doc_1/notes.txt"
        asyncio.run(object_store.put(key, b"hello world"))
        self._register(client, key)

        foreign = client.delete("/v1/documents/doc_1", headers=_headers(KEY_B))
        assert foreign.status_code == 403
        assert object_store.object_count == 1

        response = client.delete("/v1/documents/doc_1", headers=_headers(KEY_A))
        again = client.delete("/v1/documents/doc_1", headers=_headers(KEY_A))
        download = client.get("/v1/documents/doc_1/download-url", headers=_headers(KEY_A))

        assert response.status_code == 200
        assert response.json() == {
            "id": "doc_1",
            "deleted": True,
            "storage_key": key,
            "object_deleted": True,
        }
        assert object_store.object_count == 0
        assert again.status_code == 403
        assert again.json()["code"] == "NOT_FOUND_OR_FORBIDDEN"
        assert download.status_code == 403


class TestObjects:
    def _credential(self, client: TestClient, api_key: str = KEY_A) -> dict:
        response = client.post(
            "/v1/uploads/credential",
            json={"filename": "notes.txt", "mime_type": "text/plain", "size_bytes": 11},
            headers=_headers(api_key),
        )
        assert response.status_code == 200
        return response.json()

    def test_upload_register_ingest_download(self, client: TestClient) -> None:
        upload = self._credential(client)

        stored = client.put(
            "/v1/objects",
            params={"credential": upload["credential"]},
            content=b"hello world",
            headers={**_headers(KEY_A), "content-type": "text/plain"},
        )
        registered = client.post(
            "/v1/documents",
            json={"key": upload["key"], "filename": "notes.txt", "mime_type": "text/plain"},
            headers=_headers(KEY_A),
        )
        document_id = registered.json()["id"]
        ingested = client.post(f"/v1/documents/{document_id}/ingest", headers=_headers(KEY_A))
        download = client.get(
            f"/v1/documents/{document_id}/download-url", headers=_headers(KEY_A)
        )
        fetched = client.get(
            "/v1/objects",
            params={"credential": download.json()["credential"]},
            headers=_headers(KEY_A),
        )

        assert stored.status_code == 200
        assert stored.json()["key"] == upload["key"]
        assert stored.json()["size_bytes"] == 11
        assert registered.status_code == 201
        assert ingested.json() == {"document_id": document_id, "processed": True}
        assert fetched.status_code == 200
        assert fetched.content == b"hello world"
        assert fetched.headers["content-type"].startswith("text/plain")

    def test_other_tenant_cannot_redeem(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        upload = self._credential(client)

        response = client.put(
            "/v1/objects",
            params={"credential": upload["credential"]},
            content=b"intruder",
            headers=_headers(KEY_B),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "UNAUTHORIZED_ACCESS"
        assert object_store.object_count == 0

    def test_credential_requires_api_key(self, client: TestClient) -> None:
        upload = self._credential(client)

        response = client.put(
            "/v1/objects", params={"credential": upload["credential"]}, content=b"x"
        )

        assert response.status_code == 401

    def test_tampered_credential(self, client: TestClient) -> None:
        upload = self._credential(client)
        tampered = upload["credential"].replace("signature=", "signature=0")

        response = client.put(
            "/v1/objects",
            params={"credential": tampered},
            content=b"x",
            headers=_headers(KEY_A),
        )

        assert response.status_code == 403

    def test_exists_copy_delete(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        source = "tenants/t_1/documents/raw/doc_1/a.pdf"
        copy = "tenants/t_1/documents/raw/doc_2/a.pdf"
        asyncio.run(object_store.put(source, b"pdf"))

        copied = client.post(
            "/v1/objects/copy",
            json={"source_key": source, "destination_key": copy},
            headers=_headers(KEY_A),
        )
        exists = client.get("/v1/objects/exists", params={"key": copy}, headers=_headers(KEY_A))
        deleted = client.delete("/v1/objects", params={"key": source}, headers=_headers(KEY_A))
        gone = client.get("/v1/objects/exists", params={"key": source}, headers=_headers(KEY_A))

        assert copied.status_code == 201
        assert copied.json() == {"key": copy}
        assert exists.json() == {"key": copy, "exists": True}
        assert deleted.status_code == 204
        assert gone.json() == {"key": source, "exists": False}

    def test_key_routes_refuse_other_tenant(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        theirs = "tenants/t_2/documents/raw/doc_9/b.pdf"
        asyncio.run(object_store.put(theirs, b"secret"))

        exists = client.get("/v1/objects/exists", params={"key": theirs}, headers=_headers(KEY_A))
        deleted = client.delete("/v1/objects", params={"key": theirs}, headers=_headers(KEY_A))
        copied = client.post(
            "/v1/objects/copy",
            json={"source_key": theirs, "destination_key": "tenants/t_1/documents/raw/d/b.pdf"},
            headers=_headers(KEY_A),
        )

        assert [r.status_code for r in (exists, deleted, copied)] == [403, 403, 403]
        assert asyncio.run(object_store.get(theirs)).body == b"secret"
        assert object_store.object_count == 1


class TestStorageListing:
    def test_lists_only_own_keys(
        self, client: TestClient, object_store: InMemoryObjectStore
    ) -> None:
        asyncio.run(object_store.put("tenants/t_1/documents/raw/d1/a.pdf", b"a"))
        asyncio.run(object_store.put("tenants/t_2/documents/raw/d2/b.pdf", b"b"))

        response = client.get("/v1/storage/raw", headers=_headers(KEY_A))

        assert response.json() == {
            "stage": "raw",
            "keys": ["tenants/t_1/documents/raw/d1/a.pdf"],
            "count": 1,
        }

    def test_unknown_stage(self, client: TestClient) -> None:
        response = client.get("/v1/storage/secrets", headers=_headers(KEY_A))

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARAMETER"


class TestAdmin:
    def test_requires_platform_admin(self, client: TestClient) -> None:
        response = client.delete("/v1/admin/tenants/t_2", headers=_headers(KEY_A))

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_delete_tenant(
        self,
        client: TestClient,
        object_store: InMemoryObjectStore,
        tenant_store: InMemoryTenantStore,
        audit_sink: InMemoryAuditSink,
    ) -> None:
        tenant_store.add_tenant(TenantRecord(id="t_2", name="Globex", status="ACTIVE"))
        asyncio.run(object_store.put("tenants/t_2/documents/raw/d2/b.pdf", b"b"))

        response = client.delete("/v1/admin/tenants/t_2", headers=_headers(KEY_ADMIN))

        assert response.status_code == 200
        body = response.json()
        assert body["deleted_count"] == 1
        assert body["verified"] is True
        assert audit_sink.events[0]["action"] == "TENANT_S3_DATA_DELETED"

    def test_delete_unknown_tenant(self, client: TestClient) -> None:
        response = client.delete("/v1/admin/tenants/t_404", headers=_headers(KEY_ADMIN))

        assert response.status_code == 404
        assert response.json()["code"] == "TENANT_NOT_FOUND"

    def test_delete_tenant_id_must_be_exact(
        self,
        client: TestClient,
        object_store: InMemoryObjectStore,
        tenant_store: InMemoryTenantStore,
    ) -> None:
        tenant_store.add_tenant(TenantRecord(id="t_2", name="Globex", status="ACTIVE"))
        asyncio.run(object_store.put("tenants/t_2/documents/raw/d2/b.pdf", b"b"))

        response = client.delete("/v1/admin/tenants/t_2!", headers=_headers(KEY_ADMIN))

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARAMETER"
        assert object_store.object_count == 1

    def test_run_ingestion(self, client: TestClient) -> None:
        response = client.post("/v1/admin/ingestion/run", headers=_headers(KEY_ADMIN))

        assert response.json() == {"processed": 0}


class TestRequestId:
    def test_echoes_incoming_request_id(self, client: TestClient) -> None:
        response = client.get("/health", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"

    def test_error_envelope_carries_request_id(self, client: TestClient) -> None:
        response = client.get("/v1/storage/raw", headers={REQUEST_ID_HEADER: "req-456"})

        body = response.json()
        assert set(body) == {"code", "message", "details", "request_id"}
        assert body["request_id"] == "req-456"
