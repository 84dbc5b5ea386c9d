"""Tests for the Download Service and the role access chain.

A missing document, a document in another tenant, and a document hidden by
roles must be indistinguishable to the caller. Only the document's own key
is ever presigned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from docvault.config import Settings
from docvault.persistence.records import DocumentRecord, FolderRecord
from docvault.persistence.repositories import InMemoryDocumentStore
from docvault.services.downloads import (
    DefaultAllowResolver,
    DocumentRolesResolver,
    DownloadService,
    FolderRolesResolver,
    NotFoundOrForbiddenError,
    resolve_access,
)
from docvault.storage.errors import InvalidStorageLocationError
from docvault.storage.guard import TenantGuard
from docvault.storage.memory_store import InMemoryObjectStore
from docvault.storage.models import PresignOperation
from docvault.testing import RecordingObjectStore


@pytest.fixture
def service(
    document_store: InMemoryDocumentStore,
    object_store: InMemoryObjectStore,
    guard: TenantGuard,
    settings: Settings,
) -> DownloadService:
    return DownloadService(document_store, object_store, guard, settings)


class TestIssueDownloadCredential:
    def test_owner_gets_get_credential(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        object_store: InMemoryObjectStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document = make_document(
            "doc_1", "t_1", original_name="Q3 report.pdf", mime_type="application/pdf"
        )
        document_store.add_document(document)

        credential = asyncio.run(
            service.issue_download_credential("doc_1", "u_1", "t_1", ["viewer"])
        )

        assert credential.document_id == "doc_1"
        assert credential.filename == "Q3 report.pdf"
        assert credential.mime_type == "application/pdf"
        assert object_store.signer.verify(credential.credential, PresignOperation.GET) == (
            document.storage_key
        )
        assert set(credential.to_dict()) == {
            "credential",
            "documentId",
            "filename",
            "mimeType",
            "expiresIn",
        }

    def test_cross_tenant_request_is_not_found_or_forbidden(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document_store.add_document(make_document("doc_1", "t_1"))

        with pytest.raises(NotFoundOrForbiddenError) as exc_info:
            asyncio.run(service.issue_download_credential("doc_1", "u_2", "t_2", ["admin"]))

        assert exc_info.value.http_status == 403

    def test_missing_document_is_not_found_or_forbidden(self, service: DownloadService) -> None:
        with pytest.raises(NotFoundOrForbiddenError):
            asyncio.run(service.issue_download_credential("nope", "u_1", "t_1", []))

    def test_role_denied_looks_the_same(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document_store.add_document(make_document("doc_1", "t_1", allowed_roles=("finance",)))

        with pytest.raises(NotFoundOrForbiddenError):
            asyncio.run(service.issue_download_credential("doc_1", "u_1", "t_1", ["viewer"]))

    @pytest.mark.parametrize(
        "storage_key",
        ["", "tenants/t_2/documents/raw/doc_1/report.pdf", "tenants/t_1/report.pdf"],
    )
    def test_bad_storage_key_is_invalid_location(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
        storage_key: str,
    ) -> None:
        document_store.add_document(make_document("doc_1", "t_1", storage_key=storage_key))

        with pytest.raises(InvalidStorageLocationError):
            asyncio.run(service.issue_download_credential("doc_1", "u_1", "t_1", []))

    def test_deleted_document_hidden(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document_store.add_document(make_document("doc_1", "t_1", deleted_at=datetime.now(UTC)))

        with pytest.raises(NotFoundOrForbiddenError):
            asyncio.run(service.issue_download_credential("doc_1", "u_1", "t_1", []))


class TestBucketCallsStayInTenant:
    @pytest.mark.parametrize(
        "storage_key",
        [
            "tenants/t_2/documents/raw/doc_1/report.pdf",
            "tenants/t_1/../t_2/documents/raw/doc_1/report.pdf",
            "tenants/t_1/report.pdf",
        ],
    )
    def test_bad_record_key_never_presigned(
        self,
        document_store: InMemoryDocumentStore,
        settings: Settings,
        make_document: Callable[..., DocumentRecord],
        storage_key: str,
    ) -> None:
        store = RecordingObjectStore()
        service = DownloadService(document_store, store, TenantGuard(), settings)
        document_store.add_document(make_document("doc_1", "t_1", storage_key=storage_key))

        with pytest.raises(InvalidStorageLocationError):
            asyncio.run(service.issue_download_credential("doc_1", "u_1", "t_1", []))

        assert store.touched == []

    def test_issued_credentials_are_tenant_scoped(
        self,
        document_store: InMemoryDocumentStore,
        settings: Settings,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        store = RecordingObjectStore()
        service = DownloadService(document_store, store, TenantGuard(), settings)
        document_store.add_document(make_document("doc_1", "t_1"))
        document_store.add_document(make_document("doc_2", "t_2"))

        asyncio.run(service.issue_download_credential("doc_1", "u_1", "t_1", []))
        with pytest.raises(NotFoundOrForbiddenError):
            asyncio.run(service.issue_download_credential("doc_2", "u_1", "t_1", []))

        assert len(store.touched) == 1
        assert store.keys_outside("t_1") == []


class TestValidateAccess:
    def test_returns_bool(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document_store.add_document(make_document("doc_1", "t_1"))
        document_store.add_document(make_document("doc_2", "t_1", storage_key=""))

        assert asyncio.run(service.validate_access("doc_1", "u_1", "t_1", [])) is True
        assert asyncio.run(service.validate_access("doc_1", "u_1", "t_2", [])) is False
        assert asyncio.run(service.validate_access("doc_2", "u_1", "t_1", [])) is False


class TestResolveAccess:
    def test_document_roles_take_precedence(
        self, make_document: Callable[..., DocumentRecord]
    ) -> None:
        folder = FolderRecord(id="f_1", tenant_id="t_1", name="F", allowed_roles=("viewer",))
        document = make_document("doc_1", "t_1", allowed_roles=("finance",), folder=folder)

        assert resolve_access(document, ["viewer"]) is False
        assert resolve_access(document, ["finance"]) is True

    def test_folder_roles_apply_when_document_has_none(
        self, make_document: Callable[..., DocumentRecord]
    ) -> None:
        folder = FolderRecord(id="f_1", tenant_id="t_1", name="F", allowed_roles=("legal",))
        document = make_document("doc_1", "t_1", folder=folder)

        assert resolve_access(document, ["viewer"]) is False
        assert resolve_access(document, ["legal", "viewer"]) is True

    def test_default_allow_without_restrictions(
        self, make_document: Callable[..., DocumentRecord]
    ) -> None:
        folder = FolderRecord(id="f_1", tenant_id="t_1", name="F")
        document = make_document("doc_1", "t_1", folder=folder)

        assert resolve_access(document, None) is True

    def test_chain_without_definite_answer_denies(
        self, make_document: Callable[..., DocumentRecord]
    ) -> None:
        document = make_document("doc_1", "t_1")

        assert resolve_access(document, ["viewer"], resolvers=()) is False
        assert resolve_access(
            document, ["viewer"], resolvers=(DocumentRolesResolver(), FolderRolesResolver())
        ) is False
        assert resolve_access(document, [], resolvers=(DefaultAllowResolver(),)) is True

    def test_folder_loaded_from_store(
        self,
        service: DownloadService,
        document_store: InMemoryDocumentStore,
        make_document: Callable[..., DocumentRecord],
    ) -> None:
        document_store.add_folder(
            FolderRecord(id="f_1", tenant_id="t_1", name="Legal", allowed_roles=("legal",))
        )
        document_store.add_document(make_document("doc_1", "t_1", folder_id="f_1"))

        assert asyncio.run(service.validate_access("doc_1", "u_1", "t_1", ["viewer"])) is False
        assert asyncio.run(service.validate_access("doc_1", "u_1", "t_1", ["legal"])) is True
