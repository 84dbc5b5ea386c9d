"""Document routes for the DocVault API.

- POST /v1/documents: register an uploaded object as a document (201)
- GET /v1/documents/{document_id}/download-url: presigned GET credential
- GET /v1/documents/{document_id}/access: access check without a credential
- POST /v1/documents/{document_id}/ingest: run ingestion for one document
- DELETE /v1/documents/{document_id}: soft-delete the record, remove the raw object

Every lookup is scoped to the caller's tenant.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from docvault.api.auth import RequireTenantContext
from docvault.api.container import Container
from docvault.api.errors import FolderNotFoundError
from docvault.errors import InvalidParameterError
from docvault.services.downloads.service import NotFoundOrForbiddenError
from docvault.storage import keys

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/documents", tags=["Documents"])


class RegisterDocumentRequest(BaseModel):
    """Body for POST /v1/documents; key is the one returned by the upload credential."""

    model_config = ConfigDict(extra="forbid")

    key: Annotated[str, Field(min_length=1)]
    filename: Annotated[str, Field(min_length=1, max_length=1024)]
    mime_type: str | None = None
    size_bytes: Annotated[int | None, Field(default=None, ge=0)] = None
    folder_id: str | None = None
    allowed_roles: list[str] | None = None


@router.post("", status_code=201)
async def register_document(
    body: RegisterDocumentRequest,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    """Register a document for a raw-stage key owned by the caller's tenant."""
    tenant_id = tenant_ctx.tenant_id
    container.guard.guard(body.key, tenant_id, "register")

    parsed = keys.parse_key(body.key)
    if parsed.stage is not keys.Stage.RAW:
        raise InvalidParameterError(
            "Only raw-stage keys can be registered", details={"stage": parsed.stage.value}
        )

    if body.folder_id is not None:
        folder = await container.documents.get_folder(body.folder_id, tenant_id)
        if folder is None:
            raise FolderNotFoundError(tenant_id=tenant_id)

    document = await container.documents.create_document(
        document_id=parsed.document_id,
        tenant_id=tenant_id,
        name=parsed.filename,
        storage_key=body.key,
        original_name=body.filename,
        mime_type=body.mime_type,
        size_bytes=body.size_bytes,
        folder_id=body.folder_id,
        allowed_roles=body.allowed_roles,
    )
    logger.info(
        "Registered document",
        extra={"document_id": document.id, "tenant_id": tenant_id, "actor_id": tenant_ctx.actor_id},
    )
    return document.to_dict()


@router.get("/{document_id}/download-url")
async def get_download_url(
    document_id: str,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    credential = await container.downloads.issue_download_credential(
        document_id,
        tenant_ctx.actor_id,
        tenant_ctx.tenant_id,
        sorted(tenant_ctx.roles),
    )
    return credential.to_dict()


@router.get("/{document_id}/access")
async def check_document_access(
    document_id: str,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, bool]:
    """Return {"valid": true}, or the same 403 a download attempt would get."""
    valid = await container.downloads.validate_access(
        document_id,
        tenant_ctx.actor_id,
        tenant_ctx.tenant_id,
        sorted(tenant_ctx.roles),
    )
    if not valid:
        raise NotFoundOrForbiddenError(tenant_id=tenant_ctx.tenant_id)
    return {"valid": True}


@router.post("/{document_id}/ingest")
async def ingest_document(
    document_id: str,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    processed = await container.job.process_document(document_id, tenant_ctx.tenant_id)
    return {"document_id": document_id, "processed": processed}


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    """Soft-delete the caller's document and remove its raw object."""
    deletion = await container.files.delete_document(document_id, tenant_ctx.tenant_id)
    logger.info(
        "Deleted document",
        extra={
            "document_id": document_id,
            "tenant_id": tenant_ctx.tenant_id,
            "actor_id": tenant_ctx.actor_id,
        },
    )
    return deletion.to_dict()
