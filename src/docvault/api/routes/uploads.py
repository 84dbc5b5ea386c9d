"""Upload routes for the DocVault API.

- POST /v1/uploads/credential: presigned PUT for a new tenant-scoped key
- POST /v1/uploads/validate: confirm a reported key belongs to the caller's tenant
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from docvault.api.auth import RequireTenantContext
from docvault.api.container import Container
from docvault.storage.errors import UnauthorizedAccessError

router = APIRouter(prefix="/v1/uploads", tags=["Uploads"])


class UploadCredentialRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filename: Annotated[str, Field(min_length=1, max_length=1024)]
    mime_type: str | None = None
    size_bytes: Annotated[int, Field(ge=0)]
    document_id: str | None = None


class ValidateUploadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: Annotated[str, Field(min_length=1)]


@router.post("/credential")
async def create_upload_credential(
    body: UploadCredentialRequest,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    credential = await container.uploads.request_upload_credential(
        tenant_ctx.tenant_id,
        body.filename,
        body.mime_type,
        body.size_bytes,
        body.document_id,
    )
    return credential.to_dict()


@router.post("/validate")
async def validate_upload_key(
    body: ValidateUploadRequest,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, bool]:
    """Return {"valid": true}, or 403 when the key is not the caller's."""
    if not container.uploads.validate_upload_key(body.key, tenant_ctx.tenant_id):
        raise UnauthorizedAccessError(tenant_id=tenant_ctx.tenant_id, key=body.key)
    return {"valid": True}
