"""Object routes for the self-signing storage backends.

- PUT /v1/objects?credential=...: upload the request body with a PUT credential
- GET /v1/objects?credential=...: download with a GET credential
- GET /v1/objects/exists?key=...: whether a key of the caller's tenant exists
- POST /v1/objects/copy: copy between two keys of the caller's tenant
- DELETE /v1/objects?key=...: delete one key of the caller's tenant

Credentials are the docvault:// URLs issued by the filesystem and memory
backends. The caller must also authenticate; the credential's key is guarded
against the caller's tenant before the bucket is touched.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from docvault.api.auth import RequireTenantContext
from docvault.api.container import Container

router = APIRouter(prefix="/v1/objects", tags=["Objects"])

CredentialParam = Annotated[str, Query(min_length=1)]
KeyParam = Annotated[str, Query(min_length=1)]


class CopyObjectRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source_key: Annotated[str, Field(min_length=1)]
    destination_key: Annotated[str, Field(min_length=1)]


@router.put("")
async def upload_object(
    request: Request,
    credential: CredentialParam,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    data = await request.body()
    metadata = await container.files.upload_with_credential(
        credential,
        tenant_ctx.tenant_id,
        data,
        request.headers.get("content-type"),
    )
    return metadata.to_dict()


@router.get("")
async def download_object(
    credential: CredentialParam,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> Response:
    stored = await container.files.download_with_credential(credential, tenant_ctx.tenant_id)
    return Response(
        content=stored.body,
        media_type=stored.metadata.content_type or "application/octet-stream",
    )


@router.get("/exists")
async def object_exists(
    key: KeyParam,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    exists = await container.files.file_exists(key, tenant_ctx.tenant_id)
    return {"key": key, "exists": exists}


@router.post("/copy", status_code=201)
async def copy_object(
    body: CopyObjectRequest,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, str]:
    key = await container.files.copy_file(
        body.source_key, body.destination_key, tenant_ctx.tenant_id
    )
    return {"key": key}


@router.delete("", status_code=204)
async def delete_object(
    key: KeyParam,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> Response:
    await container.files.delete_file(key, tenant_ctx.tenant_id)
    return Response(status_code=204)
