"""Platform administration routes (PLATFORM_ADMIN role required).

- POST /v1/admin/ingestion/run: ingestion sweep (all tenants, or one)
- DELETE /v1/admin/tenants/{tenant_id}: tenant data deletion
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from docvault.api.auth import RequirePlatformAdmin
from docvault.api.container import Container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["Admin"])


@router.post("/ingestion/run")
async def run_ingestion(
    admin_ctx: RequirePlatformAdmin,
    container: Container,
    tenant_id: str | None = None,
) -> dict[str, Any]:
    if tenant_id:
        processed = await container.job.process_tenant(tenant_id)
    else:
        processed = await container.job.process_pending()
    logger.info(
        "Admin ingestion run",
        extra={"actor_id": admin_ctx.actor_id, "tenant_id": tenant_id, "processed": processed},
    )
    return {"processed": processed}


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: str,
    admin_ctx: RequirePlatformAdmin,
    container: Container,
    force: bool = False,
    complete: bool = False,
) -> dict[str, Any]:
    """Delete a tenant's objects; with complete=true also its relational records."""
    logger.warning(
        "Admin tenant deletion requested",
        extra={
            "actor_id": admin_ctx.actor_id,
            "tenant_id": tenant_id,
            "force": force,
            "complete": complete,
        },
    )
    if complete:
        result = await container.deletion.delete_complete(tenant_id, force=force)
        return result.to_dict()
    objects = await container.deletion.delete_tenant_objects(tenant_id, force=force)
    return objects.to_dict()
