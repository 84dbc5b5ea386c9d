"""Tenant storage listing route.

GET /v1/storage/{stage} lists the caller's keys in one stage. The prefix is
always built from the authenticated tenant, never from request input.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from docvault.api.auth import RequireTenantContext
from docvault.api.container import Container

router = APIRouter(prefix="/v1/storage", tags=["Storage"])


@router.get("/{stage}")
async def list_stage(
    stage: str,
    tenant_ctx: RequireTenantContext,
    container: Container,
) -> dict[str, Any]:
    object_keys = await container.pipeline.list_for_tenant(tenant_ctx.tenant_id, stage)
    return {"stage": stage, "keys": object_keys, "count": len(object_keys)}
