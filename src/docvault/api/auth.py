"""API key authentication.

Callers send X-DocVault-API-Key. Keys are resolved against the registry in
DOCVAULT_API_KEYS_JSON:

    {"<api key>": {"tenant_id": "t_1", "actor_id": "svc-1", "roles": ["EDITOR"]}}

The resolved tenant is the only tenant a request may act for; no route takes
a tenant id from the caller except the platform admin routes. Roles are
free-form strings matched against document and folder allow-lists.
"""

from __future__ import annotations

import hmac
import json
import logging
import os
from typing import Annotated

from fastapi import Depends, Request
from pydantic import BaseModel, Field, ValidationError, field_validator

from docvault.api.errors import AdminRoleRequiredError, AuthenticationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-DocVault-API-Key"
DOCVAULT_API_KEYS_ENV = "DOCVAULT_API_KEYS_JSON"
PLATFORM_ADMIN_ROLE = "PLATFORM_ADMIN"


class TenantContext(BaseModel):
    """Authenticated caller."""

    tenant_id: str
    actor_id: str
    name: str = ""
    roles: frozenset[str] = frozenset()

    @property
    def is_platform_admin(self) -> bool:
        return PLATFORM_ADMIN_ROLE in self.roles


class ApiKeyEntry(BaseModel):
    tenant_id: str = Field(min_length=1)
    actor_id: str = Field(min_length=1)
    name: str = ""
    roles: list[str] = Field(default_factory=list)

    @field_validator("roles")
    @classmethod
    def _strip_roles(cls, roles: list[str]) -> list[str]:
        return [role.strip() for role in roles if role and role.strip()]


class ApiKeyRegistry:
    """Registered API keys; entries that fail validation are dropped with a warning."""

    def __init__(self, entries: dict[str, ApiKeyEntry]) -> None:
        self._entries = {key.encode("utf-8"): entry for key, entry in entries.items()}

    @classmethod
    def from_env(cls) -> ApiKeyRegistry:
        raw = os.environ.get(DOCVAULT_API_KEYS_ENV)
        if not raw:
            return cls({})
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("%s is not valid JSON; no API keys loaded", DOCVAULT_API_KEYS_ENV)
            return cls({})
        if not isinstance(parsed, dict):
            logger.warning("%s must be a JSON object; no API keys loaded", DOCVAULT_API_KEYS_ENV)
            return cls({})

        entries: dict[str, ApiKeyEntry] = {}
        for key, value in parsed.items():
            try:
                entries[key] = ApiKeyEntry.model_validate(value)
            except ValidationError:
                logger.warning("Skipping malformed entry in %s", DOCVAULT_API_KEYS_ENV)
        return cls(entries)

    def resolve(self, api_key: str) -> ApiKeyEntry | None:
        """Compare against every key so timing does not depend on which one matched."""
        provided = api_key.encode("utf-8")
        found: ApiKeyEntry | None = None
        for registered, entry in self._entries.items():
            if hmac.compare_digest(provided, registered):
                found = entry
        return found


def authenticate_request(request: Request) -> TenantContext:
    """Resolve the API key header into a TenantContext.

    Raises:
        AuthenticationError: Key missing, unknown, or no keys registered.
    """
    api_key = request.headers.get(API_KEY_HEADER)
    if not api_key:
        raise AuthenticationError("Missing API key")

    entry = ApiKeyRegistry.from_env().resolve(api_key)
    if entry is None:
        raise AuthenticationError("Invalid API key")

    return TenantContext(
        tenant_id=entry.tenant_id,
        actor_id=entry.actor_id,
        name=entry.name,
        roles=frozenset(entry.roles),
    )


async def require_tenant_context(request: Request) -> TenantContext:
    tenant_ctx = authenticate_request(request)
    request.state.tenant_context = tenant_ctx
    return tenant_ctx


RequireTenantContext = Annotated[TenantContext, Depends(require_tenant_context)]


async def require_platform_admin(tenant_ctx: RequireTenantContext) -> TenantContext:
    if not tenant_ctx.is_platform_admin:
        logger.warning(
            "Admin route denied",
            extra={"tenant_id": tenant_ctx.tenant_id, "actor_id": tenant_ctx.actor_id},
        )
        raise AdminRoleRequiredError(tenant_id=tenant_ctx.tenant_id)
    return tenant_ctx


RequirePlatformAdmin = Annotated[TenantContext, Depends(require_platform_admin)]
