"""DocVault FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from docvault.api.container import ServiceContainer, build_container
from docvault.api.errors import register_error_handlers
from docvault.api.middleware.request_id import RequestIdMiddleware
from docvault.api.routes import admin, documents, health, objects, storage, uploads
from docvault.persistence.db import dispose_engines


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create the DocVault application.

    The ingestion worker runs inside the lifespan when
    DOCVAULT_INGESTION_WORKER_ENABLED is set. /health needs no credentials;
    every /v1 route authenticates with an API key.

    Args:
        container: Pre-built services (tests). If None, built from the environment.
    """
    services = container or build_container()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        worker = services.create_worker() if services.settings.ingestion_worker_enabled else None
        if worker is not None:
            await worker.start()
        try:
            yield
        finally:
            if worker is not None:
                await worker.stop()
            dispose_engines()

    app = FastAPI(
        title="DocVault API",
        description="Multi-tenant document storage with tenant-isolated object keys",
        version=health.DOCVAULT_VERSION,
        lifespan=lifespan,
    )
    app.state.container = services
    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)

    for module in (health, uploads, objects, documents, storage, admin):
        app.include_router(module.router)

    return app
