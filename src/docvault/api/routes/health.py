"""Health check endpoint for the DocVault API."""

from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel

from docvault.api.container import Container

router = APIRouter(tags=["Health"])

DOCVAULT_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    time: str
    version: str
    storage_backend: str


@router.get("/health", response_model=HealthResponse)
def get_health(container: Container) -> HealthResponse:
    """Liveness check; reports the configured storage backend."""
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=DOCVAULT_VERSION,
        storage_backend=container.store.backend_name,
    )
