"""Error envelope returned by every failing DocVault API call.

    {"code": ..., "message": ..., "details": ..., "request_id": ...}

The envelope never carries storage keys or another tenant's identifiers;
those stay in the server log.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from docvault.api.middleware.request_id import REQUEST_ID_HEADER

STATUS_FALLBACK_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str


def code_for_status(status_code: int) -> str:
    """Code used when an error carries only an HTTP status (framework errors)."""
    return STATUS_FALLBACK_CODES.get(status_code, "ERROR")


def request_id_for(request: Request) -> str:
    """Request id set by RequestIdMiddleware, else the raw header, else a fresh uuid4.

    Exceptions raised outside the middleware (or before it ran) still get an id.
    """
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        request_id=request_id_for(request),
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(),
        headers={REQUEST_ID_HEADER: envelope.request_id},
    )
