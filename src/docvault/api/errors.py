"""Exception handlers mapping every failure to the error envelope.

Domain errors (DocvaultError and the API-layer subclasses below) keep their
own code and status. Framework errors fall back to a code derived from the
status. Anything else becomes a 500 whose details stay in the server log.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.api.error_model import code_for_status, error_response, request_id_for
from docvault.errors import DocvaultError

logger = logging.getLogger(__name__)


class AuthenticationError(DocvaultError):
    """Missing or unknown API key."""

    code = "UNAUTHORIZED"
    http_status = 401
    default_message = "Authentication required"


class AdminRoleRequiredError(DocvaultError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Platform administrator role required"


class FolderNotFoundError(DocvaultError):
    """Folder absent from the caller's tenant (including other tenants' folders)."""

    code = "NOT_FOUND"
    http_status = 404
    default_message = "Folder not found"


async def handle_docvault_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, DocvaultError)

    if exc.http_status >= 500:
        logger.error(
            "Request failed with %s",
            exc.code,
            extra={
                "request_id": request_id_for(request),
                "tenant_id": exc.tenant_id,
                "error": str(exc),
            },
        )
    return error_response(request, exc.http_status, exc.code, exc.message, exc.details)


async def handle_http_exception(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)

    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"
    return error_response(request, exc.status_code, code_for_status(exc.status_code), message)


async def handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    """Report which fields failed, without echoing the submitted values."""
    assert isinstance(exc, RequestValidationError)

    fields: list[dict[str, Any]] = []
    for error in exc.errors():
        location = [
            str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")
        ]
        fields.append(
            {
                "field": ".".join(location) or "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return error_response(
        request,
        422,
        "REQUEST_VALIDATION_FAILED",
        "Request validation failed",
        {"errors": fields} if fields else None,
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id_for(request)},
    )
    return error_response(request, 500, "INTERNAL_ERROR", "An internal error occurred")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocvaultError, handle_docvault_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected)
