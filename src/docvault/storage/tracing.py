"""DocVault object storage OpenTelemetry tracing integration.

Provides a tracing decorator for async storage backend methods.

Security:
    - Never export raw keys or absolute filesystem paths in span attributes
    - Keys are exported as SHA256 hashes; the tenant segment is exported as-is
    - No secrets or presigned URLs in any span attribute
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from docvault.config import get_env_bool
from docvault.storage.keys import extract_tenant_id
from docvault.storage.models import (
    BatchDeleteResult,
    ObjectListing,
    StoredObject,
    StoredObjectMetadata,
)

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV = "DOCVAULT_OTEL_ENABLED"

F = TypeVar("F", bound=Callable[..., Any])


def _is_otel_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return get_env_bool(OTEL_ENABLED_ENV, False)


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def traced_storage_operation(operation: str, *, key_position: int = 0) -> Callable[[F], F]:
    """Decorator to trace async storage operations with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "put", "get", "list", "delete_batch").
        key_position: Index of the key/prefix/keys argument after self.

    Returns:
        Decorated coroutine function that emits spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return await func(self, *args, **kwargs)

            tracer = trace.get_tracer("docvault.object_store")
            with tracer.start_as_current_span(f"docvault.object_store.{operation}") as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))

                if len(args) > key_position:
                    target = args[key_position]
                else:
                    target = kwargs.get("key", kwargs.get("prefix", kwargs.get("keys")))
                _add_target_attributes(span, target)

                try:
                    result = await func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                if result is not None:
                    _add_result_attributes(span, result)
                return result

        return cast(F, wrapper)

    return decorator


def _add_target_attributes(span: Any, target: Any) -> None:
    if isinstance(target, str):
        tenant_id = extract_tenant_id(target)
        if tenant_id:
            span.set_attribute("docvault.tenant_id", tenant_id)
        span.set_attribute("docvault.object_key_sha256", _hash_key(target))
    elif isinstance(target, list):
        span.set_attribute("docvault.object_count", len(target))


def _add_result_attributes(span: Any, result: Any) -> None:
    """Add result-based attributes to span safely.

    Only adds sha256, size, content type and counts.
    """
    metadata: StoredObjectMetadata | None = None
    if isinstance(result, StoredObjectMetadata):
        metadata = result
    elif isinstance(result, StoredObject):
        metadata = result.metadata

    if metadata is not None:
        span.set_attribute("docvault.object_sha256", metadata.sha256)
        span.set_attribute("docvault.object_size_bytes", metadata.size_bytes)
        if metadata.content_type:
            span.set_attribute("docvault.object_content_type", metadata.content_type)
    elif isinstance(result, ObjectListing):
        span.set_attribute("docvault.listed_count", len(result.keys))
        span.set_attribute("docvault.has_more", result.next_token is not None)
    elif isinstance(result, BatchDeleteResult):
        span.set_attribute("docvault.deleted_count", len(result.deleted_keys))
        span.set_attribute("docvault.delete_error_count", len(result.errors))
