"""lfsgate object storage OpenTelemetry tracing integration.

Provides a tracing decorator for store operations keyed by object identity.

Security:
    - Never export absolute filesystem paths in span attributes
    - Only hashed identities and the backend name in attributes
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
from collections.abc import Callable
from typing import Any, TypeVar, cast

logger = logging.getLogger(__name__)

LFSGATE_OTEL_ENABLED_ENV = "LFSGATE_OTEL_ENABLED"

F = TypeVar("F", bound=Callable[..., Any])


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def _is_otel_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return get_env_bool(LFSGATE_OTEL_ENABLED_ENV, False)


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace storage operations with OpenTelemetry.

    The wrapped callable must take the object identity as its first
    positional argument after ``self``.

    Args:
        operation: Operation name (e.g., "get_reader", "finish").

    Returns:
        Decorated function that emits OTel spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, oid: str, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return func(self, oid, *args, **kwargs)

            from opentelemetry import trace

            tracer = trace.get_tracer("lfsgate.content_store")
            with tracer.start_as_current_span(f"lfsgate.content_store.{operation}") as span:
                oid_sha256 = hashlib.sha256(oid.encode("utf-8")).hexdigest()
                span.set_attribute("lfsgate.object_oid_sha256", oid_sha256)
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                try:
                    result = func(self, oid, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise
                size = getattr(result, "size", None)
                if isinstance(size, int):
                    span.set_attribute("lfsgate.object_size_bytes", size)
                return result

        return cast(F, wrapper)

    return decorator
