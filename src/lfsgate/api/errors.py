"""lfsgate API error handling.

Provides LfsHttpError and the FastAPI exception handlers that turn gateway
and storage failures into the JSON error envelope with request_id tracing.

Global exception handlers:
- LfsHttpError: Access-gate rejections and other application errors
- ObjectNotFoundError: 404
- IntegrityMismatchError: 422 (upload body does not hash to the claimed oid)
- StorageBackendError: 500 without backend internals
- RequestValidationError: 422
- Exception: Catch-all (fail closed, no stack traces)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lfsgate.api.error_model import make_error_response
from lfsgate.storage.errors import (
    IntegrityMismatchError,
    ObjectNotFoundError,
    StorageBackendError,
)

logger = logging.getLogger(__name__)

WWW_AUTHENTICATE_HEADER = "WWW-Authenticate"


class LfsHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 401, 403, 404).
        code: Machine-readable error code (e.g., "unauthorized").
        message: Human-readable error message.
        details: Optional dict with additional error context.
        headers: Extra response headers (e.g., a credential challenge).
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.headers = headers or {}


class UnauthorizedError(LfsHttpError):
    """No usable credentials; carries a Basic challenge naming the realm."""

    def __init__(self, realm: str) -> None:
        self.realm = realm
        super().__init__(
            status_code=401,
            code="unauthorized",
            message="Authentication required",
            headers={WWW_AUTHENTICATE_HEADER: f'Basic realm="{realm}"'},
        )


class ForbiddenError(LfsHttpError):
    """Authenticated caller lacks permission. No challenge is issued."""

    def __init__(self) -> None:
        super().__init__(status_code=403, code="forbidden", message="Access denied")


async def lfs_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for LfsHttpError."""
    assert isinstance(exc, LfsHttpError)

    response = make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )
    for name, value in exc.headers.items():
        response.headers[name] = value
    return response


async def object_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map a missing object to 404."""
    assert isinstance(exc, ObjectNotFoundError)

    return make_error_response(
        request,
        code="not_found",
        message="Object not found",
        http_status=404,
        details={"oid": exc.oid} if exc.oid else None,
    )


async def integrity_mismatch_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map a finalize-time digest mismatch to 422."""
    assert isinstance(exc, IntegrityMismatchError)

    return make_error_response(
        request,
        code="integrity_mismatch",
        message="Uploaded content does not match object id",
        http_status=422,
        details={"expected": exc.expected_oid, "actual": exc.actual_oid},
    )


async def storage_backend_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map backend failures to 500 without exposing paths or causes."""
    assert isinstance(exc, StorageBackendError)

    logger.error("Storage backend failure: %s", exc.message)
    return make_error_response(
        request,
        code="storage_error",
        message="Storage backend error",
        http_status=500,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map request validation errors to 422 with field locations only."""
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler for unhandled exceptions.

    Fails closed: returns 500 with safe generic message.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )
