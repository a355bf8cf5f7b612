"""Request ID and access-log middleware for the lfsgate API.

Implemented as a pure ASGI middleware (not BaseHTTPMiddleware) so object
downloads stream straight through without an extra response wrapper.

Behavior:
    - Reuses a client-supplied X-Request-Id when it is short printable ASCII,
      otherwise generates a uuid4
    - Stores it on request.state.request_id for error envelopes
    - Adds X-Request-Id to every response
    - Logs one access line per request (method, path, status, duration)
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from lfsgate.api.error_model import REQUEST_ID_HEADER

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(incoming: str | None) -> str:
    """Return the client request id if usable, else a fresh uuid4."""
    if incoming:
        candidate = incoming.strip()
        if (
            candidate
            and len(candidate) <= MAX_REQUEST_ID_LENGTH
            and candidate.isascii()
            and candidate.isprintable()
        ):
            return candidate
    return str(uuid.uuid4())


class RequestIdMiddleware:
    """Pure ASGI middleware attaching a request id and logging the outcome."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        started = time.monotonic()
        status: int | None = None

        async def send_wrapper(message: Any) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message.get("status")
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "%s %s -> %s in %.1fms",
                request.method,
                request.url.path,
                status if status is not None else "aborted",
                (time.monotonic() - started) * 1000,
                extra={"request_id": request_id},
            )
