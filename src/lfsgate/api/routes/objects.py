"""Basic-transfer object routes.

- GET /objects/{oid}: download (gzip when accepted and available)
- PUT /objects/{oid}: upload, verified against the oid at finalize
- GET /objects/{oid}/meta: size and the header set for follow-up requests

Every route authorizes through the access gate before touching storage.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from typing import BinaryIO

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from lfsgate.api.gateway import COPY_CHUNK_SIZE, ObjectGateway
from lfsgate.storage.errors import ObjectNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Objects"])

OCTET_STREAM = "application/octet-stream"
SPOOL_MAX_MEMORY = 8 * 1024 * 1024


class ObjectMetaResponse(BaseModel):
    """Object metadata plus the headers to attach to the follow-up request."""

    oid: str
    size: int
    header: dict[str, str] = {}


def _get_gateway(request: Request) -> ObjectGateway:
    gateway: ObjectGateway = request.app.state.gateway
    return gateway


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


def _accepts_gzip(request: Request) -> bool:
    accept = request.headers.get("Accept-Encoding", "")
    return any(part.split(";")[0].strip() == "gzip" for part in accept.split(","))


@router.get("/objects/{oid}/meta", response_model=ObjectMetaResponse)
def get_object_meta(oid: str, request: Request) -> ObjectMetaResponse:
    gateway = _get_gateway(request)
    downloader = gateway.check_download_access(request)

    meta = gateway.metadata(oid)
    if meta is None:
        raise ObjectNotFoundError(oid=oid)

    return ObjectMetaResponse(oid=meta.oid, size=meta.size, header=downloader.header)


@router.get("/objects/{oid}")
def download_object(oid: str, request: Request) -> StreamingResponse:
    downloader = _get_gateway(request).check_download_access(request)

    if _accepts_gzip(request):
        gzipped = downloader.open_object_gzipped(oid)
        if gzipped is not None:
            return StreamingResponse(
                _iter_stream(gzipped),
                media_type=OCTET_STREAM,
                headers={"Content-Encoding": "gzip"},
            )

    return StreamingResponse(_iter_stream(downloader.open_object(oid)), media_type=OCTET_STREAM)


@router.put("/objects/{oid}", response_model=ObjectMetaResponse)
async def upload_object(oid: str, request: Request) -> ObjectMetaResponse:
    uploader = _get_gateway(request).check_upload_access(request)

    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as spool:
        # Past SPOOL_MAX_MEMORY the spool rolls over to disk; keep that I/O off the loop.
        async for chunk in request.stream():
            if chunk:
                await run_in_threadpool(spool.write, chunk)
        await run_in_threadpool(spool.seek, 0)
        meta = await run_in_threadpool(uploader.save_object, oid, spool)

    return ObjectMetaResponse(oid=meta.oid, size=meta.size, header=uploader.header)
