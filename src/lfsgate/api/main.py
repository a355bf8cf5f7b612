"""lfsgate FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from lfsgate.api.access import load_repository_access
from lfsgate.api.auth import Authenticator
from lfsgate.api.config import load_gateway_config
from lfsgate.api.errors import (
    LfsHttpError,
    generic_exception_handler,
    integrity_mismatch_handler,
    lfs_http_error_handler,
    object_not_found_handler,
    request_validation_error_handler,
    storage_backend_error_handler,
)
from lfsgate.api.gate import AccessGate
from lfsgate.api.gateway import ObjectGateway
from lfsgate.api.middleware.request_id import RequestIdMiddleware
from lfsgate.api.routes.health import router as health_router
from lfsgate.api.routes.objects import router as objects_router
from lfsgate.api.tokens import load_token_issuer
from lfsgate.api.users import load_user_registry
from lfsgate.api.version import LFSGATE_VERSION
from lfsgate.storage.errors import (
    IntegrityMismatchError,
    ObjectNotFoundError,
    StorageBackendError,
)
from lfsgate.storage.filesystem_store import FilesystemContentStore


def build_gateway() -> ObjectGateway:
    """Assemble an ObjectGateway from environment configuration."""
    token_issuer = load_token_issuer()
    gate = AccessGate(
        access=load_repository_access(),
        authenticator=Authenticator(load_user_registry(), token_issuer),
        token_issuer=token_issuer,
        config=load_gateway_config(),
    )
    return ObjectGateway(gate, FilesystemContentStore())


def create_app(gateway: ObjectGateway | None = None) -> FastAPI:
    """Create and configure the lfsgate FastAPI application.

    Args:
        gateway: Pre-built gateway (tests inject one with fakes). If None,
            one is assembled from environment configuration.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="lfsgate",
        description="Large-object access gateway",
        version=LFSGATE_VERSION,
    )

    app.state.gateway = gateway if gateway is not None else build_gateway()

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(LfsHttpError, lfs_http_error_handler)
    app.add_exception_handler(ObjectNotFoundError, object_not_found_handler)
    app.add_exception_handler(IntegrityMismatchError, integrity_mismatch_handler)
    app.add_exception_handler(StorageBackendError, storage_backend_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(objects_router)

    return app
