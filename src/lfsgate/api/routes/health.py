"""Health check endpoint for the lfsgate API."""

from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel

from lfsgate.api.version import LFSGATE_VERSION

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str


@router.get("/health", response_model=HealthResponse)
def get_health() -> HealthResponse:
    """Liveness probe; no authentication required."""
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=LFSGATE_VERSION,
    )
