"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from asha_dashboard import __version__
from asha_dashboard.config import get_settings


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    environment: str
    backend: str


@router.get("/health")
async def health_check() -> HealthResponse:
    """Liveness check.

    Reports which backend provider is configured without calling it, so a
    slow backend never makes the dashboard itself look dead.
    """
    settings = get_settings()

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        environment=settings.environment,
        backend=settings.backend.provider,
    )
