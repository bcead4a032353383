"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter

from researcher import __version__
from researcher.config import settings
from researcher.models.base import CamelModel

router = APIRouter()


class HealthResponse(CamelModel):
    """Service health and which optional backends are configured."""

    status: str = "healthy"
    version: str
    environment: str
    completion_enabled: bool
    screenshots_enabled: bool
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report liveness plus whether report synthesis and screenshots are live.

    Without an API key the synthesizer classifies context heuristically, and
    without a render token the visual stage skips screenshot capture.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        completion_enabled=settings.completion_enabled,
        screenshots_enabled=settings.screenshots_enabled,
        timestamp=datetime.now(timezone.utc),
    )
