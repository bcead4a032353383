"""Main router for API v1."""

from fastapi import APIRouter

from researcher.api.v1 import health, research

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(research.router, prefix="/research", tags=["research"])
