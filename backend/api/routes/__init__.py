"""API Routes."""

from fastapi import APIRouter

from .health import router as health_router
from .webhooks import router as webhooks_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])

__all__ = ["api_router", "webhooks_router"]
