"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from infrastructure.config import get_settings
from infrastructure.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

DB_CHECK_TIMEOUT_SECONDS = 5.0


async def _ping_database(db: AsyncSession) -> None:
    result = await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=DB_CHECK_TIMEOUT_SECONDS)
    result.scalar()


@router.get("/health")
@limiter.limit(get_rate_limit("health"))
async def health_check(request: Request):
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/db")
@limiter.limit(get_rate_limit("health_db"))
async def health_check_db(request: Request, db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity."""
    try:
        await _ping_database(db)
        db_status = "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        db_status = "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", type(e).__name__)
        db_status = "error: database check failed"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": db_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/ready")
@limiter.limit(get_rate_limit("health_db"))
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Kubernetes-style readiness probe. 503 until the database answers."""
    try:
        await _ping_database(db)
    except Exception as e:
        logger.warning("Readiness check failed: %s", type(e).__name__)
        return JSONResponse(
            status_code=503,
            content={"ready": False, "database": "unavailable"},
        )
    return {"ready": True, "database": "ok"}
