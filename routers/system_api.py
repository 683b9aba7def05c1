"""
Service info and health routes for NextCap.
"""

import asyncio
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, status

import services
from version import __version__
from api_models import API_VERSION, HealthResponse, APIErrorResponse
from database import get_db_manager
from errors import ErrorCode, raise_api_error

logger = logging.getLogger(__name__)

# Unprefixed routes: /api and /health
system_app_router = APIRouter(tags=["General"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@system_app_router.get("/api")
async def api_info():
    """API information endpoint."""
    return {
        "name": "NextCap License API",
        "version": __version__,
        "api_version": API_VERSION,
        "description": "License validation and administration for the NextCap capture client",
        "docs": "/docs",
        "health": "/health",
    }


@system_app_router.get("/health", response_model=HealthResponse, responses={503: {"model": APIErrorResponse}})
async def health_check():
    """Report startup progress, then database health.

    While the lifespan is still migrating the answer is ``initializing``;
    a failed startup is a 503 carrying the failure.
    """
    if not services.init_complete:
        if services.init_error:
            raise_api_error(
                ErrorCode.DATABASE_CONNECTION_ERROR,
                message=f"Initialization failed: {services.init_error}"
            )
        return HealthResponse(status="initializing", timestamp=_now(), database={"status": "initializing"})

    try:
        db_health = await asyncio.to_thread(get_db_manager().health_check)
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service unhealthy: {str(e)}"
        )

    healthy = db_health.get("status") == "healthy"
    return HealthResponse(status="healthy" if healthy else "degraded", timestamp=_now(), database=db_health)
