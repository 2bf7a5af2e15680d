"""
Health check endpoints.

Liveness and readiness probes for the container platform, plus a config
check that reports which settings are present without exposing them.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

# Track application start time
_start_time = time.time()


@router.get("/health")
async def health_check():
    """Basic health check endpoint (liveness probe)."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "version": settings.version,
        "uptime_seconds": int(time.time() - _start_time),
    }


@router.get("/health/live")
async def liveness_probe():
    """Returns 200 while the process is serving requests."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(db: AsyncSession = Depends(get_db)):
    """Ready once the app database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed - database: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "checks": {"database": False}},
        )

    return {"status": "ready", "checks": {"database": True}}


@router.get("/health/config")
async def config_check():
    """Which settings are configured; values are never returned."""
    config_status = {
        "shopify_api_key": bool(settings.shopify_api_key),
        "shopify_api_secret": bool(settings.shopify_api_secret),
        "database_url": bool(settings.database_url) or bool(settings.local_mysql_host),
    }
    missing_required = [key for key, present in config_status.items() if not present]

    if missing_required:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "misconfigured", "missing_required": missing_required},
        )

    return {
        "status": "configured",
        "core": config_status,
        "supplier": {
            "timeout_seconds": settings.supplier_request_timeout_seconds,
            "max_concurrent_per_host": settings.supplier_max_concurrent_per_host,
        },
    }
