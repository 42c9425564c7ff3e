"""Health check and monitoring API router.

This module provides REST endpoints for checking the health status
of the application and its dependencies.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, status

from news_sync.adapters.database import get_database
from news_sync.core.config import settings
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Overall health check",
    description="Check the overall health status of the application and its database.",
)
async def health_check() -> Dict[str, Any]:
    """Check overall application health.

    Returns:
        Health status for all components
    """
    logger.debug("Performing overall health check")

    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.api_version,
        "environment": settings.environment,
        "components": {},
    }

    try:
        db = await get_database()
        cursor = await db.execute("SELECT 1")
        await cursor.fetchone()
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful",
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)}",
        }
        health_status["status"] = "degraded"

    logger.info(
        f"Health check completed: {health_status['status']}",
        extra={"components": health_status["components"]},
    )

    return health_status
