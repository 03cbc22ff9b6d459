"""
Health check endpoints
"""

from fastapi import APIRouter, HTTPException, status
import structlog

from parking_auth.config import settings
from parking_auth.utils.dependencies import DatabaseDep

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": "parking-auth-service",
        "version": settings.app_version
    }


@router.get("/health/database")
async def database_health_check(db: DatabaseDep):
    """Database connection health check"""
    try:
        await db.ping()
        return {
            "status": "healthy",
            "database": "connected"
        }
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed"
        )
