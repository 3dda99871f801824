"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.engine.audience_profiles import ProfileRegistry, get_profile_registry

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    registry: ProfileRegistry = Depends(get_profile_registry),
):
    """Readiness check - verifies database connectivity and the profile catalog."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return {"status": "not_ready", "database": "disconnected", "error": str(e)}
    return {"status": "ready", "database": "connected", "audience_profiles": len(registry)}
