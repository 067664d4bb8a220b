"""Health check API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.common import HealthCheckResponse
from ..core.services import HealthService
from ..database import get_db_session

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", response_model=HealthCheckResponse)
async def health_check(request: Request, session: AsyncSession = Depends(get_db_session)):
    """Get overall system health status."""
    health_service = HealthService(
        session,
        rooms=getattr(request.app.state, "rooms", None),
        relay=getattr(request.app.state, "relay", None),
    )
    return await health_service.get_health_status()
