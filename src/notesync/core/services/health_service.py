"""Health service implementation."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ..schemas.common import HealthCheckResponse
from .interfaces import IHealthService


class HealthService(IHealthService):
    """Health check service implementation."""

    def __init__(self, session: AsyncSession, rooms=None, relay=None):
        self.session = session
        self.rooms = rooms
        self.relay = relay
        self.settings = get_settings()

    async def get_health_status(self) -> HealthCheckResponse:
        """Get app health status."""
        checks: Dict[str, Dict[str, Any]] = {"database": await self.check_database_health()}
        if self.relay is not None:
            checks["redis"] = await self.check_redis_health()
        checks["realtime"] = self.realtime_stats()

        healthy = all(check.get("connected", True) for check in checks.values())
        return HealthCheckResponse(
            status="healthy" if healthy else "unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=self.settings.app_version,
            checks=checks,
        )

    async def check_database_health(self) -> Dict[str, Any]:
        """SELECT 1 on the request session."""

        async def probe():
            result = await self.session.execute(text("SELECT 1"))
            result.scalar()

        return await _timed(probe)

    async def check_redis_health(self) -> Dict[str, Any]:
        """Ping through the relay's Redis connection."""
        return await _timed(self.relay.ping)

    def realtime_stats(self) -> Dict[str, Optional[int]]:
        if self.rooms is None:
            return {"rooms": None, "connections": None}
        return {"rooms": self.rooms.room_count(), "connections": self.rooms.connection_count()}


async def _timed(probe: Callable[[], Awaitable[Any]]) -> Dict[str, Any]:
    loop = asyncio.get_running_loop()
    start_time = loop.time()
    try:
        await probe()
    except Exception as e:
        return {"connected": False, "status": "unhealthy", "error": str(e), "response_time_ms": None}
    return {
        "connected": True,
        "status": "healthy",
        "response_time_ms": round((loop.time() - start_time) * 1000, 2),
    }
