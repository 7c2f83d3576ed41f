"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus Redis reachability
"""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends

from rallyhome.api.dependencies import get_redis_client
from rallyhome.api.schemas import HealthResponse
from rallyhome.infrastructure.redis_client import is_available

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(redis: aioredis.Redis = Depends(get_redis_client)):
    # Without Redis the service still works; only the live feed stops
    return HealthResponse(redis="ok" if await is_available(redis) else "unavailable")
