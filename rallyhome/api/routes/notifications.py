"""
Notification endpoints
======================

POST /api/v1/notifications/car-group-rally-home -- tell the caller's car group they're ready
GET  /api/v1/notifications/me                  -- the caller's in-app inbox, newest first

The car-group response is exactly one of ``{"sent": n}``, ``{"sent": 0, "deduped": true}``
or ``{"sent": 0, "no_car_group": true}``.
"""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.api.dependencies import get_current_profile_id, get_db, get_redis_client
from rallyhome.api.middleware import limiter
from rallyhome.api.schemas import (
    CarGroupRequest,
    CarGroupResponse,
    NotificationResponse,
)
from rallyhome.infrastructure.repositories import NotificationRepository
from rallyhome.services.car_group import CarGroupNotifier

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post(
    "/car-group-rally-home",
    response_model=CarGroupResponse,
    response_model_exclude_none=True,
    summary="Notify everyone sharing a ride with the caller",
)
@limiter.limit("100/minute")
async def notify_car_group(
    request: Request,
    body: CarGroupRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis_client),
):
    result = await CarGroupNotifier(db, lock_client=redis).notify_car_group(
        body.event_id, profile_id
    )
    return result.as_response()


@router.get(
    "/me",
    response_model=list[NotificationResponse],
    summary="In-app notifications for the caller",
)
@limiter.limit("100/minute")
async def my_notifications(
    request: Request,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationRepository(db).list_for_profile(profile_id)
