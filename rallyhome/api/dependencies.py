"""FastAPI dependency injection helpers."""

import logging

import redis.asyncio as aioredis
from fastapi import Depends, Header
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.infrastructure.database import async_session_factory
from rallyhome.infrastructure.feed import AttendeeChangeFeed
from rallyhome.infrastructure.redis_client import get_redis

logger = logging.getLogger(__name__)


async def get_redis_client() -> aioredis.Redis:
    return await get_redis()


async def get_db(
    redis: aioredis.Redis = Depends(get_redis_client),
) -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error.

    Attendee changes recorded during the request are published to the
    change feed only after the commit succeeded.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        try:
            await AttendeeChangeFeed(redis).publish_pending(session)
        except RedisError:
            logger.exception("Could not publish attendee changes")


async def get_current_profile_id(x_profile_id: int = Header(...)) -> int:
    """Caller identity, resolved upstream by the auth gateway."""
    return x_profile_id
