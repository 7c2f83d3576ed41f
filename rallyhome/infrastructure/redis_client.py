"""
Redis connection pool.

Serves two consumers: short commands (publishing attendee changes, the
car-group lease) and long-lived pub/sub connections held open by safety
stream WebSockets.  The health check interval keeps idle subscriber
connections from being dropped silently.
"""

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from rallyhome.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    health_check_interval=30,
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


async def is_available(client: aioredis.Redis) -> bool:
    try:
        return bool(await client.ping())
    except RedisError:
        return False


async def close_pool() -> None:
    await _pool.disconnect()
