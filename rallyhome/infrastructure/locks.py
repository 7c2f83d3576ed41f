"""
Redis-based lease.

Used by the car-group notifier to keep two concurrent "ready to leave"
calls for the same (actor, event) from both passing the dedup check.
The lease expires on its own, so a crashed holder never blocks fan-out
for longer than ``ttl_seconds``.

Acquire is ``SET NX EX`` with a per-holder token; release is a Lua
check-and-delete so a holder whose lease already expired cannot delete
the next holder's key.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class LeaseUnavailable(RuntimeError):
    """Another holder owns the lease."""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex

    async def acquire(self) -> bool:
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Delete the key if this holder still owns it.

        Returns False when the lease had already expired (or was taken
        over), i.e. the guarded section outlived ``ttl_seconds``.
        """
        deleted = await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        return bool(deleted)

    async def __aenter__(self) -> "DistributedLock":
        if not await self.acquire():
            raise LeaseUnavailable(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.release()
