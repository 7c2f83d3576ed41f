"""
Attendee change feed over Redis pub/sub.

Every committed attendee write is published as ``{"old": ..., "new": ...}``
on ``event:{event_id}:attendees``.  Clients subscribe per event and re-run
the pure resolvers on each message; there is no central scheduler.

Publishing happens *after* commit (see ``publish_pending``) so subscribers
never see a row that could still be rolled back.  Delivery is at-most-once
and unordered across publishers -- a subscriber that needs the full
picture should re-list the event's attendees after subscribing.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Awaitable, Callable, Optional, Union

import redis.asyncio as aioredis
from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from .repositories import ATTENDEE_CHANGES_KEY
from rallyhome.domain.entities import Attendee

logger = logging.getLogger(__name__)

_attendee_adapter = TypeAdapter(Optional[Attendee])

OnChange = Callable[
    [Optional[Attendee], Attendee], Union[None, Awaitable[None]]
]


def channel_for(event_id: int) -> str:
    return f"event:{event_id}:attendees"


def encode_change(old: Optional[Attendee], new: Attendee) -> str:
    return json.dumps(
        {
            "old": _attendee_adapter.dump_python(old, mode="json"),
            "new": _attendee_adapter.dump_python(new, mode="json"),
        }
    )


def decode_change(payload: str) -> tuple[Optional[Attendee], Attendee]:
    data = json.loads(payload)
    old = _attendee_adapter.validate_python(data.get("old"))
    new = _attendee_adapter.validate_python(data["new"])
    if new is None:
        raise ValueError("change message without a new row")
    return old, new


class Subscription:
    """Handle returned by :meth:`AttendeeChangeFeed.subscribe`."""

    def __init__(self, pubsub, task: asyncio.Task, channel: str):
        self._pubsub = pubsub
        self._task = task
        self.channel = channel

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def close(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        await self._pubsub.unsubscribe(self.channel)
        await self._pubsub.aclose()


class AttendeeChangeFeed:
    def __init__(self, client: aioredis.Redis):
        self.redis = client

    async def publish(
        self, old: Optional[Attendee], new: Attendee
    ) -> None:
        await self.redis.publish(channel_for(new.event_id), encode_change(old, new))

    async def publish_pending(self, session: AsyncSession) -> int:
        """Publish the changes a committed session recorded.  Returns count."""
        changes = session.info.pop(ATTENDEE_CHANGES_KEY, [])
        for old, new in changes:
            await self.publish(old, new)
        return len(changes)

    async def subscribe(self, event_id: int, on_change: OnChange) -> Subscription:
        channel = channel_for(event_id)
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        task = asyncio.create_task(self._listen(pubsub, on_change))
        logger.debug("Subscribed to %s", channel)
        return Subscription(pubsub, task, channel)

    @staticmethod
    async def _listen(pubsub, on_change: OnChange) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                old, new = decode_change(message["data"])
                result = on_change(old, new)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Attendee change callback failed")
