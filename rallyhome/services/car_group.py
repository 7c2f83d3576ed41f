"""
Car group "ready to roll" fan-out.

When an attendee hits R@lly Home, everyone sharing a ride with them gets
an in-app notification and a best-effort push.

Algorithm
---------
1. Resolve the actor's car group from the event's active rides.
2. Dedup: if a notification of this type for (actor, event) was created
   within the window (default 5 min), abort with ``deduped``.
3. Empty car group -> ``no_car_group``.
4. Insert one in-app notification per member, then push to every member
   concurrently; push failures are logged and never change the count.

Concurrency
-----------
The window check is a read-then-write and on its own lets two concurrent
calls both pass.  When a Redis client is supplied the check-and-insert is
guarded by a short lease keyed on (event, actor).  The lease is left to
expire after a successful run so it still covers the gap until the
request commits; it is released early only when the run fails, so a
retry is not blocked.  Re-running a failed fan-out in full is safe.
If Redis cannot be reached the run goes ahead with the window check alone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.config import settings
from rallyhome.domain.car_group import build_car_group_message, resolve_car_group
from rallyhome.domain.clock import Clock, utcnow
from rallyhome.domain.entities import Event
from rallyhome.domain.enums import CAR_GROUP_NOTIFICATION_TYPE
from rallyhome.infrastructure.locks import DistributedLock
from rallyhome.infrastructure.repositories import (
    EventRepository,
    NotificationRepository,
    ProfileRepository,
    RideRepository,
)
from rallyhome.services.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CarGroupResult:
    sent: int
    deduped: bool = False
    no_car_group: bool = False

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"sent": self.sent}
        if self.deduped:
            body["deduped"] = True
        if self.no_car_group:
            body["no_car_group"] = True
        return body


class CarGroupNotifier:
    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[Notifier] = None,
        lock_client: Optional[aioredis.Redis] = None,
        clock: Clock = utcnow,
        dedup_window: timedelta = timedelta(
            seconds=settings.car_group_dedup_window_seconds
        ),
    ):
        self.events = EventRepository(session)
        self.rides = RideRepository(session)
        self.profiles = ProfileRepository(session)
        self.notifications = NotificationRepository(session)
        self.notifier = notifier or Notifier(self.notifications)
        self.lock_client = lock_client
        self.clock = clock
        self.dedup_window = dedup_window

    async def notify_car_group(self, event_id: int, actor_id: int) -> CarGroupResult:
        event = await self.events.get(event_id)
        members = resolve_car_group(actor_id, await self.rides.list_for_event(event_id))

        if self.lock_client is None:
            return await self._fan_out(event, actor_id, members)

        lease = DistributedLock(
            self.lock_client,
            f"car_group:{event_id}:{actor_id}",
            ttl_seconds=settings.car_group_lease_ttl_seconds,
        )
        try:
            acquired = await lease.acquire()
        except RedisError:
            logger.exception(
                "Car group lease for %s@%s unavailable; running unguarded",
                actor_id,
                event_id,
            )
            return await self._fan_out(event, actor_id, members)

        if not acquired:
            logger.info(
                "Car group fan-out for %s@%s already in flight", actor_id, event_id
            )
            return CarGroupResult(sent=0, deduped=True)
        try:
            return await self._fan_out(event, actor_id, members)
        except Exception:
            await self._release(lease, event_id, actor_id)
            raise

    @staticmethod
    async def _release(lease: DistributedLock, event_id: int, actor_id: int) -> None:
        try:
            released = await lease.release()
        except RedisError:
            logger.exception(
                "Could not release car group lease for %s@%s", actor_id, event_id
            )
            return
        if not released:
            logger.warning(
                "Car group lease for %s@%s expired before the run failed",
                actor_id,
                event_id,
            )

    async def _fan_out(
        self, event: Event, actor_id: int, members: set[int]
    ) -> CarGroupResult:
        now = self.clock()
        recent = await self.notifications.count_recent(
            type=CAR_GROUP_NOTIFICATION_TYPE,
            event_id=event.id,
            actor_profile_id=actor_id,
            since=now - self.dedup_window,
        )
        if recent:
            logger.info(
                "Deduped car group notification for %s@%s", actor_id, event.id
            )
            return CarGroupResult(sent=0, deduped=True)

        if not members:
            logger.info("Profile %s has no car group for event %s", actor_id, event.id)
            return CarGroupResult(sent=0, no_car_group=True)

        actor = await self.profiles.get_by_id(actor_id)
        message = build_car_group_message(
            event_id=event.id,
            event_title=event.title,
            actor_id=actor_id,
            actor_name=actor.display_name if actor else None,
        )
        recipients = sorted(members)

        await self.notifier.insert_in_app_notifications(
            recipients,
            type=message.type,
            title=message.title,
            body=message.body,
            data=message.data,
            created_at=now,
            event_id=event.id,
            actor_profile_id=actor_id,
        )

        push_data = {**message.data, "url": message.data["deep_link"]}
        delivered = await asyncio.gather(
            *(
                self.notifier.send_push(pid, message.title, message.body, push_data)
                for pid in recipients
            )
        )
        logger.info(
            "Notified %d car group member(s) of %s@%s (%d pushed)",
            len(recipients),
            actor_id,
            event.id,
            sum(delivered),
        )
        return CarGroupResult(sent=len(recipients))
