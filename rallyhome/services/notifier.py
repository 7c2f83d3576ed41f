"""
Notification delivery.

Two channels per recipient:

* **in-app** -- a ``notifications`` row in the same unit of work as the
  caller; failures propagate.
* **push**   -- one POST per recipient to the push gateway.  Best effort:
  failures are logged and reported as ``False``, never raised.  Safety
  state must never depend on push delivery.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from rallyhome.config import settings
from rallyhome.domain.errors import NotifierError
from rallyhome.infrastructure.models import NotificationModel
from rallyhome.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)


class PushGateway:
    """Thin client for the push gateway (web push / mobile fan-out)."""

    def __init__(
        self,
        base_url: str = settings.push_gateway_url,
        token: str = settings.push_gateway_token,
        timeout: float = settings.push_timeout_seconds,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def send(
        self, profile_id: int, title: str, body: str, data: dict[str, Any]
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        payload = {"profileId": profile_id, "title": title, "body": body, "data": data}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    self.base_url, json=payload, headers=headers
                )
        except httpx.HTTPError as exc:
            raise NotifierError(f"Push gateway unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise NotifierError(
                f"Push gateway returned {response.status_code} for profile {profile_id}"
            )


class Notifier:
    def __init__(
        self,
        notifications: NotificationRepository,
        push: Optional[PushGateway] = None,
    ):
        self.notifications = notifications
        self.push = push or PushGateway()

    async def send_push(
        self, profile_id: int, title: str, body: str, data: dict[str, Any]
    ) -> bool:
        if not self.push.enabled:
            logger.debug("Push disabled; skipping profile %s", profile_id)
            return False
        try:
            await self.push.send(profile_id, title, body, data)
        except NotifierError:
            logger.exception("Push failed for profile %s", profile_id)
            return False
        return True

    async def insert_in_app_notifications(
        self,
        profile_ids: list[int],
        *,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any],
        created_at: datetime,
        event_id: Optional[int] = None,
        actor_profile_id: Optional[int] = None,
    ) -> list[NotificationModel]:
        rows = [
            NotificationModel(
                profile_id=pid,
                type=type,
                title=title,
                body=body,
                data=data,
                event_id=event_id,
                actor_profile_id=actor_profile_id,
                created_at=created_at,
            )
            for pid in profile_ids
        ]
        return await self.notifications.create_many(rows)
