"""
Event lifecycle controller.

    draft -> live -> after_rally -> completed
             (cancelled from any non-terminal status)

``complete_rally`` is gated on safety completeness: every attendee must
have arrived safely or confirmed they are not participating.  The gate
reads a fresh tally with the event row locked; there is no waiting or
retry -- callers re-invoke after remediating.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.domain.entities import Event
from rallyhome.domain.enums import EventStatus
from rallyhome.domain.errors import (
    ForbiddenError,
    InvalidStateTransition,
    SafetyIncompleteError,
    ValidationError,
)
from rallyhome.domain.safety import SafetyTally, tally_safety_states
from rallyhome.infrastructure.repositories import (
    AttendeeRepository,
    EventRepository,
    event_from_row,
)

logger = logging.getLogger(__name__)


class EventLifecycleController:
    """Status changes for one organizer.

    With ``actor_id`` set, every transition is refused unless the caller
    is the event's host.  ``None`` skips the check; read-only callers
    such as the safety summary use that.
    """

    def __init__(self, session: AsyncSession, actor_id: Optional[int] = None):
        self.events = EventRepository(session)
        self.attendees = AttendeeRepository(session)
        self.actor_id = actor_id

    async def start_rally(self, event_id: int) -> Event:
        return await self._transition(event_id, EventStatus.LIVE)

    async def end_rally_to_after_party(
        self, event_id: int, location_name: str
    ) -> Event:
        name = (location_name or "").strip()
        if not name:
            raise ValidationError("After R@lly location name is required")
        return await self._transition(
            event_id, EventStatus.AFTER_RALLY, after_rally_location_name=name
        )

    async def complete_rally(self, event_id: int) -> Event:
        row = await self.events.get_for_update(event_id)
        event = event_from_row(row)
        self._authorize(event)
        self._check(event, EventStatus.COMPLETED)

        tally = await self.safety_tally(event_id)
        if not tally.is_complete:
            logger.warning(
                "Event %s completion refused: %d pending %s",
                event_id,
                tally.pending,
                {s.value: n for s, n in tally.counts.items() if n},
            )
            raise SafetyIncompleteError(
                event_id,
                counts={s.value: n for s, n in tally.counts.items()},
                outstanding={s.value: ids for s, ids in tally.outstanding.items()},
            )

        return self._apply(row, event, EventStatus.COMPLETED)

    async def cancel(self, event_id: int) -> Event:
        return await self._transition(event_id, EventStatus.CANCELLED)

    async def safety_tally(self, event_id: int) -> SafetyTally:
        return tally_safety_states(await self.attendees.list_for_event(event_id))

    # ── Internals ─────────────────────────────────────────────────────

    async def _transition(
        self, event_id: int, new_status: EventStatus, **changes
    ) -> Event:
        row = await self.events.get_for_update(event_id)
        event = event_from_row(row)
        self._authorize(event)
        self._check(event, new_status)
        for name, value in changes.items():
            setattr(row, name, value)
            setattr(event, name, value)
        return self._apply(row, event, new_status)

    def _authorize(self, event: Event) -> None:
        if self.actor_id is None or event.host_id == self.actor_id:
            return
        logger.warning(
            "Profile %s tried to change event %s hosted by %s",
            self.actor_id,
            event.id,
            event.host_id,
        )
        raise ForbiddenError(f"Only the host can change event {event.id}")

    @staticmethod
    def _check(event: Event, new_status: EventStatus) -> None:
        if not event.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {event.status.value} to {new_status.value}"
            )

    @staticmethod
    def _apply(row, event: Event, new_status: EventStatus) -> Event:
        old_status = event.status
        event.transition_to(new_status)
        row.status = event.status
        logger.info(
            "Event %s: %s -> %s", event.id, old_status.value, new_status.value
        )
        return event
