"""
DD dropoff protocol.

Lets a designated driver mark a passenger as dropped off safely, which
satisfies that passenger's safety requirement permanently without the
passenger acting.  This is the one write a second party may make to an
attendee row; it touches only ``dd_dropoff_confirmed_at`` and
``dd_dropoff_confirmed_by``.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.domain.clock import Clock, utcnow
from rallyhome.domain.entities import Attendee
from rallyhome.domain.enums import SafetyState
from rallyhome.domain.errors import NotParticipatingError, ValidationError
from rallyhome.domain.safety import resolve_safety_state
from rallyhome.infrastructure.repositories import AttendeeRepository, RideRepository

logger = logging.getLogger(__name__)


class DDDropoffProtocol:
    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.attendees = AttendeeRepository(session)
        self.rides = RideRepository(session)
        self.clock = clock

    async def _passenger_ids_for_driver(
        self, event_id: int, driver_id: int
    ) -> set[int]:
        ids: set[int] = set()
        for ride in await self.rides.list_for_event(event_id):
            if ride.driver_id == driver_id:
                ids.update(ride.accepted_passenger_ids)
        return ids

    async def list_confirmable_passengers(
        self, event_id: int, driver_id: int
    ) -> list[Attendee]:
        """Accepted passengers of this driver who are heading home, not yet arrived."""
        mine = await self._passenger_ids_for_driver(event_id, driver_id)
        if not mine:
            return []
        return [
            a
            for a in await self.attendees.list_for_event(event_id)
            if a.profile_id in mine
            and resolve_safety_state(a) == SafetyState.PARTICIPATING
        ]

    async def confirm_dropoff(
        self, event_id: int, driver_id: int, passenger_id: int
    ) -> Attendee:
        passenger = await self.attendees.get(event_id, passenger_id)

        if passenger.going_home_at is None:
            raise NotParticipatingError(event_id, passenger_id)

        if passenger_id not in await self._passenger_ids_for_driver(
            event_id, driver_id
        ):
            raise ValidationError(
                f"Profile {passenger_id} is not an accepted passenger of "
                f"driver {driver_id} for event {event_id}"
            )

        if passenger.has_arrived_safely:
            return passenger

        confirmed = await self.attendees.update(
            event_id,
            passenger_id,
            {
                "dd_dropoff_confirmed_at": self.clock(),
                "dd_dropoff_confirmed_by": driver_id,
            },
            expected_version=passenger.version,
        )
        logger.info(
            "Event %s: driver %s confirmed dropoff of %s",
            event_id,
            driver_id,
            passenger_id,
        )
        return confirmed
