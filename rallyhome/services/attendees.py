"""Attendee self-service actions: plan choice, R@lly Home, After R@lly."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.domain.clock import Clock, utcnow
from rallyhome.domain.entities import Attendee
from rallyhome.domain.enums import NotParticipatingAnswer, RidePlan
from rallyhome.domain.errors import ValidationError
from rallyhome.infrastructure.repositories import AttendeeRepository, EventRepository


class AttendeeActions:
    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.attendees = AttendeeRepository(session)
        self.events = EventRepository(session)
        self.clock = clock

    async def join_event(self, event_id: int, profile_id: int) -> Attendee:
        await self.events.get(event_id)
        return await self.attendees.join(event_id, profile_id)

    async def choose_ride_plan(
        self,
        event_id: int,
        profile_id: int,
        plan: RidePlan,
        pickup_location: Optional[str] = None,
        dropoff_location: Optional[str] = None,
    ) -> Attendee:
        if plan == RidePlan.UNSET:
            raise ValidationError("Choose dd, rider or self")
        return await self.attendees.update(
            event_id,
            profile_id,
            {
                "is_dd": plan == RidePlan.DD,
                "needs_ride": plan == RidePlan.RIDER,
                "ride_plan_selected": True,
                "ride_pickup_location": pickup_location,
                "ride_dropoff_location": dropoff_location,
            },
        )

    async def _get_open(self, event_id: int, profile_id: int) -> Attendee:
        attendee = await self.attendees.get(event_id, profile_id)
        if attendee.has_arrived_safely:
            raise ValidationError("Already arrived safely for this event")
        return attendee

    async def start_participating(
        self,
        event_id: int,
        profile_id: int,
        destination_name: Optional[str] = None,
    ) -> Attendee:
        attendee = await self._get_open(event_id, profile_id)
        return await self.attendees.update(
            event_id,
            profile_id,
            {
                "going_home_at": self.clock(),
                "destination_name": destination_name,
                "arrived_safely": False,
                "not_participating": NotParticipatingAnswer.UNANSWERED,
            },
            expected_version=attendee.version,
        )

    async def confirm_not_participating(
        self, event_id: int, profile_id: int
    ) -> Attendee:
        attendee = await self._get_open(event_id, profile_id)
        return await self.attendees.update(
            event_id,
            profile_id,
            {
                "going_home_at": None,
                "not_participating": NotParticipatingAnswer.CONFIRMED,
            },
            expected_version=attendee.version,
        )

    async def confirm_arrived_safely(
        self, event_id: int, profile_id: int
    ) -> Attendee:
        attendee = await self.attendees.get(event_id, profile_id)
        if attendee.arrived_safely:
            return attendee
        return await self.attendees.update(
            event_id,
            profile_id,
            {"arrived_safely": True, "arrived_at": self.clock()},
            expected_version=attendee.version,
        )

    async def opt_into_after_rally(
        self, event_id: int, profile_id: int, opt_in: bool
    ) -> Attendee:
        event = await self.events.get(event_id)
        return await self.attendees.update(
            event_id,
            profile_id,
            {
                "after_rally_opted_in": opt_in,
                "after_rally_location_name": (
                    event.after_rally_location_name if opt_in else None
                ),
            },
        )

    async def update_location(
        self,
        event_id: int,
        profile_id: int,
        lat: float,
        lng: float,
        share: bool = True,
    ) -> Attendee:
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise ValidationError("Coordinates out of range")
        return await self.attendees.update(
            event_id,
            profile_id,
            {
                "current_lat": lat,
                "current_lng": lng,
                "share_location": share,
                "last_location_update": self.clock(),
            },
        )
