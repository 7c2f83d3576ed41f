"""Attendee self-service actions against the store."""

from __future__ import annotations

import pytest

from rallyhome.domain.enums import (
    EventStatus,
    NotParticipatingAnswer,
    RidePlan,
    SafetyState,
)
from rallyhome.domain.errors import NotFoundError, ValidationError
from rallyhome.domain.ride_plan import resolve_ride_plan
from rallyhome.domain.safety import resolve_safety_state
from rallyhome.services.attendees import AttendeeActions


class TestJoin:
    @pytest.mark.asyncio
    async def test_join_creates_undecided_row(self, db_session, factory):
        event = await factory.event()
        profile = await factory.profile("Sam Rivera")

        attendee = await AttendeeActions(db_session).join_event(event.id, profile.id)

        assert attendee.version == 1
        assert resolve_safety_state(attendee) == SafetyState.UNDECIDED
        assert resolve_ride_plan(attendee) == RidePlan.UNSET

    @pytest.mark.asyncio
    async def test_join_is_idempotent(self, db_session, factory):
        event = await factory.event()
        profile = await factory.profile()
        actions = AttendeeActions(db_session)
        first = await actions.join_event(event.id, profile.id)
        again = await actions.join_event(event.id, profile.id)
        assert again == first

    @pytest.mark.asyncio
    async def test_join_unknown_event(self, db_session, factory):
        profile = await factory.profile()
        with pytest.raises(NotFoundError):
            await AttendeeActions(db_session).join_event(999, profile.id)


class TestRidePlan:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("plan", [RidePlan.DD, RidePlan.RIDER, RidePlan.SELF])
    async def test_choose(self, db_session, factory, plan):
        event = await factory.event()
        pid = await factory.member(event.id)
        attendee = await AttendeeActions(db_session).choose_ride_plan(
            event.id, pid, plan, dropoff_location="Home"
        )
        assert resolve_ride_plan(attendee) == plan
        assert attendee.ride_dropoff_location == "Home"

    @pytest.mark.asyncio
    async def test_unset_is_rejected(self, db_session, factory):
        event = await factory.event()
        pid = await factory.member(event.id)
        with pytest.raises(ValidationError):
            await AttendeeActions(db_session).choose_ride_plan(
                event.id, pid, RidePlan.UNSET
            )


class TestRallyHome:
    @pytest.mark.asyncio
    async def test_start_participating(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id, not_participating_confirmed=True)

        attendee = await AttendeeActions(db_session, clock=clock).start_participating(
            event.id, pid, "Williamsburg"
        )

        assert attendee.going_home_at is not None
        assert attendee.destination_name == "Williamsburg"
        assert attendee.not_participating == NotParticipatingAnswer.UNANSWERED
        assert attendee.version == 2
        assert resolve_safety_state(attendee) == SafetyState.PARTICIPATING

    @pytest.mark.asyncio
    async def test_not_participating_clears_heading_home(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id)
        actions = AttendeeActions(db_session, clock=clock)
        await actions.start_participating(event.id, pid)

        attendee = await actions.confirm_not_participating(event.id, pid)

        assert attendee.going_home_at is None
        assert attendee.not_participating == NotParticipatingAnswer.CONFIRMED
        assert resolve_safety_state(attendee) == SafetyState.NOT_PARTICIPATING

    @pytest.mark.asyncio
    async def test_arrived_is_terminal(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id)
        actions = AttendeeActions(db_session, clock=clock)
        await actions.start_participating(event.id, pid)
        arrived = await actions.confirm_arrived_safely(event.id, pid)

        assert arrived.arrived_at == clock.now
        assert resolve_safety_state(arrived) == SafetyState.ARRIVED_SAFELY
        with pytest.raises(ValidationError):
            await actions.confirm_not_participating(event.id, pid)
        with pytest.raises(ValidationError):
            await actions.start_participating(event.id, pid)

    @pytest.mark.asyncio
    async def test_arrived_is_idempotent(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id)
        actions = AttendeeActions(db_session, clock=clock)
        first = await actions.confirm_arrived_safely(event.id, pid)
        clock.advance(minutes=5)
        second = await actions.confirm_arrived_safely(event.id, pid)
        assert second.version == first.version

    @pytest.mark.asyncio
    async def test_unknown_attendee(self, db_session, factory):
        event = await factory.event()
        with pytest.raises(NotFoundError):
            await AttendeeActions(db_session).start_participating(event.id, 999)


class TestAfterRallyAndLocation:
    @pytest.mark.asyncio
    async def test_opt_in_copies_event_location(self, db_session, factory):
        event = await factory.event(
            status=EventStatus.AFTER_RALLY, after_rally_location_name="The Back Room"
        )
        pid = await factory.member(event.id)
        actions = AttendeeActions(db_session)

        opted = await actions.opt_into_after_rally(event.id, pid, True)
        assert opted.after_rally_opted_in is True
        assert opted.after_rally_location_name == "The Back Room"

        out = await actions.opt_into_after_rally(event.id, pid, False)
        assert out.after_rally_opted_in is False
        assert out.after_rally_location_name is None

    @pytest.mark.asyncio
    async def test_update_location(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id)
        attendee = await AttendeeActions(db_session, clock=clock).update_location(
            event.id, pid, 40.7, -74.0
        )
        assert attendee.shared_location.latitude == 40.7
        assert attendee.last_location_update == clock.now

    @pytest.mark.asyncio
    async def test_update_location_range(self, db_session, factory):
        event = await factory.event()
        pid = await factory.member(event.id)
        with pytest.raises(ValidationError):
            await AttendeeActions(db_session).update_location(event.id, pid, 91.0, 0.0)
