"""
Event lifecycle controller tests.

The completion gate is exercised end to end against the store: one
attendee heading home, one declining, one DD.  Completion is refused
until everybody is accounted for.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from rallyhome.domain.enums import EventStatus, NotParticipatingAnswer
from rallyhome.domain.errors import (
    ForbiddenError,
    InvalidStateTransition,
    NotFoundError,
    SafetyIncompleteError,
    ValidationError,
)
from rallyhome.infrastructure.repositories import EventRepository
from rallyhome.services.attendees import AttendeeActions
from rallyhome.services.dropoff import DDDropoffProtocol
from rallyhome.services.lifecycle import EventLifecycleController


class TestTransitions:
    @pytest.mark.asyncio
    async def test_start_rally(self, db_session, factory):
        event = await factory.event(status=EventStatus.DRAFT)
        started = await EventLifecycleController(db_session).start_rally(event.id)
        assert started.status == EventStatus.LIVE

    @pytest.mark.asyncio
    async def test_after_rally_stores_trimmed_location(self, db_session, factory):
        event = await factory.event()
        moved = await EventLifecycleController(db_session).end_rally_to_after_party(
            event.id, "  The Back Room  "
        )
        assert moved.status == EventStatus.AFTER_RALLY
        assert moved.after_rally_location_name == "The Back Room"

        stored = await EventRepository(db_session).get(event.id)
        assert stored.after_rally_location_name == "The Back Room"

    @pytest.mark.asyncio
    async def test_after_rally_requires_location(self, db_session, factory):
        event = await factory.event()
        with pytest.raises(ValidationError):
            await EventLifecycleController(db_session).end_rally_to_after_party(
                event.id, "   "
            )
        assert (await EventRepository(db_session).get(event.id)).status == EventStatus.LIVE

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_row_untouched(self, db_session, factory):
        event = await factory.event(status=EventStatus.DRAFT)
        with pytest.raises(InvalidStateTransition):
            await EventLifecycleController(db_session).end_rally_to_after_party(
                event.id, "Somewhere"
            )
        stored = await EventRepository(db_session).get(event.id)
        assert stored.status == EventStatus.DRAFT
        assert stored.after_rally_location_name is None

    @pytest.mark.asyncio
    async def test_cancelled_is_terminal(self, db_session, factory):
        event = await factory.event()
        controller = EventLifecycleController(db_session)
        await controller.cancel(event.id)
        with pytest.raises(InvalidStateTransition):
            await controller.start_rally(event.id)
        with pytest.raises(InvalidStateTransition):
            await controller.complete_rally(event.id)

    @pytest.mark.asyncio
    async def test_unknown_event(self, db_session):
        with pytest.raises(NotFoundError):
            await EventLifecycleController(db_session).start_rally(999)


class TestCompletionGate:
    @pytest.mark.asyncio
    async def test_empty_event_completes(self, db_session, factory):
        event = await factory.event()
        done = await EventLifecycleController(db_session).complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_undecided_attendee_blocks(self, db_session, factory):
        event = await factory.event()
        pid = await factory.member(event.id)

        with pytest.raises(SafetyIncompleteError) as exc_info:
            await EventLifecycleController(db_session).complete_rally(event.id)

        assert exc_info.value.pending == 1
        assert exc_info.value.outstanding["undecided"] == [pid]
        assert exc_info.value.counts["undecided"] == 1

    @pytest.mark.asyncio
    async def test_self_arrivals_close_out(self, db_session, factory, clock):
        event = await factory.event(status=EventStatus.AFTER_RALLY)
        heading_home = await factory.member(event.id, "Sam Rivera")
        declined = await factory.member(
            event.id,
            "Priya Nair",
            not_participating_confirmed=True,
        )
        driver = await factory.member(event.id, "Jordan Ellis", is_dd=True)
        actions = AttendeeActions(db_session, clock=clock)
        controller = EventLifecycleController(db_session)

        await actions.start_participating(event.id, heading_home, "Home")

        with pytest.raises(SafetyIncompleteError) as exc_info:
            await controller.complete_rally(event.id)
        err = exc_info.value
        assert err.pending == 2
        assert err.outstanding["participating"] == [heading_home]
        assert err.outstanding["dd_pending"] == [driver]
        assert err.counts["not_participating"] == 1
        assert (await EventRepository(db_session).get(event.id)).status == (
            EventStatus.AFTER_RALLY
        )

        await actions.confirm_arrived_safely(event.id, heading_home)
        with pytest.raises(SafetyIncompleteError) as exc_info:
            await controller.complete_rally(event.id)
        assert exc_info.value.outstanding["dd_pending"] == [driver]

        await actions.confirm_arrived_safely(event.id, driver)
        done = await controller.complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED

        tally = await controller.safety_tally(event.id)
        assert tally.is_complete
        assert tally.total == 3
        # Still declined; a decline is a valid closed state
        assert (
            await actions.attendees.get(event.id, declined)
        ).not_participating == NotParticipatingAnswer.CONFIRMED

    @pytest.mark.asyncio
    async def test_live_event_can_complete_directly(self, db_session, factory):
        event = await factory.event(status=EventStatus.LIVE)
        await factory.member(event.id, arrived_safely=True)
        done = await EventLifecycleController(db_session).complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_dd_dropoff_closes_passenger(self, db_session, factory):
        event = await factory.event()
        now = datetime(2026, 10, 18, 1, 0, tzinfo=timezone.utc)
        await factory.member(event.id, going_home_at=now, dd_dropoff_confirmed_at=now)
        done = await EventLifecycleController(db_session).complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_driver_closes_out_passenger(self, db_session, factory, clock):
        event = await factory.event(status=EventStatus.AFTER_RALLY)
        driver = await factory.member(event.id, "Jordan Ellis", is_dd=True)
        rider = await factory.member(event.id, "Sam Rivera", needs_ride=True)
        decliner = await factory.member(event.id, "Priya Nair")
        ride = await factory.ride(event.id, driver)
        await factory.seat(ride, rider)

        actions = AttendeeActions(db_session, clock=clock)
        dropoff = DDDropoffProtocol(db_session, clock=clock)
        controller = EventLifecycleController(db_session)

        await actions.start_participating(event.id, rider, "Home")
        await actions.confirm_not_participating(event.id, decliner)

        with pytest.raises(SafetyIncompleteError) as exc_info:
            await controller.complete_rally(event.id)
        assert exc_info.value.pending == 2
        assert exc_info.value.outstanding["dd_pending"] == [driver]
        assert exc_info.value.outstanding["participating"] == [rider]

        clock.advance(minutes=20)
        await actions.confirm_arrived_safely(event.id, driver)
        closed = await dropoff.confirm_dropoff(event.id, driver, rider)
        assert closed.dd_dropoff_confirmed_by == driver
        assert not closed.arrived_safely

        done = await controller.complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED


class TestHostOnly:
    @pytest.mark.asyncio
    async def test_non_host_is_refused(self, db_session, factory):
        host = await factory.profile("Morgan Lee")
        event = await factory.event(host_id=host.id)
        guest = await factory.member(event.id, "Sam Rivera", arrived_safely=True)
        controller = EventLifecycleController(db_session, guest)

        with pytest.raises(ForbiddenError):
            await controller.cancel(event.id)
        with pytest.raises(ForbiddenError):
            await controller.complete_rally(event.id)
        assert (await EventRepository(db_session).get(event.id)).status == EventStatus.LIVE

    @pytest.mark.asyncio
    async def test_host_is_allowed(self, db_session, factory):
        host = await factory.profile("Morgan Lee")
        event = await factory.event(host_id=host.id)
        done = await EventLifecycleController(db_session, host.id).complete_rally(event.id)
        assert done.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_event_without_host_refuses_callers(self, db_session, factory):
        event = await factory.event()
        with pytest.raises(ForbiddenError):
            await EventLifecycleController(db_session, 1).start_rally(event.id)
