"""
Event endpoints
===============

POST /api/v1/events/{event_id}/start        -- draft -> live
POST /api/v1/events/{event_id}/after-rally  -- live -> after_rally (location required)
POST /api/v1/events/{event_id}/complete     -- -> completed, gated on safety (409 + counts)
POST /api/v1/events/{event_id}/cancel       -- -> cancelled
GET  /api/v1/events/{event_id}/safety       -- safety tally and per-attendee states
GET  /api/v1/events/{event_id}/roster       -- ride labels for every attendee
WS   /api/v1/events/{event_id}/safety/stream -- live safety view

Status changes are for the event's host only (``X-Profile-Id``); any
other caller gets 403.
"""

import asyncio
import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.api.dependencies import get_current_profile_id, get_db, get_redis_client
from rallyhome.api.middleware import limiter
from rallyhome.api.schemas import (
    AfterRallyRequest,
    AttendeeSafetyItem,
    EventResponse,
    RosterItem,
    SafetySummaryResponse,
)
from rallyhome.domain.errors import NotFoundError
from rallyhome.domain.ride_plan import resolve_ride_plan
from rallyhome.domain.safety import resolve_safety_state, safety_state_label
from rallyhome.infrastructure.database import async_session_factory
from rallyhome.infrastructure.feed import AttendeeChangeFeed
from rallyhome.infrastructure.repositories import AttendeeRepository, EventRepository
from rallyhome.services.lifecycle import EventLifecycleController
from rallyhome.services.rides import RideService
from rallyhome.services.safety_view import EventSafetyView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "/{event_id}/start",
    response_model=EventResponse,
    summary="Start the R@lly",
)
@limiter.limit("100/minute")
async def start_rally(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return await EventLifecycleController(db, profile_id).start_rally(event_id)


@router.post(
    "/{event_id}/after-rally",
    response_model=EventResponse,
    summary="End the R@lly and move to an After R@lly location",
)
@limiter.limit("100/minute")
async def end_rally_to_after_party(
    request: Request,
    event_id: int,
    body: AfterRallyRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return await EventLifecycleController(db, profile_id).end_rally_to_after_party(
        event_id, body.location_name
    )


@router.post(
    "/{event_id}/complete",
    response_model=EventResponse,
    summary="Complete the R@lly",
    description=(
        "Allowed only when no attendee is en route, undecided, or a DD "
        "awaiting arrival.  Otherwise 409 with per-state counts and the "
        "outstanding profile ids."
    ),
)
@limiter.limit("100/minute")
async def complete_rally(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return await EventLifecycleController(db, profile_id).complete_rally(event_id)


@router.post("/{event_id}/cancel", response_model=EventResponse, summary="Cancel")
@limiter.limit("100/minute")
async def cancel_event(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return await EventLifecycleController(db, profile_id).cancel(event_id)


@router.get(
    "/{event_id}/safety",
    response_model=SafetySummaryResponse,
    summary="Safety tally for the organizer",
)
@limiter.limit("100/minute")
async def safety_summary(
    request: Request,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    await EventRepository(db).get(event_id)
    attendees = await AttendeeRepository(db).list_for_event(event_id)
    controller = EventLifecycleController(db)
    tally = await controller.safety_tally(event_id)
    items = []
    for a in attendees:
        state = resolve_safety_state(a)
        items.append(
            AttendeeSafetyItem(
                profile_id=a.profile_id, state=state, label=safety_state_label(state)
            )
        )
    return SafetySummaryResponse(
        event_id=event_id,
        total_attendees=tally.total,
        counts=tally.counts,
        pending=tally.pending,
        safety_complete=tally.is_complete,
        outstanding=tally.outstanding,
        attendees=items,
    )


@router.get(
    "/{event_id}/roster",
    response_model=list[RosterItem],
    summary="Ride labels for every attendee",
)
@limiter.limit("100/minute")
async def roster(
    request: Request,
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    await EventRepository(db).get(event_id)
    return [
        RosterItem(
            profile_id=attendee.profile_id,
            ride_plan=resolve_ride_plan(attendee),
            ride_status=label.type,
            label=label.label,
            seats_left=label.seats_left,
        )
        for attendee, label in await RideService(db).roster(event_id)
    ]


@router.websocket("/{event_id}/safety/stream")
async def safety_stream(
    websocket: WebSocket,
    event_id: int,
    redis: aioredis.Redis = Depends(get_redis_client),
):
    """Push ``{profile_id, state, pending}`` whenever an attendee changes."""
    await websocket.accept()
    async with async_session_factory() as session:
        try:
            event = await EventRepository(session).get(event_id)
        except NotFoundError:
            await websocket.close(code=1008)
            return

        view = EventSafetyView(event)
        updates: asyncio.Queue = asyncio.Queue()
        view.add_listener(lambda attendee, state: updates.put_nowait((attendee, state)))

        # Subscribe before listing so no change falls between the two
        subscription = await AttendeeChangeFeed(redis).subscribe(
            event_id, view.apply_change
        )
        for attendee in await AttendeeRepository(session).list_for_event(event_id):
            view.apply_change(None, attendee)

    # The stream is server-to-client; reading only watches for the close
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            next_update = asyncio.create_task(updates.get())
            done, _ = await asyncio.wait(
                {next_update, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_update.cancel()
                break
            attendee, state = next_update.result()
            await websocket.send_json(
                {
                    "profile_id": attendee.profile_id,
                    "state": state.value,
                    "pending": view.tally().pending,
                }
            )
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.cancel()
        await subscription.close()
        logger.debug("Safety stream for event %s closed", event_id)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
