"""
Attendee self-service endpoints (caller = ``X-Profile-Id``)
==========================================================

POST /api/v1/events/{event_id}/attendees/me                    -- join
GET  /api/v1/events/{event_id}/attendees/me                    -- own status
GET  /api/v1/events/{event_id}/attendees/me/prompt             -- show the R@lly Home dialog?
PUT  /api/v1/events/{event_id}/attendees/me/ride-plan          -- dd / rider / self
POST /api/v1/events/{event_id}/attendees/me/going-home         -- start R@lly Home
POST /api/v1/events/{event_id}/attendees/me/not-participating  -- decline R@lly Home
POST /api/v1/events/{event_id}/attendees/me/arrived            -- arrived safely
POST /api/v1/events/{event_id}/attendees/me/after-rally        -- opt in / out of After R@lly
POST /api/v1/events/{event_id}/attendees/me/location           -- share position
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.api.dependencies import get_current_profile_id, get_db
from rallyhome.api.middleware import limiter
from rallyhome.api.schemas import (
    AfterRallyOptInRequest,
    AttendeeResponse,
    AttendeeStatusResponse,
    GoingHomeRequest,
    LocationUpdateRequest,
    PromptResponse,
    RidePlanRequest,
)
from rallyhome.domain.entities import Attendee
from rallyhome.domain.prompt import evaluate_rally_home_prompt
from rallyhome.domain.ride_plan import resolve_ride_plan
from rallyhome.domain.safety import resolve_safety_state, safety_state_label
from rallyhome.infrastructure.repositories import AttendeeRepository, EventRepository
from rallyhome.services.attendees import AttendeeActions

router = APIRouter(prefix="/events/{event_id}/attendees/me", tags=["attendees"])


def _status(attendee: Attendee) -> AttendeeStatusResponse:
    state = resolve_safety_state(attendee)
    return AttendeeStatusResponse(
        attendee=AttendeeResponse.model_validate(attendee),
        ride_plan=resolve_ride_plan(attendee),
        safety_state=state,
        safety_label=safety_state_label(state),
    )


@router.post("", response_model=AttendeeStatusResponse, status_code=201, summary="Join")
@limiter.limit("100/minute")
async def join_event(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return _status(await AttendeeActions(db).join_event(event_id, profile_id))


@router.get("", response_model=AttendeeStatusResponse, summary="Own status")
@limiter.limit("100/minute")
async def my_status(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return _status(await AttendeeRepository(db).get(event_id, profile_id))


@router.get(
    "/prompt",
    response_model=PromptResponse,
    summary="Should the R@lly Home safety dialog be shown?",
)
@limiter.limit("100/minute")
async def prompt_status(
    request: Request,
    event_id: int,
    transition_point: bool = Query(
        False, description="True only at a bar-hop stop transition."
    ),
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    event = await EventRepository(db).get(event_id)
    attendee = await AttendeeRepository(db).get(event_id, profile_id)
    return evaluate_rally_home_prompt(attendee, event, transition_point)


@router.put("/ride-plan", response_model=AttendeeStatusResponse, summary="Choose ride plan")
@limiter.limit("100/minute")
async def choose_ride_plan(
    request: Request,
    event_id: int,
    body: RidePlanRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    attendee = await AttendeeActions(db).choose_ride_plan(
        event_id,
        profile_id,
        body.plan,
        pickup_location=body.pickup_location,
        dropoff_location=body.dropoff_location,
    )
    return _status(attendee)


@router.post("/going-home", response_model=AttendeeStatusResponse, summary="Start R@lly Home")
@limiter.limit("100/minute")
async def start_participating(
    request: Request,
    event_id: int,
    body: GoingHomeRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    attendee = await AttendeeActions(db).start_participating(
        event_id, profile_id, body.destination_name
    )
    return _status(attendee)


@router.post(
    "/not-participating",
    response_model=AttendeeStatusResponse,
    summary="Decline R@lly Home",
)
@limiter.limit("100/minute")
async def confirm_not_participating(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return _status(
        await AttendeeActions(db).confirm_not_participating(event_id, profile_id)
    )


@router.post("/arrived", response_model=AttendeeStatusResponse, summary="Arrived safely")
@limiter.limit("100/minute")
async def confirm_arrived_safely(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return _status(await AttendeeActions(db).confirm_arrived_safely(event_id, profile_id))


@router.post("/after-rally", response_model=AttendeeStatusResponse, summary="After R@lly opt-in")
@limiter.limit("100/minute")
async def opt_into_after_rally(
    request: Request,
    event_id: int,
    body: AfterRallyOptInRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    return _status(
        await AttendeeActions(db).opt_into_after_rally(event_id, profile_id, body.opt_in)
    )


@router.post("/location", response_model=AttendeeStatusResponse, summary="Share position")
@limiter.limit("100/minute")
async def update_location(
    request: Request,
    event_id: int,
    body: LocationUpdateRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    attendee = await AttendeeActions(db).update_location(
        event_id, profile_id, body.lat, body.lng, body.share
    )
    return _status(attendee)
