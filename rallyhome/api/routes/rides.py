"""
Ride endpoints (caller = ``X-Profile-Id``)
=========================================

POST /api/v1/events/{event_id}/rides                      -- offer a ride (caller drives)
POST /api/v1/rides/{ride_id}/requests                     -- request a seat
POST /api/v1/rides/{ride_id}/requests/{passenger_id}      -- driver accepts / declines
GET  /api/v1/events/{event_id}/dropoffs                   -- passengers the caller may confirm
POST /api/v1/events/{event_id}/dropoffs/{passenger_id}    -- confirm a safe dropoff
GET  /api/v1/events/{event_id}/eta                        -- how far is my driver?
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.api.dependencies import get_current_profile_id, get_db
from rallyhome.api.middleware import limiter
from rallyhome.api.schemas import (
    AttendeeResponse,
    EtaResponse,
    RideOfferRequest,
    RideResponse,
    SeatRequest,
    SeatResponseRequest,
)
from rallyhome.domain.distance import format_distance
from rallyhome.services.dropoff import DDDropoffProtocol
from rallyhome.services.rides import RideService

router = APIRouter(tags=["rides"])


@router.post(
    "/events/{event_id}/rides",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride as designated driver",
)
@limiter.limit("100/minute")
async def offer_ride(
    request: Request,
    event_id: int,
    body: RideOfferRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).offer_ride(
        event_id,
        profile_id,
        available_seats=body.available_seats,
        pickup_location=body.pickup_location,
        destination=body.destination,
        departure_time=body.departure_time,
    )
    return RideResponse.model_validate(ride)


@router.post(
    "/rides/{ride_id}/requests",
    status_code=201,
    response_model=RideResponse,
    summary="Request a seat",
)
@limiter.limit("100/minute")
async def request_seat(
    request: Request,
    ride_id: int,
    body: SeatRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).request_seat(
        ride_id,
        profile_id,
        pickup_location=body.pickup_location,
        pickup_lat=body.pickup_lat,
        pickup_lng=body.pickup_lng,
    )
    return RideResponse.model_validate(ride)


@router.post(
    "/rides/{ride_id}/requests/{passenger_id}",
    response_model=RideResponse,
    summary="Accept or decline a seat request",
)
@limiter.limit("100/minute")
async def respond_to_request(
    request: Request,
    ride_id: int,
    passenger_id: int,
    body: SeatResponseRequest,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideService(db).respond_to_request(
        ride_id, profile_id, passenger_id, body.accept
    )
    return RideResponse.model_validate(ride)


@router.get(
    "/events/{event_id}/dropoffs",
    response_model=list[AttendeeResponse],
    summary="Passengers the calling driver can confirm as dropped off",
)
@limiter.limit("100/minute")
async def confirmable_passengers(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    passengers = await DDDropoffProtocol(db).list_confirmable_passengers(
        event_id, profile_id
    )
    return [AttendeeResponse.model_validate(p) for p in passengers]


@router.post(
    "/events/{event_id}/dropoffs/{passenger_id}",
    response_model=AttendeeResponse,
    summary="Confirm a passenger was dropped off safely",
)
@limiter.limit("100/minute")
async def confirm_dropoff(
    request: Request,
    event_id: int,
    passenger_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    passenger = await DDDropoffProtocol(db).confirm_dropoff(
        event_id, profile_id, passenger_id
    )
    return AttendeeResponse.model_validate(passenger)


@router.get(
    "/events/{event_id}/eta",
    response_model=EtaResponse,
    summary="Distance and coarse ETA of the caller's driver",
)
@limiter.limit("100/minute")
async def driver_eta(
    request: Request,
    event_id: int,
    profile_id: int = Depends(get_current_profile_id),
    db: AsyncSession = Depends(get_db),
):
    eta = await RideService(db).driver_eta(event_id, profile_id)
    if eta is None:
        return EtaResponse(available=False)
    return EtaResponse(
        available=True,
        distance_km=eta.distance_km,
        eta_minutes=eta.eta_minutes,
        distance_label=format_distance(eta.distance_km * 1000),
    )
