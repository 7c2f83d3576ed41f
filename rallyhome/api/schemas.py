"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rallyhome.domain.enums import (
    EventStatus,
    NotParticipatingAnswer,
    RidePassengerStatus,
    RidePlan,
    RideStatus,
    RideStatusType,
    SafetyState,
)


# ── Requests ──────────────────────────────────────────────────────────


class AfterRallyRequest(BaseModel):
    location_name: str = Field(..., max_length=200)


class RidePlanRequest(BaseModel):
    plan: RidePlan
    pickup_location: Optional[str] = Field(None, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)


class GoingHomeRequest(BaseModel):
    destination_name: Optional[str] = Field(None, max_length=255)


class AfterRallyOptInRequest(BaseModel):
    opt_in: bool = True


class LocationUpdateRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    share: bool = True


class RideOfferRequest(BaseModel):
    available_seats: int = Field(4, ge=1, le=8)
    pickup_location: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)
    departure_time: Optional[datetime] = None


class SeatRequest(BaseModel):
    pickup_location: Optional[str] = Field(None, max_length=255)
    pickup_lat: Optional[float] = Field(None, ge=-90, le=90)
    pickup_lng: Optional[float] = Field(None, ge=-180, le=180)


class SeatResponseRequest(BaseModel):
    accept: bool


class CarGroupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: int = Field(..., alias="eventId")


# ── Responses ─────────────────────────────────────────────────────────


class EventResponse(BaseModel):
    id: int
    title: str
    host_id: Optional[int] = None
    is_bar_hop: bool
    status: EventStatus
    after_rally_location_name: Optional[str] = None

    model_config = {"from_attributes": True}


class AttendeeResponse(BaseModel):
    event_id: int
    profile_id: int
    is_dd: bool
    needs_ride: bool
    ride_pickup_location: Optional[str] = None
    ride_dropoff_location: Optional[str] = None
    going_home_at: Optional[datetime] = None
    destination_name: Optional[str] = None
    arrived_safely: bool
    arrived_at: Optional[datetime] = None
    not_participating: NotParticipatingAnswer
    after_rally_opted_in: Optional[bool] = None
    after_rally_location_name: Optional[str] = None
    dd_dropoff_confirmed_at: Optional[datetime] = None
    dd_dropoff_confirmed_by: Optional[int] = None
    version: int

    model_config = {"from_attributes": True}


class AttendeeStatusResponse(BaseModel):
    attendee: AttendeeResponse
    ride_plan: RidePlan
    safety_state: SafetyState
    safety_label: str


class PromptResponse(BaseModel):
    is_undecided: bool
    needs_reconfirmation: bool
    can_prompt: bool
    is_participating: bool
    has_arrived_safely: bool
    is_dd: bool

    model_config = {"from_attributes": True}


class AttendeeSafetyItem(BaseModel):
    profile_id: int
    state: SafetyState
    label: str


class SafetySummaryResponse(BaseModel):
    event_id: int
    total_attendees: int
    counts: dict[SafetyState, int]
    pending: int
    safety_complete: bool
    outstanding: dict[SafetyState, list[int]]
    attendees: list[AttendeeSafetyItem] = []


class RosterItem(BaseModel):
    profile_id: int
    ride_plan: RidePlan
    ride_status: RideStatusType
    label: str
    seats_left: Optional[int] = None


class RidePassengerResponse(BaseModel):
    passenger_id: int
    status: RidePassengerStatus
    pickup_location: Optional[str] = None

    model_config = {"from_attributes": True}


class RideResponse(BaseModel):
    id: int
    event_id: int
    driver_id: int
    pickup_location: Optional[str] = None
    destination: Optional[str] = None
    available_seats: int
    seats_left: int
    departure_time: Optional[datetime] = None
    status: RideStatus
    passengers: list[RidePassengerResponse] = []

    model_config = {"from_attributes": True}


class EtaResponse(BaseModel):
    available: bool
    distance_km: Optional[float] = None
    eta_minutes: Optional[int] = None
    distance_label: Optional[str] = None
    note: str = "Straight-line estimate at an average urban speed; not routed travel time."


class CarGroupResponse(BaseModel):
    sent: int
    deduped: Optional[bool] = None
    no_car_group: Optional[bool] = None


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    body: str
    data: Optional[dict] = None
    event_id: Optional[int] = None
    actor_profile_id: Optional[int] = None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    redis: str = "ok"
