"""
Domain entities.

Patterns used
-------------
- **State Pattern** on ``Event``: enforces the forward-only lifecycle
  (draft -> live -> after_rally -> completed, cancelled from anywhere
  non-terminal).
- ``Attendee`` is an immutable snapshot of one ``event_attendees`` row.
  Resolvers take snapshots and never touch storage, so the same snapshot
  always yields the same answer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import (
    EVENT_TRANSITIONS,
    EventStatus,
    NotParticipatingAnswer,
    RidePassengerStatus,
    RideStatus,
)
from .errors import InvalidStateTransition


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Event:
    id: Optional[int] = None
    title: str = ""
    host_id: Optional[int] = None
    is_bar_hop: bool = False
    status: EventStatus = EventStatus.DRAFT
    after_rally_location_name: Optional[str] = None

    def can_transition_to(self, new_status: EventStatus) -> bool:
        return new_status in EVENT_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: EventStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


@dataclass(frozen=True)
class Attendee:
    event_id: int
    profile_id: int

    # Ride plan
    is_dd: bool = False
    needs_ride: bool = False
    ride_plan_selected: bool = False
    ride_pickup_location: Optional[str] = None
    ride_dropoff_location: Optional[str] = None

    # Safety
    going_home_at: Optional[datetime] = None
    destination_name: Optional[str] = None
    arrived_safely: bool = False
    arrived_at: Optional[datetime] = None
    not_participating: NotParticipatingAnswer = NotParticipatingAnswer.UNANSWERED
    after_rally_opted_in: Optional[bool] = None
    after_rally_location_name: Optional[str] = None
    dd_dropoff_confirmed_at: Optional[datetime] = None
    dd_dropoff_confirmed_by: Optional[int] = None

    # Last known position (drivers share it for rider ETAs)
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    share_location: bool = False
    last_location_update: Optional[datetime] = None

    version: int = 1

    @property
    def has_arrived_safely(self) -> bool:
        """Terminal for the event: own arrival or a DD's confirmed dropoff."""
        return self.arrived_safely or self.dd_dropoff_confirmed_at is not None

    @property
    def shared_location(self) -> Optional[Location]:
        if (
            not self.share_location
            or self.current_lat is None
            or self.current_lng is None
        ):
            return None
        return Location(self.current_lat, self.current_lng)


@dataclass
class RidePassenger:
    ride_id: int
    passenger_id: int
    status: RidePassengerStatus = RidePassengerStatus.PENDING
    pickup_location: Optional[str] = None
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    id: Optional[int] = None

    @property
    def pickup_point(self) -> Optional[Location]:
        if self.pickup_lat is None or self.pickup_lng is None:
            return None
        return Location(self.pickup_lat, self.pickup_lng)


@dataclass
class Ride:
    id: Optional[int] = None
    event_id: int = 0
    driver_id: int = 0
    driver_name: Optional[str] = None
    pickup_location: Optional[str] = None
    destination: Optional[str] = None
    available_seats: int = 4
    departure_time: Optional[datetime] = None
    status: RideStatus = RideStatus.ACTIVE
    passengers: list[RidePassenger] = field(default_factory=list)

    @property
    def accepted_passenger_ids(self) -> list[int]:
        return [
            p.passenger_id
            for p in self.passengers
            if p.status == RidePassengerStatus.ACCEPTED
        ]

    @property
    def seats_left(self) -> int:
        return self.available_seats - len(self.accepted_passenger_ids)

    def can_accept(self) -> bool:
        return self.seats_left > 0
