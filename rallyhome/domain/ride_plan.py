"""
Ride plan resolution.

Two pure views over an attendee's ride data:

* :func:`resolve_ride_plan` -- the attendee's *own* plan
  (``dd`` / ``rider`` / ``self`` / ``unset``), first match wins.
* :func:`resolve_ride_status` -- the roster label other attendees see,
  which also looks at who is actually riding with whom.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .entities import Attendee, Ride
from .enums import NotParticipatingAnswer, RidePassengerStatus, RidePlan, RideStatusType


@dataclass(frozen=True)
class UserRideState:
    plan: RidePlan
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None


def _plan_touched(attendee: Attendee) -> bool:
    return (
        attendee.ride_plan_selected
        or attendee.ride_pickup_location is not None
        or attendee.ride_dropoff_location is not None
    )


def resolve_ride_plan(attendee: Optional[Attendee]) -> RidePlan:
    if attendee is None:
        return RidePlan.UNSET
    if attendee.is_dd:
        return RidePlan.DD
    if attendee.needs_ride:
        return RidePlan.RIDER
    if _plan_touched(attendee):
        return RidePlan.SELF
    return RidePlan.UNSET


def get_user_ride_state(attendee: Optional[Attendee]) -> UserRideState:
    if attendee is None:
        return UserRideState(plan=RidePlan.UNSET)
    return UserRideState(
        plan=resolve_ride_plan(attendee),
        pickup_location=attendee.ride_pickup_location,
        dropoff_location=attendee.ride_dropoff_location,
    )


# ── Roster labels ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class RideStatusLabel:
    type: RideStatusType
    label: str
    dd_name: Optional[str] = None
    seats_left: Optional[int] = None


def _passenger_status(ride: Ride, profile_id: int) -> Optional[RidePassengerStatus]:
    for p in ride.passengers:
        if p.passenger_id == profile_id:
            return p.status
    return None


def resolve_ride_status(
    attendee: Attendee, rides: Iterable[Ride]
) -> RideStatusLabel:
    rides = list(rides)

    if attendee.is_dd:
        driver_ride = next(
            (r for r in rides if r.driver_id == attendee.profile_id), None
        )
        if driver_ride is not None and driver_ride.seats_left > 0:
            left = driver_ride.seats_left
            return RideStatusLabel(
                type=RideStatusType.DD,
                label=f"DD • {left} seat{'' if left == 1 else 's'} left",
                seats_left=left,
            )
        return RideStatusLabel(type=RideStatusType.DD, label="DD")

    for ride in rides:
        if _passenger_status(ride, attendee.profile_id) == RidePassengerStatus.ACCEPTED:
            first = (ride.driver_name or "").split(" ")[0] or "DD"
            return RideStatusLabel(
                type=RideStatusType.RIDING_WITH,
                label=f"Riding with {first}",
                dd_name=first,
            )

    if attendee.needs_ride or any(
        _passenger_status(r, attendee.profile_id) == RidePassengerStatus.PENDING
        for r in rides
    ):
        return RideStatusLabel(type=RideStatusType.NEEDS_DD, label="Needs a DD")

    if attendee.not_participating == NotParticipatingAnswer.CONFIRMED:
        return RideStatusLabel(type=RideStatusType.SELF_RIDE, label="Self Ride")

    return RideStatusLabel(type=RideStatusType.NEEDS_DD, label="Needs a DD")
