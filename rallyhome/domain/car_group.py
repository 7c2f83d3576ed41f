"""
Car group resolution and the "ready to roll" notification payload.

A car group is derived, never stored: for an event and an acting
attendee it is every driver and every accepted passenger of the rides the
actor drives or is an accepted passenger of, minus the actor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from .entities import Ride
from .enums import CAR_GROUP_NOTIFICATION_TYPE

CAR_GROUP_TITLE = "R@lly Home: Ready to roll"
DEFAULT_ACTOR_NAME = "Someone"
DEFAULT_EVENT_TITLE = "the R@lly"


def rides_for_actor(actor_id: int, rides: Iterable[Ride]) -> list[Ride]:
    """Rides the actor drives or holds an accepted seat in."""
    return [
        r
        for r in rides
        if r.driver_id == actor_id or actor_id in r.accepted_passenger_ids
    ]


def resolve_car_group(actor_id: int, rides: Iterable[Ride]) -> set[int]:
    members: set[int] = set()
    for ride in rides_for_actor(actor_id, rides):
        members.add(ride.driver_id)
        members.update(ride.accepted_passenger_ids)
    members.discard(actor_id)
    return members


@dataclass(frozen=True)
class CarGroupMessage:
    type: str
    title: str
    body: str
    data: dict[str, Any]


def build_car_group_message(
    *,
    event_id: int,
    event_title: str | None,
    actor_id: int,
    actor_name: str | None,
) -> CarGroupMessage:
    name = actor_name or DEFAULT_ACTOR_NAME
    return CarGroupMessage(
        type=CAR_GROUP_NOTIFICATION_TYPE,
        title=CAR_GROUP_TITLE,
        body=f"{name} just hit R@lly Home — they're ready to leave.",
        data={
            "event_id": event_id,
            "event_title": event_title or DEFAULT_EVENT_TITLE,
            "actor_profile_id": actor_id,
            "deep_link": f"/events/{event_id}",
        },
    )
