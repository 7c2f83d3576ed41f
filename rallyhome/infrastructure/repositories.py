"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Anything a resolver consumes is returned
as a domain entity snapshot, never as a live ORM row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from .models import (
    AttendeeModel,
    EventModel,
    NotificationModel,
    ProfileModel,
    RideModel,
    RidePassengerModel,
)
from rallyhome.domain.entities import Attendee, Event, Ride, RidePassenger
from rallyhome.domain.enums import (
    NotParticipatingAnswer,
    RidePassengerStatus,
    RideStatus,
)
from rallyhome.domain.errors import ConflictError, NotFoundError

# session.info key holding (old, new) attendee snapshots until commit
ATTENDEE_CHANGES_KEY = "attendee_changes"

# Attendee fields a caller may write through ``AttendeeRepository.update``
ATTENDEE_UPDATABLE_FIELDS = frozenset(
    {
        "is_dd",
        "needs_ride",
        "ride_plan_selected",
        "ride_pickup_location",
        "ride_dropoff_location",
        "going_home_at",
        "destination_name",
        "arrived_safely",
        "arrived_at",
        "not_participating",
        "after_rally_opted_in",
        "after_rally_location_name",
        "dd_dropoff_confirmed_at",
        "dd_dropoff_confirmed_by",
        "current_lat",
        "current_lng",
        "share_location",
        "last_location_update",
    }
)


# ── Row <-> entity mapping ────────────────────────────────────────────


def attendee_from_row(row: AttendeeModel) -> Attendee:
    return Attendee(
        event_id=row.event_id,
        profile_id=row.profile_id,
        is_dd=bool(row.is_dd),
        needs_ride=bool(row.needs_ride),
        ride_plan_selected=bool(row.ride_plan_selected),
        ride_pickup_location=row.ride_pickup_location,
        ride_dropoff_location=row.ride_dropoff_location,
        going_home_at=row.going_home_at,
        destination_name=row.destination_name,
        arrived_safely=bool(row.arrived_safely),
        arrived_at=row.arrived_at,
        not_participating=(
            NotParticipatingAnswer.CONFIRMED
            if row.not_participating_confirmed
            else NotParticipatingAnswer.UNANSWERED
        ),
        after_rally_opted_in=row.after_rally_opted_in,
        after_rally_location_name=row.after_rally_location_name,
        dd_dropoff_confirmed_at=row.dd_dropoff_confirmed_at,
        dd_dropoff_confirmed_by=row.dd_dropoff_confirmed_by,
        current_lat=row.current_lat,
        current_lng=row.current_lng,
        share_location=bool(row.share_location),
        last_location_update=row.last_location_update,
        version=row.version,
    )


def event_from_row(row: EventModel) -> Event:
    return Event(
        id=row.id,
        title=row.title,
        host_id=row.host_id,
        is_bar_hop=bool(row.is_bar_hop),
        status=row.status,
        after_rally_location_name=row.after_rally_location_name,
    )


def passenger_from_row(row: RidePassengerModel) -> RidePassenger:
    return RidePassenger(
        id=row.id,
        ride_id=row.ride_id,
        passenger_id=row.passenger_id,
        status=row.status,
        pickup_location=row.pickup_location,
        pickup_lat=row.pickup_lat,
        pickup_lng=row.pickup_lng,
    )


def ride_from_row(
    row: RideModel,
    passengers: Iterable[RidePassengerModel] = (),
    driver_name: Optional[str] = None,
) -> Ride:
    return Ride(
        id=row.id,
        event_id=row.event_id,
        driver_id=row.driver_id,
        driver_name=driver_name,
        pickup_location=row.pickup_location,
        destination=row.destination,
        available_seats=row.available_seats,
        departure_time=row.departure_time,
        status=row.status,
        passengers=[passenger_from_row(p) for p in passengers],
    )


# ── Repositories ──────────────────────────────────────────────────────


class AttendeeRepository:
    """The attendee store: point reads, conditional updates, listing."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(
        self, event_id: int, profile_id: int
    ) -> Optional[AttendeeModel]:
        result = await self.session.execute(
            select(AttendeeModel)
            .where(
                AttendeeModel.event_id == event_id,
                AttendeeModel.profile_id == profile_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find(self, event_id: int, profile_id: int) -> Optional[Attendee]:
        row = await self._get_row(event_id, profile_id)
        return attendee_from_row(row) if row else None

    async def get(self, event_id: int, profile_id: int) -> Attendee:
        attendee = await self.find(event_id, profile_id)
        if attendee is None:
            raise NotFoundError(
                f"Profile {profile_id} is not an attendee of event {event_id}"
            )
        return attendee

    async def join(self, event_id: int, profile_id: int) -> Attendee:
        """Create the attendee row with every safety field unset."""
        existing = await self._get_row(event_id, profile_id)
        if existing is not None:
            return attendee_from_row(existing)

        row = AttendeeModel(
            event_id=event_id,
            profile_id=profile_id,
            is_dd=False,
            needs_ride=False,
            ride_plan_selected=False,
            arrived_safely=False,
            share_location=False,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Profile {profile_id} already joined event {event_id}"
            ) from exc
        attendee = attendee_from_row(row)
        self._record_change(None, attendee)
        return attendee

    async def update(
        self,
        event_id: int,
        profile_id: int,
        fields: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> Attendee:
        """Single-row conditional update.

        The UPDATE is guarded by the row's version; a concurrent writer
        (or a stale *expected_version*) surfaces as ``ConflictError``.
        """
        unknown = set(fields) - ATTENDEE_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Not updatable attendee fields: {sorted(unknown)}")

        row = await self._get_row(event_id, profile_id)
        if row is None:
            raise NotFoundError(
                f"Profile {profile_id} is not an attendee of event {event_id}"
            )
        if expected_version is not None and row.version != expected_version:
            raise ConflictError(
                f"Attendee {profile_id}@{event_id} is at version {row.version}, "
                f"expected {expected_version}"
            )

        old = attendee_from_row(row)
        for name, value in fields.items():
            if name == "not_participating":
                row.not_participating_confirmed = (
                    True if value == NotParticipatingAnswer.CONFIRMED else None
                )
            else:
                setattr(row, name, value)

        try:
            await self.session.flush()
        except StaleDataError as exc:
            raise ConflictError(
                f"Attendee {profile_id}@{event_id} was modified concurrently"
            ) from exc

        new = attendee_from_row(row)
        self._record_change(old, new)
        return new

    async def list_for_event(self, event_id: int) -> list[Attendee]:
        """Always re-reads rows; never served from the identity map."""
        result = await self.session.execute(
            select(AttendeeModel)
            .where(AttendeeModel.event_id == event_id)
            .order_by(AttendeeModel.id)
            .execution_options(populate_existing=True)
        )
        return [attendee_from_row(r) for r in result.scalars().all()]

    def _record_change(self, old: Optional[Attendee], new: Attendee) -> None:
        self.session.info.setdefault(ATTENDEE_CHANGES_KEY, []).append((old, new))


class EventRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, event: EventModel) -> EventModel:
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_by_id(self, event_id: int) -> Optional[EventModel]:
        return await self.session.get(EventModel, event_id)

    async def get(self, event_id: int) -> Event:
        row = await self.get_by_id(event_id)
        if row is None:
            raise NotFoundError(f"Event {event_id} not found")
        return event_from_row(row)

    async def get_for_update(self, event_id: int) -> EventModel:
        """SELECT ... FOR UPDATE so two organizers cannot race a transition."""
        result = await self.session.execute(
            select(EventModel)
            .where(EventModel.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Event {event_id} not found")
        return row


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_ride(self, ride_id: int) -> Ride:
        row = await self.get_by_id(ride_id)
        if row is None:
            raise NotFoundError(f"Ride {ride_id} not found")
        passengers = await self.get_passengers([row.id])
        return ride_from_row(row, passengers)

    async def get_passengers(
        self, ride_ids: list[int]
    ) -> list[RidePassengerModel]:
        if not ride_ids:
            return []
        result = await self.session.execute(
            select(RidePassengerModel)
            .where(RidePassengerModel.ride_id.in_(ride_ids))
            .order_by(RidePassengerModel.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_passenger(
        self, ride_id: int, passenger_id: int
    ) -> Optional[RidePassengerModel]:
        result = await self.session.execute(
            select(RidePassengerModel).where(
                RidePassengerModel.ride_id == ride_id,
                RidePassengerModel.passenger_id == passenger_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_passenger(self, passenger: RidePassengerModel) -> RidePassengerModel:
        self.session.add(passenger)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Profile {passenger.passenger_id} already requested ride "
                f"{passenger.ride_id}"
            ) from exc
        return passenger

    async def accept_passenger(self, passenger: RidePassengerModel) -> None:
        passenger.status = RidePassengerStatus.ACCEPTED
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"Profile {passenger.passenger_id} already has an accepted "
                f"seat for event {passenger.event_id}"
            ) from exc

    async def count_accepted_for_passenger(
        self, event_id: int, passenger_id: int
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RidePassengerModel)
            .where(
                RidePassengerModel.event_id == event_id,
                RidePassengerModel.passenger_id == passenger_id,
                RidePassengerModel.status == RidePassengerStatus.ACCEPTED,
            )
        )
        return result.scalar() or 0

    async def list_for_event(self, event_id: int) -> list[Ride]:
        """Active rides of the event with passengers and driver names."""
        result = await self.session.execute(
            select(RideModel, ProfileModel.display_name)
            .join(ProfileModel, ProfileModel.id == RideModel.driver_id, isouter=True)
            .where(
                RideModel.event_id == event_id,
                RideModel.status == RideStatus.ACTIVE,
            )
            .order_by(RideModel.id)
        )
        rows = result.all()
        passengers = await self.get_passengers([r.id for r, _ in rows])
        by_ride: dict[int, list[RidePassengerModel]] = {}
        for p in passengers:
            by_ride.setdefault(p.ride_id, []).append(p)
        return [
            ride_from_row(ride, by_ride.get(ride.id, []), driver_name=name)
            for ride, name in rows
        ]

    async def accepted_ride_for_passenger(
        self, event_id: int, passenger_id: int
    ) -> Optional[Ride]:
        for ride in await self.list_for_event(event_id):
            if passenger_id in ride.accepted_passenger_ids:
                return ride
        return None


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_many(
        self, notifications: list[NotificationModel]
    ) -> list[NotificationModel]:
        self.session.add_all(notifications)
        await self.session.flush()
        return notifications

    async def count_recent(
        self,
        *,
        type: str,
        event_id: int,
        actor_profile_id: int,
        since: datetime,
    ) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(
                NotificationModel.type == type,
                NotificationModel.event_id == event_id,
                NotificationModel.actor_profile_id == actor_profile_id,
                NotificationModel.created_at >= since,
            )
        )
        return result.scalar() or 0

    async def list_for_profile(self, profile_id: int) -> list[NotificationModel]:
        result = await self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.profile_id == profile_id)
            .order_by(NotificationModel.created_at.desc())
        )
        return list(result.scalars().all())


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, profile_id: int) -> Optional[ProfileModel]:
        return await self.session.get(ProfileModel, profile_id)
