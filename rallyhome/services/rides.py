"""
Ride offers and seat requests.

A rider holds at most one accepted seat per event.  The service checks
before accepting and the partial unique index on ``ride_passengers``
backs the check up against concurrent accepts.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rallyhome.config import settings
from rallyhome.domain.distance import DriverEta, estimate_driver_eta
from rallyhome.domain.entities import Attendee, Ride
from rallyhome.domain.enums import RidePassengerStatus, RideStatus
from rallyhome.domain.errors import ConflictError, ValidationError
from rallyhome.domain.ride_plan import RideStatusLabel, resolve_ride_status
from rallyhome.infrastructure.models import RideModel, RidePassengerModel
from rallyhome.infrastructure.repositories import AttendeeRepository, RideRepository

logger = logging.getLogger(__name__)


class RideService:
    def __init__(self, session: AsyncSession):
        self.rides = RideRepository(session)
        self.attendees = AttendeeRepository(session)

    async def offer_ride(
        self,
        event_id: int,
        driver_id: int,
        *,
        available_seats: int = 4,
        pickup_location: Optional[str] = None,
        destination: Optional[str] = None,
        departure_time: Optional[datetime] = None,
    ) -> Ride:
        if available_seats < 1:
            raise ValidationError("A ride needs at least one seat")
        driver = await self.attendees.get(event_id, driver_id)

        row = await self.rides.create(
            RideModel(
                event_id=event_id,
                driver_id=driver_id,
                available_seats=available_seats,
                pickup_location=pickup_location,
                destination=destination,
                departure_time=departure_time,
                status=RideStatus.ACTIVE,
            )
        )
        if not driver.is_dd:
            await self.attendees.update(
                event_id,
                driver_id,
                {"is_dd": True, "needs_ride": False, "ride_plan_selected": True},
            )
        logger.info("Event %s: driver %s offered ride %s", event_id, driver_id, row.id)
        return await self.rides.get_ride(row.id)

    async def request_seat(
        self,
        ride_id: int,
        passenger_id: int,
        *,
        pickup_location: Optional[str] = None,
        pickup_lat: Optional[float] = None,
        pickup_lng: Optional[float] = None,
    ) -> Ride:
        ride = await self.rides.get_ride(ride_id)
        if ride.status != RideStatus.ACTIVE:
            raise ValidationError(f"Ride {ride_id} is not active")
        if ride.driver_id == passenger_id:
            raise ValidationError("A driver cannot request a seat in their own ride")
        await self.attendees.get(ride.event_id, passenger_id)
        if await self.rides.get_passenger(ride_id, passenger_id) is not None:
            raise ConflictError(
                f"Profile {passenger_id} already requested ride {ride_id}"
            )

        await self.rides.add_passenger(
            RidePassengerModel(
                ride_id=ride_id,
                event_id=ride.event_id,
                passenger_id=passenger_id,
                status=RidePassengerStatus.PENDING,
                pickup_location=pickup_location,
                pickup_lat=pickup_lat,
                pickup_lng=pickup_lng,
            )
        )
        return await self.rides.get_ride(ride_id)

    async def respond_to_request(
        self, ride_id: int, driver_id: int, passenger_id: int, accept: bool
    ) -> Ride:
        ride = await self.rides.get_ride(ride_id)
        if ride.driver_id != driver_id:
            raise ValidationError("Only the ride's driver can respond to requests")
        passenger = await self.rides.get_passenger(ride_id, passenger_id)
        if passenger is None or passenger.status != RidePassengerStatus.PENDING:
            raise ValidationError(
                f"No pending request from {passenger_id} on ride {ride_id}"
            )

        if not accept:
            passenger.status = RidePassengerStatus.DECLINED
        else:
            if not ride.can_accept():
                raise ConflictError(f"Ride {ride_id} is full")
            if await self.rides.count_accepted_for_passenger(
                ride.event_id, passenger_id
            ):
                raise ConflictError(
                    f"Profile {passenger_id} already rides with another driver "
                    f"for event {ride.event_id}"
                )
            await self.rides.accept_passenger(passenger)

        return await self.rides.get_ride(ride_id)

    async def driver_eta(
        self, event_id: int, passenger_id: int
    ) -> Optional[DriverEta]:
        """Coarse straight-line ETA of the passenger's driver; see ``distance``."""
        ride = await self.rides.accepted_ride_for_passenger(event_id, passenger_id)
        if ride is None:
            return None
        seat = next(p for p in ride.passengers if p.passenger_id == passenger_id)
        driver = await self.attendees.find(event_id, ride.driver_id)
        return estimate_driver_eta(
            driver.shared_location if driver else None,
            seat.pickup_point,
            speed_kmh=settings.average_speed_kmh,
        )

    async def roster(self, event_id: int) -> list[tuple[Attendee, RideStatusLabel]]:
        """Every attendee with the ride label others see next to their name."""
        rides = await self.rides.list_for_event(event_id)
        return [
            (a, resolve_ride_status(a, rides))
            for a in await self.attendees.list_for_event(event_id)
        ]
