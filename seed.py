"""
Seed script -- populates the database with a sample rally for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample profiles
  - 1 live bar-hop event hosted by the first profile
  - 1 DD with an active ride carrying two accepted riders
  - 1 attendee getting home on their own, 1 who has not decided yet
"""

import asyncio
from datetime import datetime, timezone

from sqlalchemy import text

from rallyhome.infrastructure.database import engine, session_scope
from rallyhome.infrastructure.models import (
    AttendeeModel,
    EventModel,
    ProfileModel,
    RideModel,
    RidePassengerModel,
)
from rallyhome.domain.enums import EventStatus, RidePassengerStatus, RideStatus

# Lower Manhattan (approx)
VENUE_LAT, VENUE_LNG = 40.7128, -74.0060


PROFILES = [
    "Maya Chen",
    "Jordan Ellis",
    "Sam Rivera",
    "Priya Nair",
    "Alex Kim",
    "Taylor Brooks",
]


async def seed():
    async with session_scope() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM profiles"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Profiles ──────────────────────────────────────────────────
        profiles = []
        for name in PROFILES:
            m = ProfileModel(display_name=name)
            session.add(m)
            profiles.append(m)
        await session.flush()
        print(f"  Created {len(profiles)} profiles")
        host, driver, rider_a, rider_b, self_ride, undecided = profiles

        # ── Event ─────────────────────────────────────────────────────
        event = EventModel(
            title="Friday Bar Hop",
            host_id=host.id,
            is_bar_hop=True,
            status=EventStatus.LIVE,
        )
        session.add(event)
        await session.flush()
        print(f"  Created event {event.id} ({event.title})")

        # ── Attendees ─────────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        attendees = [
            AttendeeModel(event_id=event.id, profile_id=host.id),
            AttendeeModel(
                event_id=event.id,
                profile_id=driver.id,
                is_dd=True,
                ride_plan_selected=True,
                current_lat=VENUE_LAT,
                current_lng=VENUE_LNG,
                share_location=True,
                last_location_update=now,
            ),
            AttendeeModel(
                event_id=event.id,
                profile_id=rider_a.id,
                needs_ride=True,
                ride_plan_selected=True,
                going_home_at=now,
                destination_name="Williamsburg",
            ),
            AttendeeModel(
                event_id=event.id,
                profile_id=rider_b.id,
                needs_ride=True,
                ride_plan_selected=True,
            ),
            AttendeeModel(
                event_id=event.id,
                profile_id=self_ride.id,
                ride_plan_selected=True,
                ride_dropoff_location="Home",
            ),
            AttendeeModel(event_id=event.id, profile_id=undecided.id),
        ]
        session.add_all(attendees)
        await session.flush()
        print(f"  Created {len(attendees)} attendees")

        # ── Ride ──────────────────────────────────────────────────────
        ride = RideModel(
            event_id=event.id,
            driver_id=driver.id,
            pickup_location="Front entrance",
            destination="Brooklyn",
            available_seats=3,
            status=RideStatus.ACTIVE,
        )
        session.add(ride)
        await session.flush()

        for rider, (lat, lng) in (
            (rider_a, (40.7306, -73.9352)),
            (rider_b, (40.7200, -73.9500)),
        ):
            session.add(
                RidePassengerModel(
                    ride_id=ride.id,
                    event_id=event.id,
                    passenger_id=rider.id,
                    status=RidePassengerStatus.ACCEPTED,
                    pickup_lat=lat,
                    pickup_lng=lng,
                )
            )
        await session.flush()
        print("  Created 1 ride with 2 accepted riders")

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
