"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production metadata is created as-is:
the partial unique index on ``ride_passengers`` and the attendee
``version`` column both work on SQLite.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from rallyhome.domain.enums import EventStatus, RidePassengerStatus, RideStatus
from rallyhome.infrastructure.database import Base, build_engine, build_session_factory
from rallyhome.infrastructure.models import (
    AttendeeModel,
    EventModel,
    ProfileModel,
    RideModel,
    RidePassengerModel,
)


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    engine = build_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on a fresh schema."""
    async with session_factory() as session:
        yield session


# ── Clock ─────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 10, 17, 23, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── Row factories ─────────────────────────────────────────────────────


class Factory:
    """Inserts rows directly, bypassing the services under test."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def profile(self, name: Optional[str] = None) -> ProfileModel:
        row = ProfileModel(display_name=name)
        self.session.add(row)
        await self.session.flush()
        return row

    async def event(
        self,
        *,
        title: str = "Friday Bar Hop",
        status: EventStatus = EventStatus.LIVE,
        is_bar_hop: bool = False,
        host_id: Optional[int] = None,
        after_rally_location_name: Optional[str] = None,
    ) -> EventModel:
        row = EventModel(
            title=title,
            status=status,
            is_bar_hop=is_bar_hop,
            host_id=host_id,
            after_rally_location_name=after_rally_location_name,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def attendee(self, event_id: int, profile_id: int, **fields) -> AttendeeModel:
        row = AttendeeModel(event_id=event_id, profile_id=profile_id, **fields)
        self.session.add(row)
        await self.session.flush()
        return row

    async def member(self, event_id: int, name: Optional[str] = None, **fields) -> int:
        """A profile that has joined *event_id*; returns the profile id."""
        profile = await self.profile(name)
        await self.attendee(event_id, profile.id, **fields)
        return profile.id

    async def ride(
        self,
        event_id: int,
        driver_id: int,
        *,
        seats: int = 4,
        status: RideStatus = RideStatus.ACTIVE,
    ) -> RideModel:
        row = RideModel(
            event_id=event_id,
            driver_id=driver_id,
            available_seats=seats,
            status=status,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def seat(
        self,
        ride: RideModel,
        passenger_id: int,
        status: RidePassengerStatus = RidePassengerStatus.ACCEPTED,
        **fields,
    ) -> RidePassengerModel:
        row = RidePassengerModel(
            ride_id=ride.id,
            event_id=ride.event_id,
            passenger_id=passenger_id,
            status=status,
            **fields,
        )
        self.session.add(row)
        await self.session.flush()
        return row


@pytest_asyncio.fixture
async def factory(db_session) -> Factory:
    return Factory(db_session)
