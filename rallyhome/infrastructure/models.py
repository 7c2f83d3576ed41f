"""
SQLAlchemy ORM models.

Tables
------
* ``profiles``         -- people (display name only; auth lives elsewhere)
* ``events``           -- rallies and their lifecycle status
* ``event_attendees``  -- one row per (event, profile): ride plan + safety
* ``rides``            -- a DD's car for an event
* ``ride_passengers``  -- seat requests against a ride
* ``notifications``    -- in-app notification inbox

Indexes / constraints
---------------------
* Unique ``(event_id, profile_id)`` on ``event_attendees``; its ``version``
  column is the mapper's ``version_id_col`` so every UPDATE is conditional.
* Partial unique ``(event_id, passenger_id) WHERE status = 'accepted'`` on
  ``ride_passengers``: one active driver per rider per event.
* ``(type, event_id, actor_profile_id, created_at)`` on ``notifications``
  for the car-group dedup look-up.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)

from .database import Base
from rallyhome.domain.enums import EventStatus, RidePassengerStatus, RideStatus


def _values(enum_cls):
    return [member.value for member in enum_cls]


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    display_name = Column(String(120), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class EventModel(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    host_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    is_bar_hop = Column(Boolean, default=False, nullable=False)
    status = Column(
        Enum(EventStatus, name="eventstatus", values_callable=_values),
        default=EventStatus.DRAFT,
        nullable=False,
    )
    after_rally_location_name = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_events_status", "status"),)


class AttendeeModel(Base):
    __tablename__ = "event_attendees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)

    # Ride plan
    is_dd = Column(Boolean, default=False, nullable=False)
    needs_ride = Column(Boolean, default=False, nullable=False)
    ride_plan_selected = Column(Boolean, default=False, nullable=False)
    ride_pickup_location = Column(String(255), nullable=True)
    ride_dropoff_location = Column(String(255), nullable=True)

    # Safety
    going_home_at = Column(DateTime(timezone=True), nullable=True)
    destination_name = Column(String(255), nullable=True)
    arrived_safely = Column(Boolean, default=False, nullable=False)
    arrived_at = Column(DateTime(timezone=True), nullable=True)
    not_participating_confirmed = Column(Boolean, nullable=True)  # NULL | TRUE
    after_rally_opted_in = Column(Boolean, nullable=True)
    after_rally_location_name = Column(String(200), nullable=True)
    dd_dropoff_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    dd_dropoff_confirmed_by = Column(
        Integer, ForeignKey("profiles.id"), nullable=True
    )

    # Last known position
    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)
    share_location = Column(Boolean, default=False, nullable=False)
    last_location_update = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("event_id", "profile_id", name="uq_event_attendee"),
        Index("idx_attendees_event", "event_id"),
    )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    driver_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    pickup_location = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)
    available_seats = Column(Integer, default=4, nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(RideStatus, name="ridestatus", values_callable=_values),
        default=RideStatus.ACTIVE,
        nullable=False,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_rides_event", "event_id"),
        Index("idx_rides_driver", "driver_id"),
    )


class RidePassengerModel(Base):
    __tablename__ = "ride_passengers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(
        Integer, ForeignKey("rides.id", ondelete="CASCADE"), nullable=False
    )
    # Denormalised from rides.event_id for the one-seat-per-event index
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    passenger_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    status = Column(
        Enum(RidePassengerStatus, name="ridepassengerstatus", values_callable=_values),
        default=RidePassengerStatus.PENDING,
        nullable=False,
    )
    pickup_location = Column(String(255), nullable=True)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    requested_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ride_id", "passenger_id", name="uq_ride_passenger"),
        Index(
            "uq_ride_passengers_one_accepted",
            "event_id",
            "passenger_id",
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
        Index("idx_ride_passengers_passenger", "passenger_id"),
    )


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    type = Column(String(64), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(String(500), nullable=False)
    data = Column(JSON, nullable=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    actor_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "idx_notifications_dedup",
            "type",
            "event_id",
            "actor_profile_id",
            "created_at",
        ),
        Index("idx_notifications_profile", "profile_id"),
    )
