"""Initial schema: profiles, events, attendees, rides, passengers, notifications.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


EVENT_STATUS = sa.Enum(
    "draft", "live", "after_rally", "completed", "cancelled", name="eventstatus"
)
RIDE_STATUS = sa.Enum("active", "completed", "cancelled", name="ridestatus")
PASSENGER_STATUS = sa.Enum(
    "pending", "accepted", "declined", name="ridepassengerstatus"
)


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("display_name", sa.String(120), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── events ────────────────────────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("host_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("is_bar_hop", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("status", EVENT_STATUS, nullable=False, server_default="draft"),
        sa.Column("after_rally_location_name", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_events_status", "events", ["status"])

    # ── event_attendees ───────────────────────────────────────────────
    op.create_table(
        "event_attendees",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.Integer,
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("profile_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("is_dd", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("needs_ride", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "ride_plan_selected", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("ride_pickup_location", sa.String(255), nullable=True),
        sa.Column("ride_dropoff_location", sa.String(255), nullable=True),
        sa.Column("going_home_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("destination_name", sa.String(255), nullable=True),
        sa.Column("arrived_safely", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("not_participating_confirmed", sa.Boolean, nullable=True),
        sa.Column("after_rally_opted_in", sa.Boolean, nullable=True),
        sa.Column("after_rally_location_name", sa.String(200), nullable=True),
        sa.Column("dd_dropoff_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "dd_dropoff_confirmed_by",
            sa.Integer,
            sa.ForeignKey("profiles.id"),
            nullable=True,
        ),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("current_lng", sa.Float, nullable=True),
        sa.Column("share_location", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("last_location_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("event_id", "profile_id", name="uq_event_attendee"),
    )
    op.create_index("idx_attendees_event", "event_attendees", ["event_id"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.Integer,
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("available_seats", sa.Integer, nullable=False, server_default="4"),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", RIDE_STATUS, nullable=False, server_default="active"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_rides_event", "rides", ["event_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])

    # ── ride_passengers ───────────────────────────────────────────────
    op.create_table(
        "ride_passengers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id",
            sa.Integer,
            sa.ForeignKey("rides.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.id"), nullable=False),
        sa.Column("passenger_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("status", PASSENGER_STATUS, nullable=False, server_default="pending"),
        sa.Column("pickup_location", sa.String(255), nullable=True),
        sa.Column("pickup_lat", sa.Float, nullable=True),
        sa.Column("pickup_lng", sa.Float, nullable=True),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("ride_id", "passenger_id", name="uq_ride_passenger"),
    )
    # One active driver per rider per event
    op.create_index(
        "uq_ride_passengers_one_accepted",
        "ride_passengers",
        ["event_id", "passenger_id"],
        unique=True,
        postgresql_where=sa.text("status = 'accepted'"),
    )
    op.create_index(
        "idx_ride_passengers_passenger", "ride_passengers", ["passenger_id"]
    )

    # ── notifications ─────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("profile_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.String(500), nullable=False),
        sa.Column("data", sa.JSON, nullable=True),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.id"), nullable=True),
        sa.Column(
            "actor_profile_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=True
        ),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_notifications_dedup",
        "notifications",
        ["type", "event_id", "actor_profile_id", "created_at"],
    )
    op.create_index("idx_notifications_profile", "notifications", ["profile_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("ride_passengers")
    op.drop_table("rides")
    op.drop_table("event_attendees")
    op.drop_table("events")
    op.drop_table("profiles")
    PASSENGER_STATUS.drop(op.get_bind(), checkfirst=True)
    RIDE_STATUS.drop(op.get_bind(), checkfirst=True)
    EVENT_STATUS.drop(op.get_bind(), checkfirst=True)
