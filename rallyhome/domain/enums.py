"""Domain enumerations and state-transition rules."""

import enum


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    LIVE = "live"
    AFTER_RALLY = "after_rally"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses.
# Forward only; CANCELLED is reachable from every non-terminal status.
EVENT_TRANSITIONS: dict[EventStatus, set[EventStatus]] = {
    EventStatus.DRAFT: {EventStatus.LIVE, EventStatus.CANCELLED},
    EventStatus.LIVE: {
        EventStatus.AFTER_RALLY,
        EventStatus.COMPLETED,
        EventStatus.CANCELLED,
    },
    EventStatus.AFTER_RALLY: {EventStatus.COMPLETED, EventStatus.CANCELLED},
    EventStatus.COMPLETED: set(),
    EventStatus.CANCELLED: set(),
}


class RidePlan(str, enum.Enum):
    DD = "dd"
    RIDER = "rider"
    SELF = "self"
    UNSET = "unset"


class SafetyState(str, enum.Enum):
    ARRIVED_SAFELY = "arrived_safely"
    NOT_PARTICIPATING = "not_participating"
    PARTICIPATING = "participating"
    DD_PENDING = "dd_pending"
    UNDECIDED = "undecided"


# States that keep an event from being completed
OPEN_SAFETY_STATES = frozenset(
    {SafetyState.PARTICIPATING, SafetyState.UNDECIDED, SafetyState.DD_PENDING}
)


class NotParticipatingAnswer(str, enum.Enum):
    """Stored as NULL / TRUE; an explicit ``False`` is never written."""

    UNANSWERED = "unanswered"
    CONFIRMED = "confirmed"


class RideStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RidePassengerStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class RideStatusType(str, enum.Enum):
    """Roster label kinds shown next to an attendee's name."""

    DD = "dd"
    RIDING_WITH = "riding_with"
    NEEDS_DD = "needs_dd"
    SELF_RIDE = "self_ride"


CAR_GROUP_NOTIFICATION_TYPE = "car_group_rally_home"
