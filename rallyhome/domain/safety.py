"""
Safety state resolution and the event completeness tally.

Priority (first match wins)
---------------------------
1. arrived safely, by the attendee or by a DD's confirmed dropoff
2. DD who has not arrived -- a DD's own safety is tracked by their own
   arrival, not by the home-tracking flow they run for others
3. confirmed "not participating" and not heading home
4. heading home, not yet arrived
5. undecided
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from .entities import Attendee
from .enums import NotParticipatingAnswer, OPEN_SAFETY_STATES, SafetyState

SAFETY_STATE_LABELS: dict[SafetyState, str] = {
    SafetyState.ARRIVED_SAFELY: "Arrived Safely",
    SafetyState.NOT_PARTICIPATING: "Not Participating",
    SafetyState.PARTICIPATING: "En Route Home",
    SafetyState.DD_PENDING: "DD - Awaiting Arrival",
    SafetyState.UNDECIDED: "Undecided",
}


def resolve_safety_state(attendee: Attendee) -> SafetyState:
    if attendee.has_arrived_safely:
        return SafetyState.ARRIVED_SAFELY
    if attendee.is_dd:
        return SafetyState.DD_PENDING
    if (
        attendee.not_participating == NotParticipatingAnswer.CONFIRMED
        and attendee.going_home_at is None
    ):
        return SafetyState.NOT_PARTICIPATING
    if attendee.going_home_at is not None:
        return SafetyState.PARTICIPATING
    return SafetyState.UNDECIDED


def safety_state_label(state: SafetyState) -> str:
    return SAFETY_STATE_LABELS[state]


@dataclass(frozen=True)
class SafetyTally:
    counts: dict[SafetyState, int]
    outstanding: dict[SafetyState, list[int]] = field(default_factory=dict)

    @property
    def pending(self) -> int:
        return sum(self.counts.get(s, 0) for s in OPEN_SAFETY_STATES)

    @property
    def is_complete(self) -> bool:
        return self.pending == 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def tally_safety_states(attendees: Iterable[Attendee]) -> SafetyTally:
    """Count every attendee's state and list who is still open."""
    counts: Counter[SafetyState] = Counter()
    outstanding: dict[SafetyState, list[int]] = {s: [] for s in OPEN_SAFETY_STATES}

    for attendee in attendees:
        state = resolve_safety_state(attendee)
        counts[state] += 1
        if state in OPEN_SAFETY_STATES:
            outstanding[state].append(attendee.profile_id)

    return SafetyTally(
        counts={s: counts.get(s, 0) for s in SafetyState},
        outstanding=outstanding,
    )
