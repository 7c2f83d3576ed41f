"""
Error taxonomy.

Every failure a protocol-level operation can produce maps to exactly one
class below, so callers can choose retry vs. surface vs. ignore.
Resolvers never raise.
"""

from __future__ import annotations

from typing import Mapping, Sequence


class RallyHomeError(Exception):
    """Base class for all domain errors."""


class ValidationError(RallyHomeError):
    """Rejected input; no state was mutated."""


class NotParticipatingError(ValidationError):
    """Dropoff confirmation for a passenger who never opted into R@lly Home."""

    def __init__(self, event_id: int, passenger_id: int):
        super().__init__(
            f"Passenger {passenger_id} is not participating in R@lly Home "
            f"for event {event_id}"
        )
        self.event_id = event_id
        self.passenger_id = passenger_id


class InvalidStateTransition(RallyHomeError):
    """Raised when an event status change violates the state machine."""


class SafetyIncompleteError(RallyHomeError):
    """``complete_rally`` refused: someone's safety status is still open."""

    def __init__(
        self,
        event_id: int,
        counts: Mapping[str, int],
        outstanding: Mapping[str, Sequence[int]],
    ):
        self.event_id = event_id
        self.counts = dict(counts)
        self.outstanding = {k: list(v) for k, v in outstanding.items()}
        self.pending = sum(len(v) for v in self.outstanding.values())
        super().__init__(
            f"Event {event_id} has {self.pending} attendee(s) with open safety status"
        )


class ConflictError(RallyHomeError):
    """Concurrent write or uniqueness clash; re-read and retry."""


class NotFoundError(RallyHomeError):
    """A row required by the operation does not exist."""


class NotifierError(RallyHomeError):
    """Push transport failure. Logged, never allowed to fail the caller."""


class ForbiddenError(RallyHomeError):
    """The caller may not perform this operation on the event."""
