"""
Client-side safety view.

Holds the latest snapshot of every attendee of one event and re-runs the
pure resolvers whenever the change feed delivers a row.  Feed delivery is
unordered, so a snapshot older than the one already held (lower
``version``) is ignored.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from rallyhome.domain.entities import Attendee, Event
from rallyhome.domain.enums import SafetyState
from rallyhome.domain.prompt import PromptStatus, evaluate_rally_home_prompt
from rallyhome.domain.safety import SafetyTally, resolve_safety_state, tally_safety_states

Listener = Callable[[Attendee, SafetyState], None]


class EventSafetyView:
    def __init__(self, event: Event, attendees: Iterable[Attendee] = ()):
        self.event = event
        self._attendees: dict[int, Attendee] = {a.profile_id: a for a in attendees}
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def apply_change(self, old: Optional[Attendee], new: Attendee) -> bool:
        """Feed callback.  Returns False if the change was stale or foreign."""
        if new.event_id != self.event.id:
            return False
        held = self._attendees.get(new.profile_id)
        if held is not None and held.version > new.version:
            return False
        self._attendees[new.profile_id] = new
        state = resolve_safety_state(new)
        for listener in self._listeners:
            listener(new, state)
        return True

    def get(self, profile_id: int) -> Optional[Attendee]:
        return self._attendees.get(profile_id)

    def states(self) -> dict[int, SafetyState]:
        return {pid: resolve_safety_state(a) for pid, a in self._attendees.items()}

    def tally(self) -> SafetyTally:
        return tally_safety_states(self._attendees.values())

    def prompt_for(
        self, profile_id: int, is_transition_point: bool = False
    ) -> Optional[PromptStatus]:
        attendee = self._attendees.get(profile_id)
        if attendee is None:
            return None
        return evaluate_rally_home_prompt(attendee, self.event, is_transition_point)
