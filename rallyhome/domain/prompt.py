"""
R@lly Home prompt evaluation.

Decides whether the safety-choice dialog should be shown to an attendee
right now.  ``can_prompt`` is the only field callers should branch on;
the others exist to pick the dialog copy.

Re-confirmation rules
---------------------
* Re-prompt a "not participating" attendee only when they are actively in
  After R@lly (``after_rally_opted_in``), or when a bar hop reaches a stop
  transition.  The transition point is navigation state supplied by the
  caller and is never persisted.
* "Not participating" is therefore never terminal; only arriving safely
  (own arrival or DD dropoff) is.
"""

from __future__ import annotations

from dataclasses import dataclass

from .entities import Attendee, Event
from .enums import NotParticipatingAnswer


@dataclass(frozen=True)
class PromptStatus:
    is_undecided: bool
    needs_reconfirmation: bool
    can_prompt: bool
    is_participating: bool
    has_arrived_safely: bool
    is_dd: bool


def evaluate_rally_home_prompt(
    attendee: Attendee, event: Event, is_transition_point: bool = False
) -> PromptStatus:
    has_arrived_safely = attendee.has_arrived_safely
    heading_home = attendee.going_home_at is not None
    declined = attendee.not_participating == NotParticipatingAnswer.CONFIRMED

    is_participating = heading_home and not has_arrived_safely
    is_undecided = not heading_home and not declined

    needs_after_rally_reconfirm = (
        declined and not heading_home and attendee.after_rally_opted_in is True
    )
    needs_bar_hop_reconfirm = (
        declined and not heading_home and event.is_bar_hop and is_transition_point
    )
    needs_reconfirmation = needs_after_rally_reconfirm or needs_bar_hop_reconfirm

    can_prompt = (
        not has_arrived_safely
        and not is_participating
        and (is_undecided or needs_reconfirmation)
    )

    return PromptStatus(
        is_undecided=is_undecided,
        needs_reconfirmation=needs_reconfirmation,
        can_prompt=can_prompt,
        is_participating=is_participating,
        has_arrived_safely=has_arrived_safely,
        is_dd=attendee.is_dd,
    )
