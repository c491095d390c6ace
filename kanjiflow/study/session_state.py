"""
Session lifecycle states.

A session is always in exactly one of these states; the controller replaces
the state object on every transition rather than mutating it.

    Loading --fetch ok, cards--> Active(0) --grade--> Active(i+1) ... --> Complete
    Loading --fetch ok, empty--> Complete(nothing_due=True)
    Loading --fetch failed-----> Errored
    Complete / Errored --restart--> Loading
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Loading:
    """Waiting for the card queue fetch."""

    name = "loading"


@dataclass(frozen=True)
class Active:
    """Presenting ``queue[cursor]``; cursor is the next ungraded card."""

    cursor: int
    name = "active"


@dataclass(frozen=True)
class Complete:
    """Terminal state. ``nothing_due`` marks an empty queue rather than a graded-out one."""

    nothing_due: bool = False
    name = "complete"


@dataclass(frozen=True)
class Errored:
    """The queue could not be loaded; ``restart()`` retries."""

    reason: str
    name = "errored"


SessionState = Loading | Active | Complete | Errored
