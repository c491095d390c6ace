"""
Study session controller.

Drives one study session over a card queue:

    start() -> current_card -> submit_grade() -> ... -> Complete -> summary()
                                                          |
                                                      restart()

State transitions are synchronous and happen on the event loop thread. The
only suspension points are the queue fetch (which gates Loading) and the grade
submissions, which run as detached tasks and never feed back into the state
machine.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

from .card_queue import CardQueue
from .errors import CardIdentityError, SessionLoadError
from .grade_gateway import GradeGateway
from .models import Grade, Outcome, StudyCard
from .session_state import Active, Complete, Errored, Loading, SessionState
from .session_summary import SessionSummary, summarize, valid_total

QueueFetcher = Callable[[int | str], Awaitable[CardQueue]]


def resolve_card_id(card: StudyCard, index: int) -> int:
    """
    Canonical identity of a card.

    Raises:
        CardIdentityError: If the id is missing or not a positive integer
    """
    card_id = card.id
    if isinstance(card_id, bool) or not isinstance(card_id, int) or card_id <= 0:
        raise CardIdentityError(card_id, index)
    return card_id


class StudySessionController:
    """
    State machine for one deck's study session.

    Not safe for concurrent submit_grade() calls; the caller is expected to
    accept one grading action at a time.
    """

    def __init__(
        self,
        deck_id: int | str,
        fetch_queue: QueueFetcher,
        gateway: GradeGateway | None = None,
    ):
        """
        Args:
            deck_id: Deck to study
            fetch_queue: Coroutine function returning the CardQueue for a deck;
                expected to raise SessionLoadError on failure
            gateway: Destination for grades (None keeps grades local)
        """
        self.deck_id = deck_id
        self._fetch_queue = fetch_queue
        self._gateway = gateway

        self._state: SessionState = Loading()
        self._queue: CardQueue | None = None
        self._outcomes: list[Outcome] = []
        self._fetch_task: asyncio.Task | None = None
        self._submissions: set[asyncio.Task] = set()
        self._failed_submissions = 0
        # Incremented whenever a new queue replaces the old one
        self.generation = 0

    # ========================================
    # Read-only views
    # ========================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def queue(self) -> CardQueue | None:
        return self._queue

    @property
    def outcomes(self) -> tuple[Outcome, ...]:
        return tuple(self._outcomes)

    @property
    def cursor(self) -> int:
        """Index of the next ungraded card (len(queue) once complete)."""
        if isinstance(self._state, Active):
            return self._state.cursor
        return len(self._outcomes)

    @property
    def current_card(self) -> StudyCard | None:
        """The card awaiting a grade, or None outside the Active state."""
        if not isinstance(self._state, Active) or self._queue is None:
            return None
        return self._queue.get(self._state.cursor)

    @property
    def deck_title(self) -> str:
        return self._queue.deck_title if self._queue is not None else ""

    @property
    def declared_total(self) -> int:
        return self._queue.declared_total if self._queue is not None else 0

    @property
    def progress(self) -> tuple[int, int]:
        """(1-based position of the current card, total shown to the learner)."""
        total = valid_total(self.declared_total, len(self._queue) if self._queue else 0)
        if isinstance(self._state, Active):
            return self._state.cursor + 1, total
        return len(self._outcomes), total

    @property
    def failed_submissions(self) -> int:
        return self._failed_submissions

    @property
    def pending_submissions(self) -> int:
        return len(self._submissions)

    # ========================================
    # Lifecycle
    # ========================================

    async def start(self) -> SessionState:
        """Load the card queue. Joins an in-flight load instead of starting another."""
        if isinstance(self._state, Loading):
            await self._load()
        return self._state

    async def restart(self) -> bool:
        """
        Discard outcomes and fetch a fresh queue.

        Allowed from Complete and Errored. From Loading this joins the
        in-flight fetch. Returns False when refused (Active session).
        """
        if isinstance(self._state, Loading):
            await self._load()
            return True
        if isinstance(self._state, Active):
            logger.warning(
                "Restart ignored: deck {} session is active at card {}",
                self.deck_id,
                self._state.cursor,
            )
            return False

        # Both cleared before the fetch so no stale queue sits next to an empty outcome list
        self._outcomes = []
        self._queue = None
        self._state = Loading()
        logger.info("Restarting study session for deck {}", self.deck_id)
        await self._load()
        return True

    async def _load(self) -> None:
        if self._fetch_task is None or self._fetch_task.done():
            self._fetch_task = asyncio.create_task(self._fetch())
        await self._fetch_task

    async def _fetch(self) -> None:
        try:
            queue = await self._fetch_queue(self.deck_id)
        except SessionLoadError as e:
            logger.error("Could not load study session for deck {}: {}", self.deck_id, e)
            self._state = Errored(str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error loading deck {}", self.deck_id)
            self._state = Errored(f"{type(e).__name__}: {e}")
            return

        self._queue = queue
        self._outcomes = []
        self.generation += 1
        if len(queue) == 0:
            logger.info("Deck {} has nothing due", self.deck_id)
            self._state = Complete(nothing_due=True)
        else:
            self._state = Active(0)

    # ========================================
    # Grading
    # ========================================

    def submit_grade(self, grade: Grade | str) -> Outcome | None:
        """
        Record a grade for the current card and advance.

        Outside the Active state this is a no-op and returns None. The grade is
        sent to the gateway in the background; the outcome is kept and the
        cursor advanced whatever the API answers.

        Raises:
            CardIdentityError: The current card has no valid id (nothing changes)
            ValueError: ``grade`` is not a known grade name
            RuntimeError: Called without a running event loop while a gateway is set
        """
        state = self._state
        if not isinstance(state, Active) or self._queue is None or state.cursor >= len(self._queue):
            logger.debug("Ignoring grade {!r}: session is {}", grade, state.name)
            return None

        grade = Grade.parse(grade)
        index = state.cursor
        card = self._queue[index]
        try:
            card_id = resolve_card_id(card, index)
        except CardIdentityError:
            logger.error(
                "Refusing to grade card {!r} at position {} of deck {}: no valid id",
                card.character,
                index,
                self.deck_id,
            )
            raise

        # Fail before mutating anything if submissions cannot be scheduled
        loop = asyncio.get_running_loop() if self._gateway is not None else None

        outcome = Outcome(card_id=card_id, grade=grade)
        self._outcomes.append(outcome)
        next_cursor = index + 1
        if next_cursor < len(self._queue):
            self._state = Active(next_cursor)
        else:
            self._state = Complete(nothing_due=False)
            logger.info(
                "Deck {} session complete: {} card(s) graded", self.deck_id, len(self._outcomes)
            )

        if loop is not None:
            self._dispatch(loop, outcome)
        return outcome

    def _dispatch(self, loop: asyncio.AbstractEventLoop, outcome: Outcome) -> None:
        task = loop.create_task(self._submit(outcome))
        self._submissions.add(task)
        task.add_done_callback(self._submission_done)

    async def _submit(self, outcome: Outcome) -> None:
        ok = await self._gateway.submit(outcome, deck_id=self.deck_id)
        if not ok:
            self._failed_submissions += 1

    def _submission_done(self, task: asyncio.Task) -> None:
        self._submissions.discard(task)
        if task.cancelled():
            self._failed_submissions += 1
            logger.warning("Grade submission cancelled before completion")
            return
        error = task.exception()
        if error is not None:
            self._failed_submissions += 1
            logger.opt(exception=error).error("Grade submission crashed")

    async def drain(self) -> None:
        """Wait for outstanding grade submissions. Failures are already recorded."""
        while self._submissions:
            await asyncio.gather(*list(self._submissions), return_exceptions=True)

    # ========================================
    # Summary
    # ========================================

    def summary(self) -> SessionSummary:
        """Statistics for the outcomes recorded so far."""
        return summarize(self._outcomes, self.declared_total)
