"""
Grade submission gateway.

Forwards one grade per answered card to the API. A failed submission is
logged, counted and written to the pending ledger; it is never raised back to
the session controller.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from .errors import GradeSubmissionError
from .models import Outcome
from .pending_store import PendingGradeStore

if TYPE_CHECKING:
    from kanjiflow.integrations.kanji_api_client import KanjiApiClient


class GradeGateway:
    """Best-effort delivery of outcomes to the remote scheduler."""

    def __init__(
        self,
        client: KanjiApiClient,
        pending_store: PendingGradeStore | None = None,
    ):
        self.client = client
        self.pending_store = pending_store
        self.submitted = 0
        self.failed = 0

    async def submit(self, outcome: Outcome, deck_id: int | str | None = None) -> bool:
        """
        Send one outcome.

        Returns:
            True if the API acknowledged the grade, False otherwise
        """
        try:
            await self.client.submit_grade(outcome.card_id, outcome.grade)
        except GradeSubmissionError as e:
            self.failed += 1
            logger.warning("Grade not saved, continuing session: {}", e)
            if self.pending_store is not None:
                # File I/O stays off the event loop
                await asyncio.to_thread(
                    self.pending_store.record, outcome, error=str(e), deck_id=deck_id
                )
            return False

        self.submitted += 1
        logger.debug("Saved grade {} for card {}", outcome.grade.value, outcome.card_id)
        return True
