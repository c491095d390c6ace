"""
Card queue: the ordered cards selected for one study session.

The queue is fetched once per session and never mutated afterwards. A restart
builds a new queue from a fresh fetch.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

from loguru import logger

from .models import StudyCard, StudySession

if TYPE_CHECKING:
    from kanjiflow.integrations.kanji_api_client import KanjiApiClient


class CardQueue(Sequence[StudyCard]):
    """Immutable sequence of study cards plus the deck metadata served with them."""

    def __init__(
        self,
        cards: Sequence[StudyCard],
        deck_id: int | str | None = None,
        deck_title: str = "",
        declared_total: int = 0,
    ):
        self._cards: tuple[StudyCard, ...] = tuple(cards)
        self.deck_id = deck_id
        self.deck_title = deck_title
        # As reported by the API; may disagree with len(self)
        self.declared_total = declared_total

    @classmethod
    def from_session(cls, session: StudySession, deck_id: int | str | None = None) -> CardQueue:
        return cls(
            session.study_cards,
            deck_id=session.deck_id if session.deck_id is not None else deck_id,
            deck_title=session.deck_title,
            declared_total=session.total_cards,
        )

    def __len__(self) -> int:
        return len(self._cards)

    def __getitem__(self, index):
        return self._cards[index]

    def __iter__(self) -> Iterator[StudyCard]:
        return iter(self._cards)

    def get(self, index: int) -> StudyCard | None:
        """Card at ``index``, or None when out of range (negative indexes included)."""
        if 0 <= index < len(self._cards):
            return self._cards[index]
        return None

    def __repr__(self) -> str:
        return (
            f"CardQueue(deck_id={self.deck_id!r}, cards={len(self)}, "
            f"declared_total={self.declared_total})"
        )


async def load_card_queue(client: KanjiApiClient, deck_id: int | str) -> CardQueue:
    """
    Fetch the study session for a deck and wrap it as a CardQueue.

    Raises:
        SessionLoadError: On transport failure or a malformed payload
    """
    session = await client.fetch_study_session(deck_id)
    queue = CardQueue.from_session(session, deck_id=deck_id)
    logger.info(
        "Loaded {} card(s) for deck {} ({} declared)",
        len(queue),
        queue.deck_id,
        queue.declared_total,
    )
    return queue


__all__ = ["CardQueue", "load_card_queue"]
