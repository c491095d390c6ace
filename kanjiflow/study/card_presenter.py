"""
Front/back visibility of the card being studied.

The presenter follows the controller: whenever a different card becomes
current (after a grade or a restart) it falls back to showing the front.
"""

from __future__ import annotations

from .models import StudyCard
from .session_controller import StudySessionController


class CardPresenter:
    """Tracks whether the current card has been flipped."""

    def __init__(self, controller: StudySessionController):
        self.controller = controller
        self._revealed = False
        self._shown_key: tuple[int, int] | None = None

    def _sync(self) -> None:
        key = (self.controller.generation, self.controller.cursor)
        if key != self._shown_key:
            self._shown_key = key
            self._revealed = False

    @property
    def card(self) -> StudyCard | None:
        return self.controller.current_card

    @property
    def revealed(self) -> bool:
        self._sync()
        return self._revealed and self.card is not None

    def flip(self) -> bool:
        """Toggle between front and back. Returns the new revealed state."""
        self._sync()
        if self.card is None:
            return False
        self._revealed = not self._revealed
        return self._revealed

    def reveal(self) -> None:
        self._sync()
        if self.card is not None:
            self._revealed = True

    def front(self) -> dict[str, object]:
        """Fields shown before flipping."""
        card = self.card
        if card is None:
            return {}
        badges = []
        if card.is_new:
            badges.append("New!")
        if card.is_due:
            badges.append("Review Due!")
        badges.append(f"Grade {card.grade}")
        return {"character": card.character, "badges": badges}

    def back(self) -> dict[str, object]:
        """Fields shown after flipping; empty while the front is showing."""
        card = self.card
        if card is None or not self.revealed:
            return {}
        return {
            "character": card.character,
            "meaning": card.meaning,
            "reading": card.reading,
            "stroke_count": card.stroke_count,
            "frequency": card.frequency,
        }
