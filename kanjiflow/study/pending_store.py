"""
Ledger of grades the API never acknowledged.

Failed submissions do not stop a study session, but they must not vanish
either. Each one is appended to a JSON file so the learner can see what was
not saved and statistics can be reconciled later.

File layout (``~/.kanjiflow/pending_grades.json`` by default):

    [
        {"card_id": 12, "grade": "good", "deck_id": 3,
         "error": "...", "failed_at": "2026-01-05T10:12:00"}
    ]
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path

from loguru import logger

from .models import Outcome


@dataclass
class PendingGrade:
    """One unacknowledged grade."""

    card_id: int
    grade: str
    deck_id: int | str | None
    error: str
    failed_at: str  # ISO format

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> PendingGrade:
        return cls(**data)


class PendingGradeStore:
    """JSON-file persistence for PendingGrade records."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def record(
        self,
        outcome: Outcome,
        error: str,
        deck_id: int | str | None = None,
    ) -> PendingGrade:
        """Append a failed submission to the ledger."""
        entry = PendingGrade(
            card_id=outcome.card_id,
            grade=outcome.grade.value,
            deck_id=deck_id,
            error=error,
            failed_at=datetime.now().isoformat(timespec="seconds"),
        )
        entries = self._read()
        entries.append(entry)
        self._write(entries)
        logger.debug("Recorded pending grade for card {} in {}", outcome.card_id, self.path)
        return entry

    def list_pending(self) -> list[PendingGrade]:
        return self._read()

    def count(self) -> int:
        return len(self._read())

    def clear(self) -> int:
        """Delete the ledger. Returns the number of entries removed."""
        removed = len(self._read())
        if self.path.exists():
            self.path.unlink()
        return removed

    def _read(self) -> list[PendingGrade]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [PendingGrade.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable pending grade ledger {}: {}", self.path, e)
            return []

    def _write(self, entries: list[PendingGrade]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([entry.to_dict() for entry in entries], f, indent=2)
