"""
Data model for kanji study sessions.

API payloads use camelCase keys; the pydantic models below accept either the
wire alias or the Python field name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Grade(str, Enum):
    """Self-reported recall quality, ordered bad < hard < good < easy."""

    BAD = "bad"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def rank(self) -> int:
        return _GRADE_ORDER.index(self)

    @property
    def is_success(self) -> bool:
        """Good and easy count towards the success rate."""
        return self in (Grade.GOOD, Grade.EASY)

    @classmethod
    def parse(cls, value: Grade | str) -> Grade:
        """Accept a Grade or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown grade {value!r}; expected one of "
                f"{', '.join(g.value for g in cls)}"
            ) from None

    # str comparison would order these alphabetically
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.rank >= other.rank


_GRADE_ORDER = (Grade.BAD, Grade.HARD, Grade.GOOD, Grade.EASY)


class StudyCard(BaseModel):
    """One kanji card as served by the study endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int | None = None
    character: str = ""
    meaning: str = ""
    reading: str = ""
    stroke_count: int = Field(0, alias="strokeCount")
    grade: int = 0
    frequency: int | None = None
    is_new: bool = Field(False, alias="isNew")
    is_due: bool = Field(False, alias="isDue")

    @field_validator("stroke_count", "grade", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("id", mode="before")
    @classmethod
    def _bool_is_not_an_id(cls, value: Any) -> Any:
        # JSON true/false would otherwise be coerced to 1/0
        return None if isinstance(value, bool) else value


class StudySession(BaseModel):
    """Response of ``GET /api/v1/decks/{id}/study``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    deck_id: int | None = Field(None, alias="deckId")
    deck_title: str = Field("", alias="deckTitle")
    total_cards: int = Field(0, alias="totalCards")
    study_cards: list[StudyCard] = Field(..., alias="studyCards")

    @field_validator("total_cards", mode="before")
    @classmethod
    def _none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("deck_title", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class DeckSummary(BaseModel):
    """Entry of ``GET /api/v1/decks``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = ""
    description: str | None = None
    kanji_count: int = Field(0, alias="kanjiCount")
    created_at: str | None = Field(None, alias="createdAt")
    updated_at: str | None = Field(None, alias="updatedAt")


class Kanji(BaseModel):
    """A kanji from the catalogue, as returned by search and deck detail."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    character: str = ""
    meaning: str = ""
    reading: str = ""
    stroke_count: int | None = Field(None, alias="strokeCount")
    grade: int | None = None
    frequency: int | None = None
    added_at: str | None = Field(None, alias="addedAt")


class DeckDetail(DeckSummary):
    """Response of ``GET /api/v1/decks/{id}``: the deck and its kanji."""

    kanji: list[Kanji] = Field(default_factory=list, alias="kanjis")

    @field_validator("kanji", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class DeckTemplate(BaseModel):
    """A ready-made deck (JLPT levels and the like) that can be copied."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str = ""
    description: str | None = None
    kanji_count: int = Field(0, alias="kanjiCount")
    created_at: str | None = Field(None, alias="createdAt")

    @property
    def jlpt_level(self) -> str | None:
        """'N5' for a template named 'JLPT N5 ...', else None."""
        match = _JLPT_LEVEL.search(self.name)
        return match.group(1).upper() if match else None


_JLPT_LEVEL = re.compile(r"JLPT\s+(N[1-5])", re.IGNORECASE)


class GradeDistribution(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bad: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0

    def as_dict(self) -> dict[Grade, int]:
        return {grade: getattr(self, grade.value) for grade in Grade}


class DailyReviews(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str
    reviews: int = 0


class StudyStats(BaseModel):
    """Lifetime statistics from ``GET /api/v1/study/stats``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    total_studied: int = Field(0, alias="totalStudied")
    due_for_review: int = Field(0, alias="dueForReview")
    new_today: int = Field(0, alias="newToday")
    reviewed_today: int = Field(0, alias="reviewedToday")
    study_streak: int = Field(0, alias="studyStreak")
    average_grade: float = Field(0.0, alias="averageGrade")
    total_reviews: int = Field(0, alias="totalReviews")
    correct_reviews: int = Field(0, alias="correctReviews")
    accuracy: float = 0.0
    grade_distribution: GradeDistribution = Field(
        default_factory=GradeDistribution, alias="gradeDistribution"
    )
    weekly_progress: list[DailyReviews] = Field(
        default_factory=list, alias="weeklyProgress"
    )


@dataclass(frozen=True)
class Outcome:
    """A grade recorded for one card during a session."""

    card_id: int
    grade: Grade

    def to_payload(self) -> dict[str, Any]:
        """Body of ``POST /api/v1/study/progress``."""
        return {"kanjiId": self.card_id, "grade": self.grade.value}
