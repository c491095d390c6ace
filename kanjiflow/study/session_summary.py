"""
End-of-session statistics.

Everything here is a pure function of the recorded outcomes and the total the
API declared for the session; nothing is stored.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from .models import Grade, Outcome


class PerformanceTier(str, Enum):
    """Qualitative tier selected by success rate."""

    TOP = "top"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"

    @property
    def headline(self) -> str:
        return _TIER_HEADLINES[self]


_TIER_HEADLINES = {
    PerformanceTier.TOP: "Excellent work!",
    PerformanceTier.HIGH: "Great job!",
    PerformanceTier.MODERATE: "Good effort!",
    PerformanceTier.LOW: "Keep practicing!",
}

# Inclusive lower bounds, checked in order
TIER_THRESHOLDS: tuple[tuple[int, PerformanceTier], ...] = (
    (90, PerformanceTier.TOP),
    (70, PerformanceTier.HIGH),
    (50, PerformanceTier.MODERATE),
)

RETRY_RATE_THRESHOLD = 70
MASTERY_RATE_THRESHOLD = 90


@dataclass(frozen=True)
class SessionSummary:
    """Derived statistics for one finished session."""

    counts: dict[Grade, int]
    total: int
    success_rate: int
    tier: PerformanceTier
    recommendations: list[str] = field(default_factory=list)

    @property
    def graded(self) -> int:
        return sum(self.counts.values())

    @property
    def successful(self) -> int:
        return sum(count for grade, count in self.counts.items() if grade.is_success)

    def count(self, grade: Grade | str) -> int:
        return self.counts[Grade.parse(grade)]


def valid_total(declared_total: int | None, outcome_count: int) -> int:
    """
    Denominator for the success rate.

    The declared total wins when positive; otherwise the number of outcomes,
    and never less than 1.
    """
    if declared_total and declared_total > 0:
        return declared_total
    return outcome_count if outcome_count > 0 else 1


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def tier_for_rate(success_rate: float) -> PerformanceTier:
    for lower_bound, tier in TIER_THRESHOLDS:
        if success_rate >= lower_bound:
            return tier
    return PerformanceTier.LOW


def build_recommendations(counts: dict[Grade, int], success_rate: int) -> list[str]:
    """Study advice, one line per triggered condition."""
    recommendations = []
    bad = counts.get(Grade.BAD, 0)
    hard = counts.get(Grade.HARD, 0)
    if bad > 0:
        recommendations.append(
            f'Review the {bad} kanji marked as "Bad" - they need more practice'
        )
    if hard > 0:
        recommendations.append(
            f'The {hard} "Hard" kanji will appear sooner for review'
        )
    if success_rate < RETRY_RATE_THRESHOLD:
        recommendations.append("Consider studying this deck again to improve retention")
    if success_rate >= MASTERY_RATE_THRESHOLD:
        recommendations.append(
            "Excellent mastery! These kanji will be scheduled for longer intervals"
        )
    return recommendations


def summarize(outcomes: Iterable[Outcome], declared_total: int | None = 0) -> SessionSummary:
    """
    Aggregate outcomes into a SessionSummary.

    A declared total smaller than the number of outcomes is not corrected, so
    the success rate may exceed 100.
    """
    outcomes = list(outcomes)
    counts = {grade: 0 for grade in Grade}
    for outcome in outcomes:
        counts[outcome.grade] += 1

    total = valid_total(declared_total, len(outcomes))
    successful = sum(count for grade, count in counts.items() if grade.is_success)
    success_rate = round_half_up(100 * successful / total)

    return SessionSummary(
        counts=counts,
        total=total,
        success_rate=success_rate,
        tier=tier_for_rate(success_rate),
        recommendations=build_recommendations(counts, success_rate),
    )
