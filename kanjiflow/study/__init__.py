"""
Study session core.

Provides:
- CardQueue: ordered cards for one session, fetched once
- StudySessionController: explicit state machine over the queue
- GradeGateway: best-effort grade delivery to the API
- summarize: end-of-session statistics
- CardPresenter: front/back visibility of the current card
"""

from kanjiflow.study.card_presenter import CardPresenter
from kanjiflow.study.card_queue import CardQueue, load_card_queue
from kanjiflow.study.errors import (
    ApiError,
    CardIdentityError,
    GradeSubmissionError,
    KanjiFlowError,
    SessionLoadError,
)
from kanjiflow.study.grade_gateway import GradeGateway
from kanjiflow.study.models import Grade, Outcome, StudyCard, StudySession
from kanjiflow.study.pending_store import PendingGrade, PendingGradeStore
from kanjiflow.study.session_controller import StudySessionController
from kanjiflow.study.session_state import Active, Complete, Errored, Loading, SessionState
from kanjiflow.study.session_summary import PerformanceTier, SessionSummary, summarize

__all__ = [
    "Active",
    "ApiError",
    "CardIdentityError",
    "CardPresenter",
    "CardQueue",
    "Complete",
    "Errored",
    "Grade",
    "GradeGateway",
    "GradeSubmissionError",
    "KanjiFlowError",
    "Loading",
    "Outcome",
    "PendingGrade",
    "PendingGradeStore",
    "PerformanceTier",
    "SessionLoadError",
    "SessionState",
    "SessionSummary",
    "StudyCard",
    "StudySession",
    "StudySessionController",
    "load_card_queue",
    "summarize",
]
