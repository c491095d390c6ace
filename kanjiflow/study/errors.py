"""
Exceptions raised by the study session layer.

Load failures and grading precondition failures are local and recoverable by
an explicit user action. Submission failures are absorbed by the gateway and
never reach the session controller.
"""


class KanjiFlowError(Exception):
    """Base class for kanjiflow errors."""


class SessionLoadError(KanjiFlowError):
    """The card queue could not be fetched or the payload was malformed."""


class CardIdentityError(KanjiFlowError, ValueError):
    """A card has no usable identity, so its grade cannot be recorded."""

    def __init__(self, card_id: object, index: int):
        self.card_id = card_id
        self.index = index
        super().__init__(
            f"Card at position {index} has no valid id (got {card_id!r}); "
            "refusing to record a grade for it"
        )


class GradeSubmissionError(KanjiFlowError):
    """The API did not acknowledge a grade."""

    def __init__(self, card_id: int, message: str):
        self.card_id = card_id
        super().__init__(f"Grade for card {card_id} not acknowledged: {message}")


class ApiError(KanjiFlowError):
    """A deck, kanji or statistics request failed or returned an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
