"""
Unit tests for the study session state machine.
"""

import asyncio

import pytest

from kanjiflow.study.errors import CardIdentityError, SessionLoadError
from kanjiflow.study.models import Grade, Outcome
from kanjiflow.study.session_controller import StudySessionController, resolve_card_id
from kanjiflow.study.session_state import Active, Complete, Errored, Loading
from kanjiflow.study.session_summary import PerformanceTier


def _controller(fetcher, gateway=None, deck_id=7):
    return StudySessionController(deck_id, fetch_queue=fetcher, gateway=gateway)


class TestLoading:
    """Tests for the Loading state and its exits."""

    def test_initial_state_is_loading(self, fetcher_factory):
        controller = _controller(fetcher_factory([]))

        assert controller.state == Loading()
        assert controller.current_card is None
        assert controller.outcomes == ()

    @pytest.mark.asyncio
    async def test_cards_loaded_enters_active_at_zero(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))

        state = await controller.start()

        assert state == Active(0)
        assert controller.current_card == study_cards[0]
        assert controller.deck_title == "Test Deck"

    @pytest.mark.asyncio
    async def test_empty_queue_completes_without_outcomes(self, fetcher_factory):
        controller = _controller(fetcher_factory([]))

        state = await controller.start()

        assert state == Complete(nothing_due=True)
        assert controller.outcomes == ()
        assert controller.current_card is None

    @pytest.mark.asyncio
    async def test_fetch_failure_enters_errored(self, fetcher_factory):
        controller = _controller(fetcher_factory(SessionLoadError("deck not found")))

        state = await controller.start()

        assert isinstance(state, Errored)
        assert "deck not found" in state.reason
        assert controller.current_card is None

    @pytest.mark.asyncio
    async def test_unexpected_fetch_exception_enters_errored(self, fetcher_factory):
        controller = _controller(fetcher_factory(RuntimeError("boom")))

        state = await controller.start()

        assert isinstance(state, Errored)
        assert "RuntimeError" in state.reason

    @pytest.mark.asyncio
    async def test_concurrent_starts_share_one_fetch(self, fetcher_factory, study_cards):
        fetcher = fetcher_factory(study_cards)
        controller = _controller(fetcher)

        await asyncio.gather(controller.start(), controller.start())

        assert len(fetcher.calls) == 1
        assert controller.state == Active(0)

    @pytest.mark.asyncio
    async def test_start_after_load_does_not_refetch(self, fetcher_factory, study_cards):
        fetcher = fetcher_factory(study_cards)
        controller = _controller(fetcher)

        await controller.start()
        await controller.start()

        assert len(fetcher.calls) == 1


class TestSubmitGrade:
    """Tests for grading and cursor advancement."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 2, 5])
    async def test_grading_every_card_completes(self, fetcher_factory, make_card, count):
        cards = [make_card(i + 1) for i in range(count)]
        controller = _controller(fetcher_factory(cards))
        await controller.start()

        for _ in range(count):
            controller.submit_grade(Grade.GOOD)

        assert len(controller.outcomes) == count
        assert controller.state == Complete(nothing_due=False)

    @pytest.mark.asyncio
    async def test_outcomes_follow_queue_order(self, fetcher_factory, study_cards, fake_gateway):
        controller = _controller(fetcher_factory(study_cards), fake_gateway)
        await controller.start()

        grades = [Grade.BAD, Grade.EASY, Grade.HARD]
        for grade in grades:
            controller.submit_grade(grade)
        await controller.drain()

        assert controller.outcomes == tuple(
            Outcome(card.id, grade) for card, grade in zip(study_cards, grades)
        )
        assert fake_gateway.received == list(controller.outcomes)

    @pytest.mark.asyncio
    async def test_outcome_count_tracks_cursor(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        await controller.start()

        while isinstance(controller.state, Active):
            assert len(controller.outcomes) == controller.cursor
            controller.submit_grade("good")

        assert len(controller.outcomes) == len(controller.queue)

    @pytest.mark.asyncio
    async def test_returns_recorded_outcome(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        await controller.start()

        outcome = controller.submit_grade("EASY")

        assert outcome == Outcome(card_id=101, grade=Grade.EASY)
        assert controller.state == Active(1)

    @pytest.mark.asyncio
    async def test_unknown_grade_rejected_without_advancing(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        await controller.start()

        with pytest.raises(ValueError):
            controller.submit_grade("perfect")

        assert controller.state == Active(0)
        assert controller.outcomes == ()

    @pytest.mark.asyncio
    async def test_noop_while_loading(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))

        assert controller.submit_grade(Grade.GOOD) is None
        assert controller.state == Loading()
        assert controller.outcomes == ()

    @pytest.mark.asyncio
    async def test_noop_after_complete(self, fetcher_factory, study_cards, fake_gateway):
        controller = _controller(fetcher_factory(study_cards), fake_gateway)
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)
        before = controller.outcomes

        assert controller.submit_grade(Grade.EASY) is None
        await controller.drain()

        assert controller.outcomes == before
        assert controller.state == Complete(nothing_due=False)
        assert len(fake_gateway.received) == len(study_cards)

    @pytest.mark.asyncio
    async def test_noop_when_errored(self, fetcher_factory):
        controller = _controller(fetcher_factory(SessionLoadError("offline")))
        await controller.start()

        assert controller.submit_grade(Grade.GOOD) is None
        assert isinstance(controller.state, Errored)

    @pytest.mark.asyncio
    async def test_noop_when_nothing_due(self, fetcher_factory):
        controller = _controller(fetcher_factory([]))
        await controller.start()

        assert controller.submit_grade(Grade.GOOD) is None
        assert controller.outcomes == ()

    @pytest.mark.asyncio
    async def test_current_card_none_after_final_grade(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        await controller.start()

        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)

        assert controller.cursor == len(study_cards)
        assert controller.current_card is None


class TestCardIdentity:
    """Tests for the card identity precondition."""

    @pytest.mark.parametrize("bad_id", [None, 0, -3])
    def test_resolve_card_id_rejects_invalid(self, make_card, bad_id):
        with pytest.raises(CardIdentityError):
            resolve_card_id(make_card(bad_id), 0)

    def test_resolve_card_id_accepts_positive(self, make_card):
        assert resolve_card_id(make_card(42), 0) == 42

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", [None, 0, -1])
    async def test_invalid_id_refused_without_mutation(
        self, fetcher_factory, make_card, fake_gateway, bad_id
    ):
        cards = [make_card(bad_id, "金"), make_card(5, "土")]
        controller = _controller(fetcher_factory(cards), fake_gateway)
        await controller.start()

        with pytest.raises(CardIdentityError) as exc_info:
            controller.submit_grade(Grade.GOOD)
        await controller.drain()

        assert exc_info.value.index == 0
        assert controller.state == Active(0)
        assert controller.outcomes == ()
        assert fake_gateway.received == []

    @pytest.mark.asyncio
    async def test_identity_error_is_a_value_error(self, fetcher_factory, make_card):
        controller = _controller(fetcher_factory([make_card(None)]))
        await controller.start()

        with pytest.raises(ValueError):
            controller.submit_grade(Grade.GOOD)


class TestSubmissionDecoupling:
    """Gateway latency and failure never affect local progression."""

    @pytest.mark.asyncio
    async def test_advances_before_submission_finishes(
        self, fetcher_factory, study_cards, gateway_factory
    ):
        gateway = gateway_factory(hold=True)
        controller = _controller(fetcher_factory(study_cards), gateway)
        await controller.start()

        controller.submit_grade(Grade.GOOD)
        controller.submit_grade(Grade.HARD)

        assert controller.state == Active(2)
        assert controller.pending_submissions == 2
        assert gateway.received == []

        gateway.release.set()
        await controller.drain()

        assert controller.pending_submissions == 0
        assert len(gateway.received) == 2

    @pytest.mark.asyncio
    async def test_failed_submissions_do_not_block_completion(
        self, fetcher_factory, study_cards, gateway_factory
    ):
        gateway = gateway_factory(fail_ids={101, 103})
        controller = _controller(fetcher_factory(study_cards), gateway)
        await controller.start()

        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)
        await controller.drain()

        assert controller.state == Complete(nothing_due=False)
        assert len(controller.outcomes) == 3
        assert controller.failed_submissions == 2

    @pytest.mark.asyncio
    async def test_crashing_gateway_is_counted(self, fetcher_factory, study_cards):
        class CrashingGateway:
            async def submit(self, outcome, deck_id=None):
                raise RuntimeError("socket closed")

        controller = _controller(fetcher_factory(study_cards), CrashingGateway())
        await controller.start()

        controller.submit_grade(Grade.GOOD)
        await controller.drain()

        assert controller.state == Active(1)
        assert controller.failed_submissions == 1

    def test_requires_running_loop_with_gateway(self, fetcher_factory, study_cards, fake_gateway):
        controller = _controller(fetcher_factory(study_cards), fake_gateway)
        asyncio.run(controller.start())

        with pytest.raises(RuntimeError):
            controller.submit_grade(Grade.GOOD)

        assert controller.state == Active(0)
        assert controller.outcomes == ()

    def test_without_gateway_no_loop_needed(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        asyncio.run(controller.start())

        controller.submit_grade(Grade.GOOD)

        assert controller.state == Active(1)


class TestRestart:
    """Tests for restart() from terminal states."""

    @pytest.mark.asyncio
    async def test_restart_clears_outcomes_and_reloads(self, fetcher_factory, study_cards, make_card):
        second_round = [make_card(201, "山")]
        fetcher = fetcher_factory(study_cards, second_round)
        controller = _controller(fetcher)
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.BAD)

        restarted = await controller.restart()

        assert restarted is True
        assert controller.outcomes == ()
        assert controller.state == Active(0)
        assert controller.current_card.id == 201
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_restart_outcomes_are_disjoint(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards))
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.EASY)
        first_round = controller.outcomes

        await controller.restart()
        controller.submit_grade(Grade.BAD)

        assert len(first_round) == 3
        assert controller.outcomes == (Outcome(101, Grade.BAD),)

    @pytest.mark.asyncio
    async def test_state_cleared_while_reloading(self, study_cards):
        seen = {}
        controller = None

        async def fetch(deck_id):
            seen["state"] = controller.state
            seen["queue"] = controller.queue
            seen["outcomes"] = controller.outcomes
            from kanjiflow.study.card_queue import CardQueue

            return CardQueue(study_cards, deck_id=deck_id, declared_total=3)

        controller = _controller(fetch)
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)

        await controller.restart()

        assert seen == {"state": Loading(), "queue": None, "outcomes": ()}

    @pytest.mark.asyncio
    async def test_double_restart_fetches_once(self, fetcher_factory, study_cards):
        fetcher = fetcher_factory(study_cards)
        controller = _controller(fetcher)
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)

        results = await asyncio.gather(controller.restart(), controller.restart())

        assert results == [True, True]
        assert len(fetcher.calls) == 2  # initial load + one restart
        assert controller.state == Active(0)

    @pytest.mark.asyncio
    async def test_restart_from_errored_retries(self, fetcher_factory, study_cards):
        fetcher = fetcher_factory(SessionLoadError("timeout"), study_cards)
        controller = _controller(fetcher)
        await controller.start()
        assert isinstance(controller.state, Errored)

        await controller.restart()

        assert controller.state == Active(0)

    @pytest.mark.asyncio
    async def test_restart_refused_while_active(self, fetcher_factory, study_cards):
        fetcher = fetcher_factory(study_cards)
        controller = _controller(fetcher)
        await controller.start()
        controller.submit_grade(Grade.GOOD)

        restarted = await controller.restart()

        assert restarted is False
        assert controller.state == Active(1)
        assert len(controller.outcomes) == 1
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_restart_to_empty_queue(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards, []))
        await controller.start()
        for _ in study_cards:
            controller.submit_grade(Grade.GOOD)

        await controller.restart()

        assert controller.state == Complete(nothing_due=True)
        assert controller.outcomes == ()


class TestProgressAndSummary:
    @pytest.mark.asyncio
    async def test_progress_uses_declared_total(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards, declared_total=10))
        await controller.start()

        assert controller.progress == (1, 10)
        controller.submit_grade(Grade.GOOD)
        assert controller.progress == (2, 10)

    @pytest.mark.asyncio
    async def test_progress_falls_back_to_queue_length(self, fetcher_factory, study_cards):
        controller = _controller(fetcher_factory(study_cards, declared_total=0))
        await controller.start()

        assert controller.progress == (1, 3)

    @pytest.mark.asyncio
    async def test_summary_after_completion(self, fetcher_factory, make_card):
        cards = [make_card(i) for i in range(1, 5)]
        controller = _controller(fetcher_factory(cards))
        await controller.start()

        for grade in (Grade.GOOD, Grade.GOOD, Grade.EASY, Grade.BAD):
            controller.submit_grade(grade)
        summary = controller.summary()

        assert summary.success_rate == 75
        assert summary.tier == PerformanceTier.HIGH
        assert summary.count(Grade.HARD) == 0
