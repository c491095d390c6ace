"""
Interactive terminal loop for one study session.

Wires the session controller to the console: shows the current card, waits
for the learner to reveal and grade it, and offers a restart when the deck is
finished. Prompts run in a worker thread so grade submissions keep flowing on
the event loop while the learner is thinking.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial

from loguru import logger
from rich.console import Console
from rich.prompt import Prompt

from kanjiflow.delivery import study_visuals as ui
from kanjiflow.integrations.kanji_api_client import KanjiApiClient
from kanjiflow.study.card_presenter import CardPresenter
from kanjiflow.study.card_queue import load_card_queue
from kanjiflow.study.errors import CardIdentityError
from kanjiflow.study.grade_gateway import GradeGateway
from kanjiflow.study.pending_store import PendingGradeStore
from kanjiflow.study.session_controller import StudySessionController
from kanjiflow.study.session_state import Active, Complete, Errored
from kanjiflow.study.session_summary import SessionSummary

QUIT_KEYS = {"q", "quit", "exit"}


class StudyRunner:
    """Console front-end over a StudySessionController."""

    def __init__(
        self,
        deck_id: int | str,
        client: KanjiApiClient,
        pending_store: PendingGradeStore | None = None,
        console: Console | None = None,
        ask: Callable[..., str] | None = None,
    ):
        self.console = console or Console()
        self._ask = ask or partial(Prompt.ask, console=self.console)
        self.gateway = GradeGateway(client, pending_store)
        self.controller = StudySessionController(
            deck_id,
            fetch_queue=partial(load_card_queue, client),
            gateway=self.gateway,
        )
        self.presenter = CardPresenter(self.controller)
        self.last_summary: SessionSummary | None = None

    async def _prompt(self, message: str, **kwargs) -> str:
        answer = await asyncio.to_thread(self._ask, message, **kwargs)
        return (answer or "").strip().lower()

    async def run(self) -> SessionSummary | None:
        """
        Study until the learner quits or declines another round.

        Returns:
            Summary of the last completed round, if any
        """
        with self.console.status("Loading study session..."):
            await self.controller.start()

        try:
            while True:
                state = self.controller.state

                if isinstance(state, Errored):
                    self.console.print(ui.render_load_error(state.reason))
                    answer = await self._prompt("Retry?", choices=["r", "q"], default="r")
                    if answer != "r":
                        break
                    with self.console.status("Retrying..."):
                        await self.controller.restart()
                    continue

                if isinstance(state, Complete):
                    if state.nothing_due:
                        self.console.print(ui.render_nothing_due(self.controller.deck_title))
                        break
                    await self._show_summary()
                    answer = await self._prompt("Study again?", choices=["y", "n"], default="n")
                    if answer != "y":
                        break
                    with self.console.status("Loading study session..."):
                        await self.controller.restart()
                    continue

                if isinstance(state, Active):
                    if not await self._study_current_card():
                        break
        finally:
            await self.controller.drain()

        if self.controller.failed_submissions:
            logger.warning(
                "{} grade(s) from this session were not saved",
                self.controller.failed_submissions,
            )
        return self.last_summary

    async def _study_current_card(self) -> bool:
        """Present, reveal and grade one card. Returns False if the learner quit."""
        position, total = self.controller.progress
        self.console.print()
        self.console.print(ui.render_study_header(self.controller.deck_title, position, total))
        self.console.print(ui.render_card_front(self.presenter.front()))

        answer = await self._prompt("Reveal", default="")
        if answer in QUIT_KEYS:
            return False
        self.presenter.reveal()
        self.console.print(ui.render_card_back(self.presenter.back()))
        self.console.print(ui.render_grade_prompt())

        while True:
            answer = await self._prompt("Grade")
            if answer in QUIT_KEYS:
                return False
            grade = ui.grade_from_key(answer)
            if grade is not None:
                break
            self.console.print("[yellow]Enter 1-4 (bad, hard, good, easy) or q to quit[/yellow]")

        try:
            self.controller.submit_grade(grade)
        except CardIdentityError as e:
            self.console.print(f"[red]Cannot grade this card:[/red] {e}")
            self.console.print("[dim]The study session is malformed; go back to the deck and try again.[/dim]")
            return False
        return True

    async def _show_summary(self) -> None:
        # Let in-flight submissions settle so the unsaved count is accurate
        await self.controller.drain()
        self.last_summary = self.controller.summary()
        self.console.print(
            ui.render_session_summary(
                self.controller.deck_title,
                self.last_summary,
                failed_submissions=self.controller.failed_submissions,
            )
        )
