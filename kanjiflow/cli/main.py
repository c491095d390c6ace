"""
Typer CLI for the kanjiflow study client.

Commands:
    kanjiflow study <deck_id>              - Interactive study session for a deck
    kanjiflow decks                        - List your decks
    kanjiflow deck <deck_id>               - Show a deck and its kanji
    kanjiflow create <title>               - Create an empty deck
    kanjiflow templates                    - List suggested (template) decks
    kanjiflow from-template <template_id>  - Create a deck from a template
    kanjiflow search <query>               - Search the kanji catalogue
    kanjiflow add <deck_id> <kanji_id>     - Add a kanji to a deck
    kanjiflow remove <deck_id> <kanji_id>  - Remove a kanji from a deck
    kanjiflow stats                        - Lifetime study statistics
    kanjiflow pending                      - Grades the API never acknowledged
    kanjiflow pending --clear              - Forget the unsaved grades

Usage:
    kanjiflow --help
    kanjiflow decks
    kanjiflow study 3
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

# Fix Windows encoding issues for kanji output
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import typer
from loguru import logger
from rich.console import Console

from config import Settings, get_settings
from kanjiflow.delivery import study_visuals as ui
from kanjiflow.integrations.kanji_api_client import KanjiApiClient, validate_deck_title
from kanjiflow.logging_setup import configure_logging
from kanjiflow.study.errors import ApiError
from kanjiflow.study.pending_store import PendingGradeStore

T = TypeVar("T")

app = typer.Typer(
    help="kanjiflow: study kanji decks scheduled by your spaced-repetition server",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Study kanji flashcards from the terminal."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def _build_client(settings: Settings) -> KanjiApiClient:
    if not settings.has_api_token():
        logger.warning("KANJI_API_TOKEN is not set; requests are sent without authentication")
    return KanjiApiClient(**settings.get_api_config())


def _call_api(call: Callable[[KanjiApiClient], Awaitable[T]]) -> T:
    """Run one client call; API failures print an error and exit with status 1."""
    settings = get_settings()

    async def _run() -> T:
        async with _build_client(settings) as client:
            return await call(client)

    try:
        return asyncio.run(_run())
    except ApiError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


# ========================================
# STUDY
# ========================================


@app.command("study")
def study(
    deck_id: int = typer.Argument(..., help="Deck to study"),
):
    """
    Study the cards the server has scheduled for a deck.

    Reveal each card with Enter, then grade it 1-4 (bad, hard, good, easy).
    Grades are saved in the background; if the server is unreachable the
    session carries on and the grade is kept in the pending ledger.
    """
    from kanjiflow.cli.study_runner import StudyRunner

    settings = get_settings()

    async def _run() -> None:
        async with _build_client(settings) as client:
            if not await client.health_check():
                console.print(
                    f"[yellow]API at {client.api_url} did not answer its health check[/yellow]"
                )
            runner = StudyRunner(
                deck_id,
                client,
                pending_store=PendingGradeStore(settings.pending_grades_path),
                console=console,
            )
            await runner.run()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[dim]Session interrupted[/dim]")
        raise typer.Exit(130)


# ========================================
# DECKS
# ========================================


@app.command("decks")
def decks():
    """List your decks."""
    deck_list = _call_api(lambda client: client.list_decks())

    if not deck_list:
        console.print("[yellow]No decks yet.[/yellow] Create one with 'kanjiflow create' or 'kanjiflow templates'.")
        return
    console.print(ui.render_decks_table(deck_list))


@app.command("deck")
def deck(
    deck_id: int = typer.Argument(..., help="Deck to show"),
):
    """Show a deck and the kanji in it."""
    detail = _call_api(lambda client: client.get_deck(deck_id))
    console.print(ui.render_deck_detail(detail))


@app.command("create")
def create(
    title: str = typer.Argument(..., help="Deck title (1-100 characters)"),
    description: str = typer.Option(None, "--description", "-d", help="Optional description"),
):
    """Create an empty deck."""
    try:
        title = validate_deck_title(title)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="TITLE")

    created = _call_api(lambda client: client.create_deck(title, description))
    if created is not None:
        console.print(f"[green]Created deck {created.id}:[/green] {created.title}")
    else:
        console.print(f"[green]Created deck:[/green] {title}")


@app.command("templates")
def templates():
    """List suggested decks that can be copied with 'from-template'."""
    template_list = _call_api(lambda client: client.list_templates())

    if not template_list:
        console.print("[yellow]No suggested decks available.[/yellow]")
        return
    console.print(ui.render_templates_table(template_list))


@app.command("from-template")
def from_template(
    template_id: int = typer.Argument(..., help="Template to copy (see 'kanjiflow templates')"),
):
    """Create a deck from a suggested template."""
    created = _call_api(lambda client: client.create_deck_from_template(template_id))
    if created is not None:
        console.print(f"[green]Created deck {created.id}:[/green] {created.title}")
    else:
        console.print(f"[green]Created deck from template {template_id}[/green]")


# ========================================
# KANJI
# ========================================


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Character, meaning or reading"),
):
    """Search the kanji catalogue."""
    results = _call_api(lambda client: client.search_kanji(query))

    if not results:
        console.print(f"[yellow]No kanji found for {query!r}[/yellow]")
        return
    console.print(ui.render_kanji_table(results, title=f"Results for {query!r}"))


@app.command("add")
def add(
    deck_id: int = typer.Argument(..., help="Deck to add to"),
    kanji_id: int = typer.Argument(..., help="Kanji id (see 'kanjiflow search')"),
):
    """Add a kanji to a deck."""

    async def _add(client: KanjiApiClient) -> bool:
        try:
            await client.add_kanji_to_deck(deck_id, kanji_id)
        except ApiError as e:
            if e.status_code == 409:
                return False
            raise
        return True

    if not _call_api(_add):
        console.print("[yellow]This kanji is already in the deck![/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Added kanji {kanji_id} to deck {deck_id}[/green]")


@app.command("remove")
def remove(
    deck_id: int = typer.Argument(..., help="Deck to remove from"),
    kanji_id: int = typer.Argument(..., help="Kanji id"),
):
    """Remove a kanji from a deck."""
    _call_api(lambda client: client.remove_kanji_from_deck(deck_id, kanji_id))
    console.print(f"[green]Removed kanji {kanji_id} from deck {deck_id}[/green]")


# ========================================
# STATS
# ========================================


@app.command("stats")
def stats():
    """Show lifetime study statistics."""
    study_stats = _call_api(lambda client: client.get_study_stats())
    console.print(ui.render_stats(study_stats))


# ========================================
# PENDING GRADES
# ========================================


@app.command("pending")
def pending(
    clear: bool = typer.Option(False, "--clear", help="Delete the pending ledger"),
):
    """List grades that were not acknowledged by the server."""
    store = PendingGradeStore(get_settings().pending_grades_path)

    if clear:
        removed = store.clear()
        console.print(f"[green]Cleared {removed} pending grade(s)[/green]")
        return

    entries = store.list_pending()
    if not entries:
        console.print("[green]All grades are saved.[/green]")
        return
    console.print(ui.render_pending_table(entries))


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
