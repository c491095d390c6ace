"""
Rich visual components for the study terminal.

Card faces, the progress header, the session summary, deck and kanji tables,
and the statistics views. Nothing here touches session state; callers pass in what to draw.
"""

from __future__ import annotations

from rich import box
from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from kanjiflow.study.models import DeckDetail, DeckSummary, DeckTemplate, Grade, Kanji, StudyStats
from kanjiflow.study.pending_store import PendingGrade
from kanjiflow.study.session_summary import PerformanceTier, SessionSummary

# =============================================================================
# COLOR THEME
# =============================================================================

THEME = {
    "primary": "#3FB950",  # Green - deck actions
    "accent": "#58A6FF",  # Blue - progress
    "success": "#3FB950",
    "warning": "#D29922",
    "error": "#F85149",
    "dim": "#8B949E",
    "white": "#F0F6FC",
}

STYLES = {
    "primary": Style(color=THEME["primary"], bold=True),
    "accent": Style(color=THEME["accent"], bold=True),
    "success": Style(color=THEME["success"], bold=True),
    "warning": Style(color=THEME["warning"], bold=True),
    "error": Style(color=THEME["error"], bold=True),
    "dim": Style(color=THEME["dim"]),
}

GRADE_COLORS = {
    Grade.BAD: "#EF4444",  # red
    Grade.HARD: "#F97316",  # orange
    Grade.GOOD: "#22C55E",  # green
    Grade.EASY: "#3B82F6",  # blue
}

# Number keys and initials accepted at the grading prompt
GRADE_KEYS = {
    "1": Grade.BAD,
    "2": Grade.HARD,
    "3": Grade.GOOD,
    "4": Grade.EASY,
    "b": Grade.BAD,
    "h": Grade.HARD,
    "g": Grade.GOOD,
    "e": Grade.EASY,
}

TIER_COLORS = {
    PerformanceTier.TOP: THEME["success"],
    PerformanceTier.HIGH: THEME["accent"],
    PerformanceTier.MODERATE: THEME["warning"],
    PerformanceTier.LOW: "#F97316",
}


def grade_from_key(key: str) -> Grade | None:
    """Map prompt input (1-4, initial or full name) to a Grade."""
    key = key.strip().lower()
    if key in GRADE_KEYS:
        return GRADE_KEYS[key]
    try:
        return Grade.parse(key)
    except ValueError:
        return None


def format_progress_bar(position: int, total: int, width: int = 20) -> str:
    """Format a progress bar."""
    ratio = min(1.0, position / max(1, total))
    filled = int(ratio * width)
    return "#" * filled + "-" * (width - filled)


def render_study_header(deck_title: str, position: int, total: int) -> Text:
    """'Studying: <deck>   Card i of N [####----]'."""
    header = Text()
    header.append("Studying: ", style=STYLES["dim"])
    header.append(deck_title or "Untitled deck", style=STYLES["primary"])
    header.append(f"   Card {position} of {total} ", style=STYLES["dim"])
    header.append(f"[{format_progress_bar(position, total)}]", style=STYLES["accent"])
    return header


def render_card_front(front: dict) -> Panel:
    """Kanji side of a card with its New/Due/Grade badges."""
    badges = Text()
    for badge in front.get("badges", []):
        if badge.startswith("New"):
            style = STYLES["success"]
        elif badge.startswith("Review"):
            style = STYLES["warning"]
        else:
            style = STYLES["dim"]
        badges.append(f" {badge} ", style=style)
        badges.append(" ")

    character = Text(str(front.get("character", "")), style=Style(color=THEME["white"], bold=True))

    return Panel(
        Group(Align.center(badges), Text(""), Align.center(character)),
        title="[bold]Front[/bold]",
        subtitle="[dim]Enter to reveal[/dim]",
        border_style=Style(color=THEME["accent"]),
        box=box.HEAVY,
        padding=(1, 4),
    )


def render_card_back(back: dict) -> Panel:
    """Meaning, reading and metadata of a card."""
    content = Text()
    content.append(f"{back.get('character', '')}\n\n", style=Style(color=THEME["white"], bold=True))
    content.append("Meaning: ", style=STYLES["dim"])
    content.append(f"{back.get('meaning', '')}\n", style=Style(color=THEME["white"], bold=True))
    content.append("Reading: ", style=STYLES["dim"])
    content.append(f"{back.get('reading', '')}\n\n", style=Style(color=THEME["white"]))
    content.append(f"Strokes: {back.get('stroke_count', 0)}", style=STYLES["dim"])
    if back.get("frequency"):
        content.append(f"   Frequency: #{back['frequency']}", style=STYLES["dim"])

    return Panel(
        Align.center(content),
        title="[bold]Back[/bold]",
        border_style=Style(color=THEME["primary"]),
        box=box.HEAVY,
        padding=(1, 4),
    )


def render_grade_prompt() -> Text:
    """Key legend for grading."""
    legend = Text()
    for key, grade in (("1", Grade.BAD), ("2", Grade.HARD), ("3", Grade.GOOD), ("4", Grade.EASY)):
        legend.append(f"[{key}] ", style=STYLES["dim"])
        legend.append(f"{grade.value.title()}  ", style=Style(color=GRADE_COLORS[grade], bold=True))
    legend.append("[q] Quit", style=STYLES["dim"])
    return legend


def render_session_summary(
    deck_title: str,
    summary: SessionSummary,
    failed_submissions: int = 0,
) -> Panel:
    """
    Render end-of-session summary.

    Args:
        deck_title: Title of the studied deck
        summary: Aggregated session statistics
        failed_submissions: Grades the API did not acknowledge
    """
    tier_color = TIER_COLORS[summary.tier]

    text = Text()
    text.append("Session Complete!\n", style=STYLES["primary"])
    text.append(f'You\'ve finished studying "{deck_title}"\n\n', style=STYLES["dim"])
    text.append(f"{summary.tier.headline}\n", style=Style(color=tier_color, bold=True))
    text.append(f"{summary.success_rate}%\n", style=Style(color=THEME["white"], bold=True))
    text.append(
        f"Success rate ({summary.successful} out of {summary.total} cards)\n",
        style=STYLES["dim"],
    )

    counts = Table(box=box.SIMPLE, show_header=True, expand=False)
    for grade in Grade:
        counts.add_column(grade.value.title(), justify="center", style=Style(color=GRADE_COLORS[grade], bold=True))
    counts.add_row(*(str(summary.counts[grade]) for grade in Grade))

    advice = Text()
    if summary.recommendations:
        advice.append("Study Recommendations\n", style=STYLES["accent"])
        for line in summary.recommendations:
            advice.append(f"  - {line}\n")
    if failed_submissions:
        advice.append(
            f"\n{failed_submissions} grade(s) were not saved. "
            "Run 'kanjiflow pending' to review them.\n",
            style=STYLES["warning"],
        )
    advice.append("\nCome back tomorrow for your scheduled reviews!", style=STYLES["dim"])

    return Panel(
        Group(text, Align.center(counts), advice),
        title="[bold]Session Summary[/bold]",
        border_style=Style(color=tier_color),
        box=box.HEAVY,
        padding=(1, 2),
    )


def render_nothing_due(deck_title: str) -> Panel:
    return Panel(
        f"[yellow]No cards available for study in \"{deck_title or 'this deck'}\"[/yellow]\n\n"
        "All cards in this deck have been studied today!\n"
        "Come back tomorrow for your scheduled reviews.",
        border_style=Style(color=THEME["warning"]),
        box=box.ROUNDED,
    )


def render_load_error(reason: str) -> Panel:
    return Panel(
        f"[red]Failed to load study session[/red]\n\n[dim]{reason}[/dim]",
        border_style=Style(color=THEME["error"]),
        box=box.ROUNDED,
    )


def render_decks_table(decks: list[DeckSummary]) -> Table:
    table = Table(title="Your Decks", box=box.ROUNDED)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Kanji", justify="right")
    table.add_column("Created", style="dim")
    for deck in decks:
        table.add_row(
            str(deck.id),
            deck.title,
            str(deck.kanji_count),
            (deck.created_at or "")[:10],
        )
    return table


def render_kanji_table(kanji: list[Kanji], title: str = "Kanji", show_added: bool = False) -> Table:
    """Kanji with their catalogue id, the id used by add/remove."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Kanji", justify="center", style=Style(color=THEME["white"], bold=True))
    table.add_column("Meaning")
    table.add_column("Reading")
    table.add_column("Strokes", justify="right", style="dim")
    table.add_column("Grade", justify="right", style="dim")
    if show_added:
        table.add_column("Added", style="dim")
    for item in kanji:
        row = [
            str(item.id),
            item.character,
            item.meaning,
            item.reading,
            "" if item.stroke_count is None else str(item.stroke_count),
            "" if item.grade is None else str(item.grade),
        ]
        if show_added:
            row.append((item.added_at or "")[:10])
        table.add_row(*row)
    return table


def render_deck_detail(deck: DeckDetail) -> Group:
    """Deck header followed by its kanji, or a hint when it has none."""
    header = Text()
    header.append(f"{deck.title}\n", style=STYLES["primary"])
    if deck.description:
        header.append(f"{deck.description}\n", style=STYLES["dim"])
    header.append(f"{len(deck.kanji)} kanji", style=STYLES["accent"])
    if deck.created_at:
        header.append(f"  Created {deck.created_at[:10]}", style=STYLES["dim"])

    panel = Panel(header, title=f"[bold]Deck {deck.id}[/bold]", box=box.ROUNDED, padding=(0, 2))
    if not deck.kanji:
        hint = Text(
            f"No kanji yet. Try: kanjiflow search <word>, then kanjiflow add {deck.id} <kanji id>",
            style=STYLES["warning"],
        )
        return Group(panel, hint)
    return Group(panel, render_kanji_table(deck.kanji, title="Kanji in this deck", show_added=True))


def render_templates_table(templates: list[DeckTemplate]) -> Table:
    table = Table(title="Suggested Decks", box=box.ROUNDED)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Level", justify="center", style=Style(color=THEME["accent"], bold=True))
    table.add_column("Kanji", justify="right")
    table.add_column("Description", style="dim")
    for template in templates:
        table.add_row(
            str(template.id),
            template.name,
            template.jlpt_level or "",
            str(template.kanji_count),
            template.description or "",
        )
    return table


def render_stats(stats: StudyStats) -> Group:
    """Lifetime statistics, grade distribution and last week's reviews."""
    overview = Table(title="Study Analytics", box=box.ROUNDED, show_header=False)
    overview.add_column("Metric", style="dim")
    overview.add_column("Value", justify="right", style="bold")
    overview.add_row("Total studied", str(stats.total_studied))
    overview.add_row("Due for review", str(stats.due_for_review))
    overview.add_row("New today", str(stats.new_today))
    overview.add_row("Reviewed today", str(stats.reviewed_today))
    overview.add_row("Study streak", f"{stats.study_streak} day(s)")
    overview.add_row("Accuracy", f"{stats.accuracy:.0f}%")
    overview.add_row("Average grade", f"{stats.average_grade:.2f}")
    overview.add_row("Reviews", f"{stats.correct_reviews}/{stats.total_reviews} correct")

    distribution = stats.grade_distribution.as_dict()
    total = sum(distribution.values())
    grades = Table(title="Grade Distribution", box=box.ROUNDED)
    grades.add_column("Grade")
    grades.add_column("Cards", justify="right")
    grades.add_column("%", justify="right")
    for grade, count in distribution.items():
        percentage = round(100 * count / total) if total else 0
        grades.add_row(
            Text(grade.value.title(), style=Style(color=GRADE_COLORS[grade], bold=True)),
            str(count),
            f"{percentage}%",
        )

    renderables = [overview, grades]
    if stats.weekly_progress:
        peak = max(day.reviews for day in stats.weekly_progress) or 1
        weekly = Table(title="Weekly Progress", box=box.ROUNDED)
        weekly.add_column("Date", style="dim")
        weekly.add_column("Reviews", justify="right")
        weekly.add_column("")
        for day in stats.weekly_progress:
            weekly.add_row(day.date, str(day.reviews), format_progress_bar(day.reviews, peak, width=15))
        renderables.append(weekly)

    return Group(*renderables)


def render_pending_table(entries: list[PendingGrade]) -> Table:
    table = Table(title="Unsaved Grades", box=box.ROUNDED)
    table.add_column("Card", justify="right", style="cyan")
    table.add_column("Grade")
    table.add_column("Deck", justify="right")
    table.add_column("Failed at", style="dim")
    table.add_column("Error", style="dim")
    for entry in entries:
        table.add_row(
            str(entry.card_id),
            entry.grade,
            "" if entry.deck_id is None else str(entry.deck_id),
            entry.failed_at,
            entry.error,
        )
    return table
