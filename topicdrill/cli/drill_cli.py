"""
topicdrill: Terminal interface for spaced-repetition past-paper practice.

A Rich terminal interface that picks due topics, serves one unseen
question per topic, and updates FSRS memory state from your ratings.

Commands:
- topicdrill study    - Start a practice session
- topicdrill stats    - Show per-topic memory state
- topicdrill topics   - List topics in the question bank
- topicdrill reset    - Delete all progress
- topicdrill migrate  - Rewrite a legacy progress file as version 2
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from loguru import logger

from config import get_settings

from ..controller import DrillController
from ..scheduling.memory_model import Rating, State, retrievability
from ..scheduling.progress_store import LoadOutcome, ProgressFormatError
from ..scheduling.session_selector import SelectionStatus, SessionItem
from ..scheduling.topic_catalog import TopicCatalog, load_question_bank, problem_link, topic_name_from_id
from ..sync.storage import ConflictError, StorageError

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="topicdrill",
    help="topicdrill: spaced-repetition past-paper practice",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "success": "bold green",
    "error": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
    "state": {
        State.NEW: "white",
        State.LEARNING: "blue",
        State.REVIEW: "green",
        State.RELEARNING: "red",
    },
}

RATING_LABELS = {
    Rating.AGAIN: "Again",
    Rating.HARD: "Hard",
    Rating.GOOD: "Good",
    Rating.EASY: "Easy",
}


def style_state(state: State) -> str:
    """Get styled state string."""
    color = STYLES["state"].get(state, "white")
    return f"[{color}]{state.name.title()}[/{color}]"


def fail(message: str) -> None:
    """Print an error and exit non-zero."""
    console.print(f"\n[{STYLES['error']}]{message}[/{STYLES['error']}]")
    raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================

def display_dashboard(items: list[SessionItem], viewer_url: str) -> None:
    """Show every session item with its status."""
    table = Table(title="Session", title_justify="left")
    table.add_column("#", justify="right")
    table.add_column("Module")
    table.add_column("Problem")
    table.add_column("Topics")
    table.add_column("Link", overflow="fold")
    table.add_column("Status")

    for i, item in enumerate(items, 1):
        q = item.question
        tags = ", ".join(topic_name_from_id(t) for t in item.selected_topics) or "-"
        status = "[green]Completed[/green]" if item.is_done else "[yellow]Open[/yellow]"
        table.add_row(
            str(i),
            q.module,
            q.raw,
            tags,
            problem_link(q, viewer_url) or "[dim]-[/dim]",
            status,
        )

    console.print(table)


def display_item(item: SessionItem, viewer_url: str) -> None:
    """Show one problem card."""
    q = item.question
    content = f"[bold]{q.module} - {q.raw}[/bold]\n[dim]{q.topic}[/dim]"
    link = problem_link(q, viewer_url)
    if link:
        content += f"\n\nOpen problem: {link}"

    console.print(Panel(content, border_style="cyan", padding=(1, 2)))


def edit_topics(controller: DrillController, item: SessionItem) -> None:
    """Let the user add or remove related topics before rating."""
    related = controller.related_topics(item.session_id)
    if not related:
        return

    while True:
        tags = ", ".join(topic_name_from_id(t) for t in item.selected_topics) or "(none)"
        console.print(f"\n[bold]Topics:[/bold] {tags}")

        choice = Prompt.ask(
            "[dim]Add related topic (number), remove one (-number), "
            "list topics (l), or Enter to rate[/dim]",
            default="",
            show_default=False,
        ).strip()

        if not choice:
            return

        if choice.lower() == "l":
            for i, topic in enumerate(related, 1):
                mark = "*" if topic.id in item.selected_topics else " "
                console.print(f"  {mark} {i:>2}. {topic.name}")
            continue

        remove = choice.startswith("-")
        try:
            index = int(choice.lstrip("-"))
            if index < 1:
                raise IndexError(index)
            topic = related[index - 1]
        except (ValueError, IndexError):
            console.print(f"[{STYLES['warning']}]Invalid choice: {choice}[/{STYLES['warning']}]")
            continue

        if remove:
            controller.remove_topic(item.session_id, topic.id)
        else:
            controller.add_topic(item.session_id, topic.id)


def ask_rating() -> int:
    """Ask for a 1-4 rating."""
    console.print("\n[dim]Rate difficulty:[/dim]")
    for rating, label in RATING_LABELS.items():
        console.print(f"  {int(rating)} = {label}")

    return IntPrompt.ask("Rating", choices=["1", "2", "3", "4"])


def display_load_result(outcome: LoadOutcome, message: str) -> None:
    style = STYLES["warning"] if outcome == LoadOutcome.UNKNOWN_VERSION else STYLES["success"]
    console.print(f"[{style}]{message}[/{style}]")


async def _load(controller: DrillController) -> None:
    try:
        result = await controller.load_progress()
    except (StorageError, ProgressFormatError) as e:
        logger.error(f"Loading progress failed: {e}")
        fail(f"Error: {e}")
    else:
        display_load_result(result.outcome, result.message)


async def _save(controller: DrillController) -> None:
    try:
        result = await controller.save_progress()
    except ConflictError as e:
        fail(f"Save failed: progress changed elsewhere while saving ({e}). Try again.")
    except StorageError as e:
        fail(f"Save failed: {e}")
    else:
        if result.remote_changed:
            console.print(
                f"[{STYLES['warning']}]Stored progress had changed since it was loaded "
                f"and has been overwritten.[/{STYLES['warning']}]"
            )
        console.print(f"[{STYLES['success']}]Saved successfully![/{STYLES['success']}]")


# =============================================================================
# Commands
# =============================================================================

@app.command()
def study(
    count: Optional[int] = typer.Option(
        None,
        "--count", "-n",
        min=1,
        help="Number of problems in the session",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible selection",
    ),
    bank: Optional[Path] = typer.Option(
        None,
        "--bank", "-b",
        help="Question bank JSON file",
    ),
) -> None:
    """
    Start an interactive practice session.

    Loads the question bank and stored progress, picks due topics, and
    records your ratings. Progress is saved at the end.
    """
    asyncio.run(_study(count, seed, bank))


async def _study(count: int | None, seed: int | None, bank: Path | None) -> None:
    settings = get_settings()
    controller = DrillController.from_settings(settings, seed=seed)
    count = count or settings.session_default_size

    console.print("\n[bold cyan]topicdrill[/bold cyan] - Past Paper Practice", style="bold")
    console.print("=" * 40)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Loading question bank...", total=None)
            bank_path = bank or settings.question_bank_path
            topic_count = controller.load_question_bank(bank_path)
            if topic_count == 0:
                progress.stop()
                fail(f"No question data found in {bank_path}")

            progress.update(task, description="Loading progress...")
            await _load(controller)

        selection = controller.start_session(count)

        if selection.status == SelectionStatus.NO_DATA:
            fail("Question data not loaded.")
        if selection.status == SelectionStatus.NOTHING_LEFT:
            console.print(
                "\n[green]No new questions available for the selected topics! "
                "You've completed everything![/green]"
            )
            raise typer.Exit(0)

        console.print(
            f"\n[bold]Session: {selection.total_items} problems[/bold] "
            f"({selection.due_count} topics due)"
        )

        try:
            while not controller.session_complete:
                display_dashboard(controller.session, settings.problem_viewer_url)
                open_items = [
                    (i, item) for i, item in enumerate(controller.session, 1) if not item.is_done
                ]
                choice = Prompt.ask(
                    "\nPick a problem (number) or 'f' to finish early",
                    choices=[str(i) for i, _ in open_items] + ["f"],
                    default=str(open_items[0][0]),
                )
                if choice == "f":
                    break

                item = controller.session[int(choice) - 1]
                display_item(item, settings.problem_viewer_url)
                edit_topics(controller, item)
                rating = ask_rating()
                controller.rate_item(item.session_id, rating)
                console.print(f"[{STYLES['success']}]Completed[/{STYLES['success']}]")

        except KeyboardInterrupt:
            console.print("\n\n[yellow]Session interrupted.[/yellow]")

        rated = controller.finish_session()
        console.print(Panel(
            f"[bold]Session Complete![/bold]\n\nProblems rated: {rated}",
            title="Summary",
            border_style="green",
        ))

        if rated and Confirm.ask("Save progress?", default=True):
            await _save(controller)
    finally:
        await controller.storage.close()


@app.command()
def stats() -> None:
    """Show memory state for every reviewed topic."""
    asyncio.run(_stats())


async def _stats() -> None:
    controller = DrillController.from_settings()
    try:
        await _load(controller)
    finally:
        await controller.storage.close()

    progress = controller.progress
    now = controller.clock()

    console.print("\n[bold cyan]Learning Statistics[/bold cyan]")
    console.print("=" * 40)

    summary = Table(show_header=False, box=None)
    summary.add_column("Metric", style="dim")
    summary.add_column("Value", style="bold")
    summary.add_row("Problems completed", str(len(progress.history_set())))
    summary.add_row("Topics tracked", str(len(progress.topics)))
    summary.add_row("Topics due now", str(len(progress.due_topic_ids(now))))
    summary.add_row("Custom topic tags", str(len(progress.custom_associations)))
    console.print(summary)

    if not progress.topics:
        return

    table = Table()
    table.add_column("Topic")
    table.add_column("State")
    table.add_column("Stability", justify="right")
    table.add_column("Difficulty", justify="right")
    table.add_column("Recall", justify="right")
    table.add_column("Due")

    for topic_id, s in sorted(progress.topics.items(), key=lambda kv: kv[1].due):
        due_style = "yellow" if s.is_due(now) else "green"
        r = retrievability(s.stability, s.elapsed_days(now)) if s.stability > 0 else 0.0
        table.add_row(
            topic_id,
            style_state(s.state),
            f"{s.stability:.1f}d",
            f"{s.difficulty:.2f}",
            f"{r * 100:.0f}%",
            f"[{due_style}]{s.due:%Y-%m-%d}[/{due_style}]",
        )

    console.print(table)


@app.command()
def topics(
    module: Optional[str] = typer.Option(
        None,
        "--module", "-m",
        help="Show only one module",
    ),
    bank: Optional[Path] = typer.Option(
        None,
        "--bank", "-b",
        help="Question bank JSON file",
    ),
) -> None:
    """List the topics in the question bank."""
    bank_path = bank or get_settings().question_bank_path
    catalog = TopicCatalog.from_question_bank(load_question_bank(bank_path))
    if catalog.is_empty:
        fail(f"No question data found in {bank_path}")

    modules = [module] if module else catalog.modules
    table = Table()
    table.add_column("Module")
    table.add_column("Topic")
    table.add_column("Questions", justify="right")

    for mod in modules:
        for topic in catalog.topics_in_module(mod):
            table.add_row(mod, topic.name, str(len(catalog.questions_for(topic))))

    console.print(table)


@app.command()
def reset(
    confirm: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Delete all study history and FSRS data, then save."""
    msg = (
        "PERMANENTLY delete all study history and FSRS data? "
        "This cannot be undone once saved!"
    )
    if not confirm and not Confirm.ask(msg, default=False):
        raise typer.Exit(0)

    asyncio.run(_reset())


async def _reset() -> None:
    controller = DrillController.from_settings()
    try:
        try:
            result = await controller.load_progress()
        except ProgressFormatError as e:
            logger.warning(f"Resetting over unreadable progress file: {e}")
            console.print(
                f"[{STYLES['warning']}]Stored progress is unreadable and will be "
                f"replaced ({e}).[/{STYLES['warning']}]"
            )
        except StorageError as e:
            logger.error(f"Loading progress failed: {e}")
            fail(f"Error: {e}")
        else:
            display_load_result(result.outcome, result.message)

        controller.reset_progress(confirm=True)
        await _save(controller)
    finally:
        await controller.storage.close()

    console.print("[green]All progress has been reset.[/green]")


@app.command()
def migrate() -> None:
    """Load a legacy progress file and save it back as version 2."""
    asyncio.run(_migrate())


async def _migrate() -> None:
    controller = DrillController.from_settings()
    try:
        result = await controller.load_progress()
        display_load_result(result.outcome, result.message)
        if result.outcome != LoadOutcome.MIGRATED:
            console.print("[dim]Nothing to migrate.[/dim]")
            return
        await _save(controller)
    except (StorageError, ProgressFormatError) as e:
        fail(f"Error: {e}")
    finally:
        await controller.storage.close()


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            rotation="1 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        )

    app()


if __name__ == "__main__":
    main()
