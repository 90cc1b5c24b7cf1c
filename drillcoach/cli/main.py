"""
drillcoach CLI

Terminal front end over the session orchestrator.

Usage:
    drillcoach init-db                       # Create tables (and seed the demo catalog)
    drillcoach seed                          # Load the demo drill catalog
    drillcoach start -u alice -c shooting    # Open a session and assign a drill
    drillcoach complete <session-id> -o success
    drillcoach status -u alice               # Confidence, XP, streak and queues
"""

from __future__ import annotations

import random
import sys
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import Settings, get_settings
from drillcoach.core.errors import DrillCoachError
from drillcoach.db.database import get_engine, init_db, make_session_factory
from drillcoach.progression.ledger import ProgressionLedger
from drillcoach.session.orchestrator import SessionOrchestrator
from drillcoach.store.seed import build_demo_drill_pool
from drillcoach.store.sql import SqlRecordStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="drillcoach",
    help="Adaptive drill assignment with XP and streak tracking",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")


def sql_store(settings: Settings) -> SqlRecordStore:
    return SqlRecordStore(
        factory=make_session_factory(get_engine()),
        confidence_seeds=settings.assignment.confidence.category_seeds,
        ledger=ProgressionLedger(settings.assignment),
    )


def build_store(settings: Settings) -> SqlRecordStore:
    init_db(get_engine())
    store = sql_store(settings)
    if settings.seed_demo_catalog and not store.get_drill_pool():
        store.add_drills(build_demo_drill_pool())
    return store


def build_orchestrator(settings: Settings) -> SessionOrchestrator:
    rng = random.Random(settings.random_seed)
    return SessionOrchestrator(build_store(settings), config=settings.assignment, rng=rng)


def _fail(error: DrillCoachError) -> None:
    console.print(f"[bold red]{type(error).__name__}:[/bold red] {error}")
    raise typer.Exit(1)


@app.callback()
def main_callback() -> None:
    configure_logging(get_settings())


# =============================================================================
# Commands
# =============================================================================


@app.command("init-db")
def init_db_command(
    seed: bool = typer.Option(True, "--seed/--no-seed", help="Load the demo drill catalog"),
) -> None:
    """Create database tables."""
    init_db(get_engine())
    if seed:
        count = sql_store(get_settings()).add_drills(build_demo_drill_pool())
        console.print(f"[green]Loaded {count} demo drills[/green]")
    console.print("[green]Database ready[/green]")


@app.command()
def seed() -> None:
    """Load the demo drill catalog."""
    init_db(get_engine())
    count = sql_store(get_settings()).add_drills(build_demo_drill_pool())
    console.print(f"[green]Loaded {count} demo drills[/green]")


@app.command()
def start(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
    category: str = typer.Option("shooting", "--category", "-c", help="Drill category"),
    duration: Optional[int] = typer.Option(None, "--duration", "-d", help="Requested minutes"),
    difficulty: Optional[str] = typer.Option(None, "--difficulty", help="easy | medium | hard"),
    skill_level: Optional[str] = typer.Option(None, "--skill-level", help="beginner | intermediate | advanced"),
    goal: Optional[str] = typer.Option(None, "--goal", help="Learner goal, e.g. scholarship"),
) -> None:
    """Open a practice session and assign a drill."""
    orchestrator = build_orchestrator(get_settings())
    try:
        started = orchestrator.start_session(
            user_id=user,
            category=category,
            requested_duration=duration,
            difficulty_hint=difficulty,
            skill_level=skill_level,
            goal=goal,
        )
    except DrillCoachError as e:
        _fail(e)
        return

    drill = started.assigned_drill
    meta = started.metadata
    body = [
        f"[bold]{drill.title or drill.id}[/bold]  ({drill.category}, difficulty {drill.difficulty_score:.0f})",
        drill.summary,
        f"Duration: {started.effective_duration_minutes} min",
        f"Target {meta.target_difficulty:.1f}, window [{meta.window.low:.1f}, {meta.window.high:.1f}]",
    ]
    if meta.is_reinforcement:
        body.append("[yellow]Reinforcement drill[/yellow]")
    if started.explanation.show_why:
        body.append(f"[dim]{started.explanation.message}[/dim]")
    body.append(f"Session: [cyan]{started.session_id}[/cyan]")

    console.print(Panel("\n".join(body), title="Assigned drill", border_style="cyan"))


@app.command()
def complete(
    session_id: str = typer.Argument(..., help="Session id from 'start'"),
    outcome: str = typer.Option(..., "--outcome", "-o", help="success | partial | fail"),
    duration: float = typer.Option(0, "--duration", "-d", help="Minutes practiced"),
    xp: Optional[float] = typer.Option(None, "--xp", help="Explicit XP award"),
    confidence: Optional[float] = typer.Option(None, "--confidence", help="Explicit confidence after"),
) -> None:
    """Complete a session and update XP, streak and confidence."""
    orchestrator = build_orchestrator(get_settings())
    try:
        done = orchestrator.complete_session(
            session_id,
            outcome,
            duration_minutes=duration,
            xp_earned=xp,
            confidence_after=confidence,
        )
    except DrillCoachError as e:
        _fail(e)
        return

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("XP awarded", f"+{done.xp_awarded}")
    table.add_row("Total XP", str(done.xp_state.xp))
    table.add_row("Level", f"{done.xp_state.level} ({done.xp_state.xp_to_next_level} to next)")
    table.add_row("Streak", f"{done.streak_state.current_streak_days} days (best {done.streak_state.longest_streak_days})")
    table.add_row(f"Confidence ({done.attempt.category})", f"{done.updated_category_confidence:.2f}")
    console.print(table)


@app.command()
def status(
    user: str = typer.Option(..., "--user", "-u", help="Learner id"),
) -> None:
    """Show a learner's progression state."""
    state = build_store(get_settings()).get_user(user)

    console.print(f"\n[bold cyan]{user}[/bold cyan]")
    console.print(
        f"XP {state.xp_state.xp} | Level {state.xp_state.level} | "
        f"Streak {state.streak_state.current_streak_days} (best {state.streak_state.longest_streak_days})"
    )

    table = Table(title="Categories")
    table.add_column("Category", style="cyan")
    table.add_column("Confidence", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Reinforcement queue")
    categories = sorted(set(state.confidence_by_category) | {a.category for a in state.attempts})
    for category in categories:
        table.add_row(
            category,
            f"{state.confidence_by_category.get(category, 0.0):.2f}",
            str(len(state.category_attempts(category))),
            ", ".join(state.queue_for(category)) or "-",
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    run()
