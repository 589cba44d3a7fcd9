"""Command-line interface for the gamification engine.

Built with Typer for commands and Rich for output. Mostly a display shell
over the engine's read accessors; `finish` replays a book-finished event.
"""

import logging
from datetime import date
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .engine import GamificationEngine
from .errors import GamificationError
from .library import LibraryBook, LibrarySnapshot
from .rewards import RewardType
from .streaks import StreakStatus
from .xp import LevelState

# Create the main app
app = typer.Typer(
    name="shelfquest",
    help="XP, streaks, achievements and reading challenges.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
challenge_app = typer.Typer(help="Manage reading challenges and track progress.")
app.add_typer(challenge_app, name="challenge")

# Rich console for pretty output
console = Console()


@app.callback()
def main_callback() -> None:
    """Configure logging from SHELFQUEST_LOG_LEVEL."""
    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def progress_bar(percent: float, width: int = 20) -> str:
    """Render a percentage as a text bar."""
    filled = int((min(percent, 100) / 100) * width)
    return "[green]" + "#" * filled + "[/green]" + "-" * (width - filled)


def get_engine() -> GamificationEngine:
    return GamificationEngine(get_db())


def parse_date(value: Optional[str], option: str) -> Optional[date]:
    """Parse a YYYY-MM-DD option, exiting with an error if malformed."""
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid {option} date: {value} (expected YYYY-MM-DD)")
        raise typer.Exit(1)


# ============================================================================
# Profile Commands
# ============================================================================


@app.command()
def status(
    user_id: str = typer.Argument(..., help="User ID"),
) -> None:
    """Show level, XP and streak for a user."""
    engine = get_engine()

    account = engine.get_xp(user_id)
    streak = engine.get_streak(user_id)
    streak_state = engine.streaks.get_status(user_id)
    level = LevelState.from_total(account.total_xp)

    console.print(Panel(
        f"[bold]Level {account.current_level}[/bold]\n"
        f"{progress_bar(level.level_progress * 100)} "
        f"{level.xp_into_level} XP into level, {account.xp_to_next_level} to next\n"
        f"[dim]Total XP: {account.total_xp}[/dim]",
        title=user_id,
        style="cyan",
    ))

    status_color = {
        StreakStatus.ACTIVE: "green",
        StreakStatus.AT_RISK: "yellow",
        StreakStatus.BROKEN: "red",
        StreakStatus.NONE: "dim",
    }[streak_state]

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Current Streak", f"{streak.current_streak} days")
    table.add_row("Longest Streak", f"{streak.longest_streak} days")
    table.add_row("Last Activity", str(streak.last_activity_date or "-"))
    table.add_row("Freeze", "used" if streak.freeze_used else "available")
    table.add_row("Status", f"[{status_color}]{streak_state.value}[/{status_color}]")
    console.print(table)


@app.command()
def achievements(
    user_id: str = typer.Argument(..., help="User ID"),
    limit: int = typer.Option(10, "--limit", "-l", help="Max achievements to show"),
) -> None:
    """Show a user's most recent achievements."""
    engine = get_engine()

    earned = engine.get_recent_achievements(user_id, limit=limit)
    if not earned:
        console.print("[dim]No achievements yet. Finish a book to earn your first![/dim]")
        return

    table = Table(title="Achievements", show_header=True, header_style="bold magenta")
    table.add_column("", justify="center")
    table.add_column("Badge", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Earned", style="dim")

    for a in earned:
        table.add_row(a.badge_emoji, a.badge_name, a.badge_description or "", a.earned_at.strftime("%Y-%m-%d"))

    console.print(table)


@app.command()
def rewards(
    user_id: str = typer.Argument(..., help="User ID"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include locked rewards"),
    reward_type: Optional[RewardType] = typer.Option(None, "--type", "-t", help="Filter by type"),
) -> None:
    """Show a user's virtual rewards."""
    engine = get_engine()

    if show_all:
        entries = engine.get_reward_catalog(user_id)
        if reward_type:
            entries = [e for e in entries if e.reward_type == reward_type]
    else:
        entries = engine.get_rewards(user_id, reward_type=reward_type)

    if not entries:
        console.print("[dim]No rewards unlocked yet. Use --all to see what's available.[/dim]")
        return

    table = Table(title="Rewards", show_header=True, header_style="bold magenta")
    table.add_column("", justify="center")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Threshold", justify="right")
    table.add_column("Description")
    table.add_column("Unlocked")

    for r in entries:
        unlocked = (
            f"[green]{r.unlocked_at.strftime('%Y-%m-%d')}[/green]" if r.is_unlocked else "[dim]locked[/dim]"
        )
        table.add_row(r.emoji or "", r.reward_name, r.reward_type.value, r.reward_value, r.description or "", unlocked)

    console.print(table)


@app.command()
def finish(
    user_id: str = typer.Argument(..., help="User ID"),
    book_id: str = typer.Argument(..., help="Book ID"),
    finish_date: Optional[str] = typer.Option(None, "--date", "-d", help="Finish date (YYYY-MM-DD), default today"),
    title: Optional[str] = typer.Option(None, "--title", help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author"),
    genre: Optional[List[str]] = typer.Option(None, "--genre", "-g", help="Genre (repeatable)"),
    rating: Optional[float] = typer.Option(None, "--rating", "-r", help="Rating (0-5)"),
    book_format: Optional[str] = typer.Option(None, "--format", "-f", help="Format (e.g. ebook)"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Publication year"),
) -> None:
    """Record a finished book and show everything it triggered.

    The library snapshot holds only this book, so count-based achievements
    reflect a one-book library.
    """
    engine = get_engine()

    try:
        book = LibraryBook(
            id=book_id,
            title=title,
            author=author,
            finish_date=parse_date(finish_date, "finish") or date.today(),
            rating=rating,
            genres=genre or [],
            format=book_format,
            publication_year=year,
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        result = engine.handle_book_finished(user_id, book, LibrarySnapshot(user_id=user_id, books=[book]))
    except GamificationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if result.xp_gained:
        print_success(f"+{result.xp_gained} XP")
    for level_up in result.level_ups:
        console.print(f"[bold magenta]Level up![/bold magenta] {level_up.previous_level} -> {level_up.new_level}")
    if result.streak:
        console.print(f"[cyan]Streak:[/cyan] {result.streak.current_streak} days")
    for a in result.new_achievements:
        console.print(f"{a.badge_emoji} [bold]{a.badge_name}[/bold] unlocked")
    for outcome in result.challenge_outcomes:
        line = f"  {outcome.challenge_name}: {outcome.completed_book_count}/{outcome.target_count} ({outcome.status.value})"
        if outcome.newly_completed:
            line += " [bold green]COMPLETED[/bold green]"
        console.print(line)
    for r in result.new_rewards:
        console.print(f"{r.emoji or ''} [bold]{r.reward_name}[/bold] ({r.reward_type.value}) unlocked")
    for w in result.warnings:
        print_warning(f"{w.step} failed: {w.message}")

    if result.xp:
        console.print(f"[dim]Level {result.xp.current_level}, {result.xp.total_xp} XP total[/dim]")


# ============================================================================
# Challenge Commands
# ============================================================================


@challenge_app.command("create")
def challenge_create(
    owner_id: str = typer.Argument(..., help="Owner user ID"),
    name: str = typer.Argument(..., help="Challenge name"),
    target: int = typer.Argument(..., help="Books each participant must finish"),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End date (YYYY-MM-DD)"),
    reward_xp: int = typer.Option(0, "--reward-xp", "-x", help="XP paid to each finisher"),
    share: Optional[List[str]] = typer.Option(None, "--share", help="Share with user (repeatable)"),
    genre: Optional[List[str]] = typer.Option(None, "--genre", "-g", help="Required genre (any-of)"),
    author: Optional[List[str]] = typer.Option(None, "--author", "-a", help="Required author (any-of)"),
    book_format: Optional[List[str]] = typer.Option(None, "--format", "-f", help="Required format (any-of)"),
    min_rating: Optional[float] = typer.Option(None, "--min-rating", help="Minimum rating"),
    year_min: Optional[int] = typer.Option(None, "--year-min", help="Earliest publication year"),
    year_max: Optional[int] = typer.Option(None, "--year-max", help="Latest publication year"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
) -> None:
    """Create a new reading challenge."""
    engine = get_engine()

    # Default dates: today to end of year
    today = date.today()
    start_date = parse_date(start, "start") or today
    end_date = parse_date(end, "end") or date(today.year, 12, 31)

    data = {
        "name": name,
        "description": description,
        "target_count": target,
        "start_date": start_date,
        "end_date": end_date,
        "reward_xp": reward_xp,
        "shared_with": share or [],
        "conditions": {
            "genres": genre,
            "authors": author,
            "formats": book_format,
            "min_rating": min_rating,
            "year_min": year_min,
            "year_max": year_max,
        },
    }

    try:
        challenge = engine.challenges.create_challenge(owner_id, data)
    except GamificationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Challenge created: {challenge.name}")
    console.print(f"[dim]ID: {challenge.id}[/dim]")
    console.print(f"[dim]Target: {target} books[/dim]")
    console.print(f"[dim]Period: {start_date} to {end_date}[/dim]")
    if challenge.shared_with:
        console.print(f"[dim]Shared with: {', '.join(challenge.shared_with)}[/dim]")


@challenge_app.command("list")
def challenge_list(
    user_id: str = typer.Argument(..., help="User ID"),
    active_only: bool = typer.Option(False, "--active", help="Show only active"),
) -> None:
    """List a user's challenges with their own progress."""
    engine = get_engine()

    challenges = engine.get_challenges(user_id, active_only=active_only)

    if not challenges:
        console.print("[dim]No challenges found. Create one with 'challenge create'[/dim]")
        return

    table = Table(title="Reading Challenges", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Progress", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Ends")
    table.add_column("Status")

    for ch in challenges:
        mine = ch.progress_for(user_id)
        count = mine.completed_book_count if mine else 0
        percent = mine.percent if mine else 0.0

        if mine and mine.completed:
            status_label = "[bold green]DONE[/bold green]"
        elif ch.is_closed:
            status_label = "[dim]closed[/dim]"
        elif ch.is_active:
            status_label = "[yellow]active[/yellow]"
        else:
            status_label = "[dim]pending[/dim]"

        table.add_row(ch.name, str(count), str(ch.target_count), f"{percent:.0f}%", str(ch.end_date), status_label)

    console.print(table)


@challenge_app.command("show")
def challenge_show(
    challenge_id: str = typer.Argument(..., help="Challenge ID"),
) -> None:
    """Show every participant's progress on a challenge."""
    engine = get_engine()

    try:
        challenge = engine.challenges.get_challenge(challenge_id)
    except GamificationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold]{challenge.name}[/bold]\n"
        f"{challenge.description or ''}\n"
        f"[dim]{challenge.start_date} to {challenge.end_date}, "
        f"{challenge.reward_xp} XP reward[/dim]",
        style="cyan",
    ))

    if challenge.conditions and not challenge.conditions.is_empty:
        console.print("  [bold]Conditions:[/bold]")
        for field, value in challenge.conditions.model_dump(exclude_none=True).items():
            shown = ", ".join(value) if isinstance(value, list) else value
            console.print(f"    {field}: {shown}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Progress")
    table.add_column("Books", justify="right")
    table.add_column("Status")

    for p in challenge.participants:
        role = " (owner)" if p.user_id == challenge.owner_id else ""
        table.add_row(
            f"{p.user_id}{role}",
            progress_bar(p.percent),
            f"{p.completed_book_count}/{p.target_count}",
            "[bold green]DONE[/bold green]" if p.completed else f"{p.remaining} to go",
        )

    console.print(table)


@challenge_app.command("share")
def challenge_share(
    challenge_id: str = typer.Argument(..., help="Challenge ID"),
    user_ids: List[str] = typer.Argument(..., help="Users to share with"),
) -> None:
    """Share a challenge with other users."""
    engine = get_engine()

    try:
        challenge = engine.challenges.share_challenge(challenge_id, user_ids)
    except GamificationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Shared '{challenge.name}' with {', '.join(user_ids)}")


# ============================================================================
# Database Commands
# ============================================================================


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)

    get_db().create_tables()
    print_success(f"Database ready at {config.db_path}")


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    console.print(f"shelfquest version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
