"""Command-line interface for readtrack.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
import math
from datetime import timedelta
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import LOG_LEVELS, get_config
from .dates import parse_calendar_date, to_datetime
from .db import BookCreate, get_db
from .errors import ReadTrackError, SessionConflictError
from .reading import ManualEntryValidator, get_session_manager
from .stats import Granularity, StatisticsAggregator, TrendBucketer, TrendMetric

# Create the main app
app = typer.Typer(
    name="readtrack",
    help="Track reading sessions and reading statistics.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


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


def format_duration(ms: int) -> str:
    """Format milliseconds as ``1h 05m`` / ``12m 30s``."""
    seconds = ms // 1000
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m {seconds:02d}s"


def format_timestamp(ms: Optional[int]) -> str:
    if ms is None:
        return "-"
    return to_datetime(ms, get_config().tzinfo()).strftime("%Y-%m-%d %H:%M")


@app.callback()
def setup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level"),
) -> None:
    """Configure logging for every command."""
    config = get_config()
    for problem in config.validate():
        print_warning(problem)
    level = config.log_level if config.log_level in LOG_LEVELS else "WARNING"
    if verbose:
        level = "INFO"
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ============================================================================
# Book Commands
# ============================================================================


@app.command("book-add")
def book_add(
    title: str = typer.Argument(..., help="Book title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Author"),
    book_id: Optional[str] = typer.Option(None, "--id", help="Explicit book ID"),
) -> None:
    """Add a book that reading sessions can be recorded against."""
    try:
        book = get_db().create_book(BookCreate(id=book_id, title=title, author=author))
    except ReadTrackError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Added: {book.title} [dim]({book.id})[/dim]")


@app.command("books")
def list_books() -> None:
    """List books."""
    books = get_db().get_all_books()
    if not books:
        console.print("[dim]No books found.[/dim]")
        return

    table = Table(title="Books", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    for book in books:
        table.add_row(book.id, book.title, book.author or "-")
    console.print(table)


# ============================================================================
# Reading Session Commands
# ============================================================================


@app.command()
def start(
    book_id: str = typer.Argument(..., help="ID of the book to read"),
    progress: float = typer.Option(0.0, "--progress", "-p", help="Starting progress"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Add a note"),
) -> None:
    """Start a timed reading session."""
    manager = get_session_manager(get_db())
    try:
        session_id = manager.start_session(book_id, progress, notes=note)
    except SessionConflictError as e:
        active = e.active_session
        print_error(
            f"A session is already running for book {active.book_id} "
            f"(started {format_timestamp(active.start_time)}). Stop it first."
        )
        raise typer.Exit(1)
    except ReadTrackError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Reading session started [dim]({session_id})[/dim]")


@app.command()
def stop(
    progress: float = typer.Option(..., "--progress", "-p", help="Ending progress"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Replace the session note"),
    session_id: Optional[str] = typer.Option(None, "--id", help="Session to stop"),
) -> None:
    """Stop the active reading session."""
    manager = get_session_manager(get_db())

    if session_id is None:
        active = manager.get_active_session()
        if active is None:
            print_warning("No active session to stop.")
            raise typer.Exit(1)
        session_id = active.id

    try:
        closed = manager.end_session(session_id, progress, notes=note)
    except ReadTrackError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print("[green]Reading session logged![/green]")
    console.print(f"  Duration: {format_duration(closed.duration)}")
    console.print(f"  Progress: {closed.start_progress:g} -> {closed.end_progress:g}")


@app.command()
def status() -> None:
    """Show the active reading session."""
    manager = get_session_manager(get_db())
    active = manager.get_active_session()
    if active is None:
        console.print("[dim]No active reading session.[/dim]")
        console.print("[dim]Use 'readtrack start BOOK_ID' to begin.[/dim]")
        return

    table = Table(title="Active Reading Session", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Session", active.id)
    table.add_row("Book", active.book_id)
    table.add_row("Started", format_timestamp(active.start_time))
    table.add_row("Elapsed", format_duration(manager.active_elapsed_ms()))
    table.add_row("Start Progress", f"{active.start_progress:g}")
    if active.notes:
        table.add_row("Notes", active.notes)
    console.print(table)


@app.command("log")
def log_manual(
    book_id: str = typer.Argument(..., help="ID of the book read"),
    minutes: float = typer.Option(..., "--minutes", "-m", help="Time spent reading"),
    from_progress: float = typer.Option(..., "--from", help="Progress at the start"),
    to_progress: float = typer.Option(..., "--to", help="Progress at the end"),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Reading date (YYYY-MM-DD)"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Add a note"),
) -> None:
    """Log reading done earlier without running a timer."""
    if not math.isfinite(minutes):
        print_error(f"Minutes must be a finite number, got {minutes}")
        raise typer.Exit(1)

    entry = ManualEntryValidator(get_db())
    reading_date = on or StatisticsAggregator(get_db()).today().isoformat()
    try:
        record_id = entry.add_manual_record(
            book_id,
            from_progress,
            to_progress,
            int(minutes * 60_000),
            reading_date,
            notes=note,
        )
    except ReadTrackError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Logged {minutes:g} minutes on {reading_date} [dim]({record_id})[/dim]")


# ============================================================================
# Statistics Commands
# ============================================================================


@app.command()
def stats(
    book_id: Optional[str] = typer.Option(None, "--book", "-b", help="Statistics for one book"),
) -> None:
    """Show reading statistics."""
    aggregator = StatisticsAggregator(get_db())

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    if book_id:
        book_stats = aggregator.book_statistics(book_id)
        table.title = f"Book {book_id}"
        table.add_row("Sessions", str(book_stats.record_count))
        table.add_row("Total Time", format_duration(book_stats.total_duration))
        table.add_row("Average Session", format_duration(book_stats.average_duration))
        table.add_row("Last Read", format_timestamp(book_stats.last_read))
        if book_stats.latest_progress is not None:
            table.add_row("Progress", f"{book_stats.latest_progress:g}")
    else:
        overview = aggregator.overview()
        table.title = "Reading Overview"
        table.add_row("Today", format_duration(overview.today))
        table.add_row("Last 7 Days", format_duration(overview.week))
        table.add_row("Last 30 Days", format_duration(overview.month))
        table.add_row("All Time", format_duration(overview.total))
        table.add_row("Days Read (30d)", str(overview.reading_days))
        table.add_row("Current Streak", f"{overview.current_streak} days")

    console.print(table)


@app.command()
def trend(
    start_date: Optional[str] = typer.Option(None, "--from", help="First day (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--to", help="Last day (YYYY-MM-DD)"),
    by: Granularity = typer.Option(Granularity.DAY, "--by", help="Bucket size"),
    metric: TrendMetric = typer.Option(TrendMetric.DURATION, "--metric", help="Bucket value"),
) -> None:
    """Show reading time or session counts per day, week or month."""
    try:
        last = parse_calendar_date(end_date) if end_date else StatisticsAggregator(get_db()).today()
        first = parse_calendar_date(start_date) if start_date else last - timedelta(days=6)
        points = TrendBucketer(get_db()).bucket_sessions(first, last, by, metric)
    except ReadTrackError as e:
        print_error(str(e))
        raise typer.Exit(1)

    table = Table(title=f"Reading Trend ({first} to {last})", header_style="bold magenta")
    table.add_column(by.value.title(), style="cyan")
    table.add_column("Time" if metric == TrendMetric.DURATION else "Sessions", justify="right")
    for point in points:
        value = format_duration(point.value) if metric == TrendMetric.DURATION else str(point.value)
        table.add_row(point.label, value)
    console.print(table)


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"readtrack version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
