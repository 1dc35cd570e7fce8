"""Command-line interface for mediashelf.

Built with Typer for commands and Rich for output.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import (
    BookCreate,
    BookMetadataResponse,
    Library,
    LibraryCreate,
    LibraryResponse,
    SeriesCover,
    get_db,
)
from .db.repositories import BookMetadataRepository, BookRepository, LibraryRepository
from .errors import MediaShelfError
from .series.repository import SeriesMetadataRepository, SeriesRepository
from .series.schemas import SeriesCreate, SeriesMetadataResponse, SeriesResponse, ThumbnailCreate

# Create the main app
app = typer.Typer(
    name="mediashelf",
    help="Manage comic and book series in your media libraries.",
    no_args_is_help=True,
)

library_app = typer.Typer(help="Manage libraries.")
app.add_typer(library_app, name="library")

series_app = typer.Typer(help="Manage series and the books in them.")
app.add_typer(series_app, name="series")

tasks_app = typer.Typer(help="Inspect the background task queue.")
app.add_typer(tasks_app, name="tasks")

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


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Turn domain errors into an error line and exit code 1."""
    try:
        yield
    except MediaShelfError as e:
        print_error(str(e))
        raise typer.Exit(1)


def get_lifecycle():
    """Build the series lifecycle on the configured database."""
    from .series.lifecycle import SeriesLifecycle

    return SeriesLifecycle(get_db())


def format_series_table(series_list: list[SeriesResponse], title: str = "Series") -> Table:
    """Create a rich table for displaying series."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Books", justify="right")
    table.add_column("Deleted", style="red")

    for series in series_list:
        table.add_row(
            series.id,
            series.name,
            str(series.book_count),
            "yes" if series.is_deleted else "",
        )

    return table


# ============================================================================
# Setup Commands
# ============================================================================


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""
    db = get_db()
    db.create_tables()
    print_success(f"Database ready at {db.db_path}")


# ============================================================================
# Library Commands
# ============================================================================


@library_app.command("add")
def library_add(
    name: str = typer.Argument(..., help="Library name"),
    root: Path = typer.Argument(..., help="Root folder of the library"),
    cover: SeriesCover = typer.Option(
        SeriesCover.FIRST, "--cover", "-c", help="Which book provides a series cover"
    ),
) -> None:
    """Register a new library."""
    data = LibraryCreate(name=name, root=str(root), series_cover=cover)
    with exit_on_error():
        library = LibraryRepository(get_db()).insert(
            Library(id=data.id, name=data.name, root=data.root, series_cover=data.series_cover.value)
        )
    result = LibraryResponse.model_validate(library)
    print_success(f"Added library '{result.name}'")
    console.print(f"[dim]ID: {result.id}[/dim]")


@library_app.command("list")
def library_list() -> None:
    """List all libraries."""
    libraries = LibraryRepository(get_db()).find_all()
    if not libraries:
        print_info("No libraries found")
        return

    table = Table(title=f"Libraries ({len(libraries)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Root")
    table.add_column("Cover")
    for library in libraries:
        table.add_row(library.id, library.name, library.root, library.series_cover)
    console.print(table)


# ============================================================================
# Series Commands
# ============================================================================


@series_app.command("create")
def series_create(
    library_id: str = typer.Argument(..., help="Library ID"),
    name: str = typer.Argument(..., help="Series name"),
) -> None:
    """Create a new, empty series."""
    with exit_on_error():
        library = LibraryRepository(get_db()).find_by_id(library_id)
        result = get_lifecycle().create_series(
            SeriesCreate(
                library_id=library_id,
                name=name,
                url=str(Path(library.root) / name),
            )
        )
    console.print(Panel(
        f"[bold]{result.name}[/bold]\nLibrary: {library.name}",
        title="[green]Series Created[/green]",
    ))
    console.print(f"\n[dim]ID: {result.id}[/dim]")


@series_app.command("list")
def series_list(
    library_id: Optional[str] = typer.Option(None, "--library", "-l", help="Filter by library"),
    include_deleted: bool = typer.Option(False, "--all", "-a", help="Include soft-deleted series"),
) -> None:
    """List series."""
    rows = SeriesRepository(get_db()).find_all(library_id=library_id, include_deleted=include_deleted)
    if not rows:
        print_info("No series found")
        return
    series = [SeriesResponse.model_validate(row) for row in rows]
    console.print(format_series_table(series, title=f"Series ({len(series)} found)"))


@series_app.command("show")
def series_show(
    series_id: str = typer.Argument(..., help="Series ID"),
) -> None:
    """Show a series with its books in reading order."""
    db = get_db()
    with exit_on_error():
        series = SeriesResponse.model_validate(SeriesRepository(db).find_by_id(series_id))
    row = SeriesMetadataRepository(db).find_by_id_or_none(series_id)
    metadata = SeriesMetadataResponse.model_validate(row) if row else None

    content = f"[bold]{series.name}[/bold]\n"
    if metadata is not None:
        content += f"Sort title: {metadata.title_sort}\nStatus: {metadata.status.value}\n"
    content += f"Books: {series.book_count}"
    if series.is_deleted:
        content += f"\n[red]Deleted on {series.deleted_date:%Y-%m-%d}[/red]"
    console.print(Panel(content, title="Series"))

    books = BookRepository(db).find_all_by_series_id(series_id, include_deleted=True)
    if not books:
        print_info("No books in this series")
        return

    labels = {
        m.book_id: BookMetadataResponse.model_validate(m).number
        for m in BookMetadataRepository(db).find_all_by_ids([b.id for b in books])
    }

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Number")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    for book in books:
        name = f"[strike]{book.name}[/strike]" if book.is_deleted else book.name
        table.add_row(str(book.number), labels.get(book.id, "-"), name, book.id)
    console.print(table)


@series_app.command("add-books")
def series_add_books(
    series_id: str = typer.Argument(..., help="Series ID"),
    names: list[str] = typer.Argument(..., help="Book file names"),
) -> None:
    """Add books to a series and renumber it."""
    db = get_db()
    lifecycle = get_lifecycle()
    with exit_on_error():
        series = SeriesRepository(db).find_by_id(series_id)
        start = series.book_count
        books = [
            BookCreate(
                library_id=series.library_id,
                name=name,
                url=str(Path(series.url) / name) if series.url else None,
                number=start + index,
            )
            for index, name in enumerate(names, start=1)
        ]
        added = lifecycle.add_books(series_id, books)
        ordered = lifecycle.sort_books(series_id)

    print_success(f"Added {len(added)} book(s), series now has {len(ordered)}")


@series_app.command("sort")
def series_sort(
    series_id: str = typer.Argument(..., help="Series ID"),
) -> None:
    """Renumber the books of a series in natural name order."""
    with exit_on_error():
        ordered = get_lifecycle().sort_books(series_id)

    for book in ordered:
        console.print(f"{book.number:>4}  {book.name}")
    print_success(f"Sorted {len(ordered)} book(s)")


@series_app.command("delete")
def series_delete(
    series_ids: list[str] = typer.Argument(..., help="Series IDs"),
    soft: bool = typer.Option(False, "--soft", "-s", help="Mark as deleted instead of removing"),
) -> None:
    """Delete series and their books."""
    lifecycle = get_lifecycle()
    with exit_on_error():
        if soft:
            done = lifecycle.soft_delete_many(series_ids)
        else:
            done = lifecycle.delete_many(series_ids)

    verb = "Soft-deleted" if soft else "Deleted"
    print_success(f"{verb} {len(done)} series")


@series_app.command("restore")
def series_restore(
    series_ids: list[str] = typer.Argument(..., help="Series IDs"),
) -> None:
    """Restore soft-deleted series."""
    with exit_on_error():
        done = get_lifecycle().restore_many(series_ids)
    print_success(f"Restored {len(done)} series")


@series_app.command("mark-read")
def series_mark_read(
    series_id: str = typer.Argument(..., help="Series ID"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User (default from config)"),
) -> None:
    """Mark every book of a series as read."""
    user_id = user or get_config().default_user
    with exit_on_error():
        progresses = get_lifecycle().mark_read_progress_completed(series_id, user_id)
    print_success(f"Marked {len(progresses)} book(s) as read for {user_id}")


@series_app.command("mark-unread")
def series_mark_unread(
    series_id: str = typer.Argument(..., help="Series ID"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="User (default from config)"),
) -> None:
    """Clear read progress on every book of a series."""
    user_id = user or get_config().default_user
    with exit_on_error():
        removed = get_lifecycle().delete_read_progress(series_id, user_id)
    print_success(f"Cleared read progress on {len(removed)} book(s) for {user_id}")


@series_app.command("add-thumbnail")
def series_add_thumbnail(
    series_id: str = typer.Argument(..., help="Series ID"),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image file"),
    selected: bool = typer.Option(False, "--selected", help="Use as the series cover"),
) -> None:
    """Attach an image file as a series thumbnail."""
    from .series.thumbnails import to_url

    with exit_on_error():
        thumbnail = get_lifecycle().add_thumbnail_for_series(
            ThumbnailCreate(series_id=series_id, url=to_url(path), selected=selected)
        )
    print_success(f"Added thumbnail {thumbnail.id}")


@series_app.command("housekeeping")
def series_housekeeping(
    series_id: Optional[str] = typer.Argument(None, help="Series ID (all series if omitted)"),
    library_id: Optional[str] = typer.Option(None, "--library", "-l", help="Limit to one library"),
) -> None:
    """Remove missing thumbnails and fix the selected one."""
    lifecycle = get_lifecycle()
    with exit_on_error():
        if series_id:
            selected = lifecycle.thumbnails_housekeeping(series_id)
            if selected is None:
                print_info("Series has no thumbnails")
            else:
                console.print(f"Selected thumbnail: {selected.url}")
            return
        count = lifecycle.housekeep_all_thumbnails(library_id=library_id)
    print_success(f"Checked thumbnails of {count} series")


# ============================================================================
# Task Commands
# ============================================================================


@tasks_app.command("list")
def tasks_list() -> None:
    """List pending background tasks."""
    from .tasks import TaskReceiver

    pending = TaskReceiver(get_db()).list_pending()
    if not pending:
        print_info("No pending tasks")
        return

    table = Table(title=f"Pending tasks ({len(pending)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Type", style="cyan")
    table.add_column("Book")
    table.add_column("Fields")
    table.add_column("Retries", justify="right")
    for task in pending:
        table.add_row(
            str(task.id),
            task.task_type.value,
            task.book_id,
            ", ".join(c.value for c in task.capabilities),
            str(task.retry_count),
        )
    console.print(table)


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"mediashelf version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
