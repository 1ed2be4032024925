"""Command-line interface for tbrlist.

Built with Typer for commands and Rich for output.
"""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, BookResponse, ReadingStatus
from .tags import TagError, TagManager, normalize_tag, parse_generated_tags

# Create the main app
app = typer.Typer(
    name="tbrlist",
    help="Track your reading list with canonical, deduplicated tags.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
tags_app = typer.Typer(help="Resolve, inspect and search tags.", no_args_is_help=True)
app.add_typer(tags_app, name="tags")

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


def get_manager() -> TagManager:
    """Build a tag manager over the configured database."""
    return TagManager(get_db(), get_config())


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
) -> None:
    """Configure logging before any command runs."""
    config = get_config()
    errors = config.validate()
    for error in errors:
        print_error(error)
    if errors:
        raise typer.Exit(1)

    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


# ============================================================================
# Book Commands
# ============================================================================


@app.command()
def add(
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    status: ReadingStatus = typer.Option(
        ReadingStatus.TO_READ, "--status", "-s", help="Reading status"
    ),
) -> None:
    """Add a book to the reading list, optionally with tags."""
    db = get_db()
    book = db.create_book(BookCreate(title=title, author=author, status=status))
    print_success(f"Added: {book.title} by {book.author} ({book.id})")

    if tag:
        try:
            book_tags = get_manager().tag_book(book.id, tag) or []
        except TagError as e:
            print_error(str(e))
            raise typer.Exit(1)
        console.print(f"Tags: {', '.join(bt.tag_name for bt in book_tags)}")


@app.command("list")
def list_books(
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Filter by tag"),
    match_all: bool = typer.Option(False, "--all", help="Require every --tag"),
) -> None:
    """List books, optionally filtered by tags."""
    manager = get_manager()
    if tag:
        books = manager.get_books_by_tags(tag, match_all=match_all)
    else:
        books = [BookResponse.model_validate(book) for book in get_db().get_all_books()]

    if not books:
        console.print("[dim]No books found.[/dim]")
        return

    table = Table(title="Reading List", show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Status", style="yellow")
    table.add_column("Tags")

    for book in books:
        names = ", ".join(bt.tag_name for bt in manager.get_book_tags(book.id))
        table.add_row(book.title, book.author, book.status.value, names or "-")

    console.print(table)


@app.command("tag")
def tag_book(
    book_id: str = typer.Argument(..., help="Book ID"),
    names: list[str] = typer.Argument(..., help="Tags to attach"),
) -> None:
    """Attach tags to a book, reusing existing tags where they match."""
    try:
        book_tags = get_manager().tag_book(book_id, names)
    except TagError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if book_tags is None:
        print_error(f"Book not found: {book_id}")
        raise typer.Exit(1)

    print_success(f"Tagged with: {', '.join(bt.tag_name for bt in book_tags)}")


# ============================================================================
# Tag Commands
# ============================================================================


@tags_app.command("normalize")
def normalize(text: str = typer.Argument(..., help="Raw tag")) -> None:
    """Show the normalized form of a tag."""
    console.print(normalize_tag(text))


@tags_app.command("resolve")
def resolve(
    names: list[str] = typer.Argument(..., help="Candidate tags"),
    generated: bool = typer.Option(
        False, "--generated", "-g", help="Treat each argument as a comma-separated reply"
    ),
) -> None:
    """Resolve candidate tags, creating the ones that do not exist yet."""
    if generated:
        names = [name for reply in names for name in parse_generated_tags(reply)]

    try:
        resolved = get_manager().resolve_tags(names)
    except TagError as e:
        print_error(str(e))
        raise typer.Exit(1)

    table = Table(title="Resolved Tags", show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("New", justify="center")
    for tag in resolved:
        table.add_row(str(tag.id), tag.name, "yes" if tag.is_new else "")
    console.print(table)


@tags_app.command("list")
def list_tags() -> None:
    """List all tags, most used first."""
    tags = get_manager().list_tags()
    if not tags:
        console.print("[dim]No tags yet.[/dim]")
        return

    table = Table(title="Tags", show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Uses", justify="right")
    table.add_column("Last Used", style="dim")
    for tag in tags:
        last_used = tag.last_used_at.strftime("%Y-%m-%d %H:%M") if tag.last_used_at else "-"
        table.add_row(str(tag.id), tag.name, str(tag.usage_count), last_used)
    console.print(table)


@tags_app.command("popular")
def popular(
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=1, help="Tags per category"
    ),
) -> None:
    """Show the most used tags per category."""
    categories = get_manager().popular_by_category(limit)

    table = Table(title="Popular Tags", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="yellow")
    table.add_column("Tags")
    for category, names in categories.items():
        table.add_row(category.value, ", ".join(names) or "-")
    console.print(table)


@tags_app.command("search")
def search(
    query: str = typer.Argument(..., help="Partial tag"),
    limit: int = typer.Option(10, "--limit", "-l", min=1, help="Max results"),
) -> None:
    """Fuzzy search existing tags."""
    results = get_manager().search_tags(query, limit=limit)
    if not results:
        console.print(f"[dim]No tags matching: {query}[/dim]")
        return

    for result in results:
        console.print(f"{result.tag.name} [dim]({result.score}%, {result.tag.usage_count} uses)[/dim]")


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"tbrlist version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
