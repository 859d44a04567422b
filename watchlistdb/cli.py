"""Command-line interface for WatchlistDB.

This module provides a Typer-based operator CLI over the WatchlistDB services.

Commands:
- init: Create the database
- add-user: Register a user
- status: Show configuration and database statistics
- leaderboard: Show the ranked leaderboard
- follow / unfollow: Manage follow edges between two users
- search: Search TMDB for movies
- adopt: Add a TMDB movie to a user's list

Example:
    $ watchlistdb init
    $ watchlistdb add-user alice --email alice@example.com
    $ watchlistdb search "Inception"
    $ watchlistdb adopt 27205 --user alice --watched --rating 5
    $ watchlistdb leaderboard --limit 10
"""

import asyncio
import uuid
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from watchlistdb.api import AsyncTmdbClient
from watchlistdb.app import WatchlistApp
from watchlistdb.config import settings
from watchlistdb.errors import DomainError, WatchlistError
from watchlistdb.logging import logger, set_request_context, setup_logging
from watchlistdb.metadata import MetadataRecord
from watchlistdb.models import (
    CommentRow,
    FollowEdge,
    MovieLikeRow,
    MovieStatus,
    Role,
    UserRow,
)
from watchlistdb.repository import MovieRepository, Repository

# Initialize CLI app
app = typer.Typer(
    name="watchlistdb",
    help="Movie wishlist, watched list and social leaderboard manager",
    add_completion=False,
)
console = Console()

# Options shared by every command, set by the callback
state: dict[str, Optional[Path]] = {"database": None}


# =============================================================================
# Helper Functions
# =============================================================================


def run_async(coro):
    """Run async coroutine in event loop."""
    return asyncio.run(coro)


def database_path() -> Path:
    return state["database"] or settings.database_path


def open_app() -> WatchlistApp:
    """Build and initialize the application for the selected database."""
    return WatchlistApp(database_path=database_path()).initialize()


def fail(exc: WatchlistError) -> NoReturn:
    """Print the public message of a WatchlistDB error and exit with code 1.

    Internal faults keep their detail out of the output; it goes to the log.
    """
    if not isinstance(exc, DomainError):
        logger.opt(exception=exc).error(f"❌ {type(exc).__name__}: {exc.message}")
    console.print(f"❌ [bold red]{exc.public_message}[/bold red]")
    raise typer.Exit(code=1)


# =============================================================================
# CLI Commands
# =============================================================================


@app.callback()
def main_options(
    database: Optional[Path] = typer.Option(
        None,
        "--database",
        "-d",
        help="SQLite database path (defaults to DATABASE_PATH / data_dir)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Movie wishlist, watched list and social leaderboard manager."""
    state["database"] = database
    set_request_context(request_id=uuid.uuid4().hex[:12])
    if verbose:
        setup_logging(level="DEBUG", json_logs=settings.log_json)


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Delete and recreate an existing database",
    ),
) -> None:
    """Initialize the database.

    Examples:
        $ watchlistdb init
        $ watchlistdb init --force
    """
    console.print("🏗️  [bold cyan]WatchlistDB Initialization[/bold cyan]\n")

    db_path = database_path()
    if str(db_path) != ":memory:" and db_path.exists():
        if not force:
            console.print(
                f"⚠️  Database already exists at {db_path}\n"
                "Use --force to recreate it."
            )
            return
        for suffix in ("", "-wal", "-shm"):
            Path(f"{db_path}{suffix}").unlink(missing_ok=True)
        console.print(f"🗑️  Removed existing database at [yellow]{db_path}[/yellow]")

    try:
        watchlist = open_app()
    except WatchlistError as exc:
        fail(exc)
    watchlist.close()

    console.print(f"✅ Database created at [yellow]{db_path}[/yellow]")
    console.print("\n📋 Configuration:")
    console.print(f"  • TMDB Endpoint: {settings.tmdb_base_url}")
    console.print(f"  • TMDB API Key: {settings.redact_token()}")
    weights = settings.leaderboard_weights
    console.print(
        f"  • Leaderboard Weights: watched={weights.watched}, "
        f"likes={weights.likes}, followers={weights.followers}"
    )


@app.command("add-user")
def add_user(
    username: str = typer.Argument(..., help="Unique username"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Contact email"),
    display_name: Optional[str] = typer.Option(None, "--display-name", help="Name shown in lists"),
    admin: bool = typer.Option(False, "--admin", help="Grant the ADMIN role"),
) -> None:
    """Register a user.

    Examples:
        $ watchlistdb add-user alice --email alice@example.com
        $ watchlistdb add-user root --admin
    """
    with open_app() as watchlist:
        try:
            profile = watchlist.users.create_user(
                username,
                email=email,
                role=Role.ADMIN if admin else Role.USER,
                display_name=display_name,
            )
        except WatchlistError as exc:
            fail(exc)

    console.print(
        f"✅ [bold green]User '{profile.username}' created[/bold green] "
        f"(id {profile.id}, role {profile.role})"
    )


@app.command()
def status() -> None:
    """Show configuration and database statistics.

    Examples:
        $ watchlistdb status
    """
    console.print("📊 [bold cyan]WatchlistDB Status[/bold cyan]\n")

    config_table = Table(title="Configuration", show_header=False)
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="yellow")

    config_table.add_row("Environment", str(settings.environment))
    config_table.add_row("Database Path", str(database_path()))
    config_table.add_row("TMDB Endpoint", settings.tmdb_base_url)
    config_table.add_row("TMDB API Key", settings.redact_token())
    config_table.add_row("Max Concurrency", str(settings.max_concurrency))

    console.print(config_table)
    console.print()

    with open_app() as watchlist:
        try:
            with watchlist.db.session_scope() as session:
                movies = MovieRepository(session)
                stats = {
                    "Users": Repository(session, UserRow).count(),
                    "Movies": movies.count(),
                    "Wishlist": len(movies.find_by(status=MovieStatus.WISHLIST)),
                    "Watched": len(movies.find_by(status=MovieStatus.WATCHED)),
                    "Follow Edges": Repository(session, FollowEdge).count(),
                    "Likes": Repository(session, MovieLikeRow).count(),
                    "Comments": Repository(session, CommentRow).count(),
                }
        except WatchlistError as exc:
            fail(exc)

    stats_table = Table(title="Database Statistics")
    stats_table.add_column("Entity", style="cyan")
    stats_table.add_column("Count", justify="right", style="green")
    for name, count in stats.items():
        stats_table.add_row(name, f"{count:,}")

    console.print(stats_table)


@app.command()
def leaderboard(
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=0, help="Show only the top N"),
) -> None:
    """Show the leaderboard.

    Examples:
        $ watchlistdb leaderboard --limit 10
    """
    with open_app() as watchlist:
        try:
            entries = watchlist.leaderboard.get_leaderboard(limit=limit)
            weights = watchlist.leaderboard.weights
        except WatchlistError as exc:
            fail(exc)

    if not entries:
        console.print("📭 No users yet")
        return

    table = Table(
        title=(
            f"🏆 Leaderboard (watched×{weights.watched} + likes×{weights.likes} "
            f"+ followers×{weights.followers})"
        )
    )
    table.add_column("Rank", justify="right", style="bold")
    table.add_column("User", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Watched", justify="right")
    table.add_column("Likes", justify="right")
    table.add_column("Followers", justify="right")

    for entry in entries:
        table.add_row(
            str(entry.rank),
            entry.username,
            str(entry.score),
            str(entry.watched_count),
            str(entry.likes_received),
            str(entry.follower_count),
        )

    console.print(table)


@app.command()
def follow(
    follower: str = typer.Argument(..., help="Username that follows"),
    followee: str = typer.Argument(..., help="Username to follow"),
) -> None:
    """Make FOLLOWER follow FOLLOWEE."""
    with open_app() as watchlist:
        try:
            ack = watchlist.social.follow_user(follower, followee)
        except WatchlistError as exc:
            fail(exc)

    console.print(f"✅ [green]{follower}: {ack.message}[/green]")


@app.command()
def unfollow(
    follower: str = typer.Argument(..., help="Username that unfollows"),
    followee: str = typer.Argument(..., help="Username to unfollow"),
) -> None:
    """Make FOLLOWER stop following FOLLOWEE."""
    with open_app() as watchlist:
        try:
            ack = watchlist.social.unfollow_user(follower, followee)
        except WatchlistError as exc:
            fail(exc)

    console.print(f"✅ [green]{follower}: {ack.message}[/green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Title to search for"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Result page"),
) -> None:
    """Search TMDB for movies.

    Examples:
        $ watchlistdb search "Inception"
    """

    async def _search() -> list[MetadataRecord]:
        async with AsyncTmdbClient() as client:
            return await client.search_movies_formatted(query, page=page)

    try:
        records = run_async(_search())
    except WatchlistError as exc:
        fail(exc)

    if not records:
        console.print(f"📭 No movies found for '{query}'")
        return

    table = Table(title=f"🔎 TMDB results for '{query}' (page {page})")
    table.add_column("TMDB ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Year", justify="right")
    table.add_column("Genre", style="yellow")

    for record in records:
        table.add_row(
            str(record.external_id or ""),
            record.title or "-",
            str(record.release_year or ""),
            record.genre or "",
        )

    console.print(table)


@app.command()
def adopt(
    tmdb_id: int = typer.Argument(..., help="TMDB movie id"),
    user: str = typer.Option(..., "--user", "-u", help="Owner username"),
    watched: bool = typer.Option(False, "--watched", help="Add to the watched list"),
    rating: Optional[int] = typer.Option(None, "--rating", "-r", help="1-5 rating (watched only)"),
    review: Optional[str] = typer.Option(None, "--review", help="Review text (watched only)"),
) -> None:
    """Add a TMDB movie to a user's wishlist or watched list.

    Examples:
        $ watchlistdb adopt 27205 --user alice
        $ watchlistdb adopt 27205 --user alice --watched --rating 5
    """
    with open_app() as watchlist:
        try:
            owner = watchlist.users.resolve_actor(user)

            async def _fetch() -> MetadataRecord:
                async with AsyncTmdbClient() as client:
                    return await client.fetch_metadata(tmdb_id)

            record = run_async(_fetch())
            movie = watchlist.movies.adopt_movie(
                record,
                owner,
                status=MovieStatus.WATCHED if watched else MovieStatus.WISHLIST,
                rating=rating,
                review=review,
            )
        except WatchlistError as exc:
            fail(exc)

    console.print(
        f"✅ [bold green]'{movie.title}' added to {movie.status} of {user}[/bold green] "
        f"(movie id {movie.id})"
    )


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
