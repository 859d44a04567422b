"""Application wiring for WatchlistDB.

:class:`WatchlistApp` owns one :class:`DatabaseManager` and builds every
service on top of it, sharing one deletion event registry so that the
engagement service cleans up after movie and user deletions.

Example:
    >>> with WatchlistApp() as app:
    ...     alice = app.users.create_user("alice")
    ...     actor = app.users.resolve_actor("alice")
    ...     app.movies.add_movie({"title": "Inception"}, actor)
    ...     print(app.leaderboard.get_leaderboard())
"""

from pathlib import Path
from typing import Any

from watchlistdb.config import LeaderboardWeights
from watchlistdb.database import DatabaseManager
from watchlistdb.engagement import EngagementService
from watchlistdb.events import DeletionEvents
from watchlistdb.leaderboard import LeaderboardEngine
from watchlistdb.logging import logger
from watchlistdb.movies import MovieListService
from watchlistdb.social import SocialGraphService
from watchlistdb.users import UserService


class WatchlistApp:
    """Container for the database and the services built on it.

    Args:
        database_path: SQLite path (defaults to settings.database_path)
        db: Pre-built database manager; takes precedence over ``database_path``
        leaderboard_weights: Fixed leaderboard weights (defaults to settings)

    Attributes:
        db: Database manager
        events: Deletion event registry shared by the services
        users: :class:`UserService`
        movies: :class:`MovieListService`
        social: :class:`SocialGraphService`
        leaderboard: :class:`LeaderboardEngine`
        engagement: :class:`EngagementService`
    """

    def __init__(
        self,
        database_path: Path | None = None,
        db: DatabaseManager | None = None,
        leaderboard_weights: LeaderboardWeights | None = None,
    ) -> None:
        self.db = db or DatabaseManager(database_path=database_path)
        self.events = DeletionEvents()

        self.users = UserService(self.db, self.events)
        self.movies = MovieListService(self.db, self.events)
        self.social = SocialGraphService(self.db)
        self.leaderboard = LeaderboardEngine(self.db, weights=leaderboard_weights)
        self.engagement = EngagementService(self.db)

        self.events.add_movie_listener(self.engagement)
        self.events.add_user_listener(self.engagement)

    def initialize(self) -> "WatchlistApp":
        """Create the engine and tables. Safe to call more than once."""
        self.db.initialize()
        logger.debug("WatchlistApp ready")
        return self

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "WatchlistApp":
        return self.initialize()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


__all__ = ["WatchlistApp"]
