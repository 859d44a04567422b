"""WatchlistDB - movie wishlist, watched list and social leaderboard core.

This package keeps each user's wishlist and watched list, enforces the
rating/review rules, maintains the directed follow graph, ranks users on a
leaderboard, and adopts movie metadata from TMDB.

Example:
    >>> from watchlistdb import WatchlistApp, MovieRequest
    >>>
    >>> with WatchlistApp() as app:
    ...     app.users.create_user("alice")
    ...     alice = app.users.resolve_actor("alice")
    ...     movie = app.movies.add_movie(MovieRequest(title="Inception"), alice)
    ...     app.movies.mark_as_watched(movie.id, alice, rating=5)
"""

from watchlistdb.api import AsyncTmdbClient
from watchlistdb.app import WatchlistApp
from watchlistdb.config import settings
from watchlistdb.database import DatabaseManager
from watchlistdb.engagement import EngagementService
from watchlistdb.errors import (
    AuthorizationError,
    DomainError,
    InternalError,
    InvalidOperationError,
    MetadataProviderError,
    NotFoundError,
    Outcome,
    ValidationError,
    WatchlistError,
)
from watchlistdb.leaderboard import LeaderboardEngine
from watchlistdb.metadata import MetadataRecord, map_tmdb_movie
from watchlistdb.models import (
    Acknowledgement,
    Actor,
    LeaderboardEntry,
    MovieRead,
    MovieRequest,
    MovieStatus,
    Role,
    UserProfile,
    UserSummary,
)
from watchlistdb.movies import MovieListService
from watchlistdb.social import SocialGraphService
from watchlistdb.users import UserService

__version__ = "0.1.0"

__all__ = [
    # Main components
    "WatchlistApp",
    "DatabaseManager",
    "MovieListService",
    "SocialGraphService",
    "LeaderboardEngine",
    "UserService",
    "EngagementService",
    "AsyncTmdbClient",
    # Configuration
    "settings",
    # Models
    "Actor",
    "Role",
    "MovieStatus",
    "MovieRequest",
    "MovieRead",
    "UserSummary",
    "UserProfile",
    "LeaderboardEntry",
    "Acknowledgement",
    "MetadataRecord",
    "map_tmdb_movie",
    # Errors
    "Outcome",
    "WatchlistError",
    "DomainError",
    "NotFoundError",
    "AuthorizationError",
    "ValidationError",
    "InvalidOperationError",
    "InternalError",
    "MetadataProviderError",
]
