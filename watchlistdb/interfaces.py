"""Protocol interfaces for dependency injection.

This module defines the Protocol interfaces that connect services without
inheritance. Using @runtime_checkable Protocol allows structural subtyping:
any object with matching methods can be registered.

- :class:`MovieDeletionListener` / :class:`UserDeletionListener` receive
  deletion events after the deleting transaction has committed.
- :class:`MetadataProvider` is the async contract the TMDB client fulfils.

Example:
    >>> from watchlistdb.interfaces import MovieDeletionListener
    >>> class AuditTrail:
    ...     def on_movie_deleted(self, event):
    ...         print(f"movie {event.movie_id} removed by {event.deleted_by}")
    >>> isinstance(AuditTrail(), MovieDeletionListener)  # True, structural typing!

References:
    - Python typing.Protocol documentation
      https://docs.python.org/3/library/typing.html#typing.Protocol
"""

from typing import Protocol, runtime_checkable

from watchlistdb.metadata import MetadataRecord
from watchlistdb.models import MovieDeleted, UserDeleted
from watchlistdb.types import TmdbMovieData, TmdbMoviePage


@runtime_checkable
class MovieDeletionListener(Protocol):
    """Receives an event for every deleted movie.

    Called after commit, once per listener, in registration order. A
    listener that raises is logged and does not affect the deletion or the
    remaining listeners.
    """

    def on_movie_deleted(self, event: MovieDeleted) -> None:
        """Handle a committed movie deletion.

        Args:
            event: Deleted movie's id and owner, the deleting actor and time
        """
        ...


@runtime_checkable
class UserDeletionListener(Protocol):
    """Receives an event for every deleted user."""

    def on_user_deleted(self, event: UserDeleted) -> None:
        """Handle a committed user deletion.

        Args:
            event: Deleted user's id, username and removed movie ids
        """
        ...


@runtime_checkable
class MetadataProvider(Protocol):
    """External movie metadata source (TMDB or a test double).

    Implementations handle authentication, retries and connection pooling.
    None of these calls may run while a store lock is held.
    """

    async def search_movies(self, query: str, page: int = 1) -> TmdbMoviePage:
        """Search by title and return the provider's raw result page."""
        ...

    async def get_movie_details(self, tmdb_id: int) -> TmdbMovieData:
        """Return the provider's raw details payload.

        Raises:
            NotFoundError: If the provider has no movie with this id
            MetadataProviderError: For any other provider failure
        """
        ...

    async def fetch_metadata(self, tmdb_id: int) -> MetadataRecord:
        """Return the details of one movie as a typed partial record."""
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "MovieDeletionListener",
    "UserDeletionListener",
    "MetadataProvider",
]
