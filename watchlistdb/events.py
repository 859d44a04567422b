"""Post-commit delivery of deletion events.

Services publish :class:`MovieDeleted` and :class:`UserDeleted` events here
after the deleting transaction has committed. Listeners are called in
registration order; a listener that raises is logged and counted, and the
remaining listeners still run. The deletion itself is never undone.

Example:
    >>> events = DeletionEvents()
    >>> events.add_movie_listener(engagement)
    >>> events.movie_deleted(MovieDeleted(movie_id=1, owner_id=2, deleted_by=2,
    ...                                   deleted_at=utc_now_iso()))
"""

from watchlistdb.interfaces import MovieDeletionListener, UserDeletionListener
from watchlistdb.logging import logger
from watchlistdb.metrics import errors_total
from watchlistdb.models import MovieDeleted, UserDeleted


class DeletionEvents:
    """Registry of deletion listeners shared by the services of one app."""

    def __init__(self) -> None:
        self._movie_listeners: list[MovieDeletionListener] = []
        self._user_listeners: list[UserDeletionListener] = []

    def add_movie_listener(self, listener: MovieDeletionListener) -> None:
        """Register a movie deletion listener.

        Raises:
            TypeError: If the object has no ``on_movie_deleted`` method
        """
        if not isinstance(listener, MovieDeletionListener):
            raise TypeError(f"{type(listener).__name__} is not a MovieDeletionListener")
        self._movie_listeners.append(listener)

    def add_user_listener(self, listener: UserDeletionListener) -> None:
        """Register a user deletion listener.

        Raises:
            TypeError: If the object has no ``on_user_deleted`` method
        """
        if not isinstance(listener, UserDeletionListener):
            raise TypeError(f"{type(listener).__name__} is not a UserDeletionListener")
        self._user_listeners.append(listener)

    @property
    def movie_listeners(self) -> tuple[MovieDeletionListener, ...]:
        return tuple(self._movie_listeners)

    @property
    def user_listeners(self) -> tuple[UserDeletionListener, ...]:
        return tuple(self._user_listeners)

    def movie_deleted(self, event: MovieDeleted) -> None:
        for listener in self._movie_listeners:
            try:
                listener.on_movie_deleted(event)
            except Exception as exc:
                errors_total.labels(error_type=type(exc).__name__, component="listener").inc()
                logger.opt(exception=exc).error(
                    f"❌ {type(listener).__name__} failed on deletion of movie {event.movie_id}"
                )

    def user_deleted(self, event: UserDeleted) -> None:
        for listener in self._user_listeners:
            try:
                listener.on_user_deleted(event)
            except Exception as exc:
                errors_total.labels(error_type=type(exc).__name__, component="listener").inc()
                logger.opt(exception=exc).error(
                    f"❌ {type(listener).__name__} failed on deletion of user {event.user_id}"
                )


__all__ = ["DeletionEvents"]
