"""Movie list service: wishlist and watched list management.

Owns the lifecycle of :class:`MovieRow` and enforces its invariants:

- Only the owner or an ADMIN may mutate or delete a movie.
- A movie on the WISHLIST never carries a rating or a review; every write
  clears both when the resulting status is WISHLIST.
- A supplied rating is within 1..5, checked before anything is cleared.

Each operation is one transaction. Mutations of an existing movie hold the
movie's keyed lock for the whole read-modify-write; adding a movie holds the
owner's user lock so it cannot interleave with deleting that user.

Example:
    >>> service = MovieListService(db)
    >>> movie = service.add_movie(MovieRequest(title="Inception"), actor)
    >>> service.mark_as_watched(movie.id, actor, rating=5, review="Mind-bending")
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from watchlistdb.database import DatabaseManager
from watchlistdb.errors import AuthorizationError, NotFoundError, ValidationError
from watchlistdb.events import DeletionEvents
from watchlistdb.logging import logger
from watchlistdb.metadata import MetadataRecord, to_movie_request
from watchlistdb.metrics import track_operation
from watchlistdb.models import (
    MAX_RATING,
    MIN_RATING,
    Acknowledgement,
    Actor,
    MovieDeleted,
    MovieRead,
    MovieRequest,
    MovieRow,
    MovieStatus,
)
from watchlistdb.repository import MovieRepository, UserRepository
from watchlistdb.utils import utc_now_iso

# =============================================================================
# Validation Helpers
# =============================================================================


def coerce_request(request: MovieRequest | Mapping[str, Any]) -> MovieRequest:
    """Accept a request model or a raw mapping (snake_case or camelCase keys).

    Raises:
        ValidationError: If the mapping cannot be parsed into a request
    """
    if isinstance(request, MovieRequest):
        return request
    try:
        return MovieRequest.model_validate(request)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ValidationError(f"Invalid movie request fields: {fields}") from exc


def validate_rating(rating: Any) -> None:
    """Reject anything but a whole number in 1..5 (None means "no rating")."""
    if rating is None:
        return
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be a whole number, got {type(rating).__name__}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
        )


def validate_request(request: MovieRequest) -> None:
    """Check the fields add and update both require."""
    if not request.title:
        raise ValidationError("Title is required")
    validate_rating(request.rating)


def enforce_status_invariant(movie: MovieRow) -> None:
    """Clear rating and review on a WISHLIST movie."""
    if movie.status == MovieStatus.WISHLIST:
        movie.rating = None
        movie.review = None


# =============================================================================
# Movie List Service
# =============================================================================


class MovieListService:
    """Create, update, transition, delete and list a user's movies.

    Args:
        db: Initialized database manager
        events: Deletion event registry (a private one is created if omitted)
    """

    def __init__(self, db: DatabaseManager, events: DeletionEvents | None = None):
        self.db = db
        self.events = events or DeletionEvents()

    # ========== Mutations ==========

    def add_movie(
        self, request: MovieRequest | Mapping[str, Any], owner: Actor
    ) -> MovieRead:
        """Add a movie to the owner's wishlist or watched list.

        Args:
            request: Movie fields; ``status`` defaults to WISHLIST
            owner: Actor that will own the movie

        Returns:
            The stored movie

        Raises:
            ValidationError: Missing/blank title or rating outside 1..5
            NotFoundError: The owner does not resolve to a user
        """
        with track_operation("add_movie", actor_id=owner.user_id):
            request = coerce_request(request)
            validate_request(request)

            with self.db.locks.hold("user", owner.user_id), self.db.session_scope() as session:
                if UserRepository(session).get(owner.user_id) is None:
                    raise NotFoundError("User", "id", owner.user_id)

                movie = MovieRow(
                    owner_id=owner.user_id,
                    external_id=request.external_id,
                    title=request.title,
                    genre=request.genre,
                    release_year=request.release_year,
                    runtime_minutes=request.runtime_minutes,
                    poster_url=request.poster_url,
                    status=request.status or MovieStatus.WISHLIST,
                    rating=request.rating,
                    review=request.review,
                )
                enforce_status_invariant(movie)
                movie = MovieRepository(session).put(movie)
                result = MovieRead.model_validate(movie)

            logger.info(
                f"✅ Movie {result.id} '{result.title}' added to {result.status} "
                f"of user {owner.user_id}"
            )
            return result

    def update_movie(
        self,
        movie_id: int,
        request: MovieRequest | Mapping[str, Any],
        actor: Actor,
    ) -> MovieRead:
        """Replace a movie's descriptive fields, rating and review.

        ``request.status`` of None keeps the current status. A resulting
        WISHLIST status clears rating and review whatever the request says.
        ``external_id`` is only replaced when supplied.

        Raises:
            NotFoundError: No movie with this id
            AuthorizationError: Actor is neither owner nor ADMIN
            ValidationError: Missing/blank title or rating outside 1..5
        """
        with track_operation("update_movie", actor_id=actor.user_id):
            request = coerce_request(request)
            validate_request(request)

            with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
                movies = MovieRepository(session)
                movie = self._load_for_mutation(movies, movie_id, actor)

                movie.title = request.title  # type: ignore[assignment]
                movie.genre = request.genre
                movie.release_year = request.release_year
                movie.runtime_minutes = request.runtime_minutes
                movie.poster_url = request.poster_url
                if request.external_id is not None:
                    movie.external_id = request.external_id
                if request.status is not None:
                    movie.status = request.status
                movie.rating = request.rating
                movie.review = request.review
                enforce_status_invariant(movie)
                movie.updated_at = utc_now_iso()

                result = MovieRead.model_validate(movies.put(movie))

            logger.info(f"✅ Movie {movie_id} updated by user {actor.user_id}")
            return result

    def mark_as_watched(
        self,
        movie_id: int,
        actor: Actor,
        rating: int | None = None,
        review: str | None = None,
    ) -> MovieRead:
        """Move a movie to the watched list, optionally rating/reviewing it.

        From WISHLIST, omitted rating/review end up None. On an already
        WATCHED movie, supplied values overwrite and omitted values keep
        what was there, so repeating a call is a no-op.

        Raises:
            NotFoundError: No movie with this id
            AuthorizationError: Actor is neither owner nor ADMIN
            ValidationError: Rating outside 1..5
        """
        with track_operation("mark_as_watched", actor_id=actor.user_id):
            validate_rating(rating)

            with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
                movies = MovieRepository(session)
                movie = self._load_for_mutation(movies, movie_id, actor)

                if movie.status == MovieStatus.WATCHED:
                    if rating is not None:
                        movie.rating = rating
                    if review is not None:
                        movie.review = review
                else:
                    movie.status = MovieStatus.WATCHED
                    movie.rating = rating
                    movie.review = review
                movie.updated_at = utc_now_iso()

                result = MovieRead.model_validate(movies.put(movie))

            logger.info(f"✅ Movie {movie_id} marked as watched by user {actor.user_id}")
            return result

    def delete_movie(self, movie_id: int, actor: Actor) -> Acknowledgement:
        """Delete a movie, then notify deletion listeners.

        Raises:
            NotFoundError: No movie with this id
            AuthorizationError: Actor is neither owner nor ADMIN
        """
        with track_operation("delete_movie", actor_id=actor.user_id):
            with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
                movies = MovieRepository(session)
                movie = self._load_for_mutation(movies, movie_id, actor)
                owner_id = movie.owner_id
                movies.delete(movie)

            logger.info(f"🗑️ Movie {movie_id} deleted by user {actor.user_id}")
            self.events.movie_deleted(
                MovieDeleted(
                    movie_id=movie_id,
                    owner_id=owner_id,
                    deleted_by=actor.user_id,
                    deleted_at=utc_now_iso(),
                )
            )
            return Acknowledgement(message="Movie deleted successfully")

    def adopt_movie(
        self,
        record: MetadataRecord,
        owner: Actor,
        status: MovieStatus = MovieStatus.WISHLIST,
        rating: int | None = None,
        review: str | None = None,
    ) -> MovieRead:
        """Add a movie built from an already fetched provider record.

        No network I/O happens here; fetch with the TMDB client first.

        Raises:
            ValidationError: The record has no title, or the rating is invalid
            NotFoundError: The owner does not resolve to a user
        """
        validate_rating(rating)
        request = to_movie_request(record, status=status, rating=rating, review=review)
        logger.debug(f"Adopting TMDB movie {record.external_id} for user {owner.user_id}")
        return self.add_movie(request, owner)

    # ========== Reads ==========

    def get_movie_by_id(self, movie_id: int) -> MovieRead:
        """Public read of one movie.

        Raises:
            NotFoundError: No movie with this id
        """
        with track_operation("get_movie_by_id"):
            with self.db.session_scope() as session:
                movie = MovieRepository(session).get(movie_id)
                if movie is None:
                    raise NotFoundError("Movie", "id", movie_id)
                return MovieRead.model_validate(movie)

    def get_wishlist_movies(self, actor: Actor) -> list[MovieRead]:
        """The actor's own WISHLIST movies ordered by id."""
        with track_operation("get_wishlist_movies"):
            return self._list_for_user(actor.user_id, MovieStatus.WISHLIST)

    def get_watched_movies(self, actor: Actor) -> list[MovieRead]:
        """The actor's own WATCHED movies ordered by id."""
        with track_operation("get_watched_movies"):
            return self._list_for_user(actor.user_id, MovieStatus.WATCHED)

    def get_user_movies(
        self, user_id: int, status: MovieStatus | None = None
    ) -> list[MovieRead]:
        """Public read of any user's movies, optionally filtered by status.

        Raises:
            NotFoundError: No user with this id
        """
        with track_operation("get_user_movies"):
            return self._list_for_user(user_id, status)

    # ========== Internals ==========

    def _list_for_user(self, user_id: int, status: MovieStatus | None) -> list[MovieRead]:
        with self.db.session_scope() as session:
            if UserRepository(session).get(user_id) is None:
                raise NotFoundError("User", "id", user_id)
            movies = MovieRepository(session).list_for_owner(user_id, status)
            logger.debug(f"Listed {len(movies)} movies for user {user_id} (status={status})")
            return [MovieRead.model_validate(movie) for movie in movies]

    @staticmethod
    def _load_for_mutation(
        movies: MovieRepository, movie_id: int, actor: Actor
    ) -> MovieRow:
        movie = movies.get(movie_id, for_update=True)
        if movie is None:
            raise NotFoundError("Movie", "id", movie_id)
        if not actor.may_mutate(movie.owner_id):
            logger.warning(
                f"⚠️ User {actor.user_id} denied mutation of movie {movie_id} "
                f"owned by user {movie.owner_id}"
            )
            raise AuthorizationError("You are not authorized to modify this movie")
        return movie


__all__ = [
    "MovieListService",
    "coerce_request",
    "validate_request",
    "validate_rating",
    "enforce_status_invariant",
]
