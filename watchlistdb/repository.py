"""Generic repository pattern for type-safe database operations.

This module provides a Generic Repository[T] implementation for SQLModel
entities plus entity-specific repositories for the queries the services need.

Repositories never commit: the surrounding ``DatabaseManager.session_scope()``
owns the transaction, so every write an operation makes lands or rolls back
together.

Example:
    >>> from watchlistdb.repository import MovieRepository, UserRepository
    >>>
    >>> with db.session_scope() as session:
    ...     users = UserRepository(session)
    ...     movies = MovieRepository(session)
    ...     alice = users.get_by_username("alice")
    ...     for movie in movies.list_for_owner(alice.id, MovieStatus.WATCHED):
    ...         print(movie.title, movie.rating)
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, SQLModel, select

from watchlistdb.models import (
    CommentRow,
    FollowEdge,
    MovieLikeRow,
    MovieRow,
    MovieStatus,
    UserRow,
)
from watchlistdb.utils import utc_now_iso

# =============================================================================
# Type Variables
# =============================================================================

T = TypeVar("T", bound=SQLModel)


# =============================================================================
# Generic Repository
# =============================================================================


class Repository(Generic[T]):
    """Generic repository implementation for SQLModel entities.

    Type Parameter:
        T: SQLModel entity type (MovieRow, UserRow, CommentRow, etc.)

    Args:
        session: SQLModel Session instance
        model: SQLModel class (e.g., MovieRow, UserRow)

    Example:
        >>> movie_repo = Repository[MovieRow](session, MovieRow)
        >>>
        >>> # Lock the row for a read-modify-write (FOR UPDATE where supported)
        >>> movie = movie_repo.get(7, for_update=True)
        >>> movie.rating = 4
        >>> movie_repo.put(movie)
        >>>
        >>> movie_repo.find_by(owner_id=1, status=MovieStatus.WATCHED)
    """

    def __init__(self, session: Session, model: type[T]):
        self.session = session
        self.model = model

    def get(self, entity_id: Any, for_update: bool = False) -> T | None:
        """Get entity by primary key.

        Args:
            entity_id: Primary key value (tuple for composite keys)
            for_update: Load with ``SELECT ... FOR UPDATE`` semantics

        Returns:
            Entity instance or None if not found
        """
        return self.session.get(self.model, entity_id, with_for_update=for_update)

    def get_all(self, limit: int = 100, offset: int = 0) -> Sequence[T]:
        """Get entities with pagination."""
        stmt = select(self.model).limit(limit).offset(offset)
        return self.session.exec(stmt).all()

    def put(self, entity: T) -> T:
        """Insert or update an entity and flush so generated keys are assigned.

        Args:
            entity: Entity instance to persist

        Returns:
            The same entity with its database state refreshed
        """
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def delete(self, entity: T) -> None:
        """Delete a loaded entity."""
        self.session.delete(entity)
        self.session.flush()

    def find_by(self, **filters: Any) -> Sequence[T]:
        """Find entities matching simple equality filters.

        Unknown attribute names are ignored.

        Example:
            >>> movie_repo.find_by(owner_id=3)
        """
        stmt = select(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)
        return self.session.exec(stmt).all()

    def count(self) -> int:
        """Count total number of entities."""
        stmt = select(func.count()).select_from(self.model)
        return self.session.exec(stmt).one()

    def exists(self, entity_id: Any) -> bool:
        return self.get(entity_id) is not None


# =============================================================================
# Entity Repositories
# =============================================================================


class UserRepository(Repository[UserRow]):
    """Repository for user identities."""

    def __init__(self, session: Session):
        super().__init__(session, UserRow)

    def get_by_username(self, username: str) -> UserRow | None:
        stmt = select(UserRow).where(UserRow.username == username)
        return self.session.exec(stmt).first()

    def list_all(self) -> Sequence[UserRow]:
        """All users ordered by username."""
        stmt = select(UserRow).order_by(UserRow.username)
        return self.session.exec(stmt).all()


class MovieRepository(Repository[MovieRow]):
    """Repository for movies on wishlists and watched lists."""

    def __init__(self, session: Session):
        super().__init__(session, MovieRow)

    def list_for_owner(
        self, owner_id: int, status: MovieStatus | None = None
    ) -> Sequence[MovieRow]:
        """List an owner's movies in creation order.

        Args:
            owner_id: Owning user ID
            status: Optional status filter

        Returns:
            Movies ordered by ID ascending
        """
        stmt = select(MovieRow).where(MovieRow.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(MovieRow.status == status)
        stmt = stmt.order_by(MovieRow.id)
        return self.session.exec(stmt).all()

    def count_for_owner(self, owner_id: int, status: MovieStatus) -> int:
        stmt = (
            select(func.count())
            .select_from(MovieRow)
            .where(MovieRow.owner_id == owner_id, MovieRow.status == status)
        )
        return self.session.exec(stmt).one()

    def delete_for_owner(self, owner_id: int) -> list[int]:
        """Delete every movie of an owner.

        Returns:
            IDs of the removed movies, ascending
        """
        ids = [movie.id for movie in self.list_for_owner(owner_id)]
        if ids:
            self.session.connection().execute(
                delete(MovieRow).where(MovieRow.owner_id == owner_id)
            )
        return ids  # type: ignore[return-value]

    def watched_counts(self) -> dict[int, int]:
        """Number of WATCHED movies per owner (owners without any are absent)."""
        stmt = (
            select(MovieRow.owner_id, func.count())
            .where(MovieRow.status == MovieStatus.WATCHED)
            .group_by(MovieRow.owner_id)
        )
        return {owner_id: count for owner_id, count in self.session.exec(stmt).all()}

    def likes_received(self) -> dict[int, int]:
        """Sum of ``likes_count`` over all movies of each owner."""
        stmt = select(MovieRow.owner_id, func.sum(MovieRow.likes_count)).group_by(
            MovieRow.owner_id
        )
        return {
            owner_id: int(total or 0)
            for owner_id, total in self.session.exec(stmt).all()
        }


class FollowRepository(Repository[FollowEdge]):
    """Repository for directed follow edges.

    Writes go through ``INSERT ... ON CONFLICT DO NOTHING`` and bulk deletes
    so that a duplicate follow or a missing unfollow is a no-op rather than a
    store error.
    """

    def __init__(self, session: Session):
        super().__init__(session, FollowEdge)

    def insert_edge(self, follower_id: int, followee_id: int) -> bool:
        """Create the edge if absent.

        Returns:
            True if a new edge was written, False if it already existed
        """
        stmt = (
            sqlite_insert(FollowEdge)
            .values(
                follower_id=follower_id,
                followee_id=followee_id,
                created_at=utc_now_iso(),
            )
            .on_conflict_do_nothing(index_elements=["follower_id", "followee_id"])
        )
        result = self.session.connection().execute(stmt)
        return result.rowcount == 1

    def delete_edge(self, follower_id: int, followee_id: int) -> bool:
        """Remove the edge if present.

        Returns:
            True if an edge was removed, False if there was none
        """
        stmt = delete(FollowEdge).where(
            FollowEdge.follower_id == follower_id,
            FollowEdge.followee_id == followee_id,
        )
        result = self.session.connection().execute(stmt)
        return result.rowcount > 0

    def has_edge(self, follower_id: int, followee_id: int) -> bool:
        return self.get((follower_id, followee_id)) is not None

    def list_edges(self) -> Sequence[FollowEdge]:
        """All edges ordered by (follower_id, followee_id)."""
        stmt = select(FollowEdge).order_by(FollowEdge.follower_id, FollowEdge.followee_id)
        return self.session.exec(stmt).all()

    def followers_of(self, user_id: int) -> Sequence[UserRow]:
        """Users with an edge into ``user_id``, ordered by username."""
        stmt = (
            select(UserRow)
            .join(FollowEdge, FollowEdge.follower_id == UserRow.id)
            .where(FollowEdge.followee_id == user_id)
            .order_by(UserRow.username)
        )
        return self.session.exec(stmt).all()

    def following_of(self, user_id: int) -> Sequence[UserRow]:
        """Users ``user_id`` has an edge to, ordered by username."""
        stmt = (
            select(UserRow)
            .join(FollowEdge, FollowEdge.followee_id == UserRow.id)
            .where(FollowEdge.follower_id == user_id)
            .order_by(UserRow.username)
        )
        return self.session.exec(stmt).all()

    def count_followers(self, user_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(FollowEdge)
            .where(FollowEdge.followee_id == user_id)
        )
        return self.session.exec(stmt).one()

    def count_following(self, user_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(FollowEdge)
            .where(FollowEdge.follower_id == user_id)
        )
        return self.session.exec(stmt).one()

    def follower_counts(self) -> dict[int, int]:
        """Number of followers per followee (users without any are absent)."""
        stmt = select(FollowEdge.followee_id, func.count()).group_by(
            FollowEdge.followee_id
        )
        return {user_id: count for user_id, count in self.session.exec(stmt).all()}

    def delete_edges_touching(self, user_id: int) -> int:
        """Remove every edge where ``user_id`` is follower or followee."""
        stmt = delete(FollowEdge).where(
            (FollowEdge.follower_id == user_id) | (FollowEdge.followee_id == user_id)
        )
        return self.session.connection().execute(stmt).rowcount


class LikeRepository(Repository[MovieLikeRow]):
    """Repository for movie likes (one row per user and movie)."""

    def __init__(self, session: Session):
        super().__init__(session, MovieLikeRow)

    def insert_like(self, movie_id: int, user_id: int) -> bool:
        """Create the like if absent. Returns True if a row was written."""
        stmt = (
            sqlite_insert(MovieLikeRow)
            .values(movie_id=movie_id, user_id=user_id, created_at=utc_now_iso())
            .on_conflict_do_nothing(index_elements=["movie_id", "user_id"])
        )
        return self.session.connection().execute(stmt).rowcount == 1

    def delete_like(self, movie_id: int, user_id: int) -> bool:
        stmt = delete(MovieLikeRow).where(
            MovieLikeRow.movie_id == movie_id, MovieLikeRow.user_id == user_id
        )
        return self.session.connection().execute(stmt).rowcount > 0

    def count_for_movie(self, movie_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(MovieLikeRow)
            .where(MovieLikeRow.movie_id == movie_id)
        )
        return self.session.exec(stmt).one()

    def delete_for_movie(self, movie_id: int) -> int:
        stmt = delete(MovieLikeRow).where(MovieLikeRow.movie_id == movie_id)
        return self.session.connection().execute(stmt).rowcount

    def delete_for_user(self, user_id: int) -> list[int]:
        """Remove a user's likes. Returns the IDs of the movies they liked."""
        stmt = select(MovieLikeRow.movie_id).where(MovieLikeRow.user_id == user_id)
        movie_ids = sorted(self.session.exec(stmt).all())
        if movie_ids:
            self.session.connection().execute(
                delete(MovieLikeRow).where(MovieLikeRow.user_id == user_id)
            )
        return movie_ids


class CommentRepository(Repository[CommentRow]):
    """Repository for movie comments."""

    def __init__(self, session: Session):
        super().__init__(session, CommentRow)

    def list_for_movie(self, movie_id: int) -> Sequence[CommentRow]:
        """Comments on a movie, oldest first."""
        stmt = (
            select(CommentRow)
            .where(CommentRow.movie_id == movie_id)
            .order_by(CommentRow.id)
        )
        return self.session.exec(stmt).all()

    def count_for_movie(self, movie_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(CommentRow)
            .where(CommentRow.movie_id == movie_id)
        )
        return self.session.exec(stmt).one()

    def delete_for_movie(self, movie_id: int) -> int:
        stmt = delete(CommentRow).where(CommentRow.movie_id == movie_id)
        return self.session.connection().execute(stmt).rowcount

    def delete_for_user(self, user_id: int) -> list[int]:
        """Remove a user's comments. Returns the distinct affected movie IDs."""
        stmt = select(CommentRow.movie_id).where(CommentRow.user_id == user_id)
        movie_ids = sorted(set(self.session.exec(stmt).all()))
        if movie_ids:
            self.session.connection().execute(
                delete(CommentRow).where(CommentRow.user_id == user_id)
            )
        return movie_ids


# =============================================================================
# Export Public API
# =============================================================================

__all__ = [
    "Repository",
    "UserRepository",
    "MovieRepository",
    "FollowRepository",
    "LikeRepository",
    "CommentRepository",
]
