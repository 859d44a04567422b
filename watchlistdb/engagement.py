"""Engagement service: likes and comments on movies.

Maintains the ``likes_count`` and ``comments_count`` counters on
:class:`MovieRow`. Counters are recomputed from the like/comment rows inside
the same transaction as the change, under the movie's keyed lock, so a
counter always equals the number of rows behind it. Liking and commenting
also hold the actor's user lock (taken first), so neither can slip in
between a user's deletion and the cleanup of that user's rows.

The service is also a deletion listener: when a movie or a user is deleted
it removes the orphaned likes and comments and repairs the counters of the
movies that remain.
"""

from watchlistdb.database import DatabaseManager
from watchlistdb.errors import AuthorizationError, NotFoundError, ValidationError
from watchlistdb.logging import logger
from watchlistdb.metrics import track_operation
from watchlistdb.models import (
    Acknowledgement,
    Actor,
    CommentRead,
    CommentRow,
    MovieDeleted,
    MovieRead,
    UserDeleted,
)
from watchlistdb.repository import (
    CommentRepository,
    LikeRepository,
    MovieRepository,
    UserRepository,
)

MAX_COMMENT_LENGTH = 2000


class EngagementService:
    """Like, unlike and comment on movies.

    Args:
        db: Initialized database manager
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    # ========== Likes ==========

    def like_movie(self, movie_id: int, actor: Actor) -> MovieRead:
        """Like a movie. Liking it again is a no-op.

        Raises:
            NotFoundError: Unknown movie or the actor's user does not exist
        """
        with track_operation("like_movie", actor_id=actor.user_id):
            with (
                self.db.locks.hold("user", actor.user_id),
                self.db.locks.hold("movie", movie_id),
                self.db.session_scope() as session,
            ):
                movies = MovieRepository(session)
                movie = movies.get(movie_id, for_update=True)
                if movie is None:
                    raise NotFoundError("Movie", "id", movie_id)
                if UserRepository(session).get(actor.user_id) is None:
                    raise NotFoundError("User", "id", actor.user_id)

                likes = LikeRepository(session)
                created = likes.insert_like(movie_id, actor.user_id)
                movie.likes_count = likes.count_for_movie(movie_id)
                result = MovieRead.model_validate(movies.put(movie))

            if created:
                logger.info(f"✅ User {actor.user_id} liked movie {movie_id}")
            return result

    def unlike_movie(self, movie_id: int, actor: Actor) -> MovieRead:
        """Remove a like. Unliking a movie that was not liked is a no-op.

        Raises:
            NotFoundError: Unknown movie
        """
        with track_operation("unlike_movie", actor_id=actor.user_id):
            with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
                movies = MovieRepository(session)
                movie = movies.get(movie_id, for_update=True)
                if movie is None:
                    raise NotFoundError("Movie", "id", movie_id)

                likes = LikeRepository(session)
                removed = likes.delete_like(movie_id, actor.user_id)
                movie.likes_count = likes.count_for_movie(movie_id)
                result = MovieRead.model_validate(movies.put(movie))

            if removed:
                logger.info(f"✅ User {actor.user_id} unliked movie {movie_id}")
            return result

    def has_liked(self, movie_id: int, actor: Actor) -> bool:
        with self.db.session_scope() as session:
            return LikeRepository(session).exists((movie_id, actor.user_id))

    # ========== Comments ==========

    def add_comment(self, movie_id: int, actor: Actor, content: str) -> CommentRead:
        """Comment on a movie.

        Raises:
            ValidationError: Blank content or more than 2000 characters
            NotFoundError: Unknown movie or the actor's user does not exist
        """
        with track_operation("add_comment", actor_id=actor.user_id):
            text = (content or "").strip()
            if not text:
                raise ValidationError("Comment content is required")
            if len(text) > MAX_COMMENT_LENGTH:
                raise ValidationError(
                    f"Comment must be at most {MAX_COMMENT_LENGTH} characters"
                )

            with (
                self.db.locks.hold("user", actor.user_id),
                self.db.locks.hold("movie", movie_id),
                self.db.session_scope() as session,
            ):
                movies = MovieRepository(session)
                movie = movies.get(movie_id, for_update=True)
                if movie is None:
                    raise NotFoundError("Movie", "id", movie_id)
                if UserRepository(session).get(actor.user_id) is None:
                    raise NotFoundError("User", "id", actor.user_id)

                comments = CommentRepository(session)
                comment = comments.put(
                    CommentRow(movie_id=movie_id, user_id=actor.user_id, content=text)
                )
                movie.comments_count = comments.count_for_movie(movie_id)
                movies.put(movie)
                result = CommentRead.model_validate(comment)

            logger.info(f"✅ User {actor.user_id} commented on movie {movie_id}")
            return result

    def get_comments(self, movie_id: int) -> list[CommentRead]:
        """Comments on a movie, oldest first.

        Raises:
            NotFoundError: Unknown movie
        """
        with track_operation("get_comments"):
            with self.db.session_scope() as session:
                if MovieRepository(session).get(movie_id) is None:
                    raise NotFoundError("Movie", "id", movie_id)
                rows = CommentRepository(session).list_for_movie(movie_id)
                return [CommentRead.model_validate(row) for row in rows]

    def delete_comment(self, comment_id: int, actor: Actor) -> Acknowledgement:
        """Delete a comment as its author, the movie's owner or an ADMIN.

        Raises:
            NotFoundError: Unknown comment
            AuthorizationError: Actor is none of the above
        """
        with track_operation("delete_comment", actor_id=actor.user_id):
            with self.db.session_scope() as session:
                comment = CommentRepository(session).get(comment_id)
                if comment is None:
                    raise NotFoundError("Comment", "id", comment_id)
                movie_id = comment.movie_id

            with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
                comments = CommentRepository(session)
                movies = MovieRepository(session)
                comment = comments.get(comment_id, for_update=True)
                if comment is None:
                    raise NotFoundError("Comment", "id", comment_id)
                movie = movies.get(movie_id, for_update=True)

                allowed = (
                    actor.is_admin
                    or comment.user_id == actor.user_id
                    or (movie is not None and movie.owner_id == actor.user_id)
                )
                if not allowed:
                    raise AuthorizationError("You are not authorized to delete this comment")

                comments.delete(comment)
                if movie is not None:
                    movie.comments_count = comments.count_for_movie(movie_id)
                    movies.put(movie)

            logger.info(f"🗑️ Comment {comment_id} deleted by user {actor.user_id}")
            return Acknowledgement(message="Comment deleted successfully")

    # ========== Deletion listeners ==========

    def on_movie_deleted(self, event: MovieDeleted) -> None:
        """Remove likes and comments of a deleted movie."""
        with self.db.locks.hold("movie", event.movie_id), self.db.session_scope() as session:
            likes = LikeRepository(session).delete_for_movie(event.movie_id)
            comments = CommentRepository(session).delete_for_movie(event.movie_id)
        logger.debug(
            f"Removed {likes} likes and {comments} comments of deleted movie {event.movie_id}"
        )

    def on_user_deleted(self, event: UserDeleted) -> None:
        """Remove a deleted user's likes and comments, then repair counters."""
        with self.db.session_scope() as session:
            liked = LikeRepository(session).delete_for_user(event.user_id)
            commented = CommentRepository(session).delete_for_user(event.user_id)

        for movie_id in sorted(set(liked) | set(commented)):
            self._recount(movie_id)

        logger.debug(
            f"Removed likes on {len(liked)} and comments on {len(commented)} movies "
            f"of deleted user {event.user_id}"
        )

    def _recount(self, movie_id: int) -> None:
        with self.db.locks.hold("movie", movie_id), self.db.session_scope() as session:
            movies = MovieRepository(session)
            movie = movies.get(movie_id, for_update=True)
            if movie is None:
                return
            movie.likes_count = LikeRepository(session).count_for_movie(movie_id)
            movie.comments_count = CommentRepository(session).count_for_movie(movie_id)
            movies.put(movie)


__all__ = ["EngagementService", "MAX_COMMENT_LENGTH"]
