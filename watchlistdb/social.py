"""Social graph service: directed follow relationships.

Edges are directed (A follows B says nothing about B following A), a user
never follows themselves, and an ordered pair has at most one edge. Follow
and unfollow are idempotent: repeating either is a successful no-op.

Example:
    >>> social = SocialGraphService(db)
    >>> social.follow_user("alice", "bob")
    >>> [u.username for u in social.get_followers("bob")]
    ['alice']
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlmodel import Session

from watchlistdb.database import DatabaseManager
from watchlistdb.errors import InvalidOperationError, NotFoundError
from watchlistdb.logging import logger
from watchlistdb.metrics import track_operation
from watchlistdb.models import Acknowledgement, UserRow, UserSummary
from watchlistdb.repository import FollowRepository, UserRepository


def _require_user(session: Session, username: str) -> UserRow:
    user = UserRepository(session).get_by_username(username)
    if user is None:
        raise NotFoundError("User", "username", username)
    return user


class SocialGraphService:
    """Follow, unfollow and list followers/following by username.

    Args:
        db: Initialized database manager
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _resolve_pair(self, follower_username: str, followee_username: str) -> tuple[int, int]:
        with self.db.session_scope() as session:
            follower = _require_user(session, follower_username)
            followee = _require_user(session, followee_username)
            return follower.id, followee.id  # type: ignore[return-value]

    @contextmanager
    def _edge_scope(
        self, follower_username: str, followee_username: str, follower_id: int, followee_id: int
    ) -> Iterator[Session]:
        """Lock both users and the edge, then open the write transaction.

        Both users are looked up again under their locks, so a concurrent
        ``delete_user`` either finishes first (NotFoundError here) or waits
        until this edge change has committed and then removes it.
        """
        locks = self.db.locks
        with (
            locks.hold_all(("user", follower_id), ("user", followee_id)),
            locks.hold("follow", follower_id, followee_id),
            self.db.session_scope() as session,
        ):
            users = UserRepository(session)
            if users.get(follower_id) is None:
                raise NotFoundError("User", "username", follower_username)
            if users.get(followee_id) is None:
                raise NotFoundError("User", "username", followee_username)
            yield session

    def follow_user(self, follower_username: str, followee_username: str) -> Acknowledgement:
        """Create the edge follower -> followee if it does not exist.

        Raises:
            NotFoundError: Either username is unknown
            InvalidOperationError: Follower and followee are the same user
        """
        with track_operation("follow_user"):
            follower_id, followee_id = self._resolve_pair(follower_username, followee_username)
            if follower_id == followee_id:
                raise InvalidOperationError("You cannot follow yourself")

            with self._edge_scope(
                follower_username, followee_username, follower_id, followee_id
            ) as session:
                created = FollowRepository(session).insert_edge(follower_id, followee_id)

            if created:
                logger.info(f"✅ {follower_username} now follows {followee_username}")
            else:
                logger.debug(f"{follower_username} already follows {followee_username}")
            return Acknowledgement(message=f"You are now following {followee_username}")

    def unfollow_user(self, follower_username: str, followee_username: str) -> Acknowledgement:
        """Remove the edge follower -> followee if it exists.

        Raises:
            NotFoundError: Either username is unknown
        """
        with track_operation("unfollow_user"):
            follower_id, followee_id = self._resolve_pair(follower_username, followee_username)

            with self._edge_scope(
                follower_username, followee_username, follower_id, followee_id
            ) as session:
                removed = FollowRepository(session).delete_edge(follower_id, followee_id)

            if removed:
                logger.info(f"✅ {follower_username} unfollowed {followee_username}")
            else:
                logger.debug(f"{follower_username} was not following {followee_username}")
            return Acknowledgement(message=f"You have unfollowed {followee_username}")

    def get_followers(self, username: str) -> list[UserSummary]:
        """Users following ``username``, ordered by username.

        Raises:
            NotFoundError: Unknown username
        """
        with track_operation("get_followers"):
            with self.db.session_scope() as session:
                user = _require_user(session, username)
                rows = FollowRepository(session).followers_of(user.id)  # type: ignore[arg-type]
                return [UserSummary.model_validate(row) for row in rows]

    def get_following(self, username: str) -> list[UserSummary]:
        """Users ``username`` follows, ordered by username.

        Raises:
            NotFoundError: Unknown username
        """
        with track_operation("get_following"):
            with self.db.session_scope() as session:
                user = _require_user(session, username)
                rows = FollowRepository(session).following_of(user.id)  # type: ignore[arg-type]
                return [UserSummary.model_validate(row) for row in rows]

    def is_following(self, follower_username: str, followee_username: str) -> bool:
        with self.db.session_scope() as session:
            follower = _require_user(session, follower_username)
            followee = _require_user(session, followee_username)
            return FollowRepository(session).has_edge(follower.id, followee.id)  # type: ignore[arg-type]


__all__ = ["SocialGraphService"]
