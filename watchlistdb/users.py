"""User directory and profiles.

The credential side of identity lives outside this package; this service
keeps the rows the core needs (id, username, role) plus profile fields, and
resolves usernames to :class:`Actor` identities for callers such as the CLI.

Example:
    >>> users = UserService(db)
    >>> alice = users.create_user("alice", email="alice@example.com")
    >>> actor = users.resolve_actor("alice")
    >>> users.get_user_profile("alice").watched_count
    0
"""

import re
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from watchlistdb.database import DatabaseManager
from watchlistdb.errors import AuthorizationError, NotFoundError, ValidationError
from watchlistdb.events import DeletionEvents
from watchlistdb.logging import logger
from watchlistdb.metrics import track_operation
from watchlistdb.models import (
    Actor,
    MovieDeleted,
    MovieStatus,
    Role,
    UserDeleted,
    UserProfile,
    UserProfileUpdate,
    UserRow,
)
from watchlistdb.repository import FollowRepository, MovieRepository, UserRepository
from watchlistdb.utils import clean_text, utc_now_iso

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")


def validate_username(username: str) -> str:
    """Return the stripped username or raise.

    Raises:
        ValidationError: Not 3-50 characters of letters, digits, ``_ . -``
    """
    candidate = (username or "").strip()
    if not USERNAME_PATTERN.fullmatch(candidate):
        raise ValidationError(
            "Username must be 3-50 characters of letters, digits, '_', '.' or '-'"
        )
    return candidate


def _build_profile(session: Session, user: UserRow) -> UserProfile:
    follows = FollowRepository(session)
    movies = MovieRepository(session)
    return UserProfile(
        id=user.id,  # type: ignore[arg-type]
        username=user.username,
        role=user.role,
        email=user.email,
        display_name=user.display_name,
        bio=user.bio,
        created_at=user.created_at,
        followers_count=follows.count_followers(user.id),  # type: ignore[arg-type]
        following_count=follows.count_following(user.id),  # type: ignore[arg-type]
        watched_count=movies.count_for_owner(user.id, MovieStatus.WATCHED),  # type: ignore[arg-type]
        wishlist_count=movies.count_for_owner(user.id, MovieStatus.WISHLIST),  # type: ignore[arg-type]
    )


class UserService:
    """Create, look up, edit and delete users.

    Args:
        db: Initialized database manager
        events: Deletion event registry shared with the other services
    """

    def __init__(self, db: DatabaseManager, events: DeletionEvents | None = None):
        self.db = db
        self.events = events or DeletionEvents()

    def create_user(
        self,
        username: str,
        email: str | None = None,
        role: Role = Role.USER,
        display_name: str | None = None,
    ) -> UserProfile:
        """Register a user.

        Raises:
            ValidationError: Malformed or already taken username, malformed email
        """
        with track_operation("create_user"):
            username = validate_username(username)
            email = clean_text(email)
            if email is not None and "@" not in email:
                raise ValidationError("Email must contain '@'")

            with self.db.locks.hold("username", username), self.db.session_scope() as session:
                users = UserRepository(session)
                if users.get_by_username(username) is not None:
                    raise ValidationError(f"Username '{username}' is already taken")
                user = users.put(
                    UserRow(
                        username=username,
                        email=email,
                        role=role,
                        display_name=clean_text(display_name),
                    )
                )
                profile = _build_profile(session, user)

            logger.info(f"✅ User '{username}' created with id {profile.id} ({role})")
            return profile

    def resolve_actor(self, username: str) -> Actor:
        """Look up the identity for ``username``.

        Raises:
            NotFoundError: Unknown username
        """
        with self.db.session_scope() as session:
            user = UserRepository(session).get_by_username(username)
            if user is None:
                raise NotFoundError("User", "username", username)
            return Actor(user_id=user.id, role=user.role)  # type: ignore[arg-type]

    def get_user_profile(self, username: str) -> UserProfile:
        """Public profile with follower, following, watched and wishlist counts.

        Raises:
            NotFoundError: Unknown username
        """
        with track_operation("get_user_profile"):
            with self.db.session_scope() as session:
                user = UserRepository(session).get_by_username(username)
                if user is None:
                    raise NotFoundError("User", "username", username)
                return _build_profile(session, user)

    def update_user_profile(
        self, actor: Actor, request: UserProfileUpdate | Mapping[str, Any]
    ) -> UserProfile:
        """Edit the actor's own profile. Fields left as None are unchanged.

        Raises:
            NotFoundError: The actor does not resolve to a user
            ValidationError: Malformed email
        """
        with track_operation("update_user_profile", actor_id=actor.user_id):
            if not isinstance(request, UserProfileUpdate):
                try:
                    request = UserProfileUpdate.model_validate(request)
                except PydanticValidationError as exc:
                    raise ValidationError(f"Invalid profile update: {exc.error_count()} error(s)") from exc

            with self.db.locks.hold("user", actor.user_id), self.db.session_scope() as session:
                users = UserRepository(session)
                user = users.get(actor.user_id, for_update=True)
                if user is None:
                    raise NotFoundError("User", "id", actor.user_id)

                for field in ("email", "display_name", "bio"):
                    value = getattr(request, field)
                    if value is not None:
                        setattr(user, field, value or None)

                profile = _build_profile(session, users.put(user))

            logger.info(f"✅ Profile of user {actor.user_id} updated")
            return profile

    def delete_user(self, user_id: int, actor: Actor) -> UserDeleted:
        """Delete a user together with their follow edges and movies.

        Edges and movies go in the same transaction as the user row. After
        commit, a :class:`MovieDeleted` event is published for every removed
        movie, then one :class:`UserDeleted` event.

        Raises:
            NotFoundError: No user with this id
            AuthorizationError: Actor is neither that user nor an ADMIN
        """
        with track_operation("delete_user", actor_id=actor.user_id):
            if not actor.may_mutate(user_id):
                raise AuthorizationError("You are not authorized to delete this user")

            with self.db.locks.hold("user", user_id), self.db.session_scope() as session:
                users = UserRepository(session)
                user = users.get(user_id, for_update=True)
                if user is None:
                    raise NotFoundError("User", "id", user_id)

                username = user.username
                edges = FollowRepository(session).delete_edges_touching(user_id)
                movie_ids = MovieRepository(session).delete_for_owner(user_id)
                users.delete(user)

            deleted_at = utc_now_iso()
            logger.info(
                f"🗑️ User '{username}' deleted by user {actor.user_id} "
                f"({len(movie_ids)} movies, {edges} follow edges)"
            )

            for movie_id in movie_ids:
                self.events.movie_deleted(
                    MovieDeleted(
                        movie_id=movie_id,
                        owner_id=user_id,
                        deleted_by=actor.user_id,
                        deleted_at=deleted_at,
                    )
                )
            event = UserDeleted(
                user_id=user_id,
                username=username,
                movie_ids=movie_ids,
                deleted_by=actor.user_id,
                deleted_at=deleted_at,
            )
            self.events.user_deleted(event)
            return event


__all__ = ["UserService", "validate_username", "USERNAME_PATTERN"]
