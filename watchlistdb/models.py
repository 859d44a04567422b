"""Data models for WatchlistDB.

This module defines both Pydantic models (requests, views and events that
cross the service boundary) and SQLModel ORM models (database persistence).

Models are organized into three sections:
1. Enumerations shared by both layers
2. Pydantic models for requests, responses and events
3. SQLModel tables for database persistence
"""

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictInt, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel

from watchlistdb.utils import utc_now_iso

# =============================================================================
# Section 1: Enumerations
# =============================================================================


class MovieStatus(StrEnum):
    """Which of its owner's lists a movie is on."""

    WISHLIST = "WISHLIST"
    WATCHED = "WATCHED"


class Role(StrEnum):
    """Authorization role of a user."""

    USER = "USER"
    ADMIN = "ADMIN"


MIN_RATING = 1
MAX_RATING = 5


# =============================================================================
# Section 2: Pydantic Models
# =============================================================================


class Actor(BaseModel):
    """Authenticated identity performing an operation.

    Resolved once by the request gateway and passed explicitly into every
    service call that needs it.

    Attributes:
        user_id: Identifier of the acting user
        role: Role of the acting user
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def may_mutate(self, owner_id: int) -> bool:
        """Check the ownership-or-admin rule for a record owned by ``owner_id``."""
        return self.is_admin or self.user_id == owner_id


class MovieRequest(BaseModel):
    """Caller-supplied movie fields for add and update.

    Every field is optional at the type level; the movie list service decides
    which ones are required. Both snake_case and camelCase keys are accepted.

    Attributes:
        title: Movie title (required by add/update)
        genre: Free-form genre label
        release_year: Year of release
        runtime_minutes: Runtime in minutes
        poster_url: Poster image URL
        external_id: Metadata provider id (TMDB) when adopted
        status: Requested list; None means "default/keep current"
        rating: 1-5 rating, meaningful only for WATCHED
        review: Free-text review, meaningful only for WATCHED
    """

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    title: Optional[str] = None
    genre: Optional[str] = None
    release_year: Optional[int] = None
    runtime_minutes: Optional[int] = None
    poster_url: Optional[str] = None
    external_id: Optional[int] = None
    status: Optional[MovieStatus] = None
    rating: Optional[StrictInt] = None
    review: Optional[str] = None


class MovieRead(BaseModel):
    """Public view of a movie, always reflecting post-mutation state."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    external_id: Optional[int] = None
    title: str
    genre: Optional[str] = None
    release_year: Optional[int] = None
    runtime_minutes: Optional[int] = None
    poster_url: Optional[str] = None
    status: MovieStatus
    rating: Optional[int] = None
    review: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class UserSummary(BaseModel):
    """Minimal user view used in follower/following lists."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    display_name: Optional[str] = None


class UserProfile(BaseModel):
    """User profile with social and list counters.

    Attributes:
        followers_count: Users following this user
        following_count: Users this user follows
        watched_count: Movies on the WATCHED list
        wishlist_count: Movies on the WISHLIST
    """

    id: int
    username: str
    role: Role
    email: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[str] = None
    followers_count: int = 0
    following_count: int = 0
    watched_count: int = 0
    wishlist_count: int = 0


class UserProfileUpdate(BaseModel):
    """Editable profile fields. None leaves a field unchanged."""

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    email: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class LeaderboardEntry(BaseModel):
    """One ranked row of the leaderboard (derived, never persisted)."""

    user_id: int
    username: str
    score: int
    rank: int
    watched_count: int = 0
    likes_received: int = 0
    follower_count: int = 0


class Acknowledgement(BaseModel):
    """Result of an operation that has no entity to return."""

    success: bool = True
    message: str


class CommentRead(BaseModel):
    """Public view of a comment on a movie."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    movie_id: int
    user_id: int
    content: str
    created_at: Optional[str] = None


class MovieDeleted(BaseModel):
    """Event delivered to deletion listeners after a movie row is removed."""

    movie_id: int
    owner_id: int
    deleted_by: int
    deleted_at: str


class UserDeleted(BaseModel):
    """Event delivered to deletion listeners after a user row is removed."""

    user_id: int
    username: str
    movie_ids: list[int] = []
    deleted_by: int
    deleted_at: str


# =============================================================================
# Section 3: SQLModel Tables for Database Persistence
# =============================================================================


class UserRow(SQLModel, table=True):
    """Persisted user identity and profile.

    Credentials live in the external identity subsystem; only the fields
    below are stored here.

    Attributes:
        id: User ID (primary key)
        username: Unique handle (indexed)
        role: USER or ADMIN
        email: Contact email
        display_name: Name shown in lists
        bio: Short profile text
        created_at: ISO8601 UTC creation timestamp
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    role: Role = Field(default=Role.USER)
    email: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)


class MovieRow(SQLModel, table=True):
    """Persisted movie on a user's wishlist or watched list.

    Attributes:
        id: Movie ID (primary key, insertion ordered)
        owner_id: FK to UserRow.id (indexed, immutable)
        external_id: TMDB id when adopted from the metadata provider
        status: WISHLIST or WATCHED (indexed)
        rating: 1-5, only ever set while WATCHED
        review: Free text, only ever set while WATCHED
        likes_count: Like counter maintained by the engagement service
        comments_count: Comment counter maintained by the engagement service
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="userrow.id", index=True)
    external_id: Optional[int] = Field(default=None, index=True)
    title: str
    genre: Optional[str] = None
    release_year: Optional[int] = None
    runtime_minutes: Optional[int] = None
    poster_url: Optional[str] = None
    status: MovieStatus = Field(default=MovieStatus.WISHLIST, index=True)
    rating: Optional[int] = None
    review: Optional[str] = None
    likes_count: int = Field(default=0)
    comments_count: int = Field(default=0)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class FollowEdge(SQLModel, table=True):
    """Directed follow relation (composite primary key = one edge per pair).

    Attributes:
        follower_id: FK to UserRow.id (user who follows)
        followee_id: FK to UserRow.id (user being followed, indexed)
        created_at: ISO8601 UTC timestamp of the follow
    """

    follower_id: int = Field(primary_key=True, foreign_key="userrow.id")
    followee_id: int = Field(primary_key=True, foreign_key="userrow.id", index=True)
    created_at: str = Field(default_factory=utc_now_iso)


class MovieLikeRow(SQLModel, table=True):
    """A user's like on a movie (composite primary key = one like per pair)."""

    movie_id: int = Field(primary_key=True, foreign_key="movierow.id")
    user_id: int = Field(primary_key=True, foreign_key="userrow.id", index=True)
    created_at: str = Field(default_factory=utc_now_iso)


class CommentRow(SQLModel, table=True):
    """A comment left on a movie.

    Attributes:
        id: Comment ID (primary key)
        movie_id: FK to MovieRow.id (indexed)
        user_id: FK to UserRow.id (comment author, indexed)
        content: Comment text
        created_at: ISO8601 UTC creation timestamp
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    movie_id: int = Field(foreign_key="movierow.id", index=True)
    user_id: int = Field(foreign_key="userrow.id", index=True)
    content: str
    created_at: str = Field(default_factory=utc_now_iso)
