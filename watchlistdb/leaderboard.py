"""Leaderboard engine: ranks every user by a weighted activity score.

    score = watched_count * W1 + likes_received * W2 + follower_count * W3

``likes_received`` sums ``likes_count`` over all of the user's movies, on
either list. Weights come from settings and satisfy ``W1 >= W2 >= W3 >= 0``.

Entries are ordered by score descending, then username ascending, so the
order is total and reproducible for an unchanged store. Rank is the 1-based
position; tied scores still get distinct ranks.

Example:
    >>> engine = LeaderboardEngine(db)
    >>> for entry in engine.get_leaderboard(limit=10):
    ...     print(entry.rank, entry.username, entry.score)
"""

from watchlistdb.config import LeaderboardWeights, settings
from watchlistdb.database import DatabaseManager
from watchlistdb.errors import ValidationError
from watchlistdb.logging import logger
from watchlistdb.metrics import track_operation
from watchlistdb.models import LeaderboardEntry
from watchlistdb.repository import FollowRepository, MovieRepository, UserRepository


def compute_score(
    watched_count: int,
    likes_received: int,
    follower_count: int,
    weights: LeaderboardWeights,
) -> int:
    """Apply the leaderboard weights to one user's counters."""
    return (
        watched_count * weights.watched
        + likes_received * weights.likes
        + follower_count * weights.followers
    )


class LeaderboardEngine:
    """Computes the leaderboard on demand from current rows.

    Args:
        db: Initialized database manager
        weights: Fixed weights; when omitted they are read from settings on
            every computation
    """

    def __init__(self, db: DatabaseManager, weights: LeaderboardWeights | None = None):
        self.db = db
        self._weights = weights

    @property
    def weights(self) -> LeaderboardWeights:
        return self._weights or settings.leaderboard_weights

    def get_leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]:
        """Rank all users, including those with a score of 0.

        Args:
            limit: Return only the top ``limit`` entries

        Returns:
            Entries ordered by (score desc, username asc) with ranks 1..N

        Raises:
            ValidationError: ``limit`` is negative
        """
        if limit is not None and limit < 0:
            raise ValidationError(f"limit must be non-negative, got {limit}")

        with track_operation("get_leaderboard"):
            weights = self.weights

            with self.db.session_scope() as session:
                users = UserRepository(session).list_all()
                movies = MovieRepository(session)
                watched = movies.watched_counts()
                likes = movies.likes_received()
                followers = FollowRepository(session).follower_counts()

                scored = []
                for user in users:
                    watched_count = watched.get(user.id, 0)  # type: ignore[arg-type]
                    likes_received = likes.get(user.id, 0)  # type: ignore[arg-type]
                    follower_count = followers.get(user.id, 0)  # type: ignore[arg-type]
                    score = compute_score(watched_count, likes_received, follower_count, weights)
                    scored.append((score, user, watched_count, likes_received, follower_count))

            scored.sort(key=lambda item: (-item[0], item[1].username))
            if limit is not None:
                scored = scored[:limit]

            entries = [
                LeaderboardEntry(
                    user_id=user.id,
                    username=user.username,
                    score=score,
                    rank=position,
                    watched_count=watched_count,
                    likes_received=likes_received,
                    follower_count=follower_count,
                )
                for position, (score, user, watched_count, likes_received, follower_count)
                in enumerate(scored, start=1)
            ]

            logger.debug(f"Leaderboard computed for {len(entries)} users")
            return entries


__all__ = ["LeaderboardEngine", "compute_score"]
