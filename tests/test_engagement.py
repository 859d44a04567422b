"""Tests for likes, comments and deletion cleanup."""

import pytest

from watchlistdb.errors import AuthorizationError, NotFoundError, ValidationError
from watchlistdb.models import MovieRequest
from watchlistdb.repository import CommentRepository, LikeRepository


@pytest.fixture
def movie(app, alice):
    return app.movies.add_movie(MovieRequest(title="Inception"), alice)


# =============================================================================
# Likes
# =============================================================================


class TestLikes:
    """Tests for like counters."""

    def test_like_increments_counter(self, app, movie, bob):
        liked = app.engagement.like_movie(movie.id, bob)

        assert liked.likes_count == 1
        assert app.engagement.has_liked(movie.id, bob) is True

    def test_like_is_idempotent(self, app, movie, bob):
        app.engagement.like_movie(movie.id, bob)
        again = app.engagement.like_movie(movie.id, bob)

        assert again.likes_count == 1

    def test_unlike(self, app, movie, bob):
        app.engagement.like_movie(movie.id, bob)

        unliked = app.engagement.unlike_movie(movie.id, bob)

        assert unliked.likes_count == 0
        assert app.engagement.has_liked(movie.id, bob) is False

    def test_unlike_without_like_is_noop(self, app, movie, bob):
        assert app.engagement.unlike_movie(movie.id, bob).likes_count == 0

    def test_counter_matches_rows(self, app, movie, alice, bob, admin):
        for actor in (alice, bob, admin):
            app.engagement.like_movie(movie.id, actor)
        app.engagement.unlike_movie(movie.id, alice)

        with app.db.session_scope() as session:
            rows = LikeRepository(session).count_for_movie(movie.id)

        assert app.movies.get_movie_by_id(movie.id).likes_count == rows == 2

    def test_like_unknown_movie(self, app, bob):
        with pytest.raises(NotFoundError):
            app.engagement.like_movie(999, bob)


# =============================================================================
# Comments
# =============================================================================


class TestComments:
    """Tests for comments."""

    def test_add_and_list_oldest_first(self, app, movie, alice, bob):
        app.engagement.add_comment(movie.id, bob, "first!")
        app.engagement.add_comment(movie.id, alice, "  thanks  ")

        comments = app.engagement.get_comments(movie.id)

        assert [c.content for c in comments] == ["first!", "thanks"]
        assert app.movies.get_movie_by_id(movie.id).comments_count == 2

    @pytest.mark.parametrize("content", ["", "   ", "x" * 2001])
    def test_invalid_content(self, app, movie, bob, content):
        with pytest.raises(ValidationError):
            app.engagement.add_comment(movie.id, bob, content)

    def test_max_length_accepted(self, app, movie, bob):
        comment = app.engagement.add_comment(movie.id, bob, "x" * 2000)

        assert len(comment.content) == 2000

    def test_comments_on_unknown_movie(self, app, bob):
        with pytest.raises(NotFoundError):
            app.engagement.add_comment(999, bob, "hello")
        with pytest.raises(NotFoundError):
            app.engagement.get_comments(999)

    def test_author_deletes(self, app, movie, bob):
        comment = app.engagement.add_comment(movie.id, bob, "hello")

        app.engagement.delete_comment(comment.id, bob)

        assert app.engagement.get_comments(movie.id) == []
        assert app.movies.get_movie_by_id(movie.id).comments_count == 0

    def test_movie_owner_deletes(self, app, movie, alice, bob):
        comment = app.engagement.add_comment(movie.id, bob, "spam")

        assert app.engagement.delete_comment(comment.id, alice).success is True

    def test_stranger_cannot_delete(self, app, movie, bob):
        comment = app.engagement.add_comment(movie.id, bob, "hello")
        app.users.create_user("carol")
        carol = app.users.resolve_actor("carol")

        with pytest.raises(AuthorizationError):
            app.engagement.delete_comment(comment.id, carol)

        assert len(app.engagement.get_comments(movie.id)) == 1

    def test_delete_unknown_comment(self, app, bob):
        with pytest.raises(NotFoundError):
            app.engagement.delete_comment(999, bob)


# =============================================================================
# Deletion cleanup
# =============================================================================


@pytest.mark.integration
class TestDeletionCleanup:
    """Tests for the deletion listener behaviour."""

    def test_movie_deletion_removes_likes_and_comments(self, app, movie, alice, bob):
        app.engagement.like_movie(movie.id, bob)
        app.engagement.add_comment(movie.id, bob, "nice")

        app.movies.delete_movie(movie.id, alice)

        with app.db.session_scope() as session:
            assert LikeRepository(session).count_for_movie(movie.id) == 0
            assert CommentRepository(session).count_for_movie(movie.id) == 0

    def test_user_deletion_repairs_counters(self, app, movie, alice, bob):
        app.engagement.like_movie(movie.id, bob)
        app.engagement.add_comment(movie.id, bob, "nice")

        app.users.delete_user(bob.user_id, bob)

        remaining = app.movies.get_movie_by_id(movie.id)
        assert remaining.likes_count == 0
        assert remaining.comments_count == 0
        assert app.engagement.get_comments(movie.id) == []
