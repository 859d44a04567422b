"""Tests for the leaderboard engine."""

import pytest

from watchlistdb.config import LeaderboardWeights
from watchlistdb.errors import ValidationError
from watchlistdb.leaderboard import LeaderboardEngine, compute_score
from watchlistdb.models import MovieRequest, MovieStatus
from watchlistdb.repository import MovieRepository


def _set_likes(app, movie_id, likes_count):
    with app.db.session_scope() as session:
        movies = MovieRepository(session)
        movie = movies.get(movie_id)
        movie.likes_count = likes_count
        movies.put(movie)


def _watched(app, actor, title):
    return app.movies.add_movie(
        MovieRequest(title=title, status=MovieStatus.WATCHED), actor
    )


class TestComputeScore:
    def test_weighted_sum(self):
        weights = LeaderboardWeights(watched=3, likes=1, followers=1)

        assert compute_score(2, 10, 3, weights) == 19
        assert compute_score(1, 20, 0, weights) == 23


class TestLeaderboard:
    """Tests for ranking."""

    def test_empty(self, app):
        assert app.leaderboard.get_leaderboard() == []

    def test_two_user_scenario(self, app):
        app.users.create_user("usera")
        app.users.create_user("userb")
        a = app.users.resolve_actor("usera")
        b = app.users.resolve_actor("userb")

        first = _watched(app, a, "A1")
        _watched(app, a, "A2")
        _set_likes(app, first.id, 10)
        for name in ("fan1", "fan2", "fan3"):
            app.users.create_user(name)
            app.social.follow_user(name, "usera")

        b_movie = _watched(app, b, "B1")
        _set_likes(app, b_movie.id, 20)

        entries = app.leaderboard.get_leaderboard()
        by_name = {e.username: e for e in entries}

        assert by_name["usera"].score == 19
        assert by_name["userb"].score == 23
        assert entries[0].username == "userb"
        assert entries[1].username == "usera"
        assert (entries[0].rank, entries[1].rank) == (1, 2)
        assert by_name["usera"].watched_count == 2
        assert by_name["usera"].likes_received == 10
        assert by_name["usera"].follower_count == 3

    def test_includes_zero_score_users(self, app, alice, bob):
        entries = app.leaderboard.get_leaderboard()

        assert [e.username for e in entries] == ["alice", "bob"]
        assert all(e.score == 0 for e in entries)

    def test_ties_break_by_username_with_distinct_ranks(self, app):
        for name in ("delta", "alpha", "charlie"):
            app.users.create_user(name)
            _watched(app, app.users.resolve_actor(name), f"{name} movie")

        entries = app.leaderboard.get_leaderboard()

        assert [e.username for e in entries] == ["alpha", "charlie", "delta"]
        assert [e.rank for e in entries] == [1, 2, 3]
        assert {e.score for e in entries} == {3}

    def test_wishlist_movies_do_not_count_as_watched(self, app, alice):
        movie = app.movies.add_movie(MovieRequest(title="Later"), alice)
        _set_likes(app, movie.id, 2)

        entry = app.leaderboard.get_leaderboard()[0]

        assert entry.watched_count == 0
        assert entry.likes_received == 2
        assert entry.score == 2

    def test_likes_from_engagement(self, app, alice, bob):
        movie = _watched(app, alice, "Heat")
        app.engagement.like_movie(movie.id, bob)

        by_name = {e.username: e for e in app.leaderboard.get_leaderboard()}

        assert by_name["alice"].likes_received == 1
        assert by_name["alice"].score == 4

    def test_reproducible(self, app, alice, bob):
        _watched(app, bob, "Heat")
        app.social.follow_user("bob", "alice")

        assert app.leaderboard.get_leaderboard() == app.leaderboard.get_leaderboard()

    def test_limit(self, app):
        for name in ("u_one", "u_two", "u_three"):
            app.users.create_user(name)

        assert len(app.leaderboard.get_leaderboard(limit=2)) == 2
        assert app.leaderboard.get_leaderboard(limit=0) == []

    def test_negative_limit_rejected(self, app):
        with pytest.raises(ValidationError):
            app.leaderboard.get_leaderboard(limit=-1)

    def test_custom_weights(self, app, alice, bob):
        _watched(app, alice, "Heat")
        app.social.follow_user("alice", "bob")
        engine = LeaderboardEngine(app.db, weights=LeaderboardWeights(watched=1, likes=1, followers=1))

        scores = {e.username: e.score for e in engine.get_leaderboard()}

        assert scores == {"alice": 1, "bob": 1}
