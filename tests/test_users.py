"""Tests for the user service."""

import threading

import pytest

from watchlistdb.errors import AuthorizationError, NotFoundError, ValidationError
from watchlistdb.models import Actor, MovieRequest, MovieStatus, Role, UserProfileUpdate
from watchlistdb.repository import FollowRepository, LikeRepository, MovieRepository


class TestCreateUser:
    """Tests for registration."""

    def test_create(self, app):
        profile = app.users.create_user("alice", email="alice@example.com", display_name="Alice")

        assert profile.id is not None
        assert profile.username == "alice"
        assert profile.role == Role.USER
        assert profile.display_name == "Alice"
        assert profile.followers_count == 0

    def test_admin_role(self, app):
        assert app.users.create_user("root", role=Role.ADMIN).role == Role.ADMIN

    def test_duplicate_username(self, app, alice):
        with pytest.raises(ValidationError, match="already taken"):
            app.users.create_user("alice")

    @pytest.mark.parametrize("username", ["ab", "", "has space", "x" * 51, "semi;colon"])
    def test_invalid_username(self, app, username):
        with pytest.raises(ValidationError):
            app.users.create_user(username)

    def test_invalid_email(self, app):
        with pytest.raises(ValidationError):
            app.users.create_user("alice", email="not-an-email")


class TestProfiles:
    """Tests for profile reads and edits."""

    def test_profile_counts(self, app, alice, bob):
        app.movies.add_movie(MovieRequest(title="Wish"), alice)
        app.movies.add_movie(MovieRequest(title="Seen", status=MovieStatus.WATCHED), alice)
        app.social.follow_user("bob", "alice")

        profile = app.users.get_user_profile("alice")

        assert profile.wishlist_count == 1
        assert profile.watched_count == 1
        assert profile.followers_count == 1
        assert profile.following_count == 0

    def test_unknown_profile(self, app):
        with pytest.raises(NotFoundError):
            app.users.get_user_profile("ghost")

    def test_update_own_profile(self, app, alice):
        profile = app.users.update_user_profile(
            alice, UserProfileUpdate(display_name="Alice L.", bio="Film nerd")
        )

        assert profile.display_name == "Alice L."
        assert profile.bio == "Film nerd"
        assert profile.email == "alice@example.com"

    def test_update_accepts_camel_case(self, app, alice):
        profile = app.users.update_user_profile(alice, {"displayName": "A"})

        assert profile.display_name == "A"

    def test_update_rejects_bad_email(self, app, alice):
        with pytest.raises(ValidationError):
            app.users.update_user_profile(alice, {"email": "nope"})

    def test_update_unknown_actor(self, app):
        with pytest.raises(NotFoundError):
            app.users.update_user_profile(Actor(user_id=42), {"bio": "hi"})

    def test_resolve_actor(self, app, alice):
        assert app.users.resolve_actor("alice") == alice
        with pytest.raises(NotFoundError):
            app.users.resolve_actor("ghost")


class TestDeleteUser:
    """Tests for user deletion."""

    def test_removes_edges_and_movies(self, app, alice, bob):
        movie = app.movies.add_movie(MovieRequest(title="Heat"), bob)
        app.social.follow_user("alice", "bob")
        app.social.follow_user("bob", "alice")

        event = app.users.delete_user(bob.user_id, bob)

        assert event.movie_ids == [movie.id]
        assert event.username == "bob"
        with app.db.session_scope() as session:
            assert FollowRepository(session).list_edges() == []
        with pytest.raises(NotFoundError):
            app.movies.get_movie_by_id(movie.id)
        with pytest.raises(NotFoundError):
            app.users.get_user_profile("bob")

    def test_emits_movie_and_user_events(self, app, bob, admin):
        app.movies.add_movie(MovieRequest(title="Heat"), bob)
        app.movies.add_movie(MovieRequest(title="Ronin"), bob)
        movie_events, user_events = [], []

        class Recorder:
            def on_movie_deleted(self, event):
                movie_events.append(event)

            def on_user_deleted(self, event):
                user_events.append(event)

        recorder = Recorder()
        app.events.add_movie_listener(recorder)
        app.events.add_user_listener(recorder)

        app.users.delete_user(bob.user_id, admin)

        assert len(movie_events) == 2
        assert all(e.deleted_by == admin.user_id for e in movie_events)
        assert [e.user_id for e in user_events] == [bob.user_id]

    def test_other_user_cannot_delete(self, app, alice, bob):
        with pytest.raises(AuthorizationError):
            app.users.delete_user(bob.user_id, alice)

        assert app.users.get_user_profile("bob").username == "bob"

    def test_unknown_user(self, app, admin):
        with pytest.raises(NotFoundError):
            app.users.delete_user(999, admin)

    def test_listener_registry_rejects_non_listeners(self, app):
        with pytest.raises(TypeError):
            app.events.add_movie_listener(object())


class DeleteMidway:
    """Start deleting a user from another thread just before a patched write runs.

    The deletion gets a short head start; it must wait for the in-flight
    write to commit and then clean up after it.
    """

    def __init__(self, app, monkeypatch):
        self.app = app
        self.monkeypatch = monkeypatch
        self.thread = None
        self.events = []

    def install(self, owner, method, victim):
        original = getattr(owner, method)

        def delete_victim():
            self.events.append(self.app.users.delete_user(victim.user_id, victim))

        def wrapped(*args, **kwargs):
            if self.thread is None:
                self.thread = threading.Thread(target=delete_victim)
                self.thread.start()
                self.thread.join(timeout=0.2)
            return original(*args, **kwargs)

        self.monkeypatch.setattr(owner, method, wrapped)

    def finish(self):
        self.thread.join(timeout=5)
        assert not self.thread.is_alive()
        assert len(self.events) == 1
        return self.events[0]


class TestDeleteUserRaces:
    """A write that touches a user racing that user's deletion leaves no orphan."""

    @pytest.fixture
    def midway(self, app, monkeypatch):
        return DeleteMidway(app, monkeypatch)

    def test_follow_during_delete(self, app, alice, bob, midway):
        midway.install(FollowRepository, "insert_edge", bob)

        app.social.follow_user("alice", "bob")
        midway.finish()

        with app.db.session_scope() as session:
            assert FollowRepository(session).list_edges() == []
        assert app.social.get_following("alice") == []

    def test_add_movie_during_delete(self, app, bob, midway):
        midway.install(MovieRepository, "put", bob)

        movie = app.movies.add_movie(MovieRequest(title="Heat"), bob)
        event = midway.finish()

        assert event.movie_ids == [movie.id]
        with pytest.raises(NotFoundError):
            app.movies.get_movie_by_id(movie.id)

    def test_like_during_delete(self, app, alice, bob, midway):
        movie = app.movies.add_movie(MovieRequest(title="Heat"), alice)
        midway.install(LikeRepository, "insert_like", bob)

        app.engagement.like_movie(movie.id, bob)
        midway.finish()

        assert app.movies.get_movie_by_id(movie.id).likes_count == 0
        with app.db.session_scope() as session:
            assert LikeRepository(session).count_for_movie(movie.id) == 0

    def test_follow_after_delete_is_not_found(self, app, alice, bob):
        app.users.delete_user(bob.user_id, bob)

        with pytest.raises(NotFoundError):
            app.social.follow_user("alice", "bob")
