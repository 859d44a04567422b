"""Unit tests for the repository layer."""

import pytest

from watchlistdb.models import (
    CommentRow,
    MovieRow,
    MovieStatus,
    UserRow,
)
from watchlistdb.repository import (
    CommentRepository,
    FollowRepository,
    LikeRepository,
    MovieRepository,
    Repository,
    UserRepository,
)


@pytest.fixture
def users(db):
    """Three users: ann (1), bea (2), cid (3)."""
    with db.session_scope() as session:
        repo = UserRepository(session)
        rows = [repo.put(UserRow(username=name)) for name in ("cid", "ann", "bea")]
        return {row.username: row.id for row in rows}


class TestGenericRepository:
    """Tests for Repository[T]."""

    def test_put_assigns_id(self, db):
        with db.session_scope() as session:
            user = Repository(session, UserRow).put(UserRow(username="alice"))

        assert user.id is not None

    def test_get_and_exists(self, db, users):
        with db.session_scope() as session:
            repo = Repository(session, UserRow)

            assert repo.get(users["ann"]).username == "ann"
            assert repo.get(999) is None
            assert repo.exists(users["bea"]) is True
            assert repo.exists(999) is False

    def test_get_all_pagination(self, db, users):
        with db.session_scope() as session:
            repo = Repository(session, UserRow)

            assert len(repo.get_all(limit=2)) == 2
            assert len(repo.get_all(limit=2, offset=2)) == 1

    def test_find_by_ignores_unknown_fields(self, db, users):
        with db.session_scope() as session:
            found = Repository(session, UserRow).find_by(username="ann", nonexistent=1)

        assert [u.username for u in found] == ["ann"]

    def test_count_and_delete(self, db, users):
        with db.session_scope() as session:
            repo = Repository(session, UserRow)
            repo.delete(repo.get(users["cid"]))

            assert repo.count() == 2

    def test_rollback_discards_writes(self, db):
        with pytest.raises(RuntimeError):
            with db.session_scope() as session:
                Repository(session, UserRow).put(UserRow(username="ghost"))
                raise RuntimeError("abort")

        with db.session_scope() as session:
            assert UserRepository(session).get_by_username("ghost") is None


class TestUserRepository:
    def test_list_all_ordered_by_username(self, db, users):
        with db.session_scope() as session:
            names = [u.username for u in UserRepository(session).list_all()]

        assert names == ["ann", "bea", "cid"]


class TestMovieRepository:
    """Tests for movie queries and aggregates."""

    @pytest.fixture
    def movies(self, db, users):
        with db.session_scope() as session:
            repo = MovieRepository(session)
            repo.put(MovieRow(owner_id=users["ann"], title="A1", status=MovieStatus.WATCHED, likes_count=4))
            repo.put(MovieRow(owner_id=users["ann"], title="A2", status=MovieStatus.WISHLIST, likes_count=1))
            repo.put(MovieRow(owner_id=users["ann"], title="A3", status=MovieStatus.WATCHED))
            repo.put(MovieRow(owner_id=users["bea"], title="B1", status=MovieStatus.WISHLIST, likes_count=2))

    def test_list_for_owner(self, db, users, movies):
        with db.session_scope() as session:
            repo = MovieRepository(session)

            assert [m.title for m in repo.list_for_owner(users["ann"])] == ["A1", "A2", "A3"]
            assert [
                m.title for m in repo.list_for_owner(users["ann"], MovieStatus.WATCHED)
            ] == ["A1", "A3"]
            assert repo.list_for_owner(users["cid"]) == []

    def test_count_for_owner(self, db, users, movies):
        with db.session_scope() as session:
            repo = MovieRepository(session)

            assert repo.count_for_owner(users["ann"], MovieStatus.WATCHED) == 2
            assert repo.count_for_owner(users["bea"], MovieStatus.WATCHED) == 0

    def test_aggregates(self, db, users, movies):
        with db.session_scope() as session:
            repo = MovieRepository(session)

            assert repo.watched_counts() == {users["ann"]: 2}
            assert repo.likes_received() == {users["ann"]: 5, users["bea"]: 2}

    def test_delete_for_owner(self, db, users, movies):
        with db.session_scope() as session:
            ids = MovieRepository(session).delete_for_owner(users["ann"])

        assert len(ids) == 3
        assert ids == sorted(ids)
        with db.session_scope() as session:
            assert MovieRepository(session).count() == 1
            assert MovieRepository(session).delete_for_owner(users["cid"]) == []


class TestFollowRepository:
    """Tests for follow edges."""

    def test_insert_edge_is_idempotent(self, db, users):
        with db.session_scope() as session:
            repo = FollowRepository(session)

            assert repo.insert_edge(users["ann"], users["bea"]) is True
            assert repo.insert_edge(users["ann"], users["bea"]) is False

        with db.session_scope() as session:
            assert len(FollowRepository(session).list_edges()) == 1

    def test_delete_edge(self, db, users):
        with db.session_scope() as session:
            FollowRepository(session).insert_edge(users["ann"], users["bea"])

        with db.session_scope() as session:
            repo = FollowRepository(session)

            assert repo.delete_edge(users["ann"], users["bea"]) is True
            assert repo.delete_edge(users["ann"], users["bea"]) is False

        with db.session_scope() as session:
            assert FollowRepository(session).has_edge(users["ann"], users["bea"]) is False

    def test_followers_and_following(self, db, users):
        with db.session_scope() as session:
            repo = FollowRepository(session)
            repo.insert_edge(users["cid"], users["ann"])
            repo.insert_edge(users["bea"], users["ann"])
            repo.insert_edge(users["ann"], users["cid"])

        with db.session_scope() as session:
            repo = FollowRepository(session)

            assert [u.username for u in repo.followers_of(users["ann"])] == ["bea", "cid"]
            assert [u.username for u in repo.following_of(users["ann"])] == ["cid"]
            assert repo.count_followers(users["ann"]) == 2
            assert repo.count_following(users["ann"]) == 1
            assert repo.follower_counts() == {users["ann"]: 2, users["cid"]: 1}
            assert repo.has_edge(users["cid"], users["ann"]) is True

    def test_delete_edges_touching(self, db, users):
        with db.session_scope() as session:
            repo = FollowRepository(session)
            repo.insert_edge(users["ann"], users["bea"])
            repo.insert_edge(users["bea"], users["ann"])
            repo.insert_edge(users["bea"], users["cid"])

        with db.session_scope() as session:
            assert FollowRepository(session).delete_edges_touching(users["ann"]) == 2

        with db.session_scope() as session:
            edges = FollowRepository(session).list_edges()

        assert [(e.follower_id, e.followee_id) for e in edges] == [(users["bea"], users["cid"])]


class TestEngagementRepositories:
    """Tests for likes and comments."""

    @pytest.fixture
    def movie_id(self, db, users):
        with db.session_scope() as session:
            return MovieRepository(session).put(MovieRow(owner_id=users["ann"], title="Heat")).id

    def test_likes(self, db, users, movie_id):
        with db.session_scope() as session:
            repo = LikeRepository(session)

            assert repo.insert_like(movie_id, users["bea"]) is True
            assert repo.insert_like(movie_id, users["bea"]) is False
            assert repo.insert_like(movie_id, users["cid"]) is True
            assert repo.count_for_movie(movie_id) == 2
            assert repo.delete_like(movie_id, users["cid"]) is True
            assert repo.delete_like(movie_id, users["cid"]) is False
            assert repo.delete_for_user(users["bea"]) == [movie_id]
            assert repo.count_for_movie(movie_id) == 0

    def test_comments(self, db, users, movie_id):
        with db.session_scope() as session:
            repo = CommentRepository(session)
            repo.put(CommentRow(movie_id=movie_id, user_id=users["bea"], content="first"))
            repo.put(CommentRow(movie_id=movie_id, user_id=users["cid"], content="second"))
            repo.put(CommentRow(movie_id=movie_id, user_id=users["bea"], content="third"))

        with db.session_scope() as session:
            repo = CommentRepository(session)

            assert [c.content for c in repo.list_for_movie(movie_id)] == ["first", "second", "third"]
            assert repo.delete_for_user(users["bea"]) == [movie_id]
            assert repo.count_for_movie(movie_id) == 1
            assert repo.delete_for_movie(movie_id) == 1
