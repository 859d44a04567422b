"""Pytest configuration and shared fixtures for WatchlistDB tests."""

import os
import sys
import tempfile
import uuid
from collections.abc import Generator
from pathlib import Path

# Settings are read once at import; pin the testing profile before that happens.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="watchlistdb_test_"))

import pytest
from loguru import logger

from watchlistdb.app import WatchlistApp
from watchlistdb.config import LeaderboardWeights
from watchlistdb.database import DatabaseManager
from watchlistdb.logging import clear_request_context
from watchlistdb.models import Actor, Role


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers and the log context before each test."""
    clear_request_context()
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
    )
    yield
    logger.remove()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Unique temporary database file."""
    return tmp_path / f"test_watchlist_{uuid.uuid4().hex[:8]}.db"


@pytest.fixture
def db(temp_db_path: Path) -> Generator[DatabaseManager, None, None]:
    """Initialized database manager on a temporary file."""
    manager = DatabaseManager(database_path=temp_db_path)
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def app(temp_db_path: Path) -> Generator[WatchlistApp, None, None]:
    """Fully wired application with the default 3/1/1 leaderboard weights."""
    watchlist = WatchlistApp(
        database_path=temp_db_path,
        leaderboard_weights=LeaderboardWeights(watched=3, likes=1, followers=1),
    )
    watchlist.initialize()
    yield watchlist
    watchlist.close()


# =============================================================================
# Identity Fixtures
# =============================================================================


@pytest.fixture
def alice(app: WatchlistApp) -> Actor:
    app.users.create_user("alice", email="alice@example.com")
    return app.users.resolve_actor("alice")


@pytest.fixture
def bob(app: WatchlistApp) -> Actor:
    app.users.create_user("bob")
    return app.users.resolve_actor("bob")


@pytest.fixture
def admin(app: WatchlistApp) -> Actor:
    app.users.create_user("root", role=Role.ADMIN)
    return app.users.resolve_actor("root")


# =============================================================================
# TMDB Payload Fixtures
# =============================================================================


@pytest.fixture
def inception_details() -> dict:
    """TMDB ``/movie/27205`` payload (trimmed)."""
    return {
        "id": 27205,
        "title": "Inception",
        "original_title": "Inception",
        "overview": "Cobb, a skilled thief who commits corporate espionage...",
        "release_date": "2010-07-15",
        "runtime": 148,
        "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
        "poster_path": "/oYuLEt3zVCKq57qu2F8dT7NIa6f.jpg",
        "vote_average": 8.4,
    }


@pytest.fixture
def search_page() -> dict:
    """TMDB ``/search/movie`` payload (trimmed)."""
    return {
        "page": 1,
        "total_pages": 1,
        "total_results": 2,
        "results": [
            {
                "id": 27205,
                "title": "Inception",
                "release_date": "2010-07-15",
                "genre_ids": [28, 878],
                "poster_path": "/oYuLEt3zVCKq57qu2F8dT7NIa6f.jpg",
            },
            {
                "id": 64956,
                "title": "Inception: The Cobol Job",
                "release_date": "",
                "genre_ids": [],
                "poster_path": None,
            },
        ],
    }
