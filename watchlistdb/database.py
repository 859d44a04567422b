"""Database management for WatchlistDB.

This module provides SQLite database management with:
- Engine creation with WAL mode and tuned PRAGMA settings
- One transaction per service operation via ``session_scope()``
- In-process keyed locks that serialize read-modify-write on one row
- Translation of store failures into :class:`InternalError`

Example:
    >>> from watchlistdb.database import DatabaseManager
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>>
    >>> with db.locks.hold("movie", 7), db.session_scope() as session:
    ...     movie = session.get(MovieRow, 7, with_for_update=True)
    ...     movie.rating = 5
    >>>
    >>> db.close()
"""

import threading
from collections.abc import Hashable, Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from watchlistdb.config import settings
from watchlistdb.errors import InternalError
from watchlistdb.logging import logger
from watchlistdb.metrics import errors_total

# Importing the models registers every table on SQLModel.metadata.
from watchlistdb import models  # noqa: F401


# =============================================================================
# Keyed Locks
# =============================================================================


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLocks:
    """Registry of re-entrant locks, one per key.

    Mutations of the same movie (or the same follow pair) take the same lock,
    so their read-modify-write transactions never interleave. Unrelated keys
    never block each other. An entry lives only while some thread holds or
    waits for it.

    Lock order: ``user`` keys before ``follow`` and ``movie`` keys. Every
    key is taken before the session is opened.

    Example:
        >>> locks = KeyedLocks()
        >>> with locks.hold("movie", 42):
        ...     ...  # exclusive for movie 42 within this process
        >>> with locks.hold_all(("user", 3), ("user", 1)):
        ...     ...  # acquired as ("user", 1) then ("user", 3)
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, _LockEntry] = {}

    def _checkout(self, key: Hashable) -> _LockEntry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _LockEntry()
            entry.users += 1
            return entry

    def _release(self, key: Hashable, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._checkout(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release(key, entry)

    @contextmanager
    def hold_all(self, *keys: tuple[Hashable, ...]) -> Iterator[None]:
        """Hold several keys at once, acquired in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.hold(*key))
            yield

    def __len__(self) -> int:
        return len(self._locks)


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """Manages the SQLite engine and transaction boundaries.

    Features:
    - WAL mode for concurrent readers alongside one writer
    - ``session_scope()``: commit on success, rollback on any exception
    - ``locks``: keyed locks shared by every service using this manager

    Args:
        database_path: Path to SQLite database file (defaults to settings.database_path)
    """

    def __init__(self, database_path: Path | None = None):
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database (defaults to settings.database_path)
        """
        self.database_path = database_path or settings.database_path
        self.engine: Engine | None = None
        self.locks = KeyedLocks()
        self._memory_lock = threading.RLock()

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == ":memory:"

    def initialize(self) -> None:
        """Initialize database engine and create tables.

        This method:
        1. Creates the database file's parent directory if needed
        2. Creates all tables from SQLModel metadata
        3. Enables WAL mode and optimizes PRAGMA settings
        4. Creates indexes for common queries
        """
        if self.engine is not None:
            return

        if self.is_memory:
            self.engine = create_engine(
                "sqlite://",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{self.database_path}",
                echo=False,
                connect_args={"check_same_thread": False, "timeout": 30},
            )

        SQLModel.metadata.create_all(self.engine)

        if not self.is_memory:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode = WAL;")
                conn.exec_driver_sql("PRAGMA synchronous = NORMAL;")
                conn.exec_driver_sql("PRAGMA temp_store = MEMORY;")
                conn.commit()

        self.create_indexes()

        logger.info(f"✅ Database initialized at {self.database_path}")

    def create_indexes(self) -> None:
        """Create composite indexes for the list and leaderboard queries.

        Indexes created:
        - Movie (owner_id, status, id) for "my wishlist/watched" reads
        - Follow edge (followee_id) for follower counts
        """
        if self.engine is None:
            raise RuntimeError("Database not initialized")

        with self.engine.connect() as conn:
            conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS idx_movie_owner_status "
                    "ON movierow(owner_id, status, id);"
                )
            )
            conn.execute(
                text(
                    "CREATE INDEX IF NOT EXISTS idx_follow_followee "
                    "ON followedge(followee_id, follower_id);"
                )
            )
            conn.commit()

        logger.debug("✅ Database indexes created")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Run a block inside one atomic transaction.

        Commits when the block finishes, rolls back when it raises. Domain
        errors propagate unchanged; store failures are logged and re-raised
        as :class:`InternalError`.

        Yields:
            Session bound to the managed engine
        """
        if self.engine is None:
            raise RuntimeError("Database not initialized")

        with ExitStack() as stack:
            if self.is_memory:
                # One connection serves every thread; one transaction at a time.
                stack.enter_context(self._memory_lock)
            session = Session(self.engine, expire_on_commit=False)
            try:
                yield session
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                errors_total.labels(error_type=type(exc).__name__, component="database").inc()
                logger.opt(exception=exc).error(f"❌ Persistence store failure: {exc}")
                raise InternalError(f"Persistence store failure: {exc}") from exc
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None


__all__ = ["DatabaseManager", "KeyedLocks"]
