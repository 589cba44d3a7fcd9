"""SQLite persistence gateway.

Handles database connection, session management and the atomic primitives
the engine relies on: insert-if-absent under a savepoint, optimistic-lock
conflict translation and retry.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import ConflictError, TransientPersistenceError
from .models import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Database:
    """Database connection and session manager."""

    def __init__(self, db_path: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:". If None, uses
                     SHELFQUEST_DB_PATH or the default location.
            timeout: Seconds a statement may wait for a lock before failing
                     with TransientPersistenceError. Defaults to SHELFQUEST_DB_TIMEOUT.
        """
        config = get_config()
        if db_path is None:
            db_path = str(config.db_path)
        if timeout is None:
            timeout = config.db_timeout

        self.db_path = Path(db_path)
        self.timeout = timeout
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        connect_args = {"check_same_thread": False, "timeout": timeout}

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args=connect_args,
            )

        # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works with pysqlite
        event.listen(self.engine, "connect", _on_connect)
        event.listen(self.engine, "begin", _on_begin)

        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import component models to register them with Base
        from ..xp.models import XPAccount, XPLedgerEntry  # noqa: F401
        from ..streaks.models import StreakRecord  # noqa: F401
        from ..achievements.models import Achievement  # noqa: F401
        from ..rewards.models import VirtualReward  # noqa: F401
        from ..challenges.models import (  # noqa: F401
            Challenge,
            ChallengeBook,
            ChallengeMember,
            ChallengeProgress,
        )

        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager.

        Commits on success and rolls back on any error. Optimistic-lock
        failures surface as ConflictError, lock timeouts and connectivity
        failures as TransientPersistenceError.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except StaleDataError as e:
            session.rollback()
            raise ConflictError(f"Concurrent update detected: {e}") from e
        except (OperationalError, PoolTimeoutError) as e:
            session.rollback()
            raise TransientPersistenceError(f"Persistence unavailable: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _on_connect(dbapi_connection, connection_record) -> None:
    # Disable pysqlite's implicit transaction handling
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


def insert_if_absent(session: Session, instance: Base) -> bool:
    """Insert a row unless its unique key already exists.

    The insert runs inside a savepoint so a unique-constraint violation only
    discards this row, not the surrounding transaction.

    Args:
        session: Active session
        instance: New ORM instance carrying the natural key

    Returns:
        True if inserted, False if a row with the same key already existed
    """
    try:
        with session.begin_nested():
            session.add(instance)
    except IntegrityError:
        logger.debug("Row already present for %r", instance)
        return False
    return True


def retry_on_conflict(operation: Callable[[], T], retries: Optional[int] = None) -> T:
    """Run a read-modify-write operation, retrying it on ConflictError.

    The operation must open its own session so that every attempt starts
    from a fresh read.

    Args:
        operation: Callable performing the whole transaction
        retries: Extra attempts after the first. Defaults to SHELFQUEST_CONFLICT_RETRIES.

    Returns:
        The operation's result

    Raises:
        ConflictError: If the conflict recurs after the last retry
    """
    if retries is None:
        retries = get_config().conflict_retries

    attempt = 0
    while True:
        try:
            return operation()
        except ConflictError:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info("Conflict detected, retrying (attempt %d of %d)", attempt, retries)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
