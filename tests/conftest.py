"""Pytest configuration and shared fixtures.

This module provides fixtures for testing the gamification engine,
including in-memory databases, managers and library snapshots.
"""

import os
from datetime import date
from pathlib import Path
from typing import Generator, Optional

import pytest
from sqlalchemy.orm import Session

from shelfquest.gamification.config import Config, reset_config
from shelfquest.gamification.db.sqlite import Database, reset_db
from shelfquest.gamification.library import LibraryBook, LibrarySnapshot
from shelfquest.gamification.xp import XPManager


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_globals() -> Generator[None, None, None]:
    """Reset cached config and database between tests."""
    reset_db()
    reset_config()
    yield
    reset_db()
    reset_config()


@pytest.fixture(scope="function")
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture(scope="function")
def session(db: Database) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    with db.get_session() as sess:
        yield sess


@pytest.fixture
def xp_manager(db: Database) -> XPManager:
    """Create an XPManager with test database."""
    return XPManager(db)


@pytest.fixture
def test_config() -> Config:
    """Config with the default rewards and an in-memory database."""
    return Config(
        db_path=Path(":memory:"),
        db_timeout=5.0,
        book_finished_xp=50,
        conflict_retries=1,
        log_level="WARNING",
    )


# ============================================================================
# Library Fixtures
# ============================================================================


def make_book(
    book_id: str,
    finish_date: Optional[date] = None,
    **kwargs,
) -> LibraryBook:
    """Build a LibraryBook with sensible defaults."""
    kwargs.setdefault("title", f"Book {book_id}")
    kwargs.setdefault("author", "Test Author")
    return LibraryBook(id=book_id, finish_date=finish_date, **kwargs)


@pytest.fixture
def book_factory():
    """Factory for LibraryBook instances."""
    return make_book


@pytest.fixture
def fantasy_book() -> LibraryBook:
    """A finished, highly rated fantasy paperback."""
    return LibraryBook(
        id="book-hobbit",
        title="The Hobbit",
        author="J.R.R. Tolkien",
        finish_date=date(2025, 3, 10),
        rating=5,
        genres=["Fantasy", "Classic"],
        format="Paperback",
        publication_year=1937,
    )


@pytest.fixture
def empty_library() -> LibrarySnapshot:
    """A library with no books."""
    return LibrarySnapshot(user_id="alice", books=[])


@pytest.fixture
def clean_env(monkeypatch) -> Generator[None, None, None]:
    """Remove SHELFQUEST_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("SHELFQUEST_"):
            monkeypatch.delenv(key, raising=False)
    yield


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()


@pytest.fixture
def cli_app():
    """Get the CLI app for testing."""
    from shelfquest.gamification.cli import app
    return app
