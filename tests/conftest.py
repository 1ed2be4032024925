"""Pytest configuration and shared fixtures.

This module provides fixtures for testing tbrlist, including in-memory
databases, tag repositories and sample data.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from tbrlist.config import Config, reset_config
from tbrlist.db.models import Book
from tbrlist.db.schemas import BookCreate, ReadingStatus
from tbrlist.db.sqlite import Database, reset_db
from tbrlist.tags.repository import SqlTagRepository


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def file_db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a file-backed test database instance."""
    reset_db()
    reset_config()

    os.environ["TBRLIST_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    database.engine.dispose()
    reset_db()
    reset_config()
    if "TBRLIST_DB_PATH" in os.environ:
        del os.environ["TBRLIST_DB_PATH"]


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def config(temp_db_path: Path) -> Config:
    """Config with default tag settings."""
    return Config(
        db_path=temp_db_path,
        tag_min_distance=3,
        tag_length_ratio=0.2,
        resolve_max_attempts=3,
        popular_limit=10,
        log_level="WARNING",
    )


# ============================================================================
# Tag Repository Fixtures
# ============================================================================


@pytest.fixture
def sql_repo(db: Database) -> SqlTagRepository:
    """Empty SQL tag repository over the in-memory database."""
    return SqlTagRepository(db)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed point in time for usage timestamps."""
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="The Night Circus",
        author="Erin Morgenstern",
        description="A magical competition between two young illusionists.",
        isbn="9780385534635",
        status=ReadingStatus.TO_READ,
    )


@pytest.fixture
def created_book(db: Database, sample_book_data: BookCreate) -> Book:
    """Create and return a book in the database."""
    return db.create_book(sample_book_data)


@pytest.fixture
def multiple_books(db: Database) -> list[Book]:
    """Create multiple books in the database."""
    books_data = [
        BookCreate(title="Book One", author="Author A", status=ReadingStatus.FINISHED),
        BookCreate(title="Book Two", author="Author B", status=ReadingStatus.READING),
        BookCreate(title="Book Three", author="Author A"),
    ]
    return [db.create_book(data) for data in books_data]
