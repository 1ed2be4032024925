"""Database module for local SQLite storage."""

from .models import Base, Book
from .schemas import BookCreate, BookResponse, ReadingStatus
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "Book",
    "BookCreate",
    "BookResponse",
    "ReadingStatus",
    "Database",
    "get_db",
    "reset_db",
]
