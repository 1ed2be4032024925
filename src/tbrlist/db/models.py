"""SQLAlchemy ORM models for the local SQLite database.

Tables:
- books: Books on the reading list
- tags, book_tags: see ``tbrlist.tags.models``
"""

from datetime import date
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import ReadingStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class Book(Base):
    """A book on the reading list."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    isbn: Mapped[Optional[str]] = mapped_column(String(13), index=True)
    cover: Mapped[Optional[str]] = mapped_column(Text)  # URL
    status: Mapped[str] = mapped_column(
        String(20), default=ReadingStatus.TO_READ.value, index=True
    )
    date_added: Mapped[Optional[str]] = mapped_column(
        String(10), default=lambda: date.today().isoformat()
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id!r}, title={self.title!r}, author={self.author!r})>"
