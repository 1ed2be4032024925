"""SQLAlchemy models for tags."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, Book, generate_uuid


def utc_now_iso() -> str:
    """Current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class Tag(Base):
    """A canonical tag shared by every book and reader.

    ``name`` keeps the first-seen spelling; ``normalized_name`` is the
    comparison form and is unique so that concurrent creates of the same
    tag conflict instead of duplicating.
    """

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    normalized_name: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True
    )
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[Optional[str]] = mapped_column(String(40))
    created_at: Mapped[str] = mapped_column(String(40), default=utc_now_iso)

    # Relationships
    book_tags: Mapped[list["BookTag"]] = relationship(
        "BookTag", back_populates="tag", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id!r}, name={self.name!r}, usage_count={self.usage_count})>"


class BookTag(Base):
    """Association between a book and a tag."""

    __tablename__ = "book_tags"
    __table_args__ = (UniqueConstraint("book_id", "tag_id", name="uq_book_tag"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True
    )
    added_at: Mapped[str] = mapped_column(String(40), default=utc_now_iso)

    # Relationships
    book: Mapped["Book"] = relationship("Book")
    tag: Mapped["Tag"] = relationship("Tag", back_populates="book_tags")
