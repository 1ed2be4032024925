"""Manager for tags and book tagging."""

import logging
from typing import Iterable, Optional

from sqlalchemy import func, select
from thefuzz import fuzz

from ..config import Config, get_config
from ..db.models import Book
from ..db.schemas import BookResponse
from ..db.sqlite import Database
from .analytics import TagAnalytics
from .models import BookTag, Tag
from .normalize import normalize_tag
from .repository import SqlTagRepository
from .resolver import TagResolver
from .schemas import (
    BookTagResponse,
    ResolvedTag,
    TagCategory,
    TagResponse,
    TagSearchResult,
)

logger = logging.getLogger(__name__)

# Minimum thefuzz partial ratio for a tag to show up in search
SEARCH_MIN_SCORE = 60


def parse_generated_tags(text: str) -> list[str]:
    """Split a comma-separated tag generation reply into candidates.

    Args:
        text: Raw reply, e.g. ``"slow burn, found family,  cozy"``

    Returns:
        Trimmed, non-empty candidate strings in reply order
    """
    return [part.strip() for part in text.split(",") if part.strip()]


class TagManager:
    """Manager for tag resolution, usage analytics and book tagging."""

    def __init__(self, db: Database, config: Optional[Config] = None):
        """Initialize the tag manager.

        Args:
            db: Database instance
            config: Application config (defaults to the global config)
        """
        config = config or get_config()
        self.db = db
        self.repository = SqlTagRepository(db)
        self.resolver = TagResolver(
            self.repository,
            policy=config.similarity_policy(),
            max_attempts=config.resolve_max_attempts,
        )
        self.analytics = TagAnalytics(self.repository)
        self.popular_limit = config.popular_limit

    # ========================================================================
    # Tags
    # ========================================================================

    def resolve_tags(self, names: Iterable[str]) -> list[ResolvedTag]:
        """Resolve raw tag names to canonical tags, creating missing ones."""
        return self.resolver.resolve(names)

    def record_usage(self, tag_ids: Iterable[int]) -> None:
        """Count one use of each tag id."""
        self.analytics.record_usage(tag_ids)

    def get_tag(self, tag_id: int) -> Optional[TagResponse]:
        """Get a tag by id."""
        return self.repository.get_tag(tag_id)

    def get_tag_by_name(self, name: str) -> Optional[TagResponse]:
        """Get a tag whose normalized name equals ``name`` normalized."""
        return self.repository.get_tag_by_name(name)

    def list_tags(self) -> list[TagResponse]:
        """All tags, most used first."""
        return self.analytics.list_tags_with_usage()

    def popular_by_category(
        self, limit_per_category: Optional[int] = None
    ) -> dict[TagCategory, list[str]]:
        """Popular tag names per category, for biasing tag generation."""
        return self.analytics.popular_by_category(limit_per_category or self.popular_limit)

    def search_tags(self, query: str, limit: int = 10) -> list[TagSearchResult]:
        """Fuzzy search tags for autocomplete.

        Args:
            query: Partial tag as typed
            limit: Maximum results

        Returns:
            Matches scored 0-100, best first; ties favour more used tags
        """
        normalized_query = normalize_tag(query)
        if not normalized_query:
            return []

        results = []
        for tag in self.repository.list_tags():
            score = fuzz.partial_ratio(normalized_query, tag.normalized_name)
            if score >= SEARCH_MIN_SCORE:
                results.append(TagSearchResult(tag=tag, score=score))

        results.sort(key=lambda r: (r.score, r.tag.usage_count), reverse=True)
        return results[:limit]

    # ========================================================================
    # Book Tagging
    # ========================================================================

    def tag_book(
        self, book_id: str, names: Iterable[str]
    ) -> Optional[list[BookTagResponse]]:
        """Resolve tag names and attach them to a book.

        Usage is counted once per tag newly attached to the book; tags the
        book already carries are left as they are.

        Args:
            book_id: Book ID
            names: Raw tag names from the user or from tag generation

        Returns:
            The book's tags for the given names, or None if the book does
            not exist
        """
        if self.db.get_book(book_id) is None:
            return None

        resolved = self.resolver.resolve(names)
        tag_ids = list(dict.fromkeys(tag.id for tag in resolved))

        with self.repository.transaction():
            session = self.repository.session
            existing = set(
                session.execute(
                    select(BookTag.tag_id).where(BookTag.book_id == book_id)
                ).scalars()
            )
            new_ids = [tag_id for tag_id in tag_ids if tag_id not in existing]
            for tag_id in new_ids:
                session.add(BookTag(book_id=book_id, tag_id=tag_id))
            session.flush()
            self.analytics.record_usage(new_ids)

        logger.info("Tagged book %s with %d new tag(s)", book_id, len(new_ids))
        book_tags = {bt.tag_id: bt for bt in self.get_book_tags(book_id)}
        return [book_tags[tag_id] for tag_id in tag_ids]

    def untag_book(self, book_id: str, tag_id: int) -> bool:
        """Remove a tag from a book.

        Usage counts are not decremented.

        Returns:
            True if removed
        """
        with self.repository.transaction():
            session = self.repository.session
            book_tag = session.execute(
                select(BookTag).where(
                    BookTag.book_id == book_id,
                    BookTag.tag_id == tag_id,
                )
            ).scalar_one_or_none()

            if not book_tag:
                return False

            session.delete(book_tag)
            return True

    def get_book_tags(self, book_id: str) -> list[BookTagResponse]:
        """Get all tags for a book, in the order they were added."""
        with self.repository.transaction():
            rows = self.repository.session.execute(
                select(BookTag, Tag)
                .join(Tag, BookTag.tag_id == Tag.id)
                .where(BookTag.book_id == book_id)
                .order_by(BookTag.added_at, Tag.id)
            ).all()
            return [
                BookTagResponse(tag_id=tag.id, tag_name=tag.name, added_at=bt.added_at)
                for bt, tag in rows
            ]

    def get_books_by_tags(
        self, names: Iterable[str], match_all: bool = False
    ) -> list[BookResponse]:
        """Get books carrying the named tags.

        Names are matched by normalized form only, never fuzzily.

        Args:
            names: Tag names to filter by
            match_all: Require every tag instead of any of them

        Returns:
            Matching books ordered by title
        """
        names = list(names)
        tags = [self.repository.get_tag_by_name(name) for name in names]
        tag_ids = {tag.id for tag in tags if tag}

        if not tag_ids or (match_all and None in tags):
            return []

        with self.repository.transaction():
            stmt = (
                select(Book)
                .join(BookTag, BookTag.book_id == Book.id)
                .where(BookTag.tag_id.in_(tag_ids))
                .group_by(Book.id)
                .order_by(Book.title)
            )
            if match_all:
                stmt = stmt.having(func.count(func.distinct(BookTag.tag_id)) == len(tag_ids))

            books = self.repository.session.execute(stmt).scalars().all()
            return [BookResponse.model_validate(book) for book in books]
