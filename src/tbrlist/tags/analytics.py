"""Tag usage analytics.

Tracks how often and how recently each tag is attached, and exposes a
popularity-ranked, categorized view used to bias tag generation toward
tags that already exist.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence

from .normalize import normalize_tag
from .repository import TagRepository
from .schemas import TagCategory, TagResponse

# Checked in order; the first category with a keyword contained in the
# normalized tag name wins. Anything unmatched is GENERAL.
CATEGORY_RULES: tuple[tuple[TagCategory, tuple[str, ...]], ...] = (
    (TagCategory.EMOTIONAL, ("cry", "feel", "heart", "soul", "comfort", "emotional")),
    (TagCategory.PACING, ("slow", "fast", "page turner", "binge", "dnf", "burn")),
    (TagCategory.VIBES, ("character", "hero", "villain", "morally", "sunshine", "grumpy")),
    (TagCategory.AESTHETIC, ("dark", "academia", "gothic", "cozy", "vibes", "aesthetic")),
    (TagCategory.TROPES, ("enemies", "lovers", "fake", "dating", "chosen", "found family")),
)


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class TagAnalytics:
    """Usage counting and popularity views over the tag corpus."""

    def __init__(
        self,
        repository: TagRepository,
        rules: Sequence[tuple[TagCategory, Sequence[str]]] = CATEGORY_RULES,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize analytics.

        Args:
            repository: Tag store
            rules: Ordered (category, keywords) table for bucketing
            clock: Source of "now" for ``last_used_at``
        """
        self.repository = repository
        self.rules = rules
        self.clock = clock

    def record_usage(self, tag_ids: Iterable[int]) -> None:
        """Count one use of every id and stamp it as used now.

        Repeated ids count once per occurrence. All-or-nothing: an unknown
        id raises TagNotFoundError and no count changes.
        """
        tag_ids = list(tag_ids)
        if not tag_ids:
            return
        used_at = self.clock()
        with self.repository.transaction():
            self.repository.increment_usage(tag_ids, used_at)

    def categorize(self, name: str) -> TagCategory:
        """Category a tag name falls into."""
        normalized = normalize_tag(name)
        for category, keywords in self.rules:
            if any(keyword in normalized for keyword in keywords):
                return category
        return TagCategory.GENERAL

    def list_tags_with_usage(self) -> list[TagResponse]:
        """All tags, most used first. Ties keep creation order."""
        return sorted(
            self.repository.list_tags(), key=lambda tag: tag.usage_count, reverse=True
        )

    def popular_by_category(
        self, limit_per_category: int = 10
    ) -> dict[TagCategory, list[str]]:
        """Most used tag names grouped by category.

        Only the top ``limit_per_category * len(TagCategory)`` tags by usage
        are considered, and each category holds at most
        ``limit_per_category`` names. Every category is present in the
        result, possibly empty.

        Args:
            limit_per_category: Maximum names per category

        Returns:
            Mapping of category to tag names, most used first
        """
        if limit_per_category < 1:
            raise ValueError("limit_per_category must be at least 1")

        categories: dict[TagCategory, list[str]] = {category: [] for category in TagCategory}
        ranked = self.list_tags_with_usage()[: limit_per_category * len(TagCategory)]

        for tag in ranked:
            bucket = categories[self.categorize(tag.name)]
            if len(bucket) < limit_per_category:
                bucket.append(tag.name)

        return categories
