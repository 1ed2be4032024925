"""Tag canonicalization: normalization, fuzzy deduplication and usage analytics."""

from tbrlist.tags.analytics import CATEGORY_RULES, TagAnalytics
from tbrlist.tags.errors import (
    DuplicateTagError,
    NormalizationError,
    PersistenceFailure,
    TagError,
    TagNotFoundError,
)
from tbrlist.tags.manager import TagManager, parse_generated_tags
from tbrlist.tags.models import BookTag, Tag
from tbrlist.tags.normalize import normalize_tag
from tbrlist.tags.repository import (
    InMemoryTagRepository,
    SqlTagRepository,
    TagRepository,
)
from tbrlist.tags.resolver import TagResolver
from tbrlist.tags.schemas import (
    BookTagResponse,
    ResolvedTag,
    TagCategory,
    TagMatch,
    TagRef,
    TagResponse,
    TagSearchResult,
)
from tbrlist.tags.similarity import (
    DEFAULT_POLICY,
    SimilarityPolicy,
    find_similar_tag,
    levenshtein_distance,
    match_tag,
)

__all__ = [
    # Manager
    "TagManager",
    "parse_generated_tags",
    # Components
    "normalize_tag",
    "levenshtein_distance",
    "match_tag",
    "find_similar_tag",
    "SimilarityPolicy",
    "DEFAULT_POLICY",
    "TagResolver",
    "TagAnalytics",
    "CATEGORY_RULES",
    # Repositories
    "TagRepository",
    "SqlTagRepository",
    "InMemoryTagRepository",
    # Models
    "Tag",
    "BookTag",
    # Schemas
    "TagCategory",
    "TagRef",
    "TagResponse",
    "ResolvedTag",
    "TagMatch",
    "TagSearchResult",
    "BookTagResponse",
    # Errors
    "TagError",
    "NormalizationError",
    "PersistenceFailure",
    "DuplicateTagError",
    "TagNotFoundError",
]
