"""Pydantic schemas for tags."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TagCategory(str, Enum):
    """Buckets used to group popular tags for tag generation."""

    EMOTIONAL = "emotional"
    PACING = "pacing"
    VIBES = "vibes"
    AESTHETIC = "aesthetic"
    TROPES = "tropes"
    GENERAL = "general"


# ============================================================================
# Tag Schemas
# ============================================================================


class TagRef(BaseModel):
    """Minimal view of a tag: enough to match against."""

    id: int
    name: str

    model_config = {"from_attributes": True}


class TagResponse(TagRef):
    """Response schema for a stored tag."""

    normalized_name: str
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ResolvedTag(BaseModel):
    """Result of resolving one candidate string."""

    id: int
    name: str
    is_new: bool  # True if this resolution created the tag


class TagMatch(BaseModel):
    """A corpus tag matched by similarity, with its edit distance."""

    tag: TagRef
    distance: int = Field(..., ge=0)

    @property
    def is_exact(self) -> bool:
        """Whether the normalized names are identical."""
        return self.distance == 0


# ============================================================================
# Book Tag Schemas
# ============================================================================


class BookTagResponse(BaseModel):
    """Response for a book's tag."""

    tag_id: int
    tag_name: str
    added_at: str

    model_config = {"from_attributes": True}


class TagSearchResult(BaseModel):
    """A tag returned by fuzzy search, with its match score."""

    tag: TagResponse
    score: int = Field(..., ge=0, le=100)
