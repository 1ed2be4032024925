"""Resolve candidate tag strings to canonical tags.

Each candidate either matches a stored tag (exactly after normalization,
or within the similarity threshold) or becomes a new tag. A batch is
resolved in input order against one corpus snapshot that grows as the
batch creates tags, so repeats within a batch share one new tag.

The batch is a single unit of work: if any create fails, every tag the
batch created is rolled back. A create that collides with a tag some other
caller stored in the meantime rolls the batch back and resolves it again
against the refreshed corpus.
"""

import logging
from typing import Iterable, Optional

from .errors import DuplicateTagError, PersistenceFailure
from .normalize import normalize_tag
from .repository import TagRepository
from .schemas import ResolvedTag, TagRef
from .similarity import DEFAULT_POLICY, SimilarityPolicy, match_tag

logger = logging.getLogger(__name__)


class TagResolver:
    """Maps raw tag strings onto the deduplicated tag corpus."""

    def __init__(
        self,
        repository: TagRepository,
        policy: Optional[SimilarityPolicy] = None,
        max_attempts: int = 3,
    ):
        """Initialize the resolver.

        Args:
            repository: Tag store shared with other callers
            policy: Fuzzy matching threshold policy
            max_attempts: Times a batch is retried after colliding with a
                          concurrently created tag
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.repository = repository
        self.policy = policy or DEFAULT_POLICY
        self.max_attempts = max_attempts

    def resolve(self, candidates: Iterable[str]) -> list[ResolvedTag]:
        """Resolve a batch of candidate tags.

        Args:
            candidates: Raw tag strings from a user or from tag generation.
                        Blank candidates are skipped.

        Returns:
            One ResolvedTag per non-blank candidate, in input order. A
            matched candidate carries the stored tag's name, not its own.
            Candidates that normalize to nothing get no entry, so results
            only line up with ``candidates`` by position when none are blank.

        Raises:
            PersistenceFailure: If the store fails; nothing from the batch
                                is kept
        """
        candidates = list(candidates)
        last_error: Optional[DuplicateTagError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.repository.transaction():
                    return self._resolve_batch(candidates)
            except DuplicateTagError as e:
                logger.info(
                    "Tag %r was created concurrently, re-resolving batch (attempt %d/%d)",
                    e.normalized_name, attempt, self.max_attempts,
                )
                last_error = e
            except PersistenceFailure:
                logger.warning("Tag batch of %d rolled back", len(candidates))
                raise

        raise PersistenceFailure(
            f"Could not resolve tags after {self.max_attempts} attempts"
        ) from last_error

    def _resolve_batch(self, candidates: list[str]) -> list[ResolvedTag]:
        corpus: list[TagRef] = list(self.repository.list_tags())
        results = []

        for candidate in candidates:
            normalized = normalize_tag(candidate)
            if not normalized:
                logger.debug("Skipping blank tag candidate %r", candidate)
                continue

            match = match_tag(candidate, corpus, self.policy)
            if match:
                results.append(
                    ResolvedTag(id=match.tag.id, name=match.tag.name, is_new=False)
                )
                continue

            tag = self.repository.create_tag(candidate.strip(), normalized)
            logger.info("Created tag %r (id %s)", tag.name, tag.id)
            corpus.append(tag)
            results.append(ResolvedTag(id=tag.id, name=tag.name, is_new=True))

        return results
