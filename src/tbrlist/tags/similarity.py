"""Similarity matching between tags.

Finds the stored tag a candidate string refers to:
1. Exact match on normalized names (distance 0)
2. Fuzzy match by Levenshtein distance within a length-scaled threshold

Matching is a pure function of the candidate and the corpus it is given;
callers own reading the corpus from storage.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .normalize import normalize_tag
from .schemas import TagMatch, TagRef

logger = logging.getLogger(__name__)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate the Levenshtein distance between two strings.

    The minimum number of single-character insertions, deletions or
    substitutions needed to turn one string into the other.

    Examples:
        >>> levenshtein_distance("cozy vibes", "cozy vibe")
        1
        >>> levenshtein_distance("kitten", "sitting")
        3
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


@dataclass(frozen=True)
class SimilarityPolicy:
    """How far apart two normalized tags may be and still count as one tag.

    The threshold is ``max(min_distance, floor(len(target) * length_ratio))``,
    so short tags get a fixed tolerance and long phrases scale with length.
    Short tags can still merge loosely ("cozy" and "comfy" are distance 2).
    """

    min_distance: int = 3
    length_ratio: float = 0.2

    def threshold(self, normalized_target: str) -> int:
        """Maximum edit distance accepted for a normalized target."""
        return max(self.min_distance, math.floor(len(normalized_target) * self.length_ratio))


DEFAULT_POLICY = SimilarityPolicy()


def match_tag(
    target: str,
    corpus: Iterable[TagRef],
    policy: Optional[SimilarityPolicy] = None,
) -> Optional[TagMatch]:
    """Find the corpus tag closest to ``target``.

    Args:
        target: Raw candidate tag
        corpus: Known tags, in the order ties should be broken
        policy: Threshold policy (defaults to ``DEFAULT_POLICY``)

    Returns:
        The best match and its distance, or None if nothing is within the
        threshold. Among equally close tags the first in corpus order wins.
    """
    policy = policy or DEFAULT_POLICY
    normalized_target = normalize_tag(target)
    entries = [(tag, normalize_tag(tag.name)) for tag in corpus]

    for tag, normalized_name in entries:
        if normalized_name == normalized_target:
            return TagMatch(tag=tag, distance=0)

    threshold = policy.threshold(normalized_target)
    best: Optional[TagMatch] = None

    for tag, normalized_name in entries:
        distance = levenshtein_distance(normalized_target, normalized_name)
        if distance <= threshold and (best is None or distance < best.distance):
            best = TagMatch(tag=tag, distance=distance)

    if best:
        logger.debug(
            "Fuzzy matched %r to %r (distance %d, threshold %d)",
            target, best.tag.name, best.distance, threshold,
        )
    return best


def find_similar_tag(
    target: str,
    corpus: Iterable[TagRef],
    policy: Optional[SimilarityPolicy] = None,
) -> Optional[TagRef]:
    """Return the corpus tag ``target`` should resolve to, if any."""
    match = match_tag(target, corpus, policy)
    return match.tag if match else None
