"""Tag normalization.

Two tags are the same at the exact-match tier iff their normalized forms
are equal strings.
"""

import re

from .errors import NormalizationError

_SEPARATORS = re.compile(r"[-_]")
_APOSTROPHES = re.compile("[‘’‛′]")
_QUOTES = re.compile("[“”‟″]")
_AMPERSAND = re.compile(r"\s*&\s*")
_WHITESPACE = re.compile(r"\s+")


def normalize_tag(raw: str) -> str:
    """Canonicalize a raw tag string into its comparison form.

    Lowercases, trims, turns hyphens and underscores into spaces, replaces
    smart apostrophes and quotes with ASCII ones, spells ``&`` as ``and``,
    and collapses whitespace.

    Args:
        raw: Tag as typed by a user or returned by tag generation

    Returns:
        Normalized tag. Empty input gives an empty string.

    Raises:
        NormalizationError: If ``raw`` is not a string
    """
    if not isinstance(raw, str):
        raise NormalizationError(f"Cannot normalize {type(raw).__name__} as a tag")

    tag = raw.lower().strip()
    tag = _SEPARATORS.sub(" ", tag)
    tag = _APOSTROPHES.sub("'", tag)
    tag = _QUOTES.sub('"', tag)
    tag = _AMPERSAND.sub(" and ", tag)
    tag = _WHITESPACE.sub(" ", tag)
    return tag.strip()
