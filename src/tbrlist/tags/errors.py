"""Exceptions raised by the tag subsystem."""


class TagError(Exception):
    """Base exception for tag errors."""

    pass


class NormalizationError(TagError):
    """Raised when a value cannot be normalized into a tag."""

    pass


class PersistenceFailure(TagError):
    """Raised when the tag store fails to create, read or update tags."""

    pass


class DuplicateTagError(PersistenceFailure):
    """Raised when a tag with the same normalized name already exists."""

    def __init__(self, normalized_name: str):
        super().__init__(f"Tag already exists: {normalized_name!r}")
        self.normalized_name = normalized_name


class TagNotFoundError(TagError):
    """Raised when a tag id is not in the store."""

    def __init__(self, tag_id: int):
        super().__init__(f"Tag not found: {tag_id}")
        self.tag_id = tag_id
