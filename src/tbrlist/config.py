"""Configuration management for tbrlist.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from dotenv import load_dotenv

if TYPE_CHECKING:
    from .tags.similarity import SimilarityPolicy

# Load .env file if present
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Tag matching
    tag_min_distance: int
    tag_length_ratio: float
    resolve_max_attempts: int

    # Tag analytics
    popular_limit: int

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "TBRLIST_DB_PATH",
            str(Path.home() / ".tbrlist" / "tbrlist.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            tag_min_distance=int(os.environ.get("TBRLIST_TAG_MIN_DISTANCE", "3")),
            tag_length_ratio=float(os.environ.get("TBRLIST_TAG_LENGTH_RATIO", "0.2")),
            resolve_max_attempts=int(
                os.environ.get("TBRLIST_RESOLVE_MAX_ATTEMPTS", "3")
            ),
            popular_limit=int(os.environ.get("TBRLIST_POPULAR_LIMIT", "10")),
            log_level=os.environ.get("TBRLIST_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.tag_min_distance < 0:
            errors.append("TBRLIST_TAG_MIN_DISTANCE must be zero or greater")
        if not 0 <= self.tag_length_ratio < 1:
            errors.append("TBRLIST_TAG_LENGTH_RATIO must be in the range [0, 1)")
        if self.resolve_max_attempts < 1:
            errors.append("TBRLIST_RESOLVE_MAX_ATTEMPTS must be at least 1")
        if self.popular_limit < 1:
            errors.append("TBRLIST_POPULAR_LIMIT must be at least 1")

        return errors

    def similarity_policy(self) -> "SimilarityPolicy":
        """Build the fuzzy matching policy from the configured thresholds."""
        from .tags.similarity import SimilarityPolicy

        return SimilarityPolicy(
            min_distance=self.tag_min_distance,
            length_ratio=self.tag_length_ratio,
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
