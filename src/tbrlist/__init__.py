"""tbrlist - a reading-list manager with canonical, deduplicated tags."""

__version__ = "0.1.0"
