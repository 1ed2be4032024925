"""Main entry point for ``python -m tbrlist``."""

from tbrlist.cli import main

if __name__ == "__main__":
    main()
