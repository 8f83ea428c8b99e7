"""Allow ``python -m treesync``."""

from treesync.cli import app

if __name__ == "__main__":
    app()
