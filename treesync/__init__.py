"""treesync - Directory tree synchronization.

Moves, copies, deletes and links whole directory trees, resolving naming and
occupancy conflicts deterministically and reporting partial success instead
of rolling back.
"""

__version__ = "1.0.0"

from .exceptions import (
    ConflictResolutionError,
    LinkPathError,
    PathArgumentError,
    TreeSyncError,
)
from .models import (
    FileMergeStrategy,
    MergeAction,
    OperationLog,
    OverwriteStrategy,
    ResolvingContext,
)
from .operations import MergeResolver, TreeOperations, numbered_rename_resolver

__all__ = [
    "__version__",
    "TreeOperations",
    "MergeResolver",
    "numbered_rename_resolver",
    "OverwriteStrategy",
    "FileMergeStrategy",
    "MergeAction",
    "OperationLog",
    "ResolvingContext",
    "TreeSyncError",
    "PathArgumentError",
    "LinkPathError",
    "ConflictResolutionError",
]


def main() -> None:
    """Entry point for the treesync CLI application.

    Imports and runs the Typer app from the treesync.cli module.
    """
    from treesync.cli import app
    app()
