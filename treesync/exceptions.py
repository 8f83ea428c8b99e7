"""Exception types raised by treesync.

Only precondition faults are raised. Runtime filesystem faults are recorded
in an :class:`~treesync.models.OperationLog` instead.
"""


class TreeSyncError(Exception):
    """Base class for all treesync errors."""


class PathArgumentError(TreeSyncError, ValueError):
    """A path argument was None, empty, or whitespace only."""

    def __init__(self, argument_name: str, message: str) -> None:
        super().__init__(f"{argument_name}: {message}")
        self.argument_name = argument_name


class LinkPathError(TreeSyncError, OSError):
    """A directory link cannot be created at the requested location."""


class ConflictResolutionError(TreeSyncError, RuntimeError):
    """The per-file conflict loop ran out of attempts without resolving."""
