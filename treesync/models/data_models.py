"""
Core data models for tree operations.

This module contains the following dataclasses:
- OperationLog: Ordered trace and outcome of a tree operation, composable across recursion
- ResolvingContext: Mutable state of one file conflict, handed to resolver callbacks
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from .strategies import FileMergeStrategy

logger = logging.getLogger('treesync')


@dataclass
class OperationLog:
    """Trace lines and the final outcome of a tree operation.

    A log starts out successful. ``fail`` flips it to failed for good and keeps
    the first fault it is given; ``append`` folds a sub-operation's log into
    this one, carrying its failure upward.
    """
    messages: List[str] = field(default_factory=list)  # Ordered trace lines
    succeeded: bool = True                               # False once any failure is recorded
    error: Optional[BaseException] = None                # First captured fault

    def log(self, message: str) -> None:
        """Append a trace line."""
        self.messages.append(message)
        logger.debug(message)

    def fail(self, error: BaseException) -> None:
        """Record a failure and its cause. The operation carries on returning this log."""
        self.succeeded = False
        if self.error is None:
            self.error = error
        message = f"Failed: {error}"
        self.messages.append(message)
        logger.warning(message)

    def append(self, other: "OperationLog") -> None:
        """Merge a sub-operation's trace and failure state into this log."""
        self.messages.extend(other.messages)
        if not other.succeeded:
            self.succeeded = False
            if self.error is None:
                self.error = other.error

    @property
    def failed(self) -> bool:
        return not self.succeeded

    def __iter__(self) -> Iterator[str]:
        return iter(self.messages)


@dataclass
class ResolvingContext:
    """State of a single colliding file pair during conflict resolution.

    Resolver callbacks mutate ``strategy`` and the two resolved paths in place
    to steer the next attempt. Both resolved paths start out as the original
    target file path, and the initial strategy keeps both files, so a first
    attempt on an occupied name always collides instead of clobbering.
    """
    target_directory: Path            # Directory the source file is merged into
    target_file: Path                 # Original colliding target file
    source_file: Path                 # Source file being merged
    resolved_source_path: Path        # Where the source file should end up
    resolved_target_path: Path        # Where the existing target file should end up
    strategy: FileMergeStrategy = FileMergeStrategy.KEEP_SOURCE | FileMergeStrategy.KEEP_TARGET
    retry_count: int = 0              # Attempts made after the first

    @classmethod
    def for_collision(cls, source_file: Path, target_file: Path) -> "ResolvingContext":
        return cls(
            target_directory=target_file.parent,
            target_file=target_file,
            source_file=source_file,
            resolved_source_path=target_file,
            resolved_target_path=target_file,
        )

    def increase_retry_count(self) -> None:
        self.retry_count += 1
