"""
Models package for treesync.

This package provides convenient imports for all data models:
- OverwriteStrategy: Whole-directory conflict policy
- FileMergeStrategy: Per-file merge flags
- MergeAction: The four behaviours a FileMergeStrategy selects
- OperationLog: Trace and outcome of a tree operation
- ResolvingContext: Mutable state of one file conflict
"""

from .strategies import FileMergeStrategy, MergeAction, OverwriteStrategy
from .data_models import OperationLog, ResolvingContext

__all__ = [
    "OverwriteStrategy",
    "FileMergeStrategy",
    "MergeAction",
    "OperationLog",
    "ResolvingContext",
]
