"""Conflict policy enums for tree operations.

Two levels of policy exist:
1. OverwriteStrategy - whole-directory policy applied when the target tree already exists
2. FileMergeStrategy - per-file flags chosen while resolving a single colliding file

FileMergeStrategy combinations are read through MergeAction, which names the
four distinct behaviours of the KEEP_SOURCE / KEEP_TARGET pair.
"""

from enum import Enum, Flag


class OverwriteStrategy(Enum):
    """Whole-tree policy for a target directory that already exists."""
    REJECT = "reject"                    # Fail without touching anything
    REPLACE = "replace"                  # Delete the target tree, then write
    MERGE_OVERWRITE = "merge-overwrite"  # Merge into target, colliding files overwritten
    MERGE_SKIP = "merge-skip"            # Merge into target, colliding files skipped

    @classmethod
    def from_bool(cls, overwrite: bool) -> "OverwriteStrategy":
        """Map the plain ``overwrite`` flag onto REPLACE or REJECT."""
        return cls.REPLACE if overwrite else cls.REJECT


class MergeAction(Enum):
    """What happens to a colliding source/target file pair."""
    KEEP_BOTH = "keep_both"                # Both files survive under resolved names
    KEEP_SOURCE_ONLY = "keep_source_only"  # Source replaces target
    KEEP_TARGET_ONLY = "keep_target_only"  # Source discarded
    KEEP_NEITHER = "keep_neither"          # Source discarded, nothing written


class FileMergeStrategy(Flag):
    """Per-file merge flags produced by a conflict resolver."""
    NONE = 0
    KEEP_SOURCE = 1
    KEEP_TARGET = 2
    IGNORE_IF_BUSY = 4

    @property
    def action(self) -> MergeAction:
        keep_source = bool(self & FileMergeStrategy.KEEP_SOURCE)
        keep_target = bool(self & FileMergeStrategy.KEEP_TARGET)
        if keep_source and keep_target:
            return MergeAction.KEEP_BOTH
        if keep_source:
            return MergeAction.KEEP_SOURCE_ONLY
        if keep_target:
            return MergeAction.KEEP_TARGET_ONLY
        return MergeAction.KEEP_NEITHER

    @property
    def ignore_if_busy(self) -> bool:
        return bool(self & FileMergeStrategy.IGNORE_IF_BUSY)
