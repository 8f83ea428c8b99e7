"""Tree operations package for treesync.

This package provides the TreeOperations class for creating, moving, copying,
deleting and linking directory trees, the MergeResolver used to settle
individual file conflicts, and the directory link primitives.

Example:
    >>> from treesync.operations import TreeOperations, numbered_rename_resolver
    >>> ops = TreeOperations()
    >>> result = ops.move("/data/inbox", "/data/archive", resolver=numbered_rename_resolver)
    >>> print(result.succeeded, len(result.messages))
"""

from .links import JunctionPrimitive, LinkPrimitive, SymlinkPrimitive, default_link_primitive
from .merge_resolver import (
    MAX_RESOLVE_ATTEMPTS,
    ConflictResolver,
    MergeResolver,
    numbered_rename_resolver,
)
from .tree_operations import TreeOperations, device_volume

__all__ = [
    "TreeOperations",
    "MergeResolver",
    "ConflictResolver",
    "MAX_RESOLVE_ATTEMPTS",
    "numbered_rename_resolver",
    "device_volume",
    "LinkPrimitive",
    "SymlinkPrimitive",
    "JunctionPrimitive",
    "default_link_primitive",
]
