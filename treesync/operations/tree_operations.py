"""
Tree operations module for treesync.

This module contains the TreeOperations class, which creates, moves, copies,
deletes and links whole directory trees. Expected filesystem failures never
raise: every operation returns an OperationLog describing what was done and
whether anything failed. Work already done before a failure is left in place.
"""

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Hashable, List, Optional, Tuple, Union

from treesync.exceptions import LinkPathError, PathArgumentError
from treesync.models import FileMergeStrategy, OperationLog, OverwriteStrategy

from .links import LinkPrimitive, default_link_primitive
from .merge_resolver import MAX_RESOLVE_ATTEMPTS, ConflictResolver, MergeResolver, _same_path

# Configure module logger
logger = logging.getLogger('treesync.operations')

PathArgument = Union[str, "os.PathLike[str]"]
ResolverArgument = Union[ConflictResolver, FileMergeStrategy, MergeResolver]


def device_volume(path: Path) -> Hashable:
    """
    Identify the storage device holding ``path``.

    A path that does not exist yet belongs to the device of its nearest
    existing ancestor.

    Parameters:
        path (Path): Absolute path to inspect.

    Returns:
        The ``st_dev`` of the path or of its nearest existing ancestor.
    """
    current = Path(os.path.abspath(path))
    while not current.exists() and current.parent != current:
        current = current.parent
    return os.stat(current).st_dev


def verify_path_argument(value: Optional[PathArgument], argument_name: str) -> Path:
    """
    Validate a path argument and return it as an absolute Path.

    Raises:
        PathArgumentError: If ``value`` is None, empty, or whitespace only.
    """
    if value is None:
        raise PathArgumentError(argument_name, "path must not be None")
    text = os.fspath(value)
    if isinstance(text, bytes):
        text = os.fsdecode(text)
    if not text.strip():
        raise PathArgumentError(argument_name, "path must not be empty or whitespace")
    return Path(os.path.abspath(text))


class TreeOperations:
    """
    Moves, copies, deletes and links directory trees.

    Conflicts with an existing target directory are handled by an
    OverwriteStrategy; conflicts between individual files can instead be
    handed to a MergeResolver. Moves between different volumes fall back to
    copy followed by delete.

    Example:
        >>> ops = TreeOperations()
        >>> result = ops.move("/data/incoming", "/data/archive", OverwriteStrategy.MERGE_SKIP)
        >>> if result.failed:
        ...     print(result.error)
    """

    def __init__(
        self,
        link_primitive: Optional[LinkPrimitive] = None,
        volume_of: Optional[Callable[[Path], Hashable]] = None,
        max_resolve_attempts: int = MAX_RESOLVE_ATTEMPTS,
    ) -> None:
        """
        Create a TreeOperations instance.

        Parameters:
            link_primitive (LinkPrimitive): Directory link implementation; defaults to the platform's.
            volume_of (Callable): Maps a path to a volume identity; defaults to ``device_volume``.
            max_resolve_attempts (int): Attempts allowed per file conflict when a resolver is used.
        """
        self.links = link_primitive if link_primitive is not None else default_link_primitive()
        self.volume_of = volume_of if volume_of is not None else device_volume
        self.max_resolve_attempts = max_resolve_attempts

    # Public API

    def create(self, path: PathArgument) -> OperationLog:
        """Create a directory and any missing parents. Succeeds if it already exists."""
        return self._create(verify_path_argument(path, "path"))

    def move(
        self,
        source: PathArgument,
        target: PathArgument,
        overwrite: Union[bool, OverwriteStrategy] = OverwriteStrategy.REPLACE,
        resolver: Optional[ResolverArgument] = None,
    ) -> OperationLog:
        """
        Move the ``source`` directory tree so that it becomes ``target``.

        Parameters:
            source: Directory to move.
            target: Destination directory.
            overwrite: Policy for an existing target; True means REPLACE, False means REJECT.
            resolver: Per-file conflict policy. When given, an existing target is merged
                into and every colliding file is settled by the resolver; ``overwrite`` is ignored.

        Returns:
            OperationLog: Trace and outcome of the move.

        Raises:
            PathArgumentError: If a path is empty, or one directory lies inside the other.
            ConflictResolutionError: If a resolver never settles a conflict.
        """
        source_dir, target_dir = self._verify_pair(source, target)
        if _same_path(source_dir, target_dir):
            return self._same_directory_noop(source_dir)
        merge_resolver = self._make_resolver(resolver, copy=False)
        strategy = OverwriteStrategy.MERGE_OVERWRITE if merge_resolver is not None else self._coerce_strategy(overwrite)
        return self._move(source_dir, target_dir, strategy, merge_resolver)

    def copy(
        self,
        source: PathArgument,
        target: PathArgument,
        overwrite: Union[bool, OverwriteStrategy] = OverwriteStrategy.REPLACE,
        resolver: Optional[ResolverArgument] = None,
    ) -> OperationLog:
        """
        Copy the ``source`` directory tree so that ``target`` holds the same files.

        Parameters and exceptions are the same as for :meth:`move`. The source
        tree is never modified.
        """
        source_dir, target_dir = self._verify_pair(source, target)
        if _same_path(source_dir, target_dir):
            return self._same_directory_noop(source_dir)
        merge_resolver = self._make_resolver(resolver, copy=True)
        strategy = OverwriteStrategy.MERGE_OVERWRITE if merge_resolver is not None else self._coerce_strategy(overwrite)
        return self._copy(source_dir, target_dir, strategy, merge_resolver)

    def delete(self, path: PathArgument) -> OperationLog:
        """
        Delete a directory tree.

        A directory link is removed as a link; the directory it points at is
        left untouched. Deleting a missing directory succeeds.
        """
        directory = verify_path_argument(path, "path")
        result = OperationLog()
        result.log(f"Delete directory '{directory}'.")
        if not self.links.exists(directory) and not directory.is_dir():
            result.log(f"Directory '{directory}' does not exist, nothing to delete.")
            return result
        result.append(self._delete_tree(directory))
        return result

    def link(
        self,
        link_path: PathArgument,
        target_path: PathArgument,
        overwrite: bool = True,
    ) -> OperationLog:
        """
        Create a directory link at ``link_path`` pointing at ``target_path``.

        Missing parents of ``link_path`` are created. When ``overwrite`` is
        True an existing link, file or empty directory at ``link_path`` is
        replaced.

        Raises:
            LinkPathError: If ``link_path`` has no parent directory.
        """
        link_dir = verify_path_argument(link_path, "link_path")
        target_dir = verify_path_argument(target_path, "target_path")

        result = OperationLog()
        result.log(f"Link directory '{link_dir}' to '{target_dir}'.")

        parent = link_dir.parent
        if parent == link_dir:
            raise LinkPathError(f"'{link_dir}' has no parent directory, a link cannot be created there")

        try:
            if not parent.is_dir():
                result.log(f"Creating missing parent directory '{parent}'.")
                os.makedirs(parent, exist_ok=True)
            self.links.create(link_dir, target_dir, overwrite)
        except OSError as e:
            result.fail(e)

        return result

    # Recursive workers

    def _create(self, directory: Path) -> OperationLog:
        result = OperationLog()
        result.log(f"Create directory '{directory}' whether or not it exists.")
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            result.fail(e)
        return result

    def _move(
        self,
        source: Path,
        target: Path,
        strategy: OverwriteStrategy,
        resolver: Optional[MergeResolver],
    ) -> OperationLog:
        result = OperationLog()
        result.log(f"Move directory '{source}' to '{target}'.")

        if not source.is_dir():
            result.log(f"Source directory '{source}' does not exist, nothing to move.")
            return result

        if self.volume_of(source) != self.volume_of(target):
            result.log("Source and target are on different volumes, copying then deleting the source.")
            copied = self._copy(source, target, strategy, resolver.for_copy() if resolver is not None else None)
            result.append(copied)
            if copied.failed:
                result.log(f"Copy did not complete, source '{source}' is kept.")
                return result
            deleted = self._delete_tree(source)
            result.append(deleted)
            return result

        result.log("Source and target are on the same volume, moving in place.")
        if not self._prepare_target(target, strategy, result):
            return result

        try:
            files, directories = self._scan(source)

            for source_file in files:
                target_file = target / source_file.name
                if resolver is not None and os.path.lexists(target_file):
                    resolver.resolve(source_file, target_file, result)
                elif strategy is OverwriteStrategy.MERGE_SKIP and os.path.lexists(target_file):
                    result.log(f"Skipped '{source_file.name}', the target file already exists.")
                else:
                    os.replace(source_file, target_file)
                    logger.debug(f"Moved file: {source_file} -> {target_file}")

            for source_subdir in directories:
                target_subdir = target / source_subdir.name
                if self.links.exists(source_subdir):
                    self._relocate_link(source_subdir, target_subdir, result)
                    continue
                result.append(self._move(source_subdir, target_subdir, strategy, resolver))
        except OSError as e:
            result.fail(e)
            return result

        self._remove_if_empty(source, result)
        return result

    def _copy(
        self,
        source: Path,
        target: Path,
        strategy: OverwriteStrategy,
        resolver: Optional[MergeResolver],
    ) -> OperationLog:
        result = OperationLog()
        result.log(f"Copy directory '{source}' to '{target}'.")

        if not source.is_dir():
            result.log(f"Source directory '{source}' does not exist, nothing to copy.")
            return result

        if not self._prepare_target(target, strategy, result):
            return result

        try:
            files, directories = self._scan(source)

            for source_file in files:
                target_file = target / source_file.name
                if resolver is not None and os.path.lexists(target_file):
                    resolver.resolve(source_file, target_file, result)
                elif strategy is OverwriteStrategy.MERGE_SKIP and os.path.lexists(target_file):
                    result.log(f"Skipped '{source_file.name}', the target file already exists.")
                else:
                    shutil.copy2(source_file, target_file)
                    logger.debug(f"Copied file: {source_file} -> {target_file}")

            for source_subdir in directories:
                target_subdir = target / source_subdir.name
                if self.links.exists(source_subdir):
                    self._copy_link(source_subdir, target_subdir, result)
                    continue
                result.append(self._copy(source_subdir, target_subdir, strategy, resolver))
        except OSError as e:
            result.fail(e)

        return result

    def _delete_tree(self, directory: Path) -> OperationLog:
        """Delete ``directory`` bottom-up. A directory link is removed without descending into it."""
        result = OperationLog()

        if self.links.exists(directory):
            try:
                self.links.delete(directory)
                result.log(f"Removed directory link '{directory}'.")
            except OSError as e:
                result.fail(e)
            return result

        if not directory.is_dir():
            return result

        try:
            files, directories = self._scan(directory)
            for file_path in files:
                os.unlink(file_path)
            for subdir in directories:
                result.append(self._delete_tree(subdir))
            if result.succeeded:
                directory.rmdir()
                logger.debug(f"Removed directory: {directory}")
        except OSError as e:
            result.fail(e)

        return result

    # Helpers

    def _prepare_target(self, target: Path, strategy: OverwriteStrategy, result: OperationLog) -> bool:
        """
        Apply the whole-directory policy to ``target`` and make sure it exists.

        Returns:
            bool: True if the walk may proceed into ``target``.
        """
        if target.exists() or self.links.exists(target):
            if strategy is OverwriteStrategy.REJECT:
                result.log("Target directory already exists and must not be overwritten.")
                result.fail(FileExistsError(errno.EEXIST, "Target directory already exists", str(target)))
                return False
            if strategy is OverwriteStrategy.REPLACE:
                result.log("Target directory already exists, deleting it first.")
                deleted = self._delete_tree(target)
                result.append(deleted)
                if deleted.failed:
                    return False
            else:
                result.log(f"Target directory already exists, merging into it ({strategy.value}).")

        created = self._create(target)
        result.append(created)
        return created.succeeded

    def _same_directory_noop(self, directory: Path) -> OperationLog:
        result = OperationLog()
        result.log(f"Source and target are both '{directory}', nothing to do.")
        return result

    def _relocate_link(self, source_link: Path, target_link: Path, result: OperationLog) -> None:
        if os.path.lexists(target_link):
            result.log(f"Directory link '{source_link.name}' left in place, '{target_link}' is occupied.")
            return
        os.replace(source_link, target_link)
        result.log(f"Moved directory link '{source_link.name}'.")

    def _copy_link(self, source_link: Path, target_link: Path, result: OperationLog) -> None:
        """Recreate a directory link under the target with the same destination, without following it."""
        if os.path.lexists(target_link):
            result.log(f"Directory link '{source_link.name}' not copied, '{target_link}' is occupied.")
            return
        self.links.create(target_link, Path(os.readlink(source_link)), overwrite=False)
        result.log(f"Copied directory link '{source_link.name}'.")

    def _remove_if_empty(self, source: Path, result: OperationLog) -> None:
        try:
            if any(source.iterdir()):
                result.log(f"Source directory '{source}' still has content, left in place.")
                return
            source.rmdir()
            logger.debug(f"Removed emptied source directory: {source}")
        except OSError as e:
            result.fail(e)

    def _scan(self, directory: Path) -> Tuple[List[Path], List[Path]]:
        """List the files and subdirectories directly under ``directory``, sorted by name."""
        files: List[Path] = []
        directories: List[Path] = []
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.is_dir():
                    directories.append(Path(entry.path))
                else:
                    files.append(Path(entry.path))
        return sorted(files), sorted(directories)

    def _verify_pair(self, source: PathArgument, target: PathArgument) -> Tuple[Path, Path]:
        source_dir = verify_path_argument(source, "source")
        target_dir = verify_path_argument(target, "target")
        if target_dir != source_dir:
            if target_dir.is_relative_to(source_dir):
                raise PathArgumentError("target", f"'{target_dir}' lies inside the source directory '{source_dir}'")
            if source_dir.is_relative_to(target_dir):
                raise PathArgumentError("source", f"'{source_dir}' lies inside the target directory '{target_dir}'")
        return source_dir, target_dir

    def _make_resolver(self, resolver: Optional[ResolverArgument], copy: bool) -> Optional[MergeResolver]:
        if resolver is None:
            return None
        if isinstance(resolver, MergeResolver):
            return resolver.for_copy() if copy else resolver
        return MergeResolver(resolver, copy=copy, max_attempts=self.max_resolve_attempts)

    @staticmethod
    def _coerce_strategy(overwrite: Union[bool, OverwriteStrategy]) -> OverwriteStrategy:
        if isinstance(overwrite, bool):
            return OverwriteStrategy.from_bool(overwrite)
        if isinstance(overwrite, OverwriteStrategy):
            return overwrite
        raise TypeError(f"overwrite must be a bool or an OverwriteStrategy, got {type(overwrite).__name__}")
