"""
Per-file conflict resolution for tree operations.

This module contains the MergeResolver class, which settles a single colliding
source/target file pair by repeatedly asking a policy for a FileMergeStrategy
and attempting the matching filesystem action until one succeeds.
"""

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Optional, Union

from treesync.exceptions import ConflictResolutionError
from treesync.models import FileMergeStrategy, MergeAction, OperationLog, ResolvingContext

logger = logging.getLogger('treesync.operations')

# Upper bound on attempts for a single conflict
MAX_RESOLVE_ATTEMPTS = 65535

ConflictResolver = Callable[[ResolvingContext], None]


def numbered_rename_resolver(context: ResolvingContext) -> None:
    """
    Keep both files, giving the incoming one a numbered name.

    On retry N the source file is written as ``name (N+1).ext`` next to the
    original target, so successive collisions try ``name (2).ext``,
    ``name (3).ext`` and so on.

    Parameters:
        context (ResolvingContext): Conflict state, mutated in place.
    """
    target = context.target_file
    context.strategy = FileMergeStrategy.KEEP_SOURCE | FileMergeStrategy.KEEP_TARGET
    context.resolved_source_path = context.target_directory / (
        f"{target.stem} ({context.retry_count + 1}){target.suffix}"
    )


def _static_policy(strategy: FileMergeStrategy) -> ConflictResolver:
    def policy(context: ResolvingContext) -> None:
        context.strategy = strategy
    return policy


def _same_path(first: Path, second: Path) -> bool:
    return os.path.normcase(os.path.abspath(first)) == os.path.normcase(os.path.abspath(second))


class MergeResolver:
    """
    Settles file collisions by asking a policy what to keep.

    The first attempt always uses the initial ResolvingContext (keep both,
    unchanged names), which collides on an occupied name without modifying
    anything. Every later attempt first calls the policy so it can pick a new
    strategy or new names.
    """

    def __init__(
        self,
        policy: Union[ConflictResolver, FileMergeStrategy],
        copy: bool = False,
        max_attempts: int = MAX_RESOLVE_ATTEMPTS,
    ) -> None:
        """
        Create a MergeResolver.

        Parameters:
            policy: Callback mutating a ResolvingContext, or a FileMergeStrategy applied on every retry.
            copy (bool): If True, source files are copied and never removed; otherwise they are moved.
            max_attempts (int): Attempts allowed per conflict before ConflictResolutionError is raised.
        """
        if isinstance(policy, FileMergeStrategy):
            policy = _static_policy(policy)
        self.policy = policy
        self.copy = copy
        self.max_attempts = max_attempts

    def for_copy(self) -> "MergeResolver":
        """Return a resolver with the same policy that copies instead of moving."""
        return MergeResolver(self.policy, copy=True, max_attempts=self.max_attempts)

    def resolve(self, source_file: Path, target_file: Path, result: OperationLog) -> ResolvingContext:
        """
        Resolve one collision between ``source_file`` and ``target_file``.

        Trace lines describing the outcome are appended to ``result``. Lock and
        IO errors are retried; a vanished file or directory ends resolution as
        a no-op.

        Returns:
            ResolvingContext: The final conflict state.

        Raises:
            ConflictResolutionError: If no attempt succeeded within ``max_attempts``.
        """
        context = ResolvingContext.for_collision(source_file, target_file)
        current_target = target_file

        for attempt in range(self.max_attempts):
            if attempt:
                context.increase_retry_count()
                self.policy(context)

            action = context.strategy.action
            if action is MergeAction.KEEP_BOTH:
                try:
                    if not _same_path(current_target, context.resolved_target_path):
                        self._transfer(current_target, context.resolved_target_path, overwrite=False, copy=False)
                        current_target = context.resolved_target_path
                    if not _same_path(source_file, context.resolved_source_path):
                        self._transfer(source_file, context.resolved_source_path, overwrite=False)
                except FileNotFoundError:
                    result.log(f"'{source_file.name}' vanished while resolving a conflict, nothing to keep.")
                    return context
                except OSError as e:
                    logger.debug(f"Keep-both attempt {attempt + 1} for {source_file} failed: {e}")
                    continue
                result.log(
                    f"Kept both '{current_target.name}' and '{context.resolved_source_path.name}'."
                )
                return context

            if action is MergeAction.KEEP_SOURCE_ONLY:
                try:
                    if not _same_path(source_file, context.resolved_source_path):
                        self._transfer(source_file, context.resolved_source_path, overwrite=True)
                except FileNotFoundError:
                    result.log(f"'{source_file.name}' vanished while resolving a conflict, nothing to keep.")
                    return context
                except OSError as e:
                    if context.strategy.ignore_if_busy:
                        result.log(f"'{source_file.name}' is busy, left as it is: {e}")
                        return context
                    logger.debug(f"Overwrite attempt {attempt + 1} for {source_file} failed: {e}")
                    continue
                result.log(f"Overwrote '{context.resolved_source_path.name}' with the source file.")
                return context

            # KEEP_TARGET_ONLY and KEEP_NEITHER both drop the source file
            if not self.copy:
                try:
                    os.remove(source_file)
                except OSError as e:
                    logger.debug(f"Could not discard {source_file}: {e}")
            result.log(f"Kept '{target_file.name}', discarded the source file.")
            return context

        raise ConflictResolutionError(
            f"Conflict between '{source_file}' and '{target_file}' "
            f"was not resolved after {self.max_attempts} attempts"
        )

    def _transfer(self, source: Path, destination: Path, overwrite: bool, copy: Optional[bool] = None) -> None:
        """Move or copy a single file, refusing to replace an occupied name unless ``overwrite``."""
        if copy is None:
            copy = self.copy
        if not overwrite and os.path.lexists(destination):
            raise FileExistsError(errno.EEXIST, "Destination already exists", str(destination))
        if copy:
            shutil.copy2(source, destination)
        else:
            os.replace(source, destination)
