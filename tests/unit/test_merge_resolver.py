"""
Unit tests for the MergeResolver conflict loop.

Tests cover:
- Keep-both resolution with renamed files
- Keep-source overwrite, with and without busy files
- Keep-target and keep-neither discarding the source
- Copy mode leaving the source untouched
- Files vanishing mid-resolution
- The attempt bound
"""

import errno
import os
from pathlib import Path
from typing import List, Tuple
from unittest.mock import patch

import pytest

from treesync.exceptions import ConflictResolutionError
from treesync.models import FileMergeStrategy, OperationLog, ResolvingContext
from treesync.operations import MAX_RESOLVE_ATTEMPTS, MergeResolver, numbered_rename_resolver


@pytest.fixture
def collision(temp_dir: Path) -> Tuple[Path, Path]:
    """A source file and an existing target file with the same name."""
    source_dir = temp_dir / "source"
    target_dir = temp_dir / "target"
    source_dir.mkdir()
    target_dir.mkdir()

    source_file = source_dir / "notes.txt"
    target_file = target_dir / "notes.txt"
    source_file.write_text("from source")
    target_file.write_text("from target")
    return source_file, target_file


def locked_replace(failures: int):
    """Build an os.replace stand-in that raises PermissionError ``failures`` times first."""
    real_replace = os.replace
    calls = {"count": 0}

    def replace(src, dst):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise PermissionError(errno.EACCES, "File is locked", str(src))
        return real_replace(src, dst)

    return replace, calls


@pytest.mark.unit
class TestKeepBoth:
    """Tests for keeping both colliding files."""

    def test_numbered_rename_keeps_both(self, collision):
        source_file, target_file = collision
        result = OperationLog()

        context = MergeResolver(numbered_rename_resolver).resolve(source_file, target_file, result)

        renamed = target_file.parent / "notes (2).txt"
        assert target_file.read_text() == "from target"
        assert renamed.read_text() == "from source"
        assert not source_file.exists()
        assert context.retry_count == 1
        assert result.succeeded

    def test_numbered_rename_skips_taken_names(self, collision):
        source_file, target_file = collision
        (target_file.parent / "notes (2).txt").write_text("older copy")

        MergeResolver(numbered_rename_resolver).resolve(source_file, target_file, OperationLog())

        assert (target_file.parent / "notes (2).txt").read_text() == "older copy"
        assert (target_file.parent / "notes (3).txt").read_text() == "from source"

    def test_copy_mode_keeps_source(self, collision):
        source_file, target_file = collision

        MergeResolver(numbered_rename_resolver, copy=True).resolve(source_file, target_file, OperationLog())

        assert source_file.read_text() == "from source"
        assert (target_file.parent / "notes (2).txt").read_text() == "from source"
        assert target_file.read_text() == "from target"

    def test_target_renamed_out_of_the_way(self, collision):
        source_file, target_file = collision

        def move_target_aside(context: ResolvingContext) -> None:
            context.resolved_target_path = context.target_directory / "notes.old.txt"

        MergeResolver(move_target_aside).resolve(source_file, target_file, OperationLog())

        assert target_file.read_text() == "from source"
        assert (target_file.parent / "notes.old.txt").read_text() == "from target"

    def test_first_attempt_does_not_call_policy_without_collision(self, temp_dir):
        source_file = temp_dir / "a.txt"
        source_file.write_text("a")
        target_file = temp_dir / "dest" / "a.txt"
        target_file.parent.mkdir()
        calls: List[int] = []

        MergeResolver(lambda context: calls.append(context.retry_count)).resolve(
            source_file, target_file, OperationLog()
        )

        assert calls == []
        assert target_file.read_text() == "a"


@pytest.mark.unit
class TestKeepSource:
    """Tests for overwriting the target with the source."""

    def test_static_overwrite(self, collision):
        source_file, target_file = collision

        MergeResolver(FileMergeStrategy.KEEP_SOURCE).resolve(source_file, target_file, OperationLog())

        assert target_file.read_text() == "from source"
        assert not source_file.exists()

    def test_busy_target_is_retried(self, collision):
        source_file, target_file = collision
        replace, calls = locked_replace(failures=2)

        with patch("os.replace", side_effect=replace):
            context = MergeResolver(FileMergeStrategy.KEEP_SOURCE).resolve(
                source_file, target_file, OperationLog()
            )

        assert calls["count"] == 3
        assert context.retry_count == 3
        assert target_file.read_text() == "from source"

    def test_busy_target_ignored(self, collision):
        source_file, target_file = collision
        replace, calls = locked_replace(failures=10)
        result = OperationLog()

        with patch("os.replace", side_effect=replace):
            context = MergeResolver(
                FileMergeStrategy.KEEP_SOURCE | FileMergeStrategy.IGNORE_IF_BUSY
            ).resolve(source_file, target_file, result)

        assert calls["count"] == 1
        assert context.retry_count == 1
        assert source_file.read_text() == "from source"
        assert target_file.read_text() == "from target"
        assert result.succeeded
        assert "busy" in result.messages[-1]

    def test_vanished_source_is_a_noop(self, collision):
        source_file, target_file = collision
        source_file.unlink()
        result = OperationLog()

        MergeResolver(FileMergeStrategy.KEEP_SOURCE).resolve(source_file, target_file, result)

        assert target_file.read_text() == "from target"
        assert result.succeeded
        assert "vanished" in result.messages[-1]


@pytest.mark.unit
class TestDiscardSource:
    """Tests for keep-target and keep-neither."""

    @pytest.mark.parametrize("strategy", [FileMergeStrategy.KEEP_TARGET, FileMergeStrategy.NONE])
    def test_move_discards_source(self, collision, strategy):
        source_file, target_file = collision

        MergeResolver(strategy).resolve(source_file, target_file, OperationLog())

        assert not source_file.exists()
        assert target_file.read_text() == "from target"

    @pytest.mark.parametrize("strategy", [FileMergeStrategy.KEEP_TARGET, FileMergeStrategy.NONE])
    def test_copy_leaves_source(self, collision, strategy):
        source_file, target_file = collision

        MergeResolver(strategy, copy=True).resolve(source_file, target_file, OperationLog())

        assert source_file.read_text() == "from source"
        assert target_file.read_text() == "from target"

    def test_failed_discard_is_tolerated(self, collision):
        source_file, target_file = collision
        result = OperationLog()

        with patch("os.remove", side_effect=PermissionError(errno.EACCES, "locked")):
            MergeResolver(FileMergeStrategy.KEEP_TARGET).resolve(source_file, target_file, result)

        assert result.succeeded
        assert source_file.exists()


@pytest.mark.unit
class TestAttemptBound:
    """Tests for the conflict loop's attempt bound."""

    def test_small_bound_raises(self, collision):
        source_file, target_file = collision
        calls: List[int] = []

        resolver = MergeResolver(lambda context: calls.append(context.retry_count), max_attempts=5)
        with pytest.raises(ConflictResolutionError):
            resolver.resolve(source_file, target_file, OperationLog())

        assert calls == [1, 2, 3, 4]
        assert source_file.read_text() == "from source"
        assert target_file.read_text() == "from target"

    def test_default_bound_is_enforced(self, collision):
        source_file, target_file = collision
        calls = {"count": 0}

        def stubborn(context: ResolvingContext) -> None:
            calls["count"] += 1
            context.strategy = FileMergeStrategy.KEEP_SOURCE | FileMergeStrategy.KEEP_TARGET

        with pytest.raises(ConflictResolutionError):
            MergeResolver(stubborn).resolve(source_file, target_file, OperationLog())

        assert MAX_RESOLVE_ATTEMPTS == 65535
        assert calls["count"] == MAX_RESOLVE_ATTEMPTS - 1

    def test_for_copy_keeps_policy_and_bound(self):
        resolver = MergeResolver(numbered_rename_resolver, max_attempts=7)
        copying = resolver.for_copy()

        assert copying.copy
        assert copying.policy is resolver.policy
        assert copying.max_attempts == 7
