"""Pytest fixtures for treesync tests."""

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, Hashable

import pytest

from treesync.operations import TreeOperations


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests spanning several components")


def write_tree(base: Path, files: Dict[str, str]) -> Path:
    """Create ``files`` (relative path -> text content) under ``base``.

    Returns:
        The base directory.
    """
    base.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return base


def read_tree(base: Path) -> Dict[str, str]:
    """Return every file under ``base`` as relative POSIX path -> text content."""
    tree = {}
    for root, _dirs, files in os.walk(base):
        for name in files:
            path = Path(root) / name
            tree[path.relative_to(base).as_posix()] = path.read_text()
    return tree


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for isolated test environments.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ops() -> TreeOperations:
    return TreeOperations()


@pytest.fixture
def source_tree(temp_dir: Path) -> Path:
    """Create a small nested source tree.

    Creates:
        temp_dir/source/
        ├── readme.txt      "readme"
        ├── data.json       "{}"
        └── docs/
            ├── guide.md    "guide"
            └── api/
                └── index.md "api"
    """
    return write_tree(
        temp_dir / "source",
        {
            "readme.txt": "readme",
            "data.json": "{}",
            "docs/guide.md": "guide",
            "docs/api/index.md": "api",
        },
    )


@pytest.fixture
def two_volumes(temp_dir: Path) -> Dict[str, object]:
    """Two directories that a TreeOperations instance treats as separate volumes.

    Returns:
        Dictionary with "first" and "second" volume roots and a "volume_of"
        function suitable for ``TreeOperations(volume_of=...)``.
    """
    first = temp_dir / "volume1"
    second = temp_dir / "volume2"
    first.mkdir()
    second.mkdir()

    def volume_of(path: Path) -> Hashable:
        if Path(path).is_relative_to(second):
            return "volume2"
        return "volume1"

    return {"first": first, "second": second, "volume_of": volume_of}


@pytest.fixture
def symlinks_supported(temp_dir: Path) -> None:
    """Skip the test if directory symlinks cannot be created here."""
    probe_target = temp_dir / "probe_target"
    probe_target.mkdir()
    probe_link = temp_dir / "probe_link"
    try:
        os.symlink(probe_target, probe_link, target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("Directory symlinks are not supported on this platform/configuration")
    finally:
        if os.path.islink(probe_link):
            if sys.platform == "win32":
                os.rmdir(probe_link)
            else:
                os.unlink(probe_link)
        probe_target.rmdir()
