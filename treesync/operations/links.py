"""Directory link primitives.

A directory link redirects to another directory without holding copies of its
files. Tree operations only need three things from a link implementation:
whether a path is a link, how to create one, and how to remove one without
touching the directory it points at.

Two implementations are provided:
- SymlinkPrimitive: symbolic links, available on every platform
- JunctionPrimitive: NTFS junctions, Windows only, no privilege required

Example:
    >>> from treesync.operations.links import default_link_primitive
    >>> links = default_link_primitive()
    >>> links.create(Path("/data/current"), Path("/data/releases/42"), overwrite=True)
    >>> links.exists(Path("/data/current"))
    True
"""

import os
import subprocess
import sys
from pathlib import Path


class LinkPrimitive:
    """Capability interface for directory links."""

    def exists(self, path: Path) -> bool:
        """Return True if ``path`` itself is a directory link."""
        raise NotImplementedError

    def create(self, link: Path, target: Path, overwrite: bool) -> None:
        """Create a directory link at ``link`` pointing at ``target``.

        If ``link`` is occupied and ``overwrite`` is True, the occupant is
        removed first: an existing link or file is unlinked, an empty
        directory is removed. A non-empty directory is never removed.

        Raises:
            FileExistsError: If ``link`` is occupied and ``overwrite`` is False.
            OSError: If the occupant cannot be removed or the link cannot be made.
        """
        if os.path.lexists(link):
            if not overwrite:
                raise FileExistsError(f"Link path already exists: {link}")
            self._remove_occupant(link)
        self._make_link(link, target)

    def delete(self, path: Path) -> None:
        """Remove the link at ``path``, leaving the linked directory intact."""
        raise NotImplementedError

    def _make_link(self, link: Path, target: Path) -> None:
        raise NotImplementedError

    def _remove_occupant(self, path: Path) -> None:
        if self.exists(path):
            self.delete(path)
        elif os.path.isdir(path):
            # Fails with ENOTEMPTY for a populated directory
            os.rmdir(path)
        else:
            os.unlink(path)


class SymlinkPrimitive(LinkPrimitive):
    """Directory links backed by symbolic links."""

    def exists(self, path: Path) -> bool:
        return os.path.islink(path)

    def delete(self, path: Path) -> None:
        if sys.platform == "win32" and os.path.isdir(path):
            # Directory symlinks on Windows are removed like directories
            os.rmdir(path)
        else:
            os.unlink(path)

    def _make_link(self, link: Path, target: Path) -> None:
        os.symlink(target, link, target_is_directory=True)


class JunctionPrimitive(LinkPrimitive):
    """Directory links backed by NTFS junction points."""

    def __init__(self) -> None:
        if sys.platform != "win32":
            raise OSError("Junction points are only available on Windows")

    def exists(self, path: Path) -> bool:
        return os.path.isjunction(path) or os.path.islink(path)

    def delete(self, path: Path) -> None:
        os.rmdir(path)

    def _make_link(self, link: Path, target: Path) -> None:
        # Relative targets are relative to the directory holding the link
        destination = os.path.join(os.path.dirname(link), target)
        completed = subprocess.run(
            ["cmd", "/c", "mklink", "/J", str(link), os.path.abspath(destination)],
            capture_output=True,
            text=True,
        )
        if completed.returncode != 0:
            message = (completed.stderr or completed.stdout).strip() or "mklink failed"
            raise OSError(f"Cannot create junction {link}: {message}")


def default_link_primitive() -> LinkPrimitive:
    """Return the link implementation for the running platform.

    Windows gets junctions, which need no extra privilege. Every other
    platform gets symbolic links.
    """
    if sys.platform == "win32":
        return JunctionPrimitive()
    return SymlinkPrimitive()
