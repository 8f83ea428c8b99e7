"""
treesync - CLI Interface.

A command-line interface for moving, copying, deleting and linking directory
trees with deterministic conflict handling.

Usage Examples:
    # Create a directory (and its parents)
    treesync create /data/archive/2024

    # Move a tree, merging into an existing target and skipping files already there
    treesync move /data/inbox /data/archive --strategy merge-skip

    # Move a tree, keeping both versions of colliding files as "name (2).ext"
    treesync move /data/inbox /data/archive --keep-both

    # Copy a tree, replacing whatever was at the target
    treesync copy /data/site /backup/site --strategy replace --log-file copy.log

    # Delete a tree (links are removed without touching what they point at)
    treesync delete /data/old --verbose

    # Point a directory link at a release
    treesync link /srv/app/current /srv/app/releases/42
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from treesync.exceptions import TreeSyncError
from treesync.models import FileMergeStrategy, OperationLog, OverwriteStrategy
from treesync.operations import TreeOperations, numbered_rename_resolver
from treesync.operations.tree_operations import ResolverArgument
from treesync.orchestration import OperationLogger
from treesync.ui import ResultView

__version__ = "1.0.0"

# Initialize Typer app
app = typer.Typer(
    name="treesync",
    help="treesync - Move, copy, delete and link directory trees with conflict handling.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for consistent output formatting
console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"treesync v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route the package loggers to stderr through Rich.

    Args:
        verbose: Emit DEBUG records when True, only errors otherwise.
    """
    package_logger = logging.getLogger("treesync")
    package_logger.setLevel(logging.DEBUG if verbose else logging.ERROR)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def build_resolver(keep_both: bool, ignore_busy: bool) -> Optional[ResolverArgument]:
    """
    Turn the conflict flags into a per-file resolver.

    Raises:
        typer.BadParameter: If both flags are given.
    """
    if keep_both and ignore_busy:
        raise typer.BadParameter("--keep-both and --ignore-busy cannot be combined")
    if keep_both:
        return numbered_rename_resolver
    if ignore_busy:
        return FileMergeStrategy.KEEP_SOURCE | FileMergeStrategy.IGNORE_IF_BUSY
    return None


def run_operation(
    name: str,
    paths: List[Path],
    action: Callable[[], OperationLog],
    log_file: Optional[Path],
    verbose: bool,
) -> None:
    """
    Run one tree operation, display its result and write it to the log file.

    Raises:
        typer.Exit: With code 1 on a recorded failure or a precondition error,
            130 when interrupted.
    """
    configure_logging(verbose)
    view = ResultView(console=console)

    log_writer: Optional[OperationLogger] = None
    if log_file:
        try:
            log_writer = OperationLogger(log_file)
            log_writer.open()
            log_writer.log_header()
        except OSError as e:
            view.display_error(f"Failed to create log file: {e}")
            raise typer.Exit(1)

    try:
        result = action()
        view.display_result(name, result, verbose=verbose)

        if log_writer:
            log_writer.log_operation(name, paths, result)
            log_writer.log_summary()
            console.print(f"[dim]Log written to: {log_writer.get_log_path()}[/dim]")

        if result.failed:
            raise typer.Exit(1)

    except KeyboardInterrupt:
        console.print(f"\n[yellow]{name.capitalize()} interrupted by user.[/yellow]")
        console.print("[dim]Changes made so far have not been undone.[/dim]")
        raise typer.Exit(130)

    except TreeSyncError as e:
        view.display_error(str(e))
        if log_writer:
            aborted = OperationLog()
            aborted.fail(e)
            log_writer.log_operation(name, paths, aborted)
            log_writer.log_summary()
        raise typer.Exit(1)

    finally:
        if log_writer:
            log_writer.close()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """treesync - Move, copy, delete and link directory trees with conflict handling."""
    pass


LOG_FILE_OPTION = typer.Option(None, "--log-file", "-l", help="Path for log file output.")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-V", help="Show the full operation trace.")
STRATEGY_OPTION = typer.Option(
    OverwriteStrategy.REPLACE,
    "--strategy",
    "-s",
    help="What to do when the target directory already exists.",
)
KEEP_BOTH_OPTION = typer.Option(
    False,
    "--keep-both",
    help="Keep colliding files side by side, renaming incoming ones to 'name (2).ext'.",
)
IGNORE_BUSY_OPTION = typer.Option(
    False,
    "--ignore-busy",
    help="Overwrite colliding files, leaving any that are locked as they are.",
)


@app.command()
def create(
    path: Path = typer.Argument(..., help="Directory to create."),
    log_file: Optional[Path] = LOG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a directory and any missing parents."""
    ops = TreeOperations()
    run_operation("create", [path], lambda: ops.create(path), log_file, verbose)


@app.command()
def move(
    source: Path = typer.Argument(..., help="Directory to move."),
    target: Path = typer.Argument(..., help="Destination directory."),
    strategy: OverwriteStrategy = STRATEGY_OPTION,
    keep_both: bool = KEEP_BOTH_OPTION,
    ignore_busy: bool = IGNORE_BUSY_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """
    Move a directory tree.

    With --keep-both or --ignore-busy an existing target is merged into and
    each colliding file is resolved individually; --strategy is then ignored.
    """
    resolver = build_resolver(keep_both, ignore_busy)
    ops = TreeOperations()
    run_operation(
        "move",
        [source, target],
        lambda: ops.move(source, target, strategy, resolver=resolver),
        log_file,
        verbose,
    )


@app.command()
def copy(
    source: Path = typer.Argument(..., help="Directory to copy."),
    target: Path = typer.Argument(..., help="Destination directory."),
    strategy: OverwriteStrategy = STRATEGY_OPTION,
    keep_both: bool = KEEP_BOTH_OPTION,
    ignore_busy: bool = IGNORE_BUSY_OPTION,
    log_file: Optional[Path] = LOG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Copy a directory tree. Conflict options behave as for move."""
    resolver = build_resolver(keep_both, ignore_busy)
    ops = TreeOperations()
    run_operation(
        "copy",
        [source, target],
        lambda: ops.copy(source, target, strategy, resolver=resolver),
        log_file,
        verbose,
    )


@app.command()
def delete(
    path: Path = typer.Argument(..., help="Directory to delete."),
    log_file: Optional[Path] = LOG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete a directory tree. A directory link is removed as a link only."""
    ops = TreeOperations()
    run_operation("delete", [path], lambda: ops.delete(path), log_file, verbose)


@app.command()
def link(
    link_path: Path = typer.Argument(..., help="Where to create the link."),
    target_path: Path = typer.Argument(..., help="Directory the link points at."),
    overwrite: bool = typer.Option(
        True,
        "--overwrite/--no-overwrite",
        help="Replace whatever already occupies the link path.",
    ),
    log_file: Optional[Path] = LOG_FILE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a directory link."""
    ops = TreeOperations()
    run_operation(
        "link",
        [link_path, target_path],
        lambda: ops.link(link_path, target_path, overwrite),
        log_file,
        verbose,
    )


if __name__ == "__main__":
    app()
