"""OperationLogger for writing tree operation results to a log file.

This module provides the OperationLogger class that writes a sectioned log
file: a header, one block per tree operation with its full trace and outcome,
and a closing summary.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from treesync.models import OperationLog


class OperationLogger:
    """Logger for tree operations with structured output format.

    Usage:
        with OperationLogger(Path("sync.log")) as log_writer:
            log_writer.log_header()
            result = ops.move(source, target)
            log_writer.log_operation("move", [source, target], result)
            log_writer.log_summary()

    Attributes:
        SEPARATOR: The 65-character separator line used between sections.
    """

    SEPARATOR = "=" * 65

    def __init__(self, log_file_path: Optional[Path] = None) -> None:
        """Initialize the OperationLogger.

        Args:
            log_file_path: Optional path for the log file. If not provided,
                generates a timestamped filename in the current directory.

        Raises:
            OSError: If the log file path is not writable.
        """
        self._start_timestamp = datetime.now()
        self._file_handle: Optional[TextIO] = None
        self._succeeded = 0
        self._failed: List[str] = []

        if log_file_path is None:
            timestamp_str = self._start_timestamp.strftime("%Y-%m-%d_%H-%M-%S")
            self._log_file_path = Path.cwd() / f"treesync_{timestamp_str}.log"
        else:
            self._log_file_path = Path(log_file_path)

        self._validate_path()

    def _validate_path(self) -> None:
        """Validate that the log file's parent directory exists and is a directory.

        Raises:
            OSError: If the parent directory doesn't exist or is not a directory.
        """
        parent = self._log_file_path.parent
        if not parent.exists():
            raise OSError(f"Parent directory does not exist: {parent}")
        if not parent.is_dir():
            raise OSError(f"Parent path is not a directory: {parent}")

    def __enter__(self) -> "OperationLogger":
        """Open the log file for writing.

        Raises:
            OSError: If the file cannot be opened for writing.
        """
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        if self._file_handle is not None:
            return
        try:
            self._file_handle = open(self._log_file_path, "w", encoding="utf-8")
        except OSError as e:
            raise OSError(f"Cannot open log file for writing: {e}") from e

    def close(self) -> None:
        """Close the log file. Safe to call more than once."""
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        return self._log_file_path

    def log_header(self) -> None:
        """Write the title and start timestamp."""
        self._write_separator()
        self._write_line("treesync - Operation Log")
        self._write_separator()
        self._write_line(f"Timestamp: {self._format_timestamp(self._start_timestamp)}")
        self._write_line("")

    def log_operation(self, name: str, paths: List[Path], result: OperationLog) -> None:
        """Write one operation block with its trace and outcome.

        Args:
            name: Operation name, e.g. "move".
            paths: The paths the operation was called with.
            result: The OperationLog returned by the operation.
        """
        described = " -> ".join(str(path) for path in paths)
        self._write_line(f"[{self._format_timestamp(datetime.now())}] {name.upper()} {described}")
        for message in result.messages:
            self._write_line(message, indent=2)

        if result.succeeded:
            self._succeeded += 1
            self._write_line("Result: SUCCESS", indent=2)
        else:
            self._failed.append(f"{name} {described}: {result.error}")
            self._write_line(f"Result: FAILED - {result.error}", indent=2)
        self._write_line("")

    def log_summary(self) -> None:
        """Write the summary section with totals and failures."""
        duration = (datetime.now() - self._start_timestamp).total_seconds()

        self._write_separator()
        self._write_line("SUMMARY")
        self._write_separator()
        self._write_line(f"Total operations: {self._succeeded + len(self._failed)}")
        self._write_line(f"Succeeded: {self._succeeded}")
        self._write_line(f"Failed: {len(self._failed)}")
        if self._failed:
            self._write_line("Failures:")
            for failure in self._failed:
                self._write_line(f"- {failure}", indent=2)
        self._write_line(f"Duration: {self._format_duration(duration)}")
        self._write_line("")
        self._write_line(f"Log file: {self._log_file_path}")
        self._write_separator()

    def _format_duration(self, seconds: float) -> str:
        """Format duration as "45s", "5m 23s" or "1h 5m 30s"."""
        total_seconds = int(seconds)

        if total_seconds < 60:
            return f"{total_seconds}s"

        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        secs = total_seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        return f"{minutes}m {secs}s"

    def _format_timestamp(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def _write_separator(self) -> None:
        self._write_line(self.SEPARATOR)

    def _write_line(self, text: str, indent: int = 0) -> None:
        """Write a line to the log file with optional indentation."""
        if self._file_handle is None:
            print(
                f"Warning: Attempted to write to closed log file: {text}",
                file=sys.stderr,
            )
            return

        try:
            self._file_handle.write(" " * indent + text + "\n")
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)
