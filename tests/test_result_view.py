"""Tests for the ResultView class."""

import io

import pytest
from rich.console import Console

from treesync.models import OperationLog
from treesync.ui import ResultView


@pytest.fixture
def view_with_output() -> tuple[ResultView, io.StringIO]:
    """Create a ResultView with captured output."""
    output = io.StringIO()
    console = Console(file=output, force_terminal=False, width=120)
    return ResultView(console=console), output


class TestResultView:
    """Tests for rendering operation results."""

    def test_success_without_trace(self, view_with_output) -> None:
        view, output = view_with_output
        result = OperationLog()
        result.log("Delete directory '/tmp/x'.")

        view.display_result("delete", result)

        text = output.getvalue()
        assert "Delete completed" in text
        assert "Trace" not in text

    def test_success_verbose_shows_trace(self, view_with_output) -> None:
        view, output = view_with_output
        result = OperationLog()
        result.log("Delete directory '/tmp/x'.")

        view.display_result("delete", result, verbose=True)

        text = output.getvalue()
        assert "Trace" in text
        assert "Delete directory '/tmp/x'." in text

    def test_failure_always_shows_trace(self, view_with_output) -> None:
        view, output = view_with_output
        result = OperationLog()
        result.log("Move directory '/a' to '/b'.")
        result.fail(FileExistsError("Target directory already exists"))

        view.display_result("move", result)

        text = output.getvalue()
        assert "Move failed" in text
        assert "Target directory already exists" in text
        assert "Trace" in text

    def test_markup_in_messages_is_not_interpreted(self, view_with_output) -> None:
        view, output = view_with_output
        result = OperationLog()
        result.log("Skipped '[draft] notes.txt', the target file already exists.")

        view.display_result("copy", result, verbose=True)

        assert "[draft] notes.txt" in output.getvalue()

    def test_display_error(self, view_with_output) -> None:
        view, output = view_with_output

        view.display_error("target: path must not be empty")

        assert "Error: target: path must not be empty" in output.getvalue()
