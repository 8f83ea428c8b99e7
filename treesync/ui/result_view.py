"""Rich-based rendering of tree operation results.

Example:
    from treesync.ui import ResultView

    view = ResultView()
    view.display_result("move", result, verbose=True)
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from treesync.models import OperationLog


class ResultView:
    """Displays an OperationLog as a status panel and an optional trace table.

    Args:
        console: Optional Rich Console instance for output. Pass a Console
            writing to a StringIO to capture output in tests.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def display_result(self, operation: str, result: OperationLog, verbose: bool = False) -> None:
        """Show the outcome of ``operation``.

        The trace is always shown for a failed operation, and for a
        successful one only when ``verbose`` is set.
        """
        if result.succeeded:
            status = f"[green]{operation.capitalize()} completed[/green]"
            border_style = "green"
        else:
            status = f"[red]{operation.capitalize()} failed:[/red] {escape(str(result.error))}"
            border_style = "red"

        self.console.print(Panel(status, border_style=border_style))

        if verbose or result.failed:
            self._display_trace(result)

    def display_error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def _display_trace(self, result: OperationLog) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Trace")

        for number, message in enumerate(result.messages, start=1):
            style = "red" if message.startswith("Failed:") else None
            table.add_row(str(number), escape(message), style=style)

        self.console.print(table)
