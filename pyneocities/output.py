"""Output formatting for the command line interface."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Formats user-facing output with rich.

    Error messages are always shown; everything else is suppressed in quiet
    mode. In JSON mode human-readable chatter goes to stderr so stdout stays
    parseable.
    """

    def __init__(
        self, json_output: bool = False, quiet: bool = False, no_color: bool = False
    ):
        """Initialize output formatter.

        Args:
            json_output: Whether to emit machine-readable JSON
            quiet: Suppress non-essential output
            no_color: Disable colored output
        """
        self.json_output = json_output
        self.quiet = quiet
        self.no_color = no_color
        self.console = Console(
            highlight=False, no_color=no_color, stderr=json_output, soft_wrap=True
        )
        self.err_console = Console(highlight=False, no_color=no_color, stderr=True)

    def print(self, message: str = "", end: str = "\n") -> None:
        """Print a plain message."""
        if self.quiet:
            return
        self.console.print(message, end=end, markup=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self.quiet:
            return
        self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        if self.quiet:
            return
        self.console.print(f"[bold green]{escape(message)}[/bold green]")

    def warning(self, message: str) -> None:
        """Print a warning in yellow."""
        if self.quiet:
            return
        self.console.print(f"[bold yellow]{escape(message)}[/bold yellow]")

    def error(self, message: str) -> None:
        """Print an error in red (shown even in quiet mode)."""
        self.err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def file_status(
        self, message: str, label: str, style: str, detail: str = ""
    ) -> None:
        """Print a per-file line such as "Uploading a.txt ... SUCCESS"."""
        if self.quiet:
            return
        text = f"[bold]{escape(message)} ...[/bold] "
        text += f"[bold {style}]{label}[/bold {style}]"
        if detail:
            text += f" {escape(detail)}"
        self.console.print(text)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column key/value summary table."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        if self.quiet:
            return
        table = Table(title=title, show_header=False, box=None)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in items:
            table.add_row(key, str(value))
        self.console.print(table)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        styles: Optional[list[Optional[str]]] = None,
    ) -> None:
        """Print rows as a table.

        Args:
            headers: Column headers
            rows: Table rows
            styles: Optional per-row style
        """
        table = Table(*headers, header_style="bold")
        for index, row in enumerate(rows):
            style = styles[index] if styles else None
            table.add_row(*row, style=style)
        self.console.print(table)

    def output_json(self, data: Any) -> None:
        """Write data as JSON to stdout."""
        print(json.dumps(data, indent=2, default=str))

    @contextmanager
    def status(self, message: str) -> Iterator[None]:
        """Show a spinner while the wrapped block runs."""
        if self.json_output or self.quiet:
            yield
            return
        with self.console.status(message):
            yield
