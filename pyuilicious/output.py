"""Console output formatting for the CLI."""

import json
from typing import Any

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Writes user-facing messages through rich consoles.

    Informational output goes to stdout, errors go to stderr in red.
    ``quiet`` suppresses everything except errors; ``json_output`` replaces
    human-readable summaries with JSON documents.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if not self.quiet and not self.json_output:
            self.console.print(message, highlight=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet and not self.json_output:
            self.console.print(f"INFO : {message}", highlight=False, markup=False)

    def success(self, message: str) -> None:
        """Print a success message in green."""
        if not self.quiet and not self.json_output:
            self.console.print(message, style="green", highlight=False, markup=False)

    def warning(self, message: str) -> None:
        """Print a warning in yellow."""
        if not self.quiet:
            self.err_console.print(
                message, style="yellow", highlight=False, markup=False
            )

    def error(self, message: str) -> None:
        """Print an error in red on stderr. Never suppressed."""
        self.err_console.print(
            f"ERROR: {message}", style="red", highlight=False, markup=False
        )

    def output_json(self, data: Any) -> None:
        """Print data as JSON on stdout."""
        self.console.print_json(json.dumps(data, default=str))

    def output_table(
        self, title: str, columns: list[str], rows: list[list[str]]
    ) -> None:
        """Render a table of rows."""
        if self.quiet:
            return
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Render a two-column key/value summary."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        self.output_table(title, ["Field", "Value"], [[k, v] for k, v in items])
