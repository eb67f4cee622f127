"""
CLI utility helpers for operator-facing output.

Every line infractl prints for the operator goes through :class:`Output`, so
messages share one prefix (``[infractl] INFO:``, ``WARNING:``, ``ERROR:``)
and tests can capture them by handing in consoles that write to a buffer.
"""

from __future__ import annotations

from typing import Any

try:
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table
except ImportError as e:  # pragma: no cover
    raise SystemExit("Missing CLI deps.  Install with:  pip install rich typer") from e

PREFIX = "infractl"

console = Console()
err_console = Console(stderr=True)


class Output:
    """Prefixed operator messages on a stdout/stderr console pair."""

    def __init__(self, out: Console | None = None, err: Console | None = None) -> None:
        self.out = out or console
        self.err = err or err_console

    def info(self, message: str) -> None:
        self.out.print(f"[bold]\\[{PREFIX}][/bold] INFO: {escape(message)}", highlight=False)

    def warn(self, message: str) -> None:
        self.err.print(
            f"[bold yellow]\\[{PREFIX}] WARNING:[/bold yellow] {escape(message)}", highlight=False
        )

    def error(self, message: str) -> None:
        self.err.print(f"[bold red]\\[{PREFIX}] ERROR:[/bold red] {escape(message)}", highlight=False)

    def line(self, message: str = "") -> None:
        self.out.print(escape(message), highlight=False)

    def table(self, columns: list[str], rows: list[list[Any]], *, title: str = "") -> None:
        """Render rows as a Rich table."""
        table = Table(title=title or None, show_lines=False, pad_edge=False)
        for col in columns:
            table.add_column(col, overflow="fold")
        for row in rows:
            table.add_row(*(str(v) for v in row))
        self.out.print(table)
