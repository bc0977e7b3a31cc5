"""Terminal output for the ``keelson`` command line.

Response bodies and tables are data and go to stdout, so that
``keelson request site blog/list > page.html`` captures the page alone.
Status lines, notes and errors are diagnostics and go to stderr.

Tables are rendered with Rich on an interactive terminal, as tab-separated
lines when stdout is redirected or colour is off (``NO_COLOR``,
``TERM=dumb``, ``--no-color``), and as a JSON array with ``--json``.

A single :class:`OutputManager` is installed by
:func:`~keelson.app.main_callback`; command code reaches it through
:func:`get_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    """Table formats. ``AUTO`` picks ``RICH`` or ``PLAIN`` from the terminal."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Whether ``NO_COLOR`` is set (to anything) or ``TERM`` is ``dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def _status_style(code: int) -> str:
    if code >= 500:
        return "bold red"
    if code >= 400:
        return "yellow"
    return "green"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Table format.
        no_color: Disable colour and Rich markup.
        quiet: Drop notes and status lines.
        verbose: Show trace messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or _should_disable_color()
        self.quiet = quiet
        self.verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self.no_color else OutputFormat.PLAIN
        self.format = format
        self._tables = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._diagnostics = Console(file=sys.stderr, no_color=self.no_color)

    # --- stdout ---

    def write_body(self, body: str) -> None:
        """Write a response body, ending it with a newline if it has none."""
        if body and not body.endswith("\n"):
            body += "\n"
        sys.stdout.write(body)
        sys.stdout.flush()

    def write_rows(
        self, columns: Sequence[str], rows: Sequence[Sequence[str]], title: str = ""
    ) -> None:
        """Write *rows* as a table in the configured format."""
        if self.format is OutputFormat.JSON:
            records = [dict(zip(columns, row)) for row in rows]
            self.write_body(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self.format is OutputFormat.PLAIN:
            self.write_body("\n".join("\t".join(line) for line in [columns, *rows]))
            return

        table = Table(*columns, title=title or None, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._tables.print(table)

    # --- stderr ---

    def status(self, status_line: str, code: int) -> None:
        """Report the status line of a response, coloured by status class."""
        if not self.quiet:
            self._say(status_line, f"[{_status_style(code)}]{status_line}[/]")

    def note(self, message: str) -> None:
        if not self.quiet:
            self._say(message, message)

    def fail(self, message: str) -> None:
        """Report an error. Never silenced by ``quiet``."""
        self._say(f"Error: {message}", f"[bold red]Error:[/] {message}")

    def trace(self, message: str) -> None:
        if self.verbose:
            self._say(f"[debug] {message}", f"[dim]\\[debug] {message}[/]")

    def _say(self, plain: str, markup: str) -> None:
        if self.no_color:
            sys.stderr.write(plain + "\n")
            sys.stderr.flush()
        else:
            self._diagnostics.print(markup)


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, installing a default one first if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None
