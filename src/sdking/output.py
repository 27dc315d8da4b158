"""Terminal reporting for the ``sdking`` command.

Two streams, two jobs:

* **stdout** carries data only: the artifact table printed by ``--dry-run``,
  so it can be piped into ``jq`` or ``cut``.
* **stderr** carries the run report: progress steps, the success summary,
  debug lines and errors.

Colour comes from Rich when stdout is a terminal and is switched off by
``NO_COLOR``, ``TERM=dumb`` or ``--no-color``. The CLI installs one
:class:`OutputManager` per invocation with :func:`set_output`; library
modules report through the module-level :func:`debug`, :func:`progress`,
:func:`success` and :func:`error` without holding a reference to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    """How the ``--dry-run`` table is written.

    ``AUTO`` picks ``RICH`` for an interactive, colour-capable terminal and
    ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Route the generator's reports to stderr and its data to stdout.

    Args:
        format: Table format; ``AUTO`` is resolved once, here.
        no_color: Disable Rich markup on both streams.
        quiet: Drop progress and success lines. Errors are always shown.
        verbose: Show debug lines, and progress even when piped.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write *rows* to stdout: a Rich table, a JSON array of objects, or TSV."""
        if self._format is OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            print(json.dumps(records, indent=2, ensure_ascii=False), file=sys.stdout, flush=True)
        elif self._format is OutputFormat.PLAIN:
            lines = ["\t".join(headers), *("\t".join(row) for row in rows)]
            print("\n".join(lines), file=sys.stdout, flush=True)
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Report (stderr)
    # ------------------------------------------------------------------ #

    def progress(self, message: str) -> None:
        """A pipeline step; shown on a terminal or with ``--verbose``."""
        if not self._quiet and (_is_tty() or self._verbose):
            self._report(message, style="dim")

    def success(self, message: str) -> None:
        if not self._quiet:
            self._report(message, style="green")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._report(f"[debug] {message}", style="dim")

    def error(self, message: str) -> None:
        """Never suppressed."""
        if self._no_color:
            self._report(f"Error: {message}")
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}", highlight=False)

    def _report(self, message: str, style: Optional[str] = None) -> None:
        if self._no_color or style is None:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(message, style=style, markup=False, highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb`` (clig.dev)."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next report creates a fresh one."""
    global _output
    _output = None


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def progress(message: str) -> None:
    get_output().progress(message)


def success(message: str) -> None:
    get_output().success(message)


def debug(message: str) -> None:
    get_output().debug(message)


def error(message: str) -> None:
    get_output().error(message)
