"""Terminal output for the loginflow CLI.

Results (modes, URLs, user lists) are written to stdout so they can be
piped; everything else -- progress, warnings, errors, server notices --
goes to stderr. Rich styling is used only when stdout is a terminal and
colour has not been switched off by ``--no-color``, ``NO_COLOR`` or
``TERM=dumb``.

:func:`~loginflow.app.main_callback` installs one :class:`OutputManager`
per invocation with :func:`set_output`; commands call the module-level
shortcuts (:func:`info`, :func:`error`, ...). :class:`OutputNotifier`
bridges core :class:`~loginflow.models.Notification` objects to the same
stderr stream.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from loginflow.models import Notification, NotificationKind


class OutputFormat(str, Enum):
    """How stdout results are rendered. ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Renders results on stdout and diagnostics on stderr.

    Args:
        format: Result format; ``AUTO`` is resolved at construction.
        no_color: Never emit colour or markup.
        quiet: Drop informational and success messages. Warnings and
            errors are always shown.
        verbose: Show debug messages and DEBUG-level library logs.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            rich_ok = sys.stdout.isatty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout, no_color=self._no_color, force_terminal=format is OutputFormat.RICH
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    def configure_logging(self) -> None:
        """Send ``loginflow.*`` log records to stderr at DEBUG (verbose) or WARNING."""
        handler: logging.Handler
        if self._no_color:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        else:
            handler = RichHandler(console=self._stderr, show_path=False)
        package_logger = logging.getLogger("loginflow")
        package_logger.handlers[:] = [handler]
        package_logger.setLevel(logging.DEBUG if self._verbose else logging.WARNING)
        package_logger.propagate = False

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a scalar, mapping or list in the active format."""
        if self._format is OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format is OutputFormat.RICH:
            if isinstance(data, (dict, list)):
                text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
                self._stdout.print(Syntax(text, "json", word_wrap=True))
            else:
                self._stdout.print(str(data))
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a Rich table, a JSON array of objects, or TSV."""
        if self._format is OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format is OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._emit(message, message, optional=True)

    def success(self, message: str) -> None:
        self._emit(message, f"[green]{message}[/green]", optional=True)

    def warning(self, message: str) -> None:
        self._emit(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._emit(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Show a next step, e.g. what to do once the server is back."""
        self._emit(f"→ {message}", f"[dim]→ {message}[/dim]", optional=True)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    def _emit(self, plain: str, styled: str, optional: bool = False) -> None:
        if optional and self._quiet:
            return
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(styled)


class OutputNotifier:
    """Shows core notifications on stderr.

    A server-unavailable notice is an error plus the suggested action;
    anything else, such as the login notice, is a warning.
    """

    def __init__(self, output: Optional[OutputManager] = None) -> None:
        self._output = output

    def notify(self, notification: Notification) -> None:
        output = self._output or get_output()
        if notification.kind is NotificationKind.SERVER_UNAVAILABLE:
            output.error(f"{notification.title}: {notification.body}")
            if notification.action:
                output.suggest(f"{notification.action} once the server is reachable again.")
        else:
            output.warning(notification.body)


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
