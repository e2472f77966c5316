"""Typer application and CLI entry point for loginflow.

This module wires the top-level Typer application and registers the
built-in commands. :func:`main` is the console-script entry point declared
in ``pyproject.toml``: it installs a SIGINT handler, invokes the app, maps
:class:`~loginflow.exceptions.LoginflowError` to its exit code, and writes
a crash log under the data directory for anything unexpected.

See Also:
    :mod:`loginflow.config`: Settings resolution.
    :mod:`loginflow.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from loginflow import __version__
from loginflow.exceptions import LoginflowError
from loginflow.exit_codes import EXIT_GENERIC_FAILURE
from loginflow.output import error

app = typer.Typer(
    name="loginflow",
    help="Resolve login modes and bootstrap sessions against an API server.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Eager ``--version`` handler."""
    if value:
        typer.echo(f"loginflow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    api_base_url: Optional[str] = typer.Option(
        None, "--api", help="API root URL (overrides settings)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print results as plain text."),
    no_color: bool = typer.Option(False, "--no-color", help="No colour or markup."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug messages and library logs."),
) -> None:
    """Set up output and logging, and share global options via ``ctx.obj``."""
    from loginflow.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    output.configure_logging()
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["api_base_url"] = api_base_url
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from loginflow.commands.config import config_app
    from loginflow.commands.session import (
        login_command,
        logout_command,
        mode_command,
        redirect_command,
        status_command,
        users_command,
    )

    app.command("mode")(mode_command)
    app.command("status")(status_command)
    app.command("login")(login_command)
    app.command("users")(users_command)
    app.command("redirect")(redirect_command)
    app.command("logout")(logout_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _install_sigint_handler() -> None:
    def _on_sigint(signum: int, frame: Any) -> None:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _on_sigint)


def _save_traceback() -> Path:
    """Write the active traceback under ``<data dir>/logs`` and return the file."""
    from loginflow.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / f"loginflow-{datetime.now():%Y%m%dT%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point.

    Library errors exit with their ``exit_code``; anything unexpected is
    written to a log file and exits with 1.
    """
    _install_sigint_handler()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)
    except LoginflowError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error, traceback saved to {_save_traceback()}")
        sys.exit(EXIT_GENERIC_FAILURE)
