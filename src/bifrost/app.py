"""Typer application and CLI entry point for bifrost.

The ``bifrost`` command exposes the caching repository from a shell:

* ``bifrost get PATH`` -- read an endpoint with write-through caching and
  offline fallback.
* ``bifrost cache ...`` -- inspect and invalidate the on-disk cache.
* ``bifrost profile ...`` / ``bifrost config ...`` -- manage settings.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. :class:`~bifrost.exceptions.BifrostError` exits with the
error's ``exit_code``; anything else is written to a crash log.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from bifrost import __version__
from bifrost.commands.cache import cache_app
from bifrost.commands.config import config_app
from bifrost.commands.get import get_command
from bifrost.commands.profile import profile_app
from bifrost.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="bifrost",
    help="Read REST APIs through a TTL cache with offline fallback.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("get")(get_command)
app.add_typer(cache_app, name="cache", help="Inspect and clear cached responses.")
app.add_typer(profile_app, name="profile", help="Manage API profiles.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bifrost {__version__}")
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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and log records."
    ),
) -> None:
    """Set up output and logging, then stash shared options for sub-commands.

    Installs the global :class:`~bifrost.output.OutputManager`, routes
    :mod:`logging` records to stderr through Rich (everything with
    ``--verbose``, errors only otherwise), and stores shared options in
    ``ctx.obj``.
    """
    from bifrost.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    _configure_logging(output.stderr_console, verbose)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["verbose"] = verbose


def _configure_logging(console: Any, verbose: bool) -> None:
    """Send log records to *console*; DEBUG and up when verbose, ERROR otherwise."""
    handler = RichHandler(console=console, show_path=False, show_time=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )
    # httpx/httpcore are chatty at DEBUG; keep them at INFO even when verbose.
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)


def _exit_on_interrupt(*_: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(130)


def _dump_traceback() -> Path:
    """Save the active traceback to ``<cache_dir>/logs`` for bug reports."""
    from bifrost.config import get_cache_dir

    crash_dir = get_cache_dir() / "logs"
    crash_dir.mkdir(parents=True, exist_ok=True)
    path = crash_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point.

    Known failures (:class:`~bifrost.exceptions.BifrostError`) print one
    line and exit with their own code. Anything else leaves a crash log.
    """
    from bifrost.exceptions import BifrostError
    from bifrost.output import error

    signal.signal(signal.SIGINT, _exit_on_interrupt)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        _exit_on_interrupt()
    except BifrostError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_dump_traceback()}")
        sys.exit(EXIT_GENERIC_FAILURE)
