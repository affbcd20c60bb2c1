"""Typer application and CLI entry point for mobkit.

This module wires together the top-level Typer application: the root
callback with the global flags, one command group per platform plugin
(``android``, ``ios``), and the ``config`` group.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
A :class:`~mobkit.exceptions.MobkitError` that escapes a command exits with
the error's code; any other exception is written to a crash log under the
data directory.

See Also:
    :mod:`mobkit.plugins.cli`: The platform command groups.
    :mod:`mobkit.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from mobkit import __version__
from mobkit.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from mobkit.runner import CommandRunner, RecordingCommandRunner, SubprocessCommandRunner


app = typer.Typer(
    name="mobkit",
    help="Build, run and debug Rust-powered Android and iOS apps.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Platforms
# ------------------------------------------------------------------ #

from mobkit.commands.config import config_app  # noqa: E402
from mobkit.plugins import PLATFORMS  # noqa: E402
from mobkit.plugins.cli import make_platform_app  # noqa: E402

for _plugin in PLATFORMS.values():
    app.add_typer(make_platform_app(_plugin), name=_plugin.name, help=_plugin.description)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"mobkit {__version__}")
        raise typer.Exit()


def create_runner(dry_run: bool) -> CommandRunner:
    """Return the runner every toolchain command of this invocation goes through."""
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _setup_logging(verbose: bool, console: Any) -> None:
    """Route ``mobkit.*`` log records to stderr through Rich."""
    logger = logging.getLogger("mobkit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=console, show_path=False, show_time=False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


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
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Path to mobkit.json or its directory."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and stream toolchain output."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print toolchain commands instead of running them."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Disable interactive prompts."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~mobkit.output.OutputManager` and the
    ``mobkit`` logger from CLI flags, creates the command runner, and
    stores shared options in the Typer context so that sub-commands can
    read them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        project: Project file override (highest precedence).
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug logging and loud toolchain output.
        dry_run: Record toolchain commands and print them on exit.
        no_input: Disable all interactive prompts.
    """
    from mobkit.config import load_global_config
    from mobkit.exceptions import ConfigError
    from mobkit.output import OutputFormat, OutputManager, info, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_global_config().output.format)
        except (ConfigError, ValueError):
            # Reported by the command that loads the config for real.
            fmt = OutputFormat.AUTO

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    _setup_logging(verbose, output.stderr_console)

    runner = create_runner(dry_run)
    if isinstance(runner, RecordingCommandRunner):

        def _print_recorded() -> None:
            for line in runner.iter_formatted():
                info(line)

        ctx.call_on_close(_print_recorded)

    ctx.ensure_object(dict)
    ctx.obj["project"] = project
    ctx.obj["runner"] = runner
    ctx.obj["no_input"] = no_input
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from mobkit.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``mobkit`` console script.

    Unhandled :class:`~mobkit.exceptions.MobkitError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from mobkit.exceptions import MobkitError, report
        from mobkit.output import error

        if isinstance(exc, MobkitError):
            error(report(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
