"""Typer command groups for the platform plugins.

:func:`make_platform_app` turns a :class:`~mobkit.plugins.base.PlatformPlugin`
into a ``mobkit <platform>`` command group. Every command follows the same
path: resolve configuration, build a :class:`~mobkit.executor.CommandRequest`,
call :func:`~mobkit.executor.execute`, and render the outcome. A
:class:`~mobkit.exceptions.MobkitError` is printed as one line on stderr and
becomes the process exit code.

Usage::

    mobkit android build aarch64 armv7 --release
    mobkit ios check all
    mobkit ios compile-lib --arch arm64
    mobkit android list --json
"""

from __future__ import annotations

from typing import Optional

import typer

from mobkit.config import resolve_config
from mobkit.exceptions import MobkitError, report
from mobkit.executor import PROJECTLESS_COMMANDS, CommandRequest, Outcome, execute
from mobkit.models import NoiseLevel
from mobkit.output import (
    OutputFormat,
    error,
    get_output,
    info,
    print_data,
    print_json,
    print_table,
    success,
)
from mobkit.plugins.base import PlatformPlugin
from mobkit.runner import SubprocessCommandRunner

DEVICE_HEADERS = ["Name", "ID", "Model", "Target"]


def _invoke(
    ctx: typer.Context,
    plugin: PlatformPlugin,
    command: str,
    *,
    targets: Optional[list[str]] = None,
    release: Optional[bool] = None,
    arch: Optional[str] = None,
    macos: bool = False,
) -> Outcome:
    obj = ctx.obj or {}
    try:
        config, project = resolve_config(
            obj.get("project"),
            release,
            need_project=command not in PROJECTLESS_COMMANDS,
        )
        request = CommandRequest(
            command=command,
            targets=tuple(targets or ()),
            profile=config.default_profile,
            noise_level=NoiseLevel.LOUD if obj.get("verbose") else NoiseLevel.POLITE,
            interactive=config.interactive and not obj.get("no_input", False),
            arch=arch,
            macos=macos,
        )
        return execute(
            plugin,
            request,
            runner=obj.get("runner") or SubprocessCommandRunner(),
            project=project,
        )
    except MobkitError as exc:
        error(report(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _names(outcome: Outcome) -> str:
    return ", ".join(target.name for target in outcome.targets)


def _render_devices(plugin: PlatformPlugin, outcome: Outcome) -> None:
    if outcome.devices:
        print_table(
            DEVICE_HEADERS,
            [device.to_row() for device in outcome.devices],
            title=f"Connected {plugin.label} devices",
        )
    elif get_output().format == OutputFormat.JSON:
        print_json([])
    else:
        info(f"No connected {plugin.label} devices.")


def make_platform_app(plugin: PlatformPlugin) -> typer.Typer:
    """Build the ``mobkit <platform>`` command group for *plugin*."""
    platform_app = typer.Typer(no_args_is_help=True, help=plugin.description)
    targets_help = f"Targets: {', '.join(plugin.registry.names())} or 'all'."
    release_help = "Build with the release profile (default: configured profile)."

    @platform_app.command("check", help=f"Check the Rust library for {plugin.label} targets.")
    def check_command(
        ctx: typer.Context,
        targets: Optional[list[str]] = typer.Argument(None, help=targets_help),
    ) -> None:
        outcome = _invoke(ctx, plugin, "check", targets=targets)
        success(f"Checked {_names(outcome)}.")

    @platform_app.command("build", help=f"Build the {plugin.label} app for targets.")
    def build_command(
        ctx: typer.Context,
        targets: Optional[list[str]] = typer.Argument(None, help=targets_help),
        release: Optional[bool] = typer.Option(None, "--release/--debug", help=release_help),
    ) -> None:
        outcome = _invoke(ctx, plugin, "build", targets=targets, release=release)
        success(f"Built {_names(outcome)}.")

    @platform_app.command("run", help=f"Build, install and launch on a connected {plugin.label} device.")
    def run_command(
        ctx: typer.Context,
        target: Optional[str] = typer.Argument(None, help=targets_help),
        release: Optional[bool] = typer.Option(None, "--release/--debug", help=release_help),
    ) -> None:
        outcome = _invoke(
            ctx, plugin, "run", targets=[target] if target else None, release=release
        )
        success(f"Launched {_names(outcome)} on {outcome.device}.")

    @platform_app.command("list", help=f"List connected {plugin.label} devices.")
    def list_command(ctx: typer.Context) -> None:
        _render_devices(plugin, _invoke(ctx, plugin, "list"))

    if "stacktrace" in plugin.commands:

        @platform_app.command("stacktrace", help="Print the symbolicated native crash log of a device.")
        def stacktrace_command(
            ctx: typer.Context,
            release: Optional[bool] = typer.Option(None, "--release/--debug", help=release_help),
        ) -> None:
            outcome = _invoke(ctx, plugin, "stacktrace", release=release)
            if outcome.output:
                print_data(outcome.output.rstrip("\n"))

    if "compile-lib" in plugin.commands:

        @platform_app.command("compile-lib", help="Compile only the Rust library for one architecture.")
        def compile_lib_command(
            ctx: typer.Context,
            arch: Optional[str] = typer.Option(None, "--arch", help="Architecture to compile for."),
            macos: bool = typer.Option(False, "--macos", help="Compile for the host Mac instead."),
            release: Optional[bool] = typer.Option(None, "--release/--debug", help=release_help),
        ) -> None:
            outcome = _invoke(
                ctx, plugin, "compile-lib", arch=arch, macos=macos, release=release
            )
            success(f"Compiled library for {_names(outcome)}.")

    return platform_app
