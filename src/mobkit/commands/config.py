"""Config commands -- view and modify global configuration.

Provides the ``mobkit config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~mobkit.models.GlobalConfig`). Settings are persisted in the
mobkit config directory and control defaults such as the build profile,
whether a device may be chosen at a prompt, and the output format.
"""

from __future__ import annotations

from typing import Any

import typer

from mobkit.exit_codes import EXIT_INVALID_USAGE
from mobkit.output import error, info, print_table, success


config_app = typer.Typer(no_args_is_help=True)


def _flatten(data: dict[str, Any], prefix: str = "") -> list[list[str]]:
    rows: list[list[str]] = []
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{dotted}."))
        else:
            rows.append([dotted, "" if value is None else str(value)])
    return rows


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config directory and the project file in use (if any) to
    stderr, then every setting as a key/value table (or JSON objects with
    ``--json``).

    Example::

        mobkit config show
        mobkit --json config show
    """
    from mobkit.config import find_project_config, get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    project = find_project_config()
    if project is not None:
        info(f"Project file: {project}")
    print_table(["Key", "Value"], _flatten(config.model_dump(mode="json")))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'output.format')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool or str) and the result is validated
    against :class:`~mobkit.models.GlobalConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid or validation
            fails.

    Example::

        mobkit config set default_profile release
        mobkit config set interactive false
        mobkit config set output.format plain
    """
    from mobkit.config import load_global_config, save_global_config
    from mobkit.models import GlobalConfig

    config = load_global_config()
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    coerced: Any = value
    if isinstance(target[final_key], bool):
        coerced = value.lower() in ("true", "1", "yes")
    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Replaces the persisted global config with a fresh
    :class:`~mobkit.models.GlobalConfig`. Asks for confirmation unless
    ``--yes`` is given; with ``--no-input`` it refuses instead of asking.

    Example::

        mobkit config reset
        mobkit config reset --yes
    """
    from mobkit.config import save_global_config
    from mobkit.models import GlobalConfig

    no_input = ctx.obj.get("no_input", False) if ctx.obj else False
    if not yes:
        if no_input:
            error("Refusing to reset without --yes while prompts are disabled.")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        if not typer.confirm("Reset all config to defaults?"):
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
