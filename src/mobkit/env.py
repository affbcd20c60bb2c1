"""Environment validation -- the gate every command passes before any toolchain work.

:func:`validate_environment` probes the host for what a platform plugin
declares in its :class:`Requirements`:

* executables that must resolve on ``PATH``;
* SDK directories named by environment variables (with alternatives, e.g.
  ``ANDROID_HOME`` or ``ANDROID_SDK_ROOT``);
* probe commands that must exit zero (e.g. ``adb devices`` to confirm the
  device bridge answers).

Probing is read-only. On success it returns an immutable
:class:`Environment` that the executor passes explicitly to every target
operation; on failure it raises :class:`~mobkit.exceptions.EnvInitError`
and nothing else runs.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from mobkit.exceptions import EnvInitError
from mobkit.runner import CommandError, CommandRunner, format_command

logger = logging.getLogger(__name__)

Which = Callable[..., Optional[str]]


@dataclass(frozen=True)
class Requirements:
    """Prerequisites a platform plugin needs before it can run anything.

    Attributes:
        tools: Executable names that must resolve on ``PATH``.
        directories: One entry per required SDK directory; each entry lists
            alternative environment variable names, first match wins.
        probes: Commands that must exit zero. The first element is a tool
            name from *tools* and is replaced by its resolved path.
    """

    tools: tuple[str, ...] = ()
    directories: tuple[tuple[str, ...], ...] = ()
    probes: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True)
class Environment:
    """Validated handle asserting that a platform's toolchain is usable.

    Created once per command by :func:`validate_environment`. All mappings
    are read-only views.

    Attributes:
        platform: Display name of the platform it was validated for.
        tools: Tool name to absolute executable path.
        paths: Requirement key (the first variable name of each
            ``directories`` entry) to the SDK directory found.
        vars: Environment passed to child processes.
    """

    platform: str
    tools: Mapping[str, str] = field(default_factory=dict)
    paths: Mapping[str, Path] = field(default_factory=dict)
    vars: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tools", MappingProxyType(dict(self.tools)))
        object.__setattr__(self, "paths", MappingProxyType(dict(self.paths)))
        object.__setattr__(self, "vars", MappingProxyType(dict(self.vars)))

    def tool(self, name: str) -> str:
        """Return the resolved path of *name*, or *name* itself if it was not required."""
        return self.tools.get(name, name)

    def path(self, key: str) -> Path:
        """Return the SDK directory stored under *key*.

        Raises:
            KeyError: If the plugin did not declare that directory.
        """
        return self.paths[key]

    def child_env(self, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        """Build a fresh environment dict for a child process."""
        merged = dict(self.vars)
        if extra:
            merged.update(extra)
        return merged


def _resolve_directory(
    names: tuple[str, ...], environ: Mapping[str, str]
) -> Optional[Path]:
    for name in names:
        value = environ.get(name, "")
        if value and Path(value).is_dir():
            return Path(value)
    return None


def validate_environment(
    platform: str,
    requirements: Requirements,
    runner: CommandRunner,
    *,
    environ: Optional[Mapping[str, str]] = None,
    which: Optional[Which] = None,
) -> Environment:
    """Check *requirements* and return a validated :class:`Environment`.

    Every missing tool and directory is collected before failing so the
    operator sees the whole list at once. Probes run only when nothing is
    missing.

    Args:
        platform: Display name used in messages (``"Android"``, ``"iOS"``).
        requirements: What the platform plugin needs.
        runner: Runner used for probe commands.
        environ: Process environment to inspect (default ``os.environ``).
        which: Executable lookup (default :func:`shutil.which`).

    Returns:
        The validated environment.

    Raises:
        EnvInitError: If a prerequisite is missing or a probe fails.
    """
    environ = dict(os.environ if environ is None else environ)
    which = which or shutil.which
    search_path = environ.get("PATH")

    missing: list[str] = []
    tools: dict[str, str] = {}
    for name in requirements.tools:
        resolved = which(name, path=search_path)
        if resolved is None:
            missing.append(f"`{name}` on PATH")
        else:
            tools[name] = resolved

    paths: dict[str, Path] = {}
    for names in requirements.directories:
        found = _resolve_directory(names, environ)
        if found is None:
            missing.append(" or ".join(f"${name}" for name in names))
        else:
            paths[names[0]] = found

    if missing:
        raise EnvInitError(
            f"{platform} environment is incomplete; missing {', '.join(missing)}",
            missing=missing,
        )

    for probe in requirements.probes:
        command = [tools.get(probe[0], probe[0]), *probe[1:]]
        try:
            runner.run(command, env=environ)
        except CommandError as exc:
            raise EnvInitError(
                f"{platform} environment probe `{format_command(probe)}` failed: {exc}",
                missing=[format_command(probe)],
            ) from exc

    logger.debug("Validated %s environment: %s", platform, ", ".join(sorted(tools)))
    return Environment(platform=platform, tools=tools, paths=paths, vars=environ)
