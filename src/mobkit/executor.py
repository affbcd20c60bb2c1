"""Per-command flow shared by every platform.

:func:`execute` is what each ``mobkit <platform> <command>`` ends up calling:

1. reject a command the platform does not support
   (:class:`~mobkit.exceptions.CommandInvalidError`) and selector misuse
   such as ``compile-lib`` with both ``--arch`` and ``--macos``;
2. require a project file for everything except ``list``;
3. validate the environment once; nothing else runs if that fails;
4. hand over to the command's handler, which resolves targets and devices
   and runs the per-target operations through :mod:`mobkit.dispatch`.

The result is an :class:`Outcome` the CLI layer renders; nothing here
prints except the device choice list during an interactive prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from mobkit.device import Device, Prompt, detect_device, detect_target
from mobkit.dispatch import call_for_target, call_for_targets
from mobkit.env import Environment, Which
from mobkit.exceptions import (
    BuildFailedError,
    CheckFailedError,
    CommandInvalidError,
    CompileLibFailedError,
    ConfigError,
    DeviceListError,
    InvalidUsageError,
    ListFailedError,
    MobkitError,
    OperationError,
    RunFailedError,
    StacktraceFailedError,
)
from mobkit.models import NoiseLevel, Profile, ProjectConfig
from mobkit.plugins.base import PlatformPlugin
from mobkit.runner import CommandRunner
from mobkit.target import OperationContext, Target

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandRequest:
    """One parsed platform command.

    Attributes:
        command: Command name (``check``, ``build``, ``run``, ...).
        targets: Target selectors in the order given; may include ``all``.
        profile: Debug or release.
        noise_level: Toolchain verbosity.
        interactive: Whether a device may be chosen at a prompt.
        arch: ``compile-lib --arch`` value.
        macos: ``compile-lib --macos`` flag.
    """

    command: str
    targets: tuple[str, ...] = ()
    profile: Profile = Profile.DEBUG
    noise_level: NoiseLevel = NoiseLevel.POLITE
    interactive: bool = True
    arch: Optional[str] = None
    macos: bool = False


@dataclass
class Outcome:
    """What a command did, for the CLI layer to report."""

    targets: list[Target] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)
    device: Optional[Device] = None
    output: str = ""


@dataclass
class _Session:
    plugin: PlatformPlugin
    request: CommandRequest
    env: Environment
    runner: CommandRunner
    project: Optional[ProjectConfig]
    prompt: Optional[Prompt]

    @property
    def context(self) -> OperationContext:
        assert self.project is not None
        return OperationContext(
            env=self.env,
            runner=self.runner,
            project=self.project,
            noise_level=self.request.noise_level,
        )

    def list_devices(self) -> list[Device]:
        return self.plugin.list_devices(self.env, self.runner)

    def device_target(self) -> Optional[Target]:
        return detect_target(
            self.list_devices,
            platform=self.plugin.label,
            interactive=self.request.interactive,
            prompt=self.prompt,
        )

    def detect_device(self, target: Optional[Target] = None) -> Device:
        return detect_device(
            self.list_devices,
            platform=self.plugin.label,
            interactive=self.request.interactive,
            prompt=self.prompt,
            target=target,
        )


def _device_target(
    session: _Session, device: Device, error: type[OperationError]
) -> Target:
    if device.target is not None:
        return device.target
    arch = device.arch or "unknown"
    cause = MobkitError(
        f"no {session.plugin.label} target builds for device architecture {arch!r}"
    )
    raise error(arch, cause, device=device.name)


def _check(session: _Session) -> Outcome:
    ctx = session.context
    targets = call_for_targets(
        session.plugin.registry,
        session.request.targets,
        lambda target: target.check(ctx),
        error=CheckFailedError,
        fallback=session.device_target,
    )
    return Outcome(targets=targets)


def _build(session: _Session) -> Outcome:
    ctx = session.context
    profile = session.request.profile
    targets = call_for_targets(
        session.plugin.registry,
        session.request.targets,
        lambda target: target.build(ctx, profile),
        error=BuildFailedError,
        fallback=session.device_target,
    )
    return Outcome(targets=targets)


def _run(session: _Session) -> Outcome:
    selected = session.plugin.registry.resolve(session.request.targets)
    if len(selected) > 1:
        raise InvalidUsageError(
            f"run takes at most one target, got {', '.join(t.name for t in selected)}"
        )
    explicit = selected[0] if selected else None
    device = session.detect_device(explicit)
    target = explicit or _device_target(session, device, RunFailedError)
    ctx = session.context
    profile = session.request.profile
    logger.info("Running %s on %s", target.name, device)
    call_for_target(
        target,
        lambda t: session.plugin.run(ctx, device, t, profile),
        error=RunFailedError,
        device=device.name,
    )
    return Outcome(targets=[target], device=device)


def _stacktrace(session: _Session) -> Outcome:
    device = session.detect_device()
    target = _device_target(session, device, StacktraceFailedError)
    ctx = session.context
    profile = session.request.profile
    lines: list[str] = []
    call_for_target(
        target,
        lambda t: lines.append(session.plugin.stacktrace(ctx, device, t, profile)),
        error=StacktraceFailedError,
        device=device.name,
    )
    return Outcome(targets=[target], device=device, output="".join(lines))


def _list(session: _Session) -> Outcome:
    try:
        devices = session.list_devices()
    except DeviceListError as exc:
        raise ListFailedError(session.plugin.label, exc) from exc
    return Outcome(devices=devices)


def _compile_lib(session: _Session) -> Outcome:
    request = session.request
    target = session.plugin.lib_target(request.arch, macos=request.macos)
    ctx = session.context
    call_for_target(
        target,
        lambda t: t.compile_lib(ctx, request.profile),
        error=CompileLibFailedError,
    )
    return Outcome(targets=[target])


_HANDLERS: dict[str, Callable[[_Session], Outcome]] = {
    "check": _check,
    "build": _build,
    "run": _run,
    "stacktrace": _stacktrace,
    "list": _list,
    "compile-lib": _compile_lib,
}

PROJECTLESS_COMMANDS = frozenset({"list"})
"""Commands that run without a project file."""


def _check_lib_selector(request: CommandRequest) -> None:
    if request.macos and request.arch is not None:
        raise InvalidUsageError("--arch and --macos are mutually exclusive")
    if not request.macos and request.arch is None:
        raise InvalidUsageError("compile-lib needs either --arch ARCH or --macos")


def execute(
    plugin: PlatformPlugin,
    request: CommandRequest,
    *,
    runner: CommandRunner,
    project: Optional[ProjectConfig],
    environ: Optional[Mapping[str, str]] = None,
    which: Optional[Which] = None,
    prompt: Optional[Prompt] = None,
) -> Outcome:
    """Run one platform command end to end.

    Args:
        plugin: The platform to run against.
        request: The parsed command.
        runner: Runner for every toolchain command, probes included.
        project: Loaded project config; may be ``None`` only for ``list``.
        environ: Environment to validate (default ``os.environ``).
        which: Executable lookup override.
        prompt: Device index prompt override.

    Returns:
        What the command did.

    Raises:
        CommandInvalidError: If *plugin* has no such command.
        InvalidUsageError: For conflicting or missing selectors.
        ConfigError: If a project file is required but absent.
        EnvInitError: If the environment is not usable.
        TargetInvalidError: For an unknown target selector.
        ArchInvalidError: For an unknown ``compile-lib --arch``.
        DeviceError: If a required device could not be found or chosen.
        OperationError: The first per-target failure.
    """
    handler = _HANDLERS.get(request.command)
    if handler is None or request.command not in plugin.commands:
        raise CommandInvalidError(request.command)
    if request.command == "compile-lib":
        _check_lib_selector(request)
    if project is None and request.command not in PROJECTLESS_COMMANDS:
        raise ConfigError(
            "No mobkit.json found; run inside a project or pass --project PATH"
        )

    env = plugin.validate(runner, environ=environ, which=which)
    session = _Session(
        plugin=plugin,
        request=request,
        env=env,
        runner=runner,
        project=project,
        prompt=prompt,
    )
    logger.debug("Executing %s %s", plugin.name, request.command)
    return handler(session)
