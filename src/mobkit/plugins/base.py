"""Abstract base class for mobkit platform plugins.

A platform plugin bundles everything mobkit knows about one mobile
platform: the prerequisites its toolchain needs, its target registry, how
it enumerates connected devices, and the device-bound operations (``run``
and, where the platform supports it, ``stacktrace`` or ``compile-lib``).

The set of plugins is closed: :data:`mobkit.plugins.PLATFORMS` lists them
and nothing is discovered at runtime.

Example:
    Minimal plugin implementation::

        class DesktopPlugin(PlatformPlugin):
            name = "desktop"
            label = "Desktop"
            registry = TargetRegistry([...], default="x86_64")

            def requirements(self):
                return Requirements(tools=("cargo",))

            def list_devices(self, env, runner):
                return []

            def run(self, ctx, device, target, profile):
                target.build(ctx, profile)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from mobkit.device import Device
from mobkit.env import Environment, Requirements, Which, validate_environment
from mobkit.exceptions import CommandInvalidError
from mobkit.models import Profile
from mobkit.runner import CommandRunner
from mobkit.target import OperationContext, Target, TargetRegistry

BASE_COMMANDS = ("check", "build", "run", "list")


class PlatformPlugin(ABC):
    """Base class for the Android and iOS plugins.

    Subclasses set :attr:`name`, :attr:`label` and :attr:`registry` and
    implement :meth:`requirements`, :meth:`list_devices` and :meth:`run`.
    Optional operations raise :class:`~mobkit.exceptions.CommandInvalidError`
    by default; a plugin that supports one overrides it and lists it in
    :attr:`commands`.
    """

    name: str
    """Command-line name of the platform (``android``, ``ios``)."""

    label: str
    """Display name used in messages (``Android``, ``iOS``)."""

    description: str = ""

    registry: TargetRegistry

    commands: tuple[str, ...] = BASE_COMMANDS
    """Command names :func:`~mobkit.executor.execute` accepts for this platform."""

    @abstractmethod
    def requirements(self) -> Requirements:
        """Return what the host must provide before any command runs."""
        ...

    def validate(
        self,
        runner: CommandRunner,
        *,
        environ: Optional[Mapping[str, str]] = None,
        which: Optional[Which] = None,
    ) -> Environment:
        """Validate the host environment for this platform.

        Raises:
            EnvInitError: If a prerequisite is missing or a probe fails.
        """
        return validate_environment(
            self.label, self.requirements(), runner, environ=environ, which=which
        )

    @abstractmethod
    def list_devices(self, env: Environment, runner: CommandRunner) -> list[Device]:
        """Enumerate connected devices in the order the platform tool reports them.

        Raises:
            DeviceListError: If the tool failed or its output could not be parsed.
        """
        ...

    @abstractmethod
    def run(
        self, ctx: OperationContext, device: Device, target: Target, profile: Profile
    ) -> None:
        """Build *target*, install it on *device* and launch it."""
        ...

    def stacktrace(
        self, ctx: OperationContext, device: Device, target: Target, profile: Profile
    ) -> str:
        """Return the symbolicated native crash log of *device*."""
        raise CommandInvalidError("stacktrace")

    def lib_target(self, arch: Optional[str], macos: bool = False) -> Target:
        """Return the target ``compile-lib`` builds for *arch* (or the host, for *macos*).

        Raises:
            ArchInvalidError: If *arch* does not map to a registered target.
        """
        raise CommandInvalidError("compile-lib")
