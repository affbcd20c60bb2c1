"""iOS platform plugin -- cargo for the library, xcodebuild for the app.

Targets are named after the Xcode architecture they build: ``arm64`` for
devices (``iphoneos`` SDK) and ``x86_64`` for the simulator
(``iphonesimulator`` SDK). ``compile-lib`` builds only the Rust library,
which is what the Xcode project's build phase calls back into; ``--macos``
compiles it for the host Mac instead, through a pseudo-target that is not
part of the registry.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from typing import Optional

from mobkit.device import Device
from mobkit.env import Environment, Requirements
from mobkit.exceptions import ArchInvalidError
from mobkit.models import Profile
from mobkit.plugins.base import BASE_COMMANDS, PlatformPlugin
from mobkit.plugins.ios import ios_deploy
from mobkit.runner import CommandRunner
from mobkit.target import OperationContext, Target, TargetRegistry

logger = logging.getLogger(__name__)

# Architectures devices report that build with another target's code.
ARCH_ALIASES = {"arm64e": "arm64"}


@dataclass(frozen=True)
class IosTarget(Target):
    """A Rust triple plus the Xcode SDK it is built against."""

    sdk: str = "iphoneos"

    def check(self, ctx: OperationContext) -> None:
        self.cargo(ctx, "check")

    def compile_lib(self, ctx: OperationContext, profile: Profile) -> None:
        self.cargo(ctx, "build", profile)

    def build(self, ctx: OperationContext, profile: Profile) -> None:
        self.compile_lib(ctx, profile)
        project = ctx.project
        command = [
            ctx.env.tool("xcodebuild"),
            "-project",
            str(project.ios_dir / f"{project.app.name}.xcodeproj"),
            "-scheme",
            project.ios_scheme,
            "-sdk",
            self.sdk,
            "-configuration",
            profile.configuration,
            "-arch",
            self.arch,
            f"SYMROOT={project.ios_dir / 'build'}",
        ]
        if project.ios.development_team:
            command.append(f"DEVELOPMENT_TEAM={project.ios.development_team}")
        command.append("build")
        ctx.runner.run(
            command,
            cwd=project.ios_dir,
            env=ctx.env.child_env(),
            stream=ctx.noise_level.is_loud,
        )


@dataclass(frozen=True)
class MacosTarget(Target):
    """Host library build used by ``compile-lib --macos``."""

    def check(self, ctx: OperationContext) -> None:
        self.cargo(ctx, "check")

    def compile_lib(self, ctx: OperationContext, profile: Profile) -> None:
        self.cargo(ctx, "build", profile)

    def build(self, ctx: OperationContext, profile: Profile) -> None:
        self.compile_lib(ctx, profile)


def macos_target(machine: Optional[str] = None) -> MacosTarget:
    machine = machine or platform.machine()
    if machine in ("arm64", "aarch64"):
        return MacosTarget("macos", "aarch64-apple-darwin", "arm64")
    return MacosTarget("macos", "x86_64-apple-darwin", "x86_64")


REGISTRY = TargetRegistry(
    [
        IosTarget("arm64", "aarch64-apple-ios", "arm64", "iphoneos"),
        IosTarget("x86_64", "x86_64-apple-ios", "x86_64", "iphonesimulator"),
    ],
    default="arm64",
)


def target_for_arch(arch: str) -> Optional[Target]:
    return REGISTRY.for_arch(ARCH_ALIASES.get(arch, arch))


class IosPlugin(PlatformPlugin):
    name = "ios"
    label = "iOS"
    description = "Build and run the iOS app, or compile its Rust library."
    registry = REGISTRY
    commands = (*BASE_COMMANDS, "compile-lib")

    def requirements(self) -> Requirements:
        return Requirements(
            tools=("cargo", "xcodebuild", "xcode-select", "ios-deploy"),
            probes=(("xcode-select", "-p"),),
        )

    def list_devices(self, env: Environment, runner: CommandRunner) -> list[Device]:
        return ios_deploy.device_list(env, runner, target_for_arch)

    def run(
        self, ctx: OperationContext, device: Device, target: Target, profile: Profile
    ) -> None:
        target.build(ctx, profile)
        sdk = getattr(target, "sdk", "iphoneos")
        bundle = (
            ctx.project.ios_dir
            / "build"
            / f"{profile.configuration}-{sdk}"
            / f"{ctx.project.app.name}.app"
        )
        ctx.runner.run(
            [
                ctx.env.tool("ios-deploy"),
                "--id",
                device.id,
                "--bundle",
                str(bundle),
                "--justlaunch",
                "--no-wifi",
            ],
            env=ctx.env.child_env(),
            stream=ctx.noise_level.is_loud,
        )

    def lib_target(self, arch: Optional[str], macos: bool = False) -> Target:
        if macos:
            return macos_target()
        target = target_for_arch(arch or "")
        if target is None:
            raise ArchInvalidError(arch or "")
        return target
