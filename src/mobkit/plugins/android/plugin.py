"""Android platform plugin -- cargo + NDK for the library, Gradle for the APK.

Per-target flow:

* **check** -- ``cargo check --lib --target <triple>`` with the NDK linker
  configured.
* **compile-lib** -- ``cargo build`` for the triple, then copy
  ``lib<name>.so`` into ``app/src/main/jniLibs/<abi>/`` of the Gradle
  project so the APK picks it up.
* **build** -- compile-lib, then ``gradlew assemble<Debug|Release>``.

Device-bound operations use ``adb``: ``run`` builds, installs with
``gradlew install<Config>`` on the chosen serial and starts the launcher
activity; ``stacktrace`` pipes ``adb logcat -d`` through the NDK's
``ndk-stack`` against the unstripped libraries in ``target/``.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from mobkit.device import Device
from mobkit.env import Environment, Requirements
from mobkit.exceptions import ArtifactError, EnvInitError
from mobkit.models import Profile, ProjectConfig
from mobkit.plugins.android import adb, ndk
from mobkit.plugins.base import BASE_COMMANDS, PlatformPlugin
from mobkit.runner import CommandResult, CommandRunner
from mobkit.target import OperationContext, Target, TargetRegistry

logger = logging.getLogger(__name__)

SDK_VARS = ("ANDROID_HOME", "ANDROID_SDK_ROOT")
NDK_VARS = ("NDK_HOME", "ANDROID_NDK_HOME")


@dataclass(frozen=True)
class AndroidTarget(Target):
    """A Rust triple plus the Android ABI it is packaged under.

    Attributes:
        abi: ``jniLibs`` directory name and the value of ``ro.product.cpu.abi``.
        clang_triple: Prefix of the NDK clang wrapper for this triple.
    """

    abi: str = ""
    clang_triple: str = ""

    def cargo_env(self, ctx: OperationContext) -> Mapping[str, str]:
        try:
            return ndk.cargo_env(
                ctx.env.path(NDK_VARS[0]),
                self.triple,
                self.clang_triple,
                ctx.project.android.min_sdk_version,
            )
        except ValueError as exc:
            raise EnvInitError(str(exc)) from exc

    def lib_path(self, project: ProjectConfig, profile: Profile) -> Path:
        """Where cargo leaves the shared library for this target."""
        return (
            project.root
            / "target"
            / self.triple
            / profile.value
            / f"lib{project.app.library}.so"
        )

    def jni_dir(self, project: ProjectConfig) -> Path:
        return project.android_dir / "app" / "src" / "main" / "jniLibs" / self.abi

    def check(self, ctx: OperationContext) -> None:
        self.cargo(ctx, "check")

    def compile_lib(self, ctx: OperationContext, profile: Profile) -> None:
        self.cargo(ctx, "build", profile)
        source = self.lib_path(ctx.project, profile)
        dest = self.jni_dir(ctx.project)
        if ctx.runner.dry_run:
            logger.info("Would copy %s to %s", source, dest)
            return
        if not source.is_file():
            raise ArtifactError(source)
        dest.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest / source.name)
        logger.debug("Copied %s to %s", source.name, dest)

    def build(self, ctx: OperationContext, profile: Profile) -> None:
        self.compile_lib(ctx, profile)
        gradle(ctx, f"assemble{profile.configuration}")


def gradle(
    ctx: OperationContext, task: str, extra: Optional[Mapping[str, str]] = None
) -> CommandResult:
    """Run a task with the Gradle wrapper of the project's Android directory."""
    project_dir = ctx.project.android_dir
    return ctx.runner.run(
        [str(project_dir / "gradlew"), task],
        cwd=project_dir,
        env=ctx.env.child_env(extra),
        stream=ctx.noise_level.is_loud,
    )


REGISTRY = TargetRegistry(
    [
        AndroidTarget("aarch64", "aarch64-linux-android", "arm64", "arm64-v8a", "aarch64-linux-android"),
        AndroidTarget("armv7", "armv7-linux-androideabi", "arm", "armeabi-v7a", "armv7a-linux-androideabi"),
        AndroidTarget("i686", "i686-linux-android", "x86", "x86", "i686-linux-android"),
        AndroidTarget("x86_64", "x86_64-linux-android", "x86_64", "x86_64", "x86_64-linux-android"),
    ],
    default="aarch64",
)


def target_for_abi(abi: str) -> Optional[AndroidTarget]:
    for target in REGISTRY:
        if isinstance(target, AndroidTarget) and target.abi == abi:
            return target
    return None


class AndroidPlugin(PlatformPlugin):
    name = "android"
    label = "Android"
    description = "Build, run and debug the Android app."
    registry = REGISTRY
    commands = (*BASE_COMMANDS, "stacktrace")

    def requirements(self) -> Requirements:
        return Requirements(
            tools=("cargo", "adb"),
            directories=(SDK_VARS, NDK_VARS),
            probes=(("adb", "devices"),),
        )

    def list_devices(self, env: Environment, runner: CommandRunner) -> list[Device]:
        return adb.device_list(env, runner, target_for_abi)

    def run(
        self, ctx: OperationContext, device: Device, target: Target, profile: Profile
    ) -> None:
        target.build(ctx, profile)
        gradle(ctx, f"install{profile.configuration}", {"ANDROID_SERIAL": device.id})
        app = ctx.project.app
        activity = f"{app.identifier}/{ctx.project.android.activity}"
        ctx.runner.run(
            adb.adb(ctx.env, device.id, "shell", "am", "start", "-n", activity),
            env=ctx.env.child_env(),
        )

    def stacktrace(
        self, ctx: OperationContext, device: Device, target: Target, profile: Profile
    ) -> str:
        logcat = ctx.runner.run(
            adb.adb(ctx.env, device.id, "logcat", "-d"), env=ctx.env.child_env()
        )
        symbols = ctx.project.root / "target" / target.triple / profile.value
        result = ctx.runner.run(
            [str(ndk.ndk_stack(ctx.env.path(NDK_VARS[0]))), "-sym", str(symbols)],
            env=ctx.env.child_env(),
            input=logcat.stdout,
        )
        return result.stdout
