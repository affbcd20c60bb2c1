"""Tests for the Android plugin -- adb parsing, NDK setup, and target operations."""

from __future__ import annotations

from pathlib import Path

import pytest

from mobkit.device import Device
from mobkit.env import Environment
from mobkit.exceptions import ArtifactError, CommandInvalidError, DeviceListError
from mobkit.models import Profile, ProjectConfig
from mobkit.plugins.android import AndroidPlugin, adb, ndk
from mobkit.plugins.android.plugin import REGISTRY, target_for_abi
from mobkit.runner import RecordingCommandRunner
from mobkit.target import OperationContext

from conftest import ScriptedRunner

DEVICES_OUTPUT = """\
* daemon not running; starting now at tcp:5037
* daemon started successfully
List of devices attached
emulator-5554\tdevice
R58M12ABCDE\tunauthorized
0A1B2C3D\tdevice

"""

PIXEL_PROPS = """\
[ro.product.cpu.abi]: [arm64-v8a]
[ro.product.device]: [panther]
[ro.product.model]: [Pixel 7]
"""

EMULATOR_PROPS = """\
[ro.product.cpu.abi]: [x86_64]
[ro.product.model]: [sdk_gphone64_x86_64]
"""

AARCH64 = REGISTRY.get("aarch64")


@pytest.fixture
def plugin() -> AndroidPlugin:
    return AndroidPlugin()


@pytest.fixture
def ctx(
    android_env: Environment, scripted_runner: ScriptedRunner, project: ProjectConfig
) -> OperationContext:
    return OperationContext(env=android_env, runner=scripted_runner, project=project)


def _built_lib(project: ProjectConfig, triple: str, profile: str = "debug") -> Path:
    lib = project.root / "target" / triple / profile / "libhello_world.so"
    lib.parent.mkdir(parents=True)
    lib.write_bytes(b"\x7fELF")
    return lib


class TestRegistry:
    def test_targets(self) -> None:
        assert REGISTRY.names() == ["aarch64", "armv7", "i686", "x86_64"]
        assert REGISTRY.default.name == "aarch64"

    def test_target_for_abi(self) -> None:
        assert target_for_abi("armeabi-v7a").name == "armv7"
        assert target_for_abi("mips") is None


class TestParseDevices:
    def test_keeps_online_devices_in_order(self) -> None:
        assert adb.parse_devices(DEVICES_OUTPUT) == ["emulator-5554", "0A1B2C3D"]

    def test_empty(self) -> None:
        assert adb.parse_devices("List of devices attached\n\n") == []

    def test_malformed_line(self) -> None:
        with pytest.raises(ValueError, match="garbage"):
            adb.parse_devices("List of devices attached\ngarbage\n")

    def test_parse_props(self) -> None:
        props = adb.parse_props(PIXEL_PROPS + "not a prop line\n")
        assert props == {
            "ro.product.cpu.abi": "arm64-v8a",
            "ro.product.device": "panther",
            "ro.product.model": "Pixel 7",
        }


class TestDeviceList:
    def test_describes_each_device(
        self, plugin: AndroidPlugin, android_env: Environment, scripted_runner: ScriptedRunner
    ) -> None:
        scripted_runner.on("adb", "devices", stdout=DEVICES_OUTPUT)
        scripted_runner.on("emulator-5554", "getprop", stdout=EMULATOR_PROPS)
        scripted_runner.on("0A1B2C3D", "getprop", stdout=PIXEL_PROPS)

        devices = plugin.list_devices(android_env, scripted_runner)

        assert devices == [
            Device(
                id="emulator-5554",
                name="sdk_gphone64_x86_64",
                arch="x86_64",
                target=REGISTRY.get("x86_64"),
            ),
            Device(
                id="0A1B2C3D",
                name="Pixel 7",
                model="panther",
                arch="arm64-v8a",
                target=AARCH64,
            ),
        ]

    def test_no_devices(
        self, plugin: AndroidPlugin, android_env: Environment, scripted_runner: ScriptedRunner
    ) -> None:
        scripted_runner.on("adb", "devices", stdout="List of devices attached\n")
        assert plugin.list_devices(android_env, scripted_runner) == []

    def test_adb_failure(
        self, plugin: AndroidPlugin, android_env: Environment, scripted_runner: ScriptedRunner
    ) -> None:
        scripted_runner.on("adb", "devices", returncode=1, stderr="daemon crashed")
        with pytest.raises(DeviceListError, match="daemon crashed") as exc_info:
            plugin.list_devices(android_env, scripted_runner)
        assert exc_info.value.__cause__ is not None

    def test_unparseable_output(
        self, plugin: AndroidPlugin, android_env: Environment, scripted_runner: ScriptedRunner
    ) -> None:
        scripted_runner.on("adb", "devices", stdout="List of devices attached\n???\n")
        with pytest.raises(DeviceListError, match="Failed to parse adb output"):
            plugin.list_devices(android_env, scripted_runner)


class TestNdk:
    def test_cargo_env(self, tmp_path: Path) -> None:
        env = ndk.cargo_env(tmp_path, "armv7-linux-androideabi", "armv7a-linux-androideabi", 24, system="Linux")
        bin_dir = tmp_path / "toolchains" / "llvm" / "prebuilt" / "linux-x86_64" / "bin"
        clang = str(bin_dir / "armv7a-linux-androideabi24-clang")
        assert env == {
            "CARGO_TARGET_ARMV7_LINUX_ANDROIDEABI_LINKER": clang,
            "CC_armv7_linux_androideabi": clang,
            "AR_armv7_linux_androideabi": str(bin_dir / "llvm-ar"),
        }

    def test_host_tag(self) -> None:
        assert ndk.host_tag("Darwin") == "darwin-x86_64"
        with pytest.raises(ValueError, match="Plan9"):
            ndk.host_tag("Plan9")


class TestTargetOperations:
    def test_check_configures_linker(
        self, ctx: OperationContext, scripted_runner: ScriptedRunner
    ) -> None:
        AARCH64.check(ctx)
        call = scripted_runner.calls[0]
        assert scripted_runner.commands[0] == [
            "cargo", "check", "--lib", "--target", "aarch64-linux-android"
        ]
        linker = call.env["CARGO_TARGET_AARCH64_LINUX_ANDROID_LINKER"]
        assert linker.endswith("aarch64-linux-android24-clang")
        assert call.env["PATH"] == "/opt/bin"

    def test_compile_lib_copies_into_jnilibs(
        self, ctx: OperationContext, project: ProjectConfig
    ) -> None:
        _built_lib(project, "aarch64-linux-android", "release")
        AARCH64.compile_lib(ctx, Profile.RELEASE)
        copied = project.android_dir / "app" / "src" / "main" / "jniLibs" / "arm64-v8a" / "libhello_world.so"
        assert copied.read_bytes() == b"\x7fELF"

    def test_compile_lib_missing_artifact(self, ctx: OperationContext) -> None:
        with pytest.raises(ArtifactError) as exc_info:
            AARCH64.compile_lib(ctx, Profile.DEBUG)
        assert str(exc_info.value.path).endswith("libhello_world.so")

    def test_compile_lib_dry_run_skips_copy(
        self, android_env: Environment, project: ProjectConfig
    ) -> None:
        runner = RecordingCommandRunner()
        ctx = OperationContext(env=android_env, runner=runner, project=project)
        AARCH64.compile_lib(ctx, Profile.DEBUG)
        assert runner.commands[0].command[1] == "build"
        assert not (project.android_dir / "app").exists()

    def test_build_assembles_with_gradle(
        self, ctx: OperationContext, project: ProjectConfig, scripted_runner: ScriptedRunner
    ) -> None:
        _built_lib(project, "aarch64-linux-android")
        AARCH64.build(ctx, Profile.DEBUG)
        assert scripted_runner.commands[1] == ["gradlew", "assembleDebug"]
        assert scripted_runner.calls[1].cwd == str(project.android_dir)

    def test_cargo_failure_propagates(
        self, ctx: OperationContext, scripted_runner: ScriptedRunner
    ) -> None:
        from mobkit.runner import CommandError

        scripted_runner.on("cargo", returncode=101, stderr="linker `cc` not found")
        with pytest.raises(CommandError, match="linker"):
            AARCH64.check(ctx)


class TestDeviceOperations:
    PIXEL = Device(id="0A1B2C3D", name="Pixel 7", arch="arm64-v8a", target=AARCH64)

    def test_run_installs_and_launches(
        self,
        plugin: AndroidPlugin,
        ctx: OperationContext,
        project: ProjectConfig,
        scripted_runner: ScriptedRunner,
    ) -> None:
        _built_lib(project, "aarch64-linux-android")
        plugin.run(ctx, self.PIXEL, AARCH64, Profile.DEBUG)

        commands = scripted_runner.commands
        assert commands[0][:2] == ["cargo", "build"]
        assert commands[1] == ["gradlew", "assembleDebug"]
        assert commands[2] == ["gradlew", "installDebug"]
        assert scripted_runner.calls[2].env["ANDROID_SERIAL"] == "0A1B2C3D"
        assert commands[3] == [
            "adb", "-s", "0A1B2C3D", "shell", "am", "start", "-n",
            "com.example.hello_world/android.app.NativeActivity",
        ]

    def test_stacktrace_pipes_logcat_into_ndk_stack(
        self,
        plugin: AndroidPlugin,
        ctx: OperationContext,
        project: ProjectConfig,
        scripted_runner: ScriptedRunner,
    ) -> None:
        scripted_runner.on("logcat", stdout="*** *** *** crash dump")
        scripted_runner.on("ndk-stack", stdout="#00 pc 0001 libhello_world.so (main+4)\n")

        text = plugin.stacktrace(ctx, self.PIXEL, AARCH64, Profile.DEBUG)

        assert text == "#00 pc 0001 libhello_world.so (main+4)\n"
        assert scripted_runner.commands[0] == ["adb", "-s", "0A1B2C3D", "logcat", "-d"]
        ndk_call = scripted_runner.calls[1]
        assert ndk_call.input == "*** *** *** crash dump"
        assert ndk_call.command[-2:] == [
            "-sym",
            str(project.root / "target" / "aarch64-linux-android" / "debug"),
        ]

    def test_commands_and_requirements(self, plugin: AndroidPlugin) -> None:
        assert "stacktrace" in plugin.commands
        assert "compile-lib" not in plugin.commands
        requirements = plugin.requirements()
        assert requirements.tools == ("cargo", "adb")
        assert requirements.probes == (("adb", "devices"),)

    def test_compile_lib_is_not_supported(self, plugin: AndroidPlugin) -> None:
        with pytest.raises(CommandInvalidError):
            plugin.lib_target("arm64")
