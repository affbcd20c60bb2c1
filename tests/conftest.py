"""Shared test fixtures for mobkit.

Provides reusable fixtures for isolated config environments, output state,
a scripted command runner standing in for the real toolchains, validated
environments, and a project on disk. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import pytest

from mobkit.config import load_project_config
from mobkit.env import Environment
from mobkit.models import Profile, ProjectConfig
from mobkit.output import OutputFormat, OutputManager, reset_output, set_output
from mobkit.runner import CommandResult, CommandRunner, RecordedCommand
from mobkit.target import OperationContext, Target


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``mobkit`` logger after every test.

    The OutputManager and the Rich logging handler cache references to
    sys.stdout/sys.stderr at creation time. When Typer's CliRunner
    redirects those streams during a test and the test finishes, the
    cached references become stale ("I/O operation on closed file").
    """
    yield
    reset_output()
    logger = logging.getLogger("mobkit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Scripted command runner
# ---------------------------------------------------------------------------


class ScriptedRunner(CommandRunner):
    """Command runner that answers from a script instead of running anything.

    Responses are registered with :meth:`on`; a command matches when every
    given token appears in it (the executable is compared by basename).
    The first matching response wins; unmatched commands succeed with
    empty output. Every call is recorded in :attr:`calls`.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCommand] = []
        self._responses: list[tuple[tuple[str, ...], int, str, str]] = []

    def on(
        self, *tokens: str, returncode: int = 0, stdout: str = "", stderr: str = ""
    ) -> "ScriptedRunner":
        self._responses.append((tokens, returncode, stdout, stderr))
        return self

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        input: Optional[str] = None,
        check: bool = True,
        stream: bool = False,
    ) -> CommandResult:
        self.calls.append(
            RecordedCommand(
                command=list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else {},
                input=input,
            )
        )
        words = [os.path.basename(command[0]), *command[1:]]
        result = CommandResult(command=command, returncode=0, stdout="", stderr="")
        for tokens, returncode, stdout, stderr in self._responses:
            if all(token in words for token in tokens):
                result = CommandResult(
                    command=command, returncode=returncode, stdout=stdout, stderr=stderr
                )
                break
        return self._finalize(result, check=check)

    @property
    def commands(self) -> list[list[str]]:
        """Recorded commands with the executable reduced to its basename."""
        return [
            [os.path.basename(call.command[0]), *call.command[1:]] for call in self.calls
        ]

    def ran(self, *tokens: str) -> bool:
        return any(all(token in command for token in tokens) for command in self.commands)


@dataclass(frozen=True)
class CargoTarget(Target):
    """Target whose operations only run ``cargo``."""

    def check(self, ctx: OperationContext) -> None:
        self.cargo(ctx, "check")

    def build(self, ctx: OperationContext, profile: Profile) -> None:
        self.cargo(ctx, "build", profile)

    def compile_lib(self, ctx: OperationContext, profile: Profile) -> None:
        self.cargo(ctx, "build", profile)


@pytest.fixture
def scripted_runner() -> ScriptedRunner:
    return ScriptedRunner()


def fake_which(name: str, path: Optional[str] = None) -> Optional[str]:
    """``shutil.which`` stand-in that finds every tool under ``/opt/bin``."""
    return f"/opt/bin/{name}"


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears all MOBKIT_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("mobkit.config._is_xdg_platform", lambda: True)
    for var in ["MOBKIT_PROJECT", "MOBKIT_PROFILE"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Project and environment fixtures
# ---------------------------------------------------------------------------


def write_project(root: Path, data: Optional[dict[str, Any]] = None) -> Path:
    """Write ``mobkit.json`` under *root* and return its path."""
    root.mkdir(parents=True, exist_ok=True)
    path = root / "mobkit.json"
    payload = data if data is not None else {"app": {"name": "hello-world"}}
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> ProjectConfig:
    """A loaded ``hello-world`` project rooted at ``tmp_path/proj``."""
    return load_project_config(write_project(tmp_path / "proj"))


@pytest.fixture
def sdk_dirs(tmp_path: Path) -> dict[str, Path]:
    """Existing Android SDK and NDK directories."""
    sdk = tmp_path / "sdk"
    ndk = tmp_path / "ndk"
    sdk.mkdir()
    ndk.mkdir()
    return {"ANDROID_HOME": sdk, "NDK_HOME": ndk}


@pytest.fixture
def android_env(sdk_dirs: dict[str, Path]) -> Environment:
    return Environment(
        platform="Android",
        tools={"cargo": "/opt/bin/cargo", "adb": "/opt/bin/adb"},
        paths=sdk_dirs,
        vars={"PATH": "/opt/bin", **{k: str(v) for k, v in sdk_dirs.items()}},
    )


@pytest.fixture
def ios_env() -> Environment:
    tools = ("cargo", "xcodebuild", "xcode-select", "ios-deploy")
    return Environment(
        platform="iOS",
        tools={name: f"/opt/bin/{name}" for name in tools},
        vars={"PATH": "/opt/bin"},
    )


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
