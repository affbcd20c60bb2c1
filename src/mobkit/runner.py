"""Toolchain command execution with optional dry-run recording.

Every external tool mobkit drives (``cargo``, ``adb``, ``xcodebuild``,
``ios-deploy``, Gradle, ``ndk-stack``) goes through a :class:`CommandRunner`.
Target operations receive the runner explicitly via their
:class:`~mobkit.target.OperationContext`, which keeps them testable with a
fake runner and lets ``--dry-run`` swap in :class:`RecordingCommandRunner`.

Calls are synchronous and never retried. A non-zero exit (or an executable
that cannot be started) raises :class:`CommandError`, which keeps the full
:class:`CommandResult` so callers can wrap it without losing stderr.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from mobkit.exceptions import MobkitError
from mobkit.exit_codes import EXIT_TOOLCHAIN_FAILURE

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
"""Exit status reported for an executable that could not be started."""


def format_command(command: Sequence[str]) -> str:
    """Render *command* as a shell-quoted string for messages."""
    return " ".join(shlex.quote(part) for part in command)


@dataclass
class CommandResult:
    """Outcome of one toolchain invocation."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    streamed: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(MobkitError):
    """Raised when a toolchain command exits non-zero or cannot be started.

    The message names the command and its exit status and, unless output was
    streamed to the terminal, includes the captured stderr (or stdout when
    stderr is empty) so the root cause reaches the operator.

    Args:
        result: The failed command's result.
    """

    exit_code = EXIT_TOOLCHAIN_FAILURE

    def __init__(self, result: CommandResult):
        message = (
            f"`{format_command(result.command)}` failed with exit code "
            f"{result.returncode}"
        )
        detail = (result.stderr or result.stdout).strip()
        if result.streamed:
            message = f"{message} (output shown above)"
        elif detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.result = result


class CommandRunner(ABC):
    """Abstract command runner interface."""

    dry_run: bool = False

    @abstractmethod
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
        """Run *command* and return its result.

        Args:
            command: Executable followed by its arguments.
            cwd: Working directory for the child process.
            env: Complete environment for the child process, or ``None`` to
                inherit the current one.
            input: Text fed to the child's stdin.
            check: Raise :class:`CommandError` on a non-zero exit.
            stream: Let the child write straight to the terminal instead of
                capturing its output.

        Raises:
            CommandError: If *check* is set and the command failed.
        """
        ...

    def _finalize(self, result: CommandResult, *, check: bool) -> CommandResult:
        if check and not result.ok:
            raise CommandError(result)
        return result


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

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
        logger.debug("Running %s (cwd=%s)", format_command(command), cwd or os.getcwd())
        try:
            process = subprocess.run(
                list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                input=input,
                capture_output=not stream,
                text=True,
                check=False,
            )
        except OSError as exc:
            # Missing executable or permission problem: same shape as a shell.
            result = CommandResult(
                command=command,
                returncode=EXIT_NOT_FOUND,
                stdout="",
                stderr=str(exc),
            )
            return self._finalize(result, check=check)

        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=stream,
        )
        if not result.ok:
            logger.debug(
                "%s exited with %d", format_command(command), result.returncode
            )
        return self._finalize(result, check=check)


@dataclass
class RecordedCommand:
    command: list[str]
    cwd: Optional[str]
    env: dict[str, str] = field(default_factory=dict)
    input: Optional[str] = None


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    Used for ``--dry-run``. Every command "succeeds" with empty output, so
    probes pass and device enumeration reports no devices.
    """

    dry_run = True

    def __init__(self) -> None:
        self.commands: list[RecordedCommand] = []

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
        self.commands.append(
            RecordedCommand(
                command=list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else {},
                input=input,
            )
        )
        return CommandResult(command=command, returncode=0, stdout="", stderr="")

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            parts = ["[dry-run]"]
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(format_command(record.command))
            yield " ".join(parts)
