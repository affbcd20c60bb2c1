"""Exception hierarchy for mobkit.

All exceptions inherit from :class:`MobkitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`mobkit.exit_codes`.
The top-level error handler in :func:`mobkit.app.main` catches
``MobkitError``, prints :func:`report` of it and exits with the error's code,
while unexpected exceptions produce a crash log and exit with
:data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    MobkitError (exit 1)
    +-- ConfigError                (exit 1)
    +-- InvalidUsageError          (exit 2)
    |   +-- CommandInvalidError
    |   +-- ArchInvalidError
    +-- EnvInitError               (exit 3)
    +-- DeviceError                (exit 4)
    |   +-- DeviceListError
    |   +-- DeviceDetectionError
    |   +-- ListFailedError
    |   +-- DevicePromptError
    |   +-- NoDevicesDetectedError
    +-- TargetInvalidError         (exit 5)
    +-- ArtifactError              (exit 6)
    +-- OperationError             (exit 6)
        +-- CheckFailedError
        +-- BuildFailedError
        +-- RunFailedError
        +-- CompileLibFailedError
        +-- StacktraceFailedError

Failures from toolchain calls are never discarded: wrapping errors are
raised ``from`` their cause and also embed the cause's text, so both the
exception chain and the rendered message reach the root cause.
"""

from __future__ import annotations

from typing import Optional, Sequence

from mobkit.exit_codes import (
    EXIT_DEVICE_ERROR,
    EXIT_ENV_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TARGET_INVALID,
    EXIT_TOOLCHAIN_FAILURE,
)


class MobkitError(Exception):
    """Base exception for all mobkit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`mobkit.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(MobkitError):
    """Raised for configuration problems (missing project file, invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidUsageError(MobkitError):
    """Raised for invalid CLI arguments or conflicting selectors."""

    exit_code = EXIT_INVALID_USAGE


class CommandInvalidError(InvalidUsageError):
    """Raised when a command string is not one the platform plugin supports."""

    def __init__(self, command: str):
        super().__init__(f"Invalid command: {command!r}")
        self.command = command


class ArchInvalidError(InvalidUsageError):
    """Raised when an ``--arch`` value does not map to a registered target."""

    def __init__(self, arch: str):
        super().__init__(f"Specified arch was invalid: {arch!r}")
        self.arch = arch


class EnvInitError(MobkitError):
    """Raised when a required toolchain, SDK path, or device bridge is unavailable.

    Args:
        message: Description of the first prerequisite that failed.
        missing: Names of every prerequisite found missing, for display.
    """

    exit_code = EXIT_ENV_FAILURE

    def __init__(self, message: str, missing: Sequence[str] = ()):
        super().__init__(message)
        self.missing = list(missing)


class DeviceError(MobkitError):
    """Base class for device enumeration and selection failures."""

    exit_code = EXIT_DEVICE_ERROR


class DeviceListError(DeviceError):
    """Raised by a platform's enumeration tool wrapper.

    Covers both a failing subprocess and output that could not be parsed.
    Callers re-wrap it as :class:`DeviceDetectionError` or
    :class:`ListFailedError` depending on which command needed the list.
    """


class DeviceDetectionError(DeviceError):
    """Raised when devices could not be enumerated while one was required."""

    def __init__(self, platform: str, cause: Exception):
        super().__init__(f"Failed to detect connected {platform} devices: {cause}")
        self.platform = platform
        self.cause = cause


class ListFailedError(DeviceError):
    """Raised when the ``list`` command could not enumerate devices."""

    def __init__(self, platform: str, cause: Exception):
        super().__init__(f"Failed to list connected {platform} devices: {cause}")
        self.platform = platform
        self.cause = cause


class DevicePromptError(DeviceError):
    """Raised when interactive device selection could not read operator input."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to prompt for device: {reason}")
        self.reason = reason


class NoDevicesDetectedError(DeviceError):
    """Raised when enumeration succeeded but a required device was not found."""

    def __init__(self, platform: str):
        super().__init__(f"No connected {platform} devices detected.")
        self.platform = platform


class TargetInvalidError(MobkitError):
    """Raised when a target selector is not registered for the platform.

    Args:
        name: The selector exactly as the operator typed it.
        possible: Registered target names, in registry order.
    """

    exit_code = EXIT_TARGET_INVALID

    def __init__(self, name: str, possible: Sequence[str]):
        choices = ", ".join(possible)
        super().__init__(
            f"Specified target was invalid: {name!r} is not one of: {choices}"
        )
        self.name = name
        self.possible = list(possible)


class ArtifactError(MobkitError):
    """Raised when a toolchain reported success but its expected output is missing."""

    exit_code = EXIT_TOOLCHAIN_FAILURE

    def __init__(self, path: object):
        super().__init__(f"Expected build artifact not found at {path}")
        self.path = path


class OperationError(MobkitError):
    """Base class for a per-target operation that failed in its toolchain.

    The message always names the target (and the device, for device-bound
    operations) and embeds the underlying cause's text.

    Args:
        target: Name of the target the operation ran against.
        cause: The toolchain error that made the operation fail.
        device: Optional device name for ``run``/``stacktrace``.
    """

    exit_code = EXIT_TOOLCHAIN_FAILURE
    action: str = "Operation"

    def __init__(self, target: str, cause: Exception, device: Optional[str] = None):
        where = f"target {target!r}"
        if device is not None:
            where = f"{where} on device {device!r}"
        super().__init__(f"{self.action} failed for {where}: {cause}")
        self.target = target
        self.cause = cause
        self.device = device


class CheckFailedError(OperationError):
    action = "Check"


class BuildFailedError(OperationError):
    action = "Build"


class RunFailedError(OperationError):
    action = "Run"


class CompileLibFailedError(OperationError):
    action = "Library compilation"


class StacktraceFailedError(OperationError):
    action = "Stacktrace"


def report(exc: BaseException) -> str:
    """Render *exc* as a single human-readable line.

    Walks the ``__cause__`` chain and appends every cause whose text is not
    already part of the message, so wrapped tool stderr, parse errors and
    I/O errors are never lost. Multi-line text (e.g. captured stderr) is
    folded onto one line with ``" | "`` separators.

    Args:
        exc: The error to render.

    Returns:
        The rendered message.
    """
    parts: list[str] = []
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        if not any(text in part for part in parts):
            parts.append(text)
        current = current.__cause__
    message = ": ".join(parts)
    lines = [line.strip() for line in message.splitlines() if line.strip()]
    return " | ".join(lines)
