"""mobkit -- build, run and debug Rust-powered mobile apps from one CLI.

mobkit drives the platform toolchains (``cargo``, the Android SDK/NDK,
``adb``, ``xcodebuild``, ``ios-deploy``) behind one command surface::

    mobkit android build aarch64 armv7 --release
    mobkit ios check all
    mobkit ios run

Each command validates the environment once, resolves target selectors
(or the target of a connected device), runs the per-target operation
fail-fast, and reports any failure as one line naming its target.

Modules:
    app: Typer application and CLI entry point.
    executor: Per-command flow shared by every platform.
    dispatch: Multi-target dispatch with per-target failure attribution.
    env: Environment validation.
    target: Targets and the per-platform target registry.
    device: Connected devices and interactive selection.
    runner: Toolchain command execution and dry-run recording.
    plugins: The Android and iOS platform plugins.
    config: XDG-aware global config and project file loading.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
