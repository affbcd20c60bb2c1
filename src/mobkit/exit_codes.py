"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a failure category and is referenced by the
corresponding :class:`~mobkit.exceptions.MobkitError` subclass. CI scripts
can branch on the exit code without parsing stderr; the message text still
distinguishes every individual error kind.

Example::

    $ mobkit ios check arm64 x86_64
    $ echo $?
    6   # EXIT_TOOLCHAIN_FAILURE -- a target's toolchain call failed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""Unknown command, invalid arch, or conflicting selectors."""

EXIT_ENV_FAILURE = 3
"""A required toolchain, SDK path, or device bridge is unavailable."""

EXIT_DEVICE_ERROR = 4
"""Device enumeration or selection failed, or no device was connected."""

EXIT_TARGET_INVALID = 5
"""A requested build target does not exist in the platform registry."""

EXIT_TOOLCHAIN_FAILURE = 6
"""A per-target operation (check, build, run, ...) failed in the toolchain."""

EXIT_INTERRUPTED = 130
"""The operator cancelled the command with Ctrl-C."""
