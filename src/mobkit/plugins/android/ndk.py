"""Android NDK toolchain lookup.

cargo links Android libraries with the NDK's prebuilt LLVM toolchain. For a
target triple ``T`` and API level ``N`` the linker is
``<ndk>/toolchains/llvm/prebuilt/<host>/bin/<clang-triple><N>-clang`` and
the archiver is ``llvm-ar`` in the same directory. cargo and the ``cc``
crate read them from ``CARGO_TARGET_<T>_LINKER``, ``CC_<t>`` and ``AR_<t>``.
"""

from __future__ import annotations

import platform
from pathlib import Path
from typing import Optional

_HOST_TAGS = {
    "Linux": "linux-x86_64",
    "Darwin": "darwin-x86_64",
    "Windows": "windows-x86_64",
}


def host_tag(system: Optional[str] = None) -> str:
    """Return the NDK prebuilt directory name for the host OS.

    NDK releases ship a single ``*-x86_64`` toolchain per OS, including on
    Apple silicon hosts.

    Raises:
        ValueError: If the host OS has no prebuilt NDK toolchain.
    """
    system = system or platform.system()
    try:
        return _HOST_TAGS[system]
    except KeyError:
        raise ValueError(f"No prebuilt NDK toolchain for host OS {system!r}") from None


def toolchain_bin(ndk_home: Path, system: Optional[str] = None) -> Path:
    return ndk_home / "toolchains" / "llvm" / "prebuilt" / host_tag(system) / "bin"


def cargo_env(
    ndk_home: Path,
    triple: str,
    clang_triple: str,
    min_sdk_version: int,
    system: Optional[str] = None,
) -> dict[str, str]:
    """Environment variables that point cargo at the NDK linker for *triple*."""
    bin_dir = toolchain_bin(ndk_home, system)
    clang = str(bin_dir / f"{clang_triple}{min_sdk_version}-clang")
    ar = str(bin_dir / "llvm-ar")
    env_triple = triple.replace("-", "_")
    return {
        f"CARGO_TARGET_{env_triple.upper()}_LINKER": clang,
        f"CC_{env_triple}": clang,
        f"AR_{env_triple}": ar,
    }


def ndk_stack(ndk_home: Path) -> Path:
    return ndk_home / "ndk-stack"
