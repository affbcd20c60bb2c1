"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for mobkit:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.mobkit/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~mobkit.models.GlobalConfig` JSON
  file storing defaults (build profile, interactivity, output format).
* **Project config** -- ``mobkit.json`` at the project root, deserialised
  into :class:`~mobkit.models.ProjectConfig`. Found via ``--project``,
  ``$MOBKIT_PROJECT``, or by walking up from the working directory.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and global config, and locates the project file.

Global config writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from mobkit.exceptions import ConfigError
from mobkit.models import GlobalConfig, Profile, ProjectConfig

logger = logging.getLogger(__name__)

_APP_NAME = "mobkit"
_CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_FILENAME = "mobkit.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/mobkit/`` (default ``~/.config/mobkit/``).
    On macOS/Windows: ``~/.mobkit/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/mobkit/`` (default ``~/.local/share/mobkit/``).
    On macOS/Windows: ``~/.mobkit/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~mobkit.models.GlobalConfig`, or a default
        instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project config ---


def find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from *start* (default: cwd) looking for ``mobkit.json``.

    Returns:
        Path to the first file found, or ``None`` at the filesystem root.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / PROJECT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_project_config(path: Path) -> ProjectConfig:
    """Load and validate a project file.

    Args:
        path: Path to ``mobkit.json``, or to the directory containing it.

    Returns:
        The :class:`~mobkit.models.ProjectConfig` with ``root`` set to the
        file's directory.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or fails
            validation.
    """
    if path.is_dir():
        path = path / PROJECT_CONFIG_FILENAME
    if not path.is_file():
        raise ConfigError(f"Project config not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    try:
        project = ProjectConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    project.root = path.parent.resolve()
    logger.debug("Loaded project '%s' from %s", project.app.name, path)
    return project


# --- Precedence resolution ---


def resolve_config(
    cli_project: Optional[str] = None,
    cli_release: Optional[bool] = None,
    need_project: bool = True,
) -> tuple[GlobalConfig, Optional[ProjectConfig]]:
    """Resolve config with full precedence chain.

    Build profile precedence (high to low):
        1. CLI flag (``cli_release``)
        2. Environment variable (``MOBKIT_PROFILE``)
        3. User config (``~/.config/mobkit/config.json``)
        4. Defaults

    The project file comes from ``cli_project``, then ``MOBKIT_PROJECT``,
    then the nearest ``mobkit.json`` above the working directory. A missing
    project file is not an error here: commands that need one check for
    ``None`` themselves. With *need_project* false (device listing) neither
    the project file nor ``MOBKIT_PROFILE`` is read, so a broken project or
    profile setting cannot get in the way.

    Returns:
        A tuple of ``(global_config, project_or_None)``.

    Raises:
        ConfigError: If a file that was found or named is invalid, or
            ``MOBKIT_PROFILE`` holds an unknown profile.
    """
    global_cfg = load_global_config()

    if not need_project:
        return global_cfg, None

    env_profile = os.environ.get("MOBKIT_PROFILE")
    if env_profile:
        try:
            global_cfg.default_profile = Profile(env_profile)
        except ValueError:
            raise ConfigError(
                f"Invalid MOBKIT_PROFILE {env_profile!r}: expected 'debug' or 'release'"
            ) from None
    if cli_release is not None:
        global_cfg.default_profile = Profile.RELEASE if cli_release else Profile.DEBUG

    project_path: Optional[Path] = None
    env_project = os.environ.get("MOBKIT_PROJECT")
    if cli_project is not None:
        project_path = Path(cli_project)
    elif env_project:
        project_path = Path(env_project)
    else:
        project_path = find_project_config()

    project = load_project_config(project_path) if project_path is not None else None
    return global_cfg, project
