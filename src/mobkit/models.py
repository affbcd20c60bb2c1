"""Canonical Pydantic models and enums shared across mobkit modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON:
    :class:`OutputConfig` and :class:`GlobalConfig` live in the user's config
    directory; :class:`AppConfig`, :class:`AndroidConfig`, :class:`IosConfig`
    and :class:`ProjectConfig` come from the project's ``mobkit.json``.

**Selector enums** -- values chosen on the command line:
    :class:`Profile` (debug/release) and :class:`NoiseLevel`.

Runtime handles (environment, targets, devices) are frozen dataclasses in
their own modules; they are never persisted.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Selectors ---


class Profile(str, enum.Enum):
    """Build configuration selector."""

    DEBUG = "debug"
    RELEASE = "release"

    @property
    def is_release(self) -> bool:
        return self is Profile.RELEASE

    @property
    def cargo_args(self) -> list[str]:
        """Extra ``cargo`` arguments for this profile."""
        return ["--release"] if self.is_release else []

    @property
    def configuration(self) -> str:
        """Capitalised name used by Gradle tasks and Xcode configurations."""
        return self.value.capitalize()


class NoiseLevel(str, enum.Enum):
    """How much toolchain output the operator wants to see.

    ``LOUD`` passes ``-v`` to cargo and streams toolchain output to the
    terminal instead of capturing it.
    """

    POLITE = "polite"
    LOUD = "loud"

    @property
    def is_loud(self) -> bool:
        return self is NoiseLevel.LOUD

    @property
    def cargo_args(self) -> list[str]:
        return ["-v"] if self.is_loud else []


# --- Global config ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/mobkit/config.json``.

    Loaded and saved by :func:`~mobkit.config.load_global_config` and
    :func:`~mobkit.config.save_global_config`. Fields here have the lowest
    precedence and can be overridden by environment variables or CLI flags.
    """

    default_profile: Profile = Field(
        default=Profile.DEBUG, description="Profile used when --release is absent"
    )
    interactive: bool = Field(
        default=True, description="Allow prompting for a device when several are connected"
    )
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Project config ---


class AppConfig(BaseModel):
    """Identity of the app being built.

    Example::

        AppConfig(name="hello-world", domain="example.com")
    """

    name: str = Field(description="App name; also the default Rust crate name")
    domain: str = Field(
        default="example.com", description="Reverse-DNS root for bundle/package ids"
    )
    lib_name: Optional[str] = Field(
        default=None, description="Rust library name if it differs from the app name"
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("app name must not be empty")
        return value

    @property
    def library(self) -> str:
        """Rust library name with dashes normalised the way cargo does."""
        return (self.lib_name or self.name).replace("-", "_")

    @property
    def identifier(self) -> str:
        """Reverse-DNS identifier, e.g. ``com.example.hello_world``."""
        reversed_domain = ".".join(reversed(self.domain.split(".")))
        return f"{reversed_domain}.{self.name.replace('-', '_')}"


class AndroidConfig(BaseModel):
    """Android settings from the ``android`` section of ``mobkit.json``."""

    min_sdk_version: int = Field(default=24, description="NDK API level to link against")
    project_dir: str = Field(
        default="gen/android", description="Gradle project directory, relative to the root"
    )
    activity: str = Field(
        default="android.app.NativeActivity", description="Activity started by `run`"
    )


class IosConfig(BaseModel):
    """iOS settings from the ``ios`` section of ``mobkit.json``."""

    project_dir: str = Field(
        default="gen/apple", description="Xcode project directory, relative to the root"
    )
    scheme: Optional[str] = Field(
        default=None, description="Xcode scheme; defaults to '<app name>_iOS'"
    )
    development_team: Optional[str] = None


class ProjectConfig(BaseModel):
    """Project configuration loaded from ``mobkit.json``.

    ``root`` is the directory the file was found in. It is not serialised;
    :func:`~mobkit.config.load_project_config` fills it in.

    Unknown sections are preserved in ``model_extra`` so newer files still
    load with an older mobkit.
    """

    model_config = ConfigDict(extra="allow")

    app: AppConfig
    android: AndroidConfig = Field(default_factory=AndroidConfig)
    ios: IosConfig = Field(default_factory=IosConfig)
    root: Path = Field(default_factory=Path.cwd, exclude=True)

    @property
    def android_dir(self) -> Path:
        return self.root / self.android.project_dir

    @property
    def ios_dir(self) -> Path:
        return self.root / self.ios.project_dir

    @property
    def ios_scheme(self) -> str:
        return self.ios.scheme or f"{self.app.name}_iOS"
