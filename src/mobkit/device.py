"""Connected devices: records, interactive selection, and target derivation.

Platform plugins enumerate devices with their own tools (``adb``,
``ios-deploy``) and return :class:`Device` records in the order the tool
reported them. This module turns such a list into one chosen device:

* zero devices -> :class:`~mobkit.exceptions.NoDevicesDetectedError`;
* one device -> selected without asking;
* several -> numbered list on stderr and a prompt for the index.

:func:`detect_target` derives a build target from the chosen device. The
dispatcher uses it as the fallback when no target selector was given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import typer

from mobkit.exceptions import (
    DeviceDetectionError,
    DeviceError,
    DeviceListError,
    DevicePromptError,
    NoDevicesDetectedError,
)
from mobkit.output import choices
from mobkit.target import Target

logger = logging.getLogger(__name__)

ListDevices = Callable[[], list["Device"]]
Prompt = Callable[[int], int]


@dataclass(frozen=True)
class Device:
    """A connected physical or virtual device.

    Attributes:
        id: Serial number (Android) or UDID (iOS).
        name: Human-readable device name.
        model: Model or product string reported by the tool.
        arch: Architecture (or ABI) the device reports.
        target: Registry target matching the device's architecture, or
            ``None`` if the architecture is not one mobkit builds for.
    """

    id: str
    name: str
    model: str = ""
    arch: str = ""
    target: Optional[Target] = None

    def __str__(self) -> str:
        label = f"{self.name} ({self.model})" if self.model else self.name
        return label if self.name == self.id else f"{label} [{self.id}]"

    def to_row(self) -> list[str]:
        return [self.name, self.id, self.model, self.target.name if self.target else "-"]


def _prompt_index(count: int) -> int:
    return typer.prompt(f"Enter device index (0-{count - 1})", type=int)


def select_device(
    devices: Sequence[Device],
    *,
    platform: str,
    interactive: bool = True,
    prompt: Optional[Prompt] = None,
) -> Device:
    """Pick one device from *devices*.

    Args:
        devices: Devices in the order the enumeration tool reported them.
        platform: Display name for messages.
        interactive: Whether the operator may be prompted.
        prompt: Reads the chosen index; defaults to a Typer prompt.

    Raises:
        NoDevicesDetectedError: If *devices* is empty.
        DevicePromptError: If several devices are connected and the choice
            could not be read (prompts disabled, end of input, abort, or an
            index outside the list).
    """
    if not devices:
        raise NoDevicesDetectedError(platform)
    if len(devices) == 1:
        logger.debug("Auto-selected the only connected device: %s", devices[0])
        return devices[0]
    if not interactive:
        raise DevicePromptError(
            f"{len(devices)} devices are connected and prompts are disabled"
        )

    choices([str(device) for device in devices])
    read = prompt or _prompt_index
    try:
        index = read(len(devices))
    except (EOFError, typer.Abort, OSError) as exc:
        raise DevicePromptError(str(exc) or "no input was provided") from exc
    if not 0 <= index < len(devices):
        raise DevicePromptError(f"{index} is not one of the listed devices")
    return devices[index]


def detect_device(
    list_devices: ListDevices,
    *,
    platform: str,
    interactive: bool = True,
    prompt: Optional[Prompt] = None,
    target: Optional[Target] = None,
) -> Device:
    """Enumerate devices and select one.

    Args:
        list_devices: The platform's enumeration call.
        platform: Display name for messages.
        interactive: Whether the operator may be prompted.
        prompt: Optional prompt override.
        target: When given, only devices running this target are offered.

    Raises:
        DeviceDetectionError: If enumeration failed.
        NoDevicesDetectedError: If no (matching) device is connected.
        DevicePromptError: If the choice could not be read.
    """
    try:
        devices = list_devices()
    except DeviceListError as exc:
        raise DeviceDetectionError(platform, exc) from exc
    if target is not None:
        devices = [device for device in devices if device.target == target]
    return select_device(devices, platform=platform, interactive=interactive, prompt=prompt)


def detect_target(
    list_devices: ListDevices,
    *,
    platform: str,
    interactive: bool = True,
    prompt: Optional[Prompt] = None,
) -> Optional[Target]:
    """Return the target of a detected device, or ``None`` if none is usable.

    Any device failure here only means "no device-derived target"; the
    caller falls back to the registry default.
    """
    try:
        device = detect_device(
            list_devices, platform=platform, interactive=interactive, prompt=prompt
        )
    except DeviceError as exc:
        logger.debug("No device-derived target: %s", exc)
        return None
    if device.target is None:
        logger.debug("Device %s runs an architecture with no registered target", device)
    return device.target
