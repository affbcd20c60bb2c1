"""Device enumeration through ``adb``.

``adb devices`` prints one ``<serial>\\t<state>`` line per device after a
``List of devices attached`` header; daemon start-up chatter is prefixed
with ``*``. Only devices in the ``device`` state (authorised and online)
are usable. Each one is then described with ``adb -s <serial> shell
getprop``, whose output is ``[key]: [value]`` lines.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from mobkit.device import Device
from mobkit.env import Environment
from mobkit.exceptions import DeviceListError
from mobkit.runner import CommandError, CommandRunner
from mobkit.target import Target

logger = logging.getLogger(__name__)

_HEADER = "List of devices attached"
_ONLINE = "device"
_PROP_RE = re.compile(r"^\[(?P<key>[^\]]+)\]: \[(?P<value>.*)\]$")

MODEL_PROP = "ro.product.model"
DEVICE_PROP = "ro.product.device"
ABI_PROP = "ro.product.cpu.abi"


def parse_devices(output: str) -> list[str]:
    """Return the serials of online devices in ``adb devices`` *output*.

    Raises:
        ValueError: If a device line does not have a serial and a state.
    """
    serials: list[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("*") or line.startswith(_HEADER):
            continue
        parts = line.split()
        if len(parts) < 2:
            raise ValueError(f"Unexpected line in `adb devices` output: {line!r}")
        serial, state = parts[0], parts[1]
        if state != _ONLINE:
            logger.debug("Skipping device %s in state %s", serial, state)
            continue
        serials.append(serial)
    return serials


def parse_props(output: str) -> dict[str, str]:
    """Parse ``getprop`` output; lines that are not ``[key]: [value]`` are ignored."""
    props = {}
    for line in output.splitlines():
        match = _PROP_RE.match(line.strip())
        if match:
            props[match.group("key")] = match.group("value")
    return props


def adb(env: Environment, serial: str, *args: str) -> list[str]:
    return [env.tool("adb"), "-s", serial, *args]


def device_list(
    env: Environment,
    runner: CommandRunner,
    target_for_abi: Callable[[str], Optional[Target]],
) -> list[Device]:
    """List online devices with their model and build target.

    Raises:
        DeviceListError: If ``adb`` failed or printed something unparseable.
    """
    try:
        result = runner.run([env.tool("adb"), "devices"], env=env.child_env())
        serials = parse_devices(result.stdout)
        devices = []
        for serial in serials:
            props = parse_props(
                runner.run(adb(env, serial, "shell", "getprop"), env=env.child_env()).stdout
            )
            abi = props.get(ABI_PROP, "")
            devices.append(
                Device(
                    id=serial,
                    name=props.get(MODEL_PROP) or serial,
                    model=props.get(DEVICE_PROP, ""),
                    arch=abi,
                    target=target_for_abi(abi),
                )
            )
    except CommandError as exc:
        raise DeviceListError(str(exc)) from exc
    except ValueError as exc:
        raise DeviceListError(f"Failed to parse adb output: {exc}") from exc
    return devices
