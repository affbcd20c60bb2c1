"""Device enumeration through ``ios-deploy``.

With ``--json``, ``ios-deploy --detect`` writes a stream of concatenated
(not newline-delimited) JSON objects, one per event. Each
``DeviceDetected`` event carries a ``Device`` object::

    {"Event": "DeviceDetected", "Interface": "USB",
     "Device": {"DeviceIdentifier": "00008030-...", "DeviceName": "Ada's iPhone",
                "modelName": "iPhone 11", "modelArch": "arm64e"}}

When nothing is connected it exits non-zero after the timeout and reports
"Timed out waiting for device"; that case is an empty list, not an error.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

from mobkit.device import Device
from mobkit.env import Environment
from mobkit.exceptions import DeviceListError
from mobkit.runner import CommandError, CommandRunner
from mobkit.target import Target

DETECTED = "DeviceDetected"
TIMEOUT_MARKER = "Timed out waiting for device"

_decoder = json.JSONDecoder()


def parse_events(output: str) -> list[dict[str, Any]]:
    """Decode the concatenated JSON objects in *output*.

    Raises:
        ValueError: If the stream holds something other than JSON objects.
    """
    events = []
    index = 0
    length = len(output)
    while True:
        while index < length and output[index].isspace():
            index += 1
        if index >= length:
            return events
        event, index = _decoder.raw_decode(output, index)
        if not isinstance(event, dict):
            raise ValueError(f"Expected a JSON object, got {type(event).__name__}")
        events.append(event)


def parse_devices(
    events: list[dict[str, Any]],
    target_for_arch: Callable[[str], Optional[Target]],
) -> list[Device]:
    """Build devices from ``DeviceDetected`` events, in event order.

    Raises:
        ValueError: If a detection event has no device identifier.
    """
    devices = []
    for event in events:
        if event.get("Event") != DETECTED:
            continue
        info = event.get("Device") or {}
        udid = info.get("DeviceIdentifier")
        if not udid:
            raise ValueError("DeviceDetected event without a DeviceIdentifier")
        arch = info.get("modelArch", "")
        devices.append(
            Device(
                id=udid,
                name=info.get("DeviceName") or udid,
                model=info.get("modelName", ""),
                arch=arch,
                target=target_for_arch(arch),
            )
        )
    return devices


def device_list(
    env: Environment,
    runner: CommandRunner,
    target_for_arch: Callable[[str], Optional[Target]],
) -> list[Device]:
    """List connected iOS devices.

    Raises:
        DeviceListError: If ``ios-deploy`` failed or printed malformed JSON.
    """
    command = [env.tool("ios-deploy"), "--detect", "--timeout", "1", "--no-wifi", "--json"]
    result = runner.run(command, env=env.child_env(), check=False)
    timed_out = not result.ok and (
        TIMEOUT_MARKER in result.stdout or TIMEOUT_MARKER in result.stderr
    )
    try:
        devices = parse_devices(parse_events(result.stdout), target_for_arch)
    except ValueError as exc:
        if timed_out:
            return []
        raise DeviceListError(f"Failed to parse ios-deploy output: {exc}") from exc
    if result.ok or devices or timed_out:
        return devices
    failure = CommandError(result)
    raise DeviceListError(str(failure)) from failure
