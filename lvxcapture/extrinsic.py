"""Extrinsic parameters of a device read from an XML description."""

from __future__ import annotations

import os
import re
import xml.etree.ElementTree as ET
from typing import IO

from lvxcapture.lvx import BROADCAST_CODE_SIZE, LvxDeviceInfo

_FLOAT = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_FIELDS = ("roll", "pitch", "yaw", "x", "y", "z")


def _atof(text: str) -> float:
    """Parse the leading number of text, 0.0 if there is none."""
    match = _FLOAT.match(text)
    return float(match.group()) if match else 0.0


def parse_extrinsic_xml(
    source: str | os.PathLike | IO,
    broadcast_code: str,
    device_type: int,
    device_index: int,
) -> LvxDeviceInfo:
    """Build the device block for broadcast_code from a <Livox><Device .../></Livox> file.

    Raises LookupError if the document has no matching device.
    """
    root = ET.parse(source).getroot()
    if root.tag != "Livox":
        raise LookupError("extrinsic document root is not <Livox>")
    wanted = broadcast_code[:BROADCAST_CODE_SIZE]
    info = None
    for device in root:
        code = (device.text or "").strip()
        if device.tag != "Device" or code[:BROADCAST_CODE_SIZE] != wanted:
            continue
        info = LvxDeviceInfo(
            lidar_broadcast_code=code[:BROADCAST_CODE_SIZE],
            hub_broadcast_code="",
            device_index=device_index,
            device_type=device_type,
            extrinsic_enable=True,
        )
        for name in _FIELDS:
            if name in device.attrib:
                setattr(info, name, _atof(device.attrib[name]))
    if info is None:
        raise LookupError(f"no extrinsic parameters for device {broadcast_code}")
    return info