"""Decoding of extended Cartesian point payloads and export to binary PLY."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from lvxcapture.lvx import DataType

_EXTEND_POINT = struct.Struct("<iiiBB")
_POINTS_PER_PACKET = DataType.EXTEND_CARTESIAN.point_count
_VERTEX = struct.Struct("<fffBBB")

_PLY_HEADER = (
    "ply\n"
    "format binary_little_endian 1.0\n"
    "element vertex {count}\n"
    "property float x\n"
    "property float y\n"
    "property float z\n"
    "property uchar red\n"
    "property uchar green\n"
    "property uchar blue\n"
    "end_header\n"
)


@dataclass(frozen=True)
class PlyPoint:
    """A coloured point in metres."""

    x: float
    y: float
    z: float
    r: int = 0
    g: int = 0
    b: int = 0


def decode_points(raw_point: bytes) -> list[PlyPoint]:
    """Decode the extended Cartesian points of one packet payload.

    Coordinates are stored in millimetres and returned in metres; the
    reflectivity byte is used for the red and blue channels. At most one
    packet's worth of points is decoded, and only complete records.
    """
    data = bytes(raw_point)
    record = _EXTEND_POINT.size
    usable = min(len(data) // record, _POINTS_PER_PACKET) * record
    return [
        PlyPoint(
            x=x / 1000,
            y=y / 1000,
            z=z / 1000,
            r=reflectivity,
            g=0,
            b=reflectivity,
        )
        for x, y, z, reflectivity, _tag in _EXTEND_POINT.iter_unpack(data[:usable])
    ]


def write_ply_binary(path: str | os.PathLike, points: Iterable[PlyPoint]) -> int:
    """Write points to a little-endian binary PLY file and return how many were written."""
    points = list(points)
    body = b"".join(
        _VERTEX.pack(p.x, p.y, p.z, p.r, p.g, p.b) for p in points
    )
    with open(path, "wb") as out:
        out.write(_PLY_HEADER.format(count=len(points)).encode("ascii"))
        out.write(body)
    return len(points)


def ply_filename(broadcast_codes: Sequence[str], now: datetime | None = None) -> str:
    """Name of the PLY output: the device's code if exactly one was requested, else the local time."""
    if len(broadcast_codes) == 1:
        return f"{broadcast_codes[0]}.ply"
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S.ply")