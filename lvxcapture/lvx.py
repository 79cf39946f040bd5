"""Writing and reading of LVX point-cloud recording files."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Iterable

MAGIC_CODE = 0xAC0EA767
SIGNATURE = b"livox_tech"
FILE_VERSION = (1, 1, 0, 0)
MAX_POINT_SIZE = 1500
DEFAULT_FRAME_DURATION = 50
BROADCAST_CODE_SIZE = 16

_PUBLIC_HEADER = struct.Struct("<16s4BI")
_PRIVATE_HEADER = struct.Struct("<IB")
_DEVICE_INFO = struct.Struct("<16s16sBBB6f")
_PACK_HEADER = struct.Struct("<BBBBBIBB8s")
_FRAME_HEADER = struct.Struct("<QQQ")


class DataType(enum.IntEnum):
    """Point data layouts a device may send, with their fixed packet geometry."""

    CARTESIAN = 0
    SPHERICAL = 1
    EXTEND_CARTESIAN = 2
    EXTEND_SPHERICAL = 3
    DUAL_EXTEND_CARTESIAN = 4
    DUAL_EXTEND_SPHERICAL = 5
    IMU = 6
    TRIPLE_EXTEND_CARTESIAN = 7
    TRIPLE_EXTEND_SPHERICAL = 8

    @property
    def point_count(self) -> int:
        """Number of points carried by one packet of this type."""
        return _LAYOUT[self][0]

    @property
    def point_size(self) -> int:
        """Size in bytes of one point of this type."""
        return _LAYOUT[self][1]

    @property
    def payload_size(self) -> int:
        """Size in bytes of the point payload of one packet."""
        count, size = _LAYOUT[self]
        return count * size


_LAYOUT = {
    DataType.CARTESIAN: (100, 13),
    DataType.SPHERICAL: (100, 9),
    DataType.EXTEND_CARTESIAN: (96, 14),
    DataType.EXTEND_SPHERICAL: (96, 10),
    DataType.DUAL_EXTEND_CARTESIAN: (48, 28),
    DataType.DUAL_EXTEND_SPHERICAL: (48, 16),
    DataType.IMU: (1, 24),
    DataType.TRIPLE_EXTEND_CARTESIAN: (30, 42),
    DataType.TRIPLE_EXTEND_SPHERICAL: (30, 22),
}


def _data_type(value: int) -> DataType:
    try:
        return DataType(value)
    except ValueError:
        raise ValueError(f"unknown point data type {value}") from None


def _encode_code(code: str) -> bytes:
    return code.encode("ascii")[:BROADCAST_CODE_SIZE].ljust(BROADCAST_CODE_SIZE, b"\0")


def _decode_code(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("ascii", errors="replace")


@dataclass
class EthPacket:
    """A point-cloud packet as received from a device."""

    data_type: int
    data: bytes
    version: int = 0
    slot: int = 0
    id: int = 0
    rsvd: int = 0
    err_code: int = 0
    timestamp_type: int = 0
    timestamp: bytes = bytes(8)


@dataclass
class LvxDeviceInfo:
    """Per-device block of the LVX file header."""

    lidar_broadcast_code: str = ""
    hub_broadcast_code: str = ""
    device_index: int = 0
    device_type: int = 0
    extrinsic_enable: bool = False
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def pack(self) -> bytes:
        """Serialise this block as it is stored in the file."""
        return _DEVICE_INFO.pack(
            _encode_code(self.lidar_broadcast_code),
            _encode_code(self.hub_broadcast_code),
            self.device_index,
            self.device_type,
            int(bool(self.extrinsic_enable)),
            self.roll,
            self.pitch,
            self.yaw,
            self.x,
            self.y,
            self.z,
        )


def _unpack_device_info(raw: bytes) -> LvxDeviceInfo:
    lidar, hub, index, dtype, enable, roll, pitch, yaw, x, y, z = _DEVICE_INFO.unpack(raw)
    return LvxDeviceInfo(
        lidar_broadcast_code=_decode_code(lidar),
        hub_broadcast_code=_decode_code(hub),
        device_index=index,
        device_type=dtype,
        extrinsic_enable=bool(enable),
        roll=roll,
        pitch=pitch,
        yaw=yaw,
        x=x,
        y=y,
        z=z,
    )


@dataclass
class BasePackDetail:
    """One point packet as stored inside an LVX frame."""

    device_index: int
    data_type: int
    raw_point: bytes
    version: int = 0
    port_id: int = 0
    lidar_index: int = 0
    rsvd: int = 0
    error_code: int = 0
    timestamp_type: int = 0
    timestamp: bytes = bytes(8)

    @property
    def pack_size(self) -> int:
        """Number of bytes this packet occupies in the file."""
        return _PACK_HEADER.size + len(self.raw_point)

    def pack(self) -> bytes:
        """Serialise this packet as it is stored in the file."""
        return (
            _PACK_HEADER.pack(
                self.device_index,
                self.version,
                self.port_id,
                self.lidar_index,
                self.rsvd,
                self.error_code,
                self.timestamp_type,
                self.data_type,
                bytes(self.timestamp),
            )
            + bytes(self.raw_point)
        )


@dataclass
class FrameHeader:
    """Header preceding every frame of packets."""

    current_offset: int
    next_offset: int
    frame_index: int

    def pack(self) -> bytes:
        """Serialise this header as it is stored in the file."""
        return _FRAME_HEADER.pack(self.current_offset, self.next_offset, self.frame_index)


@dataclass
class LvxFile:
    """Contents of an LVX file."""

    version: tuple[int, int, int, int]
    frame_duration: int
    devices: list[LvxDeviceInfo] = field(default_factory=list)
    frames: list[tuple[FrameHeader, list[BasePackDetail]]] = field(default_factory=list)


def make_pack_detail(packet: EthPacket, device_index: int) -> BasePackDetail:
    """Build the stored form of a received packet."""
    data_type = _data_type(packet.data_type)
    payload = bytes(packet.data[: data_type.payload_size])
    if len(payload) < data_type.payload_size:
        raise ValueError(
            f"packet of type {data_type.name} needs {data_type.payload_size} bytes, got {len(payload)}"
        )
    timestamp = bytes(packet.timestamp)
    if len(timestamp) != 8:
        raise ValueError("timestamp must be 8 bytes")
    return BasePackDetail(
        device_index=device_index,
        data_type=int(data_type),
        raw_point=payload,
        version=packet.version,
        port_id=packet.slot,
        lidar_index=packet.id,
        rsvd=packet.rsvd,
        error_code=packet.err_code,
        timestamp_type=packet.timestamp_type,
        timestamp=timestamp,
    )


def default_lvx_filename(now: datetime | None = None) -> str:
    """File name derived from the local time, e.g. 2020-01-02_03-04-05.lvx."""
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S.lvx")


class LvxFileWriter:
    """Writes an LVX file: a header with device blocks, then frames of packets."""

    def __init__(self, path: str | os.PathLike, frame_duration: int = DEFAULT_FRAME_DURATION):
        self.path = path
        self.frame_duration = frame_duration
        self.devices: list[LvxDeviceInfo] = []
        self._file: BinaryIO | None = open(path, "wb")
        self._offset = 0
        self._frame_index = 0

    @property
    def device_count(self) -> int:
        """Number of device blocks registered so far."""
        return len(self.devices)

    def add_device_info(self, info: LvxDeviceInfo) -> None:
        """Register a device block for the header."""
        self.devices.append(info)

    def _out(self) -> BinaryIO:
        if self._file is None:
            raise ValueError("LVX file is closed")
        return self._file

    def write_header(self) -> None:
        """Write the public and private headers and every device block."""
        if len(self.devices) > 0xFF:
            raise ValueError("an LVX file holds at most 255 devices")
        header = _PUBLIC_HEADER.pack(SIGNATURE, *FILE_VERSION, MAGIC_CODE)
        header += _PRIVATE_HEADER.pack(self.frame_duration, len(self.devices))
        header += b"".join(info.pack() for info in self.devices)
        self._out().write(header)
        self._offset += len(header)

    def save_frame(self, packets: Iterable[BasePackDetail]) -> FrameHeader:
        """Write one frame holding the given packets and return its header."""
        packets = list(packets)
        body = b"".join(pack.pack() for pack in packets)
        header = FrameHeader(
            current_offset=self._offset,
            next_offset=self._offset + _FRAME_HEADER.size + len(body),
            frame_index=self._frame_index,
        )
        self._out().write(header.pack() + body)
        self._offset = header.next_offset
        self._frame_index += 1
        return header

    def close(self) -> None:
        """Close the file if it is open."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> LvxFileWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _unpack_packets(data: bytes, start: int, end: int) -> list[BasePackDetail]:
    packets = []
    pos = start
    while pos < end:
        if pos + _PACK_HEADER.size > end:
            raise ValueError("truncated packet header")
        fields = _PACK_HEADER.unpack_from(data, pos)
        index, version, port, lidar, rsvd, err, ts_type, dtype, stamp = fields
        pos += _PACK_HEADER.size
        size = _data_type(dtype).payload_size
        if pos + size > end:
            raise ValueError("truncated packet payload")
        packets.append(
            BasePackDetail(
                device_index=index,
                data_type=dtype,
                raw_point=data[pos : pos + size],
                version=version,
                port_id=port,
                lidar_index=lidar,
                rsvd=rsvd,
                error_code=err,
                timestamp_type=ts_type,
                timestamp=stamp,
            )
        )
        pos += size
    return packets


def read_lvx(path: str | os.PathLike) -> LvxFile:
    """Read an LVX file written by LvxFileWriter."""
    with open(path, "rb") as handle:
        data = handle.read()
    fixed = _PUBLIC_HEADER.size + _PRIVATE_HEADER.size
    if len(data) < fixed:
        raise ValueError("file too short for an LVX header")
    signature, v0, v1, v2, v3, magic = _PUBLIC_HEADER.unpack_from(data, 0)
    if not signature.startswith(SIGNATURE) or magic != MAGIC_CODE:
        raise ValueError("not an LVX file")
    frame_duration, count = _PRIVATE_HEADER.unpack_from(data, _PUBLIC_HEADER.size)
    pos = fixed
    if pos + count * _DEVICE_INFO.size > len(data):
        raise ValueError("truncated device blocks")
    devices = []
    for _ in range(count):
        devices.append(_unpack_device_info(data[pos : pos + _DEVICE_INFO.size]))
        pos += _DEVICE_INFO.size

    frames = []
    while pos < len(data):
        if pos + _FRAME_HEADER.size > len(data):
            raise ValueError("truncated frame header")
        header = FrameHeader(*_FRAME_HEADER.unpack_from(data, pos))
        if header.current_offset != pos or header.next_offset > len(data):
            raise ValueError(f"corrupt frame header at offset {pos}")
        frames.append((header, _unpack_packets(data, pos + _FRAME_HEADER.size, header.next_offset)))
        pos = header.next_offset
    return LvxFile(
        version=(v0, v1, v2, v3),
        frame_duration=frame_duration,
        devices=devices,
        frames=frames,
    )