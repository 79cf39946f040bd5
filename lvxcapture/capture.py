"""Coordination of a capture session: device discovery, extrinsics and frame recording."""

from __future__ import annotations

import threading
import time
from typing import Iterable

from lvxcapture.lvx import (
    DEFAULT_FRAME_DURATION,
    BasePackDetail,
    LvxDeviceInfo,
    LvxFileWriter,
)

DEVICE_WAIT_WINDOW = 2.0
DEVICE_WAIT_SLACK = 0.05


class BroadcastCollector:
    """Collects the broadcast codes of devices announcing themselves, once each."""

    def __init__(self) -> None:
        self._codes: list[str] = []
        self._cond = threading.Condition()

    @property
    def codes(self) -> list[str]:
        """Codes received so far, in order of arrival."""
        with self._cond:
            return list(self._codes)

    def add(self, code: str) -> bool:
        """Record a received code; return True if it had not been seen before."""
        with self._cond:
            if code in self._codes:
                return False
            self._codes.append(code)
            self._cond.notify_all()
            return True

    def wait_until_quiet(
        self, window: float = DEVICE_WAIT_WINDOW, slack: float = DEVICE_WAIT_SLACK
    ) -> list[str]:
        """Block until no new device has arrived for about window seconds; return the codes."""
        last_time = time.monotonic()
        while True:
            with self._cond:
                self._cond.wait(window)
            now = time.monotonic()
            if now - last_time + slack >= window:
                return self.codes
            last_time = now

    def codes_to_connect(self, wanted: Iterable[str] = ()) -> list[str]:
        """Received codes to connect: all of them, or only those wanted if any are given."""
        wanted = list(wanted)
        return [code for code in self.codes if not wanted or code in wanted]


class ExtrinsicCollector:
    """Gathers device blocks into a writer until every expected device has reported."""

    def __init__(self, writer: LvxFileWriter, expected: int) -> None:
        self.writer = writer
        self.expected = expected
        self._finished = False
        self._cond = threading.Condition()

    @property
    def finished(self) -> bool:
        """True once every expected device block has been added."""
        with self._cond:
            return self._finished

    def add(self, info: LvxDeviceInfo) -> bool:
        """Add a device block; return True if this completed the set."""
        with self._cond:
            self.writer.add_device_info(info)
            if not self._finished and self.writer.device_count >= self.expected:
                self._finished = True
                self._cond.notify_all()
                return True
            return False

    def wait(self, timeout: float | None = None) -> bool:
        """Block until all blocks have arrived or timeout passes; return whether finished."""
        with self._cond:
            return self._cond.wait_for(lambda: self._finished, timeout)


class PacketBuffer:
    """Thread-safe holding area for packets between frames."""

    def __init__(self) -> None:
        self._packets: list[BasePackDetail] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._packets)

    def push(self, pack: BasePackDetail) -> None:
        """Queue a packet for the next frame."""
        with self._lock:
            self._packets.append(pack)

    def take(self, timeout: float = 0.0) -> list[BasePackDetail]:
        """Wait out timeout seconds, then remove and return every queued packet."""
        if timeout > 0:
            time.sleep(timeout)
        with self._lock:
            packets, self._packets = self._packets, []
        return packets


def record_frames(
    buffer: PacketBuffer,
    writer: LvxFileWriter,
    frame_count: int,
    frame_duration: int = DEFAULT_FRAME_DURATION,
) -> int:
    """Write up to frame_count frames, one every frame_duration milliseconds.

    Recording stops early at the first frame with no packets. Returns the
    number of frames written.
    """
    saved = 0
    period = frame_duration / 1000.0
    last_time = time.monotonic()
    for _ in range(frame_count):
        packets = buffer.take(period - (time.monotonic() - last_time))
        last_time = time.monotonic()
        if not packets:
            break
        writer.save_frame(packets)
        saved += 1
    return saved