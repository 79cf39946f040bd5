import threading
import time

import pytest

from lvxcapture.capture import (
    BroadcastCollector,
    ExtrinsicCollector,
    PacketBuffer,
    record_frames,
)
from lvxcapture.lvx import (
    DataType,
    EthPacket,
    LvxDeviceInfo,
    LvxFileWriter,
    make_pack_detail,
    read_lvx,
)


def _pack(index, fill=0):
    size = DataType.EXTEND_CARTESIAN.payload_size
    packet = EthPacket(data_type=int(DataType.EXTEND_CARTESIAN), data=bytes([fill]) * size)
    return make_pack_detail(packet, index)


def test_broadcast_add_deduplicates():
    collector = BroadcastCollector()
    assert collector.add("AAA") is True
    assert collector.add("BBB") is True
    assert collector.add("AAA") is False
    assert collector.codes == ["AAA", "BBB"]


def test_codes_to_connect_all_when_no_filter():
    collector = BroadcastCollector()
    for code in ("AAA", "BBB", "CCC"):
        collector.add(code)
    assert collector.codes_to_connect([]) == ["AAA", "BBB", "CCC"]


def test_codes_to_connect_filters_by_wanted():
    collector = BroadcastCollector()
    for code in ("AAA", "BBB", "CCC"):
        collector.add(code)
    assert collector.codes_to_connect(["CCC", "AAA", "ZZZ"]) == ["AAA", "CCC"]


def test_codes_to_connect_empty_when_nothing_received():
    assert BroadcastCollector().codes_to_connect(["AAA"]) == []


def test_wait_until_quiet_returns_after_window():
    collector = BroadcastCollector()
    collector.add("AAA")
    start = time.monotonic()
    codes = collector.wait_until_quiet(window=0.1, slack=0.01)
    assert codes == ["AAA"]
    assert time.monotonic() - start >= 0.08


def test_wait_until_quiet_sees_late_arrivals():
    collector = BroadcastCollector()

    def announce():
        time.sleep(0.03)
        collector.add("LATE")

    thread = threading.Thread(target=announce)
    thread.start()
    codes = collector.wait_until_quiet(window=0.2, slack=0.01)
    thread.join()
    assert "LATE" in codes


def test_extrinsic_collector_finishes_at_expected(tmp_path):
    with LvxFileWriter(tmp_path / "a.lvx") as writer:
        collector = ExtrinsicCollector(writer, 2)
        assert collector.add(LvxDeviceInfo(lidar_broadcast_code="AAA")) is False
        assert collector.finished is False
        assert collector.wait(timeout=0.01) is False
        assert collector.add(LvxDeviceInfo(lidar_broadcast_code="BBB")) is True
        assert collector.wait(timeout=0.01) is True
        assert [d.lidar_broadcast_code for d in writer.devices] == ["AAA", "BBB"]


def test_extrinsic_collector_wakes_waiter(tmp_path):
    with LvxFileWriter(tmp_path / "a.lvx") as writer:
        collector = ExtrinsicCollector(writer, 1)
        thread = threading.Thread(
            target=lambda: (time.sleep(0.02), collector.add(LvxDeviceInfo(device_index=3)))
        )
        thread.start()
        assert collector.wait(timeout=2.0) is True
        thread.join()
        assert writer.devices[0].device_index == 3


def test_packet_buffer_take_empties_in_order():
    buffer = PacketBuffer()
    first, second = _pack(0, 1), _pack(1, 2)
    buffer.push(first)
    buffer.push(second)
    assert len(buffer) == 2
    assert buffer.take() == [first, second]
    assert buffer.take() == []
    assert len(buffer) == 0


def test_record_frames_stops_on_empty_frame(tmp_path):
    path = tmp_path / "rec.lvx"
    buffer = PacketBuffer()
    packs = [_pack(0, 5), _pack(1, 6)]
    for pack in packs:
        buffer.push(pack)
    with LvxFileWriter(path, frame_duration=1) as writer:
        writer.add_device_info(LvxDeviceInfo(lidar_broadcast_code="AAA"))
        writer.write_header()
        saved = record_frames(buffer, writer, 5, frame_duration=1)
    assert saved == 1
    contents = read_lvx(path)
    assert len(contents.frames) == 1
    header, stored = contents.frames[0]
    assert header.frame_index == 0
    assert stored == packs


def test_record_frames_with_concurrent_producer(tmp_path):
    path = tmp_path / "rec.lvx"
    buffer = PacketBuffer()
    stop = threading.Event()

    def produce():
        while not stop.is_set():
            buffer.push(_pack(0))
            time.sleep(0.002)

    thread = threading.Thread(target=produce)
    thread.start()
    try:
        with LvxFileWriter(path, frame_duration=20) as writer:
            writer.write_header()
            saved = record_frames(buffer, writer, 3, frame_duration=20)
    finally:
        stop.set()
        thread.join()
    assert saved == 3
    contents = read_lvx(path)
    assert [h.frame_index for h, _ in contents.frames] == [0, 1, 2]
    assert all(packets for _, packets in contents.frames)


def test_record_frames_zero_count_writes_nothing(tmp_path):
    buffer = PacketBuffer()
    buffer.push(_pack(0))
    with LvxFileWriter(tmp_path / "z.lvx") as writer:
        writer.write_header()
        assert record_frames(buffer, writer, 0, frame_duration=1) == 0
    assert read_lvx(tmp_path / "z.lvx").frames == []
    assert len(buffer) == 1