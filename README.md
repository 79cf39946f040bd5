# lvxcapture

A library for recording LiDAR point cloud packets into the LVX file format,
reading LVX files back, loading per-device extrinsic parameters from XML,
decoding extended Cartesian points and exporting them as binary PLY.

It has no dependencies outside the standard library.

## Modules

### `lvxcapture.lvx`

- `DataType`: the point data layouts (`CARTESIAN`, `SPHERICAL`,
  `EXTEND_CARTESIAN`, ..., `TRIPLE_EXTEND_SPHERICAL`), each with
  `point_count`, `point_size` and `payload_size`.
- `EthPacket`: a packet as received from a device.
- `make_pack_detail(packet, device_index)` turns an `EthPacket` into the
  `BasePackDetail` stored in a frame, keeping exactly the payload size of its
  data type. It raises `ValueError` for an unknown data type, a payload that
  is too short, or a timestamp that is not 8 bytes.
- `LvxDeviceInfo`, `BasePackDetail` and `FrameHeader` are the on-disk records;
  each has `pack()` giving its bytes.
- `LvxFileWriter(path, frame_duration=50)` opens the file for writing.
  Register devices with `add_device_info(info)`, write the headers and the
  device table with `write_header()` (at most 255 devices), then write frames
  with `save_frame(packets)`, which returns the frame's `FrameHeader`. It is a
  context manager; `close()` closes the file.
- `read_lvx(path)` reads a file back into an `LvxFile` (`version`,
  `frame_duration`, `devices`, `frames`) and raises `ValueError` on a file
  that is not LVX or is truncated or corrupt.
- `default_lvx_filename(now=None)` gives a name such as
  `2020-01-02_03-04-05.lvx` from the local time.

### `lvxcapture.extrinsic`

`parse_extrinsic_xml(source, broadcast_code, device_type, device_index)`
reads a document whose root is `<Livox>` and whose `<Device>` elements hold
a broadcast code as text and `roll`, `pitch`, `yaw`, `x`, `y`, `z` as
attributes. `source` is a path or an open file. It returns an
`LvxDeviceInfo` with `extrinsic_enable` set, and raises `LookupError` if the
root is not `<Livox>` or no device matches.

### `lvxcapture.ply`

- `decode_points(raw_point)` decodes up to 96 extended Cartesian points of one
  payload into `PlyPoint` values: coordinates converted from millimetres to
  metres, reflectivity used for the red and blue channels, green zero.
- `write_ply_binary(path, points)` writes a little-endian binary PLY file and
  returns the number of points written.
- `ply_filename(broadcast_codes, now=None)` is `<code>.ply` when exactly one
  code is given, otherwise a local-time name ending in `.ply`.

### `lvxcapture.options`

`parse_options(argv=None)` reads `-c/--code` (codes joined by `&`),
`-l/--log`, `-t/--time` (seconds, default 10), `-p/--param` and
`-h/--help` into an `Options` value. Parsing stops at `--` or the first
non-option argument; an unknown option or a missing argument raises
`OptionsError`. `help_text()` returns the usage text, and
`lvx_filename(broadcast_codes, now=None)` is `<code>.lvx` for a single code,
otherwise the timestamped default.

### `lvxcapture.capture`

- `BroadcastCollector` records each broadcast code once (`add`), waits with
  `wait_until_quiet(window=2.0, slack=0.05)` until no new device has arrived
  for about the window, and filters with `codes_to_connect(wanted=())`.
- `ExtrinsicCollector(writer, expected)` adds device blocks to a writer and,
  through `wait(timeout=None)`, lets a thread block until all expected blocks
  are in.
- `PacketBuffer` is a thread-safe queue of packets: `push(pack)` and
  `take(timeout=0.0)`, which waits out the timeout and then empties it.
- `record_frames(buffer, writer, frame_count, frame_duration=50)` writes one
  frame per period until the count is reached or a period brings no packets,
  and returns the number of frames written.

## Example

```python
import io
from datetime import datetime

from lvxcapture.extrinsic import parse_extrinsic_xml
from lvxcapture.lvx import LvxFileWriter, default_lvx_filename, read_lvx

xml = io.StringIO(
    '<Livox><Device roll="0.0" pitch="0.0" yaw="90.0" x="0.1" y="0.0" z="0.5">'
    "000000000000001</Device></Livox>"
)
info = parse_extrinsic_xml(xml, "000000000000001", 1, 0)

path = default_lvx_filename(datetime.now())
with LvxFileWriter(path, 50) as writer:
    writer.add_device_info(info)
    writer.write_header()
    writer.save_frame([])  # packets built with make_pack_detail(...)

recording = read_lvx(path)
```

## What it does not do

The package does not talk to devices: it has no network discovery, no
connection handling and no sampling control, and it provides no command-line
program. An application receiving packets feeds them in through
`make_pack_detail`, `PacketBuffer` and the collectors above.

## Tests

The test suite uses pytest and is installed with the `test` extra.