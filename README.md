# vstreamer

A small video streaming library. It lists video capture devices, opens them
through pluggable capture backends and serves each one to HTTP clients as a
`multipart/x-mixed-replace` MJPEG stream. A device can also pass its frames
to a recorder and to outer broadcast streams through pluggable frame sinks.

The package has no dependencies outside the standard library.

## Modules

- `vstreamer.json_format`: compact JSON output (`FastWriter`, with
  `enable_yaml_compatibility()`), the `Commented` wrapper for attaching
  comments to values, and the helpers `value_to_string`,
  `value_to_quoted_string` and `normalize_eol`. Object members are written in
  sorted key order.
- `vstreamer.json_styled`: indented JSON output (`StyledWriter`,
  `StyledStreamWriter`, `to_styled_string`), including comments from
  `Commented` values.
- `vstreamer.utils`: clock helpers (`get_milliseconds`, `get_microseconds`)
  and `is_numeric`, `create_full_filename`, `check_file_exists`,
  `get_uri_query_string`, `long_to_hex_string`.
- `vstreamer.http`: plain HTTP/1.0 status responses. `build_response` returns
  the bytes; `send_code` sends them on a socket and closes it. Codes 200, 400
  and 500 are answered as such, any other code as 501 Not Implemented.
- `vstreamer.video`: device discovery (`VstreamerParameters`,
  `get_autodetected_device_list`, `get_device_list`).
- `vstreamer.video_device`: `VideoDevice`, the `CaptureBackend` interface it
  drives, the `FrameSink` base for recordings and broadcasts, `VideoFrame`,
  `DeviceError` and the enums `DeviceType`, `CaptureType`, `Codec`,
  `OuterStreamType` and `OuterStreamState`.
- `vstreamer.mjpeg_server`: `MjpegServer`, which captures frames from one
  device and streams them to every connected client, plus the
  `stream_header` and `frame_part_header` helpers.

## Examples

Formatting values for JSON:

```python
from vstreamer.json_format import FastWriter, value_to_string

value_to_string(2.0)                               # "2.0"
value_to_string(True)                              # "true"
FastWriter(yaml_compatible=False).write([1, 2])    # "[1,2]\n"
```

Pretty-printing a document:

```python
from vstreamer.json_styled import to_styled_string

print(to_styled_string({"devices": ["/dev/video0"], "port": 8083}))
```

Small helpers:

```python
from vstreamer.utils import create_full_filename, is_numeric, long_to_hex_string

create_full_filename("videos", "clip", "avi")   # "videos/clip.avi"
is_numeric("123")                               # True
long_to_hex_string(255)                         # "ff"
```

## Devices and streaming

`get_autodetected_device_list()` returns `/dev/<name>` for every entry under
`/sys/class/video4linux` whose name contains `video` (an empty list where that
directory does not exist). `get_device_list(params)` merges those names with
`params.allowed_devices`, drops `params.excluded_devices` and returns a
numbered `VideoDevice` of type `DeviceType.CAMERA` for each; a different
detector can be passed as the second argument. A network stream is configured
with `VideoDevice.init_stream("name;url;timeout;width;height")`.

A `VideoDevice` captures only through the `CaptureBackend` factories given to
it as `capture_factories`; `open()` picks the first one whose `check()`
succeeds. `get_frame()` returns the MJPEG bytes of one frame, or `None`.
`init_recording()` and `set_outer_stream()` raise `DeviceError` on failure.

`MjpegServer(port, device)` binds the port on `start()` (port 0 picks a free
one and updates `port`), captures while clients, a recording or a broadcast
need frames, and streams each new frame to every client. `stop()` disconnects
the clients and releases the port; the server is also a context manager.

## What it does not do

- It has no command-line program and no control server: nothing reads a
  configuration file or starts servers for detected devices by itself.
- It ships no capture backend. Grabbing and JPEG-encoding frames from a camera
  or a network stream is up to a `CaptureBackend` subclass you provide.
- The `FrameSink` base tracks state, target name and timing of recordings and
  broadcasts, but writes no files and sends nothing over the network;
  subclasses do that.
- Device discovery reads the Linux video4linux directory only.