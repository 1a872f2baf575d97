import socket
import time

import pytest

from vstreamer.mjpeg_server import MjpegServer, frame_part_header, stream_header
from vstreamer.utils import get_milliseconds
from vstreamer.video_device import (
    CaptureBackend,
    CaptureType,
    Codec,
    DeviceType,
    VideoDevice,
    VideoFrame,
)

JPEG = b"\xff\xd8jpeg-bytes\xff\xd9"


class FakeCapture(CaptureBackend):
    def __init__(self, events):
        self.events = events

    def open(self, device):
        device.width = 4
        device.height = 2
        self.events.append("open")
        return True

    def get_frame(self, device, frames, codecs):
        time.sleep(0.005)
        frames[Codec.MJPEG] = VideoFrame(JPEG, get_milliseconds())
        return True

    def close(self):
        self.events.append("close")


def make_device(events):
    return VideoDevice(
        DeviceType.CAMERA,
        capture_factories=[(CaptureType.OPENCV, lambda: FakeCapture(events))],
    )


def read_until(sock, marker, buffer=b""):
    while marker not in buffer:
        chunk = sock.recv(4096)
        if not chunk:
            raise ConnectionError("stream closed")
        buffer += chunk
    head, _, rest = buffer.partition(marker)
    return head + marker, rest


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_stream_header_wire_format():
    header = stream_header()
    assert header.startswith(b"HTTP/1.0 200 OK\r\nConnection: close\r\nServer: vstreamer_server\r\n")
    assert b"Content-Type: multipart/x-mixed-replace;boundary=boundarydonotcross \r\n\r\n" in header
    assert header.endswith(b"--boundarydonotcross \r\n")


def test_frame_part_header():
    assert frame_part_header(10, 1.5) == (
        b"Content-Type: image/jpeg\r\nContent-Length: 10\r\nX-Timestamp: 1.500000\r\n\r\n"
    )


def test_constructor_sets_device_port():
    device = make_device([])
    server = MjpegServer(8081, device)
    assert device.port == 8081
    assert server.started is False


def test_is_timeout():
    device = make_device([])
    device.timeout = 1
    server = MjpegServer(0, device)
    server.last_frame_time = get_milliseconds() - 5000
    assert server.is_timeout() is False
    server.connections_number = 1
    assert server.is_timeout() is True
    server.last_frame_time = get_milliseconds()
    assert server.is_timeout() is False


def test_is_timeout_disabled_without_device_timeout():
    device = make_device([])
    server = MjpegServer(0, device)
    server.connections_number = 1
    server.last_frame_time = 0
    assert device.timeout == -1
    assert server.is_timeout() is False


def test_serve_client_on_dead_socket_restores_count():
    server = MjpegServer(0, make_device([]))
    left, right = socket.socketpair()
    right.close()
    left.close()
    server.serve_client(left)
    assert server.connections_number == 0
    assert server.last_connection_time > 0


def test_client_receives_frames():
    events = []
    device = make_device(events)
    with MjpegServer(0, device) as server:
        assert device.server_started is True
        assert device.port == server.port
        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as client:
            head, rest = read_until(client, b"--boundarydonotcross \r\n")
            assert head == stream_header()
            part, rest = read_until(client, b"\r\n\r\n", rest)
            assert part.startswith(b"Content-Type: image/jpeg\r\n")
            length_line = [line for line in part.split(b"\r\n") if line.startswith(b"Content-Length:")]
            assert int(length_line[0].split(b":")[1]) == len(JPEG)
            body, rest = read_until(client, b"\r\n--boundarydonotcross \r\n", rest)
            assert body == JPEG + b"\r\n--boundarydonotcross \r\n"
            assert server.connections_number == 1
        assert wait_for(lambda: server.connections_number == 0)
    assert device.server_started is False
    assert device.video_cap_opened is False
    assert events[-1] == "close"


def test_recording_keeps_capture_running_until_stop():
    events = []
    device = make_device(events)
    device.is_recording_active = True
    server = MjpegServer(0, device)
    server.start()
    try:
        assert wait_for(lambda: device.video_cap_opened)
        assert wait_for(lambda: server.last_frame_time > 0)
    finally:
        server.stop()
    assert device.video_cap_opened is False
    assert "open" in events
    assert events[-1] == "close"


def test_start_twice_is_an_error():
    server = MjpegServer(0, make_device([]))
    server.start()
    try:
        with pytest.raises(RuntimeError):
            server.start()
    finally:
        server.stop()
    assert server.started is False