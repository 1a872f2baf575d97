"""An HTTP server that streams a video device as multipart MJPEG."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Optional, Set

from .utils import get_milliseconds
from .video_device import VideoDevice

log = logging.getLogger(__name__)

BOUNDARY = "boundarydonotcross"

_STREAM_HEADERS = (
    "Connection: close\r\n"
    "Server: vstreamer_server\r\n"
    " Cache-Control: no-cache, no-store, must-revalidate, pre-check=0, "
    "post-check=0, max-age=0\r\n"
    " Pragma: no-cache\r\n"
)
_PART_TRAILER = f"\r\n--{BOUNDARY} \r\n".encode("ascii")


def stream_header() -> bytes:
    """Response head that opens a ``multipart/x-mixed-replace`` stream."""
    return (
        "HTTP/1.0 200 OK\r\n"
        f"{_STREAM_HEADERS}"
        f"Content-Type: multipart/x-mixed-replace;boundary={BOUNDARY} \r\n"
        "\r\n"
        f"--{BOUNDARY} \r\n"
    ).encode("ascii")


def frame_part_header(size: int, timestamp: float) -> bytes:
    """Headers of one JPEG part; ``timestamp`` is in seconds."""
    return (
        "Content-Type: image/jpeg\r\n"
        f"Content-Length: {size}\r\n"
        f"X-Timestamp: {timestamp:.6f}\r\n"
        "\r\n"
    ).encode("ascii")


class MjpegServer:
    """Serves the frames of one video device to any number of HTTP clients.

    Capturing runs only while there are clients, a recording or a broadcast,
    and for :attr:`linger_ms` after the last client connected.
    """

    linger_ms = 5000
    open_retry_delay = 0.1
    idle_delay = 0.5
    client_send_timeout = 10.0

    def __init__(self, port: int, device: VideoDevice) -> None:
        self.port = port
        self.device = device
        self.started = False
        self.connections_number = 0
        self.last_connection_time = 0
        self.last_frame_time = 0
        device.port = port

        self._stop = threading.Event()
        self._stop.set()
        self._count_lock = threading.Lock()
        self._frame_cond = threading.Condition()
        self._frame = b""
        self._frame_seq = 0
        self._listener: Optional[socket.socket] = None
        self._clients: Set[socket.socket] = set()
        self._clients_lock = threading.Lock()
        self._capture_thread: Optional[threading.Thread] = None
        self._accept_thread: Optional[threading.Thread] = None

    def __enter__(self) -> "MjpegServer":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        """Bind the port and start the capture and accept threads."""
        if self.started:
            raise RuntimeError(f"MJPEG server on port {self.port} is already started")
        listener = socket.create_server(("", self.port))
        listener.settimeout(0.5)
        self._listener = listener
        self.port = listener.getsockname()[1]
        self.device.port = self.port

        self._stop.clear()
        self.started = True
        log.info("MjpegServer (%d): Starting, waiting for clients to start video capture.", self.port)
        self._capture_thread = threading.Thread(target=self.capture_loop, daemon=True)
        self._capture_thread.start()
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()
        self.device.server_started = True

    def stop(self) -> None:
        """Stop capturing, disconnect all clients and release the port."""
        if not self.started:
            return
        self.started = False
        self._cleanup()

    def _cleanup(self) -> None:
        log.info("MjpegServer (%d): Cleaning up resources allocated by server thread", self.port)
        if not self._stop.is_set():
            self._stop.set()
            log.debug("MjpegServer (%d): Waiting for video thread to finish.", self.port)
            if self._capture_thread is not None and self._capture_thread is not threading.current_thread():
                self._capture_thread.join()
            log.debug("MjpegServer (%d): video thread is finished.", self.port)
        with self._frame_cond:
            self._frame_cond.notify_all()

        if self._listener is not None:
            self._listener.close()
            self._listener = None
        with self._clients_lock:
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            client.close()
        if self._accept_thread is not None and self._accept_thread is not threading.current_thread():
            self._accept_thread.join()
        self.device.server_started = False

    def _accept_loop(self) -> None:
        listener = self._listener
        while listener is not None and not self._stop.is_set():
            try:
                conn, _addr = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(self.client_send_timeout)
            with self._clients_lock:
                self._clients.add(conn)
            threading.Thread(target=self.serve_client, args=(conn,), daemon=True).start()

    def serve_client(self, sock: socket.socket) -> None:
        """Stream to one client until it disconnects or the server stops."""
        with self._count_lock:
            self.connections_number += 1
            count = self.connections_number
        self.last_connection_time = get_milliseconds()
        log.info(
            "MjpegServer (%d): HTTP client connected. Current number of clients: %d",
            self.port,
            count,
        )
        try:
            self.send_stream(sock)
        finally:
            sock.close()
            with self._clients_lock:
                self._clients.discard(sock)
            with self._count_lock:
                self.connections_number -= 1
                count = self.connections_number
            log.info("MjpegServer (%d): Disconnecting HTTP client. Clients left: %d.", self.port, count)

    def send_stream(self, sock: socket.socket) -> None:
        """Send the stream head, then every fresh frame as a multipart part."""
        try:
            sock.sendall(stream_header())
        except OSError:
            return

        seen = self._frame_seq
        while not self._stop.is_set():
            if not self.device.video_cap_opened:
                self._stop.wait(0.1)
                continue
            with self._frame_cond:
                self._frame_cond.wait_for(
                    lambda: self._frame_seq != seen or self._stop.is_set(), timeout=0.5
                )
                if self._frame_seq == seen:
                    continue
                seen = self._frame_seq
                frame = self._frame
            if not frame:
                break
            timestamp = get_milliseconds() / 1000
            try:
                sock.sendall(frame_part_header(len(frame), timestamp))
                sock.sendall(frame)
                sock.sendall(_PART_TRAILER)
            except OSError:
                break

    def _capture_wanted(self) -> bool:
        device = self.device
        return (
            self.connections_number > 0
            or device.is_recording_active
            or device.is_outer_streams_active
            or get_milliseconds() - self.last_connection_time < self.linger_ms
        )

    def capture_loop(self) -> None:
        """Capture frames while anyone needs them; publish each to the clients."""
        device = self.device
        while not self._stop.is_set():
            if (
                self.connections_number == 0
                and not device.is_recording_active
                and not device.is_outer_streams_active
            ):
                # Keep the timeout clock running even before the first frame.
                self.last_frame_time = get_milliseconds()

            if not self._capture_wanted():
                if device.video_cap_opened:
                    device.close()
                device.video_cap_opened = False
                self._stop.wait(self.idle_delay)
                continue

            if not device.video_cap_opened:
                log.debug("MjpegServer (%d): Start opening", self.port)
                if not device.open():
                    self._stop.wait(self.open_retry_delay)
                    continue
                device.video_cap_opened = True
                log.info(
                    "MjpegServer (%d): Start capturing, connections number = %d, recording is %s",
                    self.port,
                    self.connections_number,
                    "on" if device.is_recording_active else "off",
                )

            frame = device.get_frame()
            if frame is not None:
                self.last_frame_time = get_milliseconds()
                with self._frame_cond:
                    self._frame = frame
                    self._frame_seq += 1
                    self._frame_cond.notify_all()
            else:
                log.info("MjpegServer (%d): Something wrong happened while capturing.", self.port)
                device.close()
                device.video_cap_opened = False

        if device.video_cap_opened:
            device.close()
        log.debug("MjpegServer (%d): Left video stream", self.port)
        with self._frame_cond:
            self._frame_cond.notify_all()
        device.video_cap_opened = False

    def is_timeout(self) -> bool:
        """True if clients are waiting and no frame came within the device timeout."""
        timeout = self.device.timeout
        if timeout > 0 and self.connections_number > 0:
            if (get_milliseconds() - self.last_frame_time) // 1000 > timeout:
                log.debug("MjpegServer (%d): Timeout occurred.", self.port)
                return True
        return False