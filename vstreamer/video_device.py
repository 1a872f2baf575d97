"""Video devices: capture back-ends, frame sinks and the device state machine."""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from .utils import create_full_filename, get_milliseconds, is_numeric

log = logging.getLogger(__name__)

_DEFAULT_STREAM_TIMEOUT = 60
_ERR_OPEN_VIDEO_DEVICE = 1


class DeviceType(enum.Enum):
    """Where a device's video comes from."""

    CAMERA = "camera"
    STREAM = "stream"


class CaptureType(enum.Enum):
    """The capture implementation chosen for a device."""

    NOT_DEFINED = "not_defined"
    FFMPEG = "ffmpeg"
    OPENCV = "opencv"


class Codec(enum.IntFlag):
    """Encodings a capture back-end can be asked to produce."""

    MJPEG = 1
    FLV = 2


class OuterStreamType(enum.Enum):
    """External broadcasting services."""

    USTREAM = "ustream"
    TWITCH = "twitch"
    YOUTUBE = "youtube"


class OuterStreamState(enum.Enum):
    """State of an external broadcast."""

    DISABLED = "disabled"
    NOT_AVAILABLE = "not_available"
    PENDING = "pending"
    RUNNING = "running"
    ERROR = "error"


_ACTIVE_STATES = (OuterStreamState.RUNNING, OuterStreamState.PENDING)


@dataclass
class VideoFrame:
    """One encoded frame and the time it was captured, in milliseconds."""

    data: bytes = b""
    ts: int = 0


class DeviceError(Exception):
    """A device operation failed."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.code = code


class CaptureBackend(ABC):
    """Grabs frames from a device and encodes them."""

    def check(self, device: "VideoDevice") -> bool:
        """Return True if the device can be opened with this back-end."""
        log.debug("Checking device %s", device.name)
        result = self.open(device)
        self.close()
        return result

    @abstractmethod
    def open(self, device: "VideoDevice") -> bool:
        """Start capturing; may set the device's width and height."""

    @abstractmethod
    def get_frame(self, device: "VideoDevice", frames: Dict[Codec, VideoFrame], codecs: Codec) -> bool:
        """Capture one frame and store it in ``frames`` for each codec in ``codecs``."""

    @abstractmethod
    def close(self) -> None:
        """Release the capture resources."""


class FrameSink:
    """Receives encoded frames for a recording or a broadcast.

    This base keeps track of state, target and timing; subclasses that write
    the frames somewhere override :meth:`add_frame` and call it via ``super``.
    """

    extension = "mjpeg"

    def __init__(self) -> None:
        self.stream_type: Optional[OuterStreamType] = None
        self.state = OuterStreamState.DISABLED
        self.state_message = ""
        self.state_code = 0
        self.output_filename = ""
        self.width = 0
        self.height = 0
        self.request_ts = -1
        self.frames_written = 0
        self._first_ts: Optional[int] = None
        self._last_ts: Optional[int] = None

    def init(self, folder: str, filename: str, width: int, height: int, request_ts: int = 0) -> bool:
        """Prepare the sink for a new session; return True on success."""
        self.output_filename = (
            create_full_filename(folder, filename, self.extension) if folder else filename
        )
        self.width = width
        self.height = height
        self.request_ts = request_ts
        self.frames_written = 0
        self._first_ts = None
        self._last_ts = None
        self.set_state(OuterStreamState.RUNNING)
        return True

    def add_frame(self, frames: Dict[Codec, VideoFrame], codec: Codec) -> bool:
        """Take the frame for ``codec`` from ``frames``; False if there is none."""
        frame = frames.get(codec)
        if frame is None or not self.is_process_running():
            return False
        if self._first_ts is None:
            self._first_ts = frame.ts
        self._last_ts = frame.ts
        self.frames_written += 1
        return True

    def close(self) -> None:
        """End the session."""
        if self.is_process_running():
            self.set_state(OuterStreamState.DISABLED)

    def is_process_running(self) -> bool:
        """True while the session is pending or running."""
        return self.state in _ACTIVE_STATES

    def set_state(self, state: OuterStreamState, message: str = "", code: int = 0) -> None:
        """Set the state together with a message and an error code."""
        self.state = state
        self.state_message = message
        self.state_code = code

    def get_recording_duration(self) -> int:
        """Milliseconds between the first and the last frame received."""
        if self._first_ts is None or self._last_ts is None:
            return 0
        return self._last_ts - self._first_ts


CaptureFactory = Tuple[CaptureType, Callable[[], CaptureBackend]]


class VideoDevice:
    """A camera or network stream, with its capture back-end and outputs."""

    def __init__(
        self,
        device_type: DeviceType = DeviceType.CAMERA,
        capture_factories: Iterable[CaptureFactory] = (),
        sink_factory: Callable[[], FrameSink] = FrameSink,
        recorder_factory: Callable[[], FrameSink] = FrameSink,
    ) -> None:
        self.capture_factories = list(capture_factories)
        self.sink_factory = sink_factory
        self.recorder_factory = recorder_factory
        self.name = ""
        self.url = ""
        self.outer_streams: Dict[OuterStreamType, FrameSink] = {}
        self.frames: Dict[Codec, VideoFrame] = {}
        self._reset()
        self.device_type = device_type

    def _reset(self) -> None:
        self.height = 0
        self.width = 0
        self.server_started = False
        self.video_cap_opened = False
        self.cap_type = CaptureType.NOT_DEFINED
        self.is_cap_defined = False
        self.is_recording_active = False
        self.is_outer_streams_active = False
        self.file_sink: Optional[FrameSink] = None
        self.recording_video_id = ""
        self.playback_video_id = ""
        self.playback_starting_pos = 0
        self.playback_speed = 1.0
        self.index = -1
        self.port = -1
        self.timeout = -1
        self.record_request_ts = -1
        self.playback_request_ts = -1
        self.cap_impl: Optional[CaptureBackend] = None
        self.device_type = DeviceType.CAMERA

    def init_stream(self, parameter_string: str) -> None:
        """Configure as a stream from ``name;url[;timeout[;width[;height]]]``."""
        self._reset()
        self.device_type = DeviceType.STREAM
        fields = parameter_string.split(";")
        if fields[-1] == "":
            fields.pop()
        self.name = fields[0] if fields else ""
        self.url = fields[1] if len(fields) > 1 else ""
        if len(fields) > 2:
            if is_numeric(fields[2]):
                self.timeout = int(fields[2])
            else:
                log.info(
                    "Timeout for <%s> value is not numeric or is not set. Set timeout to %d sec.",
                    self.name,
                    _DEFAULT_STREAM_TIMEOUT,
                )
                self.timeout = _DEFAULT_STREAM_TIMEOUT
        if len(fields) > 3:
            if is_numeric(fields[3]):
                self.width = int(fields[3])
            else:
                log.info("Width for <%s> value is not numeric or is not set. Set width to 0.", self.name)
                self.width = 0
        if len(fields) > 4:
            if is_numeric(fields[4]):
                self.height = int(fields[4])
            else:
                log.info("Height for <%s> value is not numeric or is not set. Set height to 0.", self.name)
                self.height = 0

    def init_outer_streams(self) -> None:
        """Create the known broadcast outputs with their initial states."""
        self.add_outer_stream(OuterStreamType.USTREAM, OuterStreamState.DISABLED)
        self.add_outer_stream(OuterStreamType.TWITCH, OuterStreamState.NOT_AVAILABLE)
        self.add_outer_stream(OuterStreamType.YOUTUBE, OuterStreamState.NOT_AVAILABLE)

    def add_outer_stream(self, stream_type: OuterStreamType, state: OuterStreamState) -> FrameSink:
        """Create a broadcast output of ``stream_type`` in ``state``."""
        sink = self.sink_factory()
        sink.stream_type = stream_type
        sink.state = state
        self.outer_streams[stream_type] = sink
        return sink

    def init_video_cap(self) -> bool:
        """Pick the first capture back-end that can open the device."""
        for cap_type, factory in self.capture_factories:
            self.cap_impl = factory()
            if self.cap_impl.check(self):
                self.cap_type = cap_type
                self.is_cap_defined = True
                return True
        return False

    def open(self) -> bool:
        """Open the device, choosing a capture back-end first if needed."""
        if not self.is_cap_defined:
            self.init_video_cap()
        if self.is_cap_defined and self.cap_impl is not None:
            return self.cap_impl.open(self)
        return False

    def get_frame(self) -> Optional[bytes]:
        """Capture a frame, feed it to active outputs and return its MJPEG bytes.

        Returns None if no frame could be captured.
        """
        codecs = Codec(0)
        if self.is_cap_defined:
            codecs |= Codec.MJPEG
            if self.is_outer_streams_active:
                codecs |= Codec.FLV
        if not codecs or self.cap_impl is None:
            return None
        captured = self.cap_impl.get_frame(self, self.frames, codecs)
        if not captured:
            return None
        if self.video_cap_opened:
            for sink in self.outer_streams.values():
                if sink.is_process_running():
                    sink.add_frame(self.frames, Codec.FLV)
        if self.is_recording_active and self.is_cap_defined and self.file_sink is not None:
            self.file_sink.add_frame(self.frames, Codec.MJPEG)
        if self.is_cap_defined:
            frame = self.frames.get(Codec.MJPEG)
            if frame is not None:
                return bytes(frame.data)
        return None

    def close(self) -> None:
        """Close the capture back-end; the next open chooses one again."""
        if self.is_cap_defined:
            if self.cap_impl is not None:
                log.debug("Video device %s: capturing implementation is going to be closed", self.name)
                self.video_cap_opened = False
                self.cap_impl.close()
                log.debug("Video device %s: capturing implementation was closed successfully", self.name)
            self.is_cap_defined = False

    def init_recording(self, folder: str, filename: str, request_ts: int) -> None:
        """Start recording to ``folder``/``filename``; raise DeviceError on failure."""
        self.record_request_ts = request_ts
        if not self.video_cap_opened and not self.open():
            raise DeviceError("record session error")
        self.file_sink = self.recorder_factory()
        self.is_recording_active = self.file_sink.init(
            folder, filename, self.width, self.height, request_ts
        )
        if not self.is_recording_active:
            raise DeviceError("record session error")
        self.recording_video_id = filename

    def set_outer_stream(self, stream_type: OuterStreamType, url: str, is_active: bool) -> None:
        """Start, stop or retarget a broadcast; raise DeviceError on failure."""
        sink = self.outer_streams.get(stream_type)
        if sink is None:
            raise DeviceError(f"outer stream {stream_type} is not initialised")
        if sink.state is OuterStreamState.NOT_AVAILABLE:
            return

        if not self.video_cap_opened and is_active and not self.open():
            sink.set_state(OuterStreamState.ERROR, "Video capturing open error", _ERR_OPEN_VIDEO_DEVICE)
            raise DeviceError(sink.state_message, _ERR_OPEN_VIDEO_DEVICE)

        ok = True
        running = sink.state in _ACTIVE_STATES
        if is_active and not running:
            ok = sink.init("", url, self.width, self.height, 0)
        elif running:
            if not is_active:
                sink.close()
            elif url != sink.output_filename:
                sink.close()
                ok = sink.init("", url, self.width, self.height, 0)

        if not is_active:
            sink.output_filename = url

        self.is_outer_streams_active = any(
            stream.state in _ACTIVE_STATES for stream in self.outer_streams.values()
        )
        if not ok:
            raise DeviceError("Init outer streaming session error")

    def stop_recording(self) -> None:
        """Stop an active recording."""
        if self.is_recording_active:
            self.is_recording_active = False
            self.recording_video_id = ""
            if self.file_sink is not None:
                self.file_sink.close()

    def get_recording_duration(self) -> int:
        """Duration of the current or last recording in milliseconds."""
        if self.file_sink is not None:
            return self.file_sink.get_recording_duration()
        return 0


def _now() -> int:
    return get_milliseconds()