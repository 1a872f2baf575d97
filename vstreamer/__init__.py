"""Video device discovery, capture control, JSON output and MJPEG streaming over HTTP."""

__version__ = "0.1.0"

__all__ = [
    "http",
    "json_format",
    "json_styled",
    "mjpeg_server",
    "utils",
    "video",
    "video_device",
]