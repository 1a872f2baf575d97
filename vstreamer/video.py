"""Discovery of the video devices to serve."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .video_device import DeviceType, VideoDevice

log = logging.getLogger(__name__)

_V4L_ROOT = "/sys/class/video4linux"


@dataclass
class VstreamerParameters:
    """Settings that decide which devices are served."""

    autodetect: bool = True
    allowed_devices: List[str] = field(default_factory=list)
    excluded_devices: List[str] = field(default_factory=list)
    videodevices_timeout: int = -1


def get_autodetected_device_list(root: str = _V4L_ROOT) -> List[str]:
    """Return ``/dev/<name>`` for every video entry under ``root``."""
    try:
        entries = sorted(os.listdir(root))
    except OSError:
        log.debug("Get_device_count: Error opening dir video4linux")
        return []
    return ["/dev/" + entry for entry in entries if "video" in entry]


def get_device_list(
    params: VstreamerParameters,
    detector: Optional[Callable[[], List[str]]] = None,
) -> List[VideoDevice]:
    """Build camera devices from detected, allowed and excluded names."""
    names: List[str] = []
    if params.autodetect:
        names.extend((detector or get_autodetected_device_list)())
    for allowed in params.allowed_devices:
        if allowed not in names:
            names.append(allowed)
    excluded = set(params.excluded_devices)
    names = [name for name in names if name not in excluded]

    devices = []
    for index, name in enumerate(names):
        device = VideoDevice(DeviceType.CAMERA)
        device.name = name
        device.timeout = params.videodevices_timeout
        device.index = index
        devices.append(device)
    return devices