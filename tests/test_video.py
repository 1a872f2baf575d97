from vstreamer.video import (
    VstreamerParameters,
    get_autodetected_device_list,
    get_device_list,
)
from vstreamer.video_device import DeviceType


def test_autodetect_lists_video_entries(tmp_path):
    for name in ("video1", "video0", "other"):
        (tmp_path / name).mkdir()
    assert get_autodetected_device_list(str(tmp_path)) == ["/dev/video0", "/dev/video1"]


def test_autodetect_missing_directory(tmp_path):
    assert get_autodetected_device_list(str(tmp_path / "absent")) == []


def test_device_list_merges_and_excludes():
    params = VstreamerParameters(
        autodetect=True,
        allowed_devices=["b", "c"],
        excluded_devices=["a"],
        videodevices_timeout=15,
    )
    devices = get_device_list(params, lambda: ["a", "b"])
    assert [d.name for d in devices] == ["b", "c"]
    assert [d.index for d in devices] == [0, 1]
    assert all(d.timeout == 15 for d in devices)
    assert all(d.device_type is DeviceType.CAMERA for d in devices)


def test_no_autodetect_skips_detector():
    calls = []

    def detector():
        calls.append(1)
        return ["x"]

    params = VstreamerParameters(autodetect=False, allowed_devices=["cam", "cam"])
    devices = get_device_list(params, detector)
    assert calls == []
    assert [d.name for d in devices] == ["cam"]


def test_everything_excluded():
    params = VstreamerParameters(allowed_devices=["cam"], excluded_devices=["cam"])
    assert get_device_list(params, lambda: ["cam"]) == []