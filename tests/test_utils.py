import time

import pytest

from vstreamer import utils


def test_milliseconds_close_to_wall_clock():
    before = int(time.time() * 1000)
    value = utils.get_milliseconds()
    after = int(time.time() * 1000)
    assert before - 1 <= value <= after + 1


def test_microseconds_consistent_with_milliseconds():
    ms = utils.get_milliseconds()
    us = utils.get_microseconds()
    assert abs(us // 1000 - ms) < 1000


@pytest.mark.parametrize(
    "text, expected",
    [("123", True), ("0", True), ("", False), ("12a", False), ("-1", False), ("1.5", False), (" 1", False)],
)
def test_is_numeric(text, expected):
    assert utils.is_numeric(text) is expected


@pytest.mark.parametrize("folder", ["/tmp/videos", "/tmp/videos/"])
def test_create_full_filename_slash(folder):
    assert utils.create_full_filename(folder, "clip", "avi") == "/tmp/videos/clip.avi"


def test_create_full_filename_backslash_kept():
    assert utils.create_full_filename("C:\\videos\\", "clip", "avi") == "C:\\videos\\clip.avi"


def test_check_file_exists(tmp_path):
    path = tmp_path / "present.txt"
    path.write_text("x")
    assert utils.check_file_exists(str(path)) is True
    assert utils.check_file_exists(str(tmp_path / "missing.txt")) is False
    assert utils.check_file_exists(str(tmp_path)) is True


def test_uri_query_string():
    header = "GET /start?name=cam HTTP/1.1\r\nHost: localhost\r\n"
    assert utils.get_uri_query_string(header, "/start?") == "name=cam"


def test_uri_query_string_without_protocol():
    assert utils.get_uri_query_string("GET /start?id=3", "/start?") == "id=3"


def test_uri_query_string_missing_operation():
    with pytest.raises(ValueError):
        utils.get_uri_query_string("GET /other HTTP/1.1", "/start?")


def test_hex_string_values():
    assert utils.long_to_hex_string(255) == "ff"
    assert utils.long_to_hex_string(0) == "0"
    assert utils.long_to_hex_string(-1) == "f" * 16


@pytest.mark.parametrize("value", [1, 10, 4096, 123456789, (1 << 63) - 1])
def test_hex_string_round_trip(value):
    assert int(utils.long_to_hex_string(value), 16) == value


def test_hex_string_overflow():
    with pytest.raises(OverflowError):
        utils.long_to_hex_string(1 << 64)