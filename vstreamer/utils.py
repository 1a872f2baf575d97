"""Small helpers for timing, filenames and request parsing."""

from __future__ import annotations

import os
import time

_DIGITS = frozenset("0123456789")


def get_milliseconds() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def get_microseconds() -> int:
    """Microseconds since the Unix epoch."""
    return time.time_ns() // 1_000


def is_numeric(text: str) -> bool:
    """True if ``text`` is non-empty and made of ASCII digits only."""
    return bool(text) and all(ch in _DIGITS for ch in text)


def create_full_filename(folder: str, name: str, ext: str) -> str:
    """Join folder, name and extension as ``folder/name.ext``."""
    if not folder.endswith(("/", "\\")):
        folder += "/"
    return f"{folder}{name}.{ext}"


def check_file_exists(filename: str) -> bool:
    """True if ``filename`` can be stat'ed."""
    try:
        os.stat(filename)
    except (OSError, ValueError):
        return False
    return True


def get_uri_query_string(header: str, operation_name: str) -> str:
    """Return the text after ``operation_name`` up to the space before ``HTTP``.

    Raises ValueError if ``operation_name`` does not occur in ``header``.
    """
    found = header.find(operation_name)
    if found < 0:
        raise ValueError(f"{operation_name!r} not found in request header")
    start = found + len(operation_name)
    protocol = header.find("HTTP")
    if protocol < 0 or protocol - start - 1 < 0:
        return header[start:]
    return header[start : protocol - 1]


def long_to_hex_string(value: int) -> str:
    """Lower-case hexadecimal form of a 64-bit signed integer."""
    if not -(1 << 63) <= value < (1 << 64):
        raise OverflowError("value does not fit in 64 bits")
    return format(value & 0xFFFFFFFFFFFFFFFF, "x")