"""Compact JSON output and the value formatting shared by the JSON writers.

JSON values are plain Python objects: ``None``, ``bool``, ``int``, ``float``,
``str``, ``list`` and ``dict`` with string keys.  A value may be wrapped in
:class:`Commented` to carry comments, which the styled writers emit and the
compact writer ignores.  Object members are always written in sorted key order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

_SIMPLE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@dataclass
class Commented:
    """A JSON value together with the comments attached to it.

    Comments include their delimiters (``//...`` or ``/* ... */``).
    """

    value: Any
    before: Optional[str] = None
    after_on_same_line: Optional[str] = None
    after: Optional[str] = None

    @property
    def has_comment(self) -> bool:
        """True if any comment is attached."""
        return any(
            comment is not None
            for comment in (self.before, self.after_on_same_line, self.after)
        )


def _unwrap(value: Any) -> Any:
    """Strip any :class:`Commented` wrappers from ``value``."""
    while isinstance(value, Commented):
        value = value.value
    return value


def _members(obj: dict) -> list:
    """Return the member names of an object in output order."""
    for key in obj:
        if not isinstance(key, str):
            raise TypeError(f"JSON object keys must be str, not {type(key).__name__}")
    return sorted(obj)


def _is_control(ch: str) -> bool:
    return "\x00" < ch <= "\x1f"


def _format_double(value: float) -> str:
    text = "%#.16g" % value
    if not text.endswith("0"):
        return text
    last_nonzero = len(text) - 1
    while last_nonzero > 0 and text[last_nonzero] == "0":
        last_nonzero -= 1
    pos = last_nonzero
    while pos >= 0:
        ch = text[pos]
        if ch.isdigit():
            pos -= 1
        elif ch == ".":
            # Drop redundant trailing zeros but keep one digit after them.
            return text[: last_nonzero + 2]
        else:
            return text
    return text


def value_to_string(value: Any) -> str:
    """Format a scalar (``bool``, ``int`` or ``float``) as JSON text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_double(value)
    raise TypeError(f"cannot format {type(value).__name__} as a JSON scalar")


def value_to_quoted_string(text: str) -> str:
    """Quote ``text`` as a JSON string, escaping specials and control characters.

    The string ends at its first NUL character; forward slashes are left as they are.
    """
    if not isinstance(text, str):
        raise TypeError(f"expected str, not {type(text).__name__}")
    text = text.split("\x00", 1)[0]
    parts = ['"']
    for ch in text:
        escaped = _SIMPLE_ESCAPES.get(ch)
        if escaped is not None:
            parts.append(escaped)
        elif _is_control(ch):
            parts.append("\\u%04X" % ord(ch))
        else:
            parts.append(ch)
    parts.append('"')
    return "".join(parts)


def normalize_eol(text: str) -> str:
    """Convert DOS (``\\r\\n``) and Mac (``\\r``) line ends to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


class FastWriter:
    """Writes a JSON value on a single line, without comments."""

    def __init__(self, yaml_compatible: bool = False) -> None:
        self.yaml_compatible = yaml_compatible

    def enable_yaml_compatibility(self) -> None:
        """Put a space after each member-name colon."""
        self.yaml_compatible = True

    def write(self, root: Any) -> str:
        """Serialise ``root`` followed by a newline."""
        parts: list[str] = []
        self._write_value(root, parts)
        parts.append("\n")
        return "".join(parts)

    def _write_value(self, value: Any, parts: list) -> None:
        value = _unwrap(value)
        if value is None:
            parts.append("null")
        elif isinstance(value, (bool, int, float)):
            parts.append(value_to_string(value))
        elif isinstance(value, str):
            parts.append(value_to_quoted_string(value))
        elif isinstance(value, (list, tuple)):
            parts.append("[")
            for position, item in enumerate(value):
                if position:
                    parts.append(",")
                self._write_value(item, parts)
            parts.append("]")
        elif isinstance(value, dict):
            separator = ": " if self.yaml_compatible else ":"
            parts.append("{")
            for position, name in enumerate(_members(value)):
                if position:
                    parts.append(",")
                parts.append(value_to_quoted_string(name))
                parts.append(separator)
                self._write_value(value[name], parts)
            parts.append("}")
        else:
            raise TypeError(f"cannot serialise {type(value).__name__} as JSON")