"""Human-readable JSON output, to a string or to a text stream.

Values follow the conventions of :mod:`vstreamer.json_format`: plain Python
objects, optionally wrapped in :class:`~vstreamer.json_format.Commented`.

Layout rules:

* an empty object or array is written as ``{}`` or ``[]``;
* a non-empty object is written one member per line, indented;
* an array that holds only scalars or empty containers and fits within the
  right margin is written on one line as ``[ a, b, c ]``; otherwise one
  element per line.
"""

from __future__ import annotations

from typing import Any, Optional, TextIO

from .json_format import (
    Commented,
    _members,
    _unwrap,
    normalize_eol,
    value_to_quoted_string,
    value_to_string,
)

RIGHT_MARGIN = 74


def _comment(value: Any, placement: str) -> Optional[str]:
    if isinstance(value, Commented):
        return getattr(value, placement)
    return None


def _has_comment(value: Any) -> bool:
    return isinstance(value, Commented) and value.has_comment


class _StyledBase:
    """Layout logic shared by the string and stream writers."""

    def __init__(self, indent_unit: str) -> None:
        self.right_margin = RIGHT_MARGIN
        self._indent_unit = indent_unit
        self._indent_string = ""
        self._child_values: list[str] = []
        self._add_child_values = False

    def _emit(self, text: str) -> None:
        raise NotImplementedError

    def _write_indent(self) -> None:
        raise NotImplementedError

    def _serialise(self, root: Any) -> None:
        self._indent_string = ""
        self._child_values = []
        self._add_child_values = False
        self._write_comment_before(root)
        self._write_value(root)
        self._write_comment_after(root)
        self._emit("\n")

    def _push(self, text: str) -> None:
        if self._add_child_values:
            self._child_values.append(text)
        else:
            self._emit(text)

    def _write_value(self, value: Any) -> None:
        inner = _unwrap(value)
        if inner is None:
            self._push("null")
        elif isinstance(inner, (bool, int, float)):
            self._push(value_to_string(inner))
        elif isinstance(inner, str):
            self._push(value_to_quoted_string(inner))
        elif isinstance(inner, (list, tuple)):
            self._write_array(inner)
        elif isinstance(inner, dict):
            self._write_object(inner)
        else:
            raise TypeError(f"cannot serialise {type(inner).__name__} as JSON")

    def _write_object(self, obj: dict) -> None:
        names = _members(obj)
        if not names:
            self._push("{}")
            return
        self._write_with_indent("{")
        self._indent()
        last = len(names) - 1
        for position, name in enumerate(names):
            child = obj[name]
            self._write_comment_before(child)
            self._write_with_indent(value_to_quoted_string(name))
            self._emit(" : ")
            self._write_value(child)
            if position != last:
                self._emit(",")
            self._write_comment_after(child)
        self._unindent()
        self._write_with_indent("}")

    def _write_array(self, items) -> None:
        if not items:
            self._push("[]")
            return
        if self._is_multiline_array(items):
            self._write_with_indent("[")
            self._indent()
            rendered = list(self._child_values)
            last = len(items) - 1
            for position, child in enumerate(items):
                self._write_comment_before(child)
                if rendered:
                    self._write_with_indent(rendered[position])
                else:
                    self._write_indent()
                    self._write_value(child)
                if position != last:
                    self._emit(",")
                self._write_comment_after(child)
            self._unindent()
            self._write_with_indent("]")
        else:
            self._emit("[ " + ", ".join(self._child_values) + " ]")

    def _is_multiline_array(self, items) -> bool:
        size = len(items)
        multiline = size * 3 >= self.right_margin
        self._child_values = []
        if not multiline:
            multiline = any(
                isinstance(_unwrap(child), (list, tuple, dict)) and len(_unwrap(child)) > 0
                for child in items
            )
        if not multiline:
            self._add_child_values = True
            for child in items:
                self._write_value(child)
            self._add_child_values = False
            line_length = 4 + (size - 1) * 2 + sum(
                len(text.encode("utf-8")) for text in self._child_values
            )
            multiline = line_length >= self.right_margin
        return multiline

    def _write_with_indent(self, text: str) -> None:
        self._write_indent()
        self._emit(text)

    def _indent(self) -> None:
        self._indent_string += self._indent_unit

    def _unindent(self) -> None:
        keep = len(self._indent_string) - len(self._indent_unit)
        if keep < 0:
            raise RuntimeError("unbalanced indentation")
        self._indent_string = self._indent_string[:keep]

    def _write_comment_before(self, value: Any) -> None:
        comment = _comment(value, "before")
        if comment is None:
            return
        self._emit(normalize_eol(comment))
        self._emit("\n")

    def _write_comment_after(self, value: Any) -> None:
        same_line = _comment(value, "after_on_same_line")
        if same_line is not None:
            self._emit(" " + normalize_eol(same_line))
        after = _comment(value, "after")
        if after is not None:
            self._emit("\n")
            self._emit(normalize_eol(after))
            self._emit("\n")


class StyledWriter(_StyledBase):
    """Writes a JSON value as an indented, human-friendly string."""

    def __init__(self) -> None:
        super().__init__(" " * 3)
        self._parts: list[str] = []
        self._last = ""

    def write(self, root: Any) -> str:
        """Serialise ``root`` followed by a newline."""
        self._parts = []
        self._last = ""
        self._serialise(root)
        document = "".join(self._parts)
        self._parts = []
        return document

    def _emit(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._last = text[-1]

    def _write_indent(self) -> None:
        if self._last:
            if self._last == " ":
                return
            if self._last != "\n":
                self._emit("\n")
        self._emit(self._indent_string)


class StyledStreamWriter(_StyledBase):
    """Writes a JSON value in indented form to a text stream."""

    def __init__(self, indentation: str = "\t") -> None:
        super().__init__(indentation)
        self.indentation = indentation
        self._out: Optional[TextIO] = None

    def write(self, out: TextIO, root: Any) -> None:
        """Serialise ``root`` to ``out`` followed by a newline."""
        self._out = out
        try:
            self._serialise(root)
        finally:
            self._out = None

    def _emit(self, text: str) -> None:
        self._out.write(text)

    def _write_indent(self) -> None:
        self._emit("\n" + self._indent_string)


def to_styled_string(root: Any) -> str:
    """Return ``root`` formatted by :class:`StyledWriter`."""
    return StyledWriter().write(root)