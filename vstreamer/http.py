"""Minimal HTTP/1.0 status responses sent over a socket that is then closed."""

from __future__ import annotations

import socket

_COMMON_HEADERS = (
    "Connection: close\r\n"
    "Server: vstreamer_server\r\n"
    "Cache-Control: no-cache\r\n"
    "Connection: close\r\n"
    "Pragma: no-cache\r\n"
)

_ERROR_STATUS = {
    500: "HTTP/1.0 500 Internal Server Error",
    400: "HTTP/1.0 400 Bad Request",
}
_FALLBACK_STATUS = "HTTP/1.0 501 Not Implemented"


def build_response(response_code: int, message: str, content_type: str = "text/plain") -> bytes:
    """Build a complete response with ``message`` as its body.

    Code 200 uses ``content_type``; 400 and 500 are plain text; any other
    code is answered as 501 Not Implemented.
    """
    body = message.encode("utf-8")
    headers = _COMMON_HEADERS + f"Content-Length: {len(body)}\r\n"
    if response_code == 200:
        head = f"HTTP/1.0 200 OK\r\nContent-type: {content_type}\r\n{headers}\r\n "
    else:
        status = _ERROR_STATUS.get(response_code, _FALLBACK_STATUS)
        head = f"{status}\r\nContent-type: text/plain\r\n{headers}\r\n"
    return head.encode("utf-8") + body


def send_code(
    sock: socket.socket, response_code: int, message: str, content_type: str = "text/plain"
) -> int:
    """Send a response on ``sock``, close it and return the number of bytes sent.

    The socket is closed even when sending fails; the OSError is propagated.
    """
    data = build_response(response_code, message, content_type)
    try:
        sock.sendall(data)
    finally:
        sock.close()
    return len(data)