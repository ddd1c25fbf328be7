from __future__ import annotations

import io
import socket
from http.cookies import SimpleCookie

from scriptresponse.cookie import Cookie


_REASON_PHRASES: dict[int, str] = {
    200: "OK",
    201: "Created",
    204: "No Content",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Content Too Large",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


class _BodyStream(io.RawIOBase):
    """Binary stream appending to a response body until it is finalized."""

    def __init__(self, response: Response) -> None:
        self._response = response

    def writable(self) -> bool:
        return True

    def write(self, data: bytes) -> int:  # type: ignore[override]
        self._response._check_open()
        chunk = bytes(data)
        self._response._body_parts.append(chunk)
        return len(chunk)


class _TextStream(io.TextIOBase):
    """Text view over the body, UTF-8 encoded."""

    def __init__(self, response: Response) -> None:
        self._response = response

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:  # type: ignore[override]
        self._response._check_open()
        self._response._body_parts.append(text.encode("utf-8", errors="replace"))
        return len(text)


def format_cookie(cookie: Cookie) -> str:
    """Render ``cookie`` as a ``Set-Cookie`` header value."""
    jar: SimpleCookie = SimpleCookie()
    jar[cookie.name] = cookie.value
    morsel = jar[cookie.name]
    morsel["path"] = cookie.path
    if cookie.max_age is not None:
        morsel["max-age"] = cookie.max_age
    if cookie.domain is not None:
        morsel["domain"] = cookie.domain
    return morsel.OutputString()


class Response:
    """HTTP response object that buffers data and sends on finalize.

    This is the transport behind :class:`~scriptresponse.buffer.ResponseBuffer`.
    """

    __slots__ = (
        "status",
        "_headers",
        "_cookies",
        "_body_parts",
        "_sock",
        "_finalized",
        "_text_stream",
        "_byte_stream",
    )

    status: int
    _headers: dict[str, str]
    _cookies: list[str]
    _body_parts: list[bytes]
    _sock: socket.socket | None
    _finalized: bool
    _text_stream: _TextStream | None
    _byte_stream: _BodyStream | None

    def __init__(self, sock: socket.socket | None = None) -> None:
        self.status = 200
        self._headers = {}
        self._cookies = []
        self._body_parts = []
        self._sock = sock
        self._finalized = False
        self._text_stream = None
        self._byte_stream = None

    @property
    def finalized(self) -> bool:
        return self._finalized

    def set_status(self, code: int) -> None:
        self.status = code

    def get_header(self, name: str) -> str | None:
        for key, value in self._headers.items():
            if key.lower() == name.lower():
                return value
        return None

    def set_header(self, name: str, value: str) -> None:
        """Raises ValueError when name or value would break the header line."""
        if not name or any(c in name for c in "\r\n:") or "\r" in value or "\n" in value:
            raise ValueError(f"illegal header {name!r}: {value!r}")
        for key in list(self._headers):
            if key.lower() == name.lower():
                del self._headers[key]
        self._headers[name] = value

    def append_cookie(self, cookie: Cookie) -> None:
        self._cookies.append(format_cookie(cookie))

    @property
    def cookies(self) -> list[str]:
        """``Set-Cookie`` values in the order they were appended."""
        return list(self._cookies)

    def get_write_stream(self) -> _TextStream:
        self._check_open()
        if self._text_stream is None:
            self._text_stream = _TextStream(self)
        return self._text_stream

    def get_output_stream(self) -> _BodyStream:
        self._check_open()
        if self._byte_stream is None:
            self._byte_stream = _BodyStream(self)
        return self._byte_stream

    def get_native_object(self) -> socket.socket | None:
        return self._sock

    def write(self, data: bytes | str) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8", errors="replace")
        self.get_output_stream().write(data)

    @property
    def body(self) -> bytes:
        return b"".join(self._body_parts)

    def reset_body(self) -> None:
        """Throw away everything written so far."""
        self._body_parts.clear()

    def _check_open(self) -> None:
        if self._finalized:
            raise OSError("response already finalized")

    def serialize(self, *, keep_alive: bool = True) -> bytes:
        body = self.body
        reason = _REASON_PHRASES.get(self.status, "Unknown")
        lines = [f"HTTP/1.1 {self.status} {reason}"]
        for name, value in self._headers.items():
            # Content-Length is always derived from the body.
            if name.lower() == "content-length":
                continue
            lines.append(f"{name}: {value}")
        for value in self._cookies:
            lines.append(f"Set-Cookie: {value}")
        lines.append(f"Content-Length: {len(body)}")
        if not keep_alive:
            lines.append("Connection: close")
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("latin-1") + body

    def _finalize(self, *, keep_alive: bool = True) -> None:
        if self._finalized:
            return
        self._finalized = True

        data = self.serialize(keep_alive=keep_alive)
        if self._sock is not None:
            self._sock.sendall(data)
