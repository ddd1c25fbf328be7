from __future__ import annotations

import io
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import BinaryIO, NoReturn, Protocol, TextIO

from scriptresponse.cookie import Cookie
from scriptresponse.errors import EmptyStackError, RedirectSignal, TransportError

LINE_TERMINATOR = "\r\n"


class Transport(Protocol):
    """What the host's native response has to provide."""

    def get_write_stream(self) -> TextIO: ...

    def get_output_stream(self) -> BinaryIO: ...

    def get_header(self, name: str) -> str | None: ...

    def set_header(self, name: str, value: str) -> None: ...

    def append_cookie(self, cookie: Cookie) -> None: ...

    def get_native_object(self) -> object: ...


class Capture:
    """Holds the text collected by :meth:`ResponseBuffer.capture`."""

    __slots__ = ("text",)

    text: str | None

    def __init__(self) -> None:
        self.text = None


def _to_text(value: object) -> str:
    return "" if value is None else str(value)


class ResponseBuffer:
    """The response object scripts see as ``res``.

    Writes go to the innermost pushed buffer, or straight to the transport
    when no buffer is active.
    """

    __slots__ = ("_transport", "_buffers", "_lock")

    _transport: Transport
    _buffers: list[io.StringIO]
    _lock: threading.RLock

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._buffers = []
        self._lock = threading.RLock()

    # -- Output ---------------------------------------------------------

    def write(self, *values: object) -> None:
        """Write the values separated by single spaces."""
        self._emit(" ".join(_to_text(v) for v in values))

    def writeln(self, *values: object) -> None:
        """Like :meth:`write`, followed by CRLF."""
        self._emit(" ".join(_to_text(v) for v in values) + LINE_TERMINATOR)

    def _emit(self, text: str) -> None:
        with self._lock:
            if self._buffers:
                self._buffers[-1].write(text)
                return
            try:
                self._transport.get_write_stream().write(text)
            except OSError as e:
                raise TransportError(f"cannot write to response: {e}") from e

    # -- Buffer stack ---------------------------------------------------

    def push(self) -> None:
        """Redirect output into a new buffer until the matching :meth:`pop`."""
        with self._lock:
            self._buffers.append(io.StringIO())

    def pop(self) -> str:
        """Remove the innermost buffer and return what was written to it."""
        with self._lock:
            if not self._buffers:
                raise EmptyStackError()
            return self._buffers.pop().getvalue()

    @property
    def depth(self) -> int:
        return len(self._buffers)

    def discard(self) -> None:
        """Drop every active buffer along with its content."""
        with self._lock:
            self._buffers.clear()

    @contextmanager
    def capture(self) -> Iterator[Capture]:
        """Collect everything written inside the block.

        The buffer is released on every exit path; its text is only kept
        when the block completes normally.
        """
        result = Capture()
        frame = io.StringIO()
        with self._lock:
            self._buffers.append(frame)
        try:
            yield result
        except BaseException:
            self._release(frame)
            raise
        result.text = self._release(frame)

    def _release(self, frame: io.StringIO) -> str | None:
        with self._lock:
            for index in range(len(self._buffers) - 1, -1, -1):
                if self._buffers[index] is frame:
                    # Frames pushed inside the block and never popped go too.
                    del self._buffers[index:]
                    return frame.getvalue()
            # Already popped by the block itself.
            return None

    # -- Cookies --------------------------------------------------------

    def set_cookie(self, *args: object) -> None:
        """``set_cookie(name, value[, days[, path[, domain]]])``

        ``days`` < 0 (or omitted) makes a session cookie, 0 deletes the
        cookie on the client, N > 0 keeps it for N days.
        """
        self.add_cookie(Cookie.from_args(args))

    def add_cookie(self, cookie: Cookie) -> None:
        self._transport.append_cookie(cookie)

    # -- Control flow ---------------------------------------------------

    def redirect(self, target: str) -> NoReturn:
        """Abort the current response and ask the host to redirect to ``target``."""
        raise RedirectSignal(target)

    # -- Headers and transport access -----------------------------------

    @property
    def content_type(self) -> str | None:
        return self._transport.get_header("Content-Type")

    @content_type.setter
    def content_type(self, value: str) -> None:
        self._transport.set_header("Content-Type", value)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def native(self) -> object:
        """The raw handle behind the transport."""
        return self._transport.get_native_object()

    def get_output_stream(self) -> BinaryIO:
        try:
            return self._transport.get_output_stream()
        except OSError as e:
            raise TransportError(f"cannot open response stream: {e}") from e

    def script_bindings(self) -> dict[str, Callable[..., object]]:
        """Operations under the names scripts call them by."""
        return {
            "write": self.write,
            "writeln": self.writeln,
            "setCookie": self.set_cookie,
            "redirect": self.redirect,
            "push": self.push,
            "pop": self.pop,
        }

    def __repr__(self) -> str:
        return f"<Response depth={len(self._buffers)}>"
