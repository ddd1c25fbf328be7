from __future__ import annotations

import errno
import socket
import sys
import threading
import traceback
from collections.abc import Callable

from scriptresponse.request import Request
from scriptresponse.response import _REASON_PHRASES, Response

HandlerFunc = Callable[[Request, Response], None]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, int] = {
    "max_header_size": 32768,
    "max_body_size": 1_048_576,
    "read_timeout_ms": 30_000,
    "backlog": 1024,
}
ACCEPT_POLL_INTERVAL: float = 0.2  # How often the acceptor checks for shutdown
RECV_CHUNK_SIZE: int = 8192


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def _log(msg: str, *, origin: str = "server") -> None:
    """Write a log line to stderr."""
    print(f"[{origin}] {msg}", file=sys.stderr, flush=True)


def _resolve_config(config: dict[str, int] | None) -> dict[str, int]:
    cfg = dict(DEFAULT_CONFIG)
    if config:
        unknown = set(config) - set(DEFAULT_CONFIG)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(sorted(unknown))}")
        cfg.update(config)
    return cfg


# ---------------------------------------------------------------------------
# Socket creation
# ---------------------------------------------------------------------------


def _create_listen_socket(
    host: str,
    port: int,
    *,
    backlog: int = 1024,
) -> socket.socket:
    """Create a TCP listening socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except BaseException:
        sock.close()
        raise
    return sock


# ---------------------------------------------------------------------------
# Request reading
# ---------------------------------------------------------------------------


def _read_request(
    conn: socket.socket,
    pending: bytearray,
    max_header_size: int,
    max_body_size: int,
) -> Request | None:
    """Read one request from ``conn``. Returns None on a clean EOF.

    ``pending`` carries bytes already received past the previous request.

    Raises:
        ValueError: malformed request.
        RuntimeError: header or body over the configured limit.
    """
    while b"\r\n\r\n" not in pending:
        if len(pending) > max_header_size:
            raise RuntimeError("header too large")
        chunk = conn.recv(RECV_CHUNK_SIZE)
        if not chunk:
            if pending:
                raise ValueError("connection closed mid-request")
            return None
        pending += chunk

    head_end = pending.index(b"\r\n\r\n")
    if head_end > max_header_size:
        raise RuntimeError("header too large")
    head = bytes(pending[:head_end])
    del pending[: head_end + 4]

    request = Request._from_raw(head, b"")
    try:
        length = int(request.headers.get("content-length", "0"))
    except ValueError:
        raise ValueError("invalid Content-Length") from None
    if length < 0:
        raise ValueError("invalid Content-Length")
    if length > max_body_size:
        raise RuntimeError("body too large")

    while len(pending) < length:
        chunk = conn.recv(RECV_CHUNK_SIZE)
        if not chunk:
            raise ValueError("connection closed mid-body")
        pending += chunk
    request.body = bytes(pending[:length])
    del pending[:length]
    return request


# ---------------------------------------------------------------------------
# Connection handling
# ---------------------------------------------------------------------------


def _try_send_error(conn: socket.socket, status_code: int) -> None:
    """Best-effort error response. Does NOT close the socket (caller's finally does)."""
    response = Response()
    response.set_status(status_code)
    response.write(_REASON_PHRASES.get(status_code, "Error"))
    try:
        conn.sendall(response.serialize(keep_alive=False))
    except OSError:
        pass  # best effort


def _handle_connection(
    conn: socket.socket, handler: HandlerFunc, config: dict[str, int] | None = None,
) -> None:
    """Per-connection thread: read requests, dispatch, send responses."""
    cfg = _resolve_config(config)
    pending = bytearray()
    try:
        conn.settimeout(cfg["read_timeout_ms"] / 1000)
        while True:
            request = _read_request(
                conn, pending, cfg["max_header_size"], cfg["max_body_size"],
            )
            if request is None:
                return  # EOF, finally block closes

            response = Response(conn)
            try:
                handler(request, response)
            except Exception:
                _log(f"{request.method} {request.path} failed\n{traceback.format_exc()}")
                # Send 500 if response not yet sent
                if not response.finalized:
                    _try_send_error(conn, 500)
                return

            response._finalize(keep_alive=request.keep_alive)

            if not request.keep_alive:
                return  # finally block closes

    except ValueError:
        _try_send_error(conn, 400)  # malformed request
    except RuntimeError as e:
        msg = str(e)
        if "header too large" in msg:
            _try_send_error(conn, 431)
        elif "too large" in msg:
            _try_send_error(conn, 413)
        else:
            raise
    except OSError:
        pass  # network error, just close
    finally:
        conn.close()


def _run_acceptor(
    sock: socket.socket,
    handler: HandlerFunc,
    config: dict[str, int] | None = None,
    stop: threading.Event | None = None,
) -> None:
    """Accept connections and spawn a handler thread for each.

    ``sock`` should carry a timeout so that ``stop`` is polled.
    """
    while stop is None or not stop.is_set():
        try:
            conn, _ = sock.accept()
        except TimeoutError:
            continue
        except OSError as e:
            # Break on errors indicating the socket is closed/invalid
            if e.errno in (errno.EBADF, errno.EINVAL, errno.ENOTSOCK):
                break
            _log(f"acceptor error: {e}")
            break
        thread = threading.Thread(
            target=_handle_connection, args=(conn, handler, config), daemon=True,
        )
        thread.start()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def serve(
    handler: HandlerFunc,
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    _ready: threading.Event | None = None,
    _stop: threading.Event | None = None,
    config: dict[str, int] | None = None,
) -> None:
    """Start the HTTP server and block until interrupted.

    Args:
        handler: Function called for each HTTP request.
        host: Address to bind to.
        port: Port to bind to.
        _ready: Event set when the server is listening.
        _stop: Event that shuts the server down when set.
        config: Optional limits. Supported keys: max_header_size,
                max_body_size, read_timeout_ms, backlog.
    """
    cfg = _resolve_config(config)
    sock = _create_listen_socket(host, port, backlog=cfg["backlog"])
    sock.settimeout(ACCEPT_POLL_INTERVAL)
    stop = _stop or threading.Event()
    _log(f"listening on {host}:{sock.getsockname()[1]}")

    if _ready is not None:
        _ready.set()

    try:
        _run_acceptor(sock, handler, cfg, stop)
    except KeyboardInterrupt:
        _log("interrupted by user")
    finally:
        stop.set()
        sock.close()
        _log("server exiting")
