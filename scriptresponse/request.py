from __future__ import annotations

import json
import urllib.parse
from http.cookies import CookieError, SimpleCookie


class Request:
    """HTTP request object parsed from raw bytes."""

    __slots__ = (
        "method",
        "path",
        "full_path",
        "query_params",
        "headers",
        "body",
        "params",
        "version",
    )

    method: str
    path: str
    full_path: str
    query_params: dict[str, str]
    headers: dict[str, str]
    body: bytes
    params: dict[str, str]
    version: str

    def __init__(
        self,
        *,
        method: str,
        path: str,
        full_path: str | None = None,
        query_params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        version: str = "HTTP/1.1",
    ) -> None:
        self.method = method
        self.path = path
        self.full_path = path if full_path is None else full_path
        self.query_params = query_params or {}
        self.headers = headers or {}
        self.body = body
        self.params = {}
        self.version = version

    @classmethod
    def _from_raw(cls, head: bytes, body: bytes) -> Request:
        """Build a Request from the header block (without the blank line) and body.

        Raises ValueError on a malformed request line.
        """
        lines = head.split(b"\r\n")
        parts = lines[0].decode("latin-1").split(" ")
        if len(parts) != 3 or not parts[2].startswith("HTTP/"):
            raise ValueError(f"malformed request line: {lines[0]!r}")
        method, path, version = parts

        headers: dict[str, str] = {}
        for line in lines[1:]:
            name, sep, value = line.partition(b":")
            if not sep:
                raise ValueError(f"malformed header line: {line!r}")
            headers[name.decode("latin-1").strip().lower()] = value.decode("latin-1").strip()

        # Split path and query string
        full_path = path
        if "?" in path:
            path_part, _, query_string = path.partition("?")
            parsed_qs = urllib.parse.parse_qs(query_string)
            query_params = {k: v[0] for k, v in parsed_qs.items()}
        else:
            path_part = path
            query_params = {}

        return cls(
            method=method,
            path=path_part,
            full_path=full_path,
            query_params=query_params,
            headers=headers,
            body=body,
            version=version,
        )

    @property
    def keep_alive(self) -> bool:
        """HTTP/1.1 persists unless told to close; HTTP/1.0 only on request."""
        connection = self.headers.get("connection", "").lower()
        if connection == "close":
            return False
        if connection == "keep-alive":
            return True
        return self.version != "HTTP/1.0"

    @property
    def cookies(self) -> dict[str, str]:
        """Cookies sent by the client. An unparseable header yields no cookies."""
        raw = self.headers.get("cookie")
        if not raw:
            return {}
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            return {}
        return {name: morsel.value for name, morsel in jar.items()}

    def json(self) -> object:
        """Parse body as JSON."""
        return json.loads(self.body)
