from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass

from scriptresponse.errors import ArgumentTypeError, InvalidArgumentsError

SECONDS_PER_DAY = 60 * 60 * 24

# RFC 6265 cookie-name: an RFC 2616 token.
_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Names Set-Cookie reserves for attributes.
_ATTRIBUTE_NAMES = frozenset(
    {"expires", "path", "comment", "domain", "max-age", "secure", "httponly",
     "version", "samesite", "partitioned"}
)


@dataclass(frozen=True)
class Cookie:
    """A cookie to append to the response.

    ``max_age`` is in seconds; ``None`` makes it a session cookie and ``0``
    tells the client to drop it immediately.
    """

    name: str
    value: str = ""
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ArgumentTypeError(1, "String")
        if not self.name:
            raise InvalidArgumentsError("cookie name must not be empty")
        if not _TOKEN.fullmatch(self.name) or self.name.lower() in _ATTRIBUTE_NAMES:
            raise InvalidArgumentsError(f"illegal cookie name: {self.name!r}")
        if not isinstance(self.value, str):
            raise ArgumentTypeError(2, "String")
        if "\r" in self.value or "\n" in self.value:
            raise InvalidArgumentsError("cookie value must not contain line breaks")
        if self.max_age is not None and (
            isinstance(self.max_age, bool) or not isinstance(self.max_age, int)
        ):
            raise ArgumentTypeError(3, "Number")
        if not isinstance(self.path, str):
            raise ArgumentTypeError(4, "String")
        _check_attribute("path", self.path)
        if self.domain is not None and not isinstance(self.domain, str):
            raise ArgumentTypeError(5, "String")
        if self.domain is not None:
            _check_attribute("domain", self.domain)

    @classmethod
    def from_days(
        cls,
        name: str,
        value: str | None = None,
        days: int | float | None = None,
        path: str | None = None,
        domain: str | None = None,
    ) -> Cookie:
        """Build a cookie whose lifetime is given in days.

        A negative or missing ``days`` gives a session cookie.
        """
        if isinstance(days, float) and not math.isfinite(days):
            raise ArgumentTypeError(3, "Number")
        max_age: int | None = None
        if days is not None and days > -1:
            max_age = int(days) * SECONDS_PER_DAY
        return cls(
            name=name,
            value="" if value is None else value,
            max_age=max_age,
            path="/" if path is None else path,
            domain=domain,
        )

    @classmethod
    def from_args(cls, args: Sequence[object]) -> Cookie:
        """Parse ``name, value[, days[, path[, domain]]]`` as passed by scripts."""
        if len(args) < 2 or len(args) > 5:
            raise InvalidArgumentsError("setCookie() requires between 2 and 5 arguments")
        name = _string_arg(args, 0)
        if name is None:
            raise InvalidArgumentsError("cookie name must not be null")
        return cls.from_days(
            name,
            _string_arg(args, 1),
            _number_arg(args, 2),
            _string_arg(args, 3),
            _string_arg(args, 4),
        )


def _check_attribute(name: str, value: str) -> None:
    if any(c in value for c in "\r\n;"):
        raise InvalidArgumentsError(f"cookie {name} must not contain ';' or line breaks")


def _string_arg(args: Sequence[object], pos: int) -> str | None:
    if pos >= len(args) or args[pos] is None:
        return None
    value = args[pos]
    if not isinstance(value, str):
        raise ArgumentTypeError(pos + 1, "String")
    return value


def _number_arg(args: Sequence[object], pos: int) -> int | float | None:
    if pos >= len(args) or args[pos] is None:
        return None
    value = args[pos]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ArgumentTypeError(pos + 1, "Number")
    return value
