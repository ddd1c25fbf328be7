from __future__ import annotations


class ResponseError(Exception):
    """Base class for failures raised by the response buffer."""


class PreconditionError(ResponseError):
    """The caller broke a usage rule. Buffer state is left untouched."""


class EmptyStackError(PreconditionError):
    def __init__(self) -> None:
        super().__init__("pop() called with no active buffer")


class InvalidArgumentsError(PreconditionError, ValueError):
    pass


class ArgumentTypeError(PreconditionError, TypeError):
    """Wrong argument type. ``position`` is 1-indexed."""

    def __init__(self, position: int, expected: str) -> None:
        super().__init__(f"Expected {expected} as argument {position}")
        self.position = position
        self.expected = expected


class TransportError(ResponseError):
    """The underlying response stream failed or is no longer writable.

    Always chained from the underlying ``OSError``.
    """


class RedirectSignal(BaseException):
    """Unwinds response generation so the request boundary can redirect.

    Derives from ``BaseException`` so that ``except Exception`` blocks in
    handler and script code let it through.
    """

    def __init__(self, target: str) -> None:
        super().__init__(target)
        self.target = target
