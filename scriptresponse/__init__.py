from scriptresponse.app import Framework as Framework
from scriptresponse.buffer import ResponseBuffer as ResponseBuffer
from scriptresponse.cookie import Cookie as Cookie
from scriptresponse.errors import (
    ArgumentTypeError as ArgumentTypeError,
    EmptyStackError as EmptyStackError,
    InvalidArgumentsError as InvalidArgumentsError,
    PreconditionError as PreconditionError,
    RedirectSignal as RedirectSignal,
    ResponseError as ResponseError,
    TransportError as TransportError,
)
from scriptresponse.request import Request as Request
from scriptresponse.response import Response as Response
from scriptresponse.script import Script as Script

__version__ = "0.1.0"

__all__ = [
    "ArgumentTypeError",
    "Cookie",
    "EmptyStackError",
    "Framework",
    "InvalidArgumentsError",
    "PreconditionError",
    "RedirectSignal",
    "Request",
    "Response",
    "ResponseBuffer",
    "ResponseError",
    "Script",
    "TransportError",
]
