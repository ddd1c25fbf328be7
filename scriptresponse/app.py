from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from scriptresponse.buffer import ResponseBuffer
from scriptresponse.errors import RedirectSignal
from scriptresponse.request import Request
from scriptresponse.response import Response
from scriptresponse.script import Script
from scriptresponse.server import serve

HandlerFunc = Callable[[Request, ResponseBuffer], None]
NextFn = Callable[[Request, ResponseBuffer], None]
MiddlewareFunc = Callable[[Request, ResponseBuffer, NextFn], None]


@dataclass
class _Route:
    pattern: str
    methods: set[str]
    handler: HandlerFunc
    regex: re.Pattern[str]
    param_names: list[str] = field(default_factory=list)


def _compile_route(pattern: str) -> tuple[re.Pattern[str], list[str]]:
    """Compile a route pattern like '/users/{id}' into a regex and param name list."""
    param_names: list[str] = []
    regex_parts: list[str] = []
    pos = 0
    for match in re.finditer(r"\{(\w+)\}", pattern):
        start, end = match.span()
        regex_parts.append(re.escape(pattern[pos:start]))
        regex_parts.append(f"(?P<{match.group(1)}>[^/]+)")
        param_names.append(match.group(1))
        pos = end
    regex_parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(regex_parts) + "$"), param_names


class Framework:
    """Application with routing, middleware and the redirect boundary.

    Handlers receive the request and a :class:`ResponseBuffer` wrapping the
    native response.
    """

    def __init__(self) -> None:
        self._routes: list[_Route] = []
        self._middleware: list[MiddlewareFunc] = []

    def route(
        self, path: str, methods: list[str] | None = None
    ) -> Callable[[HandlerFunc], HandlerFunc]:
        """Decorator: @app.route("/hello", methods=["GET"])"""

        def decorator(fn: HandlerFunc) -> HandlerFunc:
            self.add_route(path, fn, methods)
            return fn

        return decorator

    def add_route(
        self, path: str, handler: HandlerFunc, methods: list[str] | None = None
    ) -> None:
        regex, param_names = _compile_route(path)
        self._routes.append(
            _Route(
                pattern=path,
                methods=set(methods) if methods else {"GET"},
                handler=handler,
                regex=regex,
                param_names=param_names,
            )
        )

    def script(
        self,
        path: str,
        source: str,
        methods: list[str] | None = None,
        *,
        filename: str | None = None,
    ) -> Script:
        """Serve ``path`` by running Python script source."""
        compiled = Script(source, filename or path)
        self.add_route(path, compiled, methods)
        return compiled

    def use(self, middleware: MiddlewareFunc) -> None:
        """Register middleware (executed in registration order)."""
        self._middleware.append(middleware)

    def dispatch(self, request: Request, response: Response) -> None:
        """Match route, populate request.params, run middleware chain + handler.

        A redirect raised anywhere below becomes a 302 with an empty body.
        """
        matched_route: _Route | None = None
        method_not_allowed = False

        for route in self._routes:
            m = route.regex.match(request.path)
            if m is not None:
                if request.method in route.methods:
                    matched_route = route
                    request.params = {name: m.group(name) for name in route.param_names}
                    break
                else:
                    method_not_allowed = True

        if matched_route is None:
            if method_not_allowed:
                response.set_status(405)
                response.write(b"Method Not Allowed")
            else:
                response.set_status(404)
                response.write(b"Not Found")
            return

        res = ResponseBuffer(response)
        handler = _build_chain(self._middleware, matched_route.handler)
        try:
            handler(request, res)
        except RedirectSignal as signal:
            _redirect(response, signal.target)
        finally:
            # Output still sitting in unpopped buffers was never delivered.
            res.discard()

    def _make_handler(self) -> Callable[[Request, Response], None]:
        """Create a handler function that dispatches through the router."""

        def handler(request: Request, response: Response) -> None:
            self.dispatch(request, response)

        return handler

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        *,
        config: dict[str, int] | None = None,
    ) -> None:
        """Start the server.

        Args:
            host: Address to bind to.
            port: Port to bind to.
            config: Server limits, see :func:`scriptresponse.server.serve`.
        """
        serve(self._make_handler(), host, port, config=config)


def _redirect(response: Response, target: str) -> None:
    response.reset_body()
    response.set_status(302)
    response.set_header("Location", target)


def _build_chain(middlewares: list[MiddlewareFunc], handler: HandlerFunc) -> HandlerFunc:
    """Build middleware chain: first registered middleware runs first."""
    chain = handler
    for mw in reversed(middlewares):
        prev = chain

        def wrapper(
            req: Request,
            res: ResponseBuffer,
            _mw: MiddlewareFunc = mw,
            _prev: HandlerFunc = prev,
        ) -> None:
            _mw(req, res, _prev)

        chain = wrapper
    return chain
