"""Tests for running script source against a response buffer."""

from __future__ import annotations

import textwrap

import pytest

from scriptresponse.buffer import ResponseBuffer
from scriptresponse.errors import EmptyStackError, RedirectSignal
from scriptresponse.request import Request
from scriptresponse.response import Response
from scriptresponse.script import Script


def _run(source: str, request: Request | None = None) -> Response:
    response = Response()
    Script(textwrap.dedent(source))(request or Request(method="GET", path="/"), ResponseBuffer(response))
    return response


def test_bindings_are_globals() -> None:
    response = _run(
        """
        push()
        write("body")
        body = pop()
        writeln("<p>")
        write(body)
        """
    )
    assert response.body == b"<p>\r\nbody"


def test_res_global_is_the_buffer() -> None:
    response = _run(
        """
        res.content_type = "text/plain"
        res.write(req.method, req.path)
        """
    )
    assert response.body == b"GET /"
    assert response.get_header("Content-Type") == "text/plain"


def test_set_cookie_binding() -> None:
    response = _run('setCookie("a", "b", 2)')
    assert response.cookies == ["a=b; Max-Age=172800; Path=/"]


def test_redirect_escapes_script_handlers() -> None:
    source = """
    try:
        redirect("/x")
    except Exception:
        write("swallowed")
    """
    with pytest.raises(RedirectSignal) as excinfo:
        _run(source)
    assert excinfo.value.target == "/x"


def test_script_errors_propagate() -> None:
    with pytest.raises(EmptyStackError):
        _run("pop()")


def test_syntax_errors_surface_at_compile_time() -> None:
    with pytest.raises(SyntaxError):
        Script("write(", "broken.py")


def test_bindings_cover_script_operations() -> None:
    bindings = ResponseBuffer(Response()).script_bindings()
    assert set(bindings) == {"write", "writeln", "setCookie", "redirect", "push", "pop"}
