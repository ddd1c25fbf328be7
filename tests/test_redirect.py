"""Tests for the redirect interrupt and the request boundary that handles it."""

from __future__ import annotations

import pytest

from scriptresponse.app import Framework, NextFn
from scriptresponse.buffer import ResponseBuffer
from scriptresponse.errors import RedirectSignal, ResponseError
from scriptresponse.request import Request
from scriptresponse.response import Response


def _get(path: str) -> Request:
    return Request(method="GET", path=path)


# ---------------------------------------------------------------------------
# The signal itself
# ---------------------------------------------------------------------------


def test_redirect_raises_signal_with_target() -> None:
    res = ResponseBuffer(Response())
    with pytest.raises(RedirectSignal) as excinfo:
        res.redirect("/x")
    assert excinfo.value.target == "/x"


@pytest.mark.parametrize("depth", [0, 1, 5])
def test_redirect_at_any_depth(depth: int) -> None:
    res = ResponseBuffer(Response())
    for _ in range(depth):
        res.push()
        res.write("pending")
    with pytest.raises(RedirectSignal) as excinfo:
        res.redirect("/x")
    assert excinfo.value.target == "/x"
    assert res.depth == depth


def test_target_is_not_modified() -> None:
    target = "https://example.com/a b?q=ü#frag"
    res = ResponseBuffer(Response())
    with pytest.raises(RedirectSignal) as excinfo:
        res.redirect(target)
    assert excinfo.value.target is target


def test_signal_passes_through_except_exception() -> None:
    res = ResponseBuffer(Response())
    caught: list[BaseException] = []

    def generate() -> None:
        try:
            res.redirect("/login")
        except Exception as e:  # noqa: BLE001
            caught.append(e)

    with pytest.raises(RedirectSignal):
        generate()
    assert caught == []


def test_signal_is_not_a_response_error() -> None:
    assert not issubclass(RedirectSignal, Exception)
    assert not issubclass(RedirectSignal, ResponseError)


def test_capture_releases_frames_on_redirect() -> None:
    res = ResponseBuffer(Response())
    with pytest.raises(RedirectSignal):
        with res.capture():
            res.write("half a page")
            with res.capture():
                res.redirect("/elsewhere")
    assert res.depth == 0


# ---------------------------------------------------------------------------
# Framework boundary
# ---------------------------------------------------------------------------


def test_boundary_turns_signal_into_302() -> None:
    app = Framework()

    @app.route("/old")
    def old(request: Request, res: ResponseBuffer) -> None:
        res.redirect("/new")

    response = Response()
    app.dispatch(_get("/old"), response)

    assert response.status == 302
    assert response.get_header("Location") == "/new"
    assert response.body == b""


def test_no_residual_output_after_redirect() -> None:
    app = Framework()

    @app.route("/page")
    def page(request: Request, res: ResponseBuffer) -> None:
        res.write("header written straight to the transport")
        res.push()
        res.write("buffered")
        res.push()
        res.write("nested")
        res.redirect("/x")

    response = Response()
    app.dispatch(_get("/page"), response)

    assert response.status == 302
    assert response.body == b""
    raw = response.serialize()
    assert raw.endswith(b"Content-Length: 0\r\n\r\n")
    assert b"Location: /x\r\n" in raw


def test_cookies_set_before_redirect_are_kept() -> None:
    app = Framework()

    @app.route("/login", methods=["POST"])
    def login(request: Request, res: ResponseBuffer) -> None:
        res.set_cookie("session", "abc", 1)
        res.redirect("/home")

    response = Response()
    app.dispatch(Request(method="POST", path="/login"), response)

    assert response.status == 302
    assert response.cookies == ["session=abc; Max-Age=86400; Path=/"]


def test_redirect_from_middleware() -> None:
    app = Framework()

    def require_login(request: Request, res: ResponseBuffer, next_fn: NextFn) -> None:
        if "session" not in request.cookies:
            res.redirect("/login")
        next_fn(request, res)

    app.use(require_login)

    @app.route("/private")
    def private(request: Request, res: ResponseBuffer) -> None:
        res.write("secret")

    anonymous = Response()
    app.dispatch(_get("/private"), anonymous)
    assert anonymous.status == 302
    assert anonymous.get_header("Location") == "/login"

    logged_in = Response()
    app.dispatch(
        Request(method="GET", path="/private", headers={"cookie": "session=1"}),
        logged_in,
    )
    assert logged_in.status == 200
    assert logged_in.body == b"secret"


def test_other_errors_are_not_turned_into_redirects() -> None:
    app = Framework()

    @app.route("/boom")
    def boom(request: Request, res: ResponseBuffer) -> None:
        res.push()
        raise RuntimeError("broken")

    response = Response()
    with pytest.raises(RuntimeError):
        app.dispatch(_get("/boom"), response)
    assert response.get_header("Location") is None
