from __future__ import annotations

from types import CodeType

from scriptresponse.buffer import ResponseBuffer
from scriptresponse.request import Request


class Script:
    """Python source run once per request with ``req`` and ``res`` in scope.

    The response operations are also bound as globals, so a script may call
    ``write("hi")`` as well as ``res.write("hi")``.
    """

    __slots__ = ("source", "filename", "_code")

    source: str
    filename: str
    _code: CodeType

    def __init__(self, source: str, filename: str = "<script>") -> None:
        self.source = source
        self.filename = filename
        self._code = compile(source, filename, "exec")

    def __call__(self, request: Request, res: ResponseBuffer) -> None:
        scope: dict[str, object] = {"__name__": "__script__", "req": request, "res": res}
        scope.update(res.script_bindings())
        exec(self._code, scope)  # noqa: S102

    def __repr__(self) -> str:
        return f"<Script {self.filename}>"
