"""Render the page body before the layout that surrounds it."""

from scriptresponse import Framework, Request, ResponseBuffer
from scriptresponse.app import NextFn

app = Framework()


def layout(request: Request, res: ResponseBuffer, next_fn: NextFn) -> None:
    with res.capture() as body:
        next_fn(request, res)
    res.content_type = "text/html; charset=utf-8"
    res.writeln("<html><body>")
    res.write(body.text)
    res.writeln("</body></html>")


app.use(layout)

app.script(
    "/",
    """
push()
writeln("<li>one</li>")
writeln("<li>two</li>")
items = pop()
writeln("<ul>")
write(items)
writeln("</ul>")
if "old" in req.query_params:
    redirect("/")
""",
)

app.run()
