from scriptresponse import Framework, Request, ResponseBuffer

app = Framework()


@app.route("/hello")
def hello(request: Request, res: ResponseBuffer) -> None:
    res.write("hello world")


@app.route("/users/{id}")
def get_user(request: Request, res: ResponseBuffer) -> None:
    res.content_type = "text/plain"
    res.writeln("user", request.params["id"])


@app.route("/login", methods=["POST"])
def login(request: Request, res: ResponseBuffer) -> None:
    res.set_cookie("session", "demo", 1)
    res.redirect("/hello")


@app.route("/logout")
def logout(request: Request, res: ResponseBuffer) -> None:
    res.set_cookie("session", "", 0)  # 0 days: the client drops it
    res.redirect("/hello")


app.run(host="127.0.0.1", port=8000)
