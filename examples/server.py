"""Example server: one endpoint that only accepts POST.

    python examples/server.py
    curl -i -H 'Accept: text/html' http://localhost:8000/
    curl -i -X POST -d 'hello' http://localhost:8000/
"""

from __future__ import annotations

import os
from wsgiref.simple_server import make_server

from httphandler import HTTP, HandlerError, get_logger, handle_func

HOST = os.getenv("EXAMPLE_HOST", "0.0.0.0")
PORT = int(os.getenv("EXAMPLE_PORT", "8000"))

log = get_logger("example")


@handle_func
def app(w, r):
    if r.method != "POST":
        # respond in the format of the client's Accept header
        return HandlerError(
            status_code=HTTP.BAD_REQUEST,
            public_error=ValueError("only POST method is allowed"),
        )

    if r.body is None:
        return HandlerError(internal_error=RuntimeError("body was None"))

    try:
        r.read()
    except OSError as exc:
        return HandlerError(internal_error=exc)

    w.write_header(HTTP.OK)
    w.write(b"ok")
    return None


def main() -> None:
    log.info("server_starting", host=HOST, port=PORT)
    with make_server(HOST, PORT, app) as server:
        server.serve_forever()


if __name__ == "__main__":
    main()
