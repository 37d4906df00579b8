"""
httphandler.tier1_runtime.middleware
─────────────────────────────────────
WSGI adapter. Turns a WSGI call into a Request and a buffered ResponseWriter,
and turns the buffered response back into a WSGI response once the handler
and the orchestrator are done with it.

Usage (any WSGI server)::

    from wsgiref.simple_server import make_server
    from httphandler import handle_func

    app = handle_func(my_handler)
    make_server("", 8000, app).serve_forever()
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import IO, Any, Callable, Iterable
from wsgiref.headers import Headers

from httphandler.tier0_core.http import HTTP, status_line
from httphandler.tier1_runtime.context import RequestContext

# Headers that WSGI does not prefix with HTTP_.
_UNPREFIXED = {"CONTENT_TYPE", "CONTENT_LENGTH"}
_NO_BODY = {HTTP.NO_CONTENT, HTTP.NOT_MODIFIED}


# ── Request ────────────────────────────────────────────────────────────────

@dataclass
class Request:
    """A WSGI request plus the context the handler runs under."""
    environ: dict[str, Any]
    context: RequestContext

    @property
    def method(self) -> str:
        return self.environ.get("REQUEST_METHOD", "GET").upper()

    @property
    def path(self) -> str:
        return self.environ.get("PATH_INFO", "") or "/"

    @property
    def query_string(self) -> str:
        return self.environ.get("QUERY_STRING", "")

    @property
    def body(self) -> IO[bytes] | None:
        return self.environ.get("wsgi.input")

    @property
    def request_id(self) -> str:
        return self.context.request_id

    def header(self, name: str) -> str | None:
        """Raw value of a request header, None when absent."""
        key = name.upper().replace("-", "_")
        if key not in _UNPREFIXED:
            key = "HTTP_" + key
        return self.environ.get(key)

    def header_values(self, name: str) -> list[str]:
        """
        Values of a list-valued header (e.g. Accept) in header order.
        Servers join repeated header lines with commas, so this splits on them.
        """
        raw = self.header(name)
        if raw is None:
            return []
        return [value.strip() for value in raw.split(",")]

    def read(self) -> bytes:
        """Read the request body, honouring CONTENT_LENGTH."""
        stream = self.body
        if stream is None:
            return b""
        try:
            length = int(self.environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        if length <= 0:
            return b""
        return stream.read(length)


# ── Response ───────────────────────────────────────────────────────────────

class BufferedResponseWriter:
    """
    ResponseWriter that collects status, headers and body in memory.

    A second write_header is ignored. Writing a body before any status
    implies 200 OK.
    """

    def __init__(self) -> None:
        self.headers = Headers()
        self.status_code: int | None = None
        self._chunks: list[bytes] = []

    def write_header(self, status_code: int) -> None:
        if self.status_code is None:
            self.status_code = status_code

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.status_code is None:
            self.status_code = HTTP.OK
        self._chunks.append(data)
        return len(data)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def finish(self, start_response: Callable[..., Any]) -> Iterable[bytes]:
        """Send the buffered response through WSGI start_response."""
        body = self.body
        status_code = self.status_code or HTTP.OK
        if status_code not in _NO_BODY and "Content-Length" not in self.headers:
            self.headers["Content-Length"] = str(len(body))
        start_response(status_line(status_code), self.headers.items())
        return [body]


__all__ = ["Request", "BufferedResponseWriter"]
