"""
httphandler.tier1_runtime.handler
──────────────────────────────────
Handler turns functions of the form ``fn(writer, request) -> HandlerError | None``
into WSGI applications.

For every request it:
  1. assigns a request id and binds it to the request context
  2. runs the function through safe_call (exceptions become HandlerErrors)
  3. on failure: fills in default status (500) and public error
     ("unknown error"), calls the log function, and, if the function has not
     written anything itself, negotiates an encoder and writes the error body

Usage::

    from httphandler import Handler, HandlerError, HTTP

    h = Handler()

    @h.handle_func
    def create_user(w, r):
        if r.method != "POST":
            return HandlerError(status_code=HTTP.METHOD_NOT_ALLOWED,
                                public_error="only POST method is allowed")
        w.write_header(HTTP.CREATED)
        return None
"""
from __future__ import annotations

import functools
from typing import Any, Callable, Iterable, Protocol

from httphandler.tier0_core.errors import EncodingError, HandlerError, HandlerFailedError
from httphandler.tier0_core.http import HTTP, WireError
from httphandler.tier1_runtime.context import RequestContext, reset_context, set_context
from httphandler.tier1_runtime.encoders import EncodeFunc
from httphandler.tier1_runtime.invoke import HandlerFunc, PanicHandler, safe_call
from httphandler.tier1_runtime.middleware import BufferedResponseWriter, Request
from httphandler.tier1_runtime.negotiate import negotiate
from httphandler.tier1_runtime.options import LogFunc, Options, default_options
from httphandler.tier1_runtime.writer import ResponseWriter, SafeResponseWriter

UNKNOWN_ERROR = "unknown error"

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]


class ServeHTTP(Protocol):
    """Object form of a handler function."""

    def serve_http(self, writer: ResponseWriter, request: Request) -> HandlerError | None: ...


class Handler:
    """Wraps handler functions with error negotiation, logging and panic recovery."""

    def __init__(self, options: Options | None = None) -> None:
        if options is None:
            options = default_options()
        self.options = options.fill_defaults()

    # ── WSGI entry points ─────────────────────────────────────────────────

    def handle_func(self, fn: HandlerFunc) -> WSGIApp:
        """
        Wrap fn as a WSGI application. When fn returns (or raises) a
        HandlerError, the error body is built from it and the client's Accept
        header, unless HandlerError.content_type forces a format. When fn
        returns None it must have written the whole response itself.
        """
        @functools.wraps(fn)
        def app(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
            sink = BufferedResponseWriter()
            ctx = RequestContext(request_id=self.options.request_id_func())
            request = Request(environ=environ, context=ctx)
            token = set_context(ctx)
            try:
                self.dispatch(fn, sink, request)
            finally:
                reset_context(token)
            return sink.finish(start_response)

        return app

    def handle(self, obj: ServeHTTP) -> WSGIApp:
        """Wrap an object exposing ``serve_http(writer, request)``."""
        return self.handle_func(obj.serve_http)

    # ── Orchestration ─────────────────────────────────────────────────────

    def dispatch(self, fn: HandlerFunc, writer: ResponseWriter, request: Request) -> None:
        """Run fn against writer and render its failure, if any. Never raises."""
        safe_writer = SafeResponseWriter(writer)
        request_id = request.context.request_id

        err = safe_call(fn, safe_writer, request, self.options.panic_handler)
        if err is None:
            return

        if not err.status_code:
            err.status_code = HTTP.INTERNAL_SERVER_ERROR
        if err.public_error is None:
            err.public_error = UNKNOWN_ERROR

        self.options.log_func(
            HandlerFailedError(),
            err.internal_error,
            err.public_error,
            err.status_code,
            request_id,
        )

        # the handler already started its own response
        if safe_writer.written:
            return

        self._send_error(err, request_id, safe_writer, request)

    def _send_error(
        self,
        err: HandlerError,
        request_id: str,
        writer: SafeResponseWriter,
        request: Request,
    ) -> None:
        encoder, content_type = negotiate(
            err.content_type,
            request.header_values("Accept"),
            self.options.registry,
        )
        wire_error = WireError(
            status_code=err.status_code,
            error=err.public_error,
            request_id=request_id,
        )

        writer.headers["Content-Type"] = content_type
        writer.write_header(err.status_code)
        try:
            encoder(writer, request, wire_error)
        except Exception as exc:
            encoding_error = EncodingError(content_type, exc)
            encoding_error.__cause__ = exc
            self.options.log_func(
                encoding_error,
                err.internal_error,
                err.public_error,
                err.status_code,
                request_id,
            )

    # ── Configuration shortcuts ───────────────────────────────────────────

    def set_log_func(self, log_func: LogFunc | None) -> None:
        self.options.set_log_func(log_func)

    def set_encoders(self, encoders: dict[str, EncodeFunc] | None) -> None:
        self.options.set_encoders(encoders)

    def set_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        self.options.set_encoder(content_type, encoder)

    def set_fallback_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        self.options.set_fallback_encoder(content_type, encoder)

    def set_request_id_func(self, request_id_func: Callable[[], str] | None) -> None:
        self.options.set_request_id_func(request_id_func)

    def set_panic_handler(self, panic_handler: PanicHandler | None) -> None:
        self.options.set_panic_handler(panic_handler)


# ── Process-wide default ─────────────────────────────────────────────────────

DEFAULT_OPTIONS = default_options()
default_handler = Handler(DEFAULT_OPTIONS)


def handle_func(fn: HandlerFunc) -> WSGIApp:
    """``default_handler.handle_func``."""
    return default_handler.handle_func(fn)


def handle(obj: ServeHTTP) -> WSGIApp:
    """``default_handler.handle``."""
    return default_handler.handle(obj)


__all__ = [
    "Handler",
    "ServeHTTP",
    "UNKNOWN_ERROR",
    "DEFAULT_OPTIONS",
    "default_handler",
    "handle_func",
    "handle",
]
