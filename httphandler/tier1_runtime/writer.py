"""
httphandler.tier1_runtime.writer
─────────────────────────────────
Response sinks.

ResponseWriter is the interface handlers and encoders write to. Handler wraps
every sink in a SafeResponseWriter so the status line is committed at most
once: if the handler already started its own response, a later failure is
logged but no error body is appended.
"""
from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable
from wsgiref.headers import Headers


@runtime_checkable
class ResponseWriter(Protocol):
    """Minimal response sink: mutable headers, a status commit and body writes."""

    @property
    def headers(self) -> Headers: ...

    def write_header(self, status_code: int) -> None: ...

    def write(self, data: bytes | str) -> int: ...


class SafeResponseWriter:
    """
    Write guard around a ResponseWriter.

    - write_header forwards only if nothing was committed or written yet;
      later calls are silent no-ops (the first caller wins).
    - write always forwards and marks the response as written.
    - written reports whether either call happened.

    The flag is updated under a lock, so a thread spawned by the handler and
    the orchestrator observe a consistent state. Body writes forward outside
    the lock; a status commit forwards inside it so exactly one reaches the
    sink.
    """

    def __init__(self, writer: ResponseWriter) -> None:
        self._writer = writer
        self._written = False
        self._lock = threading.Lock()

    @property
    def headers(self) -> Headers:
        return self._writer.headers

    @property
    def written(self) -> bool:
        with self._lock:
            return self._written

    def write_header(self, status_code: int) -> None:
        with self._lock:
            if self._written:
                return
            self._written = True
            self._writer.write_header(status_code)

    def write(self, data: bytes | str) -> int:
        with self._lock:
            self._written = True
        return self._writer.write(data)


__all__ = ["ResponseWriter", "SafeResponseWriter"]
