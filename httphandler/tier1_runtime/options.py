"""
httphandler.tier1_runtime.options
──────────────────────────────────
Configuration shared by every request a Handler serves: the log function,
the encoder registry (with its fallback), the request id generator and the
panic handler.

Options are meant to be set up once before traffic starts. Mutating them
while requests are in flight is not synchronized and its effect is undefined.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol

from httphandler.tier0_core.config import get_settings
from httphandler.tier0_core.errors import InvalidArgumentError
from httphandler.tier0_core.ids import default_request_id_func
from httphandler.tier0_core.logging import get_logger
from httphandler.tier1_runtime.encoders import EncodeFunc, EncoderRegistry, default_registry
from httphandler.tier1_runtime.invoke import PanicHandler, noop_panic_handler


class LogFunc(Protocol):
    """Called once per failed request, and once more if the encoder fails."""

    def __call__(
        self,
        handler_error: Exception,
        internal_error: Any,
        public_error: Any,
        status_code: int,
        request_id: str,
    ) -> None: ...


def default_log_func() -> LogFunc:
    """Log every failure as a structured ``handler_error`` event."""
    logger = get_logger("httphandler")

    def log(
        handler_error: Exception,
        internal_error: Any,
        public_error: Any,
        status_code: int,
        request_id: str,
    ) -> None:
        logger.error(
            "handler_error",
            error=str(handler_error),
            internal_error=None if internal_error is None else str(internal_error),
            public_error=str(public_error),
            status_code=status_code,
            request_id=request_id,
            exc_info=internal_error if isinstance(internal_error, BaseException) else None,
        )

    return log


@dataclass
class Options:
    """
    Handler configuration. Any field left as None is filled with its default
    when the Options are passed to a Handler.

    encoders accepts an EncoderRegistry or a plain mapping of content type to
    encoder (wrapped into a registry with the JSON fallback).
    """

    log_func: LogFunc | None = None
    encoders: EncoderRegistry | Mapping[str, EncodeFunc] | None = None
    request_id_func: Callable[[], str] | None = None
    panic_handler: PanicHandler | None = None

    def fill_defaults(self) -> Options:
        """Replace unset fields with their defaults, in place."""
        if self.log_func is None:
            self.log_func = default_log_func()
        self.encoders = self.registry
        if self.request_id_func is None:
            self.request_id_func = default_request_id_func()
        if self.panic_handler is None:
            self.panic_handler = noop_panic_handler
        return self

    @property
    def registry(self) -> EncoderRegistry:
        """The encoder registry, created (or wrapped from a mapping) on first use."""
        if self.encoders is None:
            self.encoders = default_registry(get_settings().fallback_content_type)
        elif not isinstance(self.encoders, EncoderRegistry):
            self.encoders = EncoderRegistry(self.encoders)
        return self.encoders

    # ── Setters ───────────────────────────────────────────────────────────

    def set_log_func(self, log_func: LogFunc | None) -> None:
        if log_func is None:
            raise InvalidArgumentError("log_func cannot be None")
        self.log_func = log_func

    def set_encoders(self, encoders: Mapping[str, EncodeFunc] | None) -> None:
        """Merge encoders into the registry (keys lowercased)."""
        if encoders is None:
            raise InvalidArgumentError("encoders cannot be None")
        if self.encoders is None:
            self.encoders = EncoderRegistry()
        self.registry.set_encoders(encoders)

    def set_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        if self.encoders is None:
            self.encoders = EncoderRegistry()
        self.registry.set_encoder(content_type, encoder)

    def set_fallback_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        self.registry.set_fallback_encoder(content_type, encoder)

    def set_request_id_func(self, request_id_func: Callable[[], str] | None) -> None:
        if request_id_func is None:
            raise InvalidArgumentError("request_id_func cannot be None")
        self.request_id_func = request_id_func

    def set_panic_handler(self, panic_handler: PanicHandler | None) -> None:
        """Set the hook called after a handler panics; None restores the no-op."""
        self.panic_handler = panic_handler or noop_panic_handler


def default_options() -> Options:
    """Return a fresh, fully populated Options."""
    return Options().fill_defaults()


__all__ = ["LogFunc", "Options", "default_log_func", "default_options"]
