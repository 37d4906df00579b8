"""
httphandler.tier0_core.errors
──────────────────────────────
Error taxonomy for the handler shim.

Two families live here:
  - internal errors raised or reported by the shim itself
    (configuration problems, panics, encoder failures)
  - PublicError and its subclasses: client-safe errors a handler can put in
    ``HandlerError.public_error``. They carry a status code and render in
    structured form via ``to_dict()``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# ── Base error ────────────────────────────────────────────────────────────────

class HTTPHandlerError(Exception):
    """
    Base class for errors raised by httphandler. Every error has:
    - code: stable machine-readable string (snake_case)
    - message: the human readable text, also ``str(error)``
    """

    code: str = "httphandler_error"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        self.code = code or self.__class__.code
        self.message = message
        super().__init__(message)


# ── Configuration ─────────────────────────────────────────────────────────────

class ConfigurationError(HTTPHandlerError):
    """Misconfiguration detected while setting up a Handler or its Options."""
    code = "configuration_error"


class InvalidArgumentError(ConfigurationError, ValueError):
    """A configuration setter received an empty or missing argument."""
    code = "invalid_argument"


# ── Request-time errors (logged, never raised across the request path) ───────

class HandlerFailedError(HTTPHandlerError):
    """Marker passed to the log function for every failed request."""
    code = "handler_error"

    def __init__(self, message: str = "handler error", code: str | None = None) -> None:
        super().__init__(message, code)


class PanicError(HTTPHandlerError):
    """A handler terminated with an unexpected exception."""
    code = "panic"


class EncodingError(HTTPHandlerError):
    """The negotiated encoder failed while writing the error body."""
    code = "encoding_error"

    def __init__(self, content_type: str, cause: BaseException) -> None:
        self.content_type = content_type
        super().__init__(f'unable to encode "{content_type}": {cause}')


# ── Public, client-safe errors ────────────────────────────────────────────────

class PublicError(HTTPHandlerError):
    """
    Error that is safe to show to clients. Use as ``HandlerError.public_error``
    or build a descriptor with ``HandlerError.from_public``.

    Never put sensitive data in ``user_message`` or ``details``; those go over
    the wire. Use ``HandlerError.internal_error`` for anything else.
    """

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self,
        user_message: str = "An unexpected error occurred.",
        code: str | None = None,
        **details: Any,
    ) -> None:
        self.user_message = user_message
        self.details = details
        super().__init__(user_message, code)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "code": self.code,
            "message": self.user_message,
        }
        if self.details:
            d["details"] = self.details
        return d


class BadRequestError(PublicError):
    """Malformed or unacceptable request."""
    status_code = 400
    code = "bad_request"


class UnauthorizedError(PublicError):
    """Missing or invalid client credentials."""
    status_code = 401
    code = "unauthorized"


class ForbiddenError(PublicError):
    """Client is authenticated but not allowed to perform this action."""
    status_code = 403
    code = "forbidden"


class NotFoundError(PublicError):
    """Requested resource does not exist."""
    status_code = 404
    code = "not_found"


class ConflictError(PublicError):
    """Resource state conflict (e.g., duplicate creation)."""
    status_code = 409
    code = "conflict"


# ── Handler failure descriptor ────────────────────────────────────────────────

@dataclass(eq=False)
class HandlerError(Exception):
    """
    Failure returned (or raised) by a handler function.

    status_code:    HTTP status sent to the client; 0 means 500.
    public_error:   visible to the client; None means "unknown error".
    internal_error: logged only, never sent to the client.
    content_type:   forces the error body format; empty means negotiate
                    from the client's Accept header.

    Example::

        def handler(w, r):
            return HandlerError(
                status_code=HTTP.UNAUTHORIZED,
                public_error="you have no permission to view this site",
                internal_error=RuntimeError("client authentication failed"),
            )
    """

    status_code: int = 0
    public_error: Any = None
    internal_error: Any = None
    content_type: str = ""

    def __str__(self) -> str:
        return f"{self.status_code}: {self.public_error}"

    @classmethod
    def from_public(
        cls,
        error: PublicError,
        internal_error: Any = None,
        content_type: str = "",
    ) -> HandlerError:
        """Build a descriptor whose status code comes from the error class."""
        return cls(
            status_code=error.status_code,
            public_error=error,
            internal_error=internal_error,
            content_type=content_type,
        )


__all__ = [
    "HandlerError",
    "HTTPHandlerError",
    "ConfigurationError",
    "InvalidArgumentError",
    "HandlerFailedError",
    "PanicError",
    "EncodingError",
    "PublicError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
]
