"""
httphandler.tier1_runtime.context
──────────────────────────────────
Request context: the correlation id assigned to a request, available to the
handler, the panic handler, the log function and the error body.

Stored in a ContextVar for framework-agnostic access and attached to the
Request object for explicit access. Synced into structlog contextvars so every
log line emitted while serving the request carries the request_id.
"""
from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import TYPE_CHECKING

from httphandler.tier0_core.logging import bind_context, unbind_context

if TYPE_CHECKING:
    from httphandler.tier1_runtime.middleware import Request


# ── Domain model ─────────────────────────────────────────────────────────────

@dataclass
class RequestContext:
    """Per-request metadata, stable for the lifetime of one request."""
    request_id: str


# ── ContextVar storage ────────────────────────────────────────────────────────

_ctx: ContextVar[RequestContext | None] = ContextVar(
    "httphandler_request_context",
    default=None,
)


# ── Public API ────────────────────────────────────────────────────────────────

def get_context() -> RequestContext | None:
    """Return the context of the request being served, or None outside one."""
    return _ctx.get()


def set_context(ctx: RequestContext) -> Token:
    """Activate ctx for the current scope. Returns a token for reset_context."""
    token = _ctx.set(ctx)
    bind_context(request_id=ctx.request_id)
    return token


def reset_context(token: Token) -> None:
    """Restore the context that was active before set_context."""
    _ctx.reset(token)
    unbind_context("request_id")


def get_request_id(request: Request | None = None) -> str | None:
    """
    Return the correlation id of the given request, or of the request being
    served when called without arguments. None means no id is available.
    """
    if request is not None:
        return request.context.request_id
    ctx = get_context()
    if ctx is None:
        return None
    return ctx.request_id


__all__ = [
    "RequestContext",
    "get_context",
    "set_context",
    "reset_context",
    "get_request_id",
]
