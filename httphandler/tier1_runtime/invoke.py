"""
httphandler.tier1_runtime.invoke
─────────────────────────────────
Protected call of a handler function.

safe_call always returns normally: ``None`` when the handler finished the
response itself, otherwise a HandlerError. Unexpected exceptions are turned
into a HandlerError whose internal_error is a PanicError, so the orchestrator
treats them exactly like an explicit failure.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from httphandler.tier0_core.errors import HandlerError, PanicError
from httphandler.tier0_core.logging import get_logger
from httphandler.tier1_runtime.context import RequestContext
from httphandler.tier1_runtime.writer import ResponseWriter

if TYPE_CHECKING:
    from httphandler.tier1_runtime.middleware import Request

HandlerFunc = Callable[[ResponseWriter, "Request"], Optional[HandlerError]]
PanicHandler = Callable[[RequestContext, HandlerError], None]


def panic_error(exc: BaseException) -> PanicError:
    """Wrap an exception as ``panic: <message>``, chained to the original."""
    message = str(exc) or repr(exc)
    err = PanicError(f"panic: {message}")
    err.__cause__ = exc
    return err


def noop_panic_handler(ctx: RequestContext, err: HandlerError) -> None:
    return None


def _panic(
    exc: BaseException,
    request: Request,
    panic_handler: PanicHandler | None,
) -> HandlerError:
    err = HandlerError(internal_error=panic_error(exc))
    if panic_handler is not None:
        try:
            panic_handler(request.context, err)
        except Exception as hook_exc:
            get_logger(__name__).warning(
                "panic_handler_failed",
                error=str(hook_exc),
                error_type=type(hook_exc).__name__,
            )
    return err


def safe_call(
    handler: HandlerFunc,
    writer: ResponseWriter,
    request: Request,
    panic_handler: PanicHandler | None = None,
) -> HandlerError | None:
    """
    Run handler(writer, request) and return its failure, if any.

    A raised HandlerError counts as returned. Any other Exception, or a
    return value that is neither None nor a HandlerError, becomes
    ``HandlerError(internal_error=PanicError(...))`` with status and public
    error left unset; panic_handler may then fill them in.
    """
    try:
        result = handler(writer, request)
    except HandlerError as err:
        return err
    except Exception as exc:
        return _panic(exc, request, panic_handler)
    if result is None or isinstance(result, HandlerError):
        return result
    return _panic(
        TypeError(f"handler returned {type(result).__name__}, expected HandlerError or None"),
        request,
        panic_handler,
    )


__all__ = ["HandlerFunc", "PanicHandler", "panic_error", "noop_panic_handler", "safe_call"]
