"""
httphandler
───────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from httphandler.tier0_core.errors import (
    HandlerError,
    HTTPHandlerError,
    ConfigurationError,
    InvalidArgumentError,
    HandlerFailedError,
    PanicError,
    EncodingError,
    PublicError,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
)
from httphandler.tier0_core.config import get_settings, HandlerSettings
from httphandler.tier0_core.http import HTTP, WireError
from httphandler.tier0_core.logging import get_logger

from httphandler.tier1_runtime.context import (
    get_context,
    get_request_id,
    RequestContext,
)
from httphandler.tier1_runtime.writer import ResponseWriter, SafeResponseWriter
from httphandler.tier1_runtime.encoders import (
    EncodeFunc,
    EncoderRegistry,
    default_registry,
    encode_html,
    encode_json,
    encode_xml,
)
from httphandler.tier1_runtime.negotiate import negotiate
from httphandler.tier1_runtime.invoke import HandlerFunc, PanicHandler, safe_call
from httphandler.tier1_runtime.options import LogFunc, Options, default_options
from httphandler.tier1_runtime.middleware import BufferedResponseWriter, Request
from httphandler.tier1_runtime.handler import (
    Handler,
    DEFAULT_OPTIONS,
    default_handler,
    handle,
    handle_func,
)

__version__ = "0.1.0"
__all__ = [
    # errors
    "HandlerError", "HTTPHandlerError", "ConfigurationError",
    "InvalidArgumentError", "HandlerFailedError", "PanicError", "EncodingError",
    "PublicError", "BadRequestError", "UnauthorizedError", "ForbiddenError",
    "NotFoundError", "ConflictError",
    # config
    "get_settings", "HandlerSettings",
    # http
    "HTTP", "WireError",
    # logging
    "get_logger",
    # context
    "get_context", "get_request_id", "RequestContext",
    # writer
    "ResponseWriter", "SafeResponseWriter",
    # encoders
    "EncodeFunc", "EncoderRegistry", "default_registry",
    "encode_html", "encode_json", "encode_xml",
    # negotiation
    "negotiate",
    # invoke
    "HandlerFunc", "PanicHandler", "safe_call",
    # options
    "LogFunc", "Options", "default_options",
    # wsgi
    "BufferedResponseWriter", "Request",
    # handler
    "Handler", "DEFAULT_OPTIONS", "default_handler", "handle", "handle_func",
]
