"""
httphandler.tier0_core.http
────────────────────────────
HTTP primitives: status codes, status lines, and the WireError envelope that
is sent to the client when a handler fails.

The WireError field names (StatusCode, Error, RequestUUID) are part of the
wire contract and are identical for every serialization format.
"""
from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """HTTP status codes used by handlers and tests."""

    # 2xx
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 3xx
    NOT_MODIFIED = 304

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503


def status_line(status_code: int) -> str:
    """Return the WSGI status line for a code, e.g. ``"404 Not Found"``."""
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        phrase = "Unknown"
    return f"{status_code} {phrase}"


# ── Wire envelope ─────────────────────────────────────────────────────────

@dataclass
class WireError:
    """The error entity serialized to the client. Built fresh per failure."""
    status_code: int
    error: Any
    request_id: str

    def payload(self) -> Any:
        """The public error in its wire form, see ``public_payload``."""
        return public_payload(self.error)

    def text(self) -> str:
        """The public error as a single string (structured errors as JSON)."""
        payload = self.payload()
        if isinstance(payload, str):
            return payload
        return json.dumps(payload)

    def as_dict(self) -> dict[str, Any]:
        return {
            "StatusCode": self.status_code,
            "Error": self.payload(),
            "RequestUUID": self.request_id,
        }


def _structured(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, BaseException):
        to_dict = getattr(value, "to_dict", None)
        return to_dict() if callable(to_dict) else None
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def public_payload(value: Any) -> Any:
    """
    Return the structured form of a public error, or its text.

    Pydantic models, objects with ``to_dict()`` and dataclasses are converted
    to plain data; JSON-compatible values pass through. When the structured
    form is empty or cannot be represented as JSON, ``str(value)`` is used so
    plain errors never go over the wire as ``{}`` or ``null``.
    """
    structured = _structured(value)
    if structured is None or structured == {}:
        return str(value)
    try:
        json.dumps(structured)
    except (TypeError, ValueError):
        return str(value)
    return structured


__all__ = ["HTTP", "status_line", "WireError", "public_payload"]
