"""
httphandler.tier1_runtime.encoders
───────────────────────────────────
Error body encoders and the registry that maps content types to them.

An encoder is any callable ``(writer, request, wire_error) -> None`` that
writes the WireError to the writer; it signals failure by raising. The
registry is keyed by lowercase bare media type and carries one fallback
(encoder, content type) pair used when negotiation finds no match.
"""
from __future__ import annotations

import html
from typing import TYPE_CHECKING, Callable, Iterator, Mapping

from httphandler.tier0_core.errors import InvalidArgumentError
from httphandler.tier0_core.http import WireError
from httphandler.tier1_runtime.serialize import serialize
from httphandler.tier1_runtime.writer import ResponseWriter

if TYPE_CHECKING:
    from httphandler.tier1_runtime.middleware import Request

EncodeFunc = Callable[[ResponseWriter, "Request", WireError], None]


# ── Default encoders ──────────────────────────────────────────────────────

def encode_json(writer: ResponseWriter, request: Request, e: WireError) -> None:
    """Write ``{"StatusCode": ..., "Error": ..., "RequestUUID": ...}`` plus newline."""
    writer.write(serialize(e.as_dict()) + b"\n")


def encode_xml(writer: ResponseWriter, request: Request, e: WireError) -> None:
    """Write ``<WireError><StatusCode/><Error/><RequestUUID/></WireError>``."""
    writer.write(serialize(e.as_dict(), "xml", root="WireError"))


def encode_html(writer: ResponseWriter, request: Request, e: WireError) -> None:
    """Write a minimal HTML page with the status, the error text and the request id."""
    writer.write(
        "<!DOCTYPE html><html><head><title>"
        f"{e.status_code} Error</title></head><body><h1>"
        f"{html.escape(e.text())}</h1><hr>"
        f"<p>RequestUUID: <code>{html.escape(e.request_id)}</code></p>"
        "</body></html>"
    )


# ── Registry ──────────────────────────────────────────────────────────────

class EncoderRegistry:
    """
    Content type → encoder mapping plus a single fallback pair.

    Keys are lowercased on every insert and lookup. The registry is meant to
    be configured before serving traffic; it has no internal locking.
    """

    def __init__(
        self,
        encoders: Mapping[str, EncodeFunc] | None = None,
        fallback: tuple[EncodeFunc, str] | None = None,
    ) -> None:
        self._encoders: dict[str, EncodeFunc] = {}
        self._fallback: tuple[EncodeFunc, str] = (encode_json, "application/json")
        if encoders is not None:
            self.set_encoders(encoders)
        if fallback is not None:
            self.set_fallback_encoder(fallback[1], fallback[0])

    def set_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        """Insert or replace the encoder for one content type."""
        if not content_type:
            raise InvalidArgumentError("content-type cannot be empty")
        if encoder is None:
            raise InvalidArgumentError("encoder cannot be None")
        self._encoders[content_type.lower()] = encoder

    def set_encoders(self, encoders: Mapping[str, EncodeFunc] | None) -> None:
        """Merge a mapping of content type → encoder into the registry."""
        if encoders is None:
            raise InvalidArgumentError("encoders cannot be None")
        for content_type, encoder in encoders.items():
            self._encoders[content_type.lower()] = encoder

    def set_fallback_encoder(self, content_type: str, encoder: EncodeFunc | None) -> None:
        """Replace the encoder used when no content type matches."""
        if not content_type:
            raise InvalidArgumentError("content-type cannot be empty")
        if encoder is None:
            raise InvalidArgumentError("encoder cannot be None")
        self._fallback = (encoder, content_type)

    @property
    def fallback(self) -> tuple[EncodeFunc, str]:
        """The fallback pair, content type lowercased."""
        encoder, content_type = self._fallback
        return encoder, content_type.lower()

    def get(self, content_type: str) -> EncodeFunc | None:
        return self._encoders.get(content_type.lower())

    def remove(self, content_type: str) -> None:
        """Drop the encoder for a content type; unknown types are ignored."""
        self._encoders.pop(content_type.lower(), None)

    def __getitem__(self, content_type: str) -> EncodeFunc:
        return self._encoders[content_type.lower()]

    def __delitem__(self, content_type: str) -> None:
        del self._encoders[content_type.lower()]

    def __contains__(self, content_type: object) -> bool:
        return isinstance(content_type, str) and content_type.lower() in self._encoders

    def __iter__(self) -> Iterator[str]:
        return iter(self._encoders)

    def __len__(self) -> int:
        return len(self._encoders)

    def __repr__(self) -> str:
        return f"EncoderRegistry({sorted(self._encoders)!r}, fallback={self.fallback[1]!r})"


def default_encoders() -> dict[str, EncodeFunc]:
    return {
        "application/json": encode_json,
        "application/xml": encode_xml,
        "text/html": encode_html,
        "text/xml": encode_xml,
    }


def default_registry(fallback_content_type: str = "application/json") -> EncoderRegistry:
    """Registry with JSON, XML and HTML encoders; fallback picked from them."""
    encoders = default_encoders()
    fallback_content_type = fallback_content_type.lower()
    return EncoderRegistry(
        encoders,
        fallback=(encoders[fallback_content_type], fallback_content_type),
    )


__all__ = [
    "EncodeFunc",
    "EncoderRegistry",
    "encode_json",
    "encode_xml",
    "encode_html",
    "default_encoders",
    "default_registry",
]
