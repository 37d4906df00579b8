"""
httphandler.tier1_runtime.negotiate
────────────────────────────────────
Pick the encoder for an error body.

Order of precedence:
  1. explicit content type on the HandlerError (Accept is not consulted)
  2. the first Accept value, in header order, with a registered encoder
  3. the registry fallback

Quality values (``;q=``) are ignored: header order alone decides.
"""
from __future__ import annotations

import re
from typing import Iterable

from httphandler.tier1_runtime.encoders import EncodeFunc, EncoderRegistry

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")


def media_type(value: str) -> str | None:
    """
    Return the lowercase bare media type of a header value, dropping any
    ``;param=value`` segments. None when the value is not a media type.
    """
    bare = value.split(";", 1)[0].strip()
    if not _MEDIA_TYPE.match(bare):
        return None
    return bare.lower()


def negotiate(
    content_type: str | None,
    accept: Iterable[str],
    registry: EncoderRegistry,
) -> tuple[EncodeFunc, str]:
    """Return ``(encoder, content_type)`` for an error response."""
    if content_type:
        ct = media_type(content_type) or content_type.lower()
        encoder = registry.get(ct)
        if encoder is not None:
            return encoder, ct
        return registry.fallback

    for value in accept:
        ct = media_type(value)
        if ct is None:
            continue
        encoder = registry.get(ct)
        if encoder is not None:
            return encoder, ct
    return registry.fallback


__all__ = ["media_type", "negotiate"]
