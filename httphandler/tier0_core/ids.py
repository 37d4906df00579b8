"""
httphandler.tier0_core.ids
───────────────────────────
Request id generation. The default request id generator of every Handler
comes from here; the id format is chosen with HTTPHANDLER_REQUEST_ID_KIND.
"""
from __future__ import annotations

import uuid
from functools import partial
from typing import Callable, Literal

from ulid import ULID

from httphandler.tier0_core.config import get_settings


def new_uuid4() -> str:
    """Generate a random UUID v4 string."""
    return str(uuid.uuid4())


def new_ulid() -> str:
    """Generate a ULID (lexicographically sortable, 26 chars)."""
    return str(ULID())


def new_id(kind: Literal["uuid4", "ulid"] = "uuid4") -> str:
    """Generate a new id of the given kind."""
    if kind == "uuid4":
        return new_uuid4()
    elif kind == "ulid":
        return new_ulid()
    raise ValueError(f"Unknown ID kind: {kind!r}. Use 'uuid4' or 'ulid'.")


def default_request_id_func() -> Callable[[], str]:
    """Return the generator configured by the process settings."""
    return partial(new_id, get_settings().request_id_kind)


__all__ = ["new_uuid4", "new_ulid", "new_id", "default_request_id_func"]
