"""
httphandler test configuration.

Settings are pinned to known values and the settings cache is cleared around
every test, so tests that override env vars do not leak into each other.
"""
from __future__ import annotations

import os
from typing import Any

import httpx
import pytest

# ── Pin settings for all tests ─────────────────────────────────────────────
# These must be set before any httphandler modules are imported.

os.environ.setdefault("HTTPHANDLER_LOG_LEVEL", "WARNING")
os.environ.setdefault("HTTPHANDLER_LOG_FORMAT", "json")
os.environ.setdefault("HTTPHANDLER_REQUEST_ID_KIND", "uuid4")
os.environ.setdefault("HTTPHANDLER_FALLBACK_CONTENT_TYPE", "application/json")


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_settings():
    """Each test reads settings fresh from the environment."""
    from httphandler.tier0_core.config import _reset_settings

    _reset_settings()
    yield
    _reset_settings()


class LogRecorder:
    """LogFunc that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, handler_error, internal_error, public_error, status_code, request_id):
        self.calls.append({
            "handler_error": handler_error,
            "internal_error": internal_error,
            "public_error": public_error,
            "status_code": status_code,
            "request_id": request_id,
        })

    @property
    def messages(self) -> list[str]:
        return [str(call["handler_error"]) for call in self.calls]


@pytest.fixture
def log_recorder() -> LogRecorder:
    return LogRecorder()


@pytest.fixture
def client():
    """Return a factory building an httpx client bound to a WSGI app."""
    clients: list[httpx.Client] = []

    def make(app: Any) -> httpx.Client:
        c = httpx.Client(transport=httpx.WSGITransport(app=app), base_url="http://testserver")
        clients.append(c)
        return c

    yield make
    for c in clients:
        c.close()

