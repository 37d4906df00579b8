"""
httphandler.tier0_core.config
──────────────────────────────
Typed settings with env layering. Reads from .env → environment variables.
All fields are typed via Pydantic; invalid values raise at startup, not
while serving requests.

Only process-level knobs live here (log output, request id format, default
fallback content type). Per-handler behaviour is configured through
``httphandler.tier1_runtime.options.Options``.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONTENT_TYPES = ("application/json", "application/xml", "text/xml", "text/html")


class HandlerSettings(BaseSettings):
    """Process-wide settings. All env vars are prefixed with HTTPHANDLER_."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="HTTPHANDLER_LOG_LEVEL")
    log_format: str = Field(default="json", alias="HTTPHANDLER_LOG_FORMAT")

    # ── Request ids ───────────────────────────────────────────────────────────
    request_id_kind: str = Field(default="uuid4", alias="HTTPHANDLER_REQUEST_ID_KIND")

    # ── Encoding ──────────────────────────────────────────────────────────────
    fallback_content_type: str = Field(
        default="application/json", alias="HTTPHANDLER_FALLBACK_CONTENT_TYPE"
    )

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "console"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("request_id_kind")
    @classmethod
    def validate_request_id_kind(cls, v: str) -> str:
        allowed = {"uuid4", "ulid"}
        if v.lower() not in allowed:
            raise ValueError(f"request_id_kind must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("fallback_content_type")
    @classmethod
    def validate_fallback_content_type(cls, v: str) -> str:
        if v.lower() not in DEFAULT_CONTENT_TYPES:
            raise ValueError(
                f"fallback_content_type must be one of {DEFAULT_CONTENT_TYPES}, got {v!r}"
            )
        return v.lower()


@lru_cache(maxsize=1)
def get_settings() -> HandlerSettings:
    """
    Return the singleton settings. Cached after first call.
    Call _reset_settings() in tests to pick up new env vars.
    """
    return HandlerSettings()


def _reset_settings() -> None:
    """For tests: clear the settings cache."""
    get_settings.cache_clear()
