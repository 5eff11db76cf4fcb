"""Anthropic client factory and the failure model of the external service."""
from __future__ import annotations

from enum import Enum
from typing import Any

from stakeholder.config import Settings
from stakeholder.errors import (
    ExternalServiceFatal,
    ExternalServiceOverloaded,
    ExternalServiceRateLimited,
)

OVERLOADED_STATUS = 529
RATE_LIMITED_STATUS = 429


class ErrorKind(str, Enum):
    OVERLOADED = "overloaded"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"

    @property
    def retryable(self) -> bool:
        return self is not ErrorKind.FATAL


def get_client(config: Settings):
    """Build the AsyncAnthropic client for the configured credential.

    Raises ConfigurationError when no API key is configured.
    """
    import anthropic

    kwargs: dict[str, Any] = {"api_key": config.require_api_key()}
    if config.anthropic_base_url.strip():
        kwargs["base_url"] = config.anthropic_base_url.strip()
    # Retries are owned by the pipeline's retry policy.
    kwargs["max_retries"] = 0
    return anthropic.AsyncAnthropic(**kwargs)


def _body_error_type(exc: BaseException) -> str:
    body = getattr(exc, "body", None)
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if isinstance(error, dict):
        return str(error.get("type") or "")
    return str(body.get("type") or "")


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a failed call to an ErrorKind.

    Order: our own typed errors, HTTP status, API error body type, then the
    message text as a last resort for errors that carry no status at all.
    """
    if isinstance(exc, ExternalServiceOverloaded):
        return ErrorKind.OVERLOADED
    if isinstance(exc, ExternalServiceRateLimited):
        return ErrorKind.RATE_LIMITED
    if isinstance(exc, ExternalServiceFatal):
        return ErrorKind.FATAL

    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "status", None)
    if status == OVERLOADED_STATUS:
        return ErrorKind.OVERLOADED
    if status == RATE_LIMITED_STATUS:
        return ErrorKind.RATE_LIMITED

    body_type = _body_error_type(exc)
    if body_type == "overloaded_error":
        return ErrorKind.OVERLOADED
    if body_type == "rate_limit_error":
        return ErrorKind.RATE_LIMITED
    if status is not None:
        return ErrorKind.FATAL

    message = str(exc).lower()
    if "overloaded" in message:
        return ErrorKind.OVERLOADED
    if "rate_limit" in message or "rate limit" in message:
        return ErrorKind.RATE_LIMITED
    return ErrorKind.FATAL


def extract_response_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response, skipping tool blocks."""
    blocks = getattr(response, "content", None) or []
    text_parts: list[str] = []
    for block in blocks:
        btype = getattr(block, "type", None)
        btext = getattr(block, "text", None)
        is_text_like_type = btype in (None, "text") or not isinstance(btype, str)
        if is_text_like_type and isinstance(btext, str) and btext.strip():
            text_parts.append(btext)
    return "\n".join(text_parts).strip()
