"""Error taxonomy shared by the pipeline, the transports and the CLI."""
from __future__ import annotations

from typing import Any


class ProfilerError(Exception):
    """Base class for every failure a caller can observe.

    ``kind`` is a stable tag; ``status_code`` is what the HTTP layer answers with.
    """

    kind: str = "error"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidRequestError(ProfilerError):
    kind = "invalid_request"
    status_code = 400


class ConfigurationError(ProfilerError):
    kind = "configuration"
    status_code = 500


class ExternalServiceError(ProfilerError):
    """Failure reported by the external reasoning service."""

    status_code = 502

    def __init__(self, message: str, *, attempts: int = 1):
        self.attempts = attempts
        super().__init__(message)


class ExternalServiceOverloaded(ExternalServiceError):
    kind = "overloaded"
    status_code = 503


class ExternalServiceRateLimited(ExternalServiceError):
    kind = "rate_limited"
    status_code = 429


class ExternalServiceFatal(ExternalServiceError):
    kind = "external_fatal"
    status_code = 502


class ExtractionError(ProfilerError):
    kind = "extraction"
    status_code = 500

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.raw:
            payload["raw"] = self.raw
        return payload


class PipelineTimeoutError(ProfilerError):
    kind = "timeout"
    status_code = 504
