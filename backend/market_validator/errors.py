"""Typed failures raised by the market validation pipeline.

Every failure the pipeline can produce is one of the classes below. Each
carries a stable ``code`` string (what the HTTP layer and logs key on) plus
the metadata specific to that failure kind:

  ConfigurationError         — credential missing, raised before any network call
  RateLimitError             — HTTP 429 rate_limit_exceeded (retry_after_seconds, details)
  IncompleteGenerationError  — upstream status "incomplete" (incomplete_details, response_id)
  MissingOutputError         — no assistant text block in the envelope
  JsonParseError             — assistant text is not a JSON object (raw_text)
  GenericCallFailure         — any other non-OK response / transport failure
  CompletionTimeoutError     — request exceeded the configured timeout
  ShapeValidationError       — a stage payload or final result has the wrong shape

Nothing here retries. Resilience is the caller's job.
"""

from __future__ import annotations

from typing import Any, Literal, Optional


class MarketValidationError(Exception):
    """Base class for every pipeline failure."""

    code: str = "MARKET_VALIDATION_FAILED"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.code)


class ConfigurationError(MarketValidationError):
    """Raised when the completion service credential is missing."""

    code = "OPENAI_API_KEY_MISSING"


class RateLimitError(MarketValidationError):
    """Raised on HTTP 429 with the rate_limit_exceeded error code."""

    code = "OPENAI_RATE_LIMIT"

    def __init__(self, retry_after_seconds: int, details: str) -> None:
        super().__init__(f"{self.code}: retry after {retry_after_seconds}s ({details})")
        self.retry_after_seconds = retry_after_seconds
        self.details = details


class IncompleteGenerationError(MarketValidationError):
    """Raised when the upstream response reports a non-terminal status."""

    code = "OPENAI_INCOMPLETE"

    def __init__(self, incomplete_details: Any, response_id: Optional[str]) -> None:
        super().__init__(f"{self.code}: response_id={response_id} details={incomplete_details}")
        self.incomplete_details = incomplete_details
        self.response_id = response_id


class MissingOutputError(MarketValidationError):
    """Raised when no assistant text block is present in the envelope."""

    code = "OPENAI_MISSING_OUTPUT_TEXT"


class JsonParseError(MarketValidationError):
    """Raised when assistant text is present but is not a JSON object."""

    code = "OPENAI_JSON_PARSE_FAILED"

    def __init__(self, raw_text: str, reason: str = "") -> None:
        super().__init__(f"{self.code}: {reason}" if reason else self.code)
        self.raw_text = raw_text


class GenericCallFailure(MarketValidationError):
    """Raised for any other failed call (non-OK status, transport error)."""

    code = "OPENAI_CALL_FAILED"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message or f"{self.code}: HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class CompletionTimeoutError(GenericCallFailure):
    """Raised when a completion call exceeds its configured timeout."""

    code = "OPENAI_TIMEOUT"


ShapeErrorKind = Literal["missing_key", "invalid_type"]


class ShapeValidationError(MarketValidationError):
    """Raised when a payload is missing a key or a key has the wrong type.

    ``field`` names the first violated key, ``kind`` says which rule broke.
    """

    def __init__(self, field: str, kind: ShapeErrorKind) -> None:
        self.field = field
        self.kind = kind
        self.code = f"MISSING_KEY_{field}" if kind == "missing_key" else f"INVALID_{field}"
        super().__init__(self.code)


__all__ = [
    "MarketValidationError",
    "ConfigurationError",
    "RateLimitError",
    "IncompleteGenerationError",
    "MissingOutputError",
    "JsonParseError",
    "GenericCallFailure",
    "CompletionTimeoutError",
    "ShapeValidationError",
]
