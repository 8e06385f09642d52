"""Centralized OpenAI Responses API client.

All deep research stages MUST go through `ResponsesClient.create_json()`.
This ensures:
  - Credentials, endpoint, models and timeouts come from one immutable
    `OpenAISettings` object (built from env by `load_openai_settings()`).
  - Every call is exactly ONE HTTP request. No retries here — the caller
    owns retry/backoff policy.
  - Every failure is classified into a typed error (see ..errors).
  - Consistent logging across all stages.
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..constants import DEFAULT_RETRY_AFTER_SECONDS
from ..errors import (
    CompletionTimeoutError,
    ConfigurationError,
    GenericCallFailure,
    IncompleteGenerationError,
    JsonParseError,
    MissingOutputError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants — overridable from environment
# ---------------------------------------------------------------------------
_OPENAI_RESPONSES_URL = "https://api.openai.com/v1/responses"
_DEFAULT_LIGHT_MODEL = "gpt-4o-mini"
_DEFAULT_DEEP_MODEL = "gpt-4o-mini"

_RESET_TOKENS_PATTERN = re.compile(r"([\d.]+)s")
_TRY_AGAIN_PATTERN = re.compile(r"try again in\s+([\d.]+)s", re.IGNORECASE)


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class OpenAISettings:
    """Immutable configuration for the completion service.

    `light_timeout` applies to the fast stages (draft, synthesis),
    `deep_timeout` to the web-search stages. Both are read timeouts;
    `connect_timeout` bounds connection setup for every call.
    """

    api_key: str = ""
    organization: str = ""
    api_url: str = _OPENAI_RESPONSES_URL
    light_model: str = _DEFAULT_LIGHT_MODEL
    deep_model: str = _DEFAULT_DEEP_MODEL
    connect_timeout: float = 10.0
    light_timeout: float = 60.0
    deep_timeout: float = 300.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip())


def load_openai_settings() -> OpenAISettings:
    """Build settings from the process environment."""
    return OpenAISettings(
        api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        organization=os.getenv("OPENAI_ORG_ID", "").strip(),
        api_url=os.getenv("OPENAI_RESPONSES_URL", _OPENAI_RESPONSES_URL).strip(),
        light_model=os.getenv("OPENAI_LIGHT_MODEL", _DEFAULT_LIGHT_MODEL).strip(),
        deep_model=os.getenv("OPENAI_DEEP_MODEL", _DEFAULT_DEEP_MODEL).strip(),
        connect_timeout=_env_float("OPENAI_CONNECT_TIMEOUT", 10.0),
        light_timeout=_env_float("OPENAI_LIGHT_TIMEOUT", 60.0),
        deep_timeout=_env_float("OPENAI_DEEP_TIMEOUT", 300.0),
    )


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------
WEB_SEARCH_TOOL: Dict[str, Any] = {"type": "web_search_preview", "search_context_size": "medium"}


@dataclass(frozen=True)
class CompletionRequest:
    """One call to the Responses API.

    `json_response` forces a JSON object via text.format. `read_timeout`
    overrides the settings' read timeout for this call only.
    """

    model: str
    input: str
    max_output_tokens: int
    tools: List[Dict[str, Any]] = field(default_factory=list)
    max_tool_calls: Optional[int] = None
    temperature: Optional[float] = None
    json_response: bool = False
    read_timeout: Optional[float] = None


def build_payload(request: CompletionRequest) -> Dict[str, Any]:
    """Build a Responses API payload. Optional keys are only sent when set."""
    payload: Dict[str, Any] = {
        "model": request.model,
        "input": request.input,
        "max_output_tokens": request.max_output_tokens,
    }
    if request.tools:
        payload["tools"] = [dict(tool) for tool in request.tools]
    if request.max_tool_calls is not None:
        payload["max_tool_calls"] = request.max_tool_calls
    if request.temperature is not None:
        payload["temperature"] = request.temperature
    if request.json_response:
        payload["text"] = {"format": {"type": "json_object"}}
    return payload


# ---------------------------------------------------------------------------
# Response parsing helpers
# ---------------------------------------------------------------------------
def parse_retry_after_seconds(error_json: Any, headers: httpx.Headers) -> Optional[int]:
    """Extract a retry hint from a 429 response.

    Checks the x-ratelimit-reset-tokens header ("12.5s") first, then the
    error message ("... try again in 7.2s ..."). Rounds up. None if neither
    parses.
    """
    reset_tokens = headers.get("x-ratelimit-reset-tokens")
    if reset_tokens:
        match = _RESET_TOKENS_PATTERN.search(reset_tokens)
        if match:
            try:
                return math.ceil(float(match.group(1)))
            except ValueError:
                pass

    message = _error_message(error_json)
    match = _TRY_AGAIN_PATTERN.search(message)
    if match:
        try:
            return math.ceil(float(match.group(1)))
        except ValueError:
            return None
    return None


def _error_object(error_json: Any) -> Dict[str, Any]:
    if isinstance(error_json, dict) and isinstance(error_json.get("error"), dict):
        return error_json["error"]
    return {}


def _error_message(error_json: Any) -> str:
    message = _error_object(error_json).get("message")
    return message if isinstance(message, str) else ""


def extract_output_text(data: Any) -> Optional[str]:
    """Find the assistant's text block in a Responses API envelope.

    Prefers an output item with type "message" and role "assistant", then any
    item with role "assistant". Inside it, prefers an "output_text" content
    block, then any block carrying a string `text`.
    """
    output = data.get("output") if isinstance(data, dict) else None
    if not isinstance(output, list):
        return None
    items = [item for item in output if isinstance(item, dict)]

    message = next(
        (i for i in items if i.get("type") == "message" and i.get("role") == "assistant"),
        None,
    ) or next((i for i in items if i.get("role") == "assistant"), None)
    if message is None:
        return None

    content = message.get("content")
    if not isinstance(content, list):
        return None
    blocks = [block for block in content if isinstance(block, dict)]

    block = next((b for b in blocks if b.get("type") == "output_text"), None) or next(
        (b for b in blocks if isinstance(b.get("text"), str)), None
    )
    if block is None:
        return None
    text = block.get("text")
    return text if isinstance(text, str) else None


def sanitize_json(raw: str) -> str:
    """Strip markdown fences and a leading language tag from model output.

    The result is handed to json.loads as-is. Prose around the JSON is NOT
    removed — that is a parse failure.
    """
    text = raw.strip().lstrip("\ufeff")
    if text.startswith("```"):
        parts = text.split("```")
        # parts: ["", "json\n{...}", ""] or ["", "{...}", ""]
        text = parts[1] if len(parts) >= 3 else text[3:]
        text = text.strip()
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse assistant text into a JSON object or raise JsonParseError."""
    try:
        parsed = json.loads(sanitize_json(text))
    except json.JSONDecodeError as exc:
        logger.error("[OPENAI] JSON parse failed: %s | raw (first 300 chars): %s", exc, text[:300])
        raise JsonParseError(text, str(exc)) from exc
    if not isinstance(parsed, dict):
        logger.error("[OPENAI] JSON output is %s, expected object", type(parsed).__name__)
        raise JsonParseError(text, f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class ResponsesClient:
    """Stateless Responses API caller.

    A fresh httpx.AsyncClient is opened per call, so independent pipeline
    runs share no connection state. `transport` exists for tests
    (httpx.MockTransport).
    """

    def __init__(
        self,
        settings: OpenAISettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }
        if self.settings.organization:
            headers["OpenAI-Organization"] = self.settings.organization
        return headers

    def _timeout(self, request: CompletionRequest) -> httpx.Timeout:
        read = request.read_timeout if request.read_timeout is not None else self.settings.light_timeout
        return httpx.Timeout(read, connect=self.settings.connect_timeout)

    async def create_json(self, request: CompletionRequest) -> Dict[str, Any]:
        """Perform one Responses API call and return the parsed JSON object.

        Raises
        ------
        ConfigurationError
            API key missing (checked before any network I/O).
        RateLimitError
            HTTP 429 with code rate_limit_exceeded.
        IncompleteGenerationError
            Envelope status is "incomplete".
        MissingOutputError
            No assistant text block in the envelope.
        JsonParseError
            Assistant text is not a JSON object.
        GenericCallFailure
            Any other non-OK response or transport error
            (CompletionTimeoutError on timeout).
        """
        if not self.settings.is_configured:
            logger.error("[OPENAI] API key missing (OPENAI_API_KEY)")
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        payload = build_payload(request)
        timeout = self._timeout(request)
        logger.info(
            "[OPENAI] Calling %s (max_output_tokens=%s, tools=%d)",
            request.model,
            request.max_output_tokens,
            len(request.tools),
        )

        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(
                    self.settings.api_url,
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.TimeoutException as exc:
            duration = time.perf_counter() - t0
            logger.error("[OPENAI] Timeout after %.1fs", duration)
            raise CompletionTimeoutError(f"OPENAI_TIMEOUT after {duration:.1f}s") from exc
        except httpx.HTTPError as exc:
            logger.error("[OPENAI] Transport error: %s", exc)
            raise GenericCallFailure(f"OPENAI_CALL_FAILED: {exc}") from exc

        duration = time.perf_counter() - t0
        logger.info("[OPENAI] HTTP %s (%.1fs)", response.status_code, duration)

        if not response.is_success:
            self._raise_for_error_response(response)

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("[OPENAI] Response envelope is not JSON: %s", response.text[:400])
            raise GenericCallFailure(
                "OPENAI_CALL_FAILED: response envelope is not JSON",
                status_code=response.status_code,
                body=response.text[:400],
            ) from exc
        if not isinstance(data, dict):
            raise GenericCallFailure(
                "OPENAI_CALL_FAILED: response envelope is not an object",
                status_code=response.status_code,
                body=response.text[:400],
            )

        usage = data.get("usage")
        if isinstance(usage, dict):
            logger.info(
                "[OPENAI] Tokens used: input=%s, output=%s, total=%s",
                usage.get("input_tokens", "?"),
                usage.get("output_tokens", "?"),
                usage.get("total_tokens", "?"),
            )

        if data.get("status") == "incomplete":
            details = data.get("incomplete_details")
            logger.error("[OPENAI] Incomplete response id=%s details=%s", data.get("id"), details)
            raise IncompleteGenerationError(details, data.get("id"))

        text = extract_output_text(data)
        if not text:
            logger.error("[OPENAI] No assistant output text (response id=%s)", data.get("id"))
            raise MissingOutputError()

        logger.info("[OPENAI] Raw output length: %d chars", len(text))
        parsed = parse_json_object(text)
        logger.info("[OPENAI] Success")
        return parsed

    def _raise_for_error_response(self, response: httpx.Response) -> None:
        try:
            error_json: Any = response.json()
        except ValueError:
            error_json = {}
        logger.error("[OPENAI] Error response: %s", response.text[:400])

        error = _error_object(error_json)
        if response.status_code == 429 and error.get("code") == "rate_limit_exceeded":
            retry_after = parse_retry_after_seconds(error_json, response.headers)
            if retry_after is None:
                retry_after = DEFAULT_RETRY_AFTER_SECONDS
            details = _error_message(error_json) or "Rate limit exceeded"
            logger.warning("[OPENAI] Rate limited — retry after %ss", retry_after)
            raise RateLimitError(retry_after, details)

        raise GenericCallFailure(
            status_code=response.status_code,
            body=response.text[:400],
        )
