"""Structured LLM invocation with retry/backoff and response validation.

This module provides:
- ``with_retry``: bounded retry with exponential backoff around one
  provider call, classifying failures as transient or terminal
- ``parse_json_response``: trim + parse the provider's JSON text
- ``invoke_structured``: schema-constrained call -> parse -> Pydantic validation

Every failure surfaces as a single :class:`LLMServiceError` subclass whose
message is safe to show to the user.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from prepquiz.core.config import settings
from prepquiz.services.llm_service.llm import get_llm_structured

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

UNAVAILABLE_MESSAGE = "The AI service is currently unavailable. Please try again in a few moments."

# Substrings (lower-cased) that mark an infrastructure failure worth retrying
TRANSIENT_MARKERS = ("500", "503", "rpc failed", "network error", "xhr error")

# Transport exceptions whose text is often empty
_TRANSIENT_TYPES = (asyncio.TimeoutError, TimeoutError, ConnectionError, httpx.TransportError)

_CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?|```\s*", re.DOTALL)


# ── Errors ────────────────────────────────────────────────────


class LLMServiceError(Exception):
    """Base class for user-facing generation failures."""


class LLMUnavailableError(LLMServiceError):
    """Transient provider failures persisted through every attempt."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(UNAVAILABLE_MESSAGE)


class LLMInvocationError(LLMServiceError):
    """Non-transient provider failure; never retried."""

    def __init__(self, last_error: Exception):
        self.last_error = last_error
        details = str(last_error) or type(last_error).__name__
        super().__init__(
            f"An unexpected error occurred while communicating with the AI service. Details: {details}"
        )


class MalformedResponseError(LLMServiceError):
    """Provider answered, but the content is unusable."""


# ── Retry / Backoff ───────────────────────────────────────────


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, _TRANSIENT_TYPES):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def backoff_delay_ms(attempt: int, base_ms: Optional[int] = None) -> int:
    """Delay before retrying after failed *attempt* (1-based): 1s, 2s, 4s, …"""
    base = base_ms if base_ms is not None else settings.LLM_BACKOFF_BASE_MS
    return base * (2 ** (attempt - 1))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    *,
    task_name: str = "LLM call",
) -> T:
    """Run *operation* with bounded retry and exponential backoff.

    Args:
        operation: Zero-argument coroutine factory. Called once per attempt,
            so it must be safe to repeat.
        max_retries: Total number of attempts (default: LLM_MAX_RETRIES).
        task_name: Label for log messages.

    Returns:
        The first successful result.

    Raises:
        LLMUnavailableError: Transient failures exhausted every attempt.
        LLMInvocationError: A failure not recognized as transient.
    """
    max_attempts = max_retries if max_retries is not None else settings.LLM_MAX_RETRIES
    attempt = 0

    while True:
        try:
            return await operation()
        except LLMServiceError:
            raise
        except Exception as exc:
            attempt += 1
            transient = is_transient_error(exc)

            if transient and attempt < max_attempts:
                delay_ms = backoff_delay_ms(attempt)
                logger.warning(
                    "Transient error in %s (attempt %d/%d). Retrying in %dms: %s",
                    task_name, attempt, max_attempts, delay_ms, str(exc)[:200],
                )
                await asyncio.sleep(delay_ms / 1000)
                continue

            logger.error(
                "%s failed on attempt %d/%d (%s): %s",
                task_name, attempt, max_attempts,
                "transient" if transient else "terminal", str(exc)[:500],
            )
            if transient:
                raise LLMUnavailableError(attempt, exc) from exc
            raise LLMInvocationError(exc) from exc


# ── Parsing ───────────────────────────────────────────────────


def _response_text(response: Any) -> str:
    """Extract text from a LangChain message (content may be a list of parts)."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        content = "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
        )
    return str(content).strip()


def parse_json_response(text: str, invalid_message: str = "AI returned an invalid response format.") -> Any:
    """Parse provider text as JSON.

    JSON mode normally yields bare JSON; local models sometimes wrap it in
    markdown fences, which are stripped before a second attempt.

    Raises:
        MalformedResponseError: If the text is not valid JSON.
    """
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    cleaned = _CODE_FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Provider returned non-JSON content. First 500 chars: %s", text[:500])
        raise MalformedResponseError(invalid_message) from exc


# ── Structured Invocation ─────────────────────────────────────


async def invoke_structured(
    prompt: str,
    output_model: Type[M],
    response_schema: dict,
    *,
    invalid_message: str,
    temperature: Optional[float] = None,
    max_retries: Optional[int] = None,
    task_name: str = "structured output",
) -> M:
    """Invoke the LLM under a response schema and validate the result.

    Pipeline:
    1. Call the provider through :func:`with_retry`
    2. Trim and parse the JSON text
    3. Validate against *output_model*

    Content problems (steps 2-3) are not retried.

    Raises:
        LLMServiceError: Any failure, with a user-facing message.
    """
    llm = get_llm_structured(response_schema=response_schema, temperature=temperature)

    response = await with_retry(lambda: llm.ainvoke(prompt), max_retries, task_name=task_name)

    data = parse_json_response(_response_text(response), invalid_message)

    try:
        validated = output_model.model_validate(data)
    except ValidationError as exc:
        logger.error("%s failed validation against %s: %s", task_name, output_model.__name__, str(exc)[:500])
        raise MalformedResponseError(invalid_message) from exc

    logger.info("%s validated against %s", task_name, output_model.__name__)
    return validated
