"""LLM provider factory for schema-constrained JSON generation.

Usage:
    from prepquiz.services.llm_service.llm import get_llm_structured

    llm = get_llm_structured(response_schema=QUIZ_RESPONSE_SCHEMA)
    response = await llm.ainvoke(prompt)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama

from prepquiz.core.config import settings

logger = logging.getLogger(__name__)

# ── Provider registry ─────────────────────────────────────────

_PROVIDERS: Dict[str, Callable[..., BaseChatModel]] = {}

# ── LLM instance cache (keyed on frozen kwargs) ───────────────
_llm_cache: Dict[tuple, BaseChatModel] = {}
_LLM_CACHE_MAX = 16


def _register_providers():
    """Build the provider map lazily (called once on first use)."""
    if _PROVIDERS:
        return

    _PROVIDERS["GOOGLE"] = _build_google
    _PROVIDERS["OLLAMA"] = _build_ollama


# ── Builder functions ─────────────────────────────────────────


def _build_google(
    temperature: float,
    top_p: float,
    max_tokens: int,
    response_schema: Optional[dict] = None,
) -> BaseChatModel:
    """Build Google Gemini client; JSON mode when a schema is given."""
    kw: Dict[str, Any] = dict(
        model=settings.GOOGLE_MODEL,
        google_api_key=settings.GOOGLE_API_KEY,
        temperature=temperature,
        top_p=top_p,
        max_output_tokens=max_tokens,
        timeout=settings.LLM_TIMEOUT,
        # Retries are owned by structured_invoker.with_retry
        max_retries=1,
    )
    if response_schema is not None:
        kw["response_mime_type"] = "application/json"
        kw["response_schema"] = response_schema

    return ChatGoogleGenerativeAI(**kw)


def _build_ollama(
    temperature: float,
    top_p: float,
    max_tokens: int,
    response_schema: Optional[dict] = None,
) -> BaseChatModel:
    """Build Ollama client; ``format`` accepts a JSON schema directly."""
    kw: Dict[str, Any] = dict(
        model=settings.OLLAMA_MODEL,
        temperature=temperature,
        top_p=top_p,
        num_predict=max_tokens,
    )
    if response_schema is not None:
        kw["format"] = response_schema

    return ChatOllama(**kw)


# ── Public API ────────────────────────────────────────────────


def get_llm_structured(
    response_schema: Optional[dict] = None,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
    provider: Optional[str] = None,
) -> BaseChatModel:
    """Return a LLM instance for structured output.

    Args:
        response_schema: JSON schema the response must conform to.
        temperature: Generation temperature (default: LLM_TEMPERATURE_STRUCTURED)
        top_p: Nucleus sampling parameter (default: LLM_TOP_P_STRUCTURED)
        max_tokens: Max tokens to generate (default: LLM_MAX_TOKENS)
        provider: Ignore global config and use a specific provider.

    Returns:
        LangChain chat model configured for JSON generation.
    """
    _register_providers()

    temp = temperature if temperature is not None else settings.LLM_TEMPERATURE_STRUCTURED
    p = top_p if top_p is not None else settings.LLM_TOP_P_STRUCTURED
    tokens = max_tokens if max_tokens is not None else settings.LLM_MAX_TOKENS

    active_provider = provider if provider else settings.LLM_PROVIDER
    builder = _PROVIDERS.get(active_provider)
    if builder is None:
        logger.warning(f"Unknown LLM_PROVIDER '{active_provider}', falling back to GOOGLE")
        active_provider = "GOOGLE"
        builder = _PROVIDERS["GOOGLE"]

    schema_key = json.dumps(response_schema, sort_keys=True) if response_schema is not None else None
    cache_key = ("structured", active_provider, temp, p, tokens, schema_key)
    cached = _llm_cache.get(cache_key)
    if cached is not None:
        return cached

    logger.debug("Building %s client (temperature=%s, schema=%s)", active_provider, temp, schema_key is not None)
    instance = builder(temperature=temp, top_p=p, max_tokens=tokens, response_schema=response_schema)
    if len(_llm_cache) >= _LLM_CACHE_MAX:
        _llm_cache.pop(next(iter(_llm_cache)))
    _llm_cache[cache_key] = instance
    return instance


def describe_provider() -> dict:
    """Non-secret summary of the active provider (for /health)."""
    model = settings.GOOGLE_MODEL if settings.LLM_PROVIDER == "GOOGLE" else settings.OLLAMA_MODEL
    return {
        "provider": settings.LLM_PROVIDER,
        "model": model,
        "api_key_set": bool(settings.GOOGLE_API_KEY),
    }
