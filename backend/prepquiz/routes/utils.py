"""
Shared route utilities — dependency providers and error mapping used
across route modules.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from prepquiz.services.history.store import HistoryStore
from prepquiz.services.llm_service.structured_invoker import (
    LLMServiceError,
    LLMUnavailableError,
)
from prepquiz.services.quiz.session import InvalidTransitionError, QuizSessionController


# ── Dependencies ──────────────────────────────────────────────


def get_quiz_controller(request: Request) -> QuizSessionController:
    return request.app.state.quiz_controller


def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store


# ── Error mapping ─────────────────────────────────────────────


def to_http_error(exc: Exception) -> HTTPException:
    """Translate a domain error into an HTTPException with a user-facing detail.

    - LLMUnavailableError → 503 (retry later)
    - other LLMServiceError → 502 (provider failed or returned bad content)
    - InvalidTransitionError → 409
    - ValueError → 422
    """
    if isinstance(exc, LLMUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, LLMServiceError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal server error")
