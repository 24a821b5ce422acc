"""Health check endpoint.

Reports provider configuration (no live call is made) and history size.
"""

from __future__ import annotations

import logging
from fastapi import APIRouter, Depends

from prepquiz.services.history.store import HistoryStore
from prepquiz.services.llm_service.llm import describe_provider
from .utils import get_history_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check(store: HistoryStore = Depends(get_history_store)):
    """Health check endpoint - verify configuration of system components."""
    llm = describe_provider()
    llm_ok = llm["provider"] != "GOOGLE" or llm["api_key_set"]
    return {
        "llm": {**llm, "status": "ok" if llm_ok else "error"},
        "history": {"status": "ok", "items": len(store)},
        "overall": "healthy" if llm_ok else "degraded",
    }
