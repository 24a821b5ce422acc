"""Quiz history routes."""

import logging

from fastapi import APIRouter, Depends

from prepquiz.services.history.store import HistoryStore
from .utils import get_history_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/history")
async def list_history(store: HistoryStore = Depends(get_history_store)):
    return [item.to_wire() for item in store.items()]


@router.delete("/history")
async def clear_history(store: HistoryStore = Depends(get_history_store)):
    store.clear()
    return {"cleared": True}
