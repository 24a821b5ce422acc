"""Quiz history — newest-first log of completed quiz summaries.

The store keeps the sequence in memory and writes it through a
:class:`HistoryBackend` after every change. Persistence is best-effort:
read and write failures are logged and never interrupt the quiz flow.

Usage::

    store = HistoryStore(JsonFileHistoryBackend(settings.HISTORY_FILE))
    store.load()
    store.append(item)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import List, Protocol

from prepquiz.services.quiz.schemas import QuizHistoryItem

logger = logging.getLogger(__name__)


class HistoryBackend(Protocol):
    def load(self) -> List[QuizHistoryItem]: ...

    def save(self, items: List[QuizHistoryItem]) -> None: ...


class InMemoryHistoryBackend:
    """Process-local backend; contents vanish with the process."""

    def __init__(self, items: List[QuizHistoryItem] | None = None) -> None:
        self.saved: List[QuizHistoryItem] = list(items or [])
        self.save_count = 0

    def load(self) -> List[QuizHistoryItem]:
        return list(self.saved)

    def save(self, items: List[QuizHistoryItem]) -> None:
        self.saved = list(items)
        self.save_count += 1


class JsonFileHistoryBackend:
    """Single JSON array on disk, replaced atomically on every save."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> List[QuizHistoryItem]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError(f"History file {self.path} does not contain a JSON array")
        return [QuizHistoryItem.model_validate(entry) for entry in raw]

    def save(self, items: List[QuizHistoryItem]) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        payload = [item.to_wire() for item in items]
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class HistoryStore:
    """Newest-first history with write-through persistence.

    FastAPI may run sync handlers in a threadpool, so mutations and saves
    go through a single lock.
    """

    def __init__(self, backend: HistoryBackend) -> None:
        self._backend = backend
        self._items: List[QuizHistoryItem] = []
        self._lock = threading.Lock()

    def load(self) -> List[QuizHistoryItem]:
        """Read persisted history; corrupt or unreadable data yields empty history."""
        with self._lock:
            try:
                self._items = list(self._backend.load())
                logger.info("Loaded %d history item(s)", len(self._items))
            except Exception as exc:
                logger.error("Failed to load quiz history, starting empty: %s", exc)
                self._items = []
            return list(self._items)

    def items(self) -> List[QuizHistoryItem]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: QuizHistoryItem) -> None:
        with self._lock:
            self._items.insert(0, item)
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self._persist()
        logger.info("Quiz history cleared")

    def _persist(self) -> None:
        try:
            self._backend.save(list(self._items))
        except Exception as exc:
            logger.error("Failed to save quiz history: %s", exc)
