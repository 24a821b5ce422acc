"""
Shared pytest fixtures and configuration for the entire test suite.
Applies to all subdirectories: unit/, api/
"""

import sys
import os
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
import pytest

# ── Ensure backend is importable from every pytest session ──────────────────
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

# Minimal env so that Pydantic Settings can validate on import
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")
os.environ.setdefault("LLM_PROVIDER", "GOOGLE")


# ── Question factories ───────────────────────────────────────────────────────

def make_question_dict(i: int = 0, correct: int = 0) -> dict:
    """Wire-format (camelCase) question as the provider returns it."""
    return {
        "question": f"Question {i}: what is $v = u + at$ when t = {i}?",
        "options": [f"Q{i} option A", f"Q{i} option B", f"Q{i} option C", f"Q{i} option D"],
        "correctAnswerIndex": correct,
        "explanation": f"Explanation for question {i}.",
        "sourceHint": "Concept: Equations of motion",
        "resourceLink": {"title": "Physics Classroom: Kinematics", "url": "https://www.physicsclassroom.com/class/1DKin"},
    }


@pytest.fixture
def question_dicts():
    """Factory: question_dicts(n, correct=0) -> list of wire-format questions."""
    def _make(n: int = 20, correct: int = 0):
        return [make_question_dict(i, correct) for i in range(n)]
    return _make


@pytest.fixture
def questions(question_dicts):
    """Factory: questions(n, correct=0) -> list of validated QuizQuestion."""
    from prepquiz.services.llm_service.llm_schemas import QuizQuestion

    def _make(n: int = 20, correct: int = 0):
        return [QuizQuestion.model_validate(d) for d in question_dicts(n, correct)]
    return _make


@pytest.fixture
def physics_config():
    from prepquiz.services.quiz.schemas import QuizConfig
    return QuizConfig(exam="JEE", subject="Physics", topic="Kinematics", level="Level 3: Boards")


@pytest.fixture
def incorrect_answers(questions):
    """Three mistakes: correct option is A (0), the user picked C (2)."""
    from prepquiz.services.quiz.schemas import IncorrectAnswer
    return [
        IncorrectAnswer(**q.model_dump(), user_answer_index=2)
        for q in questions(3, correct=0)
    ]


# ── Mocked LLM fixture ───────────────────────────────────────────────────────

@pytest.fixture
def fake_llm():
    """LLM double whose ``ainvoke`` returns an AIMessage-like object.

    Configure with ``fake_llm.respond(payload)`` (dict/list are JSON-encoded)
    or set ``fake_llm.ainvoke.side_effect`` directly.
    """
    llm = MagicMock()
    llm.ainvoke = AsyncMock()

    def respond(payload):
        text = payload if isinstance(payload, str) else json.dumps(payload)
        llm.ainvoke.return_value = SimpleNamespace(content=text)

    llm.respond = respond
    return llm


# ── History fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def memory_backend():
    from prepquiz.services.history.store import InMemoryHistoryBackend
    return InMemoryHistoryBackend()


@pytest.fixture
def history_store(memory_backend):
    from prepquiz.services.history.store import HistoryStore
    store = HistoryStore(memory_backend)
    store.load()
    return store
