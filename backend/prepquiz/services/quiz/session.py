"""Quiz session lifecycle — idle → loading → active → finished.

The controller owns a single :class:`QuizSession` and is the only code
that mutates it. All transitions run on the event loop, so the
single-slot ``_generating`` flag is enough to keep one quiz generation
in flight at a time; a second request while one is pending is dropped.

A countdown task runs while a quiz is active. When it fires it completes
the quiz with whatever answers were recorded. The first completion wins:
later completions (a manual submit racing the timer) are no-ops.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from prepquiz.core.catalog import time_limit_for
from prepquiz.services.history.store import HistoryStore
from prepquiz.services.llm_service.llm_schemas import ImprovementOutput, QuizQuestion, SuggestionOutput
from prepquiz.services.llm_service.structured_invoker import LLMServiceError
from prepquiz.services.quiz.generator import (
    generate_improvement_suggestions,
    generate_quiz,
    generate_suggestions,
)
from prepquiz.services.quiz.schemas import IncorrectAnswer, QuizConfig, QuizHistoryItem

logger = logging.getLogger(__name__)

QuizGenerator = Callable[[QuizConfig, Optional[Sequence[IncorrectAnswer]]], Awaitable[List[QuizQuestion]]]

FINISH_COMPLETED = "completed"
FINISH_ENDED_EARLY = "ended_early"
FINISH_TIMEOUT = "timeout"
_FINISH_REASONS = {FINISH_COMPLETED, FINISH_ENDED_EARLY, FINISH_TIMEOUT}


class QuizState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"


class InvalidTransitionError(Exception):
    """Raised when an operation is not allowed in the current state."""

    def __init__(self, action: str, state: QuizState):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while quiz is {state.value}")


@dataclass
class QuizResult:
    score: int
    percentage: int
    incorrect_answers: List[IncorrectAnswer]
    unattempted: List[int]


@dataclass
class QuizSession:
    state: QuizState = QuizState.IDLE
    config: Optional[QuizConfig] = None
    questions: List[QuizQuestion] = field(default_factory=list)
    answers: List[Optional[int]] = field(default_factory=list)
    incorrect_answers: List[IncorrectAnswer] = field(default_factory=list)
    unattempted: List[int] = field(default_factory=list)
    score: int = 0
    percentage: int = 0
    error: Optional[str] = None
    time_limit_seconds: int = 0
    started_at: Optional[float] = None  # monotonic
    finish_reason: Optional[str] = None
    # Shared by overlapping requests; cleared again if the call fails
    suggestions_task: Optional[asyncio.Task] = None
    improvements_task: Optional[asyncio.Task] = None


# ── Scoring ───────────────────────────────────────────────────


def percentage_of(score: int, total: int) -> int:
    """round(100 * score / total), halves rounded up."""
    if total <= 0:
        return 0
    return (200 * score + total) // (2 * total)


def score_quiz(questions: Sequence[QuizQuestion], answers: Sequence[Optional[int]]) -> QuizResult:
    """Exact index comparison of each answer against ``correct_answer_index``."""
    padded = list(answers[: len(questions)]) + [None] * max(0, len(questions) - len(answers))

    score = 0
    incorrect: List[IncorrectAnswer] = []
    unattempted: List[int] = []
    for i, (question, answer) in enumerate(zip(questions, padded)):
        if answer is None:
            unattempted.append(i)
        elif answer == question.correct_answer_index:
            score += 1
        else:
            incorrect.append(IncorrectAnswer(**question.model_dump(), user_answer_index=answer))

    return QuizResult(
        score=score,
        percentage=percentage_of(score, len(questions)),
        incorrect_answers=incorrect,
        unattempted=unattempted,
    )


# ── Controller ────────────────────────────────────────────────


class QuizSessionController:

    def __init__(
        self,
        history: HistoryStore,
        generate: QuizGenerator = generate_quiz,
    ) -> None:
        self.session = QuizSession()
        self._history = history
        self._generate = generate
        self._generating = False
        self._timer_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> QuizState:
        return self.session.state

    @property
    def is_generating(self) -> bool:
        return self._generating

    # ── Generation ─────────────────────────────────────────

    async def start(self, config: QuizConfig) -> bool:
        """Generate a fresh quiz. Returns False if a generation is already pending."""
        if self._generating:
            logger.info("Quiz generation already in flight; dropping start request")
            return False
        if self.session.state != QuizState.IDLE:
            raise InvalidTransitionError("start a quiz", self.session.state)
        return await self._load(config, None)

    async def try_again(self) -> bool:
        """Regenerate for the same config, targeting the last quiz's mistakes."""
        if self._generating:
            logger.info("Quiz generation already in flight; dropping try-again request")
            return False
        if self.session.state != QuizState.FINISHED or self.session.config is None:
            raise InvalidTransitionError("try again", self.session.state)
        return await self._load(self.session.config, list(self.session.incorrect_answers))

    async def _load(self, config: QuizConfig, incorrect: Optional[List[IncorrectAnswer]]) -> bool:
        self._generating = True
        self._cancel_timer()
        self.session = QuizSession(state=QuizState.LOADING, config=config)
        logger.info("Quiz state → loading (retry=%s)", bool(incorrect))
        try:
            questions = await self._generate(config, incorrect or None)
        except asyncio.CancelledError:
            logger.warning("Quiz generation cancelled")
            self.session = QuizSession(state=QuizState.IDLE, config=config)
            raise
        except LLMServiceError as exc:
            logger.warning("Quiz generation failed: %s", exc)
            self.session = QuizSession(state=QuizState.IDLE, config=config, error=str(exc))
            return True
        except Exception:
            logger.exception("Unexpected error during quiz generation")
            self.session = QuizSession(
                state=QuizState.IDLE,
                config=config,
                error="An unknown error occurred while generating the quiz.",
            )
            return True
        finally:
            self._generating = False

        limit = time_limit_for(config.level)
        self.session = QuizSession(
            state=QuizState.ACTIVE,
            config=config,
            questions=list(questions),
            answers=[None] * len(questions),
            time_limit_seconds=limit,
            started_at=time.monotonic(),
        )
        self._start_timer(limit)
        logger.info("Quiz state → active (%d questions, %ds limit)", len(questions), limit)
        return True

    # ── Answering ──────────────────────────────────────────

    def record_answer(self, index: int, option: Optional[int]) -> None:
        session = self.session
        if session.state != QuizState.ACTIVE:
            raise InvalidTransitionError("record an answer", session.state)
        if self.remaining_seconds() <= 0:
            self.expire()
            raise InvalidTransitionError("record an answer", self.session.state)
        if not 0 <= index < len(session.questions):
            raise ValueError(f"Question index {index} out of range 0..{len(session.questions) - 1}")
        if option is not None and not 0 <= option < len(session.questions[index].options):
            raise ValueError(f"Option {option} out of range 0..3")
        session.answers[index] = option

    def remaining_seconds(self) -> float:
        session = self.session
        if session.state != QuizState.ACTIVE or session.started_at is None:
            return 0.0
        return max(0.0, session.time_limit_seconds - (time.monotonic() - session.started_at))

    # ── Completion ─────────────────────────────────────────

    def complete(
        self,
        answers: Optional[Sequence[Optional[int]]] = None,
        reason: str = FINISH_COMPLETED,
    ) -> QuizSession:
        """Finish the active quiz, score it and record history.

        Completing an already finished quiz is a no-op, so whichever of the
        timer and a manual submission arrives first is final.
        """
        session = self.session
        if session.state == QuizState.FINISHED:
            logger.info("Quiz already finished (%s); ignoring %s", session.finish_reason, reason)
            return session
        if session.state != QuizState.ACTIVE:
            raise InvalidTransitionError("finish the quiz", session.state)
        if reason not in _FINISH_REASONS:
            raise ValueError(f"Unknown finish reason {reason!r}")

        if answers is not None:
            for option in answers:
                if option is not None and not 0 <= option <= 3:
                    raise ValueError(f"Option {option} out of range 0..3")
            session.answers = list(answers[: len(session.questions)]) + [None] * max(
                0, len(session.questions) - len(answers)
            )

        self._cancel_timer()
        result = score_quiz(session.questions, session.answers)
        session.score = result.score
        session.percentage = result.percentage
        session.incorrect_answers = result.incorrect_answers
        session.unattempted = result.unattempted
        session.finish_reason = reason
        session.state = QuizState.FINISHED

        if session.config is not None:
            now_ms = int(time.time() * 1000)
            self._history.append(QuizHistoryItem(
                id=now_ms,
                config=session.config,
                score=result.score,
                total_questions=len(session.questions),
                percentage=result.percentage,
                date=now_ms,
            ))

        logger.info(
            "Quiz state → finished (%s): %d/%d (%d%%), %d incorrect, %d unattempted",
            reason, result.score, len(session.questions), result.percentage,
            len(result.incorrect_answers), len(result.unattempted),
        )
        return session

    def expire(self) -> QuizSession:
        """Timer path: finish with the answers recorded so far."""
        if self.session.state != QuizState.ACTIVE:
            return self.session
        logger.info("Quiz time limit reached")
        return self.complete(reason=FINISH_TIMEOUT)

    # ── Reset ──────────────────────────────────────────────

    def new_topic(self) -> None:
        """Discard the current config and questions without generating."""
        if self.session.state == QuizState.LOADING:
            raise InvalidTransitionError("change topic", self.session.state)
        self._cancel_timer()
        self.session = QuizSession()
        logger.info("Quiz state → idle (new topic)")

    def dismiss_error(self) -> None:
        self.session.error = None

    def close(self) -> None:
        """Stop the countdown; used on shutdown."""
        self._cancel_timer()

    # ── Remedial suggestions ───────────────────────────────

    async def fetch_suggestions(self) -> SuggestionOutput:
        session = self._require_finished("fetch suggestions")
        if not session.incorrect_answers:
            return SuggestionOutput(books=[], youtube=[])
        if session.suggestions_task is None:
            session.suggestions_task = asyncio.ensure_future(
                generate_suggestions(session.config, session.incorrect_answers)
            )
        return await self._await_shared(session, "suggestions_task")

    async def fetch_improvements(self) -> ImprovementOutput:
        session = self._require_finished("fetch improvement topics")
        if not session.incorrect_answers:
            return ImprovementOutput(topics_to_improve=[])
        if session.improvements_task is None:
            session.improvements_task = asyncio.ensure_future(
                generate_improvement_suggestions(session.config, session.incorrect_answers)
            )
        return await self._await_shared(session, "improvements_task")

    @staticmethod
    async def _await_shared(session: QuizSession, attr: str):
        """Await the session's in-flight call; a failed call is not cached."""
        task = getattr(session, attr)
        try:
            # One caller going away must not cancel the call for the others
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            if getattr(session, attr) is task:
                setattr(session, attr, None)
            raise

    def _require_finished(self, action: str) -> QuizSession:
        if self.session.state != QuizState.FINISHED or self.session.config is None:
            raise InvalidTransitionError(action, self.session.state)
        return self.session

    # ── Timer ──────────────────────────────────────────────

    def _start_timer(self, seconds: int) -> None:
        session = self.session
        self._timer_task = asyncio.create_task(self._run_timer(seconds, session), name="quiz_timer")

    async def _run_timer(self, seconds: int, session: QuizSession) -> None:
        await asyncio.sleep(seconds)
        if self.session is session:
            self.expire()

    def _cancel_timer(self) -> None:
        task = self._timer_task
        self._timer_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    # ── Serialization ──────────────────────────────────────

    def snapshot(self) -> dict:
        """JSON-ready view of the session; answers stay hidden while active."""
        session = self.session
        reveal = session.state == QuizState.FINISHED
        questions = []
        for q in session.questions:
            data = q.to_wire()
            if not reveal:
                for key in ("correctAnswerIndex", "explanation", "sourceHint", "resourceLink"):
                    data.pop(key, None)
            questions.append(data)

        data = {
            "state": session.state.value,
            "config": session.config.to_wire() if session.config else None,
            "questions": questions,
            "answers": list(session.answers),
            "error": session.error,
            "generating": self._generating,
            "timeLimitSeconds": session.time_limit_seconds,
            "remainingSeconds": round(self.remaining_seconds()),
        }
        if reveal:
            data.update({
                "score": session.score,
                "totalQuestions": len(session.questions),
                "percentage": session.percentage,
                "incorrectAnswers": [a.to_wire() for a in session.incorrect_answers],
                "unattempted": list(session.unattempted),
                "finishReason": session.finish_reason,
            })
        return data
