"""Quiz, study-suggestion and improvement-topic generation."""

import logging
from typing import List, Optional, Sequence

from prepquiz.core.config import settings
from prepquiz.prompts import get_improvement_prompt, get_quiz_prompt, get_suggestions_prompt
from prepquiz.services.llm_service.llm_schemas import (
    IMPROVEMENT_RESPONSE_SCHEMA,
    QUIZ_RESPONSE_SCHEMA,
    SUGGESTIONS_RESPONSE_SCHEMA,
    ImprovementOutput,
    QuizOutput,
    QuizQuestion,
    SuggestionOutput,
)
from prepquiz.services.llm_service.structured_invoker import invoke_structured
from prepquiz.services.quiz.schemas import IncorrectAnswer, QuizConfig

logger = logging.getLogger(__name__)


async def generate_quiz(
    config: QuizConfig,
    incorrect_answers: Optional[Sequence[IncorrectAnswer]] = None,
) -> List[QuizQuestion]:
    """Generate a quiz for *config*.

    When *incorrect_answers* is given, the prompt asks for a different quiz
    aimed at the same weak concepts.

    Returns:
        Non-empty list of validated questions.

    Raises:
        LLMServiceError: Provider unavailable, failed, or returned an
            unusable quiz (not an array, or no valid questions).
    """
    prompt = get_quiz_prompt(config, incorrect_answers, settings.QUIZ_QUESTION_COUNT)
    logger.info(
        "Generating quiz: exam=%s subject=%s topic=%r level=%s retry=%s",
        config.exam, config.subject, config.topic, config.level, bool(incorrect_answers),
    )
    result = await invoke_structured(
        prompt,
        QuizOutput,
        QUIZ_RESPONSE_SCHEMA,
        invalid_message="AI returned an invalid quiz format.",
        temperature=settings.LLM_TEMPERATURE_CREATIVE,
        task_name="quiz generation",
    )
    return result.questions


async def generate_suggestions(
    config: QuizConfig,
    incorrect_answers: Sequence[IncorrectAnswer],
) -> SuggestionOutput:
    """Recommend books and videos. Callers must pass at least one mistake."""
    prompt = get_suggestions_prompt(config, incorrect_answers)
    return await invoke_structured(
        prompt,
        SuggestionOutput,
        SUGGESTIONS_RESPONSE_SCHEMA,
        invalid_message="AI returned an invalid suggestion format.",
        task_name="study suggestions",
    )


async def generate_improvement_suggestions(
    config: QuizConfig,
    incorrect_answers: Sequence[IncorrectAnswer],
) -> ImprovementOutput:
    prompt = get_improvement_prompt(config, incorrect_answers)
    return await invoke_structured(
        prompt,
        ImprovementOutput,
        IMPROVEMENT_RESPONSE_SCHEMA,
        invalid_message="AI returned an invalid improvement topics format.",
        task_name="improvement topics",
    )
