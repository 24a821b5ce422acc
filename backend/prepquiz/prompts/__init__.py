"""Prompt template loader.

Each ``get_*_prompt`` function loads a ``.txt`` template from this
package directory and substitutes placeholders.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from prepquiz.core.catalog import FOUNDATIONAL_TOPIC

if TYPE_CHECKING:
    from prepquiz.services.quiz.schemas import IncorrectAnswer, QuizConfig

_DIR = os.path.dirname(__file__)

DEFAULT_QUESTION_COUNT = 20


@lru_cache(maxsize=32)
def _load(filename: str) -> str:
    """Read a template file, caching the result."""
    with open(os.path.join(_DIR, filename), encoding="utf-8") as f:
        return f.read()


def _render(filename: str, subs: Dict[str, str]) -> str:
    """Load *filename* and apply all substitutions."""
    text = _load(filename)
    for key, val in subs.items():
        text = text.replace(key, val)
    return text


def _format_mistakes(incorrect_answers: Sequence["IncorrectAnswer"]) -> str:
    return "\n".join(
        f'- Question: "{ans.question}"\n'
        f'  My incorrect answer: "{ans.user_answer_text}"\n'
        f'  Correct answer: "{ans.correct_answer_text}"'
        for ans in incorrect_answers
    )


def _format_mistakes_brief(incorrect_answers: Sequence["IncorrectAnswer"]) -> str:
    return "\n".join(
        f'- Question: "{ans.question}" (My incorrect answer was "{ans.user_answer_text}")'
        for ans in incorrect_answers
    )


# ── Public helpers ────────────────────────────────────────


def get_quiz_prompt(
    config: "QuizConfig",
    incorrect_answers: Optional[Sequence["IncorrectAnswer"]] = None,
    question_count: int = DEFAULT_QUESTION_COUNT,
) -> str:
    if config.topic == FOUNDATIONAL_TOPIC:
        topic_instruction = (
            f" The quiz should cover a mix of the most important, foundational, and frequently "
            f"tested concepts from the entire {config.subject} syllabus for {config.exam}."
        )
    else:
        topic_instruction = f' The primary topic is "{config.topic}".'

    merge_instruction = ""
    if config.merge_topic:
        merge_instruction = (
            f' Please also incorporate concepts from the secondary topic "{config.merge_topic}" '
            f"to create some multi-concept questions that test the integration of both topics."
        )

    mistakes_block = ""
    if incorrect_answers:
        mistakes_block = _render("quiz_retry_block.txt", {
            "{{MISTAKES}}": _format_mistakes(incorrect_answers),
        })

    return _render("quiz_prompt.txt", {
        "{{QUESTION_COUNT}}": str(question_count),
        "{{EXAM}}": config.exam,
        "{{SUBJECT}}": config.subject,
        "{{TOPIC_INSTRUCTION}}": topic_instruction,
        "{{LEVEL}}": config.level,
        "{{MERGE_INSTRUCTION}}": merge_instruction,
        "{{MISTAKES_BLOCK}}": mistakes_block,
    }).rstrip() + "\n"


def get_suggestions_prompt(config: "QuizConfig", incorrect_answers: Sequence["IncorrectAnswer"]) -> str:
    return _render("suggestions_prompt.txt", {
        "{{EXAM}}": config.exam,
        "{{SUBJECT}}": config.subject,
        "{{TOPIC}}": config.topic,
        "{{MISTAKES}}": _format_mistakes(incorrect_answers),
    })


def get_improvement_prompt(config: "QuizConfig", incorrect_answers: Sequence["IncorrectAnswer"]) -> str:
    return _render("improvement_prompt.txt", {
        "{{EXAM}}": config.exam,
        "{{SUBJECT}}": config.subject,
        "{{TOPIC}}": config.topic,
        "{{MISTAKES}}": _format_mistakes_brief(incorrect_answers),
    })
