"""Pydantic schemas for validating structured LLM outputs.

Two views of the same contracts live here:

* ``*_RESPONSE_SCHEMA`` dicts are sent to the provider as the response
  schema so generation is constrained to the expected shape.
* Pydantic models validate the parsed JSON before it leaves the service.

Wire names are camelCase (``correctAnswerIndex``); Python attributes are
snake_case via the alias generator.
"""

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Quiz ──────────────────────────────────────────────────

class ResourceLink(CamelModel):
    title: str = ""
    url: str = ""


class QuizQuestion(CamelModel):
    question: str
    options: List[str] = Field(min_length=4, max_length=4)
    correct_answer_index: int = Field(ge=0, le=3)
    explanation: str
    source_hint: Optional[str] = None
    resource_link: Optional[ResourceLink] = None

    @model_validator(mode="after")
    def _drop_empty_link(self) -> "QuizQuestion":
        # A link without a url is useless to the student
        if self.resource_link is not None and not self.resource_link.url.strip():
            self.resource_link = None
        if self.correct_answer_index >= len(self.options):
            raise ValueError("correctAnswerIndex does not index into options")
        return self


class QuizOutput(RootModel[List[Any]]):
    """Top-level quiz payload: a JSON array of question objects."""

    @model_validator(mode="after")
    def _drop_incomplete_questions(self) -> "QuizOutput":
        """Discard incomplete/truncated question objects, keep valid ones.

        A truncated response where the last question is cut off still
        produces a usable quiz instead of failing outright.
        """
        valid = []
        for i, item in enumerate(self.root):
            try:
                valid.append(QuizQuestion.model_validate(item))
            except Exception as exc:
                logger.warning("Dropping malformed question #%d: %s", i, str(exc)[:200])
        if not valid:
            raise ValueError("No valid quiz questions found in LLM output")
        self.root = valid  # type: ignore[assignment]
        return self

    @property
    def questions(self) -> List[QuizQuestion]:
        return self.root  # type: ignore[return-value]


# ── Study Suggestions ─────────────────────────────────────

class Book(CamelModel):
    title: str
    author: str
    short_description: str


class YouTubeVideo(CamelModel):
    title: str
    channel: str
    link: str


class SuggestionOutput(CamelModel):
    books: List[Book]
    youtube: List[YouTubeVideo]


# ── Improvement Topics ────────────────────────────────────

class ImprovementTopic(CamelModel):
    topic_name: str
    reason: str
    resource_link: Optional[ResourceLink] = None


class ImprovementOutput(CamelModel):
    topics_to_improve: List[ImprovementTopic]


# ── Provider response schemas ─────────────────────────────

_RESOURCE_LINK_SCHEMA = {
    "type": "object",
    "description": "An object with a title and URL for a reputable educational resource for further reading.",
    "properties": {
        "title": {
            "type": "string",
            "description": "A descriptive title for the resource link (e.g., 'Khan Academy: Work and Energy').",
        },
        "url": {
            "type": "string",
            "description": "A valid, full URL to a public, free educational webpage.",
        },
    },
}

QUIZ_RESPONSE_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "question": {"type": "string", "description": "The quiz question."},
            "options": {
                "type": "array",
                "items": {"type": "string"},
                "description": "An array of 4 possible answers.",
            },
            "correctAnswerIndex": {
                "type": "integer",
                "description": "The 0-based index of the correct answer in the 'options' array.",
            },
            "explanation": {
                "type": "string",
                "description": "A brief explanation of why the correct answer is right.",
            },
            "sourceHint": {
                "type": "string",
                "description": "A concise hint naming the key concept being tested, e.g., 'Concept: Newton's Second Law for Rotation'.",
            },
            "resourceLink": _RESOURCE_LINK_SCHEMA,
        },
        "required": ["question", "options", "correctAnswerIndex", "explanation"],
    },
}

SUGGESTIONS_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "books": {
            "type": "array",
            "description": "An array of 2-3 recommended book suggestions.",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "author": {"type": "string"},
                    "shortDescription": {
                        "type": "string",
                        "description": "A one-sentence description of why this book is helpful for the identified weaknesses.",
                    },
                },
                "required": ["title", "author", "shortDescription"],
            },
        },
        "youtube": {
            "type": "array",
            "description": "An array of 2-3 recommended YouTube video suggestions.",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "channel": {"type": "string"},
                    "link": {"type": "string", "description": "A valid, full URL to the YouTube video."},
                },
                "required": ["title", "channel", "link"],
            },
        },
    },
    "required": ["books", "youtube"],
}

IMPROVEMENT_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "topicsToImprove": {
            "type": "array",
            "description": "Specific topics the user should focus on based on their incorrect answers.",
            "items": {
                "type": "object",
                "properties": {
                    "topicName": {
                        "type": "string",
                        "description": "The specific sub-topic or concept to improve on (e.g., 'Coulomb's Law').",
                    },
                    "reason": {
                        "type": "string",
                        "description": "A one-sentence explanation of why this topic is recommended, based on the mistakes.",
                    },
                    "resourceLink": _RESOURCE_LINK_SCHEMA,
                },
                "required": ["topicName", "reason"],
            },
        },
    },
    "required": ["topicsToImprove"],
}
