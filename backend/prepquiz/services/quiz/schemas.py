"""Quiz domain models — configuration, mistakes and history entries."""

from typing import Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from prepquiz.core.catalog import is_valid_subject, subjects_for
from prepquiz.services.llm_service.llm_schemas import CamelModel, QuizQuestion

Exam = Literal["JEE", "NEET"]
Subject = Literal["Physics", "Chemistry", "Maths", "Biology"]
DifficultyLevel = Literal["Level 3: Boards", "Level 2: Mains/NEET", "Level 1: Advanced"]


class QuizConfig(CamelModel):
    exam: Exam
    subject: Subject
    topic: str = Field(min_length=1)
    level: DifficultyLevel
    merge_topic: Optional[str] = None

    @field_validator("topic", mode="before")
    @classmethod
    def _strip_topic(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("merge_topic", mode="before")
    @classmethod
    def _blank_merge_topic(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def _subject_matches_exam(self) -> "QuizConfig":
        if not is_valid_subject(self.exam, self.subject):
            raise ValueError(
                f"Subject {self.subject!r} is not offered for {self.exam}; "
                f"choose one of {subjects_for(self.exam)}"
            )
        return self


class IncorrectAnswer(QuizQuestion):
    """A question the user answered wrongly, with the option they chose."""

    user_answer_index: int = Field(ge=0, le=3)

    @property
    def user_answer_text(self) -> str:
        return self.options[self.user_answer_index]

    @property
    def correct_answer_text(self) -> str:
        return self.options[self.correct_answer_index]


class QuizHistoryItem(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: int  # epoch millis at completion
    config: QuizConfig
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)
    date: int  # epoch millis
