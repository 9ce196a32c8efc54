"""Strict shapes for generative-model output.

Model output is untrusted: these models run in strict mode (no type coercion)
and reject oversized text instead of truncating it. Validate them from JSON
text with model_validate_json; the per-block text limit is passed through the
validation context as ``max_block_chars``.
"""

from typing import Literal

from pydantic import ConfigDict, Field, ValidationInfo, field_validator, model_validator

from learnpath.models.lesson import Document, QuestionOption

BLOCK_TYPES = ("info", "scenario", "decision", "quiz")
MIN_BLOCKS = 1
MAX_BLOCKS = 4
DEFAULT_MAX_BLOCK_CHARS = 800


class GeneratedDocument(Document):
    model_config = ConfigDict(strict=True)


class ContentBlock(GeneratedDocument):
    type: Literal["info", "scenario", "decision", "quiz"]
    text: str = Field(min_length=1)

    @field_validator("text")
    @classmethod
    def text_within_limit(cls, v: str, info: ValidationInfo) -> str:
        limit = (info.context or {}).get("max_block_chars", DEFAULT_MAX_BLOCK_CHARS)
        if len(v) > limit:
            raise ValueError(f"block text is {len(v)} characters, limit is {limit}")
        return v


class GeneratedRemedialLesson(GeneratedDocument):
    title: str = Field(min_length=1)
    estimated_minutes: int = Field(ge=1)
    difficulty: str = Field(min_length=1)
    content: list[ContentBlock] = Field(min_length=MIN_BLOCKS, max_length=MAX_BLOCKS)
    # Set by the synthesizer, never taken from model output
    concepts: list[str] = []


class GeneratedQuestion(GeneratedDocument):
    id: str = Field(min_length=1)
    question_text: str = Field(min_length=1)
    quiz_type: str = "multiple-choice"
    tags: list[str] = []
    options: list[QuestionOption] = Field(min_length=2)
    correct_answer_id: str
    explanation: str = ""

    @model_validator(mode="after")
    def correct_answer_is_an_option(self):
        if self.correct_answer_id not in {o.id for o in self.options}:
            raise ValueError(f"correctAnswerId {self.correct_answer_id!r} is not one of the options")
        return self


class GeneratedAssessment(GeneratedDocument):
    passing_score: int = Field(ge=0, le=100)
    questions: list[GeneratedQuestion] = Field(min_length=1)

    @model_validator(mode="after")
    def unique_question_ids(self):
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return self


class GeneratedLesson(GeneratedDocument):
    title: str = Field(min_length=1)
    xp: int = Field(ge=0)
    estimated_minutes: int = Field(ge=1)
    difficulty: str = Field(min_length=1)
    tags: list[str] = []
    content: list[ContentBlock] = Field(min_length=MIN_BLOCKS)
    assessment: GeneratedAssessment
