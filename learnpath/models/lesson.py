from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel
from typing import Optional


class Document(BaseModel):
    """Base for documents exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionOption(Document):
    id: str
    text: str = ""


class Question(Document):
    model_config = ConfigDict(frozen=True)

    id: str
    correct_answer_id: str
    tags: list[str] = []
    question_text: str = ""
    quiz_type: str = "multiple-choice"
    options: list[QuestionOption] = []
    explanation: str = ""


class Assessment(Document):
    passing_score: int = Field(80, ge=0, le=100)
    questions: list[Question] = []


class Lesson(Document):
    id: str
    topic_id: str
    order: int = 0
    title: str = ""
    xp: int = 0
    estimated_minutes: Optional[int] = None
    difficulty: str = ""
    tags: list[str] = []
    content: list[dict] = []
    assessment: Assessment = Field(default_factory=Assessment)
    created_at: Optional[str] = None


class AnswerItem(Document):
    question_id: StrictStr
    selected_option_id: StrictStr


class AnswerSubmission(Document):
    answers: list[AnswerItem]


class Attempt(Document):
    timestamp: Optional[str] = None
    score: int
    answers: list[AnswerItem] = []


class ProgressRecord(Document):
    user_id: str
    lesson_id: str
    score: int
    status: str
    attempts: list[Attempt] = []
    updated_at: Optional[str] = None


class ContentSnippet(Document):
    id: str
    tags: list[str] = []
    content: str


class Topic(Document):
    id: str
    name: str
