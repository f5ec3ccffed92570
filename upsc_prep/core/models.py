# upsc_prep/core/models.py
"""
Pydantic models and schemas for generated content, analytics and request validation
"""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TOPIC = "General"

# ==================== Generated Content ====================

class Question(BaseModel):
    """A single multiple-choice question. Immutable once generated."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    question: str = Field(min_length=1)
    statements: Optional[List[str]] = None
    options: List[str] = Field(min_length=2)
    answer: str
    explanation: str = ""
    topic: Optional[str] = None

    @field_validator("question", "answer")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("statements")
    @classmethod
    def _check_statements(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        cleaned = [s.strip() for s in value if s and s.strip()]
        if not 2 <= len(cleaned) <= 4:
            raise ValueError("statements must contain between 2 and 4 entries")
        return cleaned

    @field_validator("options")
    @classmethod
    def _check_options(cls, value: List[str]) -> List[str]:
        cleaned = [o.strip() for o in value]
        if any(not o for o in cleaned):
            raise ValueError("options must not be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("options must be unique")
        return cleaned

    @field_validator("topic")
    @classmethod
    def _blank_topic_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @model_validator(mode="after")
    def _answer_is_an_option(self) -> "Question":
        if self.answer not in self.options:
            raise ValueError("answer must equal one of the options")
        return self

    @property
    def topic_label(self) -> str:
        return self.topic or DEFAULT_TOPIC


class FlashCardDraft(BaseModel):
    """Flash card as returned by the generator"""

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


# ==================== Analytics ====================

class TopicStats(BaseModel):
    correct: int = 0
    wrong: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.correct / self.total * 100


class AnalyticsResult(BaseModel):
    """Derived result of one submitted test"""

    model_config = ConfigDict(frozen=True)

    correct: int
    wrong: int
    not_attempted: int
    total_marks: float
    accuracy: float
    topic_wise_analysis: Dict[str, TopicStats]
    strengths: List[str]
    weaknesses: List[str]
    suggestions: List[str]


# ==================== Current Affairs ====================

class CurrentAffairsItem(BaseModel):
    title: str
    date: str
    category: str
    type: Literal["headlines", "daily", "editorial"]
    source: Literal["NEXT IAS", "Vajiram & Ravi"]
    syllabus: Optional[str] = None
    context: Optional[str] = None
    summary: Optional[str] = None
    link: Optional[str] = None


class ArticleContent(BaseModel):
    title: str
    date: str
    content: List[str]
    source: str
    scraped_at: str
    syllabus: Optional[str] = None
    context: Optional[str] = None
    background: Optional[str] = None


# ==================== Requests ====================

class GenerateTestRequest(BaseModel):
    topics: List[str] = Field(min_length=1)
    num_questions: int = Field(default=10, ge=1, le=30)


class GenerateFlashCardsRequest(BaseModel):
    topic: str = Field(min_length=1)
    num_cards: int = Field(default=5, ge=1, le=20)


class GenerateTopicsRequest(BaseModel):
    subject: str = Field(min_length=1)


class IndexRequest(BaseModel):
    index: int


class AnswerRequest(BaseModel):
    index: int
    option: str


class AddSubjectRequest(BaseModel):
    name: str = Field(min_length=1)
    start: str
    end: str
    start_date: str
    end_date: str


class AddTopicRequest(BaseModel):
    name: str = Field(min_length=1)


class SaveTopicsRequest(BaseModel):
    topics: List[str]


class ExamDateRequest(BaseModel):
    exam_date: str = Field(min_length=1)


class AddFlashCardRequest(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    topic: str = Field(min_length=1)
