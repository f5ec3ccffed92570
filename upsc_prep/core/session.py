# upsc_prep/core/session.py
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .analytics import compute_analytics
from .config import Config, config as default_config
from .exceptions import InvalidInputError, OutOfRangeError
from .models import AnalyticsResult, Question

logger = logging.getLogger(__name__)

class AnswerStatus(Enum):
    NOT_VISITED = "not_visited"
    NOT_ANSWERED = "not_answered"
    ANSWERED = "answered"

class QuestionStatus(Enum):
    """Status shown in the question palette"""
    NOT_VISITED = "not_visited"
    NOT_ANSWERED = "not_answered"
    ANSWERED = "answered"
    MARKED_FOR_REVIEW = "review"

def new_test_id() -> str:
    return f"test_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"

@dataclass
class TestSession:
    """One test attempt: answers, per-question status, review flags and countdown.

    Review flags are kept apart from the answer status so that un-marking a
    question shows its real Answered/NotAnswered state again. Once submitted
    the per-question state is frozen.
    """

    __test__ = False  # not a pytest class

    test_id: str
    user_id: str
    date_key: str
    questions: Tuple[Question, ...]
    duration_seconds: int
    remaining_seconds: int
    topics: List[str] = field(default_factory=list)
    answers: List[Optional[str]] = field(default_factory=list)
    statuses: List[AnswerStatus] = field(default_factory=list)
    review: List[bool] = field(default_factory=list)
    current: int = 0
    submitted: bool = False
    analytics: Optional[AnalyticsResult] = None
    created_at: float = field(default_factory=time.time)
    submitted_at: Optional[float] = None
    config: Config = field(default=default_config, repr=False, compare=False)

    # ==================== Construction ====================

    @classmethod
    def create(cls, questions: Sequence[Question], duration_seconds: Optional[int] = None, *,
               user_id: str = "", date_key: str = "", topics: Optional[List[str]] = None,
               test_id: Optional[str] = None, config: Optional[Config] = None) -> "TestSession":
        """Start a fresh attempt; every question begins NOT_VISITED"""
        cfg = config or default_config

        if not questions:
            raise InvalidInputError("A test needs at least one question")

        count = len(questions)
        if count > cfg.MAX_QUESTIONS:
            raise InvalidInputError(f"A test holds at most {cfg.MAX_QUESTIONS} questions, got {count}")
        if duration_seconds is None:
            duration_seconds = count * cfg.SECONDS_PER_QUESTION
        if duration_seconds < 1:
            raise InvalidInputError("Test duration must be positive")

        return cls(
            test_id=test_id or new_test_id(),
            user_id=user_id,
            date_key=date_key,
            questions=tuple(questions),
            duration_seconds=duration_seconds,
            remaining_seconds=duration_seconds,
            topics=list(topics or []),
            answers=[None] * count,
            statuses=[AnswerStatus.NOT_VISITED] * count,
            review=[False] * count,
            config=cfg,
        )

    @classmethod
    def retake(cls, previous: "TestSession") -> "TestSession":
        """Same questions and test id, all mutable state reset"""
        return cls.create(
            previous.questions,
            user_id=previous.user_id,
            date_key=previous.date_key,
            topics=previous.topics,
            test_id=previous.test_id,
            config=previous.config,
        )

    # ==================== Queries ====================

    def __len__(self) -> int:
        return len(self.questions)

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.questions)

    def _require_index(self, index: int):
        if not self.in_range(index):
            raise OutOfRangeError(
                f"Question index {index} outside 0..{len(self.questions) - 1}"
            )

    def display_status(self, index: int) -> QuestionStatus:
        self._require_index(index)
        if self.review[index]:
            return QuestionStatus.MARKED_FOR_REVIEW
        return QuestionStatus(self.statuses[index].value)

    def summary(self) -> Dict[str, int]:
        counts = {"answered": 0, "not_answered": 0, "review": 0, "not_visited": 0}
        for index in range(len(self.questions)):
            counts[self.display_status(index).value] += 1
        return counts

    @property
    def time_taken(self) -> int:
        return self.duration_seconds - self.remaining_seconds

    # ==================== Transitions ====================

    def select_answer(self, index: int, option: str) -> bool:
        """Record an option; returns False when nothing changed"""
        if self.submitted or not self.in_range(index):
            logger.debug(f"Ignored answer for {self.test_id} Q{index} (submitted={self.submitted})")
            return False

        if option not in self.questions[index].options:
            raise InvalidInputError(f"'{option}' is not an option of question {index}")

        self.answers[index] = option
        self.statuses[index] = AnswerStatus.ANSWERED
        return True

    def navigate(self, index: int):
        self._require_index(index)
        self.current = index
        if not self.submitted and self.statuses[index] is AnswerStatus.NOT_VISITED:
            self.statuses[index] = AnswerStatus.NOT_ANSWERED

    def toggle_review(self, index: int) -> bool:
        self._require_index(index)
        if self.submitted:
            return False
        self.review[index] = not self.review[index]
        return True

    def clear_response(self, index: int) -> bool:
        self._require_index(index)
        if self.submitted:
            return False
        self.answers[index] = None
        self.statuses[index] = AnswerStatus.NOT_ANSWERED
        return True

    def tick(self) -> Optional[AnalyticsResult]:
        """Advance the countdown one second; submits when it reaches zero"""
        if self.submitted:
            return None

        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            logger.info(f"⏰ Time up for {self.test_id}, auto-submitting")
            return self.submit()
        return None

    def submit(self) -> AnalyticsResult:
        """Finalize the attempt; repeated calls return the same result"""
        if self.analytics is not None:
            return self.analytics

        self.submitted = True
        self.submitted_at = time.time()
        self.analytics = compute_analytics(self.questions, self.answers, self.config)

        logger.info(
            f"🏁 Test submitted: {self.test_id} "
            f"({self.analytics.correct}/{len(self.questions)} correct)"
        )
        return self.analytics

    # ==================== Persistence ====================

    def to_document(self) -> Dict[str, Any]:
        return {
            "test_id": self.test_id,
            "questions": [q.model_dump(exclude_none=True) for q in self.questions],
            "topics": list(self.topics),
            "answers": list(self.answers),
            "status": [s.value for s in self.statuses],
            "review": list(self.review),
            "submitted": self.submitted,
            "duration_seconds": self.duration_seconds,
            "remaining_seconds": self.remaining_seconds,
            "date_key": self.date_key,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any], *, user_id: str,
                      config: Optional[Config] = None) -> "TestSession":
        """Rebuild questions from a stored test; used for retakes"""
        raw_questions = document.get("questions") or []
        try:
            questions = [Question.model_validate(q) for q in raw_questions]
        except ValueError as e:
            raise InvalidInputError(f"Stored test has invalid questions: {e}") from e

        return cls.create(
            questions,
            user_id=user_id,
            date_key=document.get("date_key", ""),
            topics=document.get("topics") or [],
            test_id=document.get("test_id"),
            config=config,
        )
