"""Data classes for the practice engine domain model."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class Subject(str, Enum):
    MATH = "math"
    ENGLISH = "english"
    VOCABULARY = "vocabulary"


class ReviewMode(str, Enum):
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"
    MIXED = "mixed"


class Rating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    MEDIUM = "medium"
    EASY = "easy"


class SessionStatus(str, Enum):
    CONFIGURING = "configuring"
    LOADING = "loading"
    PRESENTING = "presenting"
    SUBMITTING = "submitting"
    FEEDBACK = "feedback"
    FINALIZING = "finalizing"
    COMPLETED = "completed"


TERMINAL_STATUSES = (SessionStatus.FINALIZING, SessionStatus.COMPLETED)


def accuracy_percent(correct: int, attempted: int) -> int:
    """Whole-number percentage, 0 when nothing was attempted."""
    return round(correct / attempted * 100) if attempted else 0


@dataclass
class Item:
    id: str
    subject: Subject
    prompt: str
    correct_answer: str
    kind: str = "text"  # multiple_choice | numeric | text
    choices: dict = field(default_factory=dict)
    explanation: str = ""
    hints: list = field(default_factory=list)
    topic: Optional[str] = None
    difficulty: Optional[int] = None
    grade_level: Optional[int] = None


@dataclass(frozen=True)
class SessionConfig:
    subject: Subject
    item_count: int = 10
    time_limit_seconds: int = 1800
    topic: Optional[str] = None
    difficulty: Optional[int] = None
    grade_level: Optional[int] = None
    review_mode: ReviewMode = ReviewMode.MIXED
    user_id: str = "guest"

    def __post_init__(self):
        # Accept plain strings from settings and prompts.
        object.__setattr__(self, "subject", Subject(self.subject))
        object.__setattr__(self, "review_mode", ReviewMode(self.review_mode))
        if self.item_count < 1:
            raise ValueError("item_count must be at least 1")
        if self.time_limit_seconds < 0:
            raise ValueError("time_limit_seconds cannot be negative")


@dataclass(frozen=True)
class AnswerRecord:
    item_id: str
    submitted_value: str
    time_spent_seconds: int
    correct: Optional[bool] = None  # None for self-rated flashcards
    rating: Optional[Rating] = None
    hints_used: int = 0
    mode: str = "graded"  # graded | flashcards | quiz


@dataclass(frozen=True)
class GradeResult:
    correct: bool
    explanation: str = ""
    correct_answer: Optional[str] = None


@dataclass(frozen=True)
class FailedSubmission:
    item_id: str
    answer: str
    time_spent_seconds: int
    error: str
    timestamp: datetime


@dataclass
class ReviewCard:
    item_id: str
    next_review_date: datetime
    last_reviewed_at: Optional[datetime] = None
    interval_days: int = 1
    repetitions: int = 0
    ease_factor: float = 2.5

    @classmethod
    def new(cls, item_id: str, now: datetime) -> "ReviewCard":
        return cls(item_id=item_id, next_review_date=now)

    def copy(self, **changes) -> "ReviewCard":
        return replace(self, **changes)


@dataclass
class SessionSummary:
    session_id: str
    subject: Subject
    questions_attempted: int
    questions_correct: int
    elapsed_seconds: int
    end_reason: str = "completed"  # completed | timeout | user
    answers: tuple = ()
    failed_submissions: tuple = ()
    persisted: bool = False

    @property
    def accuracy(self) -> int:
        return accuracy_percent(self.questions_correct, self.questions_attempted)
