"""Assessment-related Data Transfer Objects.

Settings, questions, live progress snapshots and final results of a timed
assessment. Results are plain records so callers can persist them however
they like.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from core.errors import InvalidSettingsError

if TYPE_CHECKING:
    from core.answer_payload import AnswerPayload


class QuestionKind(Enum):
    """Kind of assessment question."""

    SINGLE_CHOICE = "single_choice"
    FREE_TEXT = "free_text"
    PAIR_MATCHING = "pair_matching"
    BOOLEAN = "boolean"
    MIXED = "mixed"  # settings only; every generated question has a concrete kind

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "QuestionKind":
        """Convert a string such as "free_text" or "free-text" to a QuestionKind.

        Raises:
            InvalidSettingsError: If value is not a known kind
        """
        try:
            return cls(value.strip().lower().replace("-", "_"))
        except ValueError:
            valid = [k.value for k in cls]
            raise InvalidSettingsError(
                f"Invalid question kind '{value}'. Valid kinds: {', '.join(valid)}"
            )


class SessionState(Enum):
    """Lifecycle state of an assessment session."""

    READY = "ready"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.CANCELLED)


@dataclass
class AssessmentSettings:
    """Configuration of one assessment run.

    Attributes:
        kind: Question kind, or MIXED for a blend of kinds
        question_count: Number of questions to ask
        total_time_limit: Optional budget for the whole session (seconds)
        question_time_limit: Optional budget per question (seconds)
        folder_ids: Folder filter the caller applied to build the pool
        difficulties: Difficulty filter the caller applied to build the pool
        random_order: Shuffle the pool before picking questions
        reveal_correct_answer: Show the canonical answer after a wrong answer
        instant_feedback: Pause on each answered question before advancing
        allow_skip: Allow explicit skips (and make question timeouts skips)
    """

    kind: QuestionKind = QuestionKind.MIXED
    question_count: int = 10
    total_time_limit: Optional[int] = None
    question_time_limit: Optional[int] = None
    folder_ids: List[str] = field(default_factory=list)
    difficulties: List[str] = field(default_factory=list)
    random_order: bool = True
    reveal_correct_answer: bool = True
    instant_feedback: bool = False
    allow_skip: bool = True

    def __post_init__(self):
        if isinstance(self.kind, str):
            self.kind = QuestionKind.from_string(self.kind)
        if self.question_count < 1:
            raise InvalidSettingsError(
                f"question_count must be at least 1, got {self.question_count}"
            )
        for name in ("total_time_limit", "question_time_limit"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidSettingsError(f"{name} must be positive, got {value}")


@dataclass
class AssessmentQuestion:
    """One question of an assessment.

    Item metadata (item_id, difficulty, category) is copied onto the question
    when it is generated so results can be broken down without lookups.

    Attributes:
        question_id: Unique identifier within the session
        kind: Concrete question kind (never MIXED)
        prompt: Text shown to the learner
        correct_answer: Canonical answer payload
        options: Choices for single-choice/boolean, right-hand column for matching
        item_id: Anchor learning item
        difficulty: Difficulty value of the anchor item
        category: Folder of the anchor item
        matched_item_ids: Every item that appears in a pair-matching question
        user_answer: Recorded answer payload (None when unanswered or skipped)
        time_spent: Seconds spent on the last answer event
        is_correct: Correctness of the recorded answer (None when unanswered)
    """

    question_id: str
    kind: QuestionKind
    prompt: str
    correct_answer: "AnswerPayload"
    options: List[str] = field(default_factory=list)
    item_id: Optional[str] = None
    difficulty: Optional[str] = None
    category: Optional[str] = None
    matched_item_ids: List[str] = field(default_factory=list)
    user_answer: Optional["AnswerPayload"] = None
    time_spent: Optional[int] = None
    is_correct: Optional[bool] = None

    @property
    def is_answered(self) -> bool:
        return self.user_answer is not None and self.is_correct is not None

    def clear_answer(self, time_spent: Optional[int] = None) -> None:
        """Mark the question as unanswered (skipped)."""
        self.user_answer = None
        self.is_correct = None
        self.time_spent = time_spent


@dataclass(frozen=True)
class SessionProgress:
    """Snapshot of a running session for display."""

    state: SessionState
    current_index: int
    total_questions: int
    answered: int
    correct: int
    incorrect: int
    skipped: int
    streak: int
    max_streak: int
    total_time_remaining: Optional[int]
    question_time_remaining: Optional[int]
    revealing: bool = False

    @property
    def percent_through(self) -> float:
        """Position of the current question as a percentage."""
        if self.total_questions == 0:
            return 0.0
        return (self.current_index + 1) / self.total_questions * 100


@dataclass(frozen=True)
class BreakdownEntry:
    """Correct/total tally for one group of questions."""

    correct: int
    total: int
    percentage: int


@dataclass(frozen=True)
class Breakdown:
    """Per-group result tallies."""

    by_kind: Dict[str, BreakdownEntry]
    by_difficulty: Dict[str, BreakdownEntry]
    by_category: Dict[str, BreakdownEntry]


@dataclass(frozen=True)
class PerformanceSummary:
    """Timing behaviour across the questions of a session.

    Attributes:
        fastest_time: Smallest per-question time (seconds)
        slowest_time: Largest per-question time (seconds)
        consistency: 1 - coefficient of variation, floored at 0, 2 decimals
    """

    fastest_time: int
    slowest_time: int
    consistency: float


@dataclass(frozen=True)
class AssessmentResults:
    """Final, read-only report of a completed session."""

    session_id: str
    total_score: int
    max_score: int
    percentage: int
    total_questions: int
    correct_answers: int
    wrong_answers: int
    skipped_answers: int
    time_spent: int
    average_time_per_question: float
    breakdown: Breakdown
    performance: PerformanceSummary
    started_at: float
    completed_at: float
    questions: List[AssessmentQuestion] = field(default_factory=list)
    bonus_score: int = 0
    default_question_time: int = 30
