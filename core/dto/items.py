"""Learning item Data Transfer Objects.

These DTOs carry an item's content and its SM-2 review state between the
scheduler, the question generator and whatever storage the caller uses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL = 1


class Difficulty(Enum):
    """Author-assigned difficulty of a learning item."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def weight(self) -> int:
        """Numeric weight on the 1-5 scale used by quality adjustments."""
        return {Difficulty.EASY: 1, Difficulty.MEDIUM: 3, Difficulty.HARD: 5}[self]

    @property
    def rank(self) -> int:
        """Sort rank, easiest first."""
        return {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}[self]


class MasteryLevel(Enum):
    """Learning stage of an item derived from its SM-2 state."""

    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"
    MASTERED = "mastered"


@dataclass(frozen=True)
class ReviewState:
    """The part of an item's schedule the SM-2 algorithm reads.

    Attributes:
        ease_factor: Interval growth multiplier (never below 1.3)
        interval: Current interval in days (never above 180)
        repetition: Streak of consecutive successful recalls
    """

    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = DEFAULT_INTERVAL
    repetition: int = 0


@dataclass(frozen=True)
class NextState:
    """Schedule computed for an item after one rating event."""

    interval: int
    repetition: int
    ease_factor: float
    next_review: datetime


@dataclass
class LearningItem:
    """A flashcard: prompt/answer content plus review statistics.

    Attributes:
        item_id: Stable identifier
        prompt: Front of the card (the word or question)
        answer: Back of the card (the meaning)
        folder_id: Folder the item lives in (used as the category)
        difficulty: Author-assigned difficulty
        note: Optional free-form note
        tags: Optional tags
        correct_count: Number of ratings with quality >= 3
        incorrect_count: Number of ratings with quality < 3
        last_reviewed: When the item was last rated (None if never)
        next_review: When the item is next due
        ease_factor: SM-2 ease factor
        interval: SM-2 interval in days
        repetition: SM-2 success streak
        quality: Last quality rating (0-5), if any
    """

    item_id: str
    prompt: str
    answer: str
    folder_id: str = "general"
    difficulty: Difficulty = Difficulty.MEDIUM
    note: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    correct_count: int = 0
    incorrect_count: int = 0
    last_reviewed: Optional[datetime] = None
    next_review: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = DEFAULT_INTERVAL
    repetition: int = 0
    quality: Optional[int] = None

    @property
    def review_state(self) -> ReviewState:
        """Current SM-2 state of this item."""
        return ReviewState(
            ease_factor=self.ease_factor,
            interval=self.interval,
            repetition=self.repetition,
        )

    @property
    def total_reviews(self) -> int:
        return self.correct_count + self.incorrect_count


@dataclass(frozen=True)
class CollectionStats:
    """Aggregate statistics over a set of learning items.

    Attributes:
        total_items: Number of items
        mastered_items: Items with repetition >= 3 and interval >= 21 days
        due_items: Items whose next review is due
        progress: mastered / total as a percentage (0-100)
        average_correct_rate: Mean per-item correct rate over reviewed items
        by_difficulty: Item count per difficulty value
    """

    total_items: int
    mastered_items: int
    due_items: int
    progress: float
    average_correct_rate: float
    by_difficulty: dict
