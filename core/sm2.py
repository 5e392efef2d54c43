"""
SM-2 (SuperMemo 2) Spaced Repetition Algorithm

This module implements the scheduling engine that decides when each learning
item should next be reviewed, based on the learner's self-rated recall quality.

Algorithm Overview:
------------------
The SM-2 algorithm schedules reviews based on three key metrics:

1. **Quality (q)**: How well the item was recalled (0-5)
   - 5: Perfect recall, immediate and effortless
   - 4: Correct response after hesitation
   - 3: Correct response with difficulty
   - 2: Incorrect, but remembered after seeing answer
   - 1: Incorrect, vaguely familiar
   - 0: Complete blackout, no recollection

2. **Ease Factor (EF)**: How quickly the interval grows (floor 1.3)
   - Starts at 2.5 for new items
   - Adjusted after every rating, upwards for q = 5, downwards for q < 4

3. **Interval**: Days until next review (ceiling 180)

Interval Calculation:
--------------------
- If quality < 3: repetition = 0, interval = 1 day (restart learning)
- Otherwise repetition += 1 and:
  - repetition = 1: interval = 1 day
  - repetition = 2: interval = 6 days
  - repetition > 2: interval = ceil(previous_interval × EF)
- The interval is capped at 180 days.

Ease Factor Adjustment:
----------------------
EF' = EF + (0.1 - (5 - q) × (0.08 + (5 - q) × 0.02)), floored at 1.3.

Every delta is a multiple of 0.01, so EF' is rounded to two decimals to keep
float noise out of stored schedules.

Example Progression:
-------------------
Fresh item (EF 2.5, interval 1, repetition 0), ratings 5, 4, 5:
- q=5: repetition 1, interval 1, EF 2.6
- q=4: repetition 2, interval 6, EF 2.6
- q=5: repetition 3, interval ceil(6 × 2.6) = 16, EF 2.7

References:
----------
- Original paper: https://www.supermemo.com/english/ol/sm2.htm
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from core.dto.items import (
    CollectionStats,
    Difficulty,
    LearningItem,
    MasteryLevel,
    NextState,
    ReviewState,
)
from core.errors import InvalidQualityError

logger = logging.getLogger(__name__)


class SM2Algorithm:
    """SuperMemo 2 scheduling engine.

    The engine is stateless: every method is a pure function of its
    arguments. Pass ``now`` explicitly for deterministic results.
    """

    MIN_EF = 1.3  # Minimum ease factor
    DEFAULT_EF = 2.5  # Starting ease factor for new items
    MAX_INTERVAL_DAYS = 180

    # Quality thresholds
    MIN_PASSING_QUALITY = 3  # Quality < 3 resets the learning process
    PERFECT_QUALITY = 5
    MIN_QUALITY = 0

    # Mastery thresholds
    MASTERED_REPETITIONS = 3
    MASTERED_INTERVAL_DAYS = 21
    REVIEWING_REPETITIONS = 2

    def validate_quality(self, quality) -> int:
        """Check that quality is an integer in [0, 5].

        Raises:
            InvalidQualityError: If quality is not an integer or is out of range
        """
        if isinstance(quality, bool) or not isinstance(quality, int):
            raise InvalidQualityError(f"Quality must be an integer 0-5, got {quality!r}")
        if not self.MIN_QUALITY <= quality <= self.PERFECT_QUALITY:
            raise InvalidQualityError(f"Quality must be between 0 and 5, got {quality}")
        return quality

    def compute_next_state(
        self,
        state: ReviewState,
        quality: int,
        now: Optional[datetime] = None,
    ) -> NextState:
        """
        Calculate the next review schedule from the current state and a rating.

        Args:
            state: Current ease factor, interval and repetition of the item
            quality: Recall quality from 0-5
            now: Reference time for the next review date (defaults to UTC now)

        Returns:
            NextState with the new interval, repetition, ease factor and date

        Raises:
            InvalidQualityError: If quality is outside 0-5

        Example:
            >>> sm2 = SM2Algorithm()
            >>> sm2.compute_next_state(ReviewState(), 5).interval
            1
            >>> sm2.compute_next_state(ReviewState(2.6, 1, 1), 4).interval
            6
            >>> sm2.compute_next_state(ReviewState(2.5, 15, 3), 2).repetition
            0
        """
        quality = self.validate_quality(quality)
        if now is None:
            now = datetime.now(timezone.utc)

        if quality < self.MIN_PASSING_QUALITY:
            # Poor recall: restart learning
            repetition = 0
            interval = 1
        else:
            repetition = state.repetition + 1
            if repetition == 1:
                interval = 1
            elif repetition == 2:
                interval = 6
            else:
                # Round first so 10 × 1.3 = 13.000000000000002 stays 13
                interval = math.ceil(round(state.interval * state.ease_factor, 6))

        ef_delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
        ease_factor = round(max(self.MIN_EF, state.ease_factor + ef_delta), 2)

        interval = min(interval, self.MAX_INTERVAL_DAYS)

        logger.debug(
            f"SM-2 q={quality}: rep {state.repetition}->{repetition}, "
            f"interval {state.interval}->{interval}, EF {state.ease_factor}->{ease_factor}"
        )

        return NextState(
            interval=interval,
            repetition=repetition,
            ease_factor=ease_factor,
            next_review=now + timedelta(days=interval),
        )

    def apply_review(
        self, item: LearningItem, quality: int, now: Optional[datetime] = None
    ) -> LearningItem:
        """Rate an item and return an updated copy with its new schedule.

        Updates the schedule, correct/incorrect counters, last review time and
        last quality. The input item is left untouched.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        next_state = self.compute_next_state(item.review_state, quality, now=now)
        passed = quality >= self.MIN_PASSING_QUALITY

        return replace(
            item,
            ease_factor=next_state.ease_factor,
            interval=next_state.interval,
            repetition=next_state.repetition,
            next_review=next_state.next_review,
            last_reviewed=now,
            quality=quality,
            correct_count=item.correct_count + (1 if passed else 0),
            incorrect_count=item.incorrect_count + (0 if passed else 1),
        )

    def is_due(self, item: LearningItem, now: Optional[datetime] = None) -> bool:
        """Check whether an item is due for review."""
        if now is None:
            now = datetime.now(timezone.utc)
        return item.next_review <= now

    def is_mastered(self, item: LearningItem) -> bool:
        """An item is mastered after 3+ successful recalls and a 21+ day interval."""
        return (
            item.repetition >= self.MASTERED_REPETITIONS
            and item.interval >= self.MASTERED_INTERVAL_DAYS
        )

    def mastery_level(self, item: LearningItem) -> MasteryLevel:
        """
        Determine the learning stage of an item.

        - new: never rated
        - learning: rated, but fewer than 2 consecutive successful recalls
        - reviewing: 2+ consecutive successful recalls, not yet mastered
        - mastered: see is_mastered()
        """
        if item.total_reviews == 0 and item.repetition == 0:
            return MasteryLevel.NEW
        if self.is_mastered(item):
            return MasteryLevel.MASTERED
        if item.repetition >= self.REVIEWING_REPETITIONS:
            return MasteryLevel.REVIEWING
        return MasteryLevel.LEARNING

    def collection_stats(
        self, items: Iterable[LearningItem], now: Optional[datetime] = None
    ) -> CollectionStats:
        """Summarize mastery and due counts over a collection of items."""
        if now is None:
            now = datetime.now(timezone.utc)
        items = list(items)
        total = len(items)

        mastered = sum(1 for item in items if self.is_mastered(item))
        due = sum(1 for item in items if self.is_due(item, now))

        reviewed = [item for item in items if item.total_reviews > 0]
        if reviewed:
            average_rate = sum(i.correct_count / i.total_reviews for i in reviewed) / len(reviewed)
        else:
            average_rate = 0.0

        by_difficulty = {d.value: 0 for d in Difficulty}
        for item in items:
            by_difficulty[item.difficulty.value] += 1

        return CollectionStats(
            total_items=total,
            mastered_items=mastered,
            due_items=due,
            progress=(mastered / total * 100) if total else 0.0,
            average_correct_rate=round(average_rate, 4),
            by_difficulty=by_difficulty,
        )


_default_engine = SM2Algorithm()


def compute_next_state(
    state: ReviewState, quality: int, now: Optional[datetime] = None
) -> NextState:
    """Module-level shortcut for SM2Algorithm().compute_next_state()."""
    return _default_engine.compute_next_state(state, quality, now=now)


def apply_review(
    item: LearningItem, quality: int, now: Optional[datetime] = None
) -> LearningItem:
    """Module-level shortcut for SM2Algorithm().apply_review()."""
    return _default_engine.apply_review(item, quality, now=now)
