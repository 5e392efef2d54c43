"""
Bridge between assessment results and SM-2 scheduling.

Answered assessment questions are turned into SM-2 quality ratings so a quiz
updates the review schedule of the items it covered. The same history also
drives a few study recommendations: which items need urgent review, which
question kind to practise next, and which difficulties to include.
"""

import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from config import Config
from core.dto.assessment import AssessmentQuestion, AssessmentResults, AssessmentSettings, QuestionKind
from core.dto.items import Difficulty, LearningItem
from core.repository import ItemRepository
from core.sm2 import SM2Algorithm

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_EXPECTED_TIME = 30  # seconds, when the assessment had no per-question limit


@dataclass(frozen=True)
class AssessmentSuggestion:
    """Recommended next assessment."""

    kind: QuestionKind
    reason: str
    settings: AssessmentSettings


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def quality_from_question(
    question: AssessmentQuestion, question_time_limit: Optional[int] = None
) -> Optional[int]:
    """
    Convert an answered question into an SM-2 quality rating (0-5).

    Quality Mapping:
    ---------------
    Correct answers start at 5 (under 30% of the expected time), 4 (under
    80%) or 3 (slower). Wrong answers start at 1 (under 20% of the expected
    time, probably a guess) or 2. The rating is then nudged by question kind
    (recognition kinds earn less, typing earns more) and by difficulty (hard
    items earn more for a hit and lose more for a miss), clamped to 0-5 and
    rounded half-up.

    Returns:
        Quality rating, or None if the question was not answered
    """
    if not question.is_answered:
        return None

    expected = question_time_limit or DEFAULT_EXPECTED_TIME
    time_spent = question.time_spent if question.time_spent is not None else expected
    ratio = time_spent / expected
    correct = bool(question.is_correct)

    if correct:
        if ratio <= 0.3:
            quality = 5.0
        elif ratio <= 0.8:
            quality = 4.0
        else:
            quality = 3.0
    else:
        quality = 1.0 if ratio <= 0.2 else 2.0

    # Question kind
    if correct:
        if question.kind == QuestionKind.SINGLE_CHOICE:
            quality = max(3.0, quality - 0.5)
        elif question.kind == QuestionKind.FREE_TEXT:
            quality = min(5.0, quality + 0.5)
        elif question.kind == QuestionKind.BOOLEAN:
            quality = max(3.0, quality - 0.3)

    # Difficulty
    weight = Difficulty(question.difficulty).weight if question.difficulty else 3
    if weight >= 4:
        quality = min(5.0, quality + 0.5) if correct else max(1.0, quality - 0.5)
    elif weight <= 2 and correct:
        quality = max(3.0, quality - 0.3)

    return max(0, min(5, _round_half_up(quality)))


def apply_assessment(
    results: AssessmentResults,
    repository: ItemRepository,
    now: Optional[datetime] = None,
    question_time_limit: Optional[int] = None,
    engine: Optional[SM2Algorithm] = None,
) -> List[LearningItem]:
    """Rate the anchor item of every answered question and save it.

    Skipped questions leave their items untouched.

    Returns:
        The updated items, in question order
    """
    engine = engine or SM2Algorithm()
    updated = []
    for question in results.questions:
        quality = quality_from_question(question, question_time_limit)
        if quality is None or question.item_id is None:
            continue
        item = repository.get(question.item_id)
        reviewed = engine.apply_review(item, quality, now=now)
        repository.save(reviewed)
        updated.append(reviewed)
        logger.debug(f"Item {item.item_id} rated {quality} → next review in {reviewed.interval}d")

    logger.info(f"Updated review schedule of {len(updated)} items from assessment")
    return updated


def urgent_review_items(
    history: Iterable[AssessmentResults],
    items: Iterable[LearningItem],
    now: Optional[float] = None,
) -> List[LearningItem]:
    """Items whose assessment record calls for review now, weakest first.

    An item is urgent when its success rate across past assessments is below
    60%, or below 80% with a failure in the last 7 days.
    """
    if now is None:
        now = time.time()

    performance = defaultdict(lambda: {"correct": 0, "total": 0, "last_failed": None})
    for results in history:
        for question in results.questions:
            if not question.is_answered or question.item_id is None:
                continue
            record = performance[question.item_id]
            record["total"] += 1
            if question.is_correct:
                record["correct"] += 1
            else:
                last = record["last_failed"]
                record["last_failed"] = (
                    results.completed_at if last is None else max(last, results.completed_at)
                )

    urgent = []
    for item in items:
        record = performance.get(item.item_id)
        if not record or record["total"] == 0:
            continue
        rate = record["correct"] / record["total"]
        recent_failure = (
            record["last_failed"] is not None
            and (now - record["last_failed"]) / SECONDS_PER_DAY < Config.RECENT_FAIL_DAYS
        )
        if rate < Config.URGENT_SUCCESS_RATE or (
            rate < Config.RECENT_FAIL_SUCCESS_RATE and recent_failure
        ):
            urgent.append((rate, item))

    urgent.sort(key=lambda pair: pair[0])
    return [item for _, item in urgent]


def _most_recent(history: Iterable[AssessmentResults], count: int) -> List[AssessmentResults]:
    return sorted(history, key=lambda r: r.completed_at, reverse=True)[:count]


def suggest_assessment(history: Iterable[AssessmentResults]) -> AssessmentSuggestion:
    """Recommend the next assessment from the five most recent results."""
    recent = _most_recent(history, 5)
    if not recent:
        return AssessmentSuggestion(
            kind=QuestionKind.MIXED,
            reason="Mixed assessment to find strengths and weaknesses",
            settings=AssessmentSettings(
                kind=QuestionKind.MIXED,
                question_count=10,
                total_time_limit=300,
                reveal_correct_answer=True,
                instant_feedback=True,
            ),
        )

    by_kind = defaultdict(lambda: [0, 0])
    for results in recent:
        for question in results.questions:
            tally = by_kind[question.kind]
            tally[1] += 1
            if question.is_answered and question.is_correct:
                tally[0] += 1

    weakest: Optional[Tuple[QuestionKind, float]] = None
    for kind, (correct, total) in by_kind.items():
        rate = correct / total
        if weakest is None or rate < weakest[1]:
            weakest = (kind, rate)

    if weakest and weakest[1] < Config.WEAK_KIND_THRESHOLD:
        kind = weakest[0]
        return AssessmentSuggestion(
            kind=kind,
            reason=f"Improve {kind.value.replace('_', '-')} questions ({weakest[1]:.0%} correct)",
            settings=AssessmentSettings(
                kind=kind,
                question_count=15,
                total_time_limit=450,
                reveal_correct_answer=True,
                instant_feedback=True,
            ),
        )

    return AssessmentSuggestion(
        kind=QuestionKind.MIXED,
        reason="Balanced performance - keep up the mixed challenge",
        settings=AssessmentSettings(
            kind=QuestionKind.MIXED,
            question_count=20,
            total_time_limit=600,
            reveal_correct_answer=False,
            instant_feedback=False,
        ),
    )


def suggest_difficulties(history: Iterable[AssessmentResults]) -> Tuple[List[Difficulty], str]:
    """Recommend difficulties from the average of the three most recent percentages."""
    recent = _most_recent(history, 3)
    if not recent:
        return [Difficulty.EASY, Difficulty.MEDIUM], "Start with a gradual mix of levels"

    average = sum(r.percentage for r in recent) / len(recent)
    if average >= 85:
        return [Difficulty.MEDIUM, Difficulty.HARD], "Excellent results - ready for harder items"
    if average >= 70:
        return [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD], "Good results - a balanced mix"
    return [Difficulty.EASY, Difficulty.MEDIUM], "Focus on strengthening the basics"
