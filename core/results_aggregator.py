"""
Results aggregation for completed assessments.

Scores are always recomputed from the final question list, never from the
live tallies a session keeps for display. A question that was revisited and
re-answered therefore counts exactly once, with its last answer.
"""

import copy
import logging
import math
from collections import defaultdict
from typing import Callable, Dict, List, Optional

import numpy as np

from core.dto.assessment import (
    AssessmentQuestion,
    AssessmentResults,
    Breakdown,
    BreakdownEntry,
    PerformanceSummary,
)

logger = logging.getLogger(__name__)

POINTS_PER_CORRECT = 100

BonusScorer = Callable[[List[AssessmentQuestion]], int]


def _percent(part: int, whole: int) -> int:
    """Percentage rounded half-up to an integer."""
    if whole == 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


def _tally(groups: Dict[str, List[bool]]) -> Dict[str, BreakdownEntry]:
    entries = {}
    for key, outcomes in groups.items():
        correct = sum(1 for ok in outcomes if ok)
        entries[key] = BreakdownEntry(
            correct=correct, total=len(outcomes), percentage=_percent(correct, len(outcomes))
        )
    return entries


class ResultsAggregator:
    """Builds the final AssessmentResults from a session's questions.

    Args:
        default_question_time: Seconds assumed for questions with no recorded
            time when computing fastest/slowest/consistency
        bonus_scorer: Optional extension adding bonus points on top of the
            canonical 100 points per correct answer. None by default.
    """

    def __init__(self, default_question_time: int = 30, bonus_scorer: Optional[BonusScorer] = None):
        self.default_question_time = default_question_time
        self.bonus_scorer = bonus_scorer

    def aggregate(
        self,
        session_id: str,
        questions: List[AssessmentQuestion],
        started_at: float,
        completed_at: float,
    ) -> AssessmentResults:
        """Compute scores, breakdowns and timing statistics.

        Args:
            session_id: Session the questions belong to
            questions: Final question list (authoritative)
            started_at: Session start timestamp (seconds)
            completed_at: Session end timestamp (seconds)

        Returns:
            AssessmentResults record
        """
        total = len(questions)
        correct = sum(1 for q in questions if q.is_answered and q.is_correct)
        wrong = sum(1 for q in questions if q.is_answered and not q.is_correct)
        skipped = total - correct - wrong

        recorded_time = sum(q.time_spent or 0 for q in questions)
        bonus = int(self.bonus_scorer(questions)) if self.bonus_scorer else 0

        results = AssessmentResults(
            session_id=session_id,
            total_score=correct * POINTS_PER_CORRECT + bonus,
            max_score=total * POINTS_PER_CORRECT,
            percentage=_percent(correct, total),
            total_questions=total,
            correct_answers=correct,
            wrong_answers=wrong,
            skipped_answers=skipped,
            time_spent=max(0, int(completed_at - started_at)),
            average_time_per_question=round(recorded_time / total, 2) if total else 0.0,
            breakdown=self.breakdown(questions),
            performance=self.performance(questions),
            started_at=started_at,
            completed_at=completed_at,
            questions=copy.deepcopy(list(questions)),
            bonus_score=bonus,
            default_question_time=self.default_question_time,
        )

        logger.info(
            f"Session {session_id} results: {correct}/{total} correct, "
            f"{wrong} wrong, {skipped} skipped ({results.percentage}%)"
        )
        return results

    def breakdown(self, questions: List[AssessmentQuestion]) -> Breakdown:
        """Group correctness by question kind, difficulty and category.

        Questions without difficulty or category metadata are left out of
        that grouping rather than filed under a made-up key.
        """
        by_kind = defaultdict(list)
        by_difficulty = defaultdict(list)
        by_category = defaultdict(list)

        for question in questions:
            ok = bool(question.is_answered and question.is_correct)
            by_kind[question.kind.value].append(ok)
            if question.difficulty:
                by_difficulty[question.difficulty].append(ok)
            if question.category:
                by_category[question.category].append(ok)

        return Breakdown(
            by_kind=_tally(by_kind),
            by_difficulty=_tally(by_difficulty),
            by_category=_tally(by_category),
        )

    def performance(self, questions: List[AssessmentQuestion]) -> PerformanceSummary:
        """Fastest/slowest question time and consistency (1 - std/mean, floor 0)."""
        if not questions:
            return PerformanceSummary(fastest_time=0, slowest_time=0, consistency=0.0)

        times = np.array(
            [
                q.time_spent if q.time_spent is not None else self.default_question_time
                for q in questions
            ],
            dtype=float,
        )
        mean = float(times.mean())
        if mean > 0:
            consistency = max(0.0, 1 - float(times.std()) / mean)
        else:
            consistency = 0.0

        return PerformanceSummary(
            fastest_time=int(times.min()),
            slowest_time=int(times.max()),
            consistency=round(consistency, 2),
        )
