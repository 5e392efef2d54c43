"""
Wordwise Core - spaced-repetition flashcard engine.

Main components:
- SM2Algorithm: SuperMemo-2 review scheduling
- AnswerValidator: Correctness checks for every question kind
- AssessmentSession: Timed quiz state machine
- ResultsAggregator: Scores, breakdowns and timing of completed quizzes
"""

from core.answer_validator import AnswerValidator
from core.assessment_session import AnswerOutcome, AssessmentSession
from core.errors import WordwiseError
from core.question_generator import QuestionGenerator, filter_items, generate_questions
from core.repository import InMemoryItemRepository, ItemRepository
from core.results_aggregator import ResultsAggregator
from core.review_bridge import (
    AssessmentSuggestion,
    apply_assessment,
    quality_from_question,
    suggest_assessment,
    suggest_difficulties,
    urgent_review_items,
)
from core.sm2 import SM2Algorithm, apply_review, compute_next_state
from core.timers import Countdown, ManualClock, SystemClock

__all__ = [
    "SM2Algorithm",
    "compute_next_state",
    "apply_review",
    "AnswerValidator",
    "AssessmentSession",
    "AnswerOutcome",
    "ResultsAggregator",
    "QuestionGenerator",
    "generate_questions",
    "filter_items",
    "Countdown",
    "SystemClock",
    "ManualClock",
    "ItemRepository",
    "InMemoryItemRepository",
    "WordwiseError",
    # Study advice
    "AssessmentSuggestion",
    "apply_assessment",
    "quality_from_question",
    "urgent_review_items",
    "suggest_assessment",
    "suggest_difficulties",
]
