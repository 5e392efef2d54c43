"""Data Transfer Objects for wordwise-core business logic."""

from .assessment import (
    AssessmentQuestion,
    AssessmentResults,
    AssessmentSettings,
    Breakdown,
    BreakdownEntry,
    PerformanceSummary,
    QuestionKind,
    SessionProgress,
    SessionState,
)
from .items import (
    CollectionStats,
    Difficulty,
    LearningItem,
    MasteryLevel,
    NextState,
    ReviewState,
)

__all__ = [
    # Enums
    "Difficulty",
    "MasteryLevel",
    "QuestionKind",
    "SessionState",
    # Item DTOs
    "LearningItem",
    "ReviewState",
    "NextState",
    "CollectionStats",
    # Assessment DTOs
    "AssessmentSettings",
    "AssessmentQuestion",
    "SessionProgress",
    "AssessmentResults",
    "Breakdown",
    "BreakdownEntry",
    "PerformanceSummary",
]
