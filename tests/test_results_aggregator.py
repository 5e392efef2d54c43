"""
Unit tests for ResultsAggregator.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.answer_payload import BooleanAnswer, ChoiceAnswer, TextAnswer
from core.dto.assessment import AssessmentQuestion, QuestionKind
from core.results_aggregator import POINTS_PER_CORRECT, ResultsAggregator


def make_question(n, kind=QuestionKind.FREE_TEXT, correct=None, time_spent=None, difficulty="medium", category="general"):
    question = AssessmentQuestion(
        question_id=f"q{n}",
        kind=kind,
        prompt=f"prompt {n}",
        correct_answer=TextAnswer(f"answer {n}"),
        item_id=str(n),
        difficulty=difficulty,
        category=category,
        time_spent=time_spent,
    )
    if correct is not None:
        question.user_answer = TextAnswer("x")
        question.is_correct = correct
    return question


# ============================================================================
# Scores and counts
# ============================================================================


def test_counts_and_score():
    """Test score, counts and percentage."""
    questions = [
        make_question(1, correct=True, time_spent=4),
        make_question(2, correct=True, time_spent=6),
        make_question(3, correct=False, time_spent=10),
        make_question(4, time_spent=5),
    ]
    results = ResultsAggregator().aggregate("s1", questions, started_at=1000.0, completed_at=1030.9)

    assert results.total_questions == 4
    assert results.correct_answers == 2
    assert results.wrong_answers == 1
    assert results.skipped_answers == 1
    assert results.total_score == 2 * POINTS_PER_CORRECT
    assert results.max_score == 4 * POINTS_PER_CORRECT
    assert results.percentage == 50
    assert results.time_spent == 30
    assert results.average_time_per_question == 6.25
    print("✓ test_counts_and_score passed")


def test_counts_add_up():
    questions = [make_question(i, correct=(i % 3 == 0) if i % 2 else None) for i in range(7)]
    results = ResultsAggregator().aggregate("s", questions, 0, 10)
    assert results.correct_answers + results.wrong_answers + results.skipped_answers == 7
    print("✓ test_counts_add_up passed")


def test_percentage_rounds_half_up():
    """Test that 1/8 = 12.5% rounds to 13 and 2/3 to 67."""
    questions = [make_question(1, correct=True)] + [make_question(i, correct=False) for i in range(2, 9)]
    assert ResultsAggregator().aggregate("s", questions, 0, 1).percentage == 13

    questions = [make_question(1, correct=True), make_question(2, correct=True), make_question(3, correct=False)]
    assert ResultsAggregator().aggregate("s", questions, 0, 1).percentage == 67
    print("✓ test_percentage_rounds_half_up passed")


def test_all_skipped():
    questions = [make_question(i) for i in range(3)]
    results = ResultsAggregator().aggregate("s", questions, 0, 5)
    assert results.total_score == 0
    assert results.percentage == 0
    assert results.skipped_answers == 3
    print("✓ test_all_skipped passed")


def test_empty_session():
    results = ResultsAggregator().aggregate("s", [], 0, 0)
    assert results.percentage == 0
    assert results.average_time_per_question == 0.0
    assert results.performance.consistency == 0.0
    print("✓ test_empty_session passed")


def test_bonus_scorer_extension():
    """Test that a bonus scorer adds on top of the base score."""
    questions = [make_question(1, correct=True), make_question(2, correct=False)]
    aggregator = ResultsAggregator(bonus_scorer=lambda qs: 25)
    results = aggregator.aggregate("s", questions, 0, 1)
    assert results.bonus_score == 25
    assert results.total_score == POINTS_PER_CORRECT + 25
    assert results.percentage == 50
    print("✓ test_bonus_scorer_extension passed")


# ============================================================================
# Breakdowns
# ============================================================================


def test_breakdown_by_kind_difficulty_category():
    """Test per-group tallies."""
    questions = [
        make_question(1, QuestionKind.SINGLE_CHOICE, True, difficulty="easy", category="animals"),
        make_question(2, QuestionKind.SINGLE_CHOICE, False, difficulty="easy", category="food"),
        make_question(3, QuestionKind.BOOLEAN, True, difficulty="hard", category="animals"),
        make_question(4, QuestionKind.FREE_TEXT, None, difficulty="hard", category="animals"),
    ]
    breakdown = ResultsAggregator().aggregate("s", questions, 0, 1).breakdown

    assert breakdown.by_kind["single_choice"].correct == 1
    assert breakdown.by_kind["single_choice"].total == 2
    assert breakdown.by_kind["single_choice"].percentage == 50
    assert breakdown.by_kind["boolean"].percentage == 100
    assert breakdown.by_kind["free_text"].percentage == 0

    assert breakdown.by_difficulty["easy"].total == 2
    assert breakdown.by_difficulty["hard"].correct == 1

    assert breakdown.by_category["animals"].total == 3
    assert breakdown.by_category["animals"].percentage == 67
    assert breakdown.by_category["food"].correct == 0
    print("✓ test_breakdown_by_kind_difficulty_category passed")


def test_breakdown_skips_missing_metadata():
    """Test that questions without metadata are not filed under invented keys."""
    questions = [make_question(1, correct=True, difficulty=None, category=None)]
    breakdown = ResultsAggregator().aggregate("s", questions, 0, 1).breakdown
    assert breakdown.by_difficulty == {}
    assert breakdown.by_category == {}
    assert breakdown.by_kind["free_text"].total == 1
    print("✓ test_breakdown_skips_missing_metadata passed")


# ============================================================================
# Performance
# ============================================================================


def test_performance_summary():
    """Test fastest/slowest and consistency (1 - population std / mean)."""
    questions = [
        make_question(1, correct=True, time_spent=2),
        make_question(2, correct=True, time_spent=4),
        make_question(3, correct=True, time_spent=6),
    ]
    performance = ResultsAggregator().aggregate("s", questions, 0, 12).performance
    assert performance.fastest_time == 2
    assert performance.slowest_time == 6
    # std = sqrt(8/3) = 1.633, mean = 4
    assert performance.consistency == 0.59
    print("✓ test_performance_summary passed")


def test_performance_identical_times():
    questions = [make_question(i, correct=True, time_spent=5) for i in range(4)]
    assert ResultsAggregator().aggregate("s", questions, 0, 20).performance.consistency == 1.0
    print("✓ test_performance_identical_times passed")


def test_performance_zero_mean():
    questions = [make_question(i, correct=True, time_spent=0) for i in range(2)]
    assert ResultsAggregator().aggregate("s", questions, 0, 1).performance.consistency == 0.0
    print("✓ test_performance_zero_mean passed")


def test_performance_default_time_for_unrecorded():
    questions = [make_question(1, correct=True, time_spent=10), make_question(2)]
    performance = ResultsAggregator(default_question_time=30).aggregate("s", questions, 0, 1).performance
    assert performance.slowest_time == 30
    print("✓ test_performance_default_time_for_unrecorded passed")


def test_results_keep_question_snapshot():
    """Test that results hold their own list of questions."""
    questions = [make_question(1, QuestionKind.SINGLE_CHOICE, True)]
    questions[0].correct_answer = ChoiceAnswer("cat")
    results = ResultsAggregator().aggregate("s", questions, 0, 1)
    questions.append(make_question(2, QuestionKind.BOOLEAN, False))
    questions[1].correct_answer = BooleanAnswer(True)
    assert len(results.questions) == 1

    questions[0].is_correct = False
    questions[0].options.append("dog")
    assert results.questions[0].is_correct is True
    assert results.questions[0].options == []
    assert results.default_question_time == 30
    print("✓ test_results_keep_question_snapshot passed")


def run_all_tests():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("Running ResultsAggregator tests")
    print("=" * 60 + "\n")

    test_counts_and_score()
    test_counts_add_up()
    test_percentage_rounds_half_up()
    test_all_skipped()
    test_empty_session()
    test_bonus_scorer_extension()

    test_breakdown_by_kind_difficulty_category()
    test_breakdown_skips_missing_metadata()

    test_performance_summary()
    test_performance_identical_times()
    test_performance_zero_mean()
    test_performance_default_time_for_unrecorded()
    test_results_keep_question_snapshot()

    print("\n" + "=" * 60)
    print("All ResultsAggregator tests passed!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    run_all_tests()
