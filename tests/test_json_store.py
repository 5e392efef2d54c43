"""
Unit tests for the JSON deck repository and the in-memory repository.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from core.answer_payload import PairMatchAnswer, TextAnswer
from core.dto.assessment import AssessmentQuestion, QuestionKind
from core.dto.items import Difficulty, LearningItem
from core.errors import ItemNotFoundError
from core.repository import InMemoryItemRepository
from core.results_aggregator import ResultsAggregator
from core.sm2 import apply_review
from storage.json_store import DeckFormatError, JsonItemRepository, item_from_record, item_to_record

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_item(item_id="1", **kwargs):
    kwargs.setdefault("next_review", NOW)
    return LearningItem(item_id=item_id, prompt="chat", answer="cat", **kwargs)


# ============================================================================
# Item records
# ============================================================================


def test_item_record_keeps_every_field():
    """Test that all content and review fields survive storage."""
    item = make_item(
        folder_id="animals",
        difficulty=Difficulty.HARD,
        note="feline",
        tags=["noun", "pets"],
    )
    item = apply_review(item, 4, now=NOW)

    rebuilt = item_from_record(item_to_record(item))
    assert rebuilt == item
    assert rebuilt.last_reviewed == NOW
    assert rebuilt.next_review == NOW + timedelta(days=1)
    print("✓ test_item_record_keeps_every_field passed")


def test_item_record_defaults():
    rebuilt = item_from_record({"item_id": "9", "prompt": "pain", "answer": "bread"})
    assert rebuilt.difficulty == Difficulty.MEDIUM
    assert rebuilt.ease_factor == 2.5
    assert rebuilt.interval == 1
    assert rebuilt.last_reviewed is None
    print("✓ test_item_record_defaults passed")


# ============================================================================
# JSON repository
# ============================================================================


def test_missing_deck_is_empty():
    with tempfile.TemporaryDirectory() as tmp:
        repo = JsonItemRepository(Path(tmp) / "deck.json")
        assert len(repo) == 0
        assert repo.list_items() == []
    print("✓ test_missing_deck_is_empty passed")


def test_save_and_reload():
    """Test that saved items are visible to a fresh repository."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "nested" / "deck.json"
        repo = JsonItemRepository(path)
        repo.save(make_item("1", folder_id="animals"))
        repo.save(make_item("2", folder_id="food"))

        reloaded = JsonItemRepository(path)
        assert len(reloaded) == 2
        assert reloaded.get("1").folder_id == "animals"
        assert [i.item_id for i in reloaded.list_items("food")] == ["2"]
        assert reloaded.next_item_id() == "3"
    print("✓ test_save_and_reload passed")


def test_get_and_delete_missing_item():
    with tempfile.TemporaryDirectory() as tmp:
        repo = JsonItemRepository(Path(tmp) / "deck.json")
        with pytest.raises(ItemNotFoundError):
            repo.get("nope")
        with pytest.raises(ItemNotFoundError):
            repo.delete("nope")
        with pytest.raises(KeyError):
            repo.get("nope")
    print("✓ test_get_and_delete_missing_item passed")


def test_autosave_off_needs_flush():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "deck.json"
        repo = JsonItemRepository(path, autosave=False)
        repo.save(make_item())
        assert not path.exists()
        repo.flush()
        assert len(JsonItemRepository(path)) == 1
    print("✓ test_autosave_off_needs_flush passed")


def test_corrupt_deck_raises():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "deck.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DeckFormatError):
            JsonItemRepository(path)
    print("✓ test_corrupt_deck_raises passed")


def test_history_round_trip():
    """Test that stored assessments are re-aggregated on load."""
    questions = [
        AssessmentQuestion(
            question_id="typing_1_1",
            kind=QuestionKind.FREE_TEXT,
            prompt="Type the meaning of chat",
            correct_answer=TextAnswer("cat"),
            item_id="1",
            difficulty="easy",
            category="animals",
            user_answer=TextAnswer("cat"),
            time_spent=4,
            is_correct=True,
        ),
        AssessmentQuestion(
            question_id="matching_2_2",
            kind=QuestionKind.PAIR_MATCHING,
            prompt="Match each word with its meaning",
            correct_answer=PairMatchAnswer({"chien": "dog", "chat": "cat"}),
            options=["cat", "dog"],
            item_id="2",
            difficulty="hard",
            category="animals",
            matched_item_ids=["2", "1"],
            time_spent=30,
        ),
    ]
    results = ResultsAggregator().aggregate("session-1", questions, 1000.0, 1040.0)

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "deck.json"
        JsonItemRepository(path).add_results(results)

        history = JsonItemRepository(path).history()
        assert len(history) == 1
        loaded = history[0]
        assert loaded.session_id == "session-1"
        assert loaded.correct_answers == 1
        assert loaded.skipped_answers == 1
        assert loaded.time_spent == 40
        assert loaded.breakdown == results.breakdown
        assert loaded.questions == questions
    print("✓ test_history_round_trip passed")


def test_history_keeps_question_time_limit():
    """Test that reloaded timing statistics match the live ones."""
    questions = [
        AssessmentQuestion(
            question_id="typing_1_1",
            kind=QuestionKind.FREE_TEXT,
            prompt="Type the meaning of chat",
            correct_answer=TextAnswer("cat"),
            item_id="1",
        )
    ]
    results = ResultsAggregator(default_question_time=10).aggregate("session-2", questions, 0.0, 10.0)
    assert results.performance.slowest_time == 10

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "deck.json"
        JsonItemRepository(path).add_results(results)

        loaded = JsonItemRepository(path).history()[0]
        assert loaded.default_question_time == 10
        assert loaded.performance == results.performance
    print("✓ test_history_keeps_question_time_limit passed")


# ============================================================================
# In-memory repository
# ============================================================================


def test_in_memory_repository():
    repo = InMemoryItemRepository([make_item("1", folder_id="a"), make_item("2", folder_id="b")])
    assert len(repo) == 2
    assert "1" in repo
    assert [i.item_id for i in repo.list_items("b")] == ["2"]

    repo.save(apply_review(repo.get("1"), 5, now=NOW))
    assert repo.get("1").repetition == 1

    repo.delete("2")
    with pytest.raises(ItemNotFoundError):
        repo.get("2")
    print("✓ test_in_memory_repository passed")


def run_all_tests():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("Running repository tests")
    print("=" * 60 + "\n")

    test_item_record_keeps_every_field()
    test_item_record_defaults()

    test_missing_deck_is_empty()
    test_save_and_reload()
    test_get_and_delete_missing_item()
    test_autosave_off_needs_flush()
    test_corrupt_deck_raises()
    test_history_round_trip()
    test_history_keeps_question_time_limit()

    test_in_memory_repository()

    print("\n" + "=" * 60)
    print("All repository tests passed!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    run_all_tests()
