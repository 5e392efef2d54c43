"""
Unit tests for answer payloads and their JSON envelope.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import json

import pytest

from core.answer_payload import (
    PAYLOAD_VERSION,
    BooleanAnswer,
    ChoiceAnswer,
    PairMatchAnswer,
    TextAnswer,
    coerce_answer,
    decode_answer,
    decode_pair_map,
    encode_answer,
    question_from_record,
    question_to_record,
)
from core.dto.assessment import AssessmentQuestion, QuestionKind
from core.errors import AnswerDecodeError


# ============================================================================
# Envelope
# ============================================================================


def test_encode_envelope_shape():
    """Test the versioned envelope layout."""
    data = json.loads(encode_answer(PairMatchAnswer({"cat": "chat"})))
    assert data == {"v": PAYLOAD_VERSION, "kind": "pair_matching", "value": {"cat": "chat"}}
    print("✓ test_encode_envelope_shape passed")


def test_decode_each_kind():
    """Test decoding envelopes of every answer kind."""
    assert decode_answer('{"v": 1, "kind": "single_choice", "value": "cat"}') == ChoiceAnswer("cat")
    assert decode_answer('{"v": 1, "kind": "free_text", "value": "chat"}') == TextAnswer("chat")
    assert decode_answer('{"v": 1, "kind": "boolean", "value": false}') == BooleanAnswer(False)
    assert decode_answer(encode_answer(PairMatchAnswer({"a": "b"}))) == PairMatchAnswer({"a": "b"})
    print("✓ test_decode_each_kind passed")


def test_encode_keeps_unicode():
    """Test that non-ASCII text is stored as-is."""
    assert "مرحبا" in encode_answer(TextAnswer("مرحبا"))
    print("✓ test_encode_keeps_unicode passed")


def test_decode_rejects_bad_envelopes():
    """Test errors for unknown versions, kinds and values."""
    bad = [
        "not json",
        '{"v": 2, "kind": "free_text", "value": "x"}',
        '{"v": 1, "kind": "essay", "value": "x"}',
        '{"v": 1, "kind": "mixed", "value": "x"}',
        '{"v": 1, "kind": "boolean", "value": "yes"}',
        '{"v": 1, "kind": "pair_matching", "value": ["a"]}',
        "[1, 2, 3]",
    ]
    for data in bad:
        with pytest.raises(AnswerDecodeError):
            decode_answer(data)
    print("✓ test_decode_rejects_bad_envelopes passed")


def test_decode_deeply_nested_json():
    """Test that nesting too deep for the JSON parser is a decode error."""
    nested = "[" * 200000
    with pytest.raises(AnswerDecodeError):
        decode_answer(nested)
    with pytest.raises(AnswerDecodeError):
        decode_pair_map(nested)
    print("✓ test_decode_deeply_nested_json passed")


def test_decode_pair_map_accepts_legacy_object():
    """Test that an unversioned JSON object is read as a pair map."""
    assert decode_pair_map('{"dog": "chien"}') == {"dog": "chien"}
    assert decode_pair_map({"dog": "chien"}) == {"dog": "chien"}
    print("✓ test_decode_pair_map_accepts_legacy_object passed")


def test_decode_pair_map_rejects_other_kinds():
    with pytest.raises(AnswerDecodeError):
        decode_pair_map(encode_answer(TextAnswer("dog")))
    print("✓ test_decode_pair_map_rejects_other_kinds passed")


# ============================================================================
# Coercion of raw input
# ============================================================================


def test_coerce_plain_strings():
    """Test that plain strings become the payload of the question kind."""
    assert coerce_answer("cat", QuestionKind.SINGLE_CHOICE) == ChoiceAnswer("cat")
    assert coerce_answer("cat", QuestionKind.FREE_TEXT) == TextAnswer("cat")
    print("✓ test_coerce_plain_strings passed")


def test_coerce_boolean_words():
    """Test true/false words and Python bools."""
    assert coerce_answer(" True ", QuestionKind.BOOLEAN) == BooleanAnswer(True)
    assert coerce_answer("FALSE", QuestionKind.BOOLEAN) == BooleanAnswer(False)
    assert coerce_answer(True, QuestionKind.BOOLEAN) == BooleanAnswer(True)
    for word in ["maybe", "yes", "no", "1", "0"]:
        with pytest.raises(AnswerDecodeError):
            coerce_answer(word, QuestionKind.BOOLEAN)
    print("✓ test_coerce_boolean_words passed")


def test_coerce_envelope_string():
    """Test that an encoded envelope is decoded before coercion."""
    raw = encode_answer(ChoiceAnswer("cat"))
    assert coerce_answer(raw, QuestionKind.SINGLE_CHOICE) == ChoiceAnswer("cat")
    print("✓ test_coerce_envelope_string passed")


def test_coerce_pair_map():
    assert coerce_answer({"a": "b"}, QuestionKind.PAIR_MATCHING) == PairMatchAnswer({"a": "b"})
    with pytest.raises(AnswerDecodeError):
        coerce_answer("{oops", QuestionKind.PAIR_MATCHING)
    print("✓ test_coerce_pair_map passed")


def test_coerce_rejects_non_text_for_text_kinds():
    with pytest.raises(AnswerDecodeError):
        coerce_answer(42, QuestionKind.FREE_TEXT)
    print("✓ test_coerce_rejects_non_text_for_text_kinds passed")


# ============================================================================
# Question records
# ============================================================================


def test_question_record_keeps_answer_and_metadata():
    """Test storing and rebuilding an answered question."""
    question = AssessmentQuestion(
        question_id="matching_1_1",
        kind=QuestionKind.PAIR_MATCHING,
        prompt="Match each word with its meaning",
        correct_answer=PairMatchAnswer({"cat": "chat", "dog": "chien"}),
        options=["chien", "chat"],
        item_id="1",
        difficulty="hard",
        category="animals",
        matched_item_ids=["1", "2"],
        user_answer=PairMatchAnswer({"cat": "chien", "dog": "chat"}),
        time_spent=12,
        is_correct=False,
    )
    rebuilt = question_from_record(json.loads(json.dumps(question_to_record(question))))
    assert rebuilt == question
    print("✓ test_question_record_keeps_answer_and_metadata passed")


def test_question_record_malformed():
    with pytest.raises(AnswerDecodeError):
        question_from_record({"kind": "free_text"})
    print("✓ test_question_record_malformed passed")


def run_all_tests():
    """Run all tests."""
    print("\n" + "=" * 60)
    print("Running answer payload tests")
    print("=" * 60 + "\n")

    test_encode_envelope_shape()
    test_decode_each_kind()
    test_encode_keeps_unicode()
    test_decode_rejects_bad_envelopes()
    test_decode_deeply_nested_json()
    test_decode_pair_map_accepts_legacy_object()
    test_decode_pair_map_rejects_other_kinds()

    test_coerce_plain_strings()
    test_coerce_boolean_words()
    test_coerce_envelope_string()
    test_coerce_pair_map()
    test_coerce_rejects_non_text_for_text_kinds()

    test_question_record_keeps_answer_and_metadata()
    test_question_record_malformed()

    print("\n" + "=" * 60)
    print("All answer payload tests passed!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    run_all_tests()
