"""Typed answer payloads and their versioned wire format.

A learner's answer is one of four shapes, one per question kind:

- ChoiceAnswer: the option picked in a single-choice question
- TextAnswer: free text typed by the learner
- BooleanAnswer: true/false
- PairMatchAnswer: a left-item -> right-item map for matching questions

Payloads are encoded as a small JSON envelope::

    {"v": 1, "kind": "pair_matching", "value": {"cat": "chat", "dog": "chien"}}

Unversioned pair maps (a bare JSON object, as older decks stored them) are
still accepted by decode_pair_map(). Whole questions, with their recorded
answers, round-trip through question_to_record() and question_from_record().
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union

from core.dto.assessment import AssessmentQuestion, QuestionKind
from core.errors import AnswerDecodeError

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = 1


@dataclass(frozen=True)
class ChoiceAnswer:
    """Option selected in a single-choice question."""

    text: str

    kind = QuestionKind.SINGLE_CHOICE

    def to_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class TextAnswer:
    """Free text typed by the learner."""

    text: str

    kind = QuestionKind.FREE_TEXT

    def to_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class BooleanAnswer:
    """True/false answer."""

    value: bool

    kind = QuestionKind.BOOLEAN

    def to_text(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class PairMatchAnswer:
    """Left-item to right-item assignments of a matching question."""

    pairs: Dict[str, str] = field(default_factory=dict)

    kind = QuestionKind.PAIR_MATCHING

    def to_text(self) -> str:
        return ", ".join(f"{left} → {right}" for left, right in sorted(self.pairs.items()))


AnswerPayload = Union[ChoiceAnswer, TextAnswer, BooleanAnswer, PairMatchAnswer]

_PAYLOAD_TYPES = (ChoiceAnswer, TextAnswer, BooleanAnswer, PairMatchAnswer)

_TRUE_WORDS = {"true"}
_FALSE_WORDS = {"false"}


def is_payload(value: Any) -> bool:
    return isinstance(value, _PAYLOAD_TYPES)


def _payload_value(payload: AnswerPayload) -> Any:
    if isinstance(payload, BooleanAnswer):
        return payload.value
    if isinstance(payload, PairMatchAnswer):
        return dict(payload.pairs)
    return payload.text


def to_record(payload: AnswerPayload) -> Dict[str, Any]:
    """Convert a payload to its envelope dict."""
    if not is_payload(payload):
        raise TypeError(f"Not an answer payload: {payload!r}")
    return {"v": PAYLOAD_VERSION, "kind": payload.kind.value, "value": _payload_value(payload)}


def encode_answer(payload: AnswerPayload) -> str:
    """Encode a payload as a JSON envelope string."""
    return json.dumps(to_record(payload), ensure_ascii=False, sort_keys=True)


def _validate_pairs(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        raise AnswerDecodeError(f"Pair map must be an object, got {type(value).__name__}")
    pairs = {}
    for left, right in value.items():
        if not isinstance(left, str) or not isinstance(right, str):
            raise AnswerDecodeError("Pair map keys and values must be strings")
        pairs[left] = right
    return pairs


def from_record(record: Mapping[str, Any]) -> AnswerPayload:
    """Build a payload from an envelope dict.

    Raises:
        AnswerDecodeError: On unknown versions, unknown kinds or bad values
    """
    if not isinstance(record, Mapping):
        raise AnswerDecodeError(f"Answer envelope must be an object, got {type(record).__name__}")

    version = record.get("v")
    if version != PAYLOAD_VERSION:
        raise AnswerDecodeError(f"Unsupported answer payload version: {version!r}")

    kind_value = record.get("kind")
    value = record.get("value")
    try:
        kind = QuestionKind(kind_value)
    except ValueError:
        raise AnswerDecodeError(f"Unknown answer kind: {kind_value!r}")

    if kind == QuestionKind.PAIR_MATCHING:
        return PairMatchAnswer(_validate_pairs(value))
    if kind == QuestionKind.BOOLEAN:
        if not isinstance(value, bool):
            raise AnswerDecodeError(f"Boolean answer must be true/false, got {value!r}")
        return BooleanAnswer(value)
    if not isinstance(value, str):
        raise AnswerDecodeError(f"{kind.value} answer must be a string, got {value!r}")
    if kind == QuestionKind.SINGLE_CHOICE:
        return ChoiceAnswer(value)
    if kind == QuestionKind.FREE_TEXT:
        return TextAnswer(value)
    raise AnswerDecodeError(f"'{kind.value}' is not an answer kind")


def decode_answer(data: Union[str, bytes]) -> AnswerPayload:
    """Decode a JSON envelope string produced by encode_answer().

    Raises:
        AnswerDecodeError: If data is not valid JSON or not a valid envelope
    """
    try:
        record = json.loads(data)
    except (TypeError, ValueError, RecursionError) as e:
        raise AnswerDecodeError(f"Invalid answer JSON: {e}")
    return from_record(record)


def decode_pair_map(data: Union[str, Mapping]) -> Dict[str, str]:
    """Decode a pair map from an envelope, a bare JSON object, or a mapping.

    Raises:
        AnswerDecodeError: If no pair map can be read from data
    """
    if isinstance(data, PairMatchAnswer):
        return dict(data.pairs)
    if isinstance(data, Mapping):
        record = data
    else:
        try:
            record = json.loads(data)
        except (TypeError, ValueError, RecursionError) as e:
            raise AnswerDecodeError(f"Invalid pair map JSON: {e}")

    if isinstance(record, Mapping) and "v" in record and "kind" in record:
        payload = from_record(record)
        if not isinstance(payload, PairMatchAnswer):
            raise AnswerDecodeError(f"Expected a pair map, got a {payload.kind.value} answer")
        return dict(payload.pairs)

    # Unversioned map
    return _validate_pairs(record)


def coerce_answer(raw: Any, kind: QuestionKind) -> AnswerPayload:
    """Turn raw learner input into the payload for a question kind.

    Accepts payloads, plain strings, booleans, mappings (pair-matching) and
    encoded envelopes.

    Raises:
        AnswerDecodeError: If raw cannot be read as an answer of this kind
    """
    if is_payload(raw) and raw.kind == kind:
        return raw
    if is_payload(raw):
        raw = _payload_value(raw)

    if kind == QuestionKind.PAIR_MATCHING:
        return PairMatchAnswer(decode_pair_map(raw))

    if isinstance(raw, str) and raw.lstrip().startswith('{"v"'):
        payload = decode_answer(raw)
        return coerce_answer(payload, kind)

    if kind == QuestionKind.BOOLEAN:
        if isinstance(raw, bool):
            return BooleanAnswer(raw)
        if isinstance(raw, str):
            word = raw.strip().lower()
            if word in _TRUE_WORDS:
                return BooleanAnswer(True)
            if word in _FALSE_WORDS:
                return BooleanAnswer(False)
        raise AnswerDecodeError(f"Cannot read {raw!r} as true/false")

    if not isinstance(raw, str):
        raise AnswerDecodeError(f"{kind.value} answer must be text, got {type(raw).__name__}")
    if kind == QuestionKind.SINGLE_CHOICE:
        return ChoiceAnswer(raw)
    if kind == QuestionKind.FREE_TEXT:
        return TextAnswer(raw)
    raise AnswerDecodeError(f"'{kind.value}' is not an answer kind")


def question_to_record(question: AssessmentQuestion) -> Dict[str, Any]:
    """Plain-data form of a question, answer payloads as envelopes."""
    user_answer = question.user_answer
    return {
        "question_id": question.question_id,
        "kind": question.kind.value,
        "prompt": question.prompt,
        "options": list(question.options),
        "correct_answer": to_record(question.correct_answer),
        "user_answer": to_record(user_answer) if user_answer is not None else None,
        "time_spent": question.time_spent,
        "is_correct": question.is_correct,
        "item_id": question.item_id,
        "difficulty": question.difficulty,
        "category": question.category,
        "matched_item_ids": list(question.matched_item_ids),
    }


def question_from_record(record: Mapping[str, Any]) -> AssessmentQuestion:
    """Rebuild a question stored by question_to_record().

    Raises:
        AnswerDecodeError: If the record or one of its payloads is malformed
    """
    try:
        kind = QuestionKind(record["kind"])
        user_answer = record.get("user_answer")
        return AssessmentQuestion(
            question_id=record["question_id"],
            kind=kind,
            prompt=record["prompt"],
            correct_answer=from_record(record["correct_answer"]),
            options=list(record.get("options") or []),
            item_id=record.get("item_id"),
            difficulty=record.get("difficulty"),
            category=record.get("category"),
            matched_item_ids=list(record.get("matched_item_ids") or []),
            user_answer=from_record(user_answer) if user_answer is not None else None,
            time_spent=record.get("time_spent"),
            is_correct=record.get("is_correct"),
        )
    except AnswerDecodeError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise AnswerDecodeError(f"Invalid question record: {e}")
