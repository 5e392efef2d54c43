"""Deterministic answer checking for assessment questions.

The validator is stateless: the same submitted and canonical answers always
produce the same verdict. It never raises on bad learner input; anything it
cannot interpret is simply an incorrect answer.

Rules per question kind:
- SINGLE_CHOICE / BOOLEAN: case-insensitive, whitespace-trimmed equality
- FREE_TEXT: normalized exact match, or Levenshtein similarity >= 0.85 when
  the normalized canonical answer is longer than 10 characters
- PAIR_MATCHING: exact equality of the two pair maps, all-or-nothing
"""

import logging
import unicodedata
from typing import Any, Dict, Optional

from core.answer_payload import decode_pair_map, is_payload
from core.dto.assessment import QuestionKind
from core.errors import AnswerDecodeError

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Normalize free text for comparison.

    Trims, lowercases, removes punctuation and symbols (keeping letters,
    combining marks and digits of any script) and collapses whitespace.
    """
    text = text.strip().lower()
    kept = []
    for ch in text:
        if ch.isspace() or ch == "_" or unicodedata.category(ch)[0] in ("L", "M", "N"):
            kept.append(ch)
    return " ".join("".join(kept).split())


def levenshtein_distance(s1: str, s2: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def similarity(s1: str, s2: str) -> float:
    """Normalized Levenshtein similarity (0-1); two empty strings are identical."""
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    return 1 - levenshtein_distance(s1, s2) / longest


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if is_payload(value):
        return value.to_text()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return None


def _as_pairs(value: Any) -> Optional[Dict[str, str]]:
    if value is None:
        return None
    try:
        return decode_pair_map(value)
    except AnswerDecodeError as e:
        logger.warning(f"Undecodable pair-matching answer treated as incorrect: {e}")
        return None


class AnswerValidator:
    """Correctness checker dispatched by question kind.

    Usage:
        validator = AnswerValidator()
        validator.is_correct(QuestionKind.FREE_TEXT, "serendipty", "serendipity")  # True
        validator.is_correct(QuestionKind.FREE_TEXT, "cat", "car")  # False
    """

    FUZZY_THRESHOLD = 0.85
    FUZZY_MIN_LENGTH = 10  # canonical answers this short or shorter need an exact match

    def is_correct(self, kind: QuestionKind, submitted: Any, canonical: Any) -> bool:
        """Check a submitted answer against the canonical one.

        Args:
            kind: Question kind (MIXED is not a valid question kind here)
            submitted: Payload, plain string, bool or pair map from the learner
            canonical: Payload, plain string or pair map stored on the question

        Returns:
            True if the answer is correct
        """
        if kind == QuestionKind.PAIR_MATCHING:
            return self.check_pairs(submitted, canonical)

        submitted_text = _as_text(submitted)
        canonical_text = _as_text(canonical)
        if submitted_text is None or canonical_text is None or not submitted_text.strip():
            return False

        if kind in (QuestionKind.SINGLE_CHOICE, QuestionKind.BOOLEAN):
            return self.check_exact(submitted_text, canonical_text)
        if kind == QuestionKind.FREE_TEXT:
            return self.check_free_text(submitted_text, canonical_text)

        logger.warning(f"No validation rule for question kind {kind}")
        return False

    def check_exact(self, submitted: str, canonical: str) -> bool:
        """Case-insensitive, trimmed equality."""
        return submitted.strip().lower() == canonical.strip().lower()

    def check_free_text(self, submitted: str, canonical: str) -> bool:
        """Normalized match with typo tolerance for long answers."""
        normalized_submitted = normalize_text(submitted)
        normalized_canonical = normalize_text(canonical)

        if normalized_submitted == normalized_canonical:
            return True

        if len(normalized_canonical) > self.FUZZY_MIN_LENGTH:
            score = similarity(normalized_submitted, normalized_canonical)
            logger.debug(f"Fuzzy match {normalized_submitted!r} vs {normalized_canonical!r}: {score:.3f}")
            return score >= self.FUZZY_THRESHOLD

        return False

    def check_pairs(self, submitted: Any, canonical: Any) -> bool:
        """All-or-nothing comparison of two pair maps."""
        submitted_pairs = _as_pairs(submitted)
        canonical_pairs = _as_pairs(canonical)
        if not submitted_pairs or canonical_pairs is None:
            return False
        return submitted_pairs == canonical_pairs
