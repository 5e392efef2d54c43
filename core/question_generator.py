"""
Question generation for Wordwise assessments.

Turns a pool of learning items into assessment questions. Each question is
anchored on one item, and the anchor's id, difficulty and folder are copied
onto the question so results can be broken down later without lookups.
"""

import logging
import random
from typing import Iterable, List, Optional, Sequence

from config import Config
from core.answer_payload import BooleanAnswer, ChoiceAnswer, PairMatchAnswer, TextAnswer
from core.dto.assessment import AssessmentQuestion, AssessmentSettings, QuestionKind
from core.dto.items import Difficulty, LearningItem
from core.errors import InsufficientItemsError

logger = logging.getLogger(__name__)

MIXED_BASE_KINDS = [QuestionKind.SINGLE_CHOICE, QuestionKind.FREE_TEXT, QuestionKind.BOOLEAN]
MIN_ITEMS_FOR_MATCHING_IN_MIX = 4

_ID_PREFIX = {
    QuestionKind.SINGLE_CHOICE: "mcq",
    QuestionKind.FREE_TEXT: "typing",
    QuestionKind.PAIR_MATCHING: "matching",
    QuestionKind.BOOLEAN: "tf",
}


def filter_items(
    items: Iterable[LearningItem],
    folder_ids: Optional[Sequence[str]] = None,
    difficulties: Optional[Sequence] = None,
) -> List[LearningItem]:
    """Filter items by folder and difficulty.

    Empty filters match everything, as does the difficulty "all".
    """
    wanted = {d.value if isinstance(d, Difficulty) else str(d) for d in (difficulties or [])}
    match_all_difficulties = not wanted or "all" in wanted

    selected = []
    for item in items:
        if folder_ids and item.folder_id not in folder_ids:
            continue
        if not match_all_difficulties and item.difficulty.value not in wanted:
            continue
        selected.append(item)
    return selected


def sort_by_difficulty(items: Iterable[LearningItem], hardest_first: bool = False) -> List[LearningItem]:
    """Sort items easy → hard (or hard → easy)."""
    return sorted(items, key=lambda item: item.difficulty.rank, reverse=hardest_first)


class QuestionGenerator:
    """Builds assessment questions from learning items.

    Args:
        rng: Random source; pass a seeded random.Random for reproducible output
        option_count: Options per single-choice question (correct + distractors)
        matching_pairs: Pairs per matching question
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        option_count: int = Config.CHOICE_OPTION_COUNT,
        matching_pairs: int = Config.MATCHING_PAIR_COUNT,
    ):
        self.rng = rng or random.Random()
        self.option_count = option_count
        self.matching_pairs = matching_pairs

    # ==================== PUBLIC METHODS ====================

    def generate(self, items: Sequence[LearningItem], settings: AssessmentSettings) -> List[AssessmentQuestion]:
        """Generate exactly settings.question_count questions.

        Raises:
            InsufficientItemsError: If the pool has fewer items than questions
        """
        pool = list(items)
        if settings.question_count > len(pool):
            raise InsufficientItemsError(settings.question_count, len(pool))

        ordered = list(pool)
        if settings.random_order:
            self.rng.shuffle(ordered)
        anchors = ordered[: settings.question_count]

        if settings.kind == QuestionKind.MIXED:
            kinds = list(MIXED_BASE_KINDS)
            if len(pool) >= MIN_ITEMS_FOR_MATCHING_IN_MIX:
                kinds.append(QuestionKind.PAIR_MATCHING)
        else:
            kinds = [settings.kind]

        questions = []
        for index, anchor in enumerate(anchors, 1):
            kind = self.rng.choice(kinds)
            questions.append(self.build(kind, anchor, pool, index))

        logger.info(
            f"Generated {len(questions)} {settings.kind.value} questions from {len(pool)} items"
        )
        return questions

    def build(
        self, kind: QuestionKind, anchor: LearningItem, pool: Sequence[LearningItem], index: int = 1
    ) -> AssessmentQuestion:
        """Build one question of the given kind around an anchor item."""
        if kind == QuestionKind.SINGLE_CHOICE:
            question = self.single_choice(anchor, pool)
        elif kind == QuestionKind.FREE_TEXT:
            question = self.free_text(anchor)
        elif kind == QuestionKind.BOOLEAN:
            question = self.boolean(anchor, pool)
        elif kind == QuestionKind.PAIR_MATCHING:
            question = self.pair_matching(anchor, pool)
        else:
            raise ValueError(f"Cannot build a question of kind {kind}")

        question.question_id = f"{_ID_PREFIX[kind]}_{anchor.item_id}_{index}"
        return question

    def single_choice(self, item: LearningItem, pool: Sequence[LearningItem]) -> AssessmentQuestion:
        """Pick the right meaning (or word) among distractors."""
        forward = self.rng.random() > 0.5
        if forward:
            prompt = f'What does "{item.prompt}" mean?'
            correct = item.answer
        else:
            prompt = f'Which word means "{item.answer}"?'
            correct = item.prompt

        distractors = self._distractors(item, pool, self.option_count - 1, use_answer=forward)
        options = [correct] + distractors
        self.rng.shuffle(options)

        return self._question(QuestionKind.SINGLE_CHOICE, item, prompt, ChoiceAnswer(correct), options)

    def free_text(self, item: LearningItem) -> AssessmentQuestion:
        """Type the meaning (or the word)."""
        if self.rng.random() > 0.5:
            prompt = f'Type the meaning of "{item.prompt}"'
            correct = item.answer
        else:
            prompt = f'Type the word that means "{item.answer}"'
            correct = item.prompt
        return self._question(QuestionKind.FREE_TEXT, item, prompt, TextAnswer(correct))

    def boolean(self, item: LearningItem, pool: Sequence[LearningItem]) -> AssessmentQuestion:
        """True/false statement pairing the word with its meaning or a wrong one."""
        wrong_meaning = None
        if self.rng.random() <= 0.5:
            wrong_meaning = self._false_meaning(item, pool)

        if wrong_meaning is None:
            statement = f'"{item.prompt}" means "{item.answer}"'
            truth = True
        else:
            statement = f'"{item.prompt}" means "{wrong_meaning}"'
            truth = False

        return self._question(
            QuestionKind.BOOLEAN, item, statement, BooleanAnswer(truth), ["true", "false"]
        )

    def pair_matching(self, item: LearningItem, pool: Sequence[LearningItem]) -> AssessmentQuestion:
        """Match the anchor and a few other words with their meanings."""
        seen_prompts = {item.prompt}
        candidates = []
        for other in pool:
            if other.item_id == item.item_id or other.prompt in seen_prompts:
                continue
            seen_prompts.add(other.prompt)
            candidates.append(other)

        extra = min(self.matching_pairs - 1, len(candidates))
        members = [item] + self.rng.sample(candidates, extra)

        pairs = {member.prompt: member.answer for member in members}
        meanings = list(pairs.values())
        self.rng.shuffle(meanings)

        question = self._question(
            QuestionKind.PAIR_MATCHING,
            item,
            "Match each word with its meaning",
            PairMatchAnswer(pairs),
            meanings,
        )
        question.matched_item_ids = [member.item_id for member in members]
        return question

    # ==================== PRIVATE METHODS ====================

    def _question(self, kind, item, prompt, correct, options=None) -> AssessmentQuestion:
        return AssessmentQuestion(
            question_id="",
            kind=kind,
            prompt=prompt,
            correct_answer=correct,
            options=list(options or []),
            item_id=item.item_id,
            difficulty=item.difficulty.value,
            category=item.folder_id,
        )

    def _distractors(
        self, item: LearningItem, pool: Sequence[LearningItem], count: int, use_answer: bool
    ) -> List[str]:
        """Wrong options, preferring the same folder, then the same difficulty."""
        correct = item.answer if use_answer else item.prompt

        def text_of(other: LearningItem) -> str:
            return other.answer if use_answer else other.prompt

        others = []
        seen = {correct.strip().lower()}
        for other in pool:
            key = text_of(other).strip().lower()
            if other.item_id == item.item_id or key in seen:
                continue
            seen.add(key)
            others.append(other)

        same_folder = [o for o in others if o.folder_id == item.folder_id]
        same_difficulty = [o for o in others if o.difficulty == item.difficulty]
        if len(same_folder) >= count:
            candidates = same_folder
        elif len(same_difficulty) >= count:
            candidates = same_difficulty
        else:
            candidates = others

        chosen = self.rng.sample(candidates, min(count, len(candidates)))
        return [text_of(other) for other in chosen]

    def _false_meaning(self, item: LearningItem, pool: Sequence[LearningItem]) -> Optional[str]:
        others = [
            o for o in pool
            if o.item_id != item.item_id and o.answer.strip().lower() != item.answer.strip().lower()
        ]
        same_folder = [o for o in others if o.folder_id == item.folder_id]
        candidates = same_folder or others
        if not candidates:
            return None
        return self.rng.choice(candidates).answer


def generate_questions(
    items: Sequence[LearningItem],
    settings: AssessmentSettings,
    rng: Optional[random.Random] = None,
) -> List[AssessmentQuestion]:
    """Convenience wrapper around QuestionGenerator(rng).generate()."""
    return QuestionGenerator(rng=rng).generate(items, settings)
