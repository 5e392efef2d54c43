"""
Assessment session state machine.

A session walks the learner through an ordered list of questions:

    ready → active ⇄ paused → completed
    (any non-terminal state) → cancelled

Timers are driven cooperatively: whoever runs the session calls tick() once
per second while it is active. The total countdown completes the session
when it runs out; the per-question countdown skips (or force-advances) the
current question. Live tallies (correct, incorrect, skipped, streak) are for
display only; the final results are recomputed from the question list.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from config import Config
from core.answer_payload import TextAnswer, coerce_answer, is_payload, question_to_record
from core.answer_validator import AnswerValidator
from core.dto.assessment import (
    AssessmentQuestion,
    AssessmentResults,
    AssessmentSettings,
    SessionProgress,
    SessionState,
)
from core.dto.items import LearningItem
from core.errors import (
    AnswerDecodeError,
    InsufficientItemsError,
    InvalidSettingsError,
    QuestionIndexError,
    SessionStateError,
    SkipNotAllowedError,
)
from core.question_generator import QuestionGenerator
from core.results_aggregator import ResultsAggregator
from core.timers import Clock, Countdown, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerOutcome:
    """What the learner sees right after answering.

    correct_answer is only filled in when the settings allow revealing it
    (or the answer was right anyway).
    """

    question_id: str
    is_correct: bool
    user_answer: Optional[Any]
    correct_answer: Optional[Any]
    time_spent: int


class AssessmentSession:
    """One timed run through a set of questions.

    Args:
        settings: Assessment settings
        item_pool: Items already filtered by the caller (folder/difficulty)
        clock: Timestamp source; defaults to the system clock
        generator: Question generator; defaults to an unseeded one
        validator: Answer validator
        aggregator: Results aggregator
        session_id: Explicit id (random UUID by default)
        questions: Pre-built questions instead of generating from the pool

    Raises:
        InsufficientItemsError: If settings.question_count exceeds the pool
    """

    def __init__(
        self,
        settings: AssessmentSettings,
        item_pool: Sequence[LearningItem],
        clock: Optional[Clock] = None,
        generator: Optional[QuestionGenerator] = None,
        validator: Optional[AnswerValidator] = None,
        aggregator: Optional[ResultsAggregator] = None,
        session_id: Optional[str] = None,
        questions: Optional[List[AssessmentQuestion]] = None,
        feedback_reveal_seconds: int = Config.FEEDBACK_REVEAL_SECONDS,
    ):
        if settings.question_count > len(item_pool):
            raise InsufficientItemsError(settings.question_count, len(item_pool))

        self.session_id = session_id or str(uuid.uuid4())
        self.settings = settings
        self.clock = clock or SystemClock()
        self.validator = validator or AnswerValidator()
        self.aggregator = aggregator or ResultsAggregator(
            default_question_time=settings.question_time_limit or Config.DEFAULT_QUESTION_TIME
        )
        self.feedback_reveal_seconds = feedback_reveal_seconds

        if questions is None:
            questions = (generator or QuestionGenerator()).generate(item_pool, settings)
        elif len(questions) != settings.question_count:
            raise InvalidSettingsError(
                f"Got {len(questions)} questions for a {settings.question_count}-question session"
            )
        self.questions: List[AssessmentQuestion] = list(questions)

        self.state = SessionState.READY
        self.current_index = 0
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None
        self.elapsed = 0  # active seconds (ticks)

        # Live tallies (display only)
        self.correct = 0
        self.incorrect = 0
        self.skipped = 0
        self.streak = 0
        self.max_streak = 0

        self._question_elapsed = 0
        self._reveal_remaining = 0
        self._results: Optional[AssessmentResults] = None

        self._total_timer = (
            Countdown(settings.total_time_limit, self._on_total_timeout, name="total timer")
            if settings.total_time_limit
            else None
        )
        self._question_timer = (
            Countdown(settings.question_time_limit, self._on_question_timeout, name="question timer")
            if settings.question_time_limit
            else None
        )

    # ==================== LIFECYCLE ====================

    def start(self) -> None:
        """Begin the session: ready → active, timers start."""
        self._require(SessionState.READY)
        self.state = SessionState.ACTIVE
        self.started_at = self.clock.now()
        for timer in self._timers():
            timer.start()
        logger.info(f"Session {self.session_id} started ({len(self.questions)} questions)")

    def pause(self) -> None:
        """Halt both countdowns: active → paused."""
        self._require(SessionState.ACTIVE)
        self.state = SessionState.PAUSED
        for timer in self._timers():
            timer.pause()
        logger.info(f"Session {self.session_id} paused")

    def resume(self) -> None:
        """Restart the countdowns where they stopped: paused → active."""
        self._require(SessionState.PAUSED)
        self.state = SessionState.ACTIVE
        if self._total_timer:
            self._total_timer.resume()
        if self._question_timer and not self.revealing:
            self._question_timer.resume()
        logger.info(f"Session {self.session_id} resumed")

    def complete(self) -> AssessmentResults:
        """Stop the timers and produce the final results.

        Idempotent: later calls return the same results object.
        """
        if self._results is not None:
            return self._results
        self._require(SessionState.ACTIVE, SessionState.PAUSED)

        for timer in self._timers():
            timer.cancel()
        self._reveal_remaining = 0
        self.completed_at = self.clock.now()

        self._results = self.aggregator.aggregate(
            session_id=self.session_id,
            questions=self.questions,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
        self.state = SessionState.COMPLETED
        logger.info(f"Session {self.session_id} completed")
        return self._results

    def cancel(self) -> None:
        """Abandon the session, discarding recorded answers.

        Call to_record() first if the partial state should be kept.
        """
        if self.state.is_terminal:
            raise SessionStateError(f"Cannot cancel a {self.state.value} session")
        for timer in self._timers():
            timer.cancel()
        for question in self.questions:
            question.clear_answer()
        self.correct = self.incorrect = self.skipped = self.streak = self.max_streak = 0
        self._reveal_remaining = 0
        self.state = SessionState.CANCELLED
        logger.info(f"Session {self.session_id} cancelled")

    # ==================== ANSWERS & NAVIGATION ====================

    def current_question(self) -> AssessmentQuestion:
        return self.questions[self.current_index]

    def submit_answer(self, raw: Any) -> AnswerOutcome:
        """Record an answer for the current question and move on.

        Blank answers count as skipped. Answers that cannot be read for the
        question's kind (e.g. a malformed pair map) are recorded as wrong.
        """
        self._require_interactive()
        question = self.current_question()
        time_spent = self._question_elapsed

        if raw is None or (isinstance(raw, str) and not raw.strip()):
            self._record_skip(question, time_spent)
            outcome = AnswerOutcome(question.question_id, False, None, self._revealed(question, False), time_spent)
            self._after_answer()
            return outcome

        try:
            payload = coerce_answer(raw, question.kind)
            is_correct = self.validator.is_correct(question.kind, payload, question.correct_answer)
        except AnswerDecodeError as e:
            logger.warning(f"Unreadable answer for {question.question_id}, marked wrong: {e}")
            payload = raw if is_payload(raw) else TextAnswer(str(raw))
            is_correct = False

        question.user_answer = payload
        question.is_correct = is_correct
        question.time_spent = time_spent

        if is_correct:
            self.correct += 1
            self.streak += 1
            self.max_streak = max(self.max_streak, self.streak)
        else:
            self.incorrect += 1
            self.streak = 0

        logger.debug(
            f"Question {self.current_index + 1}/{len(self.questions)} answered "
            f"{'correctly' if is_correct else 'incorrectly'} in {time_spent}s"
        )

        outcome = AnswerOutcome(
            question_id=question.question_id,
            is_correct=is_correct,
            user_answer=payload,
            correct_answer=self._revealed(question, is_correct),
            time_spent=time_spent,
        )
        self._after_answer()
        return outcome

    def skip(self) -> None:
        """Skip the current question (only if the settings allow it)."""
        self._require_interactive()
        if not self.settings.allow_skip:
            raise SkipNotAllowedError("Skipping is disabled for this assessment")
        self._record_skip(self.current_question(), self._question_elapsed)
        self._advance_or_complete()

    def advance_to(self, index: int) -> None:
        """Jump to any question; the per-question countdown restarts."""
        self._require_interactive()
        if not 0 <= index < len(self.questions):
            raise QuestionIndexError(
                f"Question index {index} out of range (0-{len(self.questions) - 1})"
            )
        self._go_to(index)

    def next_question(self) -> None:
        self.advance_to(self.current_index + 1)

    def previous_question(self) -> None:
        self.advance_to(self.current_index - 1)

    # ==================== TIME ====================

    def tick(self) -> None:
        """Advance the session clock by one second (no-op unless active)."""
        if self.state != SessionState.ACTIVE:
            return
        self.elapsed += 1

        if self._total_timer and self._total_timer.tick():
            return  # session completed

        if self.revealing:
            self._reveal_remaining -= 1
            if self._reveal_remaining <= 0:
                self._advance_or_complete()
            return

        self._question_elapsed += 1
        if self._question_timer:
            self._question_timer.tick()

    def run_for(self, seconds: int) -> None:
        """Tick repeatedly; stops early once the session is no longer active."""
        for _ in range(seconds):
            if self.state != SessionState.ACTIVE:
                break
            self.tick()

    @property
    def revealing(self) -> bool:
        return self._reveal_remaining > 0

    @property
    def total_time_remaining(self) -> Optional[int]:
        return self._total_timer.remaining if self._total_timer else None

    @property
    def question_time_remaining(self) -> Optional[int]:
        return self._question_timer.remaining if self._question_timer else None

    @property
    def results(self) -> Optional[AssessmentResults]:
        return self._results

    def progress(self) -> SessionProgress:
        return SessionProgress(
            state=self.state,
            current_index=self.current_index,
            total_questions=len(self.questions),
            answered=sum(1 for q in self.questions if q.is_answered),
            correct=self.correct,
            incorrect=self.incorrect,
            skipped=self.skipped,
            streak=self.streak,
            max_streak=self.max_streak,
            total_time_remaining=self.total_time_remaining,
            question_time_remaining=self.question_time_remaining,
            revealing=self.revealing,
        )

    def to_record(self) -> Dict[str, Any]:
        """Plain-data snapshot of the session for the caller to persist."""
        settings = asdict(self.settings)
        settings["kind"] = self.settings.kind.value

        questions = [question_to_record(q) for q in self.questions]

        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "settings": settings,
            "current_index": self.current_index,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "elapsed": self.elapsed,
            "questions": questions,
        }

    # ==================== PRIVATE METHODS ====================

    def _timers(self) -> List[Countdown]:
        return [t for t in (self._total_timer, self._question_timer) if t is not None]

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise SessionStateError(
                f"Session is {self.state.value}; this operation needs it to be {expected}"
            )

    def _require_interactive(self) -> None:
        self._require(SessionState.ACTIVE)
        if self.revealing:
            raise SessionStateError("Showing feedback; wait for the next question")

    def _revealed(self, question: AssessmentQuestion, is_correct: bool):
        if is_correct or self.settings.reveal_correct_answer:
            return question.correct_answer
        return None

    def _record_skip(self, question: AssessmentQuestion, time_spent: int) -> None:
        question.clear_answer(time_spent)
        self.skipped += 1
        self.streak = 0

    def _after_answer(self) -> None:
        if self.settings.instant_feedback and self.feedback_reveal_seconds > 0:
            self._reveal_remaining = self.feedback_reveal_seconds
            if self._question_timer:
                self._question_timer.pause()
        else:
            self._advance_or_complete()

    def _advance_or_complete(self) -> None:
        self._reveal_remaining = 0
        if self.current_index < len(self.questions) - 1:
            self._go_to(self.current_index + 1)
        else:
            self.complete()

    def _go_to(self, index: int) -> None:
        self.current_index = index
        self._question_elapsed = 0
        if self._question_timer:
            self._question_timer.reset()
            if self.state == SessionState.ACTIVE:
                self._question_timer.start()

    def _on_total_timeout(self) -> None:
        if self.state.is_terminal:
            return
        logger.info(f"Session {self.session_id} ran out of time")
        self.complete()

    def _on_question_timeout(self) -> None:
        if self.state != SessionState.ACTIVE or self.revealing:
            return
        question = self.current_question()
        logger.debug(f"Time is up for question {question.question_id}")
        if self.settings.allow_skip:
            self._record_skip(question, self._question_elapsed)
        elif not question.is_answered:
            question.time_spent = self._question_elapsed
            self.skipped += 1
            self.streak = 0
        self._advance_or_complete()
