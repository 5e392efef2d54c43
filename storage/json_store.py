"""
JSON deck storage for Wordwise.

A deck is a single JSON file holding the learning items and the history of
completed assessments::

    {"version": 1, "items": [...], "history": [...]}

Datetimes are stored as ISO 8601 strings, answer payloads as versioned
envelopes (see core.answer_payload).
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import Config
from core.answer_payload import question_from_record, question_to_record
from core.dto.assessment import AssessmentResults
from core.dto.items import Difficulty, LearningItem
from core.errors import ItemNotFoundError, WordwiseError
from core.results_aggregator import ResultsAggregator

logger = logging.getLogger(__name__)

DECK_FORMAT_VERSION = 1


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def item_to_record(item: LearningItem) -> Dict[str, Any]:
    """Convert a learning item to a JSON-safe dict."""
    return {
        "item_id": item.item_id,
        "prompt": item.prompt,
        "answer": item.answer,
        "folder_id": item.folder_id,
        "difficulty": item.difficulty.value,
        "note": item.note,
        "tags": list(item.tags),
        "correct_count": item.correct_count,
        "incorrect_count": item.incorrect_count,
        "last_reviewed": _dt_to_str(item.last_reviewed),
        "next_review": _dt_to_str(item.next_review),
        "ease_factor": item.ease_factor,
        "interval": item.interval,
        "repetition": item.repetition,
        "quality": item.quality,
    }


def item_from_record(record: Dict[str, Any]) -> LearningItem:
    """Rebuild a learning item from item_to_record() output."""
    item = LearningItem(
        item_id=record["item_id"],
        prompt=record["prompt"],
        answer=record["answer"],
        folder_id=record.get("folder_id", "general"),
        difficulty=Difficulty(record.get("difficulty", "medium")),
        note=record.get("note"),
        tags=list(record.get("tags") or []),
        correct_count=record.get("correct_count", 0),
        incorrect_count=record.get("incorrect_count", 0),
        last_reviewed=_dt_from_str(record.get("last_reviewed")),
        ease_factor=record.get("ease_factor", 2.5),
        interval=record.get("interval", 1),
        repetition=record.get("repetition", 0),
        quality=record.get("quality"),
    )
    next_review = _dt_from_str(record.get("next_review"))
    if next_review is not None:
        item.next_review = next_review
    return item


class DeckFormatError(WordwiseError):
    """Raised when a deck file cannot be read."""

    pass


class JsonItemRepository:
    """Item repository backed by one JSON deck file.

    Args:
        path: Deck file (Config.DECK_PATH if not provided)
        autosave: Write the file after every change; otherwise call flush()
    """

    def __init__(self, path: Optional[Path] = None, autosave: bool = True):
        self.path = Path(path) if path else Config.DECK_PATH
        self.autosave = autosave
        self._items: Dict[str, LearningItem] = {}
        self._history: List[Dict[str, Any]] = []
        self.load()

    def load(self):
        """(Re)load the deck file. A missing file is an empty deck."""
        self._items = {}
        self._history = []
        if not self.path.exists():
            logger.debug(f"No deck at {self.path}, starting empty")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            for record in data.get("items", []):
                item = item_from_record(record)
                self._items[item.item_id] = item
            self._history = list(data.get("history", []))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise DeckFormatError(f"Cannot read deck {self.path}: {e}") from e

        logger.info(f"Loaded {len(self._items)} items from {self.path}")

    def flush(self):
        """Write the deck file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": DECK_FORMAT_VERSION,
            "items": [item_to_record(item) for item in self._items.values()],
            "history": self._history,
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp_path.replace(self.path)

    # ==================== ITEMS ====================

    def get(self, item_id: str) -> LearningItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None

    def list_items(self, folder_id: Optional[str] = None) -> List[LearningItem]:
        items = list(self._items.values())
        if folder_id is not None:
            items = [item for item in items if item.folder_id == folder_id]
        return items

    def save(self, item: LearningItem) -> None:
        self._items[item.item_id] = item
        if self.autosave:
            self.flush()

    def delete(self, item_id: str) -> None:
        if self._items.pop(item_id, None) is None:
            raise ItemNotFoundError(item_id)
        if self.autosave:
            self.flush()

    def next_item_id(self) -> str:
        """Smallest unused numeric id, as a string."""
        numeric = [int(i) for i in self._items if i.isdigit()]
        return str(max(numeric, default=0) + 1)

    def __len__(self) -> int:
        return len(self._items)

    # ==================== HISTORY ====================

    def add_results(self, results: AssessmentResults) -> None:
        """Append a completed assessment to the deck history."""
        self._history.append(
            {
                "session_id": results.session_id,
                "started_at": results.started_at,
                "completed_at": results.completed_at,
                "default_question_time": results.default_question_time,
                "questions": [question_to_record(q) for q in results.questions],
            }
        )
        if self.autosave:
            self.flush()

    def history(self) -> List[AssessmentResults]:
        """Past assessments, oldest first, re-aggregated from their questions."""
        results = []
        for record in self._history:
            # Unanswered questions are timed at the limit the session ran with
            aggregator = ResultsAggregator(
                default_question_time=record.get("default_question_time", Config.DEFAULT_QUESTION_TIME)
            )
            questions = [question_from_record(q) for q in record.get("questions", [])]
            results.append(
                aggregator.aggregate(
                    record["session_id"], questions, record["started_at"], record["completed_at"]
                )
            )
        return results
