"""
Item repositories.

The scheduling and study-advice code only needs to fetch, list and save
learning items; anything providing those three methods will do.
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from core.dto.items import LearningItem
from core.errors import ItemNotFoundError

logger = logging.getLogger(__name__)


class ItemRepository(Protocol):
    """Storage interface for learning items."""

    def get(self, item_id: str) -> LearningItem:
        ...

    def list_items(self, folder_id: Optional[str] = None) -> List[LearningItem]:
        ...

    def save(self, item: LearningItem) -> None:
        ...


class InMemoryItemRepository:
    """Dictionary-backed repository, used by tests and one-off sessions."""

    def __init__(self, items: Optional[Iterable[LearningItem]] = None):
        self._items: Dict[str, LearningItem] = {}
        for item in items or []:
            self._items[item.item_id] = item

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

    def delete(self, item_id: str) -> None:
        if self._items.pop(item_id, None) is None:
            raise ItemNotFoundError(item_id)
        logger.debug(f"Deleted item {item_id}")

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items
