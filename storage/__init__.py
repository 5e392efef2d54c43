"""Storage backends for Wordwise decks."""

from storage.json_store import DeckFormatError, JsonItemRepository, item_from_record, item_to_record

__all__ = ["JsonItemRepository", "DeckFormatError", "item_to_record", "item_from_record"]
