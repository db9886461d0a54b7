"""Dict-backed lookup of bibliographic items."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping

from .cheater import apply_note_fields
from .csl_json import parse_items
from .errors import ItemNotFound
from .models import Item, ItemId

logger = logging.getLogger(__name__)


class ItemStore:
    """Items keyed by id; ``1`` and ``"1"`` name the same item."""

    def __init__(self, items: Iterable[Item] = ()):
        self._items: Dict[str, Item] = {}
        for item in items:
            self.add(item)

    @staticmethod
    def _key(item_id: ItemId) -> str:
        return str(item_id)

    def add(self, item: Item) -> None:
        key = self._key(item.id)
        if key in self._items:
            raise ValueError(f"Duplicate item id: {item.id}")
        self._items[key] = apply_note_fields(item)

    def retrieve(self, item_id: ItemId) -> Item:
        try:
            return self._items[self._key(item_id)]
        except KeyError:
            raise ItemNotFound(item_id) from None

    def __contains__(self, item_id: object) -> bool:
        return self._key(item_id) in self._items  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items.values())

    def ids(self) -> List[ItemId]:
        return [item.id for item in self._items.values()]

    @classmethod
    def from_csl_json(cls, records: List[Dict[str, Any]]) -> "ItemStore":
        store = cls(parse_items(records))
        logger.info("Loaded %d item(s)", len(store))
        return store

    @classmethod
    def from_items(cls, items: Iterable[Item | Mapping[str, Any]]) -> "ItemStore":
        """Build a store from parsed items, raw CSL-JSON records or a mix of both."""
        if isinstance(items, ItemStore):
            return items
        store = cls()
        for entry in items:
            store.add(entry if isinstance(entry, Item) else parse_items([dict(entry)])[0])
        logger.info("Loaded %d item(s)", len(store))
        return store

    @classmethod
    def from_json_file(cls, path: str | Path) -> "ItemStore":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            records = json.load(handle)
        if isinstance(records, dict):
            records = [records]
        return cls.from_csl_json(records)


__all__ = ["ItemStore"]
