"""Ordering of bibliography entries and of cites within a cluster."""
from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .models import Item
from .nodes import Section
from .normalization import sort_text
from .renderer import NO_DISAMBIGUATION, DisambiguationState, Renderer


@dataclass
class _Decorated:
    values: List[str]
    index: int
    item: Item


class Sorter:
    """Sort items by a section's ``<sort>`` keys.

    Empty keys sort last in either direction; remaining ties keep input order,
    so sorting an already sorted sequence leaves it unchanged.
    """

    def __init__(self, renderer: Renderer, section: Optional[Section]):
        self.renderer = renderer
        self.section = section
        self.keys = tuple(section.sort) if section is not None else ()
        self._number_sensitive = self.uses_citation_number or any(
            key.macro and renderer.macro_mentions(key.macro, "citation-number") for key in self.keys
        )
        # (item id, citation number) -> (item, state, key values)
        self._memo: Dict[Tuple[str, Optional[int]], Tuple[Item, DisambiguationState, List[str]]] = {}

    @property
    def uses_citation_number(self) -> bool:
        return any(key.variable == "citation-number" for key in self.keys)

    def key_values(
        self,
        item: Item,
        citation_number: Optional[int] = None,
        state: DisambiguationState = NO_DISAMBIGUATION,
    ) -> List[str]:
        memo_key = (str(item.id), citation_number if self._number_sensitive else None)
        cached = self._memo.get(memo_key)
        if cached is not None and cached[0] is item and cached[1] == state:
            return cached[2]
        values = []
        for key in self.keys:
            if key.macro:
                raw = self.renderer.render_sort_macro(item, self.section, key, state, citation_number)  # type: ignore[arg-type]
            else:
                raw = self.renderer.sort_value(item, key, self.section, citation_number)  # type: ignore[arg-type]
            values.append(sort_text(raw))
        self._memo[memo_key] = (item, state, values)
        return values

    def _compare(self, left: _Decorated, right: _Decorated) -> int:
        for key, a, b in zip(self.keys, left.values, right.values):
            if a == b:
                continue
            if not a:
                return 1
            if not b:
                return -1
            result = -1 if a < b else 1
            return -result if key.descending else result
        return left.index - right.index

    def argsort(
        self,
        items: Sequence[Item],
        numbers: Optional[Mapping[str, int]] = None,
        states: Optional[Mapping[str, DisambiguationState]] = None,
    ) -> List[int]:
        """Indexes of ``items`` in sorted order."""
        if not self.keys:
            return list(range(len(items)))
        numbers = numbers or {}
        states = states or {}
        decorated = [
            _Decorated(
                self.key_values(item, numbers.get(str(item.id)), states.get(str(item.id), NO_DISAMBIGUATION)),
                index,
                item,
            )
            for index, item in enumerate(items)
        ]
        decorated.sort(key=cmp_to_key(self._compare))
        return [entry.index for entry in decorated]

    def sort(
        self,
        items: Sequence[Item],
        numbers: Optional[Mapping[str, int]] = None,
        states: Optional[Mapping[str, DisambiguationState]] = None,
    ) -> List[Item]:
        return [items[index] for index in self.argsort(items, numbers, states)]


def citation_numbers(ordered_ids: Sequence[object]) -> Dict[str, int]:
    return {str(item_id): index + 1 for index, item_id in enumerate(ordered_ids)}


__all__ = ["Sorter", "citation_numbers"]
