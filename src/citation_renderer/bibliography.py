"""Bibliography assembly: ordering, rendering and subsequent-author-substitute."""
from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Tuple

from .formats import Span
from .models import BibliographyEntry, BibliographyResult, Item, Name
from .normalization import same_author_block
from .renderer import NO_DISAMBIGUATION, DisambiguationState, Renderer
from .sorting import Sorter

logger = logging.getLogger(__name__)

EMPTY_ENTRY = "[CSL STYLE ERROR: reference with no printed form.]"

SUBSTITUTE_RULES = ("complete-all", "complete-each", "partial-each", "partial-first")

_META_OPTIONS = ("hanging-indent", "second-field-align", "line-spacing", "entry-spacing")


class BibliographyAssembler:
    """Order items by the bibliography sort keys and render each entry."""

    def __init__(self, renderer: Renderer):
        self.renderer = renderer
        self.section = renderer.style.bibliography
        self.sorter = Sorter(renderer, self.section)

    def order(
        self,
        items: Sequence[Item],
        numbers: Optional[Mapping[str, int]] = None,
        states: Optional[Mapping[str, DisambiguationState]] = None,
    ) -> List[Item]:
        return self.sorter.sort(items, numbers, states)

    def assemble(
        self,
        items: Sequence[Item],
        numbers: Optional[Mapping[str, int]] = None,
        states: Optional[Mapping[str, DisambiguationState]] = None,
    ) -> BibliographyResult:
        if self.section is None:
            logger.info("Style has no bibliography; nothing to assemble")
            return BibliographyResult(entries=[], meta={"bibliography": False})
        numbers = numbers or {}
        states = states or {}
        substitute = self.section.option("subsequent-author-substitute")
        rule = self.section.option("subsequent-author-substitute-rule", "complete-all") or "complete-all"
        if rule not in SUBSTITUTE_RULES:
            logger.warning("Unknown subsequent-author-substitute-rule %r, using complete-all", rule)
            rule = "complete-all"

        entries: List[BibliographyEntry] = []
        previous: Tuple[str, List[Name]] = ("", [])
        for item in self.order(items, numbers, states):
            key = str(item.id)
            state = states.get(key, NO_DISAMBIGUATION)
            replacement: Tuple[Optional[str], int] = (None, -1)
            if substitute is not None:
                current = self.renderer.author_block(item, state)
                replacement = self._substitution(rule, substitute, current, previous)
                previous = current
            content = self.renderer.render_bibliography_entry(
                item,
                state,
                numbers.get(key),
                author_substitute=replacement[0],
                author_substitute_count=replacement[1],
            )
            if content is None:
                logger.warning("Item %s has no printed form in the bibliography", item.id)
                content = Span([EMPTY_ENTRY])
            content = self.renderer.apply_layout(content, self.section.layout)
            text = self.renderer.output.entry(self.renderer.serialize(content))
            entries.append(BibliographyEntry(id=item.id, text=text))

        meta = {option: self.section.option(option) for option in _META_OPTIONS if self.section.option(option)}
        meta.update({"bibliography": True, "entry_count": len(entries), "format": self.renderer.output.name})
        return BibliographyResult(entries=entries, meta=meta)

    @staticmethod
    def _substitution(
        rule: str,
        substitute: str,
        current: Tuple[str, List[Name]],
        previous: Tuple[str, List[Name]],
    ) -> Tuple[Optional[str], int]:
        """Return the substitute text and how many leading names it replaces (-1: all)."""
        block, names = current
        previous_block, previous_names = previous
        if rule == "complete-all":
            return (substitute, -1) if same_author_block(block, previous_block) else (None, -1)
        if rule == "complete-each":
            if same_author_block(block, previous_block) and names:
                return substitute, len(names)
            return None, -1
        matching = 0
        for mine, theirs in zip(names, previous_names):
            if mine.key() != theirs.key():
                break
            matching += 1
        if rule == "partial-first":
            matching = min(matching, 1)
        return (substitute, matching) if matching else (None, -1)


__all__ = ["BibliographyAssembler", "EMPTY_ENTRY", "SUBSTITUTE_RULES"]
