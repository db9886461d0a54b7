"""Render session: cluster registry, positions, disambiguation and output."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .bibliography import EMPTY_ENTRY, BibliographyAssembler
from .config import DEFAULT_NEAR_NOTE_DISTANCE
from .disambiguation import Disambiguator
from .errors import ItemNotFound
from .formats import Content, Span, join
from .item_store import ItemStore
from .locales import LocaleRegistry
from .models import BibliographyResult, CitationCluster, CiteItem, Item, ItemId, PositionState, RenderedCitation
from .positions import CitationTracker, ClusterRef
from .renderer import NO_DISAMBIGUATION, DisambiguationState, Renderer, year_suffix_letters
from .sorting import Sorter, citation_numbers
from .style import Style

logger = logging.getLogger(__name__)

COLLAPSE_MODES = ("citation-number", "year", "year-suffix", "year-suffix-ranged")

# A rendered cluster as reported back to the caller: (document index, text, citation id).
ClusterOutput = Tuple[int, str, str]


def missing_item_marker(item_id: ItemId) -> str:
    return f"[ItemNotFound: {item_id}]"


@dataclass
class _Cite:
    """One cite of a cluster ready for rendering."""

    cite: CiteItem
    position: PositionState
    item: Optional[Item]
    state: DisambiguationState = NO_DISAMBIGUATION
    number: Optional[int] = None

    @property
    def plain(self) -> bool:
        return not (self.cite.locator or self.cite.prefix or self.cite.suffix)

    @property
    def year(self) -> Optional[int]:
        issued = self.item.get("issued") if self.item is not None else None
        start = getattr(issued, "start", None)
        return start.year if start is not None else None


class CitationEngine:
    """One document-editing session against a fixed style and item set.

    Clusters may arrive out of order; each call returns every cluster whose
    rendered text changed, including earlier ones affected by disambiguation.
    """

    def __init__(
        self,
        style: Style,
        items,
        locale: Optional[str] = None,
        output_format: str = "text",
        near_note_distance: Optional[int] = None,
        registry: Optional[LocaleRegistry] = None,
    ):
        self.style = style
        self.items = ItemStore.from_items(items)
        self.locale = style.locale_for(locale, registry)
        self.renderer = Renderer(style, self.locale, output_format)
        if near_note_distance is None:
            near_note_distance = style.citation.int_option("near-note-distance", DEFAULT_NEAR_NOTE_DISTANCE)
        self.tracker = CitationTracker(near_note_distance)
        self.disambiguator = Disambiguator(self.renderer, self.items.retrieve)
        self.cite_sorter = Sorter(self.renderer, style.citation)
        self.assembler = BibliographyAssembler(self.renderer)

        self.collapse = style.citation.option("collapse")
        if self.collapse is not None and self.collapse not in COLLAPSE_MODES:
            logger.warning("Unknown collapse mode %r ignored", self.collapse)
            self.collapse = None
        # numbering is only tracked per cluster when citations can show it
        self._numbered = self.collapse == "citation-number" or self.renderer.uses_variable(
            "citation-number", style.citation
        )

        self._registered: List[ItemId] = []
        self._submitted: List[str] = []
        self._texts: Dict[str, str] = {}
        self._signatures: Dict[str, tuple] = {}
        self._numbers: Dict[str, int] = {}
        self._bibliography_signature: tuple = ()
        logger.info(
            "Started session: style=%r locale=%s format=%s near-note-distance=%d",
            style.title,
            self.locale.lang,
            self.renderer.output.name,
            near_note_distance,
        )

    # -- public -----------------------------------------------------------

    def update_items(self, ids: Iterable[ItemId]) -> List[ClusterOutput]:
        """Register items for the bibliography whether or not they are cited."""
        registered = []
        for item_id in ids:
            self.items.retrieve(item_id)
            if str(item_id) not in {str(known) for known in registered}:
                registered.append(item_id)
        self._registered = registered
        _, changed = self._refresh()
        return changed

    def process_citation_cluster(
        self,
        cluster: CitationCluster,
        citations_pre: Sequence[ClusterRef] = (),
        citations_post: Sequence[ClusterRef] = (),
    ) -> Tuple[bool, List[ClusterOutput]]:
        """Insert or replace ``cluster`` between its neighbours and render.

        Returns whether the bibliography may have changed and every cluster
        whose output changed, always including ``cluster`` itself.
        """
        if not cluster.citation_id:
            raise ValueError("Citation cluster needs a citation id")
        if cluster.citation_id not in self._submitted:
            self._submitted.append(cluster.citation_id)
        self._signatures.pop(cluster.citation_id, None)
        self.tracker.place(cluster, citations_pre, citations_post)
        return self._refresh(force=cluster.citation_id)

    def append_cluster(self, cluster: CitationCluster) -> Tuple[bool, List[ClusterOutput]]:
        """Add ``cluster`` after every cluster seen so far."""
        pre = [existing.citation_id for existing in self.tracker.clusters if existing.citation_id != cluster.citation_id]
        return self.process_citation_cluster(cluster, pre, [])

    def rendered_citations(self) -> List[RenderedCitation]:
        """Current text of every live cluster, in submission order."""
        return [
            RenderedCitation(index=index, text=self._texts[citation_id], citation_id=citation_id)
            for index, citation_id in enumerate(self._submitted)
        ]

    def make_bibliography(self) -> BibliographyResult:
        items = self._bibliography_items()
        numbers = self._numbers if self._numbered else self._citation_numbers([item.id for item in items])
        result = self.assembler.assemble(items, numbers, self.disambiguator.states())
        logger.info("Rendered bibliography with %d entr(ies)", len(result.entries))
        return result

    # -- session state ----------------------------------------------------

    def _bibliography_ids(self) -> List[ItemId]:
        ordered: Dict[str, ItemId] = {}
        for item_id in list(self.tracker.cited_ids()) + list(self._registered):
            if item_id in self.items:
                ordered.setdefault(str(item_id), item_id)
        return list(ordered.values())

    def _bibliography_items(self) -> List[Item]:
        return [self.items.retrieve(item_id) for item_id in self._bibliography_ids()]

    def _citation_numbers(self, ids: Sequence[ItemId]) -> Dict[str, int]:
        numbers = citation_numbers(ids)
        sorter = self.assembler.sorter
        if self.style.bibliography is not None and sorter.keys and not sorter.uses_citation_number:
            items = [self.items.retrieve(item_id) for item_id in ids]
            ordered = sorter.sort(items, numbers, self.disambiguator.states())
            numbers = citation_numbers([item.id for item in ordered])
        return numbers

    def _refresh(self, force: Optional[str] = None) -> Tuple[bool, List[ClusterOutput]]:
        live = {cluster.citation_id for cluster in self.tracker.clusters}
        for citation_id in [known for known in self._submitted if known not in live]:
            self._submitted.remove(citation_id)
            self._texts.pop(citation_id, None)
            self._signatures.pop(citation_id, None)

        ids = self._bibliography_ids()
        self.disambiguator.register(ids)
        self._numbers = self._citation_numbers(ids) if self._numbered else {}
        states = self.disambiguator.states()

        bibliography_signature = (tuple(str(item_id) for item_id in ids), states, self._numbers)
        bibchange = bibliography_signature != self._bibliography_signature
        self._bibliography_signature = bibliography_signature

        positions = self.tracker.positions()
        changed: List[ClusterOutput] = []
        for index, cluster in enumerate(self.tracker.clusters):
            cites = self._prepare(cluster, positions[cluster.citation_id])
            signature = (cluster.note_index, tuple((c.cite, c.position, c.state, c.number) for c in cites))
            if signature == self._signatures.get(cluster.citation_id) and cluster.citation_id != force:
                continue
            self._signatures[cluster.citation_id] = signature
            text = self._render_cluster(cites)
            if text != self._texts.get(cluster.citation_id) or cluster.citation_id == force:
                changed.append((index, text, cluster.citation_id))
            self._texts[cluster.citation_id] = text
        if changed:
            logger.debug("Re-rendered %d cluster(s)", len(changed))
        return bibchange, changed

    def _prepare(self, cluster: CitationCluster, positions: List[PositionState]) -> List[_Cite]:
        cites = []
        for cite, position in zip(cluster.cite_items, positions):
            try:
                item = self.items.retrieve(cite.id)
            except ItemNotFound as exc:
                logger.warning("%s (citation %s)", exc, cluster.citation_id)
                cites.append(_Cite(cite, position, None))
                continue
            key = str(item.id)
            cites.append(_Cite(cite, position, item, self.disambiguator.state(key), self._numbers.get(key)))
        return cites

    # -- rendering --------------------------------------------------------

    def _render_cluster(self, cites: List[_Cite]) -> str:
        cites = self._sorted(cites)
        layout = self.style.citation.layout
        if self.collapse == "citation-number":
            content = self._collapse_numbers(cites, layout.delimiter)
        elif self.collapse:
            content = self._collapse_years(cites, layout.delimiter)
        else:
            content = join([self._render_one(cite) for cite in cites], layout.delimiter)
        if content is None:
            return ""
        return self.renderer.serialize(self.renderer.apply_layout(content, layout))

    def _sorted(self, cites: List[_Cite]) -> List[_Cite]:
        if not self.cite_sorter.keys:
            return cites
        found = [cite for cite in cites if cite.item is not None]
        missing = [cite for cite in cites if cite.item is None]
        order = self.cite_sorter.argsort(
            [cite.item for cite in found],  # type: ignore[misc]
            self._numbers,
            self.disambiguator.states(),
        )
        return [found[index] for index in order] + missing

    def _render_one(self, cite: _Cite, suppress_author: bool = False) -> Content:
        if cite.item is None:
            return Span([missing_item_marker(cite.cite.id)])
        cite_item = replace(cite.cite, suppress_author=True) if suppress_author else cite.cite
        content = self.renderer.render_cite(cite.item, cite_item, cite.position, cite.state, cite.number)
        if content is None:
            logger.warning("Item %s has no printed form in citation", cite.item.id)
            return Span([EMPTY_ENTRY])
        return content

    def _collapse_numbers(self, cites: List[_Cite], delimiter: str) -> Content:
        """Runs of three or more consecutive numbers become ``first–last``."""
        runs: List[List[_Cite]] = []
        for cite in cites:
            previous = runs[-1][-1] if runs else None
            if (
                previous is not None
                and cite.plain
                and previous.plain
                and cite.number is not None
                and previous.number is not None
                and cite.number == previous.number + 1
            ):
                runs[-1].append(cite)
            else:
                runs.append([cite])

        range_delimiter = self.locale.term("citation-range-delimiter") or "–"
        pieces: List[Content] = []
        for run in runs:
            if len(run) >= 3:
                pieces.append(join([self._render_one(run[0]), self._render_one(run[-1])], range_delimiter))
            else:
                pieces.extend(self._render_one(cite) for cite in run)
        return join(pieces, delimiter)

    def _author_key(self, cite: _Cite) -> Optional[str]:
        if cite.item is None:
            return None
        author_only = replace(cite.cite, author_only=True, suppress_author=False, prefix=None, suffix=None)
        content = self.renderer.render_cite(cite.item, author_only, cite.position, cite.state, cite.number)
        return self.renderer.serialize(content) if content is not None else None

    def _collapse_years(self, cites: List[_Cite], delimiter: str) -> Content:
        """Group cites by author; later cites of a group omit the names."""
        options = self.style.citation
        cite_group_delimiter = options.option("cite-group-delimiter", ", ") or ", "
        after_collapse = options.option("after-collapse-delimiter", delimiter)
        suffix_delimiter = options.option("year-suffix-delimiter", cite_group_delimiter)

        groups: List[List[_Cite]] = []
        by_author: Dict[str, List[_Cite]] = {}
        for cite in cites:
            key = self._author_key(cite)
            if key and key in by_author:
                by_author[key].append(cite)
                continue
            group = [cite]
            groups.append(group)
            if key:
                by_author[key] = group

        rendered: List[Tuple[Content, bool]] = []
        for group in groups:
            members: List[Content] = [self._render_one(group[0])]
            previous = group[0]
            pending: List[str] = []
            for cite in group[1:]:
                if self.collapse != "year" and self._same_year(previous, cite):
                    pending.append(year_suffix_letters(cite.state.year_suffix))  # type: ignore[arg-type]
                else:
                    members = self._flush_suffixes(members, pending, suffix_delimiter)
                    pending = []
                    members.append(self._render_one(cite, suppress_author=True))
                previous = cite
            members = self._flush_suffixes(members, pending, suffix_delimiter)
            content = join(members[:1], "")
            for member in members[1:]:
                separator = suffix_delimiter if isinstance(member, _Suffixes) else cite_group_delimiter
                content = join([content, member.content if isinstance(member, _Suffixes) else member], separator)
            rendered.append((content, len(group) > 1))

        pieces: List[Content] = []
        for index, (content, collapsed) in enumerate(rendered):
            pieces.append(content)
            if index < len(rendered) - 1:
                pieces.append(Span([after_collapse if collapsed else delimiter]))
        return join(pieces)

    @staticmethod
    def _same_year(previous: _Cite, cite: _Cite) -> bool:
        return (
            previous.plain
            and cite.plain
            and previous.state.year_suffix is not None
            and cite.state.year_suffix is not None
            and previous.year is not None
            and previous.year == cite.year
        )

    def _flush_suffixes(self, members: List, pending: List[str], delimiter: str) -> List:
        if not pending:
            return members
        if self.collapse == "year-suffix-ranged":
            pending = _ranged_letters(pending, self.locale.term("year-range-delimiter") or "–")
        members.append(_Suffixes(Span([delimiter.join(pending)])))
        return members


@dataclass
class _Suffixes:
    """Year-suffix letters appended to the preceding cite of the same author and year."""

    content: Content


def _ranged_letters(letters: List[str], range_delimiter: str) -> List[str]:
    """``["b", "c", "d"]`` -> ``["b–d"]``; shorter runs are kept apart."""
    runs: List[List[str]] = []
    for letter in letters:
        if runs and len(letter) == 1 and len(runs[-1][-1]) == 1 and ord(letter) == ord(runs[-1][-1]) + 1:
            runs[-1].append(letter)
        else:
            runs.append([letter])
    result = []
    for run in runs:
        if len(run) >= 3:
            result.append(f"{run[0]}{range_delimiter}{run[-1]}")
        else:
            result.extend(run)
    return result


def cluster_from_dict(data: Dict[str, object], citation_id: Optional[str] = None) -> CitationCluster:
    """Build a cluster from ``{"citationID", "citationItems", "properties": {"noteIndex"}}``."""
    properties = data.get("properties") or {}
    cites = []
    for entry in data.get("citationItems") or []:  # type: ignore[union-attr]
        cites.append(
            CiteItem(
                id=entry["id"],
                locator=entry.get("locator"),
                label=entry.get("label") or "page",
                prefix=entry.get("prefix"),
                suffix=entry.get("suffix"),
                suppress_author=bool(entry.get("suppress-author")),
                author_only=bool(entry.get("author-only")),
            )
        )
    return CitationCluster(
        citation_id=str(data.get("citationID") or citation_id or ""),
        cite_items=cites,
        note_index=int(properties.get("noteIndex") or 0),  # type: ignore[union-attr]
    )


__all__ = ["COLLAPSE_MODES", "CitationEngine", "ClusterOutput", "cluster_from_dict", "missing_item_marker"]
