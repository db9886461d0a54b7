"""Cluster registry in document order and cite position classification."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .models import CitationCluster, CiteItem, ItemId, Position, PositionState

logger = logging.getLogger(__name__)

# A neighbouring cluster given either by id or as an ``(id, note_index)`` pair.
ClusterRef = Union[str, Tuple[str, int], List]


def _split_ref(ref: ClusterRef) -> Tuple[str, Optional[int]]:
    if isinstance(ref, str):
        return ref, None
    citation_id, note_index = ref[0], ref[1] if len(ref) > 1 else None
    return str(citation_id), None if note_index is None else int(note_index)


@dataclass
class _Entry:
    cluster: CitationCluster
    sequence: int


class CitationTracker:
    """Keep clusters in document order and classify every cite."""

    def __init__(self, near_note_distance: int = 5):
        self.near_note_distance = near_note_distance
        self._entries: List[_Entry] = []
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, citation_id: str) -> bool:
        return any(entry.cluster.citation_id == citation_id for entry in self._entries)

    @property
    def clusters(self) -> List[CitationCluster]:
        return [entry.cluster for entry in self._entries]

    def get(self, citation_id: str) -> CitationCluster:
        for entry in self._entries:
            if entry.cluster.citation_id == citation_id:
                return entry.cluster
        raise KeyError(citation_id)

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def append(self, cluster: CitationCluster) -> None:
        self.place(cluster, [entry.cluster.citation_id for entry in self._entries], [])

    def place(
        self,
        cluster: CitationCluster,
        citations_pre: Sequence[ClusterRef] = (),
        citations_post: Sequence[ClusterRef] = (),
    ) -> None:
        """Insert or move ``cluster`` between its neighbours.

        The neighbour lists describe the whole document: known clusters missing
        from both are dropped, and note indexes given with a neighbour replace
        the stored ones.
        """
        existing = {entry.cluster.citation_id: entry for entry in self._entries}
        existing.pop(cluster.citation_id, None)
        ordered: List[_Entry] = []
        for ref in list(citations_pre) + [cluster] + list(citations_post):
            if isinstance(ref, CitationCluster):
                ordered.append(_Entry(ref, self._next_sequence()))
                continue
            citation_id, note_index = _split_ref(ref)
            entry = existing.pop(citation_id, None)
            if entry is None:
                logger.warning("Unknown neighbouring citation %s ignored", citation_id)
                continue
            if note_index is not None and note_index != entry.cluster.note_index:
                logger.debug("Note index of %s corrected to %s", citation_id, note_index)
                entry.cluster.note_index = note_index
            entry.sequence = self._next_sequence()
            ordered.append(entry)
        for dropped in existing:
            logger.info("Citation %s no longer in the document; removed", dropped)
        self._entries = self._document_order(ordered)

    @staticmethod
    def _document_order(entries: Iterable[_Entry]) -> List[_Entry]:
        # In-text clusters (note 0) keep their given order; notes sort by index.
        entries = list(entries)
        if all(entry.cluster.note_index == 0 for entry in entries):
            return entries
        last_note = 0
        keyed = []
        for entry in entries:
            note = entry.cluster.note_index or last_note
            last_note = note
            keyed.append((note, entry.sequence, entry))
        return [entry for _, _, entry in sorted(keyed, key=lambda triple: (triple[0], triple[1]))]

    def remove(self, citation_id: str) -> None:
        self._entries = [entry for entry in self._entries if entry.cluster.citation_id != citation_id]

    def cited_ids(self) -> List[ItemId]:
        """Item ids in order of first citation."""
        seen: Dict[str, ItemId] = {}
        for entry in self._entries:
            for cite in entry.cluster.cite_items:
                seen.setdefault(str(cite.id), cite.id)
        return list(seen.values())

    def positions(self) -> Dict[str, List[PositionState]]:
        """Position of every cite, keyed by citation id, in cite order."""
        first_note: Dict[str, int] = {}
        last_note: Dict[str, int] = {}
        result: Dict[str, List[PositionState]] = {}
        previous: Optional[CitationCluster] = None
        for entry in self._entries:
            cluster = entry.cluster
            states: List[PositionState] = []
            for index, cite in enumerate(cluster.cite_items):
                key = str(cite.id)
                if key not in first_note:
                    states.append(PositionState(Position.FIRST))
                else:
                    anchor = self._ibid_anchor(cluster, index, previous)
                    position = self._classify(cite, anchor)
                    near = self._near(cluster.note_index, last_note[key])
                    if position == Position.SUBSEQUENT and near:
                        position = Position.NEAR_NOTE
                    first_reference = first_note[key] or None
                    states.append(PositionState(position, near, first_reference))
                first_note.setdefault(key, cluster.note_index)
                last_note[key] = cluster.note_index
            result[cluster.citation_id] = states
            previous = cluster
        return result

    @staticmethod
    def _ibid_anchor(cluster: CitationCluster, index: int, previous: Optional[CitationCluster]) -> Optional[CiteItem]:
        cite = cluster.cite_items[index]
        if index > 0:
            before = cluster.cite_items[index - 1]
            return before if str(before.id) == str(cite.id) else None
        if previous is None or not previous.cite_items:
            return None
        if all(str(other.id) == str(cite.id) for other in previous.cite_items):
            return previous.cite_items[-1]
        return None

    @staticmethod
    def _classify(cite: CiteItem, anchor: Optional[CiteItem]) -> Position:
        if anchor is None:
            return Position.SUBSEQUENT
        if not anchor.locator and not cite.locator:
            return Position.IBID
        if not cite.locator:
            return Position.SUBSEQUENT
        if anchor.locator == cite.locator and (anchor.label or "page") == (cite.label or "page"):
            return Position.IBID
        return Position.IBID_WITH_LOCATOR

    def _near(self, note_index: int, previous_note: int) -> bool:
        if self.near_note_distance <= 0 or not note_index or not previous_note:
            return False
        return 0 <= note_index - previous_note <= self.near_note_distance


__all__ = ["CitationTracker", "ClusterRef"]
