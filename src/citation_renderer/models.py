"""Data models for citation rendering workflows."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

ItemId = Union[str, int]


@dataclass(frozen=True)
class Name:
    """Person or institution name record."""

    family: Optional[str] = None
    given: Optional[str] = None
    dropping_particle: Optional[str] = None
    non_dropping_particle: Optional[str] = None
    suffix: Optional[str] = None
    comma_suffix: bool = False
    literal: Optional[str] = None

    @property
    def is_personal(self) -> bool:
        return self.literal is None and bool(self.family)

    def key(self) -> Tuple[str, ...]:
        """Return a comparable tuple used to detect identical names."""
        return (
            self.literal or "",
            self.non_dropping_particle or "",
            self.family or "",
            self.given or "",
            self.dropping_particle or "",
            self.suffix or "",
        )


@dataclass(frozen=True)
class DateParts:
    year: int
    month: Optional[int] = None
    day: Optional[int] = None

    @property
    def season(self) -> Optional[int]:
        if self.month and 13 <= self.month <= 16:
            return self.month - 12
        return None

    def sort_key(self) -> str:
        year = self.year + 10000 if self.year >= 0 else 10000 + self.year
        month = self.month if self.month and self.month <= 12 else 0
        return f"{year:05d}{month:02d}{(self.day or 0):02d}"


@dataclass(frozen=True)
class DateValue:
    """A date variable: explicit parts (optionally a range) or a literal."""

    parts: Tuple[DateParts, ...] = ()
    season: Optional[int] = None
    circa: bool = False
    literal: Optional[str] = None
    raw: Optional[str] = None
    open_end: bool = False

    @property
    def is_range(self) -> bool:
        return len(self.parts) > 1 or self.open_end

    @property
    def start(self) -> Optional[DateParts]:
        return self.parts[0] if self.parts else None

    @property
    def end(self) -> Optional[DateParts]:
        return self.parts[1] if len(self.parts) > 1 else None

    def is_empty(self) -> bool:
        return not self.parts and not self.literal

    def sort_key(self) -> str:
        if not self.parts:
            return ""
        key = self.parts[0].sort_key()
        if len(self.parts) > 1:
            key += "-" + self.parts[1].sort_key()
        return key


VariableValue = Union[str, List[Name], DateValue]


@dataclass
class Item:
    """A bibliographic record."""

    id: ItemId
    type: Optional[str] = None
    variables: Dict[str, Any] = field(default_factory=dict)
    raw_type: Optional[str] = None

    def get(self, name: str) -> Any:
        value = self.variables.get(name)
        if value in (None, "", []):
            return None
        if isinstance(value, DateValue) and value.is_empty():
            return None
        return value

    def has(self, name: str) -> bool:
        return self.get(name) is not None


@dataclass
class CiteItem:
    """A pinpoint reference to an item within a citation cluster."""

    id: ItemId
    locator: Optional[str] = None
    label: str = "page"
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    suppress_author: bool = False
    author_only: bool = False


@dataclass
class CitationCluster:
    """Cite-items appearing together at one point of a document."""

    citation_id: str
    cite_items: List[CiteItem] = field(default_factory=list)
    note_index: int = 0


class Position(str, Enum):
    FIRST = "first"
    IBID = "ibid"
    IBID_WITH_LOCATOR = "ibid-with-locator"
    NEAR_NOTE = "near-note"
    SUBSEQUENT = "subsequent"


@dataclass(frozen=True)
class PositionState:
    """Derived position of one cite relative to earlier clusters."""

    position: Position = Position.FIRST
    near_note: bool = False
    first_reference_note_number: Optional[int] = None

    def matches(self, name: str) -> bool:
        """Evaluate a ``position="..."`` test value."""
        if name == "first":
            return self.position == Position.FIRST
        if name == "subsequent":
            return self.position != Position.FIRST
        if name == "ibid":
            return self.position in (Position.IBID, Position.IBID_WITH_LOCATOR)
        if name == "ibid-with-locator":
            return self.position == Position.IBID_WITH_LOCATOR
        if name == "near-note":
            return self.near_note
        return False


@dataclass
class RenderedCitation:
    index: int
    text: str
    citation_id: str


@dataclass
class BibliographyEntry:
    id: ItemId
    text: str


@dataclass
class BibliographyResult:
    entries: List[BibliographyEntry] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def entry_ids(self) -> List[ItemId]:
        return [entry.id for entry in self.entries]


@dataclass
class CitationEntry:
    """A citation rendered by the workflow, simulated as a footnote."""

    index: int
    id: ItemId
    type: Optional[str]
    title: str
    citation: str


@dataclass
class RenderResult:
    """Container for one run of the render workflow."""

    style: str
    data: str
    locale: str
    item_count: int
    citations: List[CitationEntry] = field(default_factory=list)
    bibliography: Optional[BibliographyResult] = None
