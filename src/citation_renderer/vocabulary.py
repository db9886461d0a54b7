"""Item type and variable vocabularies."""
from __future__ import annotations

from typing import Optional


ITEM_TYPES = frozenset(
    {
        "article",
        "article-journal",
        "article-magazine",
        "article-newspaper",
        "bill",
        "book",
        "broadcast",
        "chapter",
        "classic",
        "collection",
        "dataset",
        "document",
        "entry",
        "entry-dictionary",
        "entry-encyclopedia",
        "event",
        "figure",
        "graphic",
        "hearing",
        "interview",
        "legal_case",
        "legislation",
        "manuscript",
        "map",
        "motion_picture",
        "musical_score",
        "pamphlet",
        "paper-conference",
        "patent",
        "performance",
        "periodical",
        "personal_communication",
        "post",
        "post-weblog",
        "regulation",
        "report",
        "review",
        "review-book",
        "software",
        "song",
        "speech",
        "standard",
        "thesis",
        "treaty",
        "webpage",
    }
)


# Spellings found in exports from other reference managers.
_TYPE_ALIASES = {
    "journal-article": "article-journal",
    "journalarticle": "article-journal",
    "book-chapter": "chapter",
    "booksection": "chapter",
    "proceedings-article": "paper-conference",
    "conferencepaper": "paper-conference",
    "posted-content": "article",
    "web-page": "webpage",
    "legal-case": "legal_case",
    "case": "legal_case",
    "statute": "legislation",
}


NAME_VARIABLES = frozenset(
    {
        "author",
        "chair",
        "collection-editor",
        "compiler",
        "composer",
        "container-author",
        "contributor",
        "curator",
        "director",
        "editor",
        "editorial-director",
        "executive-producer",
        "guest",
        "host",
        "illustrator",
        "interviewer",
        "narrator",
        "organizer",
        "original-author",
        "performer",
        "producer",
        "recipient",
        "reviewed-author",
        "script-writer",
        "series-creator",
        "translator",
    }
)

DATE_VARIABLES = frozenset(
    {
        "accessed",
        "available-date",
        "event-date",
        "issued",
        "original-date",
        "submitted",
    }
)

NUMBER_VARIABLES = frozenset(
    {
        "chapter-number",
        "citation-number",
        "collection-number",
        "edition",
        "first-reference-note-number",
        "issue",
        "locator",
        "number",
        "number-of-pages",
        "number-of-volumes",
        "page",
        "page-first",
        "part-number",
        "printing-number",
        "section",
        "supplement-number",
        "version",
        "volume",
    }
)

STANDARD_VARIABLES = frozenset(
    {
        "abstract",
        "annote",
        "archive",
        "archive_collection",
        "archive_location",
        "archive-place",
        "authority",
        "call-number",
        "citation-key",
        "citation-label",
        "collection-title",
        "container-title",
        "container-title-short",
        "dimensions",
        "division",
        "DOI",
        "event",
        "event-title",
        "event-place",
        "genre",
        "ISBN",
        "ISSN",
        "jurisdiction",
        "keyword",
        "language",
        "license",
        "medium",
        "note",
        "original-publisher",
        "original-publisher-place",
        "original-title",
        "part-title",
        "PMCID",
        "PMID",
        "publisher",
        "publisher-place",
        "references",
        "reviewed-genre",
        "reviewed-title",
        "scale",
        "source",
        "status",
        "title",
        "title-short",
        "URL",
        "volume-title",
        "year-suffix",
    }
)

# Variables the engine supplies per cite rather than per item.
CITE_VARIABLES = frozenset({"locator", "first-reference-note-number", "citation-number", "year-suffix"})

ALL_VARIABLES = NAME_VARIABLES | DATE_VARIABLES | NUMBER_VARIABLES | STANDARD_VARIABLES

LOCATOR_TYPES = frozenset(
    {
        "act",
        "appendix",
        "article-locator",
        "book",
        "canon",
        "chapter",
        "column",
        "elocation",
        "equation",
        "figure",
        "folio",
        "issue",
        "line",
        "note",
        "opus",
        "page",
        "paragraph",
        "part",
        "rule",
        "scene",
        "section",
        "sub-verbo",
        "supplement",
        "table",
        "timestamp",
        "title-locator",
        "verse",
        "volume",
    }
)


def normalize_type(value: Optional[str]) -> Optional[str]:
    """Return the vocabulary key for ``value`` or ``None`` when untyped."""
    if not value:
        return None
    key = value.strip()
    if key in ITEM_TYPES:
        return key
    lowered = key.lower()
    if lowered in ITEM_TYPES:
        return lowered
    mapped = _TYPE_ALIASES.get(lowered.replace("_", "-")) or _TYPE_ALIASES.get(lowered)
    return mapped


def is_known_type(value: str) -> bool:
    return value in ITEM_TYPES


def variable_kind(name: str) -> str:
    """Classify a variable as ``name``, ``date``, ``number`` or ``standard``."""
    if name in NAME_VARIABLES:
        return "name"
    if name in DATE_VARIABLES:
        return "date"
    if name in NUMBER_VARIABLES:
        return "number"
    return "standard"
