"""Normalization helpers for sort keys and author comparisons."""
from __future__ import annotations

import re
import unicodedata

from .markup import strip_markup


def normalize_text(value: str | None) -> str:
    """Normalize text for case- and accent-insensitive comparison."""
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", value)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.lower()
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return text


def sort_text(value: str | None) -> str:
    """Sort form of a rendered or raw field value: markup dropped, then normalized."""
    if not value:
        return ""
    return normalize_text(strip_markup(value))


def same_author_block(left: str | None, right: str | None) -> bool:
    """True when two rendered author blocks print identically (ignoring spacing)."""
    if not left or not right:
        return False
    return re.sub(r"\s+", " ", left).strip() == re.sub(r"\s+", " ", right).strip()
