"""Exception taxonomy for style loading and rendering."""
from __future__ import annotations

from typing import Any, Optional, Sequence


class CitationRendererError(Exception):
    """Base exception for project-level, domain-specific errors."""


class StyleParseError(CitationRendererError):
    """Malformed or schema-invalid style input.

    Raised before any rendering occurs; fatal to the session.
    """

    def __init__(self, message: str, element: Optional[str] = None):
        self.element = element
        if element:
            message = f"<{element}>: {message}"
        super().__init__(message)


class CyclicMacroReference(StyleParseError):
    """Raised when macros call each other in a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        super().__init__("cyclic macro reference: " + " -> ".join(self.cycle), element="macro")


class ItemNotFound(CitationRendererError):
    """A cite-item references an identifier the item store does not hold."""

    def __init__(self, item_id: Any):
        self.item_id = item_id
        super().__init__(item_id)

    def __str__(self) -> str:
        return f"Item not found: {self.item_id}"


class DateParseAmbiguous(CitationRendererError):
    """A raw date string does not resolve to a single confident date.

    ``best_effort`` holds the interpretation the parser settled on; it is
    always flagged as uncertain.
    """

    def __init__(self, raw: str, best_effort: Any, reason: str = "ambiguous date"):
        self.raw = raw
        self.best_effort = best_effort
        self.reason = reason
        super().__init__(f"{reason}: {raw!r}")


class NoItemsToRender(CitationRendererError):
    """The render workflow was left with an empty selection of items."""

    def __str__(self) -> str:
        return "No items to render."


__all__ = [
    "CitationRendererError",
    "StyleParseError",
    "CyclicMacroReference",
    "ItemNotFound",
    "DateParseAmbiguous",
    "NoItemsToRender",
]
