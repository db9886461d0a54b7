"""Citation and bibliography rendering from CSL styles and CSL-JSON items."""

from .app import CitationRendererApp
from .engine import CitationEngine, cluster_from_dict
from .errors import (
    CitationRendererError,
    CyclicMacroReference,
    DateParseAmbiguous,
    ItemNotFound,
    NoItemsToRender,
    StyleParseError,
)
from .item_store import ItemStore
from .models import BibliographyResult, CitationCluster, CiteItem, Item, Name, RenderResult
from .style import Style, load_style, load_style_file

__all__ = [
    "CitationRendererApp",
    "CitationEngine",
    "cluster_from_dict",
    "CitationRendererError",
    "CyclicMacroReference",
    "DateParseAmbiguous",
    "ItemNotFound",
    "NoItemsToRender",
    "StyleParseError",
    "ItemStore",
    "BibliographyResult",
    "CitationCluster",
    "CiteItem",
    "Item",
    "Name",
    "RenderResult",
    "Style",
    "load_style",
    "load_style_file",
]
