"""High-level orchestrator for the render workflow."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .config import DEFAULT_LOCALE, DEFAULT_OUTPUT_FORMAT, Settings, load_settings
from .engine import CitationEngine
from .errors import CitationRendererError, NoItemsToRender
from .item_store import ItemStore
from .locales import LocaleRegistry
from .models import BibliographyResult, CitationCluster, CitationEntry, CiteItem, ItemId, RenderResult
from .style import Style, load_style_file

logger = logging.getLogger(__name__)

RENDER_MODES = ("both", "citations", "bibliography")


class CitationRendererApp:
    """Coordinates style and data loading, rendering and result assembly."""

    def __init__(
        self,
        style: Style,
        items: ItemStore,
        style_path: str | Path = "",
        data_path: str | Path = "",
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        near_note_distance: Optional[int] = None,
        fallback_locale: str = DEFAULT_LOCALE,
    ):
        self.style = style
        self.items = items
        self.style_path = str(style_path)
        self.data_path = str(data_path)
        self.output_format = output_format
        self.near_note_distance = near_note_distance
        self.fallback_locale = fallback_locale
        self.registry = LocaleRegistry.with_builtins(fallback=fallback_locale)

    @classmethod
    def from_paths(
        cls,
        style_path: str | Path,
        data_path: str | Path,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        near_note_distance: Optional[int] = None,
        fallback_locale: str = DEFAULT_LOCALE,
    ) -> "CitationRendererApp":
        style = load_style_file(style_path)
        items = ItemStore.from_json_file(data_path)
        return cls(style, items, style_path, data_path, output_format, near_note_distance, fallback_locale)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CitationRendererApp":
        settings = settings or load_settings()
        return cls.from_paths(
            settings.style_path,
            settings.data_path,
            output_format=settings.output_format,
            near_note_distance=settings.near_note_distance,
            fallback_locale=settings.locale,
        )

    @property
    def locale(self) -> str:
        return self.style.default_locale or self.fallback_locale

    def _session(self) -> CitationEngine:
        return CitationEngine(
            self.style,
            self.items,
            locale=self.locale,
            output_format=self.output_format,
            near_note_distance=self.near_note_distance,
            registry=self.registry,
        )

    def select_ids(self, ids: Optional[Iterable[ItemId]] = None) -> List[ItemId]:
        """Requested ids that exist, or every item when no filter is given."""
        if ids is None:
            selected = self.items.ids()
        else:
            selected = []
            for item_id in ids:
                if item_id in self.items:
                    selected.append(self.items.retrieve(item_id).id)
                else:
                    logger.warning("Item %s not found in %s; skipped", item_id, self.data_path or "data")
        if not selected:
            raise NoItemsToRender("No items to render")
        return selected

    def render_bibliography(self, ids: List[ItemId]) -> BibliographyResult:
        engine = self._session()
        engine.update_items(ids)
        return engine.make_bibliography()

    def render_citations(self, ids: List[ItemId]) -> List[CitationEntry]:
        """Cite every item once, each in its own footnote."""
        engine = self._session()
        entries: List[CitationEntry] = []
        previous: List[str] = []
        for index, item_id in enumerate(ids):
            item = self.items.retrieve(item_id)
            cluster = CitationCluster(f"CITATION-{index + 1}", [CiteItem(id=item.id)], note_index=index + 1)
            try:
                _, changed = engine.process_citation_cluster(cluster, previous, [])
                text = next(text for _, text, citation_id in changed if citation_id == cluster.citation_id)
                previous.append(cluster.citation_id)
            except (CitationRendererError, ValueError) as exc:
                logger.error("Failed to render citation for %s: %s", item.id, exc)
                text = f"[ERROR: {exc}]"
            entries.append(
                CitationEntry(
                    index=index + 1,
                    id=item.id,
                    type=item.raw_type or item.type,
                    title=str(item.get("title") or ""),
                    citation=text,
                )
            )
        # later cites can disambiguate earlier ones retroactively
        final = {rendered.citation_id: rendered.text for rendered in engine.rendered_citations()}
        for entry in entries:
            citation_id = f"CITATION-{entry.index}"
            if citation_id in final:
                entry.citation = final[citation_id]
        return entries

    def render(self, mode: str = "both", ids: Optional[Iterable[ItemId]] = None) -> RenderResult:
        if mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode: {mode}")
        selected = self.select_ids(ids)
        logger.info("Rendering %d item(s) with %s (mode=%s)", len(selected), self.style_path or "style", mode)

        result = RenderResult(
            style=self.style_path,
            data=self.data_path,
            locale=self.locale,
            item_count=len(selected),
        )
        if mode in ("both", "bibliography"):
            result.bibliography = self.render_bibliography(selected)
        if mode in ("both", "citations"):
            result.citations = self.render_citations(selected)
        return result


__all__ = ["CitationRendererApp", "RENDER_MODES"]
