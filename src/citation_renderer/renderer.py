"""Evaluate a parsed style against one item plus its citation context."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .dates import DateFormatter
from .formats import Content, OutputFormat, Span, apply_formatting, get_output_format, join, plain_text, text_span
from .locales import Locale
from .markup import rich_text
from .models import CiteItem, DateValue, Item, Name, Position, PositionState
from .names import NameFormatter, NameOptions, names_sort_key
from .nodes import (
    PLAIN,
    ChooseNode,
    DateNode,
    Formatting,
    GroupNode,
    LabelNode,
    Layout,
    NamesNode,
    Node,
    NumberNode,
    Section,
    SortKey,
    TextNode,
)
from .numbers import first_page, format_number, format_page_range, is_numeric, is_plural, numbers_in
from .style import Style
from .vocabulary import NAME_VARIABLES, NUMBER_VARIABLES

logger = logging.getLogger(__name__)

# Text variables whose values are URLs or identifiers and never carry markup.
_VERBATIM_VARIABLES = frozenset({"URL", "DOI", "ISBN", "ISSN", "PMID", "PMCID"})
_PAGE_VARIABLES = frozenset({"page", "page-first"})
_SHORT_FORMS = {"title": "title-short", "container-title": "container-title-short"}


def year_suffix_letters(index: int) -> str:
    """0 -> ``a``, 25 -> ``z``, 26 -> ``aa``."""
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("a") + remainder) + letters
    return letters


@dataclass(frozen=True)
class DisambiguationState:
    """How far one item's cites have been expanded to tell them apart."""

    add_names: int = 0
    given_level: int = 0
    primary_only: bool = False
    max_given_level: int = 2
    name_levels: Dict[tuple, int] = field(default_factory=dict)
    disambiguate: bool = False
    year_suffix: Optional[int] = None

    def level_for(self, name: Name, index: int) -> int:
        level = self.given_level if (index == 0 or not self.primary_only) else 0
        level = max(level, self.name_levels.get(name.key(), 0))
        return min(level, self.max_given_level)


NO_DISAMBIGUATION = DisambiguationState()


@dataclass
class RenderContext:
    """Mutable state for rendering one cite or one bibliography entry."""

    item: Item
    section: Section
    mode: str = "citation"
    cite: Optional[CiteItem] = None
    position: Optional[PositionState] = None
    citation_number: Optional[int] = None
    state: DisambiguationState = NO_DISAMBIGUATION
    sort_key: Optional[SortKey] = None
    suppressed: Set[str] = field(default_factory=set)
    rendered_variables: List[str] = field(default_factory=list)
    calls: int = 0
    hits: int = 0
    year_suffix_done: bool = False
    suppress_author: bool = False
    capture_author: bool = False
    author: Content = None
    names_seen: int = 0
    names_parents: List[NamesNode] = field(default_factory=list)
    author_names: List[Name] = field(default_factory=list)
    author_substitute: Optional[str] = None
    author_substitute_count: int = -1

    @property
    def disambiguate(self) -> bool:
        return self.state.disambiguate

    @property
    def year_suffix(self) -> Optional[str]:
        if self.state.year_suffix is None:
            return None
        return year_suffix_letters(self.state.year_suffix)

    @property
    def subsequent(self) -> bool:
        return self.position is not None and self.position.position != Position.FIRST

    def variable_value(self, name: str) -> Any:
        if name in self.suppressed:
            return None
        if name == "locator":
            return self.cite.locator if self.cite is not None and self.cite.locator else None
        if name == "first-reference-note-number":
            if self.position is None or self.position.first_reference_note_number is None:
                return None
            return str(self.position.first_reference_note_number)
        if name == "citation-number":
            return str(self.citation_number) if self.citation_number is not None else None
        if name == "year-suffix":
            return self.year_suffix
        if name == "page-first":
            page = self.item.get("page-first") or self.item.get("page")
            return first_page(page) if page else None
        return self.item.get(name)

    def has_variable(self, name: str) -> bool:
        return self.variable_value(name) is not None


class Renderer:
    """Turn style nodes into :class:`~citation_renderer.formats.Span` trees."""

    def __init__(self, style: Style, locale: Locale, output_format: str = "text"):
        self.style = style
        self.locale = locale
        self.output: OutputFormat = get_output_format(output_format, locale)
        self.lang = locale.lang
        self.dates = DateFormatter(locale, self.lang)
        self.page_range_delimiter = locale.term("page-range-delimiter") or "–"
        self._explicit_year_suffix = self._calls_year_suffix()

    def _mentions(self, variable: str, nodes: Sequence[Node], seen: Set[str]) -> bool:
        """Whether ``nodes`` render or test ``variable``, following macro calls."""
        for node in nodes:
            if isinstance(node, (TextNode, NumberNode, LabelNode)) and node.variable == variable:
                return True
            if isinstance(node, TextNode) and node.macro and node.macro not in seen:
                seen.add(node.macro)
                if self._mentions(variable, self.style.macro(node.macro).children, seen):
                    return True
            if isinstance(node, GroupNode) and self._mentions(variable, node.children, seen):
                return True
            if isinstance(node, ChooseNode):
                for branch in node.branches:
                    tests = branch.condition.tests if branch.condition is not None else ()
                    if any(getattr(test, "variable", None) == variable for test in tests):
                        return True
                    if self._mentions(variable, branch.children, seen):
                        return True
            if isinstance(node, NamesNode) and self._mentions(variable, node.substitute, seen):
                return True
        return False

    def _calls_year_suffix(self) -> bool:
        seen: Set[str] = set()
        if self._mentions("year-suffix", self.style.citation.layout.children, seen):
            return True
        return any(self._mentions("year-suffix", macro.children, seen) for macro in self.style.macros.values())

    def uses_variable(self, variable: str, section: Optional[Section]) -> bool:
        """Whether ``section`` can render, test or sort on ``variable``."""
        if section is None:
            return False
        seen: Set[str] = set()
        for key in section.sort:
            if key.variable == variable:
                return True
            if key.macro and self._mentions(variable, self.style.macro(key.macro).children, seen):
                return True
        return self._mentions(variable, section.layout.children, seen)

    def macro_mentions(self, name: str, variable: str) -> bool:
        return self._mentions(variable, self.style.macro(name).children, {name})

    # -- entry points -----------------------------------------------------

    def render_entry(self, ctx: RenderContext) -> Content:
        """Render the layout children of ``ctx.section`` (no layout affixes)."""
        layout = ctx.section.layout
        content = self._render_children(layout.children, ctx)
        if ctx.capture_author:
            return ctx.author
        return content

    def render_cite(
        self,
        item: Item,
        cite: Optional[CiteItem] = None,
        position: Optional[PositionState] = None,
        state: DisambiguationState = NO_DISAMBIGUATION,
        citation_number: Optional[int] = None,
        with_affixes: bool = True,
    ) -> Content:
        ctx = RenderContext(
            item=item,
            section=self.style.citation,
            cite=cite,
            position=position or PositionState(),
            state=state,
            citation_number=citation_number,
            suppress_author=bool(cite and cite.suppress_author),
            capture_author=bool(cite and cite.author_only),
        )
        content = self.render_entry(ctx)
        if with_affixes and cite is not None:
            content = self._cite_affixes(content, cite)
        return content

    def render_bibliography_entry(
        self,
        item: Item,
        state: DisambiguationState = NO_DISAMBIGUATION,
        citation_number: Optional[int] = None,
        author_substitute: Optional[str] = None,
        author_substitute_count: int = -1,
    ) -> Content:
        """Render one entry; ``author_substitute`` replaces the leading author block.

        ``author_substitute_count`` is the number of leading names to replace,
        or -1 for the whole block.
        """
        section = self.style.bibliography
        if section is None:
            return None
        ctx = RenderContext(
            item=item,
            section=section,
            mode="bibliography",
            state=state,
            citation_number=citation_number,
            author_substitute=author_substitute,
            author_substitute_count=author_substitute_count,
        )
        return self.render_entry(ctx)

    def render_sort_macro(
        self,
        item: Item,
        section: Section,
        key: SortKey,
        state: DisambiguationState = NO_DISAMBIGUATION,
        citation_number: Optional[int] = None,
    ) -> str:
        ctx = RenderContext(item=item, section=section, mode="sort", state=state, sort_key=key, citation_number=citation_number)
        macro = self.style.macro(key.macro)  # type: ignore[arg-type]
        return plain_text(self._render_children(macro.children, ctx))

    def author_block(
        self,
        item: Item,
        state: DisambiguationState = NO_DISAMBIGUATION,
    ) -> Tuple[str, List[Name]]:
        """Serialized first names element of a bibliography entry and the names it shows."""
        section = self.style.bibliography
        if section is None:
            return "", []
        ctx = RenderContext(item=item, section=section, mode="bibliography", state=state, capture_author=True)
        content = self.render_entry(ctx)
        return self.serialize(content), list(ctx.author_names)

    def apply_layout(self, content: Content, layout: Layout) -> Content:
        return apply_formatting(content, layout.formatting, self.lang)

    def serialize(self, content: Content) -> str:
        return self.output.serialize(content)

    def _cite_affixes(self, content: Content, cite: CiteItem) -> Content:
        if content is None:
            return None
        pieces: List[Content] = []
        if cite.prefix:
            pieces.append(rich_text(cite.prefix))
        pieces.append(content)
        if cite.suffix:
            pieces.append(rich_text(cite.suffix))
        return join(pieces)

    # -- node dispatch ----------------------------------------------------

    def _render_children(self, nodes: Sequence[Node], ctx: RenderContext, delimiter: str = "") -> Content:
        return join([self._render_node(node, ctx) for node in nodes], delimiter)

    def _render_node(self, node: Node, ctx: RenderContext) -> Content:
        handler = getattr(self, f"_render_{node.kind.replace('-', '_')}")
        return handler(node, ctx)

    def _format(self, content: Content, node: Node) -> Content:
        return apply_formatting(content, node.formatting, self.lang)

    def _render_text(self, node: TextNode, ctx: RenderContext) -> Content:
        if node.macro:
            macro = self.style.macro(node.macro)
            return self._format(self._render_children(macro.children, ctx), node)
        if node.term:
            value = self.locale.term(node.term, node.form, node.plural)
            return self._format(text_span(value), node)
        if node.value is not None:
            return self._format(text_span(node.value), node)
        return self._format(self._text_variable(node, ctx), node)

    def _text_variable(self, node: TextNode, ctx: RenderContext) -> Content:
        variable = node.variable or ""
        ctx.calls += 1
        value = None
        if node.form == "short" and variable in _SHORT_FORMS:
            value = ctx.variable_value(_SHORT_FORMS[variable])
        if value is None:
            value = ctx.variable_value(variable)
        if value is None:
            return None
        if variable == "year-suffix":
            ctx.year_suffix_done = True
        if isinstance(value, DateValue):
            text = value.literal or value.raw or ""
        elif isinstance(value, list):
            text = ", ".join(name.literal or name.family or "" for name in value)
        else:
            text = str(value)
        if variable in _PAGE_VARIABLES or (variable == "locator" and self._locator_is_page(ctx)):
            text = format_page_range(text, self.style.page_range_format, self.page_range_delimiter)
        if not text:
            return None
        ctx.hits += 1
        ctx.rendered_variables.append(variable)
        if variable in _VERBATIM_VARIABLES:
            return Span([text])
        return rich_text(text)

    @staticmethod
    def _locator_is_page(ctx: RenderContext) -> bool:
        return ctx.cite is not None and (ctx.cite.label or "page") == "page"

    def _render_number(self, node: NumberNode, ctx: RenderContext) -> Content:
        ctx.calls += 1
        value = ctx.variable_value(node.variable)
        if value is None:
            return None
        text = str(value)
        if ctx.mode == "sort" and is_numeric(text):
            numbers = numbers_in(text)
            text = f"{numbers[0]:08d}" if numbers else text
        elif is_numeric(text):
            text = format_number(text, node.form, self.locale)
            if node.variable == "locator" and self._locator_is_page(ctx) or node.variable in _PAGE_VARIABLES:
                text = format_page_range(text, self.style.page_range_format, self.page_range_delimiter)
        ctx.hits += 1
        ctx.rendered_variables.append(node.variable)
        return self._format(rich_text(text), node)

    def _render_label(self, node: LabelNode, ctx: RenderContext) -> Content:
        variable = node.variable
        if not variable:
            return None
        if variable == "locator":
            if ctx.cite is None or not ctx.cite.locator or "locator" in ctx.suppressed:
                return None
            term_name = (ctx.cite.label or "page").replace(" ", "-")
            value: Any = ctx.cite.locator
        else:
            value = ctx.variable_value(variable)
            if value is None:
                return None
            term_name = variable
        plural = self._label_plural(node.plural, variable, value)
        term = self.locale.term(term_name, node.form, plural)
        return self._format(text_span(term), node)

    @staticmethod
    def _label_plural(rule: str, variable: str, value: Any) -> bool:
        if rule == "always":
            return True
        if rule == "never":
            return False
        if isinstance(value, list):
            return len(value) > 1
        text = str(value)
        if variable in ("number-of-pages", "number-of-volumes"):
            numbers = numbers_in(text)
            return bool(numbers) and numbers[0] > 1
        return is_plural(text)

    def _render_date(self, node: DateNode, ctx: RenderContext) -> Content:
        ctx.calls += 1
        value = ctx.variable_value(node.variable)
        if not isinstance(value, DateValue):
            return None
        if ctx.mode == "sort":
            rendered: Content = text_span(self._date_sort_text(node, value))
        else:
            year_suffix = None
            if ctx.year_suffix and not ctx.year_suffix_done and not self._explicit_year_suffix and node.variable == "issued":
                year_suffix = ctx.year_suffix
            rendered = self.dates.render(node, value, year_suffix)
            if rendered is not None and year_suffix:
                ctx.year_suffix_done = True
        if rendered is None:
            return None
        ctx.hits += 1
        ctx.rendered_variables.append(node.variable)
        return self._format(rendered, node)

    @staticmethod
    def _date_sort_text(node: DateNode, value: DateValue) -> str:
        key = value.sort_key()
        if not key:
            return value.literal or ""
        names = {part.name for part in node.parts} if node.parts and not node.form else {"year", "month", "day"}
        if "day" not in names:
            key = key[:7] + "00" + key[9:] if len(key) >= 9 else key
        if "month" not in names:
            key = key[:5] + "00" + key[7:] if len(key) >= 7 else key
        return key

    def _render_group(self, node: GroupNode, ctx: RenderContext) -> Content:
        calls, hits = ctx.calls, ctx.hits
        content = self._render_children(node.children, ctx, node.delimiter)
        if content is None:
            return None
        if ctx.calls > calls and ctx.hits == hits:
            return None
        return self._format(content, node)

    def _render_choose(self, node: ChooseNode, ctx: RenderContext) -> Content:
        for branch in node.branches:
            if branch.condition is None or branch.condition.matches(ctx):
                return self._render_children(branch.children, ctx)
        return None

    # -- names ------------------------------------------------------------

    def _name_options(self, node: NamesNode, ctx: RenderContext) -> NameOptions:
        attributes: Dict[str, str] = dict(ctx.section.options)
        if "name-delimiter" in attributes:
            attributes["delimiter"] = attributes["name-delimiter"]
        if node.name is not None:
            attributes.update(node.name.option_map())
        attributes["demote-non-dropping-particle"] = self.style.demote_non_dropping_particle
        attributes["initialize-with-hyphen"] = "true" if self.style.initialize_with_hyphen else "false"
        options = NameOptions.from_attributes(attributes)
        key = ctx.sort_key
        if ctx.mode == "sort":
            options = replace(options, name_as_sort_order="all")
            if key is not None and key.names_min is not None:
                options = replace(options, et_al_min=key.names_min)
            if key is not None and key.names_use_first is not None:
                options = replace(options, et_al_use_first=key.names_use_first)
            if key is not None and key.names_use_last is not None:
                options = replace(options, et_al_use_last=key.names_use_last)
        return options

    def _inherit_from_parent(self, node: NamesNode, ctx: RenderContext) -> NamesNode:
        if node.name is not None or not ctx.names_parents:
            return node
        parent = ctx.names_parents[-1]
        return replace(
            node,
            name=parent.name,
            et_al=node.et_al or parent.et_al,
            label=node.label or parent.label,
            label_first=parent.label_first if node.label is None else node.label_first,
        )

    def _render_names(self, node: NamesNode, ctx: RenderContext) -> Content:
        node = self._inherit_from_parent(node, ctx)
        lists = []
        for variable in node.variables:
            ctx.calls += 1
            value = ctx.variable_value(variable)
            if value:
                lists.append((variable, value))

        first = not ctx.names_seen and not ctx.names_parents
        content: Content = None
        if lists:
            if first:
                ctx.author_names = list(lists[0][1])
            substitute_whole = first and ctx.author_substitute is not None and ctx.author_substitute_count < 0
            if substitute_whole:
                content = text_span(ctx.author_substitute)
            else:
                content = self._format_name_lists(node, lists, ctx, substitute=first)
            ctx.hits += 1
            ctx.rendered_variables.extend(variable for variable, _ in lists)
            if substitute_whole and content is None:
                ctx.names_seen += 1
                return None
        elif node.substitute:
            content = self._substitute(node, ctx)

        if content is None or ctx.names_parents:
            return self._format(content, node)
        ctx.names_seen += 1
        content = self._format(content, node)
        if ctx.names_seen == 1:
            if ctx.capture_author:
                ctx.author = content
            elif ctx.suppress_author:
                return None
        return content

    def _substitute(self, node: NamesNode, ctx: RenderContext) -> Content:
        ctx.names_parents.append(node)
        try:
            for child in node.substitute:
                before = len(ctx.rendered_variables)
                calls, hits = ctx.calls, ctx.hits
                content = self._render_node(child, ctx)
                if content is not None:
                    ctx.suppressed.update(ctx.rendered_variables[before:])
                    return content
                ctx.calls, ctx.hits = calls, hits
            return None
        finally:
            ctx.names_parents.pop()

    def _format_name_lists(self, node: NamesNode, lists: List[Any], ctx: RenderContext, substitute: bool = False) -> Content:
        options = self._name_options(node, ctx)
        name_node = node.name
        part_formatting: Dict[str, Formatting] = {}
        name_formatting = PLAIN
        if name_node is not None:
            part_formatting = dict(name_node.name_parts)
            name_formatting = name_node.formatting
        formatter = NameFormatter(options, self.locale, self.lang, part_formatting, name_formatting)

        variables = [variable for variable, _ in lists]
        if "editor" in variables and "translator" in variables:
            by_variable = dict(lists)
            editors, translators = by_variable["editor"], by_variable["translator"]
            if [name.key() for name in editors] == [name.key() for name in translators]:
                lists = [("editortranslator", editors)] + [
                    entry for entry in lists if entry[0] not in ("editor", "translator")
                ]

        if options.form == "count":
            total = sum(formatter.count(names, ctx.subsequent, ctx.state.add_names) for _, names in lists)
            return text_span(str(total)) if total else None

        et_al_term = node.et_al.term if node.et_al is not None else "et-al"
        et_al = text_span(self.locale.term(et_al_term))
        if et_al is not None and node.et_al is not None:
            et_al = apply_formatting(et_al, node.et_al.formatting, self.lang)

        list_affixes = PLAIN
        if name_node is not None:
            list_affixes = Formatting(prefix=name_node.formatting.prefix, suffix=name_node.formatting.suffix)

        rendered: List[Content] = []
        for index, (variable, names) in enumerate(lists):
            levels = [ctx.state.level_for(name, position) for position, name in enumerate(names)]
            substituted = ctx.author_substitute_count if substitute and index == 0 and ctx.author_substitute is not None else 0
            content = formatter.format_list(
                names,
                et_al,
                ctx.subsequent,
                ctx.state.add_names,
                levels,
                substituted=max(substituted, 0),
                substitute_text=ctx.author_substitute or "",
            )
            content = apply_formatting(content, list_affixes, self.lang)
            if content is None:
                continue
            if node.label is not None and ctx.mode != "sort":
                plural = self._label_plural(node.label.plural, variable, names)
                label = apply_formatting(
                    text_span(self.locale.term(variable, node.label.form, plural)),
                    node.label.formatting,
                    self.lang,
                )
                content = join([label, content] if node.label_first else [content, label])
            rendered.append(content)
        delimiter = node.delimiter
        if delimiter is None:
            delimiter = ctx.section.option("names-delimiter", "") or ""
        return join(rendered, delimiter)

    def sort_value(self, item: Item, key: SortKey, section: Section, citation_number: Optional[int] = None) -> str:
        """Comparable string for a variable sort key."""
        variable = key.variable or ""
        if variable == "citation-number":
            return f"{citation_number or 0:08d}"
        value = item.get(variable)
        if value is None:
            return ""
        if variable in NAME_VARIABLES:
            return names_sort_key(value, self.style.demote_non_dropping_particle)
        if isinstance(value, DateValue):
            return value.sort_key() or (value.literal or "")
        if variable in NUMBER_VARIABLES and is_numeric(str(value)):
            numbers = numbers_in(str(value))
            return f"{numbers[0]:08d}" if numbers else str(value)
        return plain_text(rich_text(str(value)))


__all__ = [
    "DisambiguationState",
    "NO_DISAMBIGUATION",
    "RenderContext",
    "Renderer",
    "year_suffix_letters",
]
