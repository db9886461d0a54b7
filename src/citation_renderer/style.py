"""Parse CSL style XML into an immutable node tree."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple
from xml.etree import ElementTree

from .conditions import CONDITION_ATTRIBUTES, build_condition
from .errors import CyclicMacroReference, StyleParseError
from .locales import Locale, LocaleRegistry, REGION_MAP, builtin_registry
from .names import INHERITABLE_NAME_OPTIONS
from .nodes import (
    Branch,
    ChooseNode,
    DateNode,
    DatePartNode,
    EtAlNode,
    Formatting,
    GroupNode,
    LabelNode,
    Layout,
    Macro,
    NameNode,
    NamesNode,
    Node,
    NumberNode,
    Section,
    SortKey,
    TextNode,
)
from .vocabulary import DATE_VARIABLES, NAME_VARIABLES

logger = logging.getLogger(__name__)

CSL_NAMESPACE = "http://purl.org/net/xbiblio/csl"

FORMATTING_ATTRIBUTES = frozenset(
    {
        "prefix",
        "suffix",
        "font-style",
        "font-variant",
        "font-weight",
        "text-decoration",
        "vertical-align",
        "text-case",
        "strip-periods",
        "quotes",
        "display",
    }
)

NAME_ATTRIBUTES = frozenset(
    {
        "and",
        "delimiter",
        "delimiter-precedes-et-al",
        "delimiter-precedes-last",
        "et-al-min",
        "et-al-use-first",
        "et-al-use-last",
        "et-al-subsequent-min",
        "et-al-subsequent-use-first",
        "form",
        "initialize",
        "initialize-with",
        "name-as-sort-order",
        "sort-separator",
    }
)

CITATION_OPTIONS = frozenset(
    {
        "disambiguate-add-names",
        "disambiguate-add-givenname",
        "givenname-disambiguation-rule",
        "disambiguate-add-year-suffix",
        "near-note-distance",
        "collapse",
        "cite-group-delimiter",
        "after-collapse-delimiter",
        "year-suffix-delimiter",
    }
)

BIBLIOGRAPHY_OPTIONS = frozenset(
    {
        "subsequent-author-substitute",
        "subsequent-author-substitute-rule",
        "hanging-indent",
        "second-field-align",
        "line-spacing",
        "entry-spacing",
    }
)

STYLE_OPTIONS = frozenset(
    {
        "class",
        "version",
        "default-locale",
        "page-range-format",
        "demote-non-dropping-particle",
        "initialize-with-hyphen",
    }
)

ALLOWED_ATTRIBUTES: Dict[str, frozenset] = {
    "style": STYLE_OPTIONS | INHERITABLE_NAME_OPTIONS,
    "citation": CITATION_OPTIONS | INHERITABLE_NAME_OPTIONS,
    "bibliography": BIBLIOGRAPHY_OPTIONS | INHERITABLE_NAME_OPTIONS,
    "macro": frozenset({"name"}),
    "layout": FORMATTING_ATTRIBUTES | {"delimiter"},
    "sort": frozenset(),
    "key": frozenset({"variable", "macro", "sort", "names-min", "names-use-first", "names-use-last"}),
    "text": FORMATTING_ATTRIBUTES | {"variable", "macro", "term", "value", "form", "plural"},
    "number": FORMATTING_ATTRIBUTES | {"variable", "form"},
    "label": FORMATTING_ATTRIBUTES | {"variable", "form", "plural"},
    "names": FORMATTING_ATTRIBUTES | {"variable", "delimiter"},
    "name": FORMATTING_ATTRIBUTES | NAME_ATTRIBUTES,
    "name-part": FORMATTING_ATTRIBUTES | {"name"},
    "et-al": FORMATTING_ATTRIBUTES | {"term"},
    "substitute": frozenset(),
    "date": FORMATTING_ATTRIBUTES | {"variable", "form", "date-parts", "delimiter"},
    "date-part": FORMATTING_ATTRIBUTES | {"name", "form", "range-delimiter"},
    "group": FORMATTING_ATTRIBUTES | {"delimiter"},
    "choose": frozenset(),
    "if": frozenset(CONDITION_ATTRIBUTES) | {"match"},
    "else-if": frozenset(CONDITION_ATTRIBUTES) | {"match"},
    "else": frozenset(),
}

RENDERING_ELEMENTS = ("text", "number", "label", "names", "date", "group", "choose")

_TEXT_SOURCES = ("variable", "macro", "term", "value")
_DATE_PARTS_VALUES = ("year-month-day", "year-month", "year")


def _tag(element: ElementTree.Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _local_attributes(element: ElementTree.Element) -> Dict[str, str]:
    """Attributes without a namespace, e.g. drop ``xml:lang``."""
    return {key: value for key, value in element.attrib.items() if not key.startswith("{")}


def _xml_lang(element: ElementTree.Element) -> Optional[str]:
    return element.attrib.get("{http://www.w3.org/XML/1998/namespace}lang") or element.attrib.get("lang")


def _children(element: ElementTree.Element) -> List[ElementTree.Element]:
    return [child for child in element if isinstance(child.tag, str)]


@dataclass(frozen=True)
class Style:
    """A parsed style: macros, sections, options and locale overrides."""

    citation: Section
    macros: Dict[str, Macro] = field(default_factory=dict)
    bibliography: Optional[Section] = None
    locales: Tuple[Locale, ...] = ()
    options: Dict[str, str] = field(default_factory=dict)
    title: Optional[str] = None

    @property
    def style_class(self) -> str:
        return self.options.get("class", "in-text")

    @property
    def is_note_style(self) -> bool:
        return self.style_class == "note"

    @property
    def default_locale(self) -> Optional[str]:
        return self.options.get("default-locale")

    @property
    def page_range_format(self) -> Optional[str]:
        return self.options.get("page-range-format")

    @property
    def demote_non_dropping_particle(self) -> str:
        return self.options.get("demote-non-dropping-particle", "display-and-sort")

    @property
    def initialize_with_hyphen(self) -> bool:
        return self.options.get("initialize-with-hyphen", "true") == "true"

    def macro(self, name: str) -> Macro:
        return self.macros[name]

    def locale_for(self, lang: Optional[str] = None, registry: Optional[LocaleRegistry] = None) -> Locale:
        """Resolve ``lang`` (or the style default) and merge the style's own locale blocks."""
        lang = lang or self.default_locale
        locale = (registry or builtin_registry()).resolve(lang)
        base = locale.lang.split("-")[0]
        overrides = [loc for loc in self.locales if not loc.lang]
        overrides += [loc for loc in self.locales if loc.lang and loc.lang == base]
        overrides += [loc for loc in self.locales if loc.lang and loc.lang != base and loc.lang == locale.lang]
        for override in overrides:
            locale = locale.merged(override.copy(locale.lang))
        return locale


class StyleParser:
    """Build a :class:`Style` from an ElementTree, validating as it goes."""

    def __init__(self, root: ElementTree.Element):
        self.root = root
        self.inheritable: Dict[str, str] = {}

    def parse(self) -> Style:
        if _tag(self.root) != "style":
            raise StyleParseError(f"root element must be <style>, found <{_tag(self.root)}>")
        style_attributes = self._attributes(self.root)
        self.inheritable = {key: value for key, value in style_attributes.items() if key in INHERITABLE_NAME_OPTIONS}

        macros: Dict[str, Macro] = {}
        citation: Optional[Section] = None
        bibliography: Optional[Section] = None
        locales: List[Locale] = []
        title: Optional[str] = None
        for child in _children(self.root):
            tag = _tag(child)
            if tag == "info":
                title = self._title(child)
            elif tag == "locale":
                locales.append(parse_locale_element(child))
            elif tag == "macro":
                macro = self._parse_macro(child)
                if macro.name in macros:
                    raise StyleParseError(f"duplicate macro {macro.name!r}", "macro")
                macros[macro.name] = macro
            elif tag == "citation":
                citation = self._parse_section(child)
            elif tag == "bibliography":
                bibliography = self._parse_section(child)
            else:
                raise StyleParseError(f"unexpected element <{tag}>", "style")
        if citation is None:
            raise StyleParseError("style has no <citation> element", "style")

        options = {key: value for key, value in style_attributes.items() if key in STYLE_OPTIONS}
        options.update(self.inheritable)
        style = Style(
            citation=citation,
            macros=macros,
            bibliography=bibliography,
            locales=tuple(locales),
            options=options,
            title=title,
        )
        check_macro_graph(style)
        return style

    @staticmethod
    def _title(info: ElementTree.Element) -> Optional[str]:
        for child in _children(info):
            if _tag(child) == "title":
                return (child.text or "").strip() or None
        return None

    def _attributes(self, element: ElementTree.Element) -> Dict[str, str]:
        tag = _tag(element)
        attributes = _local_attributes(element)
        allowed = ALLOWED_ATTRIBUTES.get(tag)
        if allowed is None:
            raise StyleParseError(f"unknown element <{tag}>", tag)
        unknown = sorted(set(attributes) - allowed)
        if unknown:
            raise StyleParseError(f"unknown attribute(s) {', '.join(unknown)}", tag)
        return attributes

    @staticmethod
    def _formatting(attributes: Dict[str, str]) -> Formatting:
        return Formatting(
            prefix=attributes.get("prefix", ""),
            suffix=attributes.get("suffix", ""),
            font_style=attributes.get("font-style"),
            font_variant=attributes.get("font-variant"),
            font_weight=attributes.get("font-weight"),
            text_decoration=attributes.get("text-decoration"),
            vertical_align=attributes.get("vertical-align"),
            text_case=attributes.get("text-case"),
            strip_periods=attributes.get("strip-periods") == "true",
            quotes=attributes.get("quotes") == "true",
            display=attributes.get("display"),
        )

    def _parse_macro(self, element: ElementTree.Element) -> Macro:
        attributes = self._attributes(element)
        name = attributes.get("name")
        if not name:
            raise StyleParseError("macro without a name", "macro")
        return Macro(name=name, children=self._parse_children(element))

    def _parse_section(self, element: ElementTree.Element) -> Section:
        tag = _tag(element)
        attributes = self._attributes(element)
        options = dict(self.inheritable)
        options.update(attributes)
        layout: Optional[Layout] = None
        sort: Tuple[SortKey, ...] = ()
        for child in _children(element):
            child_tag = _tag(child)
            if child_tag == "layout":
                layout_attributes = self._attributes(child)
                layout = Layout(
                    children=self._parse_children(child),
                    formatting=self._formatting(layout_attributes),
                    delimiter=layout_attributes.get("delimiter", ""),
                    lang=_xml_lang(child),
                )
            elif child_tag == "sort":
                self._attributes(child)
                sort = tuple(self._parse_key(key) for key in _children(child))
            else:
                raise StyleParseError(f"unexpected element <{child_tag}>", tag)
        if layout is None:
            raise StyleParseError("missing <layout>", tag)
        return Section(layout=layout, sort=sort, options=options)

    def _parse_key(self, element: ElementTree.Element) -> SortKey:
        if _tag(element) != "key":
            raise StyleParseError(f"unexpected element <{_tag(element)}>", "sort")
        attributes = self._attributes(element)
        if ("variable" in attributes) == ("macro" in attributes):
            raise StyleParseError("sort key needs exactly one of variable or macro", "key")

        def number(name: str) -> Optional[int]:
            value = attributes.get(name)
            return int(value) if value is not None else None

        use_last = attributes.get("names-use-last")
        return SortKey(
            variable=attributes.get("variable"),
            macro=attributes.get("macro"),
            descending=attributes.get("sort", "ascending") == "descending",
            names_min=number("names-min"),
            names_use_first=number("names-use-first"),
            names_use_last=None if use_last is None else use_last == "true",
        )

    def _parse_children(self, element: ElementTree.Element) -> Tuple[Node, ...]:
        return tuple(self._parse_node(child) for child in _children(element))

    def _parse_node(self, element: ElementTree.Element) -> Node:
        tag = _tag(element)
        if tag not in RENDERING_ELEMENTS:
            raise StyleParseError(f"unexpected element <{tag}>", tag)
        attributes = self._attributes(element)
        return getattr(self, f"_parse_{tag}")(element, attributes)

    def _parse_text(self, element: ElementTree.Element, attributes: Dict[str, str]) -> TextNode:
        sources = [name for name in _TEXT_SOURCES if name in attributes]
        if len(sources) != 1:
            raise StyleParseError("needs exactly one of variable, macro, term or value", "text")
        return TextNode(
            formatting=self._formatting(attributes),
            variable=attributes.get("variable"),
            macro=attributes.get("macro"),
            term=attributes.get("term"),
            value=attributes.get("value"),
            form=attributes.get("form", "long"),
            plural=attributes.get("plural") == "true",
        )

    def _parse_number(self, element: ElementTree.Element, attributes: Dict[str, str]) -> NumberNode:
        if not attributes.get("variable"):
            raise StyleParseError("missing variable", "number")
        return NumberNode(
            formatting=self._formatting(attributes),
            variable=attributes["variable"],
            form=attributes.get("form", "numeric"),
        )

    def _parse_label(self, element: ElementTree.Element, attributes: Dict[str, str]) -> LabelNode:
        return LabelNode(
            formatting=self._formatting(attributes),
            variable=attributes.get("variable"),
            form=attributes.get("form", "long"),
            plural=attributes.get("plural", "contextual"),
        )

    def _parse_names(self, element: ElementTree.Element, attributes: Dict[str, str]) -> NamesNode:
        variables = tuple(attributes.get("variable", "").split())
        for variable in variables:
            if variable not in NAME_VARIABLES:
                raise StyleParseError(f"{variable!r} is not a name variable", "names")
        name: Optional[NameNode] = None
        et_al: Optional[EtAlNode] = None
        label: Optional[LabelNode] = None
        label_first = False
        substitute: Tuple[Node, ...] = ()
        for child in _children(element):
            tag = _tag(child)
            child_attributes = self._attributes(child)
            if tag == "name":
                name = self._parse_name(child, child_attributes)
            elif tag == "et-al":
                et_al = EtAlNode(formatting=self._formatting(child_attributes), term=child_attributes.get("term", "et-al"))
            elif tag == "label":
                label = self._parse_label(child, child_attributes)
                label_first = name is None
            elif tag == "substitute":
                substitute = self._parse_children(child)
            else:
                raise StyleParseError(f"unexpected element <{tag}>", "names")
        return NamesNode(
            formatting=self._formatting(attributes),
            variables=variables,
            name=name,
            et_al=et_al,
            label=label,
            label_first=label_first,
            substitute=substitute,
            delimiter=attributes.get("delimiter"),
        )

    def _parse_name(self, element: ElementTree.Element, attributes: Dict[str, str]) -> NameNode:
        parts = []
        for child in _children(element):
            if _tag(child) != "name-part":
                raise StyleParseError(f"unexpected element <{_tag(child)}>", "name")
            part_attributes = self._attributes(child)
            part_name = part_attributes.get("name")
            if part_name not in ("given", "family"):
                raise StyleParseError(f"unknown name-part {part_name!r}", "name-part")
            parts.append((part_name, self._formatting(part_attributes)))
        options = tuple(sorted((key, value) for key, value in attributes.items() if key in NAME_ATTRIBUTES))
        return NameNode(formatting=self._formatting(attributes), options=options, name_parts=tuple(parts))

    def _parse_date(self, element: ElementTree.Element, attributes: Dict[str, str]) -> DateNode:
        variable = attributes.get("variable", "")
        if variable not in DATE_VARIABLES:
            raise StyleParseError(f"{variable!r} is not a date variable", "date")
        form = attributes.get("form")
        if form not in (None, "text", "numeric"):
            raise StyleParseError(f"unknown date form {form!r}", "date")
        date_parts = attributes.get("date-parts", "year-month-day")
        if date_parts not in _DATE_PARTS_VALUES:
            raise StyleParseError(f"unknown date-parts {date_parts!r}", "date")
        parts = tuple(self._parse_date_part(child) for child in _children(element))
        return DateNode(
            formatting=self._formatting(attributes),
            variable=variable,
            form=form,
            date_parts=date_parts,
            parts=parts,
            delimiter=attributes.get("delimiter", ""),
        )

    def _parse_date_part(self, element: ElementTree.Element) -> DatePartNode:
        if _tag(element) != "date-part":
            raise StyleParseError(f"unexpected element <{_tag(element)}>", "date")
        attributes = self._attributes(element)
        name = attributes.get("name")
        if name not in ("year", "month", "day"):
            raise StyleParseError(f"unknown date-part {name!r}", "date-part")
        return DatePartNode(
            formatting=self._formatting(attributes),
            name=name,
            form=attributes.get("form"),
            range_delimiter=attributes.get("range-delimiter"),
        )

    def _parse_group(self, element: ElementTree.Element, attributes: Dict[str, str]) -> GroupNode:
        return GroupNode(
            formatting=self._formatting(attributes),
            children=self._parse_children(element),
            delimiter=attributes.get("delimiter", ""),
        )

    def _parse_choose(self, element: ElementTree.Element, attributes: Dict[str, str]) -> ChooseNode:
        branches: List[Branch] = []
        for index, child in enumerate(_children(element)):
            tag = _tag(child)
            branch_attributes = self._attributes(child)
            if tag == "if" and index == 0 or tag == "else-if" and index > 0:
                condition = build_condition(branch_attributes, tag)
            elif tag == "else" and index > 0:
                condition = None
            else:
                raise StyleParseError(f"misplaced <{tag}>", "choose")
            branches.append(Branch(condition=condition, children=self._parse_children(child)))
        if not branches:
            raise StyleParseError("empty <choose>", "choose")
        return ChooseNode(branches=tuple(branches))


def _macro_references(nodes: Iterable[Node]) -> Set[str]:
    """Macros called directly from ``nodes``, without following them."""
    found: Set[str] = set()
    for node in nodes:
        if isinstance(node, TextNode) and node.macro:
            found.add(node.macro)
        elif isinstance(node, GroupNode):
            found |= _macro_references(node.children)
        elif isinstance(node, ChooseNode):
            for branch in node.branches:
                found |= _macro_references(branch.children)
        elif isinstance(node, NamesNode):
            found |= _macro_references(node.substitute)
    return found


def check_macro_graph(style: Style) -> None:
    """Reject undefined macro references and reference cycles."""
    graph = {name: _macro_references(macro.children) for name, macro in style.macros.items()}
    roots: Set[str] = set()
    for section in (style.citation, style.bibliography):
        if section is None:
            continue
        roots |= _macro_references(section.layout.children)
        roots |= {key.macro for key in section.sort if key.macro}
    referenced = set(roots)
    for targets in graph.values():
        referenced |= targets
    for name in sorted(referenced):
        if name not in graph:
            raise StyleParseError(f"undefined macro {name!r}", "text")

    visiting: List[str] = []
    done: Set[str] = set()

    def visit(name: str) -> None:
        if name in done:
            return
        if name in visiting:
            cycle = visiting[visiting.index(name) :] + [name]
            raise CyclicMacroReference(cycle)
        visiting.append(name)
        for target in sorted(graph[name]):
            visit(target)
        visiting.pop()
        done.add(name)

    for name in sorted(graph):
        visit(name)


def load_style(source: str) -> Style:
    """Parse style XML text; any problem raises :class:`StyleParseError`."""
    try:
        root = ElementTree.fromstring(source)
    except ElementTree.ParseError as exc:
        raise StyleParseError(f"malformed XML: {exc}") from exc
    style = StyleParser(root).parse()
    logger.debug(
        "Loaded style %r: %d macros, bibliography=%s",
        style.title,
        len(style.macros),
        style.bibliography is not None,
    )
    return style


def load_style_file(path: str | Path) -> Style:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Style file not found: {path}")
    logger.info("Loading style %s", path)
    return load_style(path.read_text(encoding="utf-8"))


def _parse_locale_date(element: ElementTree.Element) -> DateNode:
    parts = []
    for child in _children(element):
        attributes = _local_attributes(child)
        parts.append(
            DatePartNode(
                formatting=StyleParser._formatting(attributes),
                name=attributes.get("name", "year"),
                form=attributes.get("form"),
                range_delimiter=attributes.get("range-delimiter"),
            )
        )
    attributes = _local_attributes(element)
    return DateNode(
        formatting=StyleParser._formatting(attributes),
        form=attributes.get("form"),
        parts=tuple(parts),
        delimiter=attributes.get("delimiter", ""),
    )


def parse_locale_element(element: ElementTree.Element) -> Locale:
    """Read a cs:locale block (inside a style or standalone)."""
    lang = _xml_lang(element) or ""
    locale = Locale(lang)
    for child in _children(element):
        tag = _tag(child)
        if tag == "terms":
            for term in _children(child):
                attributes = _local_attributes(term)
                name = attributes.get("name")
                if not name:
                    raise StyleParseError("term without a name", "term")
                form = attributes.get("form", "long")
                singular = plural = (term.text or "").strip()
                for variant in _children(term):
                    if _tag(variant) == "single":
                        singular = variant.text or ""
                    elif _tag(variant) == "multiple":
                        plural = variant.text or ""
                locale.set_term(name, singular, form, plural)
        elif tag == "date":
            date = _parse_locale_date(child)
            if date.form not in ("text", "numeric"):
                raise StyleParseError("locale date needs form text or numeric", "date")
            locale.date_formats[date.form] = date
        elif tag == "style-options":
            locale.options.update(_local_attributes(child))
        elif tag != "info":
            raise StyleParseError(f"unexpected element <{tag}>", "locale")
    return locale


def parse_locale_xml(source: str) -> Locale:
    """Parse a standalone locale document supplied by the caller."""
    try:
        root = ElementTree.fromstring(source)
    except ElementTree.ParseError as exc:
        raise StyleParseError(f"malformed locale XML: {exc}") from exc
    if _tag(root) != "locale":
        raise StyleParseError(f"root element must be <locale>, found <{_tag(root)}>")
    locale = parse_locale_element(root)
    if not locale.lang:
        raise StyleParseError("standalone locale needs xml:lang", "locale")
    if "-" not in locale.lang and locale.lang in REGION_MAP:
        locale.lang = REGION_MAP[locale.lang]
    return locale


__all__ = [
    "Style",
    "StyleParser",
    "check_macro_graph",
    "load_style",
    "load_style_file",
    "parse_locale_element",
    "parse_locale_xml",
]
