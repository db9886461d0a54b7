"""Immutable node tree produced by the style parser."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Formatting:
    """Affixes, font and case attributes shared by rendering elements."""

    prefix: str = ""
    suffix: str = ""
    font_style: Optional[str] = None
    font_variant: Optional[str] = None
    font_weight: Optional[str] = None
    text_decoration: Optional[str] = None
    vertical_align: Optional[str] = None
    text_case: Optional[str] = None
    strip_periods: bool = False
    quotes: bool = False
    display: Optional[str] = None

    def has_font(self) -> bool:
        return any(
            (
                self.font_style,
                self.font_variant,
                self.font_weight,
                self.text_decoration,
                self.vertical_align,
            )
        )

    def without_affixes(self) -> "Formatting":
        return replace(self, prefix="", suffix="")


PLAIN = Formatting()


@dataclass(frozen=True)
class Node:
    formatting: Formatting = PLAIN

    kind = "node"


@dataclass(frozen=True)
class TextNode(Node):
    variable: Optional[str] = None
    macro: Optional[str] = None
    term: Optional[str] = None
    value: Optional[str] = None
    form: str = "long"
    plural: bool = False

    kind = "text"


@dataclass(frozen=True)
class NumberNode(Node):
    variable: str = ""
    form: str = "numeric"

    kind = "number"


@dataclass(frozen=True)
class LabelNode(Node):
    variable: Optional[str] = None
    form: str = "long"
    plural: str = "contextual"

    kind = "label"


@dataclass(frozen=True)
class NameNode(Node):
    """``<name>``: the attributes given on the element, inheritance applied later."""

    options: Tuple[Tuple[str, str], ...] = ()
    name_parts: Tuple[Tuple[str, Formatting], ...] = ()

    kind = "name"

    def option_map(self) -> Dict[str, str]:
        return dict(self.options)

    def part_formatting(self, part: str) -> Optional[Formatting]:
        for name, formatting in self.name_parts:
            if name == part:
                return formatting
        return None


@dataclass(frozen=True)
class EtAlNode(Node):
    term: str = "et-al"

    kind = "et-al"


@dataclass(frozen=True)
class NamesNode(Node):
    variables: Tuple[str, ...] = ()
    name: Optional[NameNode] = None
    et_al: Optional[EtAlNode] = None
    label: Optional[LabelNode] = None
    label_first: bool = False
    substitute: Tuple[Node, ...] = ()
    delimiter: Optional[str] = None

    kind = "names"


@dataclass(frozen=True)
class DatePartNode(Node):
    name: str = "year"
    form: Optional[str] = None
    range_delimiter: Optional[str] = None

    kind = "date-part"


@dataclass(frozen=True)
class DateNode(Node):
    variable: str = ""
    form: Optional[str] = None
    date_parts: str = "year-month-day"
    parts: Tuple[DatePartNode, ...] = ()
    delimiter: str = ""

    kind = "date"

    def part(self, name: str) -> Optional[DatePartNode]:
        for part in self.parts:
            if part.name == name:
                return part
        return None


@dataclass(frozen=True)
class GroupNode(Node):
    children: Tuple[Node, ...] = ()
    delimiter: str = ""

    kind = "group"


@dataclass(frozen=True)
class Branch:
    """One ``if``/``else-if``/``else`` arm; ``condition`` is None for ``else``."""

    condition: Any = None
    children: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class ChooseNode(Node):
    branches: Tuple[Branch, ...] = ()

    kind = "choose"


@dataclass(frozen=True)
class Layout:
    children: Tuple[Node, ...] = ()
    formatting: Formatting = PLAIN
    delimiter: str = ""
    lang: Optional[str] = None


@dataclass(frozen=True)
class SortKey:
    variable: Optional[str] = None
    macro: Optional[str] = None
    descending: bool = False
    names_min: Optional[int] = None
    names_use_first: Optional[int] = None
    names_use_last: Optional[bool] = None


@dataclass(frozen=True)
class Macro:
    name: str
    children: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class Section:
    """``<citation>`` or ``<bibliography>``."""

    layout: Layout
    sort: Tuple[SortKey, ...] = ()
    options: Dict[str, str] = field(default_factory=dict)

    def option(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.options.get(name, default)

    def int_option(self, name: str, default: int) -> int:
        value = self.options.get(name)
        return int(value) if value is not None else default

    def bool_option(self, name: str, default: bool = False) -> bool:
        value = self.options.get(name)
        if value is None:
            return default
        return value == "true"
