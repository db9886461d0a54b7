"""Rich text spans and their serialization to plain text or HTML."""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Union

from .nodes import Formatting

FONT_ATTRIBUTES = ("font-style", "font-variant", "font-weight", "text-decoration", "vertical-align")

# Value each attribute flips to when markup re-applies an active style.
_FLIP_NORMAL = {
    "font-style": "normal",
    "font-variant": "normal",
    "font-weight": "normal",
    "text-decoration": "none",
    "vertical-align": "baseline",
}

_DEFAULT_STATE = {
    "font-style": "normal",
    "font-variant": "normal",
    "font-weight": "normal",
    "text-decoration": "none",
    "vertical-align": "baseline",
}

_TERMINAL_PUNCTUATION = ".?!"


@dataclass
class Span:
    """A run of rendered output with optional formatting."""

    children: List[Union[str, "Span"]] = field(default_factory=list)
    style: Dict[str, str] = field(default_factory=dict)
    toggle: bool = False
    quotes: bool = False
    nocase: bool = False
    display: Optional[str] = None

    def leaves(self) -> Iterable[str]:
        for child in self.children:
            if isinstance(child, Span):
                yield from child.leaves()
            else:
                yield child

    def plain(self) -> str:
        return "".join(self.leaves())

    def is_empty(self) -> bool:
        return not any(leaf for leaf in self.leaves())

    def last_char(self) -> str:
        text = self.plain().rstrip()
        return text[-1] if text else ""


Content = Optional[Span]


def text_span(value: Optional[str]) -> Content:
    if not value:
        return None
    return Span([value])


def is_empty(content: Content) -> bool:
    return content is None or content.is_empty()


def plain_text(content: Content) -> str:
    return content.plain() if content is not None else ""


def _collapse_punctuation(left: str, right: str) -> str:
    """Drop a leading period from ``right`` when ``left`` already ends a sentence."""
    if right.startswith(".") and left and left[-1] in _TERMINAL_PUNCTUATION:
        if not right.startswith("..."):
            return right[1:]
    return right


def join(parts: Iterable[Content], delimiter: str = "") -> Content:
    """Join non-empty parts with ``delimiter``."""
    present = [part for part in parts if not is_empty(part)]
    if not present:
        return None
    children: List[Union[str, Span]] = []
    for index, part in enumerate(present):
        if index and delimiter:
            piece = _collapse_punctuation(present[index - 1].last_char(), delimiter)  # type: ignore[union-attr]
            if piece:
                children.append(piece)
        children.append(part)  # type: ignore[arg-type]
    return Span(children)


def affix(content: Content, prefix: str = "", suffix: str = "") -> Content:
    if is_empty(content):
        return None
    if not prefix and not suffix:
        return content
    children: List[Union[str, Span]] = []
    if prefix:
        children.append(prefix)
    children.append(content)  # type: ignore[arg-type]
    if suffix:
        suffix = _collapse_punctuation(content.last_char(), suffix)  # type: ignore[union-attr]
        if suffix:
            children.append(suffix)
    return Span(children)


def transform_leaves(content: Content, func: Callable[[str, dict], str], state: Optional[dict] = None) -> Content:
    """Apply ``func`` to every text leaf outside ``nocase`` spans, in order."""
    if content is None:
        return None
    state = {} if state is None else state
    new_children: List[Union[str, Span]] = []
    for child in content.children:
        if isinstance(child, Span):
            if child.nocase:
                state["seen_text"] = True
                new_children.append(child)
            else:
                new_children.append(transform_leaves(child, func, state))  # type: ignore[arg-type]
        else:
            new_children.append(func(child, state))
    return Span(
        new_children,
        style=dict(content.style),
        toggle=content.toggle,
        quotes=content.quotes,
        nocase=content.nocase,
        display=content.display,
    )


_STOP_WORDS = frozenset(
    "a an and as at but by down for from in into nor of on onto or over so the till to up via with yet".split()
)
_WORD = re.compile(r"[^\W\d_][\w'’\-]*", re.UNICODE)


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def _title_case(text: str, state: dict) -> str:
    def repl(match: re.Match) -> str:
        word = match.group(0)
        first = not state.get("seen_text")
        state["seen_text"] = True
        if word != word.lower() and word != word.upper():
            return word
        lowered = word.lower()
        if not first and lowered in _STOP_WORDS:
            return lowered
        if word.isupper() and len(word) > 1:
            return _capitalize(lowered)
        return _capitalize(word)

    return _WORD.sub(repl, text)


def _sentence_case(text: str, state: dict) -> str:
    def repl(match: re.Match) -> str:
        word = match.group(0)
        first = not state.get("seen_text")
        state["seen_text"] = True
        if first:
            return _capitalize(word.lower()) if word.isupper() else _capitalize(word)
        if word.isupper() and len(word) > 1:
            return word.lower()
        return word

    return _WORD.sub(repl, text)


def _capitalize_first(text: str, state: dict) -> str:
    def repl(match: re.Match) -> str:
        word = match.group(0)
        if state.get("seen_text"):
            return word
        state["seen_text"] = True
        return _capitalize(word)

    return _WORD.sub(repl, text)


def _capitalize_all(text: str, state: dict) -> str:
    return _WORD.sub(lambda match: _capitalize(match.group(0)), text)


TEXT_CASES: Dict[str, Callable[[str, dict], str]] = {
    "lowercase": lambda text, state: text.lower(),
    "uppercase": lambda text, state: text.upper(),
    "capitalize-first": _capitalize_first,
    "capitalize-all": _capitalize_all,
    "sentence": _sentence_case,
    "title": _title_case,
}


def apply_text_case(content: Content, text_case: Optional[str], lang: Optional[str] = None) -> Content:
    if not text_case or content is None:
        return content
    if text_case == "title" and lang and not lang.lower().startswith("en"):
        return content
    func = TEXT_CASES.get(text_case)
    if func is None:
        return content
    return transform_leaves(content, func)


def apply_formatting(content: Content, formatting: Formatting, lang: Optional[str] = None) -> Content:
    """Apply case, fonts, quotes, display and affixes (outermost) to ``content``."""
    if is_empty(content):
        return None
    if formatting.strip_periods:
        content = transform_leaves(content, lambda text, state: text.replace(".", ""))
    content = apply_text_case(content, formatting.text_case, lang)
    style = {}
    if formatting.font_style:
        style["font-style"] = formatting.font_style
    if formatting.font_variant:
        style["font-variant"] = formatting.font_variant
    if formatting.font_weight:
        style["font-weight"] = formatting.font_weight
    if formatting.text_decoration:
        style["text-decoration"] = formatting.text_decoration
    if formatting.vertical_align:
        style["vertical-align"] = formatting.vertical_align
    if style or formatting.quotes:
        content = Span([content], style=style, quotes=formatting.quotes)  # type: ignore[list-item]
    content = affix(content, formatting.prefix, formatting.suffix)
    if formatting.display and content is not None:
        content = Span([content], display=formatting.display)
    return content


class OutputFormat:
    """Serialize spans; subclasses decide how formatting is written out."""

    name = "base"

    def __init__(
        self,
        open_quote: str = "“",
        close_quote: str = "”",
        open_inner_quote: str = "‘",
        close_inner_quote: str = "’",
        punctuation_in_quote: bool = False,
    ):
        self.open_quote = open_quote
        self.close_quote = close_quote
        self.open_inner_quote = open_inner_quote
        self.close_inner_quote = close_inner_quote
        self.punctuation_in_quote = punctuation_in_quote

    @classmethod
    def for_locale(cls, locale) -> "OutputFormat":
        return cls(
            open_quote=locale.term("open-quote") or "“",
            close_quote=locale.term("close-quote") or "”",
            open_inner_quote=locale.term("open-inner-quote") or "‘",
            close_inner_quote=locale.term("close-inner-quote") or "’",
            punctuation_in_quote=locale.punctuation_in_quote,
        )

    def serialize(self, content: Content) -> str:
        if content is None:
            return ""
        output = self._serialize(content, dict(_DEFAULT_STATE), 0)
        if self.punctuation_in_quote:
            for quote in (self.close_quote, self.close_inner_quote):
                output = re.sub(re.escape(quote) + r"([.,])", lambda m: m.group(1) + quote, output)
        return output.strip()

    def _serialize(self, span: Span, state: Dict[str, str], quote_depth: int) -> str:
        applied: Dict[str, str] = {}
        child_state = dict(state)
        for attribute, value in span.style.items():
            if span.toggle and state.get(attribute) == value:
                value = _FLIP_NORMAL[attribute]
            if child_state.get(attribute) != value:
                applied[attribute] = value
                child_state[attribute] = value

        depth = quote_depth + 1 if span.quotes else quote_depth
        pieces = []
        for child in span.children:
            if isinstance(child, Span):
                pieces.append(self._serialize(child, child_state, depth))
            else:
                pieces.append(self.escape(child))
        body = "".join(pieces)

        if span.quotes:
            if quote_depth % 2 == 0:
                body = f"{self.open_quote}{body}{self.close_quote}"
            else:
                body = f"{self.open_inner_quote}{body}{self.close_inner_quote}"
        for attribute, value in applied.items():
            body = self.wrap(attribute, value, body)
        if span.display:
            body = self.wrap_display(span.display, body)
        return body

    def escape(self, text: str) -> str:
        return text

    def wrap(self, attribute: str, value: str, body: str) -> str:
        return body

    def wrap_display(self, display: str, body: str) -> str:
        return body

    def entry(self, body: str) -> str:
        return body


class TextFormat(OutputFormat):
    name = "text"


class HtmlFormat(OutputFormat):
    name = "html"

    _TAGS = {
        ("font-style", "italic"): ("<i>", "</i>"),
        ("font-weight", "bold"): ("<b>", "</b>"),
        ("vertical-align", "sup"): ("<sup>", "</sup>"),
        ("vertical-align", "sub"): ("<sub>", "</sub>"),
    }

    def escape(self, text: str) -> str:
        return html.escape(text, quote=False)

    def wrap(self, attribute: str, value: str, body: str) -> str:
        tags = self._TAGS.get((attribute, value))
        if tags:
            return f"{tags[0]}{body}{tags[1]}"
        return f'<span style="{attribute}:{value};">{body}</span>'

    def wrap_display(self, display: str, body: str) -> str:
        return f'<div class="csl-{display}">{body}</div>'

    def entry(self, body: str) -> str:
        return f'<div class="csl-entry">{body}</div>'


OUTPUT_FORMATS = {"text": TextFormat, "html": HtmlFormat}


def get_output_format(name: str, locale) -> OutputFormat:
    try:
        format_cls = OUTPUT_FORMATS[name]
    except KeyError:
        raise ValueError(f"Unsupported output format: {name}") from None
    return format_cls.for_locale(locale)


_HTML_TAG = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)


def strip_html(value: str) -> str:
    """Strip tags and decode entities from HTML output."""
    return html.unescape(_HTML_TAG.sub("", value)).replace("\xa0", " ").strip()
