"""Inline HTML-like markup found inside field values."""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple, Union

from .formats import Span

_TAG_PATTERN = re.compile(
    r"<(?P<close>/)?(?P<tag>i|b|sc|sup|sub|span)(?P<attrs>\s[^>]*)?>",
    re.IGNORECASE,
)

_SIMPLE_TAGS: Dict[str, Tuple[str, str]] = {
    "i": ("font-style", "italic"),
    "b": ("font-weight", "bold"),
    "sc": ("font-variant", "small-caps"),
    "sup": ("vertical-align", "sup"),
    "sub": ("vertical-align", "sub"),
}

_NOCASE_ATTRS = re.compile(r"""class\s*=\s*["']nocase["']""", re.IGNORECASE)
_SMALL_CAPS_ATTRS = re.compile(r"""style\s*=\s*["']\s*font-variant\s*:\s*small-caps;?\s*["']""", re.IGNORECASE)

Token = Tuple[str, str, int, int]


def _classify(match: re.Match) -> Optional[str]:
    tag = match.group("tag").lower()
    if match.group("close"):
        return f"/{tag}"
    if tag != "span":
        return tag if not match.group("attrs") else None
    attrs = match.group("attrs") or ""
    if _NOCASE_ATTRS.search(attrs):
        return "nocase"
    if _SMALL_CAPS_ATTRS.search(attrs):
        return "sc"
    return None


def _pair_tags(value: str) -> Dict[int, int]:
    """Map the start offset of every balanced opening tag to its closing tag."""
    stack: List[Tuple[str, re.Match]] = []
    pairs: Dict[int, int] = {}
    for match in _TAG_PATTERN.finditer(value):
        kind = _classify(match)
        if kind is None:
            continue
        if not kind.startswith("/"):
            stack.append((kind, match))
            continue
        closing = kind[1:]
        for depth in range(len(stack) - 1, -1, -1):
            opened, opener = stack[depth]
            closes_span = closing == "span" and opened in ("nocase", "sc") and opener.group("tag").lower() == "span"
            if opened == closing or closes_span:
                pairs[opener.start()] = match.start()
                del stack[depth:]
                break
    return pairs


def parse_markup(value: str) -> Union[str, Span]:
    """Return ``value`` unchanged or as a span tree when it carries markup."""
    if "<" not in value:
        return value
    pairs = _pair_tags(value)
    if not pairs:
        return value
    closers = set(pairs.values())

    root = Span()
    stack: List[Span] = [root]
    cursor = 0
    for match in _TAG_PATTERN.finditer(value):
        start, end = match.span()
        is_opener = start in pairs
        is_closer = start in closers
        if not is_opener and not is_closer:
            continue
        if start > cursor:
            stack[-1].children.append(value[cursor:start])
        cursor = end
        if is_closer:
            if len(stack) > 1:
                stack.pop()
            continue
        kind = _classify(match)
        if kind == "nocase":
            child = Span(nocase=True)
        else:
            attribute, setting = _SIMPLE_TAGS[kind]  # type: ignore[index]
            child = Span(style={attribute: setting}, toggle=True)
        stack[-1].children.append(child)
        stack.append(child)
    if cursor < len(value):
        stack[-1].children.append(value[cursor:])
    return root


def rich_text(value: Optional[str]) -> Optional[Span]:
    if not value:
        return None
    parsed = parse_markup(value)
    if isinstance(parsed, Span):
        return parsed
    return Span([parsed])


def strip_markup(value: str) -> str:
    """Plain text of a field value, dropping recognised markup tags."""
    parsed = parse_markup(value)
    if isinstance(parsed, Span):
        return parsed.plain()
    return parsed
