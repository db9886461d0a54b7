"""Number variables: numeric detection, ordinals, roman numerals, page ranges."""
from __future__ import annotations

import re
from typing import List, Optional

from .locales import Locale

NUMERIC_PATTERN = re.compile(
    r"^\s*[^\W\d_]*\d+[^\W\d_]*(?:\s*(?:[-–,&]|and|und)\s*[^\W\d_]*\d+[^\W\d_]*)*\s*$",
    re.UNICODE,
)
_NUMBER_TOKEN = re.compile(r"\d+")
_MULTIPLE = re.compile(r"\d[^\W\d_]*\s*(?:[-–,&]|and|und)\s*[^\W\d_]*\d", re.UNICODE)
_RANGE = re.compile(r"(?P<start>[^\W\d_]*\d+)\s*[-–]+\s*(?P<end>[^\W\d_]*\d+)", re.UNICODE)

_ROMAN = [
    (1000, "m"),
    (900, "cm"),
    (500, "d"),
    (400, "cd"),
    (100, "c"),
    (90, "xc"),
    (50, "l"),
    (40, "xl"),
    (10, "x"),
    (9, "ix"),
    (5, "v"),
    (4, "iv"),
    (1, "i"),
]


def is_numeric(value: object) -> bool:
    """True for numbers, optionally affixed with letters, and lists/ranges of them."""
    if isinstance(value, int):
        return True
    if not isinstance(value, str):
        return False
    return bool(NUMERIC_PATTERN.match(value))


def is_plural(value: object) -> bool:
    """Contextual plurality: more than one number in a list or range."""
    if isinstance(value, int) or not isinstance(value, str):
        return False
    return bool(_MULTIPLE.search(value))


def to_roman(number: int) -> str:
    if number <= 0 or number >= 4000:
        return str(number)
    pieces = []
    for value, numeral in _ROMAN:
        while number >= value:
            pieces.append(numeral)
            number -= value
    return "".join(pieces)


def ordinal_suffix(number: int, locale: Locale) -> str:
    two_digits = number % 100
    if 10 <= two_digits <= 99:
        suffix = locale.term(f"ordinal-{two_digits:02d}")
        if suffix is not None:
            return suffix
    suffix = locale.term(f"ordinal-{number % 10:02d}")
    if suffix is not None:
        return suffix
    return locale.term("ordinal") or ""


def ordinal(number: int, locale: Locale) -> str:
    return f"{number}{ordinal_suffix(number, locale)}"


def long_ordinal(number: int, locale: Locale) -> str:
    if 1 <= number <= 10:
        word = locale.term(f"long-ordinal-{number:02d}")
        if word:
            return word
    return ordinal(number, locale)


def format_number(value: object, form: str, locale: Locale) -> str:
    """Render every number in ``value`` in the requested form."""
    text = str(value).strip()
    if not is_numeric(text):
        return text

    def convert(match: re.Match) -> str:
        number = int(match.group(0))
        if form == "ordinal":
            return ordinal(number, locale)
        if form == "long-ordinal":
            return long_ordinal(number, locale)
        if form == "roman":
            return to_roman(number)
        return str(number)

    converted = _NUMBER_TOKEN.sub(convert, text)
    converted = re.sub(r"\s*[-–]+\s*", "–", converted)
    converted = re.sub(r"\s*,\s*", ", ", converted)
    converted = re.sub(r"\s*&\s*", " & ", converted)
    return converted


def _expand_end(start: str, end: str) -> str:
    if len(end) < len(start):
        return start[: len(start) - len(end)] + end
    return end


def _minimal(start: str, end: str, keep: int = 1) -> str:
    if len(start) != len(end):
        return end
    index = 0
    while index < len(end) - keep and start[index] == end[index]:
        index += 1
    return end[index:]


def _chicago(start: str, end: str) -> str:
    first = int(start)
    if first < 100 or first % 100 == 0:
        return end
    if first % 100 < 10:
        return _minimal(start, end, 1)
    if len(start) == 4 and len(end) == 4 and start[:2] != end[:2]:
        return end
    return _minimal(start, end, 2)


def format_page_range(value: str, range_format: Optional[str], delimiter: str = "–") -> str:
    """Reformat every ``a-b`` page range in ``value``."""

    def repl(match: re.Match) -> str:
        start, end = match.group("start"), match.group("end")
        if not (start.isdigit() and end.isdigit()):
            return f"{start}{delimiter}{end}"
        end = _expand_end(start, end)
        if int(end) <= int(start) or range_format in (None, "expanded"):
            return f"{start}{delimiter}{end}"
        if range_format == "minimal":
            end = _minimal(start, end, 1)
        elif range_format == "minimal-two":
            end = _minimal(start, end, 2)
        elif range_format in ("chicago", "chicago-15", "chicago-16"):
            end = _chicago(start, end)
        return f"{start}{delimiter}{end}"

    return _RANGE.sub(repl, value)


def first_page(value: str) -> Optional[str]:
    match = re.match(r"\s*([^\s,\-–&]+)", value)
    return match.group(1) if match else None


def numbers_in(value: str) -> List[int]:
    return [int(token) for token in _NUMBER_TOKEN.findall(value)]
