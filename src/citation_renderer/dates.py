"""Date parsing (CSL-JSON and raw strings) and rendering."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import DateParseAmbiguous
from .formats import Content, Span, apply_formatting, join
from .locales import Locale
from .models import DateParts, DateValue
from .nodes import DateNode, DatePartNode, Formatting
from .numbers import ordinal

logger = logging.getLogger(__name__)

_MONTH_NAMES: Dict[str, int] = {}
for _index, _names in enumerate(
    [
        ("january", "jan", "januar", "jänner"),
        ("february", "feb", "februar"),
        ("march", "mar", "märz", "maerz", "mär"),
        ("april", "apr"),
        ("may", "mai"),
        ("june", "jun", "juni"),
        ("july", "jul", "juli"),
        ("august", "aug"),
        ("september", "sep", "sept"),
        ("october", "oct", "oktober", "okt"),
        ("november", "nov"),
        ("december", "dec", "dezember", "dez"),
    ],
    start=1,
):
    for _name in _names:
        _MONTH_NAMES[_name] = _index

_SEASON_NAMES = {
    "spring": 13,
    "frühjahr": 13,
    "frühling": 13,
    "summer": 14,
    "sommer": 14,
    "autumn": 15,
    "fall": 15,
    "herbst": 15,
    "winter": 16,
}

_UNCERTAIN_PREFIX = re.compile(r"^\s*(?:ca\.?|c\.|circa|approx\.?|um)\s*", re.IGNORECASE)
_BRACKETED = re.compile(r"^\[(.*)\]$")
_ERA_BC = re.compile(r"\s*(?:BC|B\.C\.|BCE|v\.\s*Chr\.)\s*$", re.IGNORECASE)
_ERA_AD = re.compile(r"^\s*(?:AD|A\.D\.)\s*|\s*(?:AD|A\.D\.|CE|n\.\s*Chr\.)\s*$", re.IGNORECASE)
_ISO = re.compile(r"^(-?\d{3,4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?(?:T.*)?$")
_DOTTED = re.compile(r"^(\d{1,2})\.\s*(\d{1,2})\.\s*(\d{3,4})$")
_SLASHED = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{3,4})$")
_MONTH_YEAR = re.compile(r"^(\d{1,2})[/.](\d{3,4})$")
_RANGE_SEPARATORS = (re.compile(r"\s*/\s*"), re.compile(r"\s*–\s*"), re.compile(r"\s+-\s+"), re.compile(r"(?<=\d{4})-(?=\d{4}$)"))

PART_RANK = {"year": 0, "month": 1, "day": 2}


def _to_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _parts_from_list(raw_parts: Sequence[Any]) -> Optional[DateParts]:
    values = [_to_int(value) for value in list(raw_parts)[:3]]
    if not values or values[0] is None:
        return None
    year = values[0]
    month = values[1] if len(values) > 1 else None
    day = values[2] if len(values) > 2 and month else None
    if month is not None and not 1 <= month <= 16:
        month, day = None, None
    if day is not None and not 1 <= day <= 31:
        day = None
    return DateParts(year, month or None, day or None)


def date_from_csl(value: Any) -> Optional[DateValue]:
    """Build a :class:`DateValue` from a CSL-JSON date object or string."""
    if value is None:
        return None
    if isinstance(value, DateValue):
        return value
    if isinstance(value, (str, int)):
        return date_from_raw(str(value))
    if not isinstance(value, dict):
        return None

    circa = bool(value.get("circa"))
    season = _to_int(value.get("season"))
    literal = value.get("literal")
    raw_parts = value.get("date-parts")
    if raw_parts:
        parts = [p for p in (_parts_from_list(chunk) for chunk in raw_parts if chunk) if p]
        if parts:
            open_end = len(raw_parts) > 1 and len(parts) == 1
            return DateValue(parts=tuple(parts[:2]), season=season, circa=circa, literal=literal, open_end=open_end)
    raw = value.get("raw")
    if raw:
        parsed = date_from_raw(str(raw))
        if circa and not parsed.circa:
            parsed = DateValue(parsed.parts, parsed.season, True, parsed.literal, parsed.raw, parsed.open_end)
        return parsed
    if literal:
        return DateValue(literal=str(literal), circa=circa)
    return None


def date_from_raw(raw: str) -> DateValue:
    """Parse a raw string, flagging uncertainty instead of failing."""
    try:
        return parse_raw_date(raw)
    except DateParseAmbiguous as exc:
        logger.debug("Using best-effort reading of %r (%s)", raw, exc.reason)
        return exc.best_effort


def parse_raw_date(raw: str) -> DateValue:
    """Parse a raw date string.

    Raises :class:`DateParseAmbiguous` when the string admits more than one
    reading; the exception carries the best-effort value, flagged uncertain.
    Unparseable strings come back as literals.
    """
    text = raw.strip()
    if not text:
        return DateValue(raw=raw)

    circa = False
    bracketed = _BRACKETED.match(text)
    if bracketed:
        text, circa = bracketed.group(1).strip(), True
    if _UNCERTAIN_PREFIX.match(text):
        text, circa = _UNCERTAIN_PREFIX.sub("", text, count=1), True
    if text.endswith("?"):
        text, circa = text.rstrip("?").strip(), True

    ambiguous = False
    parts: List[DateParts] = []
    season = None
    open_end = False
    for separator in _RANGE_SEPARATORS:
        pieces = separator.split(text)
        if len(pieces) == 2:
            start, start_ambiguous, start_season = _parse_single(pieces[0])
            if start is None:
                continue
            if not pieces[1].strip():
                parts, open_end, season = [start], True, start_season
                ambiguous = start_ambiguous
                break
            end, end_ambiguous, _ = _parse_single(pieces[1], reference=start)
            if end is not None:
                parts = [start, end]
                ambiguous = start_ambiguous or end_ambiguous
                season = start_season
                break
    if not parts:
        single, ambiguous, season = _parse_single(text)
        if single is None:
            return DateValue(literal=raw.strip(), raw=raw, circa=circa)
        parts = [single]

    value = DateValue(
        parts=tuple(parts),
        season=season,
        circa=circa or ambiguous,
        raw=raw,
        open_end=open_end,
    )
    if ambiguous:
        raise DateParseAmbiguous(raw, value, reason="day and month are interchangeable")
    return value


def _parse_single(text: str, reference: Optional[DateParts] = None) -> Tuple[Optional[DateParts], bool, Optional[int]]:
    """Parse one date; returns (parts, ambiguous, season)."""
    text = text.strip().rstrip(",")
    if not text:
        return None, False, None

    negative = False
    if _ERA_BC.search(text):
        text, negative = _ERA_BC.sub("", text), True
    elif _ERA_AD.search(text):
        text = _ERA_AD.sub("", text)

    def signed(year: int) -> int:
        return -year if negative else year

    match = _ISO.match(text)
    if match:
        year = int(match.group(1))
        month = _to_int(match.group(2))
        day = _to_int(match.group(3))
        if month is not None and not 1 <= month <= 12:
            return None, False, None
        return DateParts(signed(year), month, day if month else None), False, None

    match = _DOTTED.match(text)
    if match:
        day, month, year = (int(group) for group in match.groups())
        if 1 <= month <= 12 and 1 <= day <= 31:
            return DateParts(signed(year), month, day), False, None
        return None, False, None

    match = _SLASHED.match(text)
    if match:
        first, second, year = (int(group) for group in match.groups())
        if first > 12 and second <= 12:
            return DateParts(signed(year), second, first), False, None
        if second > 12 and first <= 12:
            return DateParts(signed(year), first, second), False, None
        if first <= 12 and second <= 12:
            return DateParts(signed(year), first, second), first != second, None
        return None, False, None

    match = _MONTH_YEAR.match(text)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return DateParts(signed(year), month), False, None
        return None, False, None

    return _parse_words(text, signed, reference)


def _parse_words(text: str, signed, reference: Optional[DateParts]) -> Tuple[Optional[DateParts], bool, Optional[int]]:
    tokens = [token for token in re.split(r"[\s,]+", text) if token]
    year = month = day = None
    season = None
    for token in tokens:
        word = token.lower().rstrip(".")
        if word in _MONTH_NAMES and month is None:
            month = _MONTH_NAMES[word]
        elif word in _SEASON_NAMES and month is None:
            month = _SEASON_NAMES[word]
            season = month - 12
        elif re.fullmatch(r"\d{1,2}(?:st|nd|rd|th|\.)?", word) or re.fullmatch(r"\d{1,2}", token.rstrip(".")):
            number = int(re.match(r"\d+", word).group(0))  # type: ignore[union-attr]
            if day is None and 1 <= number <= 31:
                day = number
            else:
                return None, False, None
        elif re.fullmatch(r"-?\d{3,4}", word):
            if year is not None:
                return None, False, None
            year = int(word)
        else:
            return None, False, None
    if year is None and reference is not None and (month or day):
        year = reference.year
        if month is None:
            month = reference.month
    if year is None:
        return None, False, None
    if month is None:
        day = None
    return DateParts(signed(year), month, day), False, season


def _month_part(month: int, part: DatePartNode, locale: Locale) -> Optional[str]:
    form = part.form or "long"
    if 13 <= month <= 16:
        if form in ("numeric", "numeric-leading-zeros"):
            return None
        return locale.term(f"season-{month - 12:02d}")
    if form == "numeric":
        return str(month)
    if form == "numeric-leading-zeros":
        return f"{month:02d}"
    return locale.term(f"month-{month:02d}", "short" if form == "short" else "long")


def _day_part(day: int, month: Optional[int], part: DatePartNode, locale: Locale) -> str:
    form = part.form or "numeric"
    if form == "numeric-leading-zeros":
        return f"{day:02d}"
    if form == "ordinal":
        if locale.limit_day_ordinals_to_day_1 and day != 1:
            return str(day)
        return ordinal(day, locale)
    return str(day)


def _year_part(year: int, part: DatePartNode, locale: Locale) -> str:
    if year < 0:
        return f"{abs(year)}{locale.term('bc') or 'BC'}"
    if part.form == "short":
        return f"{year % 100:02d}"
    if 0 < year < 1000:
        return f"{year}{locale.term('ad') or 'AD'}"
    return str(year)


class DateFormatter:
    """Render a :class:`DateValue` through a ``<date>`` node."""

    def __init__(self, locale: Locale, lang: Optional[str] = None):
        self.locale = locale
        self.lang = lang

    def effective_parts(self, node: DateNode) -> Tuple[List[DatePartNode], str]:
        if not node.form:
            return list(node.parts), node.delimiter
        localized = self.locale.date_format(node.form)
        if localized is None:
            return list(node.parts), node.delimiter
        allowed = node.date_parts.split("-")
        parts = []
        for locale_part in localized.parts:
            if locale_part.name not in allowed:
                continue
            override = node.part(locale_part.name)
            if override is not None:
                formatting = Formatting(
                    prefix=locale_part.formatting.prefix,
                    suffix=locale_part.formatting.suffix,
                    font_style=override.formatting.font_style,
                    font_variant=override.formatting.font_variant,
                    font_weight=override.formatting.font_weight,
                    text_decoration=override.formatting.text_decoration,
                    vertical_align=override.formatting.vertical_align,
                    text_case=override.formatting.text_case,
                    strip_periods=override.formatting.strip_periods,
                )
                locale_part = DatePartNode(
                    name=locale_part.name,
                    form=override.form or locale_part.form,
                    range_delimiter=override.range_delimiter or locale_part.range_delimiter,
                    formatting=formatting,
                )
            parts.append(locale_part)
        return parts, localized.delimiter

    def render(self, node: DateNode, value: DateValue, year_suffix: Optional[str] = None) -> Content:
        if value.literal and not value.parts:
            return Span([value.literal])
        parts, delimiter = self.effective_parts(node)
        start = value.start
        if start is None or not parts:
            return None

        end = value.end
        if value.open_end:
            rendered = self._render_block(parts, start, value, year_suffix)
            range_delimiter = self._range_delimiter(parts, "year")
            return join([rendered, Span([range_delimiter])]) if rendered else None
        if end is None or end == start:
            return self._render_block(parts, start, value, year_suffix, delimiter=delimiter)

        differing = self._largest_difference(start, end)
        present = [part for part in parts if self._value_for(part.name, start, value) is not None]
        block_indexes = [i for i, part in enumerate(present) if PART_RANK[part.name] >= PART_RANK[differing]]
        if not block_indexes:
            return self._render_block(parts, start, value, year_suffix, delimiter=delimiter)
        first, last = block_indexes[0], block_indexes[-1]
        if block_indexes != list(range(first, last + 1)):
            first, last = 0, len(present) - 1
        range_delimiter = self._range_delimiter(parts, differing)

        pieces: List[Content] = []
        if first:
            pieces.append(self._render_block(present[:first], start, value, None, delimiter=delimiter))
        start_block = self._render_block(present[first : last + 1], start, value, None, delimiter=delimiter, trim_suffix=True)
        end_block = self._render_block(present[first : last + 1], end, value, None, delimiter=delimiter)
        if start_block is not None and end_block is not None:
            pieces.append(Span([start_block, range_delimiter, end_block]))
        if last + 1 < len(present):
            pieces.append(self._render_block(present[last + 1 :], start, value, None, delimiter=delimiter))
        rendered = join(pieces, delimiter)
        if rendered is not None and year_suffix:
            rendered = Span([rendered, year_suffix])
        return rendered

    @staticmethod
    def _largest_difference(start: DateParts, end: DateParts) -> str:
        if start.year != end.year:
            return "year"
        if start.month != end.month:
            return "month"
        return "day"

    @staticmethod
    def _range_delimiter(parts: List[DatePartNode], name: str) -> str:
        for part in parts:
            if part.name == name and part.range_delimiter:
                return part.range_delimiter
        return "–"

    @staticmethod
    def _value_for(name: str, date: DateParts, value: DateValue) -> Optional[int]:
        if name == "year":
            return date.year
        if name == "month":
            if date.month:
                return date.month
            if value.season and 1 <= value.season <= 4:
                return value.season + 12
            return None
        if name == "day":
            return date.day if date.month and date.month <= 12 else None
        return None

    def _render_block(
        self,
        parts: List[DatePartNode],
        date: DateParts,
        value: DateValue,
        year_suffix: Optional[str],
        delimiter: str = "",
        trim_suffix: bool = False,
    ) -> Content:
        rendered: List[Tuple[DatePartNode, Content]] = []
        for part in parts:
            number = self._value_for(part.name, date, value)
            if number is None:
                continue
            if part.name == "year":
                text: Optional[str] = _year_part(number, part, self.locale)
                if year_suffix:
                    text = f"{text}{year_suffix}"
            elif part.name == "month":
                text = _month_part(number, part, self.locale)
            else:
                text = _day_part(number, date.month, part, self.locale)
            if text:
                rendered.append((part, Span([text])))
        if not rendered:
            return None

        pieces: List[Content] = []
        for index, (part, content) in enumerate(rendered):
            formatting = part.formatting
            if index == len(rendered) - 1:
                # A separator only belongs between parts, so it goes when the parts after it are absent.
                dangling = part is not parts[-1] and _is_separator(formatting.suffix)
                if trim_suffix or dangling:
                    formatting = replace(formatting, suffix="")
            pieces.append(apply_formatting(content, formatting, self.lang))
        return join(pieces, delimiter)


def _is_separator(suffix: str) -> bool:
    return bool(suffix) and not suffix.strip(" ,/.-")

