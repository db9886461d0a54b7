"""Name records: parsing from CSL-JSON and formatting of name lists."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .formats import Content, Span, apply_formatting, join, text_span
from .locales import Locale
from .models import Name
from .nodes import PLAIN, Formatting

# Attributes that cascade from style/citation/bibliography down to cs:names and cs:name.
INHERITABLE_NAME_OPTIONS = frozenset(
    {
        "and",
        "delimiter-precedes-et-al",
        "delimiter-precedes-last",
        "et-al-min",
        "et-al-use-first",
        "et-al-use-last",
        "et-al-subsequent-min",
        "et-al-subsequent-use-first",
        "initialize",
        "initialize-with",
        "name-as-sort-order",
        "sort-separator",
        "name-form",
        "name-delimiter",
        "names-delimiter",
    }
)

_ROMANESQUE = re.compile(r"^[\u0000-\u024f\u0370-\u03ff\u0400-\u052f\u1e00-\u1fff\u2000-\u206f\s]*$")
_APOSTROPHE_PARTICLE = re.compile(r"^([^\W\d_]+['’])(\w.*)$", re.UNICODE)


def _is_particle(token: str) -> bool:
    letters = [ch for ch in token if ch.isalpha()]
    return bool(letters) and all(ch.islower() for ch in letters)


def split_family_particle(family: str) -> Tuple[Optional[str], str]:
    """``"van Gogh"`` -> ``("van", "Gogh")``; ``"d'Alembert"`` -> ``("d'", "Alembert")``."""
    tokens = family.split()
    leading: List[str] = []
    while len(tokens) > 1 and _is_particle(tokens[0]):
        leading.append(tokens.pop(0))
    rest = " ".join(tokens)
    match = _APOSTROPHE_PARTICLE.match(rest)
    if match and _is_particle(match.group(1)) and not _is_particle(match.group(2)):
        leading.append(match.group(1))
        rest = match.group(2)
    if leading:
        return " ".join(leading), rest
    return None, family


def split_given_particle(given: str) -> Tuple[str, Optional[str]]:
    """``"Ludwig van"`` -> ``("Ludwig", "van")``."""
    tokens = given.split()
    trailing: List[str] = []
    while len(tokens) > 1 and _is_particle(tokens[-1]):
        trailing.insert(0, tokens.pop())
    if trailing:
        return " ".join(tokens), " ".join(trailing)
    return given, None


def name_from_csl(data: Any) -> Name:
    """Build a :class:`Name` from a CSL-JSON name object, parsing particles."""
    if isinstance(data, Name):
        return data
    if isinstance(data, str):
        return Name(literal=data)
    literal = data.get("literal")
    if literal:
        return Name(literal=str(literal))
    family = data.get("family") or None
    given = data.get("given") or None
    non_dropping = data.get("non-dropping-particle") or None
    dropping = data.get("dropping-particle") or None
    if family and not non_dropping and not data.get("static-ordering"):
        non_dropping, family = split_family_particle(family)
    if given and not dropping:
        given, dropping = split_given_particle(given)
    if family is None and given is not None:
        return Name(literal=given)
    return Name(
        family=family,
        given=given,
        dropping_particle=dropping,
        non_dropping_particle=non_dropping,
        suffix=data.get("suffix") or None,
        comma_suffix=bool(data.get("comma-suffix")),
    )


def names_from_csl(value: Any) -> List[Name]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [name_from_csl(entry) for entry in value]
    return [name_from_csl(value)]


def is_romanesque(name: Name) -> bool:
    text = f"{name.family or ''}{name.given or ''}"
    return bool(_ROMANESQUE.match(text))


def _glue(left: str, right: str) -> str:
    """Join a particle to what follows; ``d'`` and ``al-`` attach without a space."""
    if not left:
        return right
    if not right:
        return left
    if left[-1] in "'’-":
        return f"{left}{right}"
    return f"{left} {right}"


def initialize_given(given: str, initialize_with: str, initialize: bool = True, hyphen: bool = True) -> str:
    """Reduce given names to initials, e.g. ``"Jean-Paul"`` -> ``"J.-P."``."""
    separator = initialize_with.rstrip()
    trailing = initialize_with[len(separator):]
    rendered: List[str] = []
    for word in given.replace(".", ". ").split():
        if _is_particle(word):
            rendered.append(f"{word} ")
            continue
        pieces = [piece.rstrip(".") for piece in (word.split("-") if hyphen else [word])]
        pieces = [piece for piece in pieces if piece]
        if not pieces:
            continue
        if initialize or all(len(piece) == 1 for piece in pieces):
            rendered.append("-".join(piece[0].upper() + separator for piece in pieces) + trailing)
        else:
            rendered.append(f"{word} ")
    return "".join(rendered).strip()


@dataclass(frozen=True)
class NameOptions:
    """Effective options for one cs:names/cs:name pair after inheritance."""

    and_: Optional[str] = None
    delimiter: str = ", "
    delimiter_precedes_last: str = "contextual"
    delimiter_precedes_et_al: str = "contextual"
    et_al_min: Optional[int] = None
    et_al_use_first: Optional[int] = None
    et_al_subsequent_min: Optional[int] = None
    et_al_subsequent_use_first: Optional[int] = None
    et_al_use_last: bool = False
    form: str = "long"
    initialize: bool = True
    initialize_with: Optional[str] = None
    name_as_sort_order: Optional[str] = None
    sort_separator: str = ", "
    demote_non_dropping_particle: str = "display-and-sort"
    initialize_with_hyphen: bool = True

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, str]) -> "NameOptions":
        def number(key: str) -> Optional[int]:
            value = attributes.get(key)
            return int(value) if value not in (None, "") else None

        return cls(
            and_=attributes.get("and"),
            delimiter=attributes.get("delimiter", attributes.get("name-delimiter", ", ")),
            delimiter_precedes_last=attributes.get("delimiter-precedes-last", "contextual"),
            delimiter_precedes_et_al=attributes.get("delimiter-precedes-et-al", "contextual"),
            et_al_min=number("et-al-min"),
            et_al_use_first=number("et-al-use-first"),
            et_al_subsequent_min=number("et-al-subsequent-min"),
            et_al_subsequent_use_first=number("et-al-subsequent-use-first"),
            et_al_use_last=attributes.get("et-al-use-last") == "true",
            form=attributes.get("form", attributes.get("name-form", "long")),
            initialize=attributes.get("initialize", "true") == "true",
            initialize_with=attributes.get("initialize-with"),
            name_as_sort_order=attributes.get("name-as-sort-order"),
            sort_separator=attributes.get("sort-separator", ", "),
            demote_non_dropping_particle=attributes.get("demote-non-dropping-particle", "display-and-sort"),
            initialize_with_hyphen=attributes.get("initialize-with-hyphen", "true") == "true",
        )

    def truncation(self, count: int, subsequent: bool = False, extra: int = 0) -> Tuple[int, bool]:
        """Return how many names to show and whether the list was cut short."""
        minimum, use_first = self.et_al_min, self.et_al_use_first
        if subsequent:
            if self.et_al_subsequent_min is not None:
                minimum = self.et_al_subsequent_min
            if self.et_al_subsequent_use_first is not None:
                use_first = self.et_al_subsequent_use_first
        if minimum is None or use_first is None or count < minimum:
            return count, False
        shown = min(count, max(use_first, 0) + extra)
        if shown >= count:
            return count, False
        return shown, True


class NameFormatter:
    """Render lists of :class:`Name` according to :class:`NameOptions`."""

    def __init__(
        self,
        options: NameOptions,
        locale: Locale,
        lang: Optional[str] = None,
        part_formatting: Optional[Dict[str, Formatting]] = None,
        name_formatting: Formatting = PLAIN,
    ):
        self.options = options
        self.locale = locale
        self.lang = lang
        self.part_formatting = part_formatting or {}
        self.name_formatting = name_formatting

    def _inverted(self, index: int) -> bool:
        order = self.options.name_as_sort_order
        return order == "all" or (order == "first" and index == 0)

    def _part(self, part: str, value: Optional[str]) -> Content:
        if not value:
            return None
        formatting = self.part_formatting.get(part)
        content = Span([value])
        if formatting is None:
            return content
        return apply_formatting(content, formatting, self.lang)

    def _given(self, name: Name, given_level: int) -> str:
        given = name.given or ""
        initialize_with = self.options.initialize_with
        if given and initialize_with is not None and given_level < 2:
            return initialize_given(
                given,
                initialize_with,
                initialize=self.options.initialize,
                hyphen=self.options.initialize_with_hyphen,
            )
        return given

    def format_name(self, name: Name, index: int = 0, given_level: int = 0) -> Content:
        """Render one name; ``given_level`` 1 adds initials, 2 full given names."""
        if not name.is_personal:
            return self._part("family", name.literal or name.family or name.given)

        family_text = name.family or ""
        ndp = name.non_dropping_particle or ""
        dp = name.dropping_particle or ""
        if self.options.form == "short" and not given_level:
            return self._part("family", _glue(ndp, family_text))

        given = self._given(name, given_level)
        if not is_romanesque(name):
            return join([self._part("family", family_text), self._part("given", given)])

        suffix = name.suffix or ""
        if self._inverted(index):
            if self.options.demote_non_dropping_particle == "display-and-sort":
                family = self._part("family", family_text)
                given_content = self._part("given", _glue(given, _glue(dp, ndp)))
            else:
                family = self._part("family", _glue(ndp, family_text))
                given_content = self._part("given", _glue(given, dp))
            return join([family, given_content, text_span(suffix)], self.options.sort_separator)

        family = self._part("family", _glue(ndp, family_text))
        given_content = self._part("given", _glue(given, dp))
        displayed = join([given_content, family], " ")
        if suffix and displayed is not None:
            glue = ", " if name.comma_suffix else " "
            displayed = Span([displayed, glue, suffix])
        return displayed

    def _and_term(self) -> Optional[str]:
        if self.options.and_ == "text":
            return self.locale.term("and") or "and"
        if self.options.and_ == "symbol":
            return "&"
        return None

    @staticmethod
    def _uses_delimiter(rule: str, contextual: bool, after_inverted: bool) -> bool:
        if rule == "always":
            return True
        if rule == "never":
            return False
        if rule == "after-inverted-name":
            return after_inverted
        return contextual

    def format_list(
        self,
        names: Sequence[Name],
        et_al: Content = None,
        subsequent: bool = False,
        extra_names: int = 0,
        given_levels: Optional[Sequence[int]] = None,
        substituted: int = 0,
        substitute_text: str = "",
    ) -> Content:
        """Render ``names`` with et-al truncation and ``and`` joining.

        The first ``substituted`` names are replaced by ``substitute_text``.
        """
        if not names:
            return None
        shown, truncated = self.options.truncation(len(names), subsequent, extra_names)
        levels = list(given_levels or [])
        rendered: List[Content] = []
        for index, name in enumerate(names[:shown]):
            if index < substituted:
                if substitute_text:
                    rendered.append(Span([substitute_text]))
                continue
            content = self.format_name(name, index, levels[index] if index < len(levels) else 0)
            if content is not None and self.name_formatting.has_font():
                content = apply_formatting(content, self.name_formatting.without_affixes(), self.lang)
            if content is not None:
                rendered.append(content)
        if not rendered:
            return None
        delimiter = self.options.delimiter

        if truncated and self.options.et_al_use_last and shown + 1 < len(names):
            last = self.format_name(names[-1], len(names) - 1)
            body = join(rendered, delimiter)
            if last is None:
                return body
            return Span([body, delimiter, "… ", last])  # type: ignore[list-item]

        if truncated:
            body = join(rendered, delimiter)
            if et_al is None:
                return body
            use_delimiter = self._uses_delimiter(
                self.options.delimiter_precedes_et_al,
                contextual=len(rendered) >= 2,
                after_inverted=self._inverted(len(rendered) - 1),
            )
            return Span([body, delimiter if use_delimiter else " ", et_al])  # type: ignore[list-item]

        if len(rendered) == 1:
            return rendered[0]
        and_term = self._and_term()
        if and_term is None:
            return join(rendered, delimiter)
        head = join(rendered[:-1], delimiter)
        use_delimiter = self._uses_delimiter(
            self.options.delimiter_precedes_last,
            contextual=len(rendered) > 2,
            after_inverted=self._inverted(len(rendered) - 2),
        )
        glue = f"{delimiter}{and_term} " if use_delimiter else f" {and_term} "
        return Span([head, glue, rendered[-1]])  # type: ignore[list-item]

    def count(self, names: Sequence[Name], subsequent: bool = False, extra_names: int = 0) -> int:
        shown, _ = self.options.truncation(len(names), subsequent, extra_names)
        return shown


def name_sort_key(name: Name, demote_non_dropping_particle: str = "display-and-sort") -> str:
    """Sort string for a name: family name first, particles per the demotion rule."""
    if not name.is_personal:
        return name.literal or name.family or name.given or ""
    pieces: List[str] = []
    if demote_non_dropping_particle in ("sort-only", "display-and-sort"):
        pieces.extend([name.family or "", name.dropping_particle or "", name.non_dropping_particle or ""])
    else:
        pieces.extend([_glue(name.non_dropping_particle or "", name.family or ""), name.dropping_particle or ""])
    pieces.extend([name.given or "", name.suffix or ""])
    return " ".join(piece for piece in pieces if piece)


def names_sort_key(names: Iterable[Name], demote_non_dropping_particle: str = "display-and-sort") -> str:
    return "; ".join(name_sort_key(name, demote_non_dropping_particle) for name in names)
