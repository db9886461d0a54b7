"""Locale terms, date formats and the in-memory fallback chain."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .nodes import DateNode, DatePartNode, Formatting

logger = logging.getLogger(__name__)

FALLBACK_LOCALE = "en-US"

# Base language -> default region, used when an exact tag is unknown.
REGION_MAP = {"de": "de-DE", "en": "en-US", "fr": "fr-FR", "it": "it-IT", "es": "es-ES"}

TermKey = Tuple[str, str]
TermValue = Tuple[str, str]

_FORM_FALLBACKS = {
    "verb-short": ("verb-short", "verb", "long"),
    "symbol": ("symbol", "short", "long"),
    "short": ("short", "long"),
    "verb": ("verb", "long"),
    "long": ("long",),
}


class Locale:
    """Terms and date formats for one language tag."""

    def __init__(
        self,
        lang: str,
        terms: Optional[Dict[TermKey, TermValue]] = None,
        date_formats: Optional[Dict[str, DateNode]] = None,
        options: Optional[Dict[str, str]] = None,
    ):
        self.lang = lang
        self.terms: Dict[TermKey, TermValue] = dict(terms or {})
        self.date_formats: Dict[str, DateNode] = dict(date_formats or {})
        self.options: Dict[str, str] = dict(options or {})

    def __repr__(self) -> str:
        return f"Locale({self.lang!r}, terms={len(self.terms)})"

    @property
    def punctuation_in_quote(self) -> bool:
        return self.options.get("punctuation-in-quote") == "true"

    @property
    def limit_day_ordinals_to_day_1(self) -> bool:
        return self.options.get("limit-day-ordinals-to-day-1") == "true"

    def term(self, name: str, form: str = "long", plural: bool = False) -> Optional[str]:
        """Look up a term, falling back across forms as CSL prescribes."""
        for candidate in _FORM_FALLBACKS.get(form, (form, "long")):
            value = self.terms.get((name, candidate))
            if value is not None:
                return value[1] if plural else value[0]
        return None

    def has_term(self, name: str) -> bool:
        return any(key[0] == name for key in self.terms)

    def set_term(self, name: str, value: str, form: str = "long", plural: Optional[str] = None) -> None:
        self.terms[(name, form)] = (value, value if plural is None else plural)

    def date_format(self, form: str) -> Optional[DateNode]:
        return self.date_formats.get(form)

    def merged(self, override: "Locale") -> "Locale":
        """Return a copy with ``override``'s terms, formats and options on top."""
        return Locale(
            override.lang or self.lang,
            terms={**self.terms, **override.terms},
            date_formats={**self.date_formats, **override.date_formats},
            options={**self.options, **override.options},
        )

    def copy(self, lang: Optional[str] = None) -> "Locale":
        return Locale(lang or self.lang, self.terms, self.date_formats, self.options)


def _terms(table: Dict[str, object]) -> Dict[TermKey, TermValue]:
    """Expand the compact term tables below.

    Values are either a string (same singular/plural, long form), a
    ``(single, plural)`` tuple, or a mapping of form -> one of those.
    """
    expanded: Dict[TermKey, TermValue] = {}
    for name, value in table.items():
        forms = value if isinstance(value, dict) else {"long": value}
        for form, forms_value in forms.items():
            if isinstance(forms_value, tuple):
                expanded[(name, form)] = forms_value
            else:
                expanded[(name, form)] = (str(forms_value), str(forms_value))
    return expanded


def _date_format(variable_form: str, parts: Iterable[DatePartNode]) -> DateNode:
    return DateNode(variable="", form=variable_form, parts=tuple(parts))


def _part(name: str, form: Optional[str] = None, prefix: str = "", suffix: str = "") -> DatePartNode:
    return DatePartNode(name=name, form=form, formatting=Formatting(prefix=prefix, suffix=suffix))


_EN_MONTHS = ["January", "February", "March", "April", "May", "June", "July", "August", "September", "October", "November", "December"]
_EN_MONTHS_SHORT = ["Jan.", "Feb.", "Mar.", "Apr.", "May", "Jun.", "Jul.", "Aug.", "Sep.", "Oct.", "Nov.", "Dec."]
_DE_MONTHS = ["Januar", "Februar", "März", "April", "Mai", "Juni", "Juli", "August", "September", "Oktober", "November", "Dezember"]
_DE_MONTHS_SHORT = ["Jan.", "Feb.", "März", "Apr.", "Mai", "Juni", "Juli", "Aug.", "Sep.", "Okt.", "Nov.", "Dez."]

_EN_LONG_ORDINALS = ["first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth"]
_DE_LONG_ORDINALS = ["erste", "zweite", "dritte", "vierte", "fünfte", "sechste", "siebte", "achte", "neunte", "zehnte"]


def _month_terms(long_names: List[str], short_names: List[str]) -> Dict[str, object]:
    return {
        f"month-{index:02d}": {"long": long_name, "short": short_name}
        for index, (long_name, short_name) in enumerate(zip(long_names, short_names), start=1)
    }


def _long_ordinals(words: List[str]) -> Dict[str, object]:
    return {f"long-ordinal-{index:02d}": word for index, word in enumerate(words, start=1)}


_EN_US_TERMS: Dict[str, object] = {
    "accessed": "accessed",
    "ad": "AD",
    "and": {"long": "and", "symbol": "&"},
    "and others": "and others",
    "anonymous": {"long": "anonymous", "short": "anon."},
    "at": "at",
    "available at": "available at",
    "bc": "BC",
    "by": "by",
    "circa": {"long": "circa", "short": "c."},
    "cited": "cited",
    "edition": {"long": ("edition", "editions"), "short": "ed."},
    "et-al": "et al.",
    "forthcoming": "forthcoming",
    "from": "from",
    "ibid": "ibid.",
    "in": "in",
    "in press": "in press",
    "internet": "internet",
    "letter": "letter",
    "no date": {"long": "no date", "short": "n.d."},
    "online": "online",
    "presented at": "presented at the",
    "reference": {"long": ("reference", "references"), "short": ("ref.", "refs.")},
    "retrieved": "retrieved",
    "scale": "scale",
    "version": "version",
    "open-quote": "“",
    "close-quote": "”",
    "open-inner-quote": "‘",
    "close-inner-quote": "’",
    "page-range-delimiter": "–",
    "ordinal": "th",
    "ordinal-01": "st",
    "ordinal-02": "nd",
    "ordinal-03": "rd",
    "ordinal-11": "th",
    "ordinal-12": "th",
    "ordinal-13": "th",
    "book": {"long": ("book", "books"), "short": ("bk.", "bks.")},
    "chapter": {"long": ("chapter", "chapters"), "short": ("chap.", "chaps.")},
    "column": {"long": ("column", "columns"), "short": ("col.", "cols.")},
    "figure": {"long": ("figure", "figures"), "short": ("fig.", "figs.")},
    "folio": {"long": ("folio", "folios"), "short": ("fol.", "fols.")},
    "issue": {"long": ("issue", "issues"), "short": ("no.", "nos.")},
    "line": {"long": ("line", "lines"), "short": ("l.", "ll.")},
    "note": {"long": ("note", "notes"), "short": ("n.", "nn.")},
    "opus": {"long": ("opus", "opera"), "short": ("op.", "opp.")},
    "page": {"long": ("page", "pages"), "short": ("p.", "pp.")},
    "number-of-pages": {"long": ("page", "pages"), "short": ("p.", "pp.")},
    "paragraph": {"long": ("paragraph", "paragraphs"), "short": ("para.", "paras."), "symbol": ("¶", "¶¶")},
    "part": {"long": ("part", "parts"), "short": ("pt.", "pts.")},
    "section": {"long": ("section", "sections"), "short": ("sec.", "secs."), "symbol": ("§", "§§")},
    "sub-verbo": {"long": ("sub verbo", "sub verbis"), "short": ("s.v.", "s.vv.")},
    "verse": {"long": ("verse", "verses"), "short": ("v.", "vv.")},
    "volume": {"long": ("volume", "volumes"), "short": ("vol.", "vols.")},
    "director": {"long": ("director", "directors"), "short": ("dir.", "dirs."), "verb": "directed by", "verb-short": "dir. by"},
    "editor": {"long": ("editor", "editors"), "short": ("ed.", "eds."), "verb": "edited by", "verb-short": "ed. by"},
    "editorial-director": {"long": ("editor", "editors"), "short": ("ed.", "eds."), "verb": "edited by", "verb-short": "ed. by"},
    "illustrator": {"long": ("illustrator", "illustrators"), "short": ("ill.", "ills."), "verb": "illustrated by", "verb-short": "illus. by"},
    "translator": {"long": ("translator", "translators"), "short": ("tran.", "trans."), "verb": "translated by", "verb-short": "trans. by"},
    "editortranslator": {"long": ("editor & translator", "editors & translators"), "short": ("ed. & tran.", "eds. & trans."), "verb": "edited & translated by"},
    "container-author": {"verb": "by"},
    "interviewer": {"long": ("interviewer", "interviewers"), "verb": "interview by"},
    "recipient": {"verb": "to"},
    "reviewed-author": {"verb": "by"},
    "season-01": "Spring",
    "season-02": "Summer",
    "season-03": "Autumn",
    "season-04": "Winter",
    **_month_terms(_EN_MONTHS, _EN_MONTHS_SHORT),
    **_long_ordinals(_EN_LONG_ORDINALS),
}

_DE_DE_TERMS: Dict[str, object] = {
    "accessed": "zugegriffen",
    "ad": "n. Chr.",
    "and": {"long": "und", "symbol": "&"},
    "and others": "und andere",
    "anonymous": {"long": "ohne Autor", "short": "o. A."},
    "at": "auf",
    "available at": "verfügbar unter",
    "bc": "v. Chr.",
    "by": "von",
    "circa": {"long": "circa", "short": "ca."},
    "cited": "zitiert",
    "edition": {"long": ("Auflage", "Auflagen"), "short": "Aufl."},
    "et-al": "u. a.",
    "forthcoming": "i. E.",
    "from": "von",
    "ibid": "ebd.",
    "in": "in",
    "in press": "im Druck",
    "internet": "Internet",
    "letter": "Brief",
    "no date": {"long": "ohne Datum", "short": "o. J."},
    "online": "online",
    "presented at": "gehalten auf der",
    "reference": {"long": ("Referenz", "Referenzen"), "short": ("Ref.", "Ref.")},
    "retrieved": "abgerufen",
    "scale": "Maßstab",
    "version": "Version",
    "open-quote": "„",
    "close-quote": "“",
    "open-inner-quote": "‚",
    "close-inner-quote": "‘",
    "page-range-delimiter": "–",
    "ordinal": ".",
    "book": {"long": ("Buch", "Bücher"), "short": ("B.", "B.")},
    "chapter": {"long": ("Kapitel", "Kapitel"), "short": ("Kap.", "Kap.")},
    "column": {"long": ("Spalte", "Spalten"), "short": ("Sp.", "Sp.")},
    "figure": {"long": ("Abbildung", "Abbildungen"), "short": ("Abb.", "Abb.")},
    "folio": {"long": ("Blatt", "Blätter"), "short": ("Bl.", "Bl.")},
    "issue": {"long": ("Nummer", "Nummern"), "short": ("Nr.", "Nr.")},
    "line": {"long": ("Zeile", "Zeilen"), "short": ("Z.", "Z.")},
    "note": {"long": ("Note", "Noten"), "short": ("N.", "N.")},
    "opus": {"long": ("Opus", "Opera"), "short": ("op.", "opp.")},
    "page": {"long": ("Seite", "Seiten"), "short": ("S.", "S.")},
    "number-of-pages": {"long": ("Seite", "Seiten"), "short": ("S.", "S.")},
    "paragraph": {"long": ("Absatz", "Absätze"), "short": ("Abs.", "Abs."), "symbol": ("¶", "¶¶")},
    "part": {"long": ("Teil", "Teile"), "short": ("Teil", "Teile")},
    "section": {"long": ("Paragraph", "Paragraphen"), "short": ("§", "§§"), "symbol": ("§", "§§")},
    "sub-verbo": {"long": ("sub verbo", "sub verbis"), "short": ("s. v.", "s. vv.")},
    "verse": {"long": ("Vers", "Verse"), "short": ("V.", "V.")},
    "volume": {"long": ("Band", "Bände"), "short": ("Bd.", "Bd.")},
    "director": {"long": ("Regisseur", "Regisseure"), "short": ("Reg.", "Reg."), "verb": "Regie von", "verb-short": "Reg."},
    "editor": {"long": ("Herausgeber", "Herausgeber"), "short": ("Hrsg.", "Hrsg."), "verb": "herausgegeben von", "verb-short": "hg. v."},
    "editorial-director": {"long": ("Herausgeber", "Herausgeber"), "short": ("Hrsg.", "Hrsg."), "verb": "herausgegeben von", "verb-short": "hg. v."},
    "illustrator": {"long": ("Illustrator", "Illustratoren"), "short": ("Ill.", "Ill."), "verb": "illustriert von", "verb-short": "ill. v."},
    "translator": {"long": ("Übersetzer", "Übersetzer"), "short": ("Übers.", "Übers."), "verb": "übersetzt von", "verb-short": "übers. v."},
    "editortranslator": {"long": ("Herausgeber & Übersetzer", "Herausgeber & Übersetzer"), "short": ("Hrsg. & Übers.", "Hrsg. & Übers."), "verb": "herausgegeben und übersetzt von"},
    "container-author": {"verb": "von"},
    "interviewer": {"long": ("Interviewer", "Interviewer"), "verb": "interviewt von"},
    "recipient": {"verb": "an"},
    "reviewed-author": {"verb": "von"},
    "season-01": "Frühjahr",
    "season-02": "Sommer",
    "season-03": "Herbst",
    "season-04": "Winter",
    **_month_terms(_DE_MONTHS, _DE_MONTHS_SHORT),
    **_long_ordinals(_DE_LONG_ORDINALS),
}


def _builtin_en_us() -> Locale:
    return Locale(
        "en-US",
        terms=_terms(_EN_US_TERMS),
        date_formats={
            "text": _date_format("text", [_part("month", suffix=" "), _part("day", suffix=", "), _part("year")]),
            "numeric": _date_format(
                "numeric",
                [_part("month", "numeric", suffix="/"), _part("day", suffix="/"), _part("year")],
            ),
        },
        options={"punctuation-in-quote": "true", "limit-day-ordinals-to-day-1": "false"},
    )


def _builtin_de_de() -> Locale:
    return Locale(
        "de-DE",
        terms=_terms(_DE_DE_TERMS),
        date_formats={
            "text": _date_format("text", [_part("day", "ordinal", suffix=" "), _part("month", suffix=" "), _part("year")]),
            "numeric": _date_format(
                "numeric",
                [
                    _part("day", "numeric-leading-zeros", suffix="."),
                    _part("month", "numeric-leading-zeros", suffix="."),
                    _part("year"),
                ],
            ),
        },
        options={"punctuation-in-quote": "false", "limit-day-ordinals-to-day-1": "false"},
    )


class LocaleRegistry:
    """Holds locales by tag and resolves requests along the fallback chain."""

    def __init__(self, locales: Optional[Iterable[Locale]] = None, fallback: str = FALLBACK_LOCALE):
        self._locales: Dict[str, Locale] = {}
        self.fallback = fallback
        for locale in locales or ():
            self.register(locale)

    @classmethod
    def with_builtins(cls, fallback: str = FALLBACK_LOCALE) -> "LocaleRegistry":
        return cls([_builtin_en_us(), _builtin_de_de()], fallback=fallback)

    def register(self, locale: Locale) -> None:
        self._locales[locale.lang] = locale

    def __contains__(self, lang: str) -> bool:
        return lang in self._locales

    def candidates(self, lang: Optional[str]) -> List[str]:
        """Exact tag, then the base language's default region, then the fallback.

        The configured fallback is tried the same way; ``en-US`` always ends the chain.
        """
        chain: List[str] = []
        for tag in (lang, self.fallback, FALLBACK_LOCALE):
            if not tag:
                continue
            mapped = REGION_MAP.get(tag.split("-")[0].lower())
            for candidate in (tag, mapped):
                if candidate and candidate not in chain:
                    chain.append(candidate)
        return chain

    def resolve(self, lang: Optional[str]) -> Locale:
        for candidate in self.candidates(lang):
            locale = self._locales.get(candidate)
            if locale is not None:
                if lang and candidate != lang:
                    logger.debug("Locale %s resolved to %s", lang, candidate)
                return locale.copy()
        raise LookupError(f"No locale available for {lang!r}")


_BUILTINS: Optional[LocaleRegistry] = None


def builtin_registry() -> LocaleRegistry:
    global _BUILTINS
    if _BUILTINS is None:
        _BUILTINS = LocaleRegistry.with_builtins()
    return _BUILTINS


def resolve_locale(lang: Optional[str], registry: Optional[LocaleRegistry] = None) -> Locale:
    return (registry or builtin_registry()).resolve(lang)
