from citation_renderer.locales import resolve_locale
from citation_renderer.numbers import (
    first_page,
    format_number,
    format_page_range,
    is_numeric,
    is_plural,
    ordinal,
    to_roman,
)

EN = resolve_locale("en-US")


def test_numeric_detection():
    assert is_numeric("12")
    assert is_numeric("2a")
    assert is_numeric("12-15")
    assert is_numeric("1, 3 & 5")
    assert not is_numeric("second edition")
    assert is_plural("12-15")
    assert not is_plural("12")


def test_page_range_formats():
    assert format_page_range("321-28", "expanded") == "321–328"
    assert format_page_range("321-28", "minimal") == "321–8"
    assert format_page_range("321-28", "minimal-two") == "321–28"
    assert format_page_range("321-28", "chicago") == "321–28"
    assert format_page_range("101-108", "chicago") == "101–8"
    assert format_page_range("1496-1504", "chicago") == "1496–1504"
    assert format_page_range("42-45", None) == "42–45"


def test_page_range_keeps_non_numeric_parts():
    assert format_page_range("xii-xiv", "minimal") == "xii-xiv"
    assert format_page_range("A12-A15", "minimal") == "A12–A15"


def test_ordinals():
    assert ordinal(1, EN) == "1st"
    assert ordinal(2, EN) == "2nd"
    assert ordinal(11, EN) == "11th"
    assert ordinal(21, EN) == "21st"
    assert ordinal(3, resolve_locale("de-DE")) == "3."


def test_number_forms():
    assert to_roman(1999) == "mcmxcix"
    assert format_number("4", "roman", EN) == "iv"
    assert format_number("2", "long-ordinal", EN) == "second"
    assert format_number("1-3", "ordinal", EN) == "1st–3rd"
    assert format_number("first", "ordinal", EN) == "first"


def test_first_page():
    assert first_page("321-28") == "321"
    assert first_page("") is None
