import pytest

from conftest import CSL_HEADER
from citation_renderer.errors import CyclicMacroReference, StyleParseError
from citation_renderer.locales import LocaleRegistry
from citation_renderer.style import load_style, load_style_file, parse_locale_xml


def _style(body, attributes=' class="in-text"'):
    return CSL_HEADER + attributes + ">\n" + body + "\n</style>"


CITATION = '<citation><layout><text variable="title"/></layout></citation>'


def test_minimal_style_loads():
    style = load_style(_style('<info><title>Tiny</title></info>' + CITATION))
    assert style.title == "Tiny"
    assert style.bibliography is None
    assert not style.is_note_style


def test_note_style_and_default_locale(note_style):
    assert note_style.is_note_style
    assert note_style.default_locale == "en-US"
    assert "author" in note_style.macros


def test_cyclic_macros_are_rejected():
    body = (
        '<macro name="a"><text macro="b"/></macro>'
        '<macro name="b"><text macro="a"/></macro>'
        '<citation><layout><text macro="a"/></layout></citation>'
    )
    with pytest.raises(CyclicMacroReference) as excinfo:
        load_style(_style(body))
    assert excinfo.value.cycle == ("a", "b", "a")
    assert isinstance(excinfo.value, StyleParseError)


def test_undefined_macro_is_rejected():
    with pytest.raises(StyleParseError, match="undefined macro"):
        load_style(_style('<citation><layout><text macro="nowhere"/></layout></citation>'))


def test_unknown_attribute_is_rejected():
    with pytest.raises(StyleParseError, match="unknown attribute"):
        load_style(_style('<citation><layout><text variable="title" colour="red"/></layout></citation>'))


def test_malformed_xml_is_rejected():
    with pytest.raises(StyleParseError, match="malformed XML"):
        load_style(_style("<citation><layout>"))


def test_style_without_citation_is_rejected():
    with pytest.raises(StyleParseError, match="no <citation>"):
        load_style(_style("<info><title>Empty</title></info>"))


def test_missing_style_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_style_file(tmp_path / "missing.csl")


def test_style_file_round_trip(tmp_path):
    path = tmp_path / "tiny.csl"
    path.write_text(_style(CITATION), encoding="utf-8")
    assert load_style_file(path).citation.layout is not None


def test_style_locale_overrides_builtin_terms():
    body = '<locale><terms><term name="ibid">idem</term></terms></locale>' + CITATION
    locale = load_style(_style(body)).locale_for("en-US")
    assert locale.lang == "en-US"
    assert locale.term("ibid") == "idem"
    assert locale.term("and", "symbol") == "&"


def test_language_specific_override_only_applies_to_that_language():
    body = '<locale xml:lang="de"><terms><term name="ibid">ders.</term></terms></locale>' + CITATION
    style = load_style(_style(body))
    assert style.locale_for("de-DE").term("ibid") == "ders."
    assert style.locale_for("en-US").term("ibid") == "ibid."


def test_unknown_locale_falls_back_to_english():
    locale = load_style(_style(CITATION)).locale_for("xx-YY")
    assert locale.lang == "en-US"


def test_caller_supplied_locale_is_used():
    fr = parse_locale_xml(
        '<locale xmlns="http://purl.org/net/xbiblio/csl" xml:lang="fr">'
        '<terms><term name="ibid">ibid.</term><term name="and">et</term></terms></locale>'
    )
    assert fr.lang == "fr-FR"
    registry = LocaleRegistry.with_builtins()
    registry.register(fr)
    locale = load_style(_style(CITATION)).locale_for("fr-FR", registry)
    assert locale.term("and") == "et"


def test_registry_fallback_precedes_english():
    registry = LocaleRegistry.with_builtins(fallback="de")
    assert registry.candidates("xx-YY") == ["xx-YY", "de", "de-DE", "en-US"]
    assert registry.resolve("xx-YY").lang == "de-DE"
    assert LocaleRegistry.with_builtins(fallback="fr-FR").resolve(None).lang == "en-US"
