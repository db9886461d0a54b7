from citation_renderer.formats import Span, plain_text
from citation_renderer.locales import resolve_locale
from citation_renderer.models import Name
from citation_renderer.names import (
    NameFormatter,
    NameOptions,
    initialize_given,
    name_from_csl,
    name_sort_key,
    names_from_csl,
)

LOCALE = resolve_locale("en-US")
ET_AL = Span(["et al."])


def _render(names, et_al=ET_AL, **attributes):
    formatter = NameFormatter(NameOptions.from_attributes(attributes), LOCALE)
    return plain_text(formatter.format_list(names, et_al))


def _people(*families):
    return [Name(family=family, given="Jo") for family in families]


def test_particles_are_split_from_family_and_given():
    van_gogh = name_from_csl({"family": "van Gogh", "given": "Vincent"})
    assert (van_gogh.non_dropping_particle, van_gogh.family) == ("van", "Gogh")
    alembert = name_from_csl({"family": "d'Alembert", "given": "Jean"})
    assert (alembert.non_dropping_particle, alembert.family) == ("d'", "Alembert")
    beethoven = name_from_csl({"family": "Beethoven", "given": "Ludwig van"})
    assert (beethoven.given, beethoven.dropping_particle) == ("Ludwig", "van")


def test_literal_and_given_only_names():
    assert names_from_csl([{"literal": "World Health Organization"}])[0].literal == "World Health Organization"
    assert name_from_csl({"given": "Plato"}).literal == "Plato"
    assert not name_from_csl({"literal": "WHO"}).is_personal


def test_particle_placement_in_display_and_sort_order():
    name = name_from_csl({"family": "van Gogh", "given": "Vincent"})
    assert _render([name]) == "Vincent van Gogh"
    assert _render([name], **{"name-as-sort-order": "all"}) == "Gogh, Vincent van"
    assert _render([name], **{"name-as-sort-order": "all", "demote-non-dropping-particle": "never"}) == "van Gogh, Vincent"
    assert _render([name], form="short") == "van Gogh"


def test_initials():
    assert initialize_given("Jean-Paul", ". ") == "J.-P."
    assert initialize_given("John Ronald", ". ") == "J. R."
    assert initialize_given("J.R.", ". ") == "J. R."
    assert initialize_given("Jean-Paul", ".", hyphen=False) == "J."
    assert initialize_given("John", "") == "J"


def test_et_al_truncation():
    names = _people("Doe", "Roe", "Poe")
    assert _render(names, form="short", **{"et-al-min": "3", "et-al-use-first": "1"}) == "Doe et al."
    assert _render(names, form="short", **{"et-al-min": "4", "et-al-use-first": "1"}) == "Doe, Roe, Poe"


def test_et_al_use_last():
    names = _people("Alpha", "Beta", "Gamma", "Delta")
    rendered = _render(names, form="short", **{"et-al-min": "3", "et-al-use-first": "1", "et-al-use-last": "true"})
    assert rendered == "Alpha, … Delta"


def test_subsequent_et_al_options():
    options = NameOptions.from_attributes(
        {"et-al-min": "5", "et-al-use-first": "3", "et-al-subsequent-min": "2", "et-al-subsequent-use-first": "1"}
    )
    assert options.truncation(3) == (3, False)
    assert options.truncation(3, subsequent=True) == (1, True)


def test_and_symbol_and_text():
    assert _render(_people("Doe", "Roe"), form="short", **{"and": "symbol"}) == "Doe & Roe"
    assert _render(_people("Doe", "Roe", "Poe"), form="short", **{"and": "text"}) == "Doe, Roe, and Poe"
    assert _render(_people("Doe", "Roe"), form="short", **{"and": "text"}) == "Doe and Roe"


def test_given_level_expands_short_names():
    formatter = NameFormatter(NameOptions.from_attributes({"form": "short", "initialize-with": ". "}), LOCALE)
    name = Name(family="Doe", given="John")
    assert plain_text(formatter.format_name(name)) == "Doe"
    assert plain_text(formatter.format_name(name, given_level=1)) == "J. Doe"
    assert plain_text(formatter.format_name(name, given_level=2)) == "John Doe"


def test_sort_key_demotes_particle():
    name = name_from_csl({"family": "van Gogh", "given": "Vincent"})
    assert name_sort_key(name).startswith("Gogh")
    assert name_sort_key(name, "never").startswith("van Gogh")
