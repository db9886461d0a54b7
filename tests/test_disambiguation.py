from conftest import AUTHOR_DATE_STYLE
from citation_renderer.engine import CitationEngine
from citation_renderer.models import CitationCluster, CiteItem
from citation_renderer.style import load_style


def _person(family, given="Jo"):
    return {"family": family, "given": given}


def _article(item_id, authors, year=2000, title=None):
    return {
        "id": item_id,
        "type": "article-journal",
        "title": title or item_id,
        "author": authors,
        "issued": {"date-parts": [[year]]},
    }


def _cite_each(engine, *ids):
    for index, item_id in enumerate(ids):
        engine.append_cluster(CitationCluster(f"c{index + 1}", [CiteItem(id=item_id)]))
    return {citation.citation_id: citation.text for citation in engine.rendered_citations()}


def test_given_names_tell_authors_apart():
    items = [_article("john", [_person("Doe", "John")]), _article("kate", [_person("Doe", "Kate")])]
    engine = CitationEngine(load_style(AUTHOR_DATE_STYLE), items)
    assert _cite_each(engine, "john", "kate") == {"c1": "(J. Doe, 2000)", "c2": "(K. Doe, 2000)"}


def test_added_names_tell_et_al_lists_apart():
    style = load_style(AUTHOR_DATE_STYLE.replace("<citation ", '<citation disambiguate-add-names="true" ', 1))
    items = [
        _article("first", [_person("Doe"), _person("Roe"), _person("Poe")]),
        _article("second", [_person("Doe"), _person("Moe"), _person("Zoe")]),
    ]
    engine = CitationEngine(style, items)
    assert _cite_each(engine, "first", "second") == {
        "c1": "(Doe, Roe, et al., 2000)",
        "c2": "(Doe, Moe, et al., 2000)",
    }


def test_distinct_years_need_no_disambiguation():
    items = [_article("early", [_person("Doe")], 1999), _article("late", [_person("Doe")], 2001)]
    engine = CitationEngine(load_style(AUTHOR_DATE_STYLE), items)
    assert _cite_each(engine, "early", "late") == {"c1": "(Doe, 1999)", "c2": "(Doe, 2001)"}


def test_removing_a_cluster_withdraws_year_suffix(sample_items):
    engine = CitationEngine(load_style(AUTHOR_DATE_STYLE), sample_items)
    _cite_each(engine, "doe-a", "doe-b")
    bibchange, changed = engine.process_citation_cluster(CitationCluster("c1", [CiteItem(id="doe-a")]), [], [])
    assert bibchange is True
    assert (0, "(Doe, 2000)", "c1") in changed
    assert [citation.citation_id for citation in engine.rendered_citations()] == ["c1"]
