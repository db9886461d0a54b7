from conftest import CSL_HEADER
from citation_renderer.csl_json import parse_items
from citation_renderer.renderer import Renderer
from citation_renderer.sorting import Sorter, citation_numbers
from citation_renderer.style import load_style


def _sorter(keys):
    style = load_style(
        CSL_HEADER
        + ' class="in-text"><citation><layout><text variable="title"/></layout></citation>'
        + "<bibliography><sort>" + keys + '</sort><layout><text variable="title"/></layout></bibliography></style>'
    )
    return Sorter(Renderer(style, style.locale_for()), style.bibliography)


ITEMS = parse_items(
    [
        {"id": "gamma", "type": "book", "title": "Gamma", "issued": {"date-parts": [[2001]]}},
        {"id": "untitled", "type": "book"},
        {"id": "alpha", "type": "book", "title": "alpha", "issued": {"date-parts": [[2000]]}},
        {"id": "ahre", "type": "book", "title": "Ähre", "issued": {"date-parts": [[2005]]}},
    ]
)


def _ids(items):
    return [item.id for item in items]


def test_sort_ignores_case_and_accents_and_puts_empty_last():
    sorter = _sorter('<key variable="title"/>')
    assert _ids(sorter.sort(ITEMS)) == ["ahre", "alpha", "gamma", "untitled"]


def test_descending_keeps_empty_last():
    sorter = _sorter('<key variable="issued" sort="descending"/>')
    assert _ids(sorter.sort(ITEMS)) == ["ahre", "gamma", "alpha", "untitled"]


def test_sorting_is_idempotent():
    sorter = _sorter('<key variable="title"/>')
    once = sorter.sort(ITEMS)
    assert sorter.sort(once) == once


def test_ties_keep_input_order():
    sorter = _sorter('<key variable="publisher"/>')
    assert _ids(sorter.sort(ITEMS)) == _ids(ITEMS)
    assert sorter.argsort(ITEMS) == [0, 1, 2, 3]


def test_citation_number_key():
    sorter = _sorter('<key variable="citation-number" sort="descending"/>')
    numbers = citation_numbers(["alpha", "gamma", "ahre", "untitled"])
    assert sorter.uses_citation_number
    assert _ids(sorter.sort(ITEMS, numbers)) == ["untitled", "ahre", "gamma", "alpha"]


def test_sort_macro_keys_are_rendered_once_per_item(monkeypatch):
    style = load_style(
        CSL_HEADER
        + ' class="in-text"><macro name="title"><text variable="title"/></macro>'
        + '<citation><layout><text variable="title"/></layout></citation>'
        + '<bibliography><sort><key macro="title"/></sort><layout><text variable="title"/></layout></bibliography></style>'
    )
    renderer = Renderer(style, style.locale_for())
    sorter = Sorter(renderer, style.bibliography)
    calls = []
    original = renderer.render_sort_macro
    monkeypatch.setattr(renderer, "render_sort_macro", lambda *args: calls.append(args[0].id) or original(*args))

    first = sorter.sort(ITEMS, citation_numbers(["gamma", "untitled", "alpha", "ahre"]))
    second = sorter.sort(ITEMS, citation_numbers(["ahre", "alpha", "untitled", "gamma"]))

    assert _ids(first) == _ids(second) == ["ahre", "alpha", "gamma", "untitled"]
    assert sorted(calls) == ["ahre", "alpha", "gamma", "untitled"]
