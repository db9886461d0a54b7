from conftest import CSL_HEADER
from citation_renderer.item_store import ItemStore
from citation_renderer.models import CiteItem
from citation_renderer.renderer import DisambiguationState, Renderer, year_suffix_letters
from citation_renderer.style import load_style


def _render(layout, record, output_format="text", cite=None, attributes="", state=None):
    style = load_style(
        CSL_HEADER + ' class="in-text"' + attributes + "><citation><layout>" + layout + "</layout></citation></style>"
    )
    item = ItemStore.from_csl_json([dict(record, id="r1")]).retrieve("r1")
    renderer = Renderer(style, style.locale_for(), output_format)
    content = renderer.render_cite(item, cite, state=state or DisambiguationState())
    return renderer.serialize(content)


ARTICLE = {
    "type": "article-journal",
    "title": "Alpha",
    "author": [{"family": "Doe", "given": "John"}],
    "issued": {"date-parts": [[2000]]},
}


def test_group_without_variables_is_suppressed():
    layout = '<group delimiter=" "><text term="in"/><text variable="container-title"/></group>'
    assert _render(layout, ARTICLE) == ""
    assert _render(layout, dict(ARTICLE, **{"container-title": "Journal"})) == "in Journal"


def test_unknown_type_renders_through_fallback_branch():
    layout = '<choose><if type="book"><text value="Book"/></if><else><text value="Other"/></else></choose>'
    assert _render(layout, dict(ARTICLE, type="podcast-episode")) == "Other"
    assert _render(layout, dict(ARTICLE, type="book")) == "Book"


def test_inline_markup_flips_inside_italic_title():
    record = dict(ARTICLE, title="On <i>X</i>")
    rendered = _render('<text variable="title" font-style="italic"/>', record, "html")
    assert rendered == '<i>On <span style="font-style:normal;">X</span></i>'


def test_html_escapes_text():
    assert _render('<text variable="title"/>', dict(ARTICLE, title="Salt & Pepper"), "html") == "Salt &amp; Pepper"


def test_substitute_suppresses_substituted_variable():
    layout = (
        '<group delimiter=", ">'
        '<names variable="author"><name form="short"/><substitute><names variable="editor"/></substitute></names>'
        '<names variable="editor"><name form="short"/></names>'
        '<text variable="title"/>'
        "</group>"
    )
    record = {"type": "book", "title": "Alpha", "editor": [{"family": "Roe", "given": "Jane"}]}
    assert _render(layout, record) == "Roe, Alpha"


def test_substitute_falls_back_to_title():
    layout = '<names variable="author"><substitute><text variable="title" form="short"/></substitute></names>'
    record = {"type": "book", "title": "A Long Title", "title-short": "Long"}
    assert _render(layout, record) == "Long"


def test_locator_label_and_page_range_format():
    layout = '<group delimiter=" "><label variable="locator" form="short"/><text variable="locator"/></group>'
    cite = CiteItem(id="r1", locator="321-28")
    assert _render(layout, ARTICLE, cite=cite, attributes=' page-range-format="minimal"') == "pp. 321–8"
    assert _render(layout, ARTICLE, cite=CiteItem(id="r1", locator="12")) == "p. 12"


def test_cite_prefix_and_suffix():
    cite = CiteItem(id="r1", prefix="see ", suffix=", passim")
    assert _render('<text variable="title"/>', ARTICLE, cite=cite) == "see Alpha, passim"


def test_suppress_author_and_author_only():
    layout = '<group delimiter=" "><names variable="author"><name form="short"/></names><date variable="issued"><date-part name="year"/></date></group>'
    assert _render(layout, ARTICLE) == "Doe 2000"
    assert _render(layout, ARTICLE, cite=CiteItem(id="r1", suppress_author=True)) == "2000"
    assert _render(layout, ARTICLE, cite=CiteItem(id="r1", author_only=True)) == "Doe"


def test_year_suffix_is_appended_to_issued_year():
    layout = '<date variable="issued"><date-part name="year"/></date>'
    assert _render(layout, ARTICLE, state=DisambiguationState(year_suffix=1)) == "2000b"


def test_quotes_and_title_case():
    record = dict(ARTICLE, title="the art of war")
    assert _render('<text variable="title" text-case="title"/>', record) == "The Art of War"
    assert _render('<text variable="title" quotes="true"/>', ARTICLE) == "“Alpha”"


def test_number_forms_in_layout():
    layout = '<number variable="edition" form="ordinal"/>'
    assert _render(layout, dict(ARTICLE, edition="2")) == "2nd"
    assert _render(layout, dict(ARTICLE, edition="second")) == "second"


def test_year_suffix_letters():
    assert year_suffix_letters(0) == "a"
    assert year_suffix_letters(25) == "z"
    assert year_suffix_letters(26) == "aa"
