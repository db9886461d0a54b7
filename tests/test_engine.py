from conftest import AUTHOR_DATE_STYLE, CSL_HEADER, SAMPLE_ITEMS

from citation_renderer.engine import CitationEngine, cluster_from_dict
from citation_renderer.models import CitationCluster, CiteItem
from citation_renderer.style import load_style


STOLLEIS_STYLE = CSL_HEADER + """ class="note">
  <citation>
    <layout>
      <group delimiter=", ">
        <names variable="author"><name form="short"/></names>
        <group delimiter=" ">
          <text variable="publisher-place"/>
          <date variable="issued"><date-part name="year"/></date>
        </group>
      </group>
    </layout>
  </citation>
</style>
"""

NUMERIC_STYLE = CSL_HEADER + """ class="in-text">
  <citation collapse="citation-number">
    <sort><key variable="citation-number"/></sort>
    <layout prefix="[" suffix="]" delimiter=", ">
      <text variable="citation-number"/>
    </layout>
  </citation>
  <bibliography>
    <layout>
      <text variable="citation-number" suffix=". "/>
      <text variable="title"/>
    </layout>
  </bibliography>
</style>
"""


def _cluster(citation_id, *cites, note=0):
    items = [cite if isinstance(cite, CiteItem) else CiteItem(id=cite) for cite in cites]
    return CitationCluster(citation_id, items, note_index=note)


def _texts(changed):
    return {citation_id: text for _, text, citation_id in changed}


def test_author_and_place_date_layout(sample_items):
    engine = CitationEngine(load_style(STOLLEIS_STYLE), sample_items)

    _, changed = engine.append_cluster(_cluster("c1", "X1", note=1))

    assert changed == [(0, "Stolleis, München 1999", "c1")]


def test_repeated_cite_with_same_locator_renders_ibid(note_style, sample_items):
    engine = CitationEngine(note_style, sample_items)

    _, first = engine.append_cluster(_cluster("c1", CiteItem(id="X1", locator="12"), note=1))
    _, second = engine.append_cluster(_cluster("c2", CiteItem(id="X1", locator="12"), note=1))

    assert _texts(first)["c1"] == "Stolleis, Geschichte des öffentlichen Rechts, München 1999, 12."
    assert second == [(1, "Ibid.", "c2")]


def test_repeated_cite_with_other_locator_renders_ibid_with_locator(note_style, sample_items):
    engine = CitationEngine(note_style, sample_items)

    engine.append_cluster(_cluster("c1", CiteItem(id="X1", locator="12"), note=1))
    _, changed = engine.append_cluster(_cluster("c2", CiteItem(id="X1", locator="15"), note=2))

    assert _texts(changed)["c2"] == "Ibid., 15."


def test_out_of_order_insert_reclassifies_following_cluster(note_style, sample_items):
    engine = CitationEngine(note_style, sample_items)
    engine.append_cluster(_cluster("c1", "X1", note=1))
    _, changed = engine.append_cluster(_cluster("c2", "X1", note=2))
    assert _texts(changed)["c2"] == "Ibid."

    _, changed = engine.process_citation_cluster(
        _cluster("c-mid", "smith", note=2),
        citations_pre=[("c1", 1)],
        citations_post=[("c2", 3)],
    )

    assert (1, "Smith, Gamma, 2005.", "c-mid") in changed
    assert (2, "Stolleis, Geschichte.", "c2") in changed
    assert [citation.citation_id for citation in engine.rendered_citations()] == ["c1", "c2", "c-mid"]


def test_year_suffix_is_added_retroactively(author_date_style, sample_items):
    engine = CitationEngine(author_date_style, sample_items)

    _, first = engine.append_cluster(_cluster("c1", "doe-a"))
    assert first == [(0, "(Doe, 2000)", "c1")]

    bibchange, second = engine.append_cluster(_cluster("c2", "doe-b"))

    assert bibchange is True
    assert _texts(second) == {"c1": "(Doe, 2000a)", "c2": "(Doe, 2000b)"}


def test_citing_known_item_again_leaves_bibliography_unchanged(author_date_style, sample_items):
    engine = CitationEngine(author_date_style, sample_items)

    assert engine.append_cluster(_cluster("c1", "smith"))[0] is True
    bibchange, changed = engine.append_cluster(_cluster("c2", "smith"))

    assert bibchange is False
    assert [citation_id for _, _, citation_id in changed] == ["c2"]


def test_missing_item_is_marked_and_other_cites_render(author_date_style, sample_items):
    engine = CitationEngine(author_date_style, sample_items)

    _, changed = engine.append_cluster(_cluster("c1", "smith", "nope"))

    assert _texts(changed)["c1"] == "(Smith, 2005; [ItemNotFound: nope])"


def test_rendering_is_deterministic_across_sessions(sample_items):
    def run():
        engine = CitationEngine(load_style(AUTHOR_DATE_STYLE), [dict(record) for record in SAMPLE_ITEMS])
        for index, item_id in enumerate(["doe-a", "smith", "doe-b", "doe-a"]):
            engine.append_cluster(_cluster(f"c{index}", item_id, note=index + 1))
        return [c.text for c in engine.rendered_citations()], engine.make_bibliography().entries

    assert run() == run()


def test_bibliography_substitutes_repeated_author(author_date_style, sample_items):
    engine = CitationEngine(author_date_style, sample_items)
    engine.append_cluster(_cluster("c1", "smith", "doe-b", "doe-a"))

    bibliography = engine.make_bibliography()

    assert [entry.text for entry in bibliography.entries] == [
        "Doe, J. 2000a. Beta.",
        "———. 2000b. Alpha.",
        "Smith, A. 2005. Gamma.",
    ]
    assert bibliography.meta["entry_count"] == 3


def test_registered_items_appear_without_citation(author_date_style, sample_items):
    engine = CitationEngine(author_date_style, sample_items)
    engine.update_items(["X1", "smith"])

    assert engine.make_bibliography().entry_ids == ["smith", "X1"]


def test_citation_numbers_collapse_into_ranges(sample_items):
    engine = CitationEngine(load_style(NUMERIC_STYLE), sample_items)

    _, first = engine.append_cluster(_cluster("c1", "smith", "doe-a", "doe-b", "X1"))
    _, second = engine.append_cluster(_cluster("c2", "X1", "smith"))

    assert _texts(first)["c1"] == "[1–4]"
    assert _texts(second)["c2"] == "[1, 4]"
    assert [entry.text for entry in engine.make_bibliography().entries] == [
        "1. Gamma",
        "2. Alpha",
        "3. Beta",
        "4. Geschichte des öffentlichen Rechts",
    ]


def test_year_suffix_collapse_groups_same_author(sample_items):
    style = load_style(AUTHOR_DATE_STYLE.replace("<citation ", '<citation collapse="year-suffix" ', 1))
    engine = CitationEngine(style, sample_items)

    _, changed = engine.append_cluster(_cluster("c1", "smith", "doe-a", "doe-b"))

    assert _texts(changed)["c1"] == "(Doe, 2000a, b; Smith, 2005)"


def test_year_collapse_repeats_years(sample_items):
    style = load_style(AUTHOR_DATE_STYLE.replace("<citation ", '<citation collapse="year" ', 1))
    engine = CitationEngine(style, sample_items)

    _, changed = engine.append_cluster(_cluster("c1", "doe-a", "smith", "doe-b"))

    assert _texts(changed)["c1"] == "(Doe, 2000a, 2000b; Smith, 2005)"


def test_cluster_from_dict_reads_citeproc_shape():
    cluster = cluster_from_dict(
        {
            "citationID": "CITE-1",
            "citationItems": [{"id": "X1", "locator": "12", "label": "chapter", "suppress-author": True}],
            "properties": {"noteIndex": 3},
        }
    )

    assert cluster.citation_id == "CITE-1"
    assert cluster.note_index == 3
    assert cluster.cite_items[0] == CiteItem(id="X1", locator="12", label="chapter", suppress_author=True)


def test_new_item_only_renders_its_own_cluster(author_date_style, sample_items, monkeypatch):
    engine = CitationEngine(author_date_style, sample_items)
    engine.append_cluster(_cluster("c1", "smith"))
    engine.append_cluster(_cluster("c2", "X1"))
    rendered = []
    original = engine._render_cluster
    monkeypatch.setattr(engine, "_render_cluster", lambda cites: rendered.append(cites) or original(cites))

    # doe-a sorts ahead of both earlier items in the bibliography
    _, changed = engine.append_cluster(_cluster("c3", "doe-a"))

    assert changed == [(2, "(Doe, 2000)", "c3")]
    assert len(rendered) == 1
    assert engine.make_bibliography().entry_ids == ["doe-a", "smith", "X1"]


def test_numeric_bibliography_order_without_numbered_citations(sample_items):
    style = load_style(
        CSL_HEADER
        + """ class="in-text">
  <citation><layout><text variable="title"/></layout></citation>
  <bibliography>
    <sort><key variable="title"/></sort>
    <layout><text variable="citation-number" suffix=". "/><text variable="title"/></layout>
  </bibliography>
</style>
"""
    )
    engine = CitationEngine(style, sample_items)
    engine.append_cluster(_cluster("c1", "smith"))
    engine.append_cluster(_cluster("c2", "doe-a"))

    assert [entry.text for entry in engine.make_bibliography().entries] == ["1. Alpha", "2. Gamma"]
