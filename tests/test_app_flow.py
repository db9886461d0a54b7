import json
import logging

import pytest

from conftest import CSL_HEADER

from citation_renderer.app import CitationRendererApp
from citation_renderer.config import Settings
from citation_renderer.errors import NoItemsToRender
from citation_renderer.exporters import bibliography_html, bibliography_lines, to_dict, to_json


def test_render_both_cites_each_item_in_its_own_footnote(style_and_data_paths):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_paths(style_path, data_path)
    result = app.render("both")
    assert result.item_count == 4
    assert result.locale == "en-US"
    assert [entry.index for entry in result.citations] == [1, 2, 3, 4]
    assert [entry.citation for entry in result.citations] == [
        "(Stolleis, 1999)",
        "(Doe, 2000a)",
        "(Doe, 2000b)",
        "(Smith, 2005)",
    ]
    assert result.citations[0].title == "Geschichte des öffentlichen Rechts"
    assert result.citations[0].type == "book"


def test_bibliography_mode_sorts_and_substitutes(style_and_data_paths):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_paths(style_path, data_path)
    result = app.render("bibliography")
    assert result.citations == []
    assert result.bibliography.entry_ids == ["doe-a", "doe-b", "smith", "X1"]
    lines = bibliography_lines(result.bibliography)
    assert lines[0] == "Doe, J. 2000a. Alpha."
    assert lines[1].startswith("———")
    assert lines[2] == "Smith, A. 2005. Gamma."


def test_unknown_ids_are_skipped_with_warning(style_and_data_paths, caplog):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_paths(style_path, data_path)
    with caplog.at_level(logging.WARNING, logger="citation_renderer"):
        result = app.render("citations", ids=["smith", "missing"])
    assert result.item_count == 1
    assert result.citations[0].citation == "(Smith, 2005)"
    assert "missing" in caplog.text


def test_empty_selection_raises(style_and_data_paths):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_paths(style_path, data_path)
    with pytest.raises(NoItemsToRender):
        app.render(ids=["missing"])


def test_unknown_mode_is_rejected(style_and_data_paths):
    app = CitationRendererApp.from_paths(*style_and_data_paths)
    with pytest.raises(ValueError):
        app.render("everything")


def test_missing_style_file_raises(tmp_path, style_and_data_paths):
    _, data_path = style_and_data_paths
    with pytest.raises(FileNotFoundError):
        CitationRendererApp.from_paths(tmp_path / "absent.csl", data_path)


def test_from_settings_uses_configured_paths(style_and_data_paths):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_settings(Settings(style_path=str(style_path), data_path=str(data_path)))
    assert app.style_path == str(style_path)
    assert len(app.items) == 4


def test_configured_locale_applies_when_style_names_none(tmp_path, style_and_data_paths):
    _, data_path = style_and_data_paths
    style_path = tmp_path / "bare.csl"
    style_path.write_text(
        CSL_HEADER
        + ' class="in-text"><citation><layout><group delimiter=" ">'
        + '<text variable="title"/><text term="et-al"/></group></layout></citation></style>',
        encoding="utf-8",
    )

    german = CitationRendererApp.from_settings(
        Settings(style_path=str(style_path), data_path=str(data_path), locale="de-DE")
    ).render("citations", ids=["doe-a"])
    unknown = CitationRendererApp.from_settings(
        Settings(style_path=str(style_path), data_path=str(data_path), locale="fr-FR")
    ).render("citations", ids=["doe-a"])

    assert german.locale == "de-DE"
    assert german.citations[0].citation == "Alpha u. a."
    assert unknown.locale == "fr-FR"
    assert unknown.citations[0].citation == "Alpha et al."


def test_json_export_omits_missing_bibliography(style_and_data_paths):
    app = CitationRendererApp.from_paths(*style_and_data_paths)
    result = app.render("citations", ids=["X1"])
    data = json.loads(to_json(result))
    assert "bibliography" not in data
    assert data["citations"][0]["id"] == "X1"
    assert "öffentlichen" in to_json(result)
    assert to_dict(result)["item_count"] == 1


def test_html_bibliography_is_wrapped(style_and_data_paths):
    style_path, data_path = style_and_data_paths
    app = CitationRendererApp.from_paths(style_path, data_path, output_format="html")
    result = app.render("bibliography", ids=["smith"])
    html = bibliography_html(result.bibliography)
    assert html.startswith('<div class="csl-bib-body">')
    assert "Gamma" in html
    assert bibliography_lines(result.bibliography, plain=True) == ["Smith, A. 2005. Gamma."]
