import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest

from citation_renderer.item_store import ItemStore
from citation_renderer.style import load_style

CSL_HEADER = '<style xmlns="http://purl.org/net/xbiblio/csl" version="1.0"'


NOTE_STYLE = CSL_HEADER + """ class="note" default-locale="en-US">
  <info><title>Test Note Style</title></info>
  <macro name="author">
    <names variable="author">
      <name form="short"/>
    </names>
  </macro>
  <citation>
    <layout suffix="." delimiter="; ">
      <choose>
        <if position="ibid-with-locator">
          <group delimiter=", ">
            <text term="ibid" text-case="capitalize-first"/>
            <text variable="locator"/>
          </group>
        </if>
        <else-if position="ibid">
          <text term="ibid" text-case="capitalize-first"/>
        </else-if>
        <else-if position="subsequent">
          <group delimiter=", ">
            <text macro="author"/>
            <text variable="title" form="short"/>
            <text variable="locator"/>
          </group>
        </else-if>
        <else>
          <group delimiter=", ">
            <text macro="author"/>
            <text variable="title" font-style="italic"/>
            <group delimiter=" ">
              <text variable="publisher-place"/>
              <date variable="issued"><date-part name="year"/></date>
            </group>
            <text variable="locator"/>
          </group>
        </else>
      </choose>
    </layout>
  </citation>
</style>
"""


AUTHOR_DATE_STYLE = CSL_HEADER + """ class="in-text">
  <info><title>Test Author-Date</title></info>
  <macro name="author-short">
    <names variable="author">
      <name form="short" and="symbol" delimiter=", " initialize-with=". "/>
      <substitute><text variable="title"/></substitute>
    </names>
  </macro>
  <macro name="author">
    <names variable="author">
      <name name-as-sort-order="all" and="symbol" delimiter=", " initialize-with=". "/>
      <substitute><text variable="title"/></substitute>
    </names>
  </macro>
  <macro name="year">
    <date variable="issued"><date-part name="year"/></date>
  </macro>
  <citation et-al-min="3" et-al-use-first="1" disambiguate-add-year-suffix="true"
            disambiguate-add-givenname="true" givenname-disambiguation-rule="by-cite">
    <sort><key macro="author"/><key macro="year"/></sort>
    <layout prefix="(" suffix=")" delimiter="; ">
      <group delimiter=", ">
        <text macro="author-short"/>
        <text macro="year"/>
      </group>
    </layout>
  </citation>
  <bibliography subsequent-author-substitute="———">
    <sort><key macro="author"/><key macro="year"/></sort>
    <layout suffix=".">
      <group delimiter=". ">
        <text macro="author"/>
        <text macro="year"/>
        <text variable="title"/>
      </group>
    </layout>
  </bibliography>
</style>
"""


SAMPLE_ITEMS = [
    {
        "id": "X1",
        "type": "book",
        "title": "Geschichte des öffentlichen Rechts",
        "title-short": "Geschichte",
        "author": [{"family": "Stolleis", "given": "Michael"}],
        "issued": {"date-parts": [[1999]]},
        "publisher-place": "München",
    },
    {
        "id": "doe-a",
        "type": "article-journal",
        "title": "Alpha",
        "author": [{"family": "Doe", "given": "John"}],
        "issued": {"date-parts": [[2000]]},
    },
    {
        "id": "doe-b",
        "type": "article-journal",
        "title": "Beta",
        "author": [{"family": "Doe", "given": "John"}],
        "issued": {"date-parts": [[2000]]},
    },
    {
        "id": "smith",
        "type": "book",
        "title": "Gamma",
        "author": [{"family": "Smith", "given": "Anna"}],
        "issued": {"date-parts": [[2005]]},
    },
]


@pytest.fixture()
def note_style():
    return load_style(NOTE_STYLE)


@pytest.fixture()
def author_date_style():
    return load_style(AUTHOR_DATE_STYLE)


@pytest.fixture()
def sample_items():
    return [dict(record) for record in SAMPLE_ITEMS]


@pytest.fixture()
def item_store(sample_items) -> ItemStore:
    return ItemStore.from_csl_json(sample_items)


@pytest.fixture()
def style_and_data_paths(tmp_path: Path, sample_items):
    """Write the author-date style and the sample items to disk."""

    style_path = tmp_path / "style.csl"
    style_path.write_text(AUTHOR_DATE_STYLE, encoding="utf-8")
    data_path = tmp_path / "items.json"
    data_path.write_text(json.dumps(sample_items), encoding="utf-8")
    return style_path, data_path
