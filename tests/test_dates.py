import pytest

from citation_renderer.dates import DateFormatter, date_from_csl, date_from_raw, parse_raw_date
from citation_renderer.errors import DateParseAmbiguous
from citation_renderer.formats import plain_text
from citation_renderer.locales import resolve_locale
from citation_renderer.models import DateParts
from citation_renderer.nodes import DateNode, DatePartNode

TEXT_DATE = DateNode(variable="issued", form="text")
YEAR_ONLY = DateNode(variable="issued", parts=(DatePartNode(name="year"),))


def _render(value, node=TEXT_DATE, lang="en-US"):
    return plain_text(DateFormatter(resolve_locale(lang)).render(node, value))


def test_csl_json_date_parts():
    value = date_from_csl({"date-parts": [[2000, 3, 15]]})
    assert value.parts == (DateParts(2000, 3, 15),)
    assert _render(value) == "March 15, 2000"
    assert _render(value, lang="de-DE") == "15. März 2000"


def test_month_precision_drops_day_separator():
    assert _render(date_from_csl({"date-parts": [[2000, 3]]})) == "March 2000"


def test_raw_year_range():
    value = parse_raw_date("1999/2001")
    assert value.is_range
    assert [part.year for part in value.parts] == [1999, 2001]
    assert _render(value, YEAR_ONLY) == "1999–2001"


def test_month_range_within_one_year():
    value = date_from_csl({"date-parts": [[2000, 3], [2000, 5]]})
    assert _render(value) == "March–May 2000"


def test_open_ended_range():
    value = date_from_raw("1999/")
    assert value.open_end
    assert _render(value, YEAR_ONLY) == "1999–"


def test_interchangeable_day_and_month_are_flagged():
    with pytest.raises(DateParseAmbiguous) as excinfo:
        parse_raw_date("03/04/2000")
    assert excinfo.value.best_effort.circa is True
    value = date_from_raw("03/04/2000")
    assert value.circa is True
    assert value.parts == (DateParts(2000, 3, 4),)


def test_unambiguous_slashed_date():
    value = parse_raw_date("13/04/2000")
    assert value.parts == (DateParts(2000, 4, 13),)
    assert value.circa is False


def test_dotted_and_worded_dates():
    assert parse_raw_date("15.3.1999").parts == (DateParts(1999, 3, 15),)
    assert parse_raw_date("15 March 1999").parts == (DateParts(1999, 3, 15),)
    assert parse_raw_date("März 1999").parts == (DateParts(1999, 3),)


def test_uncertain_markers_set_circa():
    assert parse_raw_date("ca. 1900").circa
    assert parse_raw_date("[1900]").circa
    assert parse_raw_date("1900?").circa


def test_bc_years():
    value = parse_raw_date("500 BC")
    assert value.parts[0].year == -500
    assert _render(value, YEAR_ONLY) == "500BC"


def test_seasons():
    value = parse_raw_date("Spring 2000")
    assert value.season == 1
    assert _render(value) == "Spring 2000"
    assert _render(date_from_csl({"date-parts": [[2000]], "season": 3})) == "Autumn 2000"


def test_unparseable_raw_date_becomes_literal():
    value = date_from_raw("forthcoming")
    assert value.literal == "forthcoming"
    assert _render(value) == "forthcoming"


def test_sort_key_orders_bc_before_ad():
    assert parse_raw_date("500 BC").sort_key() < parse_raw_date("1999").sort_key()
