from citation_renderer.models import CitationCluster, CiteItem, Position
from citation_renderer.positions import CitationTracker


def _cluster(citation_id, *cites, note=0):
    items = [cite if isinstance(cite, CiteItem) else CiteItem(id=cite) for cite in cites]
    return CitationCluster(citation_id, items, note_index=note)


def _positions(tracker):
    return {key: [state.position for state in states] for key, states in tracker.positions().items()}


def test_first_then_ibid_then_subsequent():
    tracker = CitationTracker()
    tracker.append(_cluster("c1", "a", note=1))
    tracker.append(_cluster("c2", "a", note=2))
    tracker.append(_cluster("c3", "b", note=3))
    tracker.append(_cluster("c4", "a", note=4))
    positions = _positions(tracker)
    assert positions["c1"] == [Position.FIRST]
    assert positions["c2"] == [Position.IBID]
    assert positions["c3"] == [Position.FIRST]
    assert positions["c4"] == [Position.NEAR_NOTE]


def test_locator_changes_make_ibid_with_locator():
    tracker = CitationTracker(near_note_distance=0)
    tracker.append(_cluster("c1", CiteItem(id="a", locator="12"), note=1))
    tracker.append(_cluster("c2", CiteItem(id="a", locator="12"), note=2))
    tracker.append(_cluster("c3", CiteItem(id="a", locator="15"), note=3))
    tracker.append(_cluster("c4", CiteItem(id="a"), note=4))
    positions = _positions(tracker)
    assert positions["c2"] == [Position.IBID]
    assert positions["c3"] == [Position.IBID_WITH_LOCATOR]
    assert positions["c4"] == [Position.SUBSEQUENT]


def test_ibid_needs_previous_cluster_to_cite_only_that_item():
    tracker = CitationTracker()
    tracker.append(_cluster("c1", "a", "b", note=1))
    tracker.append(_cluster("c2", "b", note=2))
    assert tracker.positions()["c2"][0].position != Position.IBID


def test_repeat_within_cluster_is_ibid():
    tracker = CitationTracker()
    tracker.append(_cluster("c1", "a", "a", note=1))
    assert _positions(tracker)["c1"] == [Position.FIRST, Position.IBID]


def test_near_note_respects_distance():
    tracker = CitationTracker(near_note_distance=2)
    tracker.append(_cluster("c1", "a", note=1))
    tracker.append(_cluster("c2", "b", note=2))
    tracker.append(_cluster("c3", "a", note=3))
    tracker.append(_cluster("c4", "b", note=9))
    states = tracker.positions()
    assert states["c3"][0].near_note is True
    assert states["c3"][0].first_reference_note_number == 1
    assert states["c4"][0].near_note is False
    assert states["c4"][0].position == Position.SUBSEQUENT


def test_zero_distance_is_never_near():
    tracker = CitationTracker(near_note_distance=0)
    tracker.append(_cluster("c1", "a", note=1))
    tracker.append(_cluster("c2", "b", note=1))
    tracker.append(_cluster("c3", "a", note=1))
    state = tracker.positions()["c3"][0]
    assert state.near_note is False
    assert state.matches("subsequent")
    assert not state.matches("near-note")


def test_in_text_clusters_are_never_near_note():
    tracker = CitationTracker()
    tracker.append(_cluster("c1", "a"))
    tracker.append(_cluster("c2", "b"))
    tracker.append(_cluster("c3", "a"))
    state = tracker.positions()["c3"][0]
    assert state.position == Position.SUBSEQUENT
    assert state.first_reference_note_number is None


def test_place_inserts_between_neighbours_and_drops_missing():
    tracker = CitationTracker()
    tracker.append(_cluster("c1", "a", note=1))
    tracker.append(_cluster("c2", "a", note=2))
    tracker.append(_cluster("c3", "b", note=3))
    tracker.place(_cluster("mid", "b", note=2), [("c1", 1)], [("c2", 3)])
    assert [cluster.citation_id for cluster in tracker.clusters] == ["c1", "mid", "c2"]
    assert tracker.get("c2").note_index == 3
    assert "c3" not in tracker
    assert tracker.cited_ids() == ["a", "b"]
