import pytest

from dubai_map_editor.editor import WorkingSet
from dubai_map_editor.errors import UnknownRecordError
from dubai_map_editor.schema import Polygon


def test_add_assigns_temporary_identity(make_area, make_landmark):
    ids = iter(["one", "two"])
    working = WorkingSet(id_factory=lambda: next(ids))
    area = working.add_area(make_area(area_id=None))
    landmark = working.add_landmark(make_landmark(landmark_id=None))
    assert area.id == "temp-one"
    assert landmark.id == "temp-two"
    assert working.is_temporary(area.id)
    assert not working.is_temporary("3f2a-uuid")
    assert not working.is_temporary(None)


def test_temp_ids_never_collide(make_area):
    ids = iter(["dup", "dup", "fresh"])
    working = WorkingSet(id_factory=lambda: next(ids))
    first = working.add_area(make_area(area_id=None))
    second = working.add_area(make_area(area_id=None))
    assert first.id == "temp-dup"
    assert second.id == "temp-fresh"


def test_custom_prefix(make_area):
    working = WorkingSet(temp_prefix="draft:")
    area = working.add_area(make_area(area_id=None))
    assert area.id.startswith("draft:")
    assert working.is_temporary(area.id)
    assert not working.is_temporary("temp-1")


def test_mutations_replace_collections(make_area):
    working = WorkingSet([make_area("a1"), make_area("a2")])
    before = working.areas
    snap = working.snapshot()
    working.update_area("a1", {"color": "#000"})
    assert working.areas is not before
    assert before[0].color == "#3B82F6"
    assert snap.areas[0].color == "#3B82F6"
    assert working.get_area("a1").color == "#000"


def test_update_is_shallow_merge(make_area):
    working = WorkingSet([make_area("a1", description="old", opacity=0.5)])
    updated = working.update_area("a1", {"description": "new"})
    assert updated.description == "new"
    assert updated.opacity == 0.5


def test_replace_geometry(make_area, make_landmark):
    working = WorkingSet([make_area("a1")], [make_landmark("l1")])
    ring = [(55.0, 25.0), (55.3, 25.0), (55.3, 25.3), (55.0, 25.0)]
    working.replace_area_boundary("a1", Polygon.from_ring(ring))
    assert working.get_area("a1").boundary.outer_ring[1] == (55.3, 25.0)
    working.replace_area_boundary(
        "a1", {"type": "Polygon", "coordinates": [[list(p) for p in ring]]}
    )
    moved = working.replace_landmark_location("l1", 25.0, 55.0)
    assert (moved.location.lat, moved.location.lng) == (25.0, 55.0)


def test_remove_and_unknown_ids(make_area, make_landmark):
    working = WorkingSet([make_area("a1")], [make_landmark("l1")])
    working.remove_area("a1")
    working.remove_landmark("l1")
    assert working.areas == ()
    assert working.landmarks == ()
    with pytest.raises(UnknownRecordError):
        working.remove_area("a1")
    with pytest.raises(UnknownRecordError):
        working.update_landmark("missing", {"name": "x"})
    with pytest.raises(KeyError):
        working.replace_area_boundary("missing", Polygon.from_ring([(0, 0), (1, 0), (1, 1)]))


def test_replace_identity_swaps_temp_record(make_area):
    working = WorkingSet()
    temp = working.add_area(make_area(area_id=None))
    server = temp.model_copy(update={"id": "srv-9"})
    working.replace_identity(temp.id, server)
    assert [a.id for a in working.areas] == ["srv-9"]


def test_restore_snapshot(make_area):
    working = WorkingSet([make_area("a1")])
    snap = working.snapshot()
    working.remove_area("a1")
    working.restore(snap)
    assert [a.id for a in working.areas] == ["a1"]
