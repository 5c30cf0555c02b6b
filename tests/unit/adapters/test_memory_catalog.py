from lakeice.adapters.memory_catalog import MemorySceneCatalog
from lakeice.contracts.geo import Bounds
from lakeice.ports.catalog import SceneCatalogPort, SceneQuery, metadata_matches
from tests.factories import make_scene, utc

def _catalog():
    return MemorySceneCatalog([
        make_scene(utc(2020, 1, 1), 1.0, scene_id="a"),
        make_scene(utc(2020, 2, 1), 1.0, scene_id="b"),
        make_scene(utc(2020, 2, 1), 1.0, scene_id="vh", band="VH"),
        make_scene(utc(2020, 3, 1), 1.0, scene_id="desc",
                   metadata={"transmitterReceiverPolarisation": ("VV",), "orbitProperties_pass": "DESCENDING"}),
    ])

def test_metadata_predicates_support_list_membership():
    meta = {"transmitterReceiverPolarisation": ["VV", "VH"], "orbitProperties_pass": "ASCENDING"}
    assert metadata_matches(meta, {"transmitterReceiverPolarisation": "VH"})
    assert not metadata_matches(meta, {"transmitterReceiverPolarisation": "HH"})
    assert not metadata_matches(meta, {"instrumentMode": "IW"})
    assert metadata_matches(meta, {})

def test_search_window_predicates_and_band():
    cat = _catalog()
    assert isinstance(cat, SceneCatalogPort)
    q = SceneQuery(predicates={"orbitProperties_pass": "ASCENDING"}, band="VV")
    got = cat.search(q.with_window(utc(2020, 1, 1), utc(2020, 3, 1)))
    assert [s.scene_id for s in got] == ["a", "b"]
    assert all(s.band_names() == ("VV",) for s in got)

def test_search_bounds_and_empty_result():
    cat = _catalog()
    far = SceneQuery(bounds=Bounds(0.0, 0.0, 1.0, 1.0))
    assert cat.search(far).is_empty
    assert len(cat.search(SceneQuery())) == len(cat) == 4

def test_search_latest_returns_newest_matching_first():
    cat = _catalog()
    q = SceneQuery(predicates={"orbitProperties_pass": "ASCENDING"}, band="VV")
    assert [s.scene_id for s in cat.search(q.newest(1))] == ["b"]
    assert [s.scene_id for s in cat.search(SceneQuery().newest(2))] == ["desc", "b"]
