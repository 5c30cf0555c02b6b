import numpy as np
import pytest
from lakeice.contracts.scenes import Scene, SceneStack
from lakeice.errors import MisalignedGridError, MissingDataError
from lakeice.services.change_date_service import max_difference_date
from tests.factories import make_profile, make_raster, make_scene, utc

def _stack(*pairs):
    return SceneStack(scenes=[make_scene(t, v) for t, v in pairs])

def test_date_of_largest_drop():
    t0, t1, t2 = utc(2019, 11, 10), utc(2019, 12, 10), utc(2020, 1, 10)
    out = max_difference_date(_stack((t2, 0.25), (t0, 1.0), (t1, 0.2)), band="VV")
    expected = t1.timestamp() * 1000
    assert np.all(out.data == expected)

def test_ties_resolve_to_latest_date():
    t0, t1, t2 = utc(2020, 1, 1), utc(2020, 1, 2), utc(2020, 1, 3)
    out = max_difference_date(_stack((t0, 1.0), (t1, 0.5), (t2, 1.5)), band="VV")
    assert np.all(out.data == t2.timestamp() * 1000)

def test_single_scene_dates_to_itself():
    t0 = utc(2020, 1, 1)
    out = max_difference_date(_stack((t0, 1.0)), band="VV")
    assert np.all(out.data == t0.timestamp() * 1000)

def test_invalid_pixels_are_skipped():
    t0, t1 = utc(2020, 1, 1), utc(2020, 1, 2)
    base = np.full((8, 8), 1.0)
    base[0, 0] = np.nan
    st = SceneStack(scenes=[make_scene(t0, data=base), make_scene(t1, 0.1)])
    out = max_difference_date(st, band="VV")
    assert np.isnan(out.data[0, 0])
    assert out.data[1, 1] == t1.timestamp() * 1000

def test_empty_window():
    prof = make_profile()
    out = max_difference_date(SceneStack(), band="VV", template=prof)
    assert out.profile == prof
    assert not out.valid.any()
    with pytest.raises(MissingDataError):
        max_difference_date(SceneStack(), band="VV")

def test_window_with_scene_on_other_grid_raises():
    t0, t1 = utc(2020, 1, 1), utc(2020, 1, 2)
    other = Scene(scene_id="other", timestamp=t1, bands={"VV": make_raster(value=0.1, epsg=4326)})
    with pytest.raises(MisalignedGridError):
        max_difference_date(SceneStack(scenes=[make_scene(t0, 1.0), other]), band="VV")
    with pytest.raises(MisalignedGridError):
        max_difference_date(SceneStack(scenes=[other]), band="VV", template=make_profile())
