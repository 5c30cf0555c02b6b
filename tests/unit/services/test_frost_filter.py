import numpy as np
import pytest
from lakeice.contracts.geo import GeoRaster
from lakeice.contracts.scenes import SceneStack
from lakeice.services.frost_filter_service import SMOOTH_BAND, FrostFilterService, frost_filter
from tests.factories import make_profile, make_raster, make_scene, utc

@pytest.mark.parametrize("k", [3, 5, 7])
def test_constant_image_is_preserved(k):
    out = frost_filter(make_raster(9, 9, value=0.3), kernel_size=k)
    assert np.allclose(out.data, 0.3)

def test_zero_mean_produces_nan_not_error():
    out = frost_filter(make_raster(6, 6, value=0.0))
    assert np.all(np.isnan(out.data))

def test_invalid_input_pixel_stays_invalid():
    arr = np.full((6, 6), 0.5)
    arr[2, 3] = np.nan
    out = frost_filter(GeoRaster(arr, make_profile(6, 6)))
    assert np.isnan(out.data[2, 3])
    assert np.isfinite(out.data[2, 2])
    assert out.data[2, 2] == pytest.approx(0.5)

def test_edges_are_preserved_better_than_box_mean():
    arr = np.where(np.arange(10)[None, :] < 5, 0.05, 0.5) * np.ones((10, 1))
    out = frost_filter(GeoRaster(arr, make_profile(10, 10)))
    # a dos columnas del borde la caja 5x5 es pura
    assert out.data[:, 0:3].max() == pytest.approx(0.05)
    assert out.data[:, 7:].min() == pytest.approx(0.5)
    assert np.all(out.data[:, 3:7] >= 0.05 - 1e-12)
    assert np.all(out.data[:, 3:7] <= 0.5 + 1e-12)

def test_service_adds_smooth_band_and_rejects_even_kernel():
    with pytest.raises(ValueError):
        FrostFilterService(kernel_size=4)
    svc = FrostFilterService(kernel_size=3, band="VV", max_workers=2)
    st = SceneStack(scenes=[make_scene(utc(2020, 1, d), 0.2) for d in (1, 2, 3)])
    out = svc.apply(st)
    assert len(out) == 3
    assert [s.scene_id for s in out] == [s.scene_id for s in st]
    for s in out:
        assert s.band_names() == ("VV", SMOOTH_BAND)
        assert np.allclose(s.band(SMOOTH_BAND).data, 0.2)

def test_service_on_empty_stack():
    assert FrostFilterService().apply(SceneStack()).is_empty
