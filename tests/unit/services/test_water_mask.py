import numpy as np
import pytest
from lakeice.contracts.geo import CRSRef, GeoRaster
from lakeice.errors import MissingDataError
from lakeice.services.water_mask_service import WaterMaskService, build_water_mask
from tests.factories import make_profile

def _landcover():
    lc = np.full((12, 12), 42.0)  # bosque
    lc[2:10, 2:10] = 11.0        # lago
    lc[0, 11] = 11.0             # charco aislado
    lc[11, 0] = np.nan
    return GeoRaster(lc, make_profile(12, 12))

def test_opening_keeps_lake_and_drops_isolated_pixel():
    m = build_water_mask(_landcover(), water_class=11, radius=1, iterations=3)
    assert m.data[5, 5] == 1.0
    assert np.isnan(m.data[0, 11])
    assert np.isnan(m.data[11, 0])
    vals = m.data[m.valid]
    assert vals.size > 0 and np.all(vals == 1.0)

def test_missing_landcover_raises():
    with pytest.raises(MissingDataError):
        build_water_mask(None)

class _RecordingClipper:
    def __init__(self):
        self.calls = []

    def clip_raster(self, raster, roi, roi_crs):
        self.calls.append((roi, roi_crs))
        keep = np.full(raster.shape, np.nan)
        keep[:, :6] = 1.0
        return raster.update_mask(GeoRaster(keep, raster.profile))

    def roi_bounds(self, roi):
        raise NotImplementedError

def test_service_clips_to_roi():
    clip = _RecordingClipper()
    svc = WaterMaskService(clipper=clip)
    roi = {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    m = svc.build(_landcover(), roi, CRSRef.from_epsg(32615))
    assert len(clip.calls) == 1
    assert m.data[5, 5] == 1.0
    assert not m.valid[:, 6:].any()

def test_service_roi_without_clipper_fails():
    with pytest.raises(RuntimeError):
        WaterMaskService().build(_landcover(), {"type": "Polygon", "coordinates": []})
