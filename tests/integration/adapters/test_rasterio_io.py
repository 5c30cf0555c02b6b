# tests/integration/adapters/test_rasterio_io.py
import numpy as np
import pytest
from pathlib import Path

rasterio = pytest.importorskip("rasterio")

from rasterio.transform import from_origin

from lakeice.adapters.rasterio_reader import RasterioReader
from lakeice.adapters.rasterio_writer import RasterioWriter
from lakeice.adapters.rasterio_clipper import RasterioMaskClipper, load_roi_geojson
from lakeice.contracts.geo import Bounds, CRSRef, GeoRaster
from lakeice.errors import MisalignedGridError
from tests.factories import make_profile

pytestmark = pytest.mark.integration

def test_write_read_keeps_grid_and_nan(tmp_path: Path):
    arr = np.arange(48, dtype=float).reshape(6, 8)
    arr[0, 0] = np.nan
    r = GeoRaster(arr, make_profile(8, 6))
    uri = str(tmp_path / "sub" / "x.tif")
    RasterioWriter().write(uri, r, tags={"mode": "ice-on"})

    reader = RasterioReader()
    assert reader.exists(uri)
    back = reader.read(uri)
    assert back.profile.crs.epsg == 32615
    assert back.profile.width == 8 and back.profile.height == 6
    assert np.allclose(back.profile.transform, r.profile.transform)
    assert np.isnan(back.data[0, 0])
    assert np.array_equal(back.data[1:], arr[1:])
    with rasterio.open(uri) as ds:
        assert ds.tags()["mode"] == "ice-on"

def test_reader_fills_nodata_with_nan(tmp_path: Path):
    uri = str(tmp_path / "lc.tif")
    p = make_profile(4, 4)
    x0, px, _, y0, _, py = p.transform
    with rasterio.open(uri, "w", driver="GTiff", width=4, height=4, count=1, dtype="uint8",
                       crs="EPSG:32615", transform=from_origin(x0, y0, px, -py),
                       nodata=0) as dst:
        data = np.full((4, 4), 11, dtype=np.uint8)
        data[3, 3] = 0
        dst.write(data, 1)
    r = RasterioReader().read(uri)
    assert r.data.dtype == np.float64
    assert r.data[0, 0] == 11.0
    assert np.isnan(r.data[3, 3])

def test_clipper_masks_outside_polygon(tmp_path: Path):
    p = make_profile(4, 4, px=10.0, x0=0.0, y0=40.0)
    r = GeoRaster.full(p, 1.0)
    # mitad izquierda: x en [0, 20]
    poly = {"type": "Polygon", "coordinates": [[[0, 0], [20, 0], [20, 40], [0, 40], [0, 0]]]}
    out = RasterioMaskClipper().clip_raster(r, poly, CRSRef.from_epsg(32615))
    assert out.valid[:, :2].all()
    assert not out.valid[:, 2:].any()
    assert RasterioMaskClipper().roi_bounds(poly) == Bounds(0.0, 0.0, 20.0, 40.0)
    with pytest.raises(MisalignedGridError):
        RasterioMaskClipper().clip_raster(r, poly, CRSRef.from_epsg(4326))

def test_load_roi_geojson_variants(tmp_path: Path):
    geom = {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    f = tmp_path / "roi.geojson"
    f.write_text('{"type": "FeatureCollection", "features": [{"type": "Feature", "properties": {}, '
                 '"geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}}]}',
                 encoding="utf-8")
    assert load_roi_geojson(f) == geom
    bad = tmp_path / "bad.geojson"
    bad.write_text('{"type": "FeatureCollection", "features": []}', encoding="utf-8")
    with pytest.raises(ValueError):
        load_roi_geojson(bad)
