# tests/integration/adapters/test_csv_scene_catalog.py
import numpy as np
import pytest
from pathlib import Path

pytest.importorskip("rasterio")

from lakeice.adapters.csv_catalog import CsvSceneCatalog
from lakeice.adapters.rasterio_reader import RasterioReader
from lakeice.adapters.rasterio_writer import RasterioWriter
from lakeice.contracts.geo import GeoRaster
from lakeice.ports.catalog import SceneQuery
from tests.factories import make_profile, utc

pytestmark = pytest.mark.integration

def _write(tmp: Path, name: str, value: float) -> str:
    uri = tmp / "tiles" / name
    RasterioWriter().write(str(uri), GeoRaster.full(make_profile(), value))
    return f"tiles/{name}"

@pytest.fixture
def index(tmp_path: Path) -> Path:
    rows = [
        "scene_id,path,system:time_start,transmitterReceiverPolarisation,orbitProperties_pass,relativeOrbitNumber_start",
        f"a,{_write(tmp_path, 'a.tif', 1.0)},1573405200000,VV;VH,ASCENDING,63",
        f"b,{_write(tmp_path, 'b.tif', 0.5)},2019-12-10T17:00:00Z,VV,ascending,63",
        f"c,{_write(tmp_path, 'c.tif', 0.2)},2019-12-12T17:00:00Z,HH,ASCENDING,63",
        ",,2019-12-13T17:00:00Z,VV,ASCENDING,63",
    ]
    p = tmp_path / "index.csv"
    p.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return p

def test_csv_catalog_parses_and_filters(index: Path):
    cat = CsvSceneCatalog(index, RasterioReader())
    q = SceneQuery(predicates={"transmitterReceiverPolarisation": "VV", "orbitProperties_pass": "ASCENDING"},
                   band="VV")
    got = cat.search(q).sort()
    assert [s.scene_id for s in got] == ["a", "b"]
    assert got[0].timestamp == utc(2019, 11, 10, 17)
    assert got[1].timestamp == utc(2019, 12, 10, 17)
    assert got[0].metadata["transmitterReceiverPolarisation"] == ("VV", "VH")
    assert got[0].metadata["relativeOrbitNumber_start"] == 63
    assert np.all(got[1].band("VV").data == 0.5)

def test_csv_catalog_window_is_half_open(index: Path):
    cat = CsvSceneCatalog(index, RasterioReader())
    got = cat.search(SceneQuery().with_window(utc(2019, 11, 10, 17), utc(2019, 12, 10, 17)))
    assert [s.scene_id for s in got] == ["a"]

def test_csv_catalog_missing_index(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        CsvSceneCatalog(tmp_path / "nope.csv", RasterioReader())
