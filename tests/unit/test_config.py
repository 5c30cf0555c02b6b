# tests/unit/test_config.py
import pytest
import yaml
from pathlib import Path
from lakeice.config import Settings
from lakeice.contracts.geo import CRSRef
from lakeice.contracts.season import IceMode
from lakeice.composition.di import build_settings, load_settings_from_yaml

def test_settings_parse_and_paths(tmp_path: Path):
    s = Settings(project_root=tmp_path)
    assert isinstance(s.roi_crs_ref(), CRSRef)
    assert s.roi_crs_ref().epsg == 4326
    assert s.catalog_index.is_absolute()
    p = s.out_path("ice_event", mode="ice-on", year=2020)
    assert tmp_path.resolve() in p.parents
    assert p.name == "ice_ice-on_2020.tif"

def test_settings_defaults_match_season():
    s = Settings()
    assert s.years == (2018, 2019, 2020)
    assert s.default_year == 2020
    assert s.frost_kernel_size == 5 and s.frost_damping == -1.0
    assert s.palette_for(IceMode.ICE_ON) == ("aqua", "blue")
    assert s.palette_for("ice-off") == ("blue", "aqua")
    assert s.catalog_predicates() == {
        "transmitterReceiverPolarisation": "VV",
        "orbitProperties_pass": "ASCENDING",
    }

def test_settings_placeholders_guard():
    with pytest.raises(ValueError):
        Settings(output_patterns={"ice_event": "outputs/{site}/x.tif"})

@pytest.mark.parametrize("kw", [
    {"frost_kernel_size": 4},
    {"frost_kernel_size": 1},
    {"default_year": 2017},
    {"ice_split": "2-15"},
    {"histogram_region": "lake"},
])
def test_settings_rejects_invalid(kw):
    with pytest.raises(ValueError):
        Settings(**kw)

def test_settings_env_prefix(monkeypatch):
    monkeypatch.setenv("LAKEICE_FROST_KERNEL_SIZE", "7")
    assert Settings().frost_kernel_size == 7

def test_build_settings_from_yaml(tmp_path: Path):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "settings.yaml").write_text(yaml.safe_dump({
        "catalog_index": "data/s1/index.csv",
        "landcover_file": "data/nlcd.tif",
        "years": [2019, 2020],
        "default_year": 2019,
        "histogram_region": "water",
        "output_patterns": {
            "ice_event": "out/{year}/{mode}.tif",
            "current_ice": "out/current/{date}.tif",
            "series": "out/{year}/series.csv",
        },
    }), encoding="utf-8")

    st = build_settings(tmp_path)
    assert st.project_root == tmp_path.resolve()
    assert st.years == (2019, 2020)
    assert st.landcover_file == tmp_path.resolve() / "data" / "nlcd.tif"
    out = st.out_path("ice_event", mode="ice-off", year=2019)
    assert "out/2019/ice-off.tif" in str(out).replace("\\", "/")

def test_build_settings_without_yaml(tmp_path: Path):
    st = build_settings(tmp_path)
    assert st.project_root == tmp_path.resolve()

def test_load_settings_overrides(tmp_path: Path):
    path = tmp_path / "s.yaml"
    path.write_text("max_workers: 2\n", encoding="utf-8")
    st = load_settings_from_yaml(path, project_root=str(tmp_path), max_workers=3)
    assert st.max_workers == 3

def test_in_path_resolves_inputs(tmp_path: Path):
    s = Settings(project_root=tmp_path, landcover_file="lc/nlcd.tif")
    assert s.in_path("landcover") == tmp_path.resolve() / "lc" / "nlcd.tif"
    with pytest.raises(KeyError):
        s.in_path("dem")
