# =============================
# FILE: examples/using_catalog_port.py
# =============================
"""
Uso mínimo: CsvSceneCatalog detrás del SceneCatalogPort.
Lista las escenas de una temporada sin pasar por el pipeline completo.
"""
from pathlib import Path

from lakeice.adapters.csv_catalog import CsvSceneCatalog
from lakeice.adapters.rasterio_reader import RasterioReader
from lakeice.composition.di import build_settings
from lakeice.ports.catalog import SceneQuery


if __name__ == "__main__":
    root = Path("/ruta/al/proyecto").resolve()
    s = build_settings(root)
    port = CsvSceneCatalog(s.catalog_index, RasterioReader(), default_band=s.band)

    start, end = s.season_windows().season(s.default_year)
    query = SceneQuery(predicates=s.catalog_predicates(), band=s.band).with_window(start, end)

    print(f"Escenas {start:%Y-%m-%d} .. {end:%Y-%m-%d}:")
    for scene in port.search(query).sort(ascending=True):
        print(" -", scene.scene_id, scene.timestamp.isoformat(), dict(scene.metadata))
