from __future__ import annotations
from pathlib import Path
from typing import Optional

import yaml

from ..adapters.csv_catalog import CsvSceneCatalog
from ..adapters.rasterio_clipper import RasterioMaskClipper, load_roi_geojson
from ..adapters.rasterio_reader import RasterioReader
from ..config import Settings, get_settings
from ..contracts.geo import GeoRaster
from ..errors import MissingDataError
from ..services.ice_event_pipeline import IceEventPipeline
from ..services.water_mask_service import WaterMaskService

SETTINGS_FILE = Path("config") / "settings.yaml"


def load_settings_from_yaml(path: Path, **overrides) -> Settings:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    data.update(overrides)
    return Settings(**data)


def build_settings(project_root: Optional[Path] = None) -> Settings:
    """config/settings.yaml bajo project_root si existe; si no, env/.env (get_settings)."""
    if project_root is None:
        return get_settings()
    root = Path(project_root).resolve()
    cfg = root / SETTINGS_FILE
    if not cfg.exists():
        return Settings(project_root=root)
    data = yaml.safe_load(cfg.read_text(encoding="utf-8")) or {}
    # sin project_root en el yaml, las rutas relativas cuelgan de la raíz pedida
    data.setdefault("project_root", str(root))
    return Settings(**data)


def build_water_mask(settings: Settings, reader: Optional[RasterioReader] = None) -> GeoRaster:
    reader = reader or RasterioReader()
    lc_uri = str(settings.in_path("landcover"))
    if not reader.exists(lc_uri):
        raise MissingDataError(f"No se encontró la cobertura de suelo: {lc_uri}")
    svc = WaterMaskService(
        clipper=RasterioMaskClipper(),
        water_class=settings.water_class,
        radius=settings.water_kernel_radius,
        iterations=settings.water_iterations,
    )
    roi_path = settings.in_path("roi")
    roi = load_roi_geojson(roi_path) if roi_path.exists() else None
    return svc.build(reader.read(lc_uri), roi, settings.roi_crs_ref())


def build_pipeline(settings: Optional[Settings] = None) -> IceEventPipeline:
    """Wiring por defecto: índice CSV de GeoTIFFs + rasterio + máscara NLCD recortada a la ROI."""
    st = settings or get_settings()
    reader = RasterioReader()
    catalog = CsvSceneCatalog(st.in_path("catalog_index"), reader, default_band=st.band)
    return IceEventPipeline(catalog=catalog, water_mask=build_water_mask(st, reader), settings=st)
