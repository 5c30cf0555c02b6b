## `src/lakeice/adapters/rasterio_clipper.py`
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import numpy as np
from rasterio.features import geometry_mask
from rasterio.transform import Affine

from ..contracts.geo import Bounds, CRSRef, GeoProfile, GeoRaster
from ..errors import MisalignedGridError
from ..ports.roi import GeoJSON, ROIClipperPort


def load_roi_geojson(path: str | Path) -> Mapping[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        obj = json.load(f)
    # Acepta Feature/FeatureCollection/Geometry, devuelve Geometry
    t = obj.get("type")
    if t == "FeatureCollection":
        feats = obj.get("features", [])
        if not feats:
            raise ValueError("GeoJSON vacío")
        return feats[0]["geometry"]
    if t == "Feature":
        return obj["geometry"]
    if "coordinates" in obj:
        return obj
    raise ValueError("Formato GeoJSON no reconocido para ROI")


def _affine(p: GeoProfile) -> Affine:
    x0, px, rx, y0, ry, py = p.transform
    return Affine(px, rx, x0, ry, py, y0)


@dataclass(frozen=True)
class RasterioMaskClipper(ROIClipperPort):
    """Recorte por rasterización del polígono (rasterio.features.geometry_mask).

    No reproyecta: la ROI debe venir en el CRS del raster; si no coinciden
    se levanta MisalignedGridError. Con `all_touched` se incluyen los píxeles
    que el borde del polígono toca.
    """
    all_touched: bool = False

    def clip_raster(self, raster: GeoRaster, roi: GeoJSON, roi_crs: CRSRef) -> GeoRaster:
        p = raster.profile
        if not roi_crs.equals(p.crs):
            raise MisalignedGridError(
                f"ROI en {roi_crs.to_string()} pero el raster está en {p.crs.to_string()}; reproyecta antes"
            )
        outside = geometry_mask([roi], out_shape=p.shape, transform=_affine(p),
                                all_touched=self.all_touched, invert=False)
        return GeoRaster(np.where(outside, np.nan, raster.data), p)

    def roi_bounds(self, roi: GeoJSON) -> Bounds:
        xs, ys = [], []

        def _walk(c):
            if isinstance(c, (list, tuple)) and len(c) and isinstance(c[0], (list, tuple)):
                for k in c:
                    _walk(k)
            elif isinstance(c, (list, tuple)) and len(c) >= 2 and all(isinstance(v, (int, float)) for v in c[:2]):
                xs.append(float(c[0])); ys.append(float(c[1]))

        _walk(roi.get("coordinates"))
        if not xs:
            raise ValueError("ROI sin coordenadas")
        return Bounds(min(xs), min(ys), max(xs), max(ys))


__all__ = ["RasterioMaskClipper", "load_roi_geojson"]
