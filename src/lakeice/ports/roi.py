# src/lakeice/ports/roi.py
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable, Mapping
from ..contracts.geo import GeoRaster, CRSRef, Bounds

GeoJSON = Mapping[str, Any]

@runtime_checkable
class ROIClipperPort(Protocol):
    """
    Recorta un raster a una ROI (polígono GeoJSON): píxeles fuera -> NaN.
    La grilla se conserva; no reproyecta.
    """
    def clip_raster(self, raster: GeoRaster, roi: GeoJSON, roi_crs: CRSRef) -> GeoRaster: ...
    def roi_bounds(self, roi: GeoJSON) -> Bounds: ...

__all__ = ["ROIClipperPort", "GeoJSON"]
