# src/lakeice/services/water_mask_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..contracts.geo import CRSRef, GeoRaster
from ..errors import MissingDataError
from ..ports.roi import GeoJSON, ROIClipperPort
from .focal import circle_kernel, focal_max, focal_min

logger = logging.getLogger(__name__)

NLCD_OPEN_WATER = 11


def build_water_mask(
    landcover: Optional[GeoRaster],
    *,
    water_class: int = NLCD_OPEN_WATER,
    radius: int = 1,
    iterations: int = 3,
) -> GeoRaster:
    """
    Máscara binaria de agua desde un raster de cobertura (clases enteras).
    eq(clase) -> erosión (min focal) x N -> dilatación (max focal) x N -> self-mask.
    Salida: 1.0 donde hay agua, NaN en el resto.
    """
    if landcover is None:
        raise MissingDataError("no hay raster de cobertura de suelo para construir la máscara de agua")
    water = np.where(landcover.valid & (landcover.data == water_class), 1.0, 0.0)
    kernel = circle_kernel(radius)
    water = focal_min(water, kernel, iterations)
    water = focal_max(water, kernel, iterations)
    return GeoRaster(np.where(water == 1.0, 1.0, np.nan), landcover.profile)


@dataclass
class WaterMaskService:
    clipper: Optional[ROIClipperPort] = None
    water_class: int = NLCD_OPEN_WATER
    radius: int = 1
    iterations: int = 3

    def build(
        self,
        landcover: Optional[GeoRaster],
        roi_geojson: Optional[GeoJSON] = None,
        roi_crs: Optional[CRSRef] = None,
    ) -> GeoRaster:
        mask = build_water_mask(
            landcover, water_class=self.water_class, radius=self.radius, iterations=self.iterations
        )
        if roi_geojson is not None:
            if not self.clipper:
                raise RuntimeError("Se proporcionó ROI pero no hay ROIClipperPort configurado")
            mask = self.clipper.clip_raster(mask, roi_geojson, roi_crs or CRSRef.from_epsg(4326))
        logger.info(f"máscara de agua: {int(mask.valid.sum())} píxeles de agua")
        return mask


__all__ = ["build_water_mask", "WaterMaskService", "NLCD_OPEN_WATER"]
