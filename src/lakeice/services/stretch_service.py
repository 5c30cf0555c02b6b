# src/lakeice/services/stretch_service.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ..contracts.geo import GeoRaster
from ..contracts.scenes import millis_to_datetime
from ..contracts.stats import LABEL_DATE_FORMAT, VisualizationParams


def percentile_bounds(raster: GeoRaster, percent: float = 98.0, mask: Optional[GeoRaster] = None) -> tuple[float, float]:
    """
    Percentiles (100-percent)/2 y 100-(100-percent)/2 de los píxeles válidos.
    Sin píxeles válidos: (NaN, NaN).
    """
    r = raster.update_mask(mask) if mask is not None else raster
    vals = r.data[r.valid]
    if vals.size == 0:
        return (float("nan"), float("nan"))
    lower_pct = (100.0 - percent) / 2.0
    upper_pct = 100.0 - lower_pct
    lo, hi = np.percentile(vals, [lower_pct, upper_pct])
    return (float(lo), float(hi))


def stretch_params(
    raster: GeoRaster,
    percent: float = 98.0,
    palette: Sequence[str] = ("blue", "aqua"),
    mask: Optional[GeoRaster] = None,
) -> VisualizationParams:
    lo, hi = percentile_bounds(raster, percent, mask)
    return VisualizationParams(min=lo, max=hi, palette=tuple(palette))


def format_image_date(millis: float, fmt: str = LABEL_DATE_FORMAT) -> str:
    return millis_to_datetime(millis).strftime(fmt)


__all__ = ["percentile_bounds", "stretch_params", "format_image_date"]
