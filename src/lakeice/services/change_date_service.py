# src/lakeice/services/change_date_service.py
from __future__ import annotations

"""
Fechado de cambio por diferencia máxima (ice-on / ice-off).

Dada una ventana de escenas:
  baseline = escena más temprana
  diff_i   = |img_i - baseline|            (baseline incluida: diff 0)
  maxdiff  = max_i diff_i                  (por píxel, ignora inválidos)
  date_i   = millis_i donde diff_i == maxdiff
  salida   = max_i date_i                  (empate -> gana la fecha más tardía)
"""

import logging
from typing import Optional

import numpy as np

from ..contracts.geo import GeoProfile, GeoRaster, validate_grid_compat
from ..contracts.scenes import SceneStack
from ..errors import MissingDataError
from .frost_filter_service import SMOOTH_BAND

logger = logging.getLogger(__name__)

DATE_BAND = "date"


def _nan_reduce_max(layers: np.ndarray) -> np.ndarray:
    # fmax ignora NaN salvo que todos lo sean (sin RuntimeWarning de nanmax)
    return np.fmax.reduce(layers, axis=0)


def max_difference_date(
    stack: SceneStack,
    band: str = SMOOTH_BAND,
    *,
    template: Optional[GeoProfile] = None,
) -> GeoRaster:
    """
    Raster `date` con el instante (ms epoch) del cambio máximo respecto de la
    primera escena de la ventana. Ventana vacía: raster inválido sobre
    `template`, o MissingDataError si no hay grilla de referencia.
    """
    if stack.is_empty:
        if template is None:
            raise MissingDataError("ventana vacía y sin grilla de referencia para el fechado")
        logger.warning("fechado sobre ventana vacía: raster inválido")
        return GeoRaster.full(template)

    ordered = stack.sort(ascending=True)
    baseline = ordered.first().band(band)
    if template is not None:
        validate_grid_compat(template, baseline.profile)

    diffs = []
    for scene in ordered:
        img = scene.band(band)
        validate_grid_compat(baseline.profile, img.profile)
        diffs.append(np.abs(img.data - baseline.data))
    diff_stack = np.stack(diffs, axis=0)
    maxdiff = _nan_reduce_max(diff_stack)

    millis = np.array([s.millis for s in ordered], dtype=np.float64)
    with np.errstate(invalid="ignore"):
        hit = diff_stack == maxdiff[np.newaxis, ...]
    dates = np.where(hit, millis[:, np.newaxis, np.newaxis], np.nan)
    out = _nan_reduce_max(dates)
    logger.debug(f"fechado: {len(ordered)} escenas, {int(np.isfinite(out).sum())} píxeles con fecha")
    return GeoRaster(out, baseline.profile)


__all__ = ["max_difference_date", "DATE_BAND"]
