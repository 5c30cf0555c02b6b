# src/lakeice/services/otsu_service.py
from __future__ import annotations

"""
Umbral de Otsu sobre un Histogram (buckets de ancho/peso arbitrario).

Para cada corte i en [1, n-1]: A = buckets[0, i), B = buckets[i, n).
  bss(i) = aCount·(aMean - mean)² + bCount·(bMean - mean)²
El umbral es la media del último bucket de A en el corte de bss máximo.
Empates: gana el último corte máximo. Cortes con una clase vacía se omiten;
sin ningún corte válido el umbral es NaN (NumericDegeneracyWarning).
"""

import logging
import warnings

import numpy as np

from ..contracts.geo import GeoRaster
from ..contracts.stats import Histogram
from ..errors import NumericDegeneracyWarning

logger = logging.getLogger(__name__)


def between_class_variance(hist: Histogram) -> np.ndarray:
    """bss por corte i=1..n-1 (largo n-1); -inf en cortes degenerados."""
    counts = hist.counts
    means = hist.bucket_means
    n = len(hist)
    if n < 2:
        return np.empty(0, dtype=np.float64)
    total = counts.sum()
    total_sum = float(np.sum(means * counts))
    mean = total_sum / total if total > 0 else np.nan

    a_count = np.cumsum(counts)[:-1]
    a_sum = np.cumsum(means * counts)[:-1]
    b_count = total - a_count
    valid = (a_count > 0) & (b_count > 0)

    with np.errstate(invalid="ignore", divide="ignore"):
        a_mean = a_sum / a_count
        b_mean = (total_sum - a_count * a_mean) / b_count
        bss = a_count * (a_mean - mean) ** 2 + b_count * (b_mean - mean) ** 2
    return np.where(valid, bss, -np.inf)


def otsu_threshold(hist: Histogram) -> float:
    bss = between_class_variance(hist)
    if bss.size == 0 or not np.any(np.isfinite(bss)):
        warnings.warn(
            f"Otsu sin cortes válidos ({len(hist)} buckets, total={hist.total:g}); umbral NaN",
            NumericDegeneracyWarning,
            stacklevel=2,
        )
        return float("nan")
    # argmax devuelve el primero; sobre el arreglo invertido da el último máximo
    last = bss.size - 1 - int(np.argmax(bss[::-1]))
    threshold = float(hist.bucket_means[last])
    logger.debug(f"otsu: corte i={last + 1}, bss={bss[last]:.6g}, umbral={threshold:.6g}")
    return threshold


def classify_below(raster: GeoRaster, threshold: float, mask: GeoRaster) -> GeoRaster:
    """
    1 donde raster < threshold, 0 en el resto, sólo dentro de `mask`
    (fuera de la máscara: NaN). Píxeles sin dato dentro de la máscara quedan en 0.
    """
    base = GeoRaster.full(raster.profile, 0.0).update_mask(mask)
    with np.errstate(invalid="ignore"):
        below = raster.data < threshold
    return GeoRaster(np.where(base.valid & below, 1.0, base.data), raster.profile)


__all__ = ["otsu_threshold", "between_class_variance", "classify_below"]
