# src/lakeice/services/frost_filter_service.py
from __future__ import annotations

"""
Filtro Frost (speckle adaptativo) sobre escenas SAR.

Por imagen:
  1. media y varianza locales en kernel uniforme K×K
  2. peso w = exp(D · var / media²)
  3. w suavizado con media ponderada por kernel euclidiano de radio K//2
  4. smooth = Σ_K(img · w) / Σ_K(w)

Zonas homogéneas (var baja) promedian casi uniforme; en bordes el peso cae
y se preserva el detalle. media == 0 produce NaN (0/0), nunca excepción.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..contracts.geo import GeoRaster
from ..contracts.scenes import Scene, SceneStack
from .focal import euclidean_kernel, focal_mean, focal_sum, focal_variance, square_kernel
from .parallel import parallel_map

logger = logging.getLogger(__name__)

SMOOTH_BAND = "smooth"


def frost_filter(raster: GeoRaster, kernel_size: int = 5, damping: float = -1.0) -> GeoRaster:
    kernel = square_kernel(kernel_size)
    distance_kernel = euclidean_kernel(kernel_size // 2)
    img = raster.data

    mean = focal_mean(img, kernel)
    variance = focal_variance(img, kernel)
    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        sigma = damping * variance / (mean * mean)
        weights = np.exp(sigma)
    weights = focal_mean(weights, distance_kernel)
    # píxeles sin dato no aportan ni al numerador ni al denominador
    weights = np.where(raster.valid, weights, np.nan)

    with np.errstate(invalid="ignore", divide="ignore"):
        smooth = focal_sum(img * weights, kernel) / focal_sum(weights, kernel)
    # el píxel central inválido sigue inválido
    smooth = np.where(raster.valid, smooth, np.nan)
    return GeoRaster(smooth, raster.profile)


@dataclass(frozen=True)
class FrostFilterService:
    """Agrega la banda `smooth` a cada escena; una tarea independiente por imagen."""
    kernel_size: int = 5
    damping: float = -1.0
    band: Optional[str] = None  # None -> primera banda de cada escena
    max_workers: int = 4

    def __post_init__(self):
        if self.kernel_size < 3 or self.kernel_size % 2 == 0:
            raise ValueError(f"kernel_size debe ser impar y >= 3: {self.kernel_size}")

    def filter_scene(self, scene: Scene) -> Scene:
        name = self.band or scene.band_names()[0]
        smooth = frost_filter(scene.band(name), self.kernel_size, self.damping)
        invalid = int(np.count_nonzero(scene.band(name).valid & ~smooth.valid))
        if invalid:
            logger.debug(f"frost {scene.scene_id}: {invalid} píxeles degenerados (media local = 0)")
        return scene.with_band(SMOOTH_BAND, smooth)

    def apply(self, stack: SceneStack) -> SceneStack:
        if stack.is_empty:
            return stack
        logger.info(f"frost K={self.kernel_size} D={self.damping} sobre {len(stack)} escenas")
        out = parallel_map(self.filter_scene, stack.scenes, max_workers=self.max_workers)
        return SceneStack(scenes=tuple(out))


__all__ = ["frost_filter", "FrostFilterService", "SMOOTH_BAND"]
